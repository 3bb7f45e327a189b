"""Transfer duty and bond registration costs.

Costs come from a versioned ``FeeSchedule``: transfer duty brackets applied
to the purchase price, attorney fee bands keyed by purchase price (transfer)
and loan amount (bond), and deeds office registration bands keyed by loan
amount. Results name the schedule's effective date so that a stored result
can be reproduced with the same table.

Two schedules ship with the package:

* ``2024-03-01``: SARS transfer duty table effective 1 March 2024, with
  indicative conveyancing and deeds office bands. This is the default.
* ``2020-03-01``: the duty table effective 1 March 2020 with flat percentage
  attorney fees and a flat deeds office fee, as the calculator site
  originally used.

Attorney and deeds office amounts are indicative guidelines, not a tariff.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple

from .data_models import TransferCostBreakdown, ZERO
from .exceptions import InvalidInput
from .utils import Number, round_currency, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DutyBracket:
    """Duty on a price above ``threshold`` is ``base + (price - threshold) * rate``."""

    threshold: Decimal
    base: Decimal
    rate: Decimal


@dataclass(frozen=True)
class FeeBand:
    """A fee band covering values up to ``up_to`` (``None`` is open-ended).

    The fee is ``fee + (value - lower) * rate`` where ``lower`` is the upper
    bound of the previous band (zero for the first band).
    """

    up_to: Optional[Decimal]
    fee: Decimal
    rate: Decimal = ZERO


@dataclass(frozen=True)
class FeeSchedule:
    effective_date: date
    transfer_duty: Tuple[DutyBracket, ...]
    transfer_attorney: Tuple[FeeBand, ...]
    bond_attorney: Tuple[FeeBand, ...]
    bond_registration: Tuple[FeeBand, ...]
    first_time_buyer_duty_discount: Decimal = ZERO


def _d(value: str) -> Decimal:
    return Decimal(value)


SCHEDULE_2020 = FeeSchedule(
    effective_date=date(2020, 3, 1),
    transfer_duty=(
        DutyBracket(_d("0"), _d("0"), _d("0")),
        DutyBracket(_d("1000000"), _d("0"), _d("0.03")),
        DutyBracket(_d("1375000"), _d("11250"), _d("0.06")),
        DutyBracket(_d("1925000"), _d("44250"), _d("0.08")),
        DutyBracket(_d("2475000"), _d("88250"), _d("0.11")),
        DutyBracket(_d("11000000"), _d("1026000"), _d("0.13")),
    ),
    transfer_attorney=(FeeBand(None, _d("0"), _d("0.015")),),
    bond_attorney=(FeeBand(None, _d("0"), _d("0.012")),),
    bond_registration=(FeeBand(None, _d("1500")),),
)

SCHEDULE_2024 = FeeSchedule(
    effective_date=date(2024, 3, 1),
    transfer_duty=(
        DutyBracket(_d("0"), _d("0"), _d("0")),
        DutyBracket(_d("1210000"), _d("0"), _d("0.03")),
        DutyBracket(_d("1663800"), _d("13614"), _d("0.06")),
        DutyBracket(_d("2329300"), _d("53544"), _d("0.08")),
        DutyBracket(_d("2994800"), _d("106784"), _d("0.11")),
        DutyBracket(_d("13310000"), _d("1241456"), _d("0.13")),
    ),
    transfer_attorney=(
        FeeBand(_d("500000"), _d("11600")),
        FeeBand(_d("1000000"), _d("19600")),
        FeeBand(_d("1500000"), _d("24500")),
        FeeBand(_d("2000000"), _d("29400")),
        FeeBand(_d("3000000"), _d("36800")),
        FeeBand(_d("5000000"), _d("49000")),
        FeeBand(None, _d("49000"), _d("0.0061")),
    ),
    bond_attorney=(
        FeeBand(_d("500000"), _d("10300")),
        FeeBand(_d("1000000"), _d("17800")),
        FeeBand(_d("1500000"), _d("22200")),
        FeeBand(_d("2000000"), _d("26600")),
        FeeBand(_d("3000000"), _d("33400")),
        FeeBand(_d("5000000"), _d("44500")),
        FeeBand(None, _d("44500"), _d("0.0055")),
    ),
    bond_registration=(
        FeeBand(_d("600000"), _d("1020")),
        FeeBand(_d("800000"), _d("1263")),
        FeeBand(_d("1000000"), _d("1422")),
        FeeBand(_d("2000000"), _d("1585")),
        FeeBand(_d("4000000"), _d("2210")),
        FeeBand(_d("6000000"), _d("2680")),
        FeeBand(_d("8000000"), _d("3187")),
        FeeBand(_d("10000000"), _d("3837")),
        FeeBand(_d("15000000"), _d("4457")),
        FeeBand(_d("20000000"), _d("5313")),
        FeeBand(None, _d("7438")),
    ),
)

SCHEDULES: Dict[date, FeeSchedule] = {s.effective_date: s for s in (SCHEDULE_2020, SCHEDULE_2024)}
DEFAULT_SCHEDULE = SCHEDULE_2024


def get_schedule(effective_date: Optional[date] = None) -> FeeSchedule:
    """Return the schedule in force on ``effective_date`` (default: latest).

    The date does not have to match a schedule exactly; the most recent
    schedule taking effect on or before it is used.
    """
    if effective_date is None:
        return DEFAULT_SCHEDULE
    candidates = [d for d in SCHEDULES if d <= effective_date]
    if not candidates:
        raise InvalidInput(f"No fee schedule in force on {effective_date.isoformat()}", "effective_date")
    return SCHEDULES[max(candidates)]


def _bands(items: Iterable[Dict[str, Any]]) -> Tuple[FeeBand, ...]:
    return tuple(
        FeeBand(
            up_to=Decimal(str(item["up_to"])) if item.get("up_to") is not None else None,
            fee=Decimal(str(item.get("fee", "0"))),
            rate=Decimal(str(item.get("rate", "0"))),
        )
        for item in items
    )


def schedule_from_dict(data: Dict[str, Any]) -> FeeSchedule:
    """Build a ``FeeSchedule`` from its JSON representation."""
    try:
        return FeeSchedule(
            effective_date=date.fromisoformat(data["effective_date"]),
            transfer_duty=tuple(
                DutyBracket(Decimal(str(b["threshold"])), Decimal(str(b["base"])), Decimal(str(b["rate"])))
                for b in data["transfer_duty"]
            ),
            transfer_attorney=_bands(data["transfer_attorney"]),
            bond_attorney=_bands(data["bond_attorney"]),
            bond_registration=_bands(data["bond_registration"]),
            first_time_buyer_duty_discount=Decimal(str(data.get("first_time_buyer_duty_discount", "0"))),
        )
    except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
        raise InvalidInput(f"Invalid fee schedule: {exc}") from exc


def load_schedule(path: Path) -> FeeSchedule:
    """Load a fee schedule from a JSON file."""
    with Path(path).open("r", encoding="utf-8") as f:
        data = json.load(f)
    schedule = schedule_from_dict(data)
    logger.info("Loaded fee schedule effective %s from %s", schedule.effective_date, path)
    return schedule


def transfer_duty(price: Decimal, brackets: Iterable[DutyBracket]) -> Decimal:
    ordered = sorted(brackets, key=lambda b: b.threshold)
    if not ordered:
        return ZERO
    applicable = ordered[0]
    for bracket in ordered[1:]:
        if price > bracket.threshold:
            applicable = bracket
    if price <= applicable.threshold:
        return ZERO
    return applicable.base + (price - applicable.threshold) * applicable.rate


def banded_fee(value: Decimal, bands: Iterable[FeeBand]) -> Decimal:
    lower = ZERO
    last: Optional[FeeBand] = None
    for band in bands:
        last = band
        if band.up_to is None or value <= band.up_to:
            return band.fee + (value - lower) * band.rate
        lower = band.up_to
    # Value beyond the last bounded band: charge the top band's flat fee
    return last.fee if last is not None else ZERO


def transfer_costs(
    purchase_price: Number,
    loan_amount: Number,
    is_first_time_buyer: bool = False,
    schedule: Optional[FeeSchedule] = None,
) -> TransferCostBreakdown:
    """Apply a fee schedule to a purchase.

    A ``loan_amount`` of zero is a cash purchase: no bond attorney or bond
    registration fees are charged.
    """
    price = to_decimal(purchase_price, "purchase_price")
    loan = to_decimal(loan_amount, "loan_amount")
    if price <= 0:
        raise InvalidInput("Purchase price must be positive", "purchase_price")
    if loan < 0:
        raise InvalidInput("Loan amount cannot be negative", "loan_amount")
    schedule = schedule or DEFAULT_SCHEDULE

    duty = transfer_duty(price, schedule.transfer_duty)
    if is_first_time_buyer:
        duty -= duty * schedule.first_time_buyer_duty_discount
    duty = round_currency(duty)
    transfer_attorney = round_currency(banded_fee(price, schedule.transfer_attorney))
    if loan > 0:
        bond_attorney = round_currency(banded_fee(loan, schedule.bond_attorney))
        registration = round_currency(banded_fee(loan, schedule.bond_registration))
    else:
        bond_attorney = registration = ZERO

    return TransferCostBreakdown(
        transfer_duty=duty,
        bond_registration_fee=registration,
        transfer_attorney_fee=transfer_attorney,
        bond_attorney_fee=bond_attorney,
        total=duty + registration + transfer_attorney + bond_attorney,
        schedule_effective_date=schedule.effective_date,
    )
