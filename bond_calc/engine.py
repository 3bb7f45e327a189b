"""Core amortization engine for the bond calculators.

This module implements the fixed-installment (annuity) mathematics shared by
every calculator: the closed-form periodic payment and the full
period-by-period schedule. All amounts are ``Decimal`` values rounded to
cents per period; the rounding residual is carried in the balance and
settled in the final period, so the schedule always ends at exactly zero.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List

from .data_models import AmortizationPeriod, AmortizationSchedule, YearSummary, ZERO
from .exceptions import InvalidInput
from .utils import Number, round_currency, to_decimal

logger = logging.getLogger(__name__)


def _validate(principal: Decimal, periodic_rate: Decimal, total_periods: int) -> None:
    if principal <= 0:
        raise InvalidInput("Principal must be positive", "principal")
    if periodic_rate < 0:
        raise InvalidInput("Interest rate cannot be negative", "periodic_rate")
    if total_periods <= 0:
        raise InvalidInput("Number of payment periods must be positive", "total_periods")


def annuity_payment(principal: Decimal, periodic_rate: Decimal, total_periods: int) -> Decimal:
    """Return the unrounded annuity installment.

    The formula is:

        payment = P * i / (1 - (1 + i)^-n)

    where ``P`` is the principal, ``i`` is the periodic interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``.
    """
    if periodic_rate == 0:
        return principal / Decimal(total_periods)
    return principal * periodic_rate / (1 - (1 + periodic_rate) ** -total_periods)


def monthly_payment(principal: Number, periodic_rate: Number, total_periods: int) -> Decimal:
    """Return the fixed periodic installment rounded to cents.

    This is the headline number without building a schedule, e.g.
    ``monthly_payment(1_000_000, 0.1125 / 12, 240) == Decimal("10492.56")``.
    """
    principal = to_decimal(principal, "principal")
    periodic_rate = to_decimal(periodic_rate, "periodic_rate")
    _validate(principal, periodic_rate, total_periods)
    return round_currency(annuity_payment(principal, periodic_rate, total_periods))


def build_schedule(principal: Number, periodic_rate: Number, total_periods: int) -> AmortizationSchedule:
    """Compute the amortization schedule for a fixed-installment loan.

    Parameters
    ----------
    principal:
        The financed amount. Rounded to cents before amortizing.
    periodic_rate:
        Interest rate per payment period as a fraction.
    total_periods:
        Number of payments.

    Returns
    -------
    AmortizationSchedule
        ``total_periods`` rows. Each row's interest is the cent-rounded
        interest on the opening balance; the last row pays off whatever
        balance remains, so principal portions sum to the principal exactly.
    """
    principal = to_decimal(principal, "principal")
    periodic_rate = to_decimal(periodic_rate, "periodic_rate")
    _validate(principal, periodic_rate, total_periods)

    principal = round_currency(principal)
    payment = round_currency(annuity_payment(principal, periodic_rate, total_periods))
    balance = principal
    rows: List[AmortizationPeriod] = []

    for period in range(1, total_periods + 1):
        interest = round_currency(balance * periodic_rate)
        principal_portion = payment - interest
        if period == total_periods or principal_portion >= balance:
            # Final payment clears the residual left by per-period rounding
            principal_portion = balance
        balance -= principal_portion
        rows.append(
            AmortizationPeriod(
                period_index=period,
                payment_amount=principal_portion + interest,
                principal_portion=principal_portion,
                interest_portion=interest,
                remaining_balance=balance,
            )
        )
        if balance == 0:
            break

    logger.debug(
        "Built schedule: principal=%s rate=%s periods=%d payment=%s last_payment=%s",
        principal,
        periodic_rate,
        len(rows),
        payment,
        rows[-1].payment_amount,
    )
    return AmortizationSchedule(principal=principal, periodic_rate=periodic_rate, periods=tuple(rows))


def total_interest(principal: Number, periodic_rate: Number, total_periods: int) -> Decimal:
    """Return the interest paid over the life of the loan."""
    return build_schedule(principal, periodic_rate, total_periods).total_interest


def yearly_summary(schedule: AmortizationSchedule, periods_per_year: int = 12) -> List[YearSummary]:
    """Aggregate a schedule into yearly totals for charts and tables.

    The first row (year 0) holds the opening balance. A trailing partial
    year, e.g. after extra payments shortened the loan, is reported as its
    own year.
    """
    summaries = [YearSummary(0, ZERO, ZERO, schedule.principal, ZERO, ZERO)]
    cumulative_principal = ZERO
    cumulative_interest = ZERO
    rows = schedule.periods
    for start in range(0, len(rows), periods_per_year):
        chunk = rows[start : start + periods_per_year]
        year_principal = sum((p.principal_portion for p in chunk), ZERO)
        year_interest = sum((p.interest_portion for p in chunk), ZERO)
        cumulative_principal += year_principal
        cumulative_interest += year_interest
        summaries.append(
            YearSummary(
                year=start // periods_per_year + 1,
                principal=year_principal,
                interest=year_interest,
                balance=chunk[-1].remaining_balance,
                cumulative_principal=cumulative_principal,
                cumulative_interest=cumulative_interest,
            )
        )
    return summaries
