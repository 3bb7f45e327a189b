"""Parsing of plain mappings (form posts, JSON bodies) into calculator inputs.

Every parser raises ``InvalidInput`` naming the offending field; nothing is
computed here beyond type conversion and the checks that need no
calculation.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Tuple

from .data_models import (
    AdditionalPaymentScenario,
    AffordabilityInput,
    DepositSavingsInput,
    LoanInput,
    PaymentFrequency,
    TransferCostInput,
    ZERO,
)
from .exceptions import InvalidInput
from .utils import parse_year_month, to_decimal

_TRUE = {"1", "true", "yes", "on", "y"}
_FALSE = {"0", "false", "no", "off", "n", ""}


def _missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def get_decimal(data: Mapping[str, Any], name: str, default: Optional[Decimal] = None) -> Decimal:
    value = data.get(name)
    if _missing(value):
        if default is None:
            raise InvalidInput(f"{name} is required", name)
        return default
    return to_decimal(value, name)


def get_optional_decimal(data: Mapping[str, Any], name: str) -> Optional[Decimal]:
    value = data.get(name)
    return None if _missing(value) else to_decimal(value, name)


def get_int(data: Mapping[str, Any], name: str, default: Optional[int] = None) -> int:
    value = data.get(name)
    if _missing(value):
        if default is None:
            raise InvalidInput(f"{name} is required", name)
        return default
    number = to_decimal(value, name)
    if number != number.to_integral_value():
        raise InvalidInput(f"{name} must be a whole number", name)
    return int(number)


def get_optional_int(data: Mapping[str, Any], name: str) -> Optional[int]:
    value = data.get(name)
    return None if _missing(value) else get_int(data, name)


def get_bool(data: Mapping[str, Any], name: str, default: bool = False) -> bool:
    value = data.get(name)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise InvalidInput(f"{name} must be true or false", name)


def get_frequency(data: Mapping[str, Any]) -> PaymentFrequency:
    value = data.get("payment_frequency") or PaymentFrequency.MONTHLY.value
    try:
        return PaymentFrequency(str(value).lower())
    except ValueError as exc:
        raise InvalidInput(f"Unsupported payment frequency: {value}", "payment_frequency") from exc


def _check_positive(value: Decimal, name: str) -> Decimal:
    if value <= 0:
        raise InvalidInput(f"{name} must be positive", name)
    return value


def _check_non_negative(value: Decimal, name: str) -> Decimal:
    if value < 0:
        raise InvalidInput(f"{name} cannot be negative", name)
    return value


def loan_input_from_mapping(data: Mapping[str, Any], default_rate: Optional[Decimal] = None) -> LoanInput:
    """Build a ``LoanInput``.

    ``principal`` may also be supplied as ``property_value`` or
    ``loan_amount``. When ``annual_rate_percent`` is absent ``default_rate``
    (typically the prime rate) is used.
    """
    principal_key = next(
        (k for k in ("principal", "property_value", "loan_amount") if not _missing(data.get(k))),
        "principal",
    )
    principal = _check_positive(get_decimal(data, principal_key), "principal")
    rate = get_decimal(data, "annual_rate_percent", default_rate)
    term = get_int(data, "term_years")
    deposit = _check_non_negative(get_decimal(data, "deposit_amount", ZERO), "deposit_amount")
    if deposit >= principal:
        raise InvalidInput("Deposit must be less than the purchase price", "deposit_amount")
    return LoanInput(
        principal=principal,
        annual_rate_percent=rate,
        term_years=term,
        deposit_amount=deposit,
        payment_frequency=get_frequency(data),
    )


def scenario_from_mapping(
    data: Mapping[str, Any], default_rate: Optional[Decimal] = None
) -> AdditionalPaymentScenario:
    start_date: Optional[date] = None
    if not _missing(data.get("start_date")):
        start_date = parse_year_month(str(data["start_date"]))
    return AdditionalPaymentScenario(
        loan=loan_input_from_mapping(data, default_rate),
        extra_monthly_amount=get_decimal(data, "extra_monthly_amount", ZERO),
        extra_monthly_start_period=get_int(data, "extra_monthly_start_period", 1),
        extra_monthly_end_period=get_optional_int(data, "extra_monthly_end_period"),
        lump_sum_amount=get_decimal(data, "lump_sum_amount", ZERO),
        lump_sum_period=get_optional_int(data, "lump_sum_period"),
        monthly_increase_amount=get_decimal(data, "monthly_increase_amount", ZERO),
        increase_frequency_months=get_optional_int(data, "increase_frequency_months"),
        start_date=start_date,
    )


def affordability_from_mapping(
    data: Mapping[str, Any], default_rate: Optional[Decimal] = None
) -> AffordabilityInput:
    return AffordabilityInput(
        net_monthly_income=get_decimal(data, "net_monthly_income"),
        monthly_expenses=get_decimal(data, "monthly_expenses", ZERO),
        existing_debt_payments=get_decimal(data, "existing_debt_payments", ZERO),
        annual_rate_percent=get_decimal(data, "annual_rate_percent", default_rate),
        term_years=get_int(data, "term_years", 25),
        max_affordability_ratio=get_decimal(data, "max_affordability_ratio", Decimal("0.30")),
        deposit_percent=_check_non_negative(
            get_decimal(data, "deposit_percent", Decimal("10")), "deposit_percent"
        ),
    )


def deposit_savings_from_mapping(data: Mapping[str, Any]) -> DepositSavingsInput:
    target = get_optional_decimal(data, "target_deposit")
    price = get_optional_decimal(data, "property_price")
    if target is None and price is None:
        raise InvalidInput("target_deposit or property_price is required", "target_deposit")
    deposit_percent = get_decimal(data, "deposit_percent", Decimal("10"))
    if deposit_percent < 0 or deposit_percent > 100:
        raise InvalidInput("deposit_percent must be between 0 and 100", "deposit_percent")
    return DepositSavingsInput(
        monthly_savings_amount=get_decimal(data, "monthly_savings_amount"),
        annual_return_percent=get_decimal(data, "annual_return_percent", ZERO),
        current_savings=get_decimal(data, "current_savings", ZERO),
        target_deposit=target,
        property_price=price,
        deposit_percent=deposit_percent,
    )


def transfer_from_mapping(data: Mapping[str, Any]) -> TransferCostInput:
    schedule_date: Optional[date] = None
    if not _missing(data.get("schedule_date")):
        try:
            schedule_date = date.fromisoformat(str(data["schedule_date"]))
        except ValueError as exc:
            raise InvalidInput("schedule_date must be YYYY-MM-DD", "schedule_date") from exc
    return TransferCostInput(
        purchase_price=get_decimal(data, "purchase_price"),
        loan_amount=get_decimal(data, "loan_amount", ZERO),
        is_first_time_buyer=get_bool(data, "is_first_time_buyer"),
        schedule_date=schedule_date,
    )


def comparison_from_mapping(
    data: Mapping[str, Any], default_rate: Optional[Decimal] = None
) -> Tuple[LoanInput, List[LoanInput], List[str]]:
    """Return ``(base, variants, labels)``.

    Variants are partial mappings: any field they omit is taken from the
    base, so ``{"annual_rate_percent": 12}`` compares the base at 12 %.
    """
    base_data = data.get("base")
    if not isinstance(base_data, Mapping):
        raise InvalidInput("base loan is required", "base")
    base = loan_input_from_mapping(base_data, default_rate)
    raw_variants = data.get("variants") or []
    if not isinstance(raw_variants, list):
        raise InvalidInput("variants must be a list", "variants")

    variants: List[LoanInput] = []
    labels: List[str] = []
    for index, item in enumerate(raw_variants):
        if not isinstance(item, Mapping):
            raise InvalidInput(f"variant {index + 1} must be an object", "variants")
        merged = {**base_data, **{k: v for k, v in item.items() if k != "label"}}
        variants.append(loan_input_from_mapping(merged, default_rate))
        labels.append(str(item.get("label") or f"Option {index + 1}"))
    return base, variants, labels
