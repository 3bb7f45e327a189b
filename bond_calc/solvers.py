"""Inverse and derived calculations: affordability and deposit savings."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Tuple, Union

from .data_models import SavingsProjection, UnreachableTarget, ZERO
from .exceptions import InvalidInput
from .normalizer import normalize
from .utils import Number, floor_currency, round_currency, to_decimal

logger = logging.getLogger(__name__)

DEFAULT_AFFORDABILITY_RATIO = Decimal("0.30")
DEFAULT_HORIZON_MONTHS = 1200


def _non_negative(value: Number, field: str) -> Decimal:
    amount = to_decimal(value, field)
    if amount < 0:
        raise InvalidInput(f"{field.replace('_', ' ').capitalize()} cannot be negative", field)
    return amount


def max_affordable_installment(
    net_monthly_income: Number,
    monthly_expenses: Number,
    existing_debt_payments: Number,
    max_affordability_ratio: Number = DEFAULT_AFFORDABILITY_RATIO,
) -> Decimal:
    """Return the largest installment the income supports, never below zero."""
    income = _non_negative(net_monthly_income, "net_monthly_income")
    expenses = _non_negative(monthly_expenses, "monthly_expenses")
    debt = _non_negative(existing_debt_payments, "existing_debt_payments")
    ratio = to_decimal(max_affordability_ratio, "max_affordability_ratio")
    if ratio <= 0 or ratio > 1:
        raise InvalidInput("Affordability ratio must be between 0 and 1", "max_affordability_ratio")
    return max(floor_currency(income * ratio - debt - expenses), ZERO)


def principal_for_installment(installment: Decimal, periodic_rate: Decimal, total_periods: int) -> Decimal:
    """Invert the annuity formula: the principal an installment can repay.

        principal = M * (1 - (1 + i)^-n) / i
    """
    if installment <= 0:
        return ZERO
    if periodic_rate == 0:
        return floor_currency(installment * total_periods)
    return floor_currency(installment * (1 - (1 + periodic_rate) ** -total_periods) / periodic_rate)


def max_affordable_loan(
    net_monthly_income: Number,
    monthly_expenses: Number,
    existing_debt_payments: Number,
    annual_rate_percent: Number,
    term_years: Number,
    max_affordability_ratio: Number = DEFAULT_AFFORDABILITY_RATIO,
) -> Decimal:
    """Return the largest loan whose installment fits the affordable amount.

    A zero result is a valid answer (nothing is affordable), not an error.
    The principal is rounded down to the cent so that its installment never
    exceeds the affordable amount by more than the installment's own
    rounding.
    """
    installment = max_affordable_installment(
        net_monthly_income, monthly_expenses, existing_debt_payments, max_affordability_ratio
    )
    periodic_rate, total_periods = normalize(annual_rate_percent, term_years, allow_zero_rate=True)
    principal = principal_for_installment(installment, periodic_rate, total_periods)
    logger.debug("Affordability: installment=%s periods=%d principal=%s", installment, total_periods, principal)
    return principal


def _accumulate(
    target: Decimal,
    balance: Decimal,
    monthly_savings: Decimal,
    monthly_rate: Decimal,
    horizon_months: int,
) -> Tuple[int, Decimal, bool]:
    months = 0
    while balance < target:
        if months >= horizon_months:
            return months, balance, False
        balance = round_currency(balance * (1 + monthly_rate)) + monthly_savings
        months += 1
    return months, balance, True


def project_savings(
    target_deposit: Number,
    current_savings: Number,
    monthly_savings_amount: Number,
    annual_return_percent: Number,
    *,
    horizon_months: int = DEFAULT_HORIZON_MONTHS,
) -> SavingsProjection:
    """Simulate month-by-month saving towards a deposit.

    Interest at ``annual_return_percent / 12`` is credited on the balance at
    the end of each month, then that month's contribution is added. The
    loop stops when the balance reaches the target or after
    ``horizon_months``.
    """
    target = _non_negative(target_deposit, "target_deposit")
    current = _non_negative(current_savings, "current_savings")
    savings = to_decimal(monthly_savings_amount, "monthly_savings_amount")
    annual_return = _non_negative(annual_return_percent, "annual_return_percent")
    if horizon_months <= 0:
        raise InvalidInput("Savings horizon must be positive", "horizon_months")

    if current >= target:
        return SavingsProjection(0, current, ZERO, ZERO)
    if savings <= 0:
        return SavingsProjection(
            None, current, ZERO, ZERO, unreachable=UnreachableTarget("no_savings", horizon_months)
        )

    monthly_rate = annual_return / Decimal(100) / Decimal(12)
    months, balance, reached = _accumulate(target, current, savings, monthly_rate, horizon_months)
    contributions = savings * months
    interest = balance - current - contributions
    if not reached:
        logger.info("Savings target %s not reached within %d months", target, horizon_months)
        return SavingsProjection(
            None,
            balance,
            contributions,
            interest,
            unreachable=UnreachableTarget("exceeds_horizon", horizon_months),
        )
    return SavingsProjection(months, balance, contributions, interest)


def months_to_target(
    target_deposit: Number,
    current_savings: Number,
    monthly_savings_amount: Number,
    annual_return_percent: Number,
    *,
    horizon_months: int = DEFAULT_HORIZON_MONTHS,
) -> Union[int, UnreachableTarget]:
    """Return the number of months until the savings reach the target.

    Returns ``0`` when the target is already met, and an
    ``UnreachableTarget`` when nothing is being saved or the target lies
    beyond ``horizon_months``.
    """
    projection = project_savings(
        target_deposit,
        current_savings,
        monthly_savings_amount,
        annual_return_percent,
        horizon_months=horizon_months,
    )
    if projection.unreachable is not None:
        return projection.unreachable
    return projection.months
