"""Additional and lump-sum payment simulation.

The simulator replays the amortization period by period with the regular
installment held constant. Extra amounts go straight to principal, so they
shorten the loan rather than lowering the installment. The result is
compared against the plain schedule over the original term to report the
interest saved and the months cut from the loan.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from .data_models import (
    AdditionalPaymentScenario,
    AmortizationPeriod,
    AmortizationSchedule,
    SimulationResult,
    ZERO,
)
from .engine import annuity_payment, build_schedule
from .exceptions import InvalidInput
from .normalizer import normalize, periods_per_year
from .utils import add_months, round_currency, to_decimal

logger = logging.getLogger(__name__)


def _validate(scenario: AdditionalPaymentScenario, total_periods: int) -> None:
    loan = scenario.loan
    if to_decimal(loan.deposit_amount, "deposit_amount") < 0:
        raise InvalidInput("Deposit cannot be negative", "deposit_amount")
    if loan.loan_amount <= 0:
        raise InvalidInput("Financed amount must be positive after the deposit", "principal")
    for name in ("extra_monthly_amount", "lump_sum_amount", "monthly_increase_amount"):
        if to_decimal(getattr(scenario, name), name) < 0:
            raise InvalidInput(f"{name.replace('_', ' ').capitalize()} cannot be negative", name)

    start = scenario.extra_monthly_start_period
    if start < 1 or start > total_periods:
        raise InvalidInput(
            f"Extra payment start period must be between 1 and {total_periods}",
            "extra_monthly_start_period",
        )
    end = scenario.extra_monthly_end_period
    if end is not None and end < start:
        raise InvalidInput("Extra payment end period is before its start", "extra_monthly_end_period")

    if scenario.lump_sum_period is not None and not 1 <= scenario.lump_sum_period <= total_periods:
        raise InvalidInput(f"Lump sum period must be between 1 and {total_periods}", "lump_sum_period")
    if to_decimal(scenario.lump_sum_amount) > 0 and scenario.lump_sum_period is None:
        raise InvalidInput("Lump sum period is required with a lump sum amount", "lump_sum_period")

    if to_decimal(scenario.monthly_increase_amount) > 0:
        frequency = scenario.increase_frequency_months
        if frequency is None or frequency <= 0:
            raise InvalidInput(
                "Increase frequency must be a positive number of months", "increase_frequency_months"
            )


def extra_amount_for_period(scenario: AdditionalPaymentScenario, period: int, total_periods: int) -> Decimal:
    """Return the recurring extra payment due in ``period`` (before clamping)."""
    start = scenario.extra_monthly_start_period
    end = scenario.extra_monthly_end_period or total_periods
    if not start <= period <= end:
        return ZERO
    amount = to_decimal(scenario.extra_monthly_amount)
    increase = to_decimal(scenario.monthly_increase_amount)
    if increase > 0 and scenario.increase_frequency_months:
        steps = (period - start) // scenario.increase_frequency_months
        amount += increase * steps
    return amount


def simulate(scenario: AdditionalPaymentScenario) -> SimulationResult:
    """Run a loan with extra payments and compare it with the plain schedule.

    Each period: interest accrues on the opening balance, the regular
    installment covers it and repays principal, then the recurring extra
    amount and (once) the lump sum reduce the balance further. Total
    principal reduction never exceeds the balance; once it hits zero the
    loan ends and any excess is dropped.
    """
    loan = scenario.loan
    periodic_rate, total_periods = normalize(
        loan.annual_rate_percent, loan.term_years, loan.payment_frequency
    )
    _validate(scenario, total_periods)

    principal = round_currency(to_decimal(loan.loan_amount, "principal"))
    regular_payment = round_currency(annuity_payment(principal, periodic_rate, total_periods))
    lump_sum = round_currency(to_decimal(scenario.lump_sum_amount))

    balance = principal
    rows: List[AmortizationPeriod] = []
    for period in range(1, total_periods + 1):
        interest = round_currency(balance * periodic_rate)
        scheduled = regular_payment - interest
        if period == total_periods:
            scheduled = balance
        scheduled = min(scheduled, balance)
        remaining = balance - scheduled

        extra = min(round_currency(extra_amount_for_period(scenario, period, total_periods)), remaining)
        remaining -= extra

        lump = ZERO
        if scenario.lump_sum_period == period:
            lump = min(lump_sum, remaining)
            remaining -= lump

        principal_portion = scheduled + extra + lump
        rows.append(
            AmortizationPeriod(
                period_index=period,
                payment_amount=principal_portion + interest,
                principal_portion=principal_portion,
                interest_portion=interest,
                remaining_balance=remaining,
                extra_payment=extra,
                lump_sum_payment=lump,
            )
        )
        balance = remaining
        if balance == 0:
            break

    schedule = AmortizationSchedule(principal=principal, periodic_rate=periodic_rate, periods=tuple(rows))
    baseline = build_schedule(principal, periodic_rate, total_periods)

    actual_term = len(rows)
    interest_paid = schedule.total_interest
    baseline_interest = baseline.total_interest
    total_extra = sum((r.extra_payment + r.lump_sum_payment for r in rows), ZERO)

    original_payoff: Optional[date] = None
    new_payoff: Optional[date] = None
    if scenario.start_date is not None and periods_per_year(loan.payment_frequency) == 12:
        original_payoff = add_months(scenario.start_date, len(baseline) - 1)
        new_payoff = add_months(scenario.start_date, actual_term - 1)

    logger.debug(
        "Simulated extra payments: periods=%d/%d interest=%s baseline=%s extra=%s",
        actual_term,
        total_periods,
        interest_paid,
        baseline_interest,
        total_extra,
    )
    return SimulationResult(
        schedule=schedule,
        baseline_schedule=baseline,
        regular_payment=regular_payment,
        actual_term_periods=actual_term,
        interest_paid=interest_paid,
        baseline_interest_paid=baseline_interest,
        interest_saved=baseline_interest - interest_paid,
        term_reduced_periods=total_periods - actual_term,
        total_extra_paid=total_extra,
        original_payoff_date=original_payoff,
        new_payoff_date=new_payoff,
    )
