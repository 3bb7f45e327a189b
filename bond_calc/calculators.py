"""Calculator entry points.

Each function takes a validated input record, runs the engine and returns
the matching result record, including ``display_results`` ready for
rendering. ``CALCULATORS`` maps each result kind to a function accepting a
plain mapping (a JSON body or form post), which is what the web app and the
CLI dispatch through.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from decimal import Decimal
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from . import inputs
from .comparison import compare
from .data_models import (
    AdditionalPaymentResult,
    AdditionalPaymentScenario,
    AffordabilityInput,
    AffordabilityResult,
    AmortisationResult,
    BondRepaymentResult,
    CalculationResult,
    ComparisonResult,
    DepositSavingsInput,
    DepositSavingsResult,
    DisplayItem,
    LoanInput,
    TransferCostInput,
    TransferCostResult,
    ZERO,
)
from .engine import build_schedule, monthly_payment, yearly_summary
from .exceptions import InvalidInput
from .normalizer import normalize, periods_per_year
from .simulator import simulate
from .solvers import max_affordable_installment, principal_for_installment, project_savings
from .transfer import FeeSchedule, get_schedule, transfer_costs
from .utils import floor_currency, format_currency, format_duration, round_currency

logger = logging.getLogger(__name__)


def _raw(record: Any) -> Dict[str, Any]:
    """Plain dict of an input record, kept on results for reproducibility."""
    return asdict(record)


def _financed(loan: LoanInput) -> Decimal:
    if loan.deposit_amount < 0:
        raise InvalidInput("Deposit cannot be negative", "deposit_amount")
    if loan.loan_amount <= 0:
        raise InvalidInput("Financed amount must be positive after the deposit", "principal")
    return loan.loan_amount


def _duration(periods: int, per_year: int) -> str:
    if per_year == 12:
        return format_duration(periods)
    return f"{periods} payments"


def bond_repayment(loan: LoanInput) -> BondRepaymentResult:
    """Monthly repayment, total repayment and total interest for a bond."""
    periodic_rate, total_periods = normalize(loan.annual_rate_percent, loan.term_years, loan.payment_frequency)
    schedule = build_schedule(_financed(loan), periodic_rate, total_periods)
    repayment = monthly_payment(schedule.principal, periodic_rate, total_periods)
    return BondRepaymentResult(
        loan_amount=schedule.principal,
        monthly_repayment=repayment,
        total_repayment=schedule.total_paid,
        total_interest=schedule.total_interest,
        inputs=_raw(loan),
        display_results=(
            DisplayItem(
                "Monthly Repayment",
                format_currency(repayment),
                "The amount you will need to pay each month for the duration of your home loan.",
            ),
            DisplayItem(
                "Total Repayment Amount",
                format_currency(schedule.total_paid),
                "The total amount you will repay over the entire term of the loan, including interest.",
            ),
            DisplayItem(
                "Total Interest Paid",
                format_currency(schedule.total_interest),
                "The total amount of interest you will pay over the entire term of the loan.",
            ),
        ),
    )


def affordability(params: AffordabilityInput) -> AffordabilityResult:
    """Maximum loan and suggested property price for an income."""
    installment = max_affordable_installment(
        params.net_monthly_income,
        params.monthly_expenses,
        params.existing_debt_payments,
        params.max_affordability_ratio,
    )
    periodic_rate, total_periods = normalize(params.annual_rate_percent, params.term_years, allow_zero_rate=True)
    max_loan = principal_for_installment(installment, periodic_rate, total_periods)
    deposit_fraction = params.deposit_percent / Decimal(100)
    if deposit_fraction >= 1:
        raise InvalidInput("Deposit percentage must be below 100", "deposit_percent")
    property_price = floor_currency(max_loan / (1 - deposit_fraction))
    return AffordabilityResult(
        max_monthly_installment=installment,
        max_loan_amount=max_loan,
        recommended_property_price=property_price,
        inputs=_raw(params),
        display_results=(
            DisplayItem(
                "Maximum Loan Amount",
                format_currency(max_loan),
                "The maximum home loan amount you could potentially qualify for based on your income and expenses.",
            ),
            DisplayItem(
                "Affordable Monthly Payment",
                format_currency(installment),
                "The monthly repayment amount you can comfortably afford based on your financial situation.",
            ),
            DisplayItem(
                "Recommended Property Price",
                format_currency(property_price),
                f"The suggested property price, assuming a {params.deposit_percent.normalize():f}% deposit.",
            ),
        ),
    )


def deposit_savings(params: DepositSavingsInput) -> DepositSavingsResult:
    """Time needed to save a deposit."""
    target = round_currency(params.target)
    projection = project_savings(
        target, params.current_savings, params.monthly_savings_amount, params.annual_return_percent
    )
    if projection.unreachable is None:
        time_text = format_duration(projection.months)
    elif projection.unreachable.reason == "no_savings":
        time_text = "Not reachable without monthly savings"
    else:
        time_text = f"More than {format_duration(projection.unreachable.horizon_months)}"
    return DepositSavingsResult(
        deposit_amount=target,
        months_to_save=projection.months,
        total_contributions=projection.total_contributions,
        interest_earned=projection.interest_earned,
        unreachable=projection.unreachable,
        inputs=_raw(params),
        display_results=(
            DisplayItem(
                "Deposit Amount Required",
                format_currency(target),
                "The total deposit amount you need to save.",
            ),
            DisplayItem(
                "Time to Save Deposit",
                time_text,
                "The estimated time it will take you to save the required deposit with your monthly savings.",
            ),
            DisplayItem(
                "Interest Earned",
                format_currency(max(projection.interest_earned, ZERO)),
                "The interest you will earn on your savings during the saving period.",
            ),
        ),
    )


def transfer_cost(params: TransferCostInput, schedule: Optional[FeeSchedule] = None) -> TransferCostResult:
    """Transfer duty, attorney fees and registration costs for a purchase."""
    if schedule is None:
        schedule = get_schedule(params.schedule_date)
    costs = transfer_costs(params.purchase_price, params.loan_amount, params.is_first_time_buyer, schedule)
    return TransferCostResult(
        costs=costs,
        inputs=_raw(params),
        display_results=(
            DisplayItem(
                "Transfer Duty",
                format_currency(costs.transfer_duty),
                f"Government levy per the SARS table effective {costs.schedule_effective_date.isoformat()}.",
            ),
            DisplayItem(
                "Transfer Attorney Fees",
                format_currency(costs.transfer_attorney_fee),
                "Fees for the attorney handling the property transfer.",
            ),
            DisplayItem(
                "Bond Attorney Fees",
                format_currency(costs.bond_attorney_fee),
                "Fees for the attorney registering the bond.",
            ),
            DisplayItem(
                "Bond Registration Fee",
                format_currency(costs.bond_registration_fee),
                "Fee charged by the Deeds Office for registration.",
            ),
            DisplayItem(
                "Total Costs",
                format_currency(costs.total),
                "Total fees and costs for property transfer and bond registration.",
            ),
        ),
    )


def additional_payment(scenario: AdditionalPaymentScenario) -> AdditionalPaymentResult:
    """Effect of extra monthly and lump-sum payments on term and interest."""
    _financed(scenario.loan)
    result = simulate(scenario)
    per_year = periods_per_year(scenario.loan.payment_frequency)
    first_extra = result.schedule.periods[0].extra_payment
    new_payment = result.regular_payment + first_extra
    display = [
        DisplayItem(
            "Standard Monthly Payment",
            format_currency(result.regular_payment),
            "Your regular monthly payment without additional contributions.",
        ),
        DisplayItem(
            "New Monthly Payment",
            format_currency(new_payment),
            "Total monthly payment including your additional amount.",
        ),
        DisplayItem(
            "Time Saved",
            _duration(result.term_reduced_periods, per_year),
            "How much earlier you'll pay off your loan.",
        ),
        DisplayItem(
            "Interest Saved",
            format_currency(result.interest_saved),
            "Total interest you'll save by making additional payments.",
        ),
        DisplayItem(
            "New Loan Term",
            _duration(result.actual_term_periods, per_year),
            "Your new reduced loan term.",
        ),
    ]
    if result.new_payoff_date is not None:
        display.append(
            DisplayItem(
                "New Payoff Date",
                result.new_payoff_date.strftime("%Y-%m"),
                f"Originally {result.original_payoff_date.strftime('%Y-%m')}.",
            )
        )
    inputs_data = _raw(scenario)
    return AdditionalPaymentResult(
        standard_monthly_payment=result.regular_payment,
        new_monthly_payment=new_payment,
        new_term_periods=result.actual_term_periods,
        term_reduced_periods=result.term_reduced_periods,
        interest_paid=result.interest_paid,
        interest_saved=result.interest_saved,
        simulation=result,
        inputs=inputs_data,
        display_results=tuple(display),
    )


def amortisation(loan: LoanInput) -> AmortisationResult:
    """Full schedule and yearly breakdown of a loan."""
    periodic_rate, total_periods = normalize(loan.annual_rate_percent, loan.term_years, loan.payment_frequency)
    schedule = build_schedule(_financed(loan), periodic_rate, total_periods)
    payment = monthly_payment(schedule.principal, periodic_rate, total_periods)
    per_year = periods_per_year(loan.payment_frequency)
    yearly = tuple(yearly_summary(schedule, per_year))
    halfway = next(
        (y.year for y in yearly[1:] if y.cumulative_principal * 2 >= schedule.principal),
        loan.term_years,
    )
    return AmortisationResult(
        monthly_payment=payment,
        total_interest=schedule.total_interest,
        total_repayment=schedule.total_paid,
        schedule=schedule,
        yearly=yearly,
        inputs=_raw(loan),
        display_results=(
            DisplayItem("Monthly Payment", format_currency(payment), "Your fixed installment."),
            DisplayItem(
                "Total Interest",
                format_currency(schedule.total_interest),
                "Interest paid over the full term.",
            ),
            DisplayItem(
                "Total Repayment",
                format_currency(schedule.total_paid),
                "Principal plus interest over the full term.",
            ),
            DisplayItem(
                "Half of Principal Repaid",
                f"Year {halfway}",
                "The year in which cumulative principal repaid passes half the loan.",
            ),
        ),
    )


def loan_comparison(
    base: LoanInput, variants: Sequence[LoanInput], labels: Optional[Sequence[str]] = None
) -> ComparisonResult:
    """Monthly payment and total interest of each variant against a base loan."""
    entries = tuple(compare(base, variants, labels))
    display = []
    for entry in entries:
        value = f"{format_currency(entry.monthly_payment)} / month"
        if entry is not entries[0]:
            value += f" ({format_currency(entry.payment_delta)} vs base)"
        display.append(
            DisplayItem(
                entry.label,
                value,
                f"{entry.loan.annual_rate_percent}% over {entry.loan.term_years} years; "
                f"total interest {format_currency(entry.total_interest)}.",
            )
        )
    return ComparisonResult(
        entries=entries,
        inputs={"base": _raw(base), "variants": [_raw(v) for v in variants]},
        display_results=tuple(display),
    )


Calculator = Callable[[Mapping[str, Any], Optional[Decimal]], CalculationResult]


def _comparison_from_mapping(data: Mapping[str, Any], default_rate: Optional[Decimal]) -> ComparisonResult:
    base, variants, labels = inputs.comparison_from_mapping(data, default_rate)
    return loan_comparison(base, variants, labels)


CALCULATORS: Dict[str, Calculator] = {
    "bond": lambda data, rate: bond_repayment(inputs.loan_input_from_mapping(data, rate)),
    "affordability": lambda data, rate: affordability(inputs.affordability_from_mapping(data, rate)),
    "deposit": lambda data, rate: deposit_savings(inputs.deposit_savings_from_mapping(data)),
    "transfer": lambda data, rate: transfer_cost(inputs.transfer_from_mapping(data)),
    "additional": lambda data, rate: additional_payment(inputs.scenario_from_mapping(data, rate)),
    "amortisation": lambda data, rate: amortisation(inputs.loan_input_from_mapping(data, rate)),
    "comparison": _comparison_from_mapping,
}

# Calculators whose inputs include an interest rate that can default to prime.
RATE_KINDS = frozenset({"bond", "affordability", "additional", "amortisation", "comparison"})


def run_calculator(
    kind: str,
    data: Mapping[str, Any],
    default_rate: Optional[Decimal] = None,
    fee_schedule: Optional[FeeSchedule] = None,
) -> CalculationResult:
    """Parse ``data`` and run the calculator registered for ``kind``.

    ``fee_schedule`` overrides the built-in transfer cost tables.
    """
    if kind == "transfer" and fee_schedule is not None:
        return transfer_cost(inputs.transfer_from_mapping(data), fee_schedule)
    try:
        calculator = CALCULATORS[kind]
    except KeyError:
        raise InvalidInput(f"Unknown calculator: {kind}", "kind") from None
    result = calculator(data, default_rate)
    logger.info("Calculated %s result", kind)
    return result
