"""Data models for the bond calculators.

This module defines dataclasses representing the entities used by the
calculators: loan inputs, additional-payment scenarios, amortization
schedules and the result records returned by each calculator. Inputs and
results are frozen so that a result can be persisted or rendered without
anyone mutating it afterwards.

``CalculationResult`` is the union of the seven result types. Each result
class carries a ``kind`` tag (``bond``, ``affordability``, ``deposit``,
``transfer``, ``additional``, ``amortisation``, ``comparison``) which is
written out as ``"type"`` when serialized.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, ClassVar, Dict, Optional, Tuple, Union

ZERO = Decimal("0")


class PaymentFrequency(str, enum.Enum):
    MONTHLY = "monthly"
    BIWEEKLY = "biweekly"

    @property
    def periods_per_year(self) -> int:
        return 12 if self is PaymentFrequency.MONTHLY else 26


@dataclass(frozen=True)
class LoanInput:
    """Inputs shared by the loan-based calculators.

    Attributes
    ----------
    principal: Decimal
        Purchase price (or loan amount when there is no deposit).
    annual_rate_percent: Decimal
        Annual nominal interest rate in percent, e.g. ``Decimal("11.25")``.
    term_years: int
        Loan term in whole years.
    deposit_amount: Decimal
        Deposit paid up front. The financed amount is
        ``principal - deposit_amount``.
    payment_frequency: PaymentFrequency
        Monthly unless stated otherwise.
    """

    principal: Decimal
    annual_rate_percent: Decimal
    term_years: int
    deposit_amount: Decimal = ZERO
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY

    @property
    def loan_amount(self) -> Decimal:
        return self.principal - self.deposit_amount


@dataclass(frozen=True)
class AdditionalPaymentScenario:
    """A loan plus the extra payments made on top of the regular installment.

    Period numbers are 1-based and inclusive. ``extra_monthly_end_period``
    defaults to the end of the nominal term. When
    ``monthly_increase_amount`` is set, the extra amount grows by that much
    every ``increase_frequency_months`` periods counted from the start
    period. ``start_date`` is only used to report payoff dates.
    """

    loan: LoanInput
    extra_monthly_amount: Decimal = ZERO
    extra_monthly_start_period: int = 1
    extra_monthly_end_period: Optional[int] = None
    lump_sum_amount: Decimal = ZERO
    lump_sum_period: Optional[int] = None
    monthly_increase_amount: Decimal = ZERO
    increase_frequency_months: Optional[int] = None
    start_date: Optional[date] = None


@dataclass(frozen=True)
class AffordabilityInput:
    net_monthly_income: Decimal
    monthly_expenses: Decimal
    existing_debt_payments: Decimal
    annual_rate_percent: Decimal
    term_years: int = 25
    max_affordability_ratio: Decimal = Decimal("0.30")
    deposit_percent: Decimal = Decimal("10")


@dataclass(frozen=True)
class DepositSavingsInput:
    """Savings towards a deposit.

    The target is ``target_deposit`` when given, otherwise
    ``property_price * deposit_percent / 100``.
    """

    monthly_savings_amount: Decimal
    annual_return_percent: Decimal
    current_savings: Decimal = ZERO
    target_deposit: Optional[Decimal] = None
    property_price: Optional[Decimal] = None
    deposit_percent: Decimal = Decimal("10")

    @property
    def target(self) -> Decimal:
        if self.target_deposit is not None:
            return self.target_deposit
        if self.property_price is None:
            return ZERO
        return self.property_price * self.deposit_percent / Decimal(100)


@dataclass(frozen=True)
class TransferCostInput:
    purchase_price: Decimal
    loan_amount: Decimal = ZERO
    is_first_time_buyer: bool = False
    schedule_date: Optional[date] = None


@dataclass(frozen=True)
class AmortizationPeriod:
    """One payment period of an amortization schedule.

    ``payment_amount`` is the total cash paid in the period, i.e. interest
    plus all principal including any extra or lump-sum amounts, which are
    also reported separately.
    """

    period_index: int
    payment_amount: Decimal
    principal_portion: Decimal
    interest_portion: Decimal
    remaining_balance: Decimal
    extra_payment: Decimal = ZERO
    lump_sum_payment: Decimal = ZERO


@dataclass(frozen=True)
class AmortizationSchedule:
    """Ordered schedule rows for a loan.

    The principal portions sum to ``principal`` exactly and the last row's
    ``remaining_balance`` is zero.
    """

    principal: Decimal
    periodic_rate: Decimal
    periods: Tuple[AmortizationPeriod, ...]

    def __len__(self) -> int:
        return len(self.periods)

    def __iter__(self):
        return iter(self.periods)

    @property
    def total_interest(self) -> Decimal:
        return sum((p.interest_portion for p in self.periods), ZERO)

    @property
    def total_paid(self) -> Decimal:
        return sum((p.payment_amount for p in self.periods), ZERO)

    @property
    def total_principal(self) -> Decimal:
        return sum((p.principal_portion for p in self.periods), ZERO)


@dataclass(frozen=True)
class YearSummary:
    """Amortization totals aggregated per year (year 0 is the opening row)."""

    year: int
    principal: Decimal
    interest: Decimal
    balance: Decimal
    cumulative_principal: Decimal
    cumulative_interest: Decimal


@dataclass(frozen=True)
class SimulationResult:
    schedule: AmortizationSchedule
    baseline_schedule: AmortizationSchedule
    regular_payment: Decimal
    actual_term_periods: int
    interest_paid: Decimal
    baseline_interest_paid: Decimal
    interest_saved: Decimal
    term_reduced_periods: int
    total_extra_paid: Decimal
    original_payoff_date: Optional[date] = None
    new_payoff_date: Optional[date] = None


@dataclass(frozen=True)
class UnreachableTarget:
    """The savings target cannot be reached.

    ``reason`` is ``"no_savings"`` when nothing is being added to the
    savings and ``"exceeds_horizon"`` when the target would take longer than
    ``horizon_months``.
    """

    reason: str
    horizon_months: int


@dataclass(frozen=True)
class SavingsProjection:
    months: Optional[int]
    final_balance: Decimal
    total_contributions: Decimal
    interest_earned: Decimal
    unreachable: Optional[UnreachableTarget] = None


@dataclass(frozen=True)
class TransferCostBreakdown:
    transfer_duty: Decimal
    bond_registration_fee: Decimal
    transfer_attorney_fee: Decimal
    bond_attorney_fee: Decimal
    total: Decimal
    schedule_effective_date: date


@dataclass(frozen=True)
class ComparisonEntry:
    """One row of a loan comparison; deltas are relative to the base case."""

    label: str
    loan: LoanInput
    monthly_payment: Decimal
    total_interest: Decimal
    total_repayment: Decimal
    payment_delta: Decimal
    interest_delta: Decimal


@dataclass(frozen=True)
class DisplayItem:
    label: str
    value: str
    tooltip: str = ""


# Calculator results -------------------------------------------------------


@dataclass(frozen=True)
class BondRepaymentResult:
    kind: ClassVar[str] = "bond"

    loan_amount: Decimal
    monthly_repayment: Decimal
    total_repayment: Decimal
    total_interest: Decimal
    inputs: Dict[str, Any] = field(default_factory=dict)
    display_results: Tuple[DisplayItem, ...] = ()


@dataclass(frozen=True)
class AffordabilityResult:
    kind: ClassVar[str] = "affordability"

    max_monthly_installment: Decimal
    max_loan_amount: Decimal
    recommended_property_price: Decimal
    inputs: Dict[str, Any] = field(default_factory=dict)
    display_results: Tuple[DisplayItem, ...] = ()


@dataclass(frozen=True)
class DepositSavingsResult:
    kind: ClassVar[str] = "deposit"

    deposit_amount: Decimal
    months_to_save: Optional[int]
    total_contributions: Decimal
    interest_earned: Decimal
    unreachable: Optional[UnreachableTarget] = None
    inputs: Dict[str, Any] = field(default_factory=dict)
    display_results: Tuple[DisplayItem, ...] = ()


@dataclass(frozen=True)
class TransferCostResult:
    kind: ClassVar[str] = "transfer"

    costs: TransferCostBreakdown
    inputs: Dict[str, Any] = field(default_factory=dict)
    display_results: Tuple[DisplayItem, ...] = ()


@dataclass(frozen=True)
class AdditionalPaymentResult:
    kind: ClassVar[str] = "additional"

    standard_monthly_payment: Decimal
    new_monthly_payment: Decimal
    new_term_periods: int
    term_reduced_periods: int
    interest_paid: Decimal
    interest_saved: Decimal
    simulation: SimulationResult
    inputs: Dict[str, Any] = field(default_factory=dict)
    display_results: Tuple[DisplayItem, ...] = ()


@dataclass(frozen=True)
class AmortisationResult:
    kind: ClassVar[str] = "amortisation"

    monthly_payment: Decimal
    total_interest: Decimal
    total_repayment: Decimal
    schedule: AmortizationSchedule
    yearly: Tuple[YearSummary, ...]
    inputs: Dict[str, Any] = field(default_factory=dict)
    display_results: Tuple[DisplayItem, ...] = ()


@dataclass(frozen=True)
class ComparisonResult:
    kind: ClassVar[str] = "comparison"

    entries: Tuple[ComparisonEntry, ...]
    inputs: Dict[str, Any] = field(default_factory=dict)
    display_results: Tuple[DisplayItem, ...] = ()


CalculationResult = Union[
    BondRepaymentResult,
    AffordabilityResult,
    DepositSavingsResult,
    TransferCostResult,
    AdditionalPaymentResult,
    AmortisationResult,
    ComparisonResult,
]
