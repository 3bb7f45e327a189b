"""Side-by-side comparison of loan scenarios."""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from .data_models import ComparisonEntry, LoanInput
from .engine import build_schedule, monthly_payment
from .exceptions import InvalidInput
from .normalizer import normalize
from .utils import Number, to_decimal


def _entry(label: str, loan: LoanInput, base: Optional[ComparisonEntry]) -> ComparisonEntry:
    if loan.loan_amount <= 0:
        raise InvalidInput(f"{label}: financed amount must be positive after the deposit", "principal")
    periodic_rate, total_periods = normalize(loan.annual_rate_percent, loan.term_years, loan.payment_frequency)
    schedule = build_schedule(loan.loan_amount, periodic_rate, total_periods)
    payment = monthly_payment(loan.loan_amount, periodic_rate, total_periods)
    interest = schedule.total_interest
    return ComparisonEntry(
        label=label,
        loan=loan,
        monthly_payment=payment,
        total_interest=interest,
        total_repayment=schedule.total_paid,
        payment_delta=payment - base.monthly_payment if base else Decimal("0.00"),
        interest_delta=interest - base.total_interest if base else Decimal("0.00"),
    )


def compare(
    base: LoanInput,
    variants: Sequence[LoanInput],
    labels: Optional[Sequence[str]] = None,
) -> List[ComparisonEntry]:
    """Compare each variant against ``base``.

    The returned list starts with the base case (zero deltas) followed by
    one entry per variant in the order given; it is never re-sorted by
    outcome. Deltas are ``variant - base``, so a dearer variant has positive
    deltas.
    """
    if labels is not None and len(labels) != len(variants):
        raise InvalidInput("Expected one label per variant", "labels")
    base_entry = _entry("Base", base, None)
    entries = [base_entry]
    for index, loan in enumerate(variants):
        label = labels[index] if labels is not None else f"Option {index + 1}"
        entries.append(_entry(label, loan, base_entry))
    return entries


def rate_variants(base: LoanInput, rates: Iterable[Number]) -> List[LoanInput]:
    """Copies of ``base`` at each of the given annual rates."""
    return [replace(base, annual_rate_percent=to_decimal(rate, "annual_rate_percent")) for rate in rates]


def term_variants(base: LoanInput, terms: Iterable[int]) -> List[LoanInput]:
    """Copies of ``base`` over each of the given terms in years."""
    return [replace(base, term_years=int(term)) for term in terms]
