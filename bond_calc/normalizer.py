"""Conversion of annual rates and year terms into per-period values."""

from __future__ import annotations

from decimal import Decimal
from typing import Tuple, Union

from .data_models import PaymentFrequency
from .exceptions import InvalidInput
from .utils import Number, to_decimal


def periods_per_year(frequency: Union[PaymentFrequency, str]) -> int:
    try:
        return PaymentFrequency(frequency).periods_per_year
    except ValueError as exc:
        raise InvalidInput(f"Unsupported payment frequency: {frequency}", "payment_frequency") from exc


def normalize(
    annual_rate_percent: Number,
    term_years: Number,
    frequency: Union[PaymentFrequency, str] = PaymentFrequency.MONTHLY,
    *,
    allow_zero_rate: bool = False,
) -> Tuple[Decimal, int]:
    """Return ``(periodic_rate, total_periods)`` for a loan.

    ``periodic_rate`` is a fraction (11.25 % monthly -> ``0.009375``).
    ``allow_zero_rate`` lets interest-free inputs through for the solvers
    that handle a zero rate explicitly.

    Raises
    ------
    InvalidInput
        If the rate is not positive, the term does not cover a whole number
        of payment periods, or the frequency is unknown.
    """
    rate = to_decimal(annual_rate_percent, "annual_rate_percent")
    if rate < 0 or (rate == 0 and not allow_zero_rate):
        raise InvalidInput("Interest rate must be positive", "annual_rate_percent")

    term = to_decimal(term_years, "term_years")
    if term <= 0:
        raise InvalidInput("Loan term must be positive", "term_years")
    per_year = periods_per_year(frequency)
    total_periods = term * per_year
    if total_periods != total_periods.to_integral_value():
        raise InvalidInput("Loan term must span a whole number of payment periods", "term_years")

    periodic_rate = rate / Decimal(100) / Decimal(per_year)
    return periodic_rate, int(total_periods)
