"""Output helpers for the calculators.

This module provides simple functions to render calculator results,
amortization schedules and comparisons in a tabular text format. Results
are rendered from their ``display_results`` so the terminal shows the same
labels as the web pages.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from .data_models import AmortizationPeriod, CalculationResult, ComparisonEntry, YearSummary


def print_results(result: CalculationResult) -> None:
    """Print a result's display items as a two-column table."""
    title = result.kind.capitalize()
    print(title)
    print("-" * 72)
    width = max((len(item.label) for item in result.display_results), default=0)
    for item in result.display_results:
        print(f"{item.label:<{width}} : {item.value}")
    print("-" * 72)


def print_schedule(schedule: Iterable[AmortizationPeriod], show_extra: bool = False) -> None:
    """Print schedule rows as a tab-separated table.

    Parameters
    ----------
    schedule:
        The rows to print.
    show_extra:
        Whether to include the extra and lump-sum payment columns. They are
        hidden by default because plain schedules never use them.
    """
    headers = ["Period", "Payment", "Principal", "Interest"]
    if show_extra:
        headers += ["Extra", "LumpSum"]
    headers.append("Balance")
    print("\t".join(headers))
    for row in schedule:
        cells = [
            str(row.period_index),
            f"{row.payment_amount:.2f}",
            f"{row.principal_portion:.2f}",
            f"{row.interest_portion:.2f}",
        ]
        if show_extra:
            cells += [f"{row.extra_payment:.2f}", f"{row.lump_sum_payment:.2f}"]
        cells.append(f"{row.remaining_balance:.2f}")
        print("\t".join(cells))


def print_yearly(yearly: Iterable[YearSummary]) -> None:
    print("\t".join(["Year", "Principal", "Interest", "Balance", "CumPrincipal", "CumInterest"]))
    for year in yearly:
        print(
            "\t".join(
                [
                    str(year.year),
                    f"{year.principal:.2f}",
                    f"{year.interest:.2f}",
                    f"{year.balance:.2f}",
                    f"{year.cumulative_principal:.2f}",
                    f"{year.cumulative_interest:.2f}",
                ]
            )
        )


def print_comparison(entries: Sequence[ComparisonEntry]) -> None:
    """Print loan options side by side with their difference from the base.

    A negative difference means the option is cheaper than the base.
    """
    print("Comparison")
    print("=" * 72)
    print(
        f"{'Option':12s} {'Rate %':>7s} {'Years':>5s} {'Payment':>12s} "
        f"{'Interest':>14s} {'Pay diff':>10s} {'Int diff':>12s}"
    )
    for entry in entries:
        print(
            f"{entry.label[:12]:12s} {entry.loan.annual_rate_percent:>7.2f} {entry.loan.term_years:>5d} "
            f"{entry.monthly_payment:>12.2f} {entry.total_interest:>14.2f} "
            f"{entry.payment_delta:>10.2f} {entry.interest_delta:>12.2f}"
        )
    print("=" * 72)
