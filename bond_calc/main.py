"""Command-line interface for the bond calculators.

This module uses the ``click`` library to implement a multi-command
interface with one command per calculator. Amount options accept shorthand
such as ``900k`` or ``1.2m``. When ``--rate`` is omitted the current prime
rate is looked up. Results can be printed to the terminal or exported to
JSON/CSV files.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import click

from .calculators import run_calculator
from .config import Settings
from .data_models import AdditionalPaymentResult, AmortisationResult, CalculationResult, ComparisonResult
from .exceptions import InvalidInput
from .formatter import print_comparison, print_results, print_schedule, print_yearly
from .logging_config import setup_logging
from .prime_rate import SarbPrimeRateService
from .serialization import export_to_csv, export_to_json
from .transfer import FeeSchedule, load_schedule
from .utils import parse_amount


def _amount(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        return str(parse_amount(value))
    except InvalidInput as exc:
        raise click.BadParameter(str(exc))


def _prime_rate(settings: Settings) -> Decimal:
    service = SarbPrimeRateService(
        cache_seconds=settings.prime_rate_cache_seconds,
        fallback_rate=settings.prime_rate_fallback,
    )
    return service.get_current_rate().rate


def _run(
    ctx: click.Context,
    kind: str,
    data: Dict[str, Any],
    needs_rate: bool,
    fee_schedule: Optional[FeeSchedule] = None,
) -> CalculationResult:
    settings: Settings = ctx.obj
    default_rate = None
    rate_source = data.get("base", data)
    if needs_rate and rate_source.get("annual_rate_percent") is None:
        default_rate = _prime_rate(settings)
        click.echo(f"Using prime rate {default_rate}%")
    try:
        return run_calculator(kind, data, default_rate, fee_schedule)
    except InvalidInput as exc:
        raise click.BadParameter(str(exc), param_hint=exc.field)


def _output(result: CalculationResult, output: Optional[str]) -> None:
    """Print a result, or export it when ``output`` names a .json/.csv file."""
    if not output:
        print_results(result)
        return
    path = Path(output)
    suffix = path.suffix.lower()
    if suffix == ".json":
        export_to_json(path, result)
    elif suffix == ".csv":
        if isinstance(result, AmortisationResult):
            export_to_csv(path, result.schedule)
        elif isinstance(result, AdditionalPaymentResult):
            export_to_csv(path, result.simulation.schedule)
        else:
            raise click.BadParameter("CSV export is only available for schedules; use .json")
    else:
        raise click.BadParameter("Unsupported output format; use .json or .csv")
    click.echo(f"Result exported to {path}")


def loan_options(func: Callable) -> Callable:
    """Options shared by the loan-based commands."""
    decorators = [
        click.option("--principal", "-p", required=True, help="Purchase price or loan amount"),
        click.option("--rate", "-r", type=str, help="Annual interest rate (percent); defaults to prime"),
        click.option("--term", "-t", type=int, default=20, show_default=True, help="Loan term in years"),
        click.option("--deposit", "-d", help="Deposit amount"),
        click.option(
            "--frequency",
            type=click.Choice(["monthly", "biweekly"]),
            default="monthly",
            show_default=True,
            help="Payment frequency",
        ),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def _loan_data(principal: str, rate: Optional[str], term: int, deposit: Optional[str], frequency: str) -> Dict[str, Any]:
    return {
        "principal": _amount(principal),
        "annual_rate_percent": rate,
        "term_years": term,
        "deposit_amount": _amount(deposit),
        "payment_frequency": frequency,
    }


@click.group()
@click.option("--log-level", default=None, help="Logging level (default from LOG_LEVEL or INFO)")
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str]) -> None:
    """Home-loan calculators: repayments, affordability, savings and costs."""
    settings = Settings.from_env()
    setup_logging(log_level or settings.log_level, settings.log_json)
    ctx.obj = settings


@cli.command()
@loan_options
@click.option("--output", type=str, help="Output file path (.json)")
@click.pass_context
def bond(ctx, principal, rate, term, deposit, frequency, output) -> None:
    """Monthly repayment and total cost of a bond."""
    result = _run(ctx, "bond", _loan_data(principal, rate, term, deposit, frequency), True)
    _output(result, output)


@cli.command()
@click.option("--income", required=True, help="Net monthly income")
@click.option("--expenses", default="0", show_default=True, help="Monthly living expenses")
@click.option("--debt", default="0", show_default=True, help="Existing monthly debt repayments")
@click.option("--rate", "-r", type=str, help="Annual interest rate (percent); defaults to prime")
@click.option("--term", "-t", type=int, default=25, show_default=True, help="Loan term in years")
@click.option("--ratio", default="0.30", show_default=True, help="Share of income allowed for repayments")
@click.option("--deposit-percent", default="10", show_default=True, help="Deposit assumed for the price")
@click.option("--output", type=str, help="Output file path (.json)")
@click.pass_context
def affordability(ctx, income, expenses, debt, rate, term, ratio, deposit_percent, output) -> None:
    """How much you can afford to borrow."""
    data = {
        "net_monthly_income": _amount(income),
        "monthly_expenses": _amount(expenses),
        "existing_debt_payments": _amount(debt),
        "annual_rate_percent": rate,
        "term_years": term,
        "max_affordability_ratio": ratio,
        "deposit_percent": deposit_percent,
    }
    _output(_run(ctx, "affordability", data, True), output)


@cli.command()
@click.option("--target", help="Deposit amount to save")
@click.option("--property-price", help="Property price (with --deposit-percent instead of --target)")
@click.option("--deposit-percent", default="10", show_default=True, help="Deposit as a percentage of the price")
@click.option("--current", default="0", show_default=True, help="Savings already put aside")
@click.option("--monthly", required=True, help="Amount saved each month")
@click.option("--return", "annual_return", default="0", show_default=True, help="Annual return on savings (percent)")
@click.option("--output", type=str, help="Output file path (.json)")
@click.pass_context
def deposit(ctx, target, property_price, deposit_percent, current, monthly, annual_return, output) -> None:
    """How long it takes to save a deposit."""
    data = {
        "target_deposit": _amount(target),
        "property_price": _amount(property_price),
        "deposit_percent": deposit_percent,
        "current_savings": _amount(current),
        "monthly_savings_amount": _amount(monthly),
        "annual_return_percent": annual_return,
    }
    _output(_run(ctx, "deposit", data, False), output)


@cli.command()
@click.option("--price", required=True, help="Purchase price")
@click.option("--loan", default="0", show_default=True, help="Bond amount (0 for a cash purchase)")
@click.option("--first-time-buyer", is_flag=True, help="Buyer is purchasing a first home")
@click.option("--schedule-date", help="Use the fee schedule in force on this date (YYYY-MM-DD)")
@click.option("--output", type=str, help="Output file path (.json)")
@click.pass_context
def transfer(ctx, price, loan, first_time_buyer, schedule_date, output) -> None:
    """Transfer duty, attorney fees and registration costs."""
    settings: Settings = ctx.obj
    data = {
        "purchase_price": _amount(price),
        "loan_amount": _amount(loan),
        "is_first_time_buyer": first_time_buyer,
        "schedule_date": schedule_date
        or (settings.transfer_schedule_date.isoformat() if settings.transfer_schedule_date else None),
    }
    fee_schedule = None
    if settings.transfer_schedule_file and not schedule_date:
        try:
            fee_schedule = load_schedule(Path(settings.transfer_schedule_file))
        except (OSError, ValueError) as exc:
            raise click.ClickException(f"Cannot load fee schedule: {exc}")
    _output(_run(ctx, "transfer", data, False, fee_schedule), output)


@cli.command()
@loan_options
@click.option("--extra", default="0", show_default=True, help="Extra amount paid every month")
@click.option("--extra-start", type=int, default=1, show_default=True, help="First period with the extra amount")
@click.option("--extra-end", type=int, help="Last period with the extra amount")
@click.option("--lump-sum", default="0", show_default=True, help="One-off payment")
@click.option("--lump-sum-period", type=int, help="Period in which the lump sum is paid")
@click.option("--increase", default="0", show_default=True, help="Raise the extra amount by this much...")
@click.option("--increase-every", type=int, help="...every this many months")
@click.option("--start-date", help="First payment month (YYYY-MM) for payoff dates")
@click.option("--show-schedule", is_flag=True, help="Print the schedule with extra payments")
@click.option("--output", type=str, help="Output file path (.json or .csv)")
@click.pass_context
def additional(
    ctx,
    principal,
    rate,
    term,
    deposit,
    frequency,
    extra,
    extra_start,
    extra_end,
    lump_sum,
    lump_sum_period,
    increase,
    increase_every,
    start_date,
    show_schedule,
    output,
) -> None:
    """Savings from extra monthly payments and lump sums."""
    data = _loan_data(principal, rate, term, deposit, frequency)
    data.update(
        {
            "extra_monthly_amount": _amount(extra),
            "extra_monthly_start_period": extra_start,
            "extra_monthly_end_period": extra_end,
            "lump_sum_amount": _amount(lump_sum),
            "lump_sum_period": lump_sum_period,
            "monthly_increase_amount": _amount(increase),
            "increase_frequency_months": increase_every,
            "start_date": start_date,
        }
    )
    result = _run(ctx, "additional", data, True)
    _output(result, output)
    if show_schedule and not output:
        print_schedule(result.simulation.schedule, show_extra=True)


@cli.command()
@loan_options
@click.option("--monthly", "monthly_rows", is_flag=True, help="Print every period instead of yearly totals")
@click.option("--output", type=str, help="Output file path (.json or .csv)")
@click.pass_context
def amortisation(ctx, principal, rate, term, deposit, frequency, monthly_rows, output) -> None:
    """Amortisation schedule of a loan."""
    result = _run(ctx, "amortisation", _loan_data(principal, rate, term, deposit, frequency), True)
    _output(result, output)
    if not output:
        if monthly_rows:
            print_schedule(result.schedule)
        else:
            print_yearly(result.yearly)


def _parse_variant(value: str) -> Dict[str, Any]:
    """Parse RATE[:TERM[:LABEL]] into a partial loan mapping."""
    parts = value.split(":")
    if not parts[0] or len(parts) > 3:
        raise click.BadParameter(f"Variant must be in RATE[:TERM[:LABEL]] format; got {value}")
    variant: Dict[str, Any] = {"annual_rate_percent": parts[0]}
    if len(parts) > 1 and parts[1]:
        variant["term_years"] = parts[1]
    if len(parts) > 2 and parts[2]:
        variant["label"] = parts[2]
    return variant


@cli.command()
@loan_options
@click.option("--variant", "variants", multiple=True, required=True, help="Option in RATE[:TERM[:LABEL]] format")
@click.option("--output", type=str, help="Output file path (.json)")
@click.pass_context
def compare(ctx, principal, rate, term, deposit, frequency, variants: Tuple[str, ...], output) -> None:
    """Compare loan options against a base loan.

    Example:

        bond-calc compare -p 1.2m -r 11.25 -t 20 --variant 10.75 --variant 11.25:30
    """
    data = {
        "base": _loan_data(principal, rate, term, deposit, frequency),
        "variants": [_parse_variant(v) for v in variants],
    }
    result = _run(ctx, "comparison", data, True)
    if output:
        _output(result, output)
    elif isinstance(result, ComparisonResult):
        print_comparison(result.entries)


@cli.command("prime-rate")
@click.pass_context
def prime_rate(ctx) -> None:
    """Show the current prime lending rate."""
    settings: Settings = ctx.obj
    service = SarbPrimeRateService(
        cache_seconds=settings.prime_rate_cache_seconds,
        fallback_rate=settings.prime_rate_fallback,
    )
    current = service.get_current_rate()
    click.echo(f"Prime rate: {current.rate}% (effective {current.effective_date.isoformat()}, source {current.source})")


if __name__ == "__main__":
    cli()
