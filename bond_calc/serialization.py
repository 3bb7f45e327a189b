"""Conversion of results into JSON-serialisable dictionaries and files.

Decimals become floats and dates ISO strings, the same representation the
JSON and CSV exports use, so a stored result can be rendered again without
the engine.
"""

from __future__ import annotations

import csv
import enum
import json
from dataclasses import fields, is_dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable

from .data_models import AmortizationPeriod, CalculationResult


def to_jsonable(value: Any) -> Any:
    """Recursively convert dataclasses, decimals, dates and enums."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def result_to_dict(result: CalculationResult) -> Dict[str, Any]:
    """Serialise a calculator result with its ``"type"`` tag first."""
    data: Dict[str, Any] = {"type": result.kind}
    data.update(to_jsonable(result))
    return data


def serialize_schedule(schedule: Iterable[AmortizationPeriod]) -> list:
    """Convert schedule rows into dictionaries for charts and exports."""
    serialized = []
    for row in schedule:
        serialized.append(
            {
                "period": row.period_index,
                "payment": float(row.payment_amount),
                "principal": float(row.principal_portion),
                "interest": float(row.interest_portion),
                "extra": float(row.extra_payment),
                "lump_sum": float(row.lump_sum_payment),
                "balance": float(row.remaining_balance),
            }
        )
    return serialized


def export_to_json(path: Path, result: CalculationResult) -> None:
    """Export a result to a JSON file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(result_to_dict(result), f, indent=2)


def export_to_csv(path: Path, schedule: Iterable[AmortizationPeriod]) -> None:
    """Export schedule rows to a CSV file."""
    header = [
        "Period",
        "Payment",
        "Principal",
        "Interest",
        "Extra_Payment",
        "Lump_Sum",
        "Remaining_Balance",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for row in schedule:
            writer.writerow(
                [
                    row.period_index,
                    f"{row.payment_amount:.2f}",
                    f"{row.principal_portion:.2f}",
                    f"{row.interest_portion:.2f}",
                    f"{row.extra_payment:.2f}",
                    f"{row.lump_sum_payment:.2f}",
                    f"{row.remaining_balance:.2f}",
                ]
            )
