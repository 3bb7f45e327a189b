"""Tests for the calculator entry points, input parsing and serialisation."""

from __future__ import annotations

import csv
import json
from datetime import date
from decimal import Decimal

import pytest

from bond_calc import inputs
from bond_calc.calculators import CALCULATORS, RATE_KINDS, run_calculator
from bond_calc.data_models import (
    AffordabilityResult,
    BondRepaymentResult,
    ComparisonResult,
    DepositSavingsResult,
    PaymentFrequency,
)
from bond_calc.exceptions import InvalidInput
from bond_calc.serialization import export_to_csv, export_to_json, result_to_dict, serialize_schedule
from bond_calc.transfer import SCHEDULE_2020
from bond_calc.utils import format_currency, format_duration, parse_amount, to_decimal


class TestUtils:
    def test_float_goes_through_str(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_thousands_separators(self):
        assert to_decimal("1 200 000") == Decimal("1200000")
        assert to_decimal("900,000.50") == Decimal("900000.50")

    @pytest.mark.parametrize("value", ["abc", True, "nan", float("inf")])
    def test_invalid_numbers(self, value):
        with pytest.raises(InvalidInput):
            to_decimal(value, "amount")

    @pytest.mark.parametrize(
        "text,expected", [("500k", "500000"), ("1.2m", "1200000"), ("R1,250,000", "1250000")]
    )
    def test_parse_amount(self, text, expected):
        assert parse_amount(text) == Decimal(expected)

    def test_format_currency(self):
        assert format_currency(Decimal("10492.555")) == "R10,492.56"
        assert format_currency(Decimal("-340.27")) == "-R340.27"

    @pytest.mark.parametrize(
        "months,expected",
        [(0, "0 years"), (1, "1 month"), (12, "1 year"), (14, "1 year, 2 months"), (38, "3 years, 2 months")],
    )
    def test_format_duration(self, months, expected):
        assert format_duration(months) == expected


class TestInputs:
    def test_loan_from_mapping(self):
        loan = inputs.loan_input_from_mapping(
            {"property_value": "1500000", "annual_rate_percent": "11.25", "term_years": "20", "deposit_amount": "150000"}
        )
        assert loan.loan_amount == Decimal("1350000")
        assert loan.payment_frequency is PaymentFrequency.MONTHLY

    def test_default_rate_used_when_missing(self):
        loan = inputs.loan_input_from_mapping({"principal": 1000000, "term_years": 20}, Decimal("11.75"))
        assert loan.annual_rate_percent == Decimal("11.75")

    def test_missing_rate_without_default(self):
        with pytest.raises(InvalidInput) as excinfo:
            inputs.loan_input_from_mapping({"principal": 1000000, "term_years": 20})
        assert excinfo.value.field == "annual_rate_percent"

    def test_deposit_must_be_below_price(self):
        with pytest.raises(InvalidInput) as excinfo:
            inputs.loan_input_from_mapping(
                {"principal": 100, "annual_rate_percent": 10, "term_years": 1, "deposit_amount": 100}
            )
        assert excinfo.value.field == "deposit_amount"

    def test_fractional_term_rejected(self):
        with pytest.raises(InvalidInput):
            inputs.loan_input_from_mapping({"principal": 100, "annual_rate_percent": 10, "term_years": "2.5"})

    def test_comparison_variants_inherit_base(self):
        base, variants, labels = inputs.comparison_from_mapping(
            {
                "base": {"principal": 1000000, "annual_rate_percent": "11.25", "term_years": 20},
                "variants": [{"annual_rate_percent": 12}, {"term_years": 30, "label": "Longer"}],
            }
        )
        assert variants[0].principal == base.principal
        assert variants[0].annual_rate_percent == Decimal("12")
        assert variants[1].term_years == 30
        assert labels == ["Option 1", "Longer"]

    def test_deposit_savings_needs_a_target(self):
        with pytest.raises(InvalidInput):
            inputs.deposit_savings_from_mapping({"monthly_savings_amount": 1000})

    def test_transfer_schedule_date(self):
        params = inputs.transfer_from_mapping(
            {"purchase_price": "2000000", "schedule_date": "2021-05-01", "is_first_time_buyer": "yes"}
        )
        assert params.schedule_date == date(2021, 5, 1)
        assert params.is_first_time_buyer is True


class TestCalculators:
    def test_registry_covers_every_kind(self):
        assert set(CALCULATORS) == {
            "bond",
            "affordability",
            "deposit",
            "transfer",
            "additional",
            "amortisation",
            "comparison",
        }
        assert RATE_KINDS <= set(CALCULATORS)

    def test_bond_repayment(self):
        result = run_calculator("bond", {"principal": "1000000", "annual_rate_percent": "11.25", "term_years": 20})
        assert isinstance(result, BondRepaymentResult)
        assert result.monthly_repayment == Decimal("10492.56")
        assert result.total_interest == Decimal("1518214.52")
        assert result.display_results[0].label == "Monthly Repayment"
        assert result.display_results[0].value == "R10,492.56"

    def test_bond_uses_default_rate(self):
        result = run_calculator("bond", {"principal": "1000000", "term_years": 20}, Decimal("11.25"))
        assert result.monthly_repayment == Decimal("10492.56")

    def test_affordability(self):
        result = run_calculator(
            "affordability",
            {
                "net_monthly_income": 40000,
                "monthly_expenses": 5000,
                "existing_debt_payments": 2000,
                "annual_rate_percent": "11.25",
            },
        )
        assert isinstance(result, AffordabilityResult)
        assert result.max_monthly_installment == Decimal("5000.00")
        assert result.max_loan_amount == Decimal("500881.77")
        assert result.recommended_property_price == Decimal("556535.30")
        assert "10% deposit" in result.display_results[2].tooltip

    def test_deposit_savings_from_price(self):
        result = run_calculator(
            "deposit",
            {"property_price": 1000000, "deposit_percent": 10, "monthly_savings_amount": 10000},
        )
        assert isinstance(result, DepositSavingsResult)
        assert result.deposit_amount == Decimal("100000.00")
        assert result.months_to_save == 10
        assert result.display_results[1].value == "10 months"

    def test_deposit_savings_unreachable(self):
        result = run_calculator("deposit", {"target_deposit": 100000, "monthly_savings_amount": 0})
        assert result.months_to_save is None
        assert result.unreachable.reason == "no_savings"
        assert result.display_results[1].value == "Not reachable without monthly savings"

    def test_transfer_with_override_schedule(self):
        result = run_calculator(
            "transfer", {"purchase_price": 1500000, "loan_amount": 1200000}, fee_schedule=SCHEDULE_2020
        )
        assert result.costs.total == Decimal("57150.00")
        assert result.display_results[-1].value == "R57,150.00"

    def test_transfer_schedule_by_date(self):
        result = run_calculator("transfer", {"purchase_price": 1500000, "schedule_date": "2023-01-01"})
        assert result.costs.schedule_effective_date == date(2020, 3, 1)

    def test_additional_payment(self):
        result = run_calculator(
            "additional",
            {
                "principal": 1000000,
                "annual_rate_percent": "11.25",
                "term_years": 20,
                "extra_monthly_amount": 1000,
                "start_date": "2025-01",
            },
        )
        assert result.standard_monthly_payment == Decimal("10492.56")
        assert result.new_monthly_payment == Decimal("11492.56")
        assert result.term_reduced_periods > 0
        assert result.interest_saved > 0
        assert result.display_results[-1].label == "New Payoff Date"

    def test_amortisation(self):
        result = run_calculator(
            "amortisation", {"principal": 1000000, "annual_rate_percent": "11.25", "term_years": 20}
        )
        assert len(result.schedule) == 240
        assert len(result.yearly) == 21
        assert result.total_repayment == Decimal("2518214.52")

    def test_comparison(self):
        result = run_calculator(
            "comparison",
            {
                "base": {"principal": 1000000, "term_years": 20},
                "variants": [{"annual_rate_percent": "10.75"}],
            },
            Decimal("11.25"),
        )
        assert isinstance(result, ComparisonResult)
        assert [e.label for e in result.entries] == ["Base", "Option 1"]
        assert result.entries[1].payment_delta == Decimal("-340.27")

    def test_unknown_kind(self):
        with pytest.raises(InvalidInput):
            run_calculator("mortgage", {})

    def test_invalid_input_names_field(self):
        with pytest.raises(InvalidInput) as excinfo:
            run_calculator("bond", {"principal": "abc", "annual_rate_percent": 10, "term_years": 20})
        assert excinfo.value.field == "principal"


class TestSerialization:
    @pytest.fixture
    def bond_result(self):
        return run_calculator("bond", {"principal": "1000000", "annual_rate_percent": "11.25", "term_years": 20})

    def test_result_to_dict(self, bond_result):
        data = result_to_dict(bond_result)
        assert list(data)[0] == "type"
        assert data["type"] == "bond"
        assert data["monthly_repayment"] == 10492.56
        assert data["inputs"]["payment_frequency"] == "monthly"
        assert data["display_results"][0] == {
            "label": "Monthly Repayment",
            "value": "R10,492.56",
            "tooltip": bond_result.display_results[0].tooltip,
        }
        json.dumps(data)

    def test_export_json(self, tmp_path, bond_result):
        path = tmp_path / "bond.json"
        export_to_json(path, bond_result)
        assert json.loads(path.read_text(encoding="utf-8"))["total_interest"] == 1518214.52

    def test_export_csv(self, tmp_path):
        result = run_calculator("amortisation", {"principal": 120000, "annual_rate_percent": 12, "term_years": 1})
        path = tmp_path / "schedule.csv"
        export_to_csv(path, result.schedule)
        with path.open(newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert rows[0][0] == "Period"
        assert len(rows) == 13
        assert rows[-1][-1] == "0.00"

    def test_serialize_schedule(self):
        result = run_calculator("amortisation", {"principal": 120000, "annual_rate_percent": 12, "term_years": 1})
        rows = serialize_schedule(result.schedule)
        assert rows[0]["period"] == 1
        assert rows[0]["interest"] == 1200.0
