"""Tests for the affordability and deposit-savings solvers."""

from __future__ import annotations

from decimal import Decimal

import pytest

from bond_calc.data_models import UnreachableTarget
from bond_calc.engine import monthly_payment
from bond_calc.exceptions import InvalidInput
from bond_calc.normalizer import normalize
from bond_calc.solvers import (
    max_affordable_installment,
    max_affordable_loan,
    months_to_target,
    principal_for_installment,
    project_savings,
)


class TestAffordability:
    def test_installment_from_income(self):
        assert max_affordable_installment(40000, 5000, 2000) == Decimal("5000.00")

    def test_installment_never_negative(self):
        assert max_affordable_installment(10000, 8000, 1000) == Decimal("0")

    @pytest.mark.parametrize("ratio", [0, "1.5", -0.1])
    def test_ratio_bounds(self, ratio):
        with pytest.raises(InvalidInput):
            max_affordable_installment(40000, 0, 0, ratio)

    def test_negative_income_rejected(self):
        with pytest.raises(InvalidInput) as excinfo:
            max_affordable_installment(-1, 0, 0)
        assert excinfo.value.field == "net_monthly_income"

    def test_known_loan_amount(self):
        assert max_affordable_loan(40000, 5000, 2000, "11.25", 25) == Decimal("500881.77")

    def test_round_trip_with_payment(self):
        """The installment on the maximum loan fits the affordable amount."""
        installment = max_affordable_installment(55000, 9000, 3500)
        loan = max_affordable_loan(55000, 9000, 3500, "11.75", 20)
        rate, periods = normalize("11.75", 20)
        assert monthly_payment(loan, rate, periods) <= installment + Decimal("0.01")
        assert monthly_payment(loan + 100, rate, periods) > installment

    def test_zero_rate(self):
        assert max_affordable_loan(30000, 0, 0, 0, 25) == Decimal("2700000.00")

    def test_nothing_affordable_is_zero(self):
        assert max_affordable_loan(10000, 9000, 0, 11, 20) == Decimal("0")

    def test_principal_for_zero_installment(self):
        assert principal_for_installment(Decimal("0"), Decimal("0.01"), 12) == Decimal("0")


class TestDepositSavings:
    def test_without_interest(self):
        projection = project_savings(10000, 0, 1000, 0)
        assert projection.months == 10
        assert projection.total_contributions == Decimal("10000")
        assert projection.interest_earned == Decimal("0")

    def test_with_interest(self):
        projection = project_savings(2000, 0, 1000, 12)
        assert projection.months == 2
        assert projection.final_balance == Decimal("2010.00")
        assert projection.interest_earned == Decimal("10.00")

    def test_already_saved(self):
        assert months_to_target(50000, 60000, 0, 5) == 0

    def test_no_savings_is_unreachable(self):
        result = months_to_target(50000, 1000, 0, 5)
        assert isinstance(result, UnreachableTarget)
        assert result.reason == "no_savings"

    def test_beyond_horizon(self):
        result = months_to_target(1_000_000, 0, 100, 0, horizon_months=120)
        assert result == UnreachableTarget("exceeds_horizon", 120)

    def test_interest_shortens_saving_time(self):
        plain = months_to_target(100000, 0, 2000, 0)
        with_return = months_to_target(100000, 0, 2000, 8)
        assert plain == 50
        assert with_return < plain

    @pytest.mark.parametrize(
        "args",
        [(-1, 0, 100, 0), (1000, -1, 100, 0), (1000, 0, 100, -2)],
    )
    def test_negative_inputs(self, args):
        with pytest.raises(InvalidInput):
            project_savings(*args)
