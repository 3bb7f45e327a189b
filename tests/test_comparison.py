"""Tests for loan comparisons."""

from __future__ import annotations

from decimal import Decimal

import pytest

from bond_calc.comparison import compare, rate_variants, term_variants
from bond_calc.exceptions import InvalidInput


class TestCompare:
    def test_base_first_then_variants_in_order(self, reference_loan):
        variants = rate_variants(reference_loan, ["12", "10.75"])
        entries = compare(reference_loan, variants)
        assert [e.label for e in entries] == ["Base", "Option 1", "Option 2"]
        assert [e.monthly_payment for e in entries] == [
            Decimal("10492.56"),
            Decimal("11010.86"),
            Decimal("10152.29"),
        ]

    def test_base_has_zero_deltas(self, reference_loan):
        base = compare(reference_loan, [])[0]
        assert base.payment_delta == Decimal("0")
        assert base.interest_delta == Decimal("0")

    def test_delta_sign(self, reference_loan):
        _, dearer, cheaper = compare(reference_loan, rate_variants(reference_loan, [12, "10.75"]))
        assert dearer.payment_delta == Decimal("518.30")
        assert dearer.interest_delta > 0
        assert cheaper.payment_delta == Decimal("-340.27")
        assert cheaper.interest_delta < 0
        assert cheaper.interest_delta == cheaper.total_interest - compare(reference_loan, [])[0].total_interest

    def test_longer_term_lowers_payment_but_costs_more(self, reference_loan):
        _, longer = compare(reference_loan, term_variants(reference_loan, [30]))
        assert longer.monthly_payment == Decimal("9712.61")
        assert longer.payment_delta < 0
        assert longer.interest_delta > 0

    def test_custom_labels(self, reference_loan):
        entries = compare(reference_loan, term_variants(reference_loan, [25]), labels=["25 years"])
        assert entries[1].label == "25 years"

    def test_label_count_must_match(self, reference_loan):
        with pytest.raises(InvalidInput):
            compare(reference_loan, term_variants(reference_loan, [25]), labels=["a", "b"])

    def test_invalid_variant_rejected(self, reference_loan):
        with pytest.raises(InvalidInput):
            compare(reference_loan, rate_variants(reference_loan, [0]))
