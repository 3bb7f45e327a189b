"""Shared fixtures for the bond calculator tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from bond_calc.config import Settings
from bond_calc.data_models import LoanInput
from bond_calc.prime_rate import StaticPrimeRateProvider
from bond_calc_web.app import create_app
from bond_calc_web.calculation_store import CalculationStore


@pytest.fixture
def reference_loan() -> LoanInput:
    """R1,000,000 over 20 years at 11.25 %."""
    return LoanInput(principal=Decimal("1000000"), annual_rate_percent=Decimal("11.25"), term_years=20)


@pytest.fixture
def store(tmp_path) -> CalculationStore:
    return CalculationStore(f"sqlite:///{tmp_path / 'results.sqlite3'}", max_per_user=5)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'app.sqlite3'}",
        secret_key="test-secret",
        persist_in_background=False,
    )


@pytest.fixture
def prime_provider() -> StaticPrimeRateProvider:
    return StaticPrimeRateProvider(Decimal("11.75"), date(2024, 5, 31))


@pytest.fixture
def app(settings, store, prime_provider):
    app = create_app(settings=settings, store=store, prime_rate_provider=prime_provider)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
