"""Tests for environment settings and logging setup."""

from __future__ import annotations

import json
import logging
from datetime import date
from decimal import Decimal

import pytest

from bond_calc.config import Settings
from bond_calc.exceptions import InvalidInput
from bond_calc.logging_config import JSONFormatter, setup_logging


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.database_url == "sqlite:///calculation_results.sqlite3"
        assert settings.prime_rate_fallback == Decimal("11.00")
        assert settings.persist_in_background is True
        assert settings.transfer_schedule_date is None

    def test_environment_values(self):
        settings = Settings.from_env(
            {
                "CALCULATION_DATABASE_URL": "sqlite:///other.db",
                "LOG_LEVEL": "debug",
                "PRIME_RATE_FALLBACK": "11.5",
                "PRIME_RATE_CACHE_SECONDS": "60",
                "TRANSFER_SCHEDULE_DATE": "2023-06-01",
                "PERSIST_IN_BACKGROUND": "false",
                "MAX_RESULTS_PER_USER": "5",
            }
        )
        assert settings.database_url == "sqlite:///other.db"
        assert settings.log_level == "DEBUG"
        assert settings.prime_rate_fallback == Decimal("11.5")
        assert settings.prime_rate_cache_seconds == 60
        assert settings.transfer_schedule_date == date(2023, 6, 1)
        assert settings.persist_in_background is False
        assert settings.max_results_per_user == 5

    def test_invalid_value(self):
        with pytest.raises(InvalidInput):
            Settings.from_env({"MAX_RESULTS_PER_USER": "many"})


class TestLogging:
    def test_json_formatter(self):
        record = logging.LogRecord("bond_calc.engine", logging.INFO, __file__, 10, "built %s", ("schedule",), None)
        data = json.loads(JSONFormatter().format(record))
        assert data["message"] == "built schedule"
        assert data["level"] == "INFO"
        assert data["logger"] == "bond_calc.engine"

    def test_setup_replaces_handlers(self):
        setup_logging("DEBUG")
        setup_logging("WARNING", json_format=True)
        logger = logging.getLogger("bond_calc")
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)
        assert logger.level == logging.WARNING
        setup_logging("INFO")
