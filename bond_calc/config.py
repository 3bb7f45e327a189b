"""Runtime settings read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Mapping, Optional

from .exceptions import InvalidInput


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    database_url: str = "sqlite:///calculation_results.sqlite3"
    secret_key: str = "dev-secret-key"
    log_level: str = "INFO"
    log_json: bool = False
    prime_rate_cache_seconds: int = 24 * 60 * 60
    prime_rate_fallback: Decimal = Decimal("11.00")
    transfer_schedule_date: Optional[date] = None
    transfer_schedule_file: Optional[str] = None
    persist_in_background: bool = True
    max_results_per_user: int = 50

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        defaults = cls()
        schedule_date = env.get("TRANSFER_SCHEDULE_DATE")
        try:
            return cls(
                database_url=env.get("CALCULATION_DATABASE_URL") or defaults.database_url,
                secret_key=env.get("FLASK_SECRET_KEY") or defaults.secret_key,
                log_level=(env.get("LOG_LEVEL") or defaults.log_level).upper(),
                log_json=_flag(env.get("LOG_JSON"), defaults.log_json),
                prime_rate_cache_seconds=int(
                    env.get("PRIME_RATE_CACHE_SECONDS") or defaults.prime_rate_cache_seconds
                ),
                prime_rate_fallback=Decimal(env.get("PRIME_RATE_FALLBACK") or defaults.prime_rate_fallback),
                transfer_schedule_date=date.fromisoformat(schedule_date) if schedule_date else None,
                transfer_schedule_file=env.get("TRANSFER_SCHEDULE_FILE") or None,
                persist_in_background=_flag(env.get("PERSIST_IN_BACKGROUND"), defaults.persist_in_background),
                max_results_per_user=int(env.get("MAX_RESULTS_PER_USER") or defaults.max_results_per_user),
            )
        except (ValueError, ArithmeticError) as exc:
            raise InvalidInput(f"Invalid configuration: {exc}") from exc
