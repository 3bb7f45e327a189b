"""Prime lending rate lookup.

The calculators treat the prime rate as a plain input. This module supplies
it: ``SarbPrimeRateService`` fetches the rate from the South African Reserve
Bank web API, caches it for a day, and falls back to the last known value
(or a configured default) when the API is unavailable. The engine never
reads this cache itself; callers pass the rate in.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Optional, Protocol, Sequence

import requests

from .utils import Number, to_decimal

logger = logging.getLogger(__name__)

PRIMARY_API_URL = "https://custom.resbank.co.za/SarbWebApi/WebIndicators/HomePageRates"
BACKUP_API_URL = "https://custom.resbank.co.za/SarbWebApi/WebIndicators/CurrentMarketRates/"
PRIME_ENTRY_NAME = "Prime lending rate"
CACHE_DURATION_SECONDS = 24 * 60 * 60
FALLBACK_RATE = Decimal("11.00")


@dataclass(frozen=True)
class PrimeRate:
    rate: Decimal
    effective_date: date
    source: str
    last_updated: datetime


class PrimeRateProvider(Protocol):
    def get_current_rate(self) -> PrimeRate:  # pragma: no cover - interface
        ...


class StaticPrimeRateProvider:
    """Always returns the same rate; used offline and in tests."""

    def __init__(self, rate: Number, effective_date: Optional[date] = None) -> None:
        self._rate = PrimeRate(
            rate=to_decimal(rate, "rate"),
            effective_date=effective_date or date.today(),
            source="static",
            last_updated=datetime.now(timezone.utc),
        )

    def get_current_rate(self) -> PrimeRate:
        return self._rate


def _parse_effective_date(value: Any) -> date:
    text = str(value or "")[:10]
    try:
        return date.fromisoformat(text)
    except ValueError:
        return date.today()


def parse_sarb_response(payload: Any, source: str) -> Optional[PrimeRate]:
    """Pick the prime lending rate out of a SARB indicator list."""
    if not isinstance(payload, list):
        return None
    for entry in payload:
        if isinstance(entry, dict) and entry.get("Name") == PRIME_ENTRY_NAME:
            try:
                rate = Decimal(str(entry["Value"]))
            except (KeyError, ArithmeticError):
                return None
            return PrimeRate(
                rate=rate,
                effective_date=_parse_effective_date(entry.get("Date")),
                source=source,
                last_updated=datetime.now(timezone.utc),
            )
    return None


class SarbPrimeRateService:
    """Prime rate from the SARB API with a time-boxed cache."""

    def __init__(
        self,
        *,
        urls: Sequence[str] = (PRIMARY_API_URL, BACKUP_API_URL),
        cache_seconds: int = CACHE_DURATION_SECONDS,
        fallback_rate: Number = FALLBACK_RATE,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._urls = tuple(urls)
        self._cache_seconds = cache_seconds
        self._fallback_rate = to_decimal(fallback_rate, "fallback_rate")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": "bond-calc/1.0", "Accept": "application/json"})
        self._clock = clock
        self._lock = threading.Lock()
        self._cached: Optional[PrimeRate] = None
        self._fetched_at: Optional[float] = None

    def _fetch(self, url: str, source: str) -> Optional[PrimeRate]:
        logger.info("Fetching prime rate from %s SARB API", source)
        try:
            response = self._session.get(url, timeout=self._timeout)
            response.raise_for_status()
            result = parse_sarb_response(response.json(), source)
        except (requests.RequestException, ValueError) as exc:
            logger.error("Error fetching prime rate from %s SARB API: %s", source, exc)
            return None
        if result is None:
            logger.error("Prime lending rate not found in %s SARB API response", source)
        return result

    def _cache_valid(self) -> bool:
        return (
            self._cached is not None
            and self._fetched_at is not None
            and self._clock() - self._fetched_at < self._cache_seconds
        )

    def get_current_rate(self, force_refresh: bool = False) -> PrimeRate:
        with self._lock:
            if not force_refresh and self._cache_valid():
                return self._cached

            result = None
            for index, url in enumerate(self._urls):
                result = self._fetch(url, "primary" if index == 0 else "backup")
                if result is not None:
                    break

            if result is None and self._cached is not None:
                logger.warning("All SARB APIs failed, using cached prime rate")
                result = replace(self._cached, last_updated=datetime.now(timezone.utc))
            elif result is None:
                logger.error("Failed to fetch prime rate from all sources, using fallback value")
                result = PrimeRate(
                    rate=self._fallback_rate,
                    effective_date=date.today(),
                    source="fallback",
                    last_updated=datetime.now(timezone.utc),
                )

            self._cached = result
            self._fetched_at = self._clock()
            return result


def default_rate(provider: Optional[PrimeRateProvider], override: Optional[Number] = None) -> Optional[Decimal]:
    """Return the user's rate when given, else the provider's prime rate."""
    if override is not None and str(override).strip():
        return to_decimal(override, "annual_rate_percent")
    if provider is None:
        return None
    return provider.get_current_rate().rate
