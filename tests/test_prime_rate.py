"""Tests for the SARB prime rate service."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
import requests

from bond_calc.prime_rate import (
    SarbPrimeRateService,
    StaticPrimeRateProvider,
    default_rate,
    parse_sarb_response,
)

SARB_PAYLOAD = [
    {"Name": "Repo rate", "Value": 8.25, "Date": "2024-05-30T00:00:00"},
    {"Name": "Prime lending rate", "Value": 11.75, "Date": "2024-05-31T00:00:00"},
]


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Returns queued responses per URL and records the calls made."""

    def __init__(self, responses):
        self.responses = responses
        self.headers = {}
        self.calls = []

    def get(self, url, timeout=None):
        self.calls.append(url)
        outcome = self.responses.get(url)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def make_service(responses, **kwargs):
    session = FakeSession(responses)
    clock = FakeClock()
    service = SarbPrimeRateService(urls=("primary", "backup"), session=session, clock=clock, **kwargs)
    return service, session, clock


class TestParseResponse:
    def test_picks_prime_entry(self):
        rate = parse_sarb_response(SARB_PAYLOAD, "primary")
        assert rate.rate == Decimal("11.75")
        assert rate.effective_date == date(2024, 5, 31)
        assert rate.source == "primary"

    @pytest.mark.parametrize("payload", [{}, [], [{"Name": "Repo rate", "Value": 8.25}], "oops"])
    def test_missing_prime_entry(self, payload):
        assert parse_sarb_response(payload, "primary") is None


class TestSarbPrimeRateService:
    def test_fetches_from_primary(self):
        service, session, _ = make_service({"primary": FakeResponse(SARB_PAYLOAD)})
        rate = service.get_current_rate()
        assert rate.rate == Decimal("11.75")
        assert rate.source == "primary"
        assert session.calls == ["primary"]

    def test_falls_back_to_backup(self):
        service, session, _ = make_service(
            {"primary": requests.ConnectionError("down"), "backup": FakeResponse(SARB_PAYLOAD)}
        )
        rate = service.get_current_rate()
        assert rate.source == "backup"
        assert session.calls == ["primary", "backup"]

    def test_uses_cache_within_window(self):
        service, session, clock = make_service({"primary": FakeResponse(SARB_PAYLOAD)}, cache_seconds=60)
        service.get_current_rate()
        clock.now = 59
        service.get_current_rate()
        assert session.calls == ["primary"]
        clock.now = 61
        service.get_current_rate()
        assert session.calls == ["primary", "primary"]

    def test_force_refresh_bypasses_cache(self):
        service, session, _ = make_service({"primary": FakeResponse(SARB_PAYLOAD)})
        service.get_current_rate()
        service.get_current_rate(force_refresh=True)
        assert len(session.calls) == 2

    def test_stale_cache_used_when_all_sources_fail(self):
        service, session, clock = make_service({"primary": FakeResponse(SARB_PAYLOAD)}, cache_seconds=60)
        first = service.get_current_rate()
        session.responses = {"primary": FakeResponse([], 500), "backup": FakeResponse(ValueError("bad json"))}
        clock.now = 120
        rate = service.get_current_rate()
        assert rate.rate == first.rate
        assert rate.source == "primary"

    def test_fallback_rate_when_nothing_cached(self, caplog):
        service, _, _ = make_service(
            {"primary": requests.Timeout("slow"), "backup": requests.ConnectionError("down")},
            fallback_rate="11.5",
        )
        rate = service.get_current_rate()
        assert rate.rate == Decimal("11.5")
        assert rate.source == "fallback"
        assert "fallback" in caplog.text


class TestDefaultRate:
    def test_override_wins(self):
        provider = StaticPrimeRateProvider("11.75")
        assert default_rate(provider, "10.5") == Decimal("10.5")

    def test_provider_rate(self):
        assert default_rate(StaticPrimeRateProvider("11.75")) == Decimal("11.75")

    def test_blank_override_ignored(self):
        assert default_rate(StaticPrimeRateProvider("11.75"), " ") == Decimal("11.75")

    def test_no_provider(self):
        assert default_rate(None) is None
