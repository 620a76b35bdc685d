import asyncio
import time

import pytest
import requests

from antipodal.config import GeocoderSettings
from antipodal.errors import ResolutionFailure
from antipodal.geo import Coordinate
from antipodal.places import OCEAN, NominatimLookup, PlaceResolver


class StaticLookup:
    def __init__(self, answer):
        self.answer = answer
        self.calls = []

    def lookup(self, coordinate):
        self.calls.append(coordinate)
        return self.answer


class FailingLookup:
    def __init__(self, exc):
        self.exc = exc
        self.calls = 0

    def lookup(self, coordinate):
        self.calls += 1
        raise self.exc


class SlowLookup:
    def lookup(self, coordinate):
        time.sleep(0.3)
        return "Too late"


def resolve(lookup, coordinate=Coordinate(1, 2), timeout_seconds=2.0):
    return asyncio.run(PlaceResolver(lookup, timeout_seconds=timeout_seconds).resolve(coordinate))


def test_resolve_uses_non_empty_result_verbatim():
    assert resolve(StaticLookup("  Los Angeles, California, United States ")) == (
        "  Los Angeles, California, United States "
    )


def test_resolve_empty_string_falls_back_to_ocean():
    assert resolve(StaticLookup("")) == OCEAN == "Ocean"


def test_resolve_blank_or_missing_result_falls_back_to_ocean():
    assert resolve(StaticLookup("   ")) == OCEAN
    assert resolve(StaticLookup(None)) == OCEAN


def test_resolve_failure_falls_back_to_ocean_without_retry():
    lookup = FailingLookup(ResolutionFailure("down"))
    assert resolve(lookup) == OCEAN
    assert lookup.calls == 1


def test_resolve_unexpected_error_falls_back_to_ocean():
    assert resolve(FailingLookup(RuntimeError("boom"))) == OCEAN


def test_resolve_timeout_falls_back_to_ocean():
    assert resolve(SlowLookup(), timeout_seconds=0.05) == OCEAN


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.requests = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append({"url": url, "params": params, "headers": headers, "timeout": timeout})
        if self.exc:
            raise self.exc
        return self.response


def test_nominatim_lookup_sends_reverse_query():
    session = FakeSession(FakeResponse({"display_name": "Perth, Western Australia, Australia"}))
    settings = GeocoderSettings(user_agent="test-agent", timeout_seconds=2, zoom=8, language="en")
    lookup = NominatimLookup(settings, session=session)

    assert lookup.lookup(Coordinate(-31.95, 115.86)) == "Perth, Western Australia, Australia"

    sent = session.requests[0]
    assert sent["url"] == settings.base_url
    assert sent["params"]["lat"] == -31.95
    assert sent["params"]["lon"] == 115.86
    assert sent["params"]["format"] == "json"
    assert sent["params"]["zoom"] == 8
    assert sent["params"]["accept-language"] == "en"
    assert sent["headers"] == {"User-Agent": "test-agent"}
    assert sent["timeout"] == 2


def test_nominatim_lookup_open_water_returns_none():
    session = FakeSession(FakeResponse({"error": "Unable to geocode"}))
    assert NominatimLookup(session=session).lookup(Coordinate(-34, 61.76)) is None


@pytest.mark.parametrize(
    "session",
    [
        FakeSession(exc=requests.ConnectionError("offline")),
        FakeSession(FakeResponse({}, status_code=503)),
        FakeSession(FakeResponse(ValueError("not json"))),
    ],
)
def test_nominatim_lookup_wraps_transport_and_http_errors(session):
    with pytest.raises(ResolutionFailure):
        NominatimLookup(session=session).lookup(Coordinate(0, 0))


def test_resolver_over_nominatim_open_water_gives_ocean():
    session = FakeSession(FakeResponse({"error": "Unable to geocode"}))
    assert resolve(NominatimLookup(session=session)) == OCEAN


def test_nominatim_lookup_spaces_requests(monkeypatch):
    monotonic_values = iter([0.0, 0.2, 1.0, 5.0])
    monkeypatch.setattr("antipodal.places.time.monotonic", lambda: next(monotonic_values))
    sleeps = []
    monkeypatch.setattr("antipodal.places.time.sleep", lambda s: sleeps.append(float(s)))

    session = FakeSession(FakeResponse({"display_name": "Madrid, Spain"}))
    lookup = NominatimLookup(GeocoderSettings(min_interval_seconds=1.0), session=session)
    for _ in range(3):
        assert lookup.lookup(Coordinate(40.4, -3.7)) == "Madrid, Spain"

    assert sleeps == [pytest.approx(0.8)]
    assert len(session.requests) == 3


def test_nominatim_lookup_throttle_can_be_disabled(monkeypatch):
    sleeps = []
    monkeypatch.setattr("antipodal.places.time.sleep", lambda s: sleeps.append(float(s)))

    session = FakeSession(FakeResponse({"display_name": "Madrid, Spain"}))
    lookup = NominatimLookup(GeocoderSettings(min_interval_seconds=0), session=session)
    lookup.lookup(Coordinate(40.4, -3.7))
    lookup.lookup(Coordinate(40.4, -3.7))

    assert sleeps == []
