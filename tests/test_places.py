import pytest
import requests

from copywriter.config import Config
from copywriter.places import (
    CachedGeodataProvider,
    GeodataError,
    GooglePlacesProvider,
    StaticGeodataProvider,
    TTLCache,
    build_provider,
    format_distance,
    normalize_address,
)
from copywriter.types import GeodataInsights, PointOfInterest


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class CountingProvider:
    def __init__(self):
        self.calls = []

    def fetch(self, address):
        self.calls.append(address)
        return GeodataInsights(points_of_interest=[PointOfInterest(name=f"POI {len(self.calls)}", category="Park")])


def _config(**overrides):
    values = dict(openai_model="m", openai_fallback_model="f", openai_api_key=None, use_llm=False)
    values.update(overrides)
    return Config(**values)


def test_normalize_address_collapses_case_and_whitespace():
    assert normalize_address("  Storgatan   4, Stockholm ") == "storgatan 4, stockholm"


def test_cache_hit_skips_upstream_and_expiry_refetches():
    clock = FakeClock()
    base = CountingProvider()
    provider = CachedGeodataProvider(base, TTLCache(60, clock=clock))

    first = provider.fetch("Storgatan 4")
    second = provider.fetch("  storgatan 4 ")
    assert first is second
    assert len(base.calls) == 1

    clock.now += 61
    third = provider.fetch("Storgatan 4")
    assert len(base.calls) == 2
    assert third.points_of_interest[0].name == "POI 2"


def test_failed_fetch_is_not_cached():
    class FailingOnce:
        def __init__(self):
            self.calls = 0

        def fetch(self, address):
            self.calls += 1
            if self.calls == 1:
                raise GeodataError("boom")
            return GeodataInsights()

    base = FailingOnce()
    provider = CachedGeodataProvider(base, TTLCache(60))
    with pytest.raises(GeodataError):
        provider.fetch("Storgatan 4")
    assert provider.fetch("Storgatan 4").is_empty
    assert base.calls == 2


def test_static_provider_is_deterministic():
    provider = StaticGeodataProvider()
    result = provider.fetch("Storgatan 4")
    assert result == provider.fetch("Storgatan 4")
    assert result.points_of_interest[0].name.startswith("Storgatan ")
    assert [t.mode for t in result.transit] == ["Tunnelbana", "Buss", "Pendeltåg"]


def test_format_distance():
    assert format_distance(249.6) == "250 m"
    assert format_distance(1530) == "1.5 km"


class FakeResponse:
    def __init__(self, payload, status=200):
        self._payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"status {self.status_code}")

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self.responses = responses
        self.requests = []

    def get(self, url, params=None, timeout=None):
        self.requests.append((url, dict(params or {})))
        key = params.get("type") or "geocode"
        return self.responses[key]


def test_google_places_provider_maps_pois_and_transit():
    session = FakeSession(
        {
            "geocode": FakeResponse({"status": "OK", "results": [{"geometry": {"location": {"lat": 59.0, "lng": 18.0}}}]}),
            "point_of_interest": FakeResponse(
                {
                    "status": "OK",
                    "results": [
                        {
                            "name": "ICA",
                            "vicinity": "Storgatan 1",
                            "types": ["supermarket", "store"],
                            "geometry": {"location": {"lat": 59.0, "lng": 18.0}},
                        }
                    ],
                }
            ),
            "transit_station": FakeResponse(
                {"status": "OK", "results": [{"name": "Centralen", "vicinity": "Vasagatan", "types": ["subway_station"]}]}
            ),
        }
    )
    provider = GooglePlacesProvider("key", session=session)
    insights = provider.fetch("Storgatan 4, Stockholm")

    assert insights.points_of_interest[0] == PointOfInterest(name="ICA, Storgatan 1", category="Matbutik", distance="0 m")
    assert insights.transit[0].mode == "Tunnelbana"
    assert insights.transit[0].description == "Centralen, Vasagatan"
    assert all(params["key"] == "key" for _, params in session.requests)


def test_google_places_geocode_failure_raises():
    session = FakeSession({"geocode": FakeResponse({"status": "ZERO_RESULTS", "results": []})})
    with pytest.raises(GeodataError):
        GooglePlacesProvider("key", session=session).fetch("Okänd väg 1")


def test_google_places_nearby_failure_keeps_other_results():
    session = FakeSession(
        {
            "geocode": FakeResponse({"status": "OK", "results": [{"geometry": {"location": {"lat": 59.0, "lng": 18.0}}}]}),
            "point_of_interest": FakeResponse({}, status=500),
            "transit_station": FakeResponse({"status": "ZERO_RESULTS"}),
        }
    )
    insights = GooglePlacesProvider("key", session=session).fetch("Storgatan 4")
    assert insights.is_empty


def test_build_provider_without_key_uses_static_data():
    assert isinstance(build_provider(_config(geodata_cache_ttl_s=0)), StaticGeodataProvider)
    cached = build_provider(_config())
    assert isinstance(cached, CachedGeodataProvider)
    assert isinstance(cached.base, StaticGeodataProvider)


def test_build_provider_with_key_uses_google_places():
    provider = build_provider(_config(google_places_api_key="abc", geodata_cache_ttl_s=0))
    assert isinstance(provider, GooglePlacesProvider)


def test_cache_evicts_expired_entries():
    clock = FakeClock()
    cache = TTLCache(60, clock=clock)
    cache.put("storgatan 4", GeodataInsights())
    cache.put("kungsgatan 1", GeodataInsights())
    clock.now += 61

    assert cache.get("storgatan 4") is None
    assert len(cache) == 1
    cache.put("drottninggatan 2", GeodataInsights())
    assert len(cache) == 1


class BadJSONResponse(FakeResponse):
    def json(self):
        raise requests.JSONDecodeError("Expecting value", "<html>", 0)


def test_google_places_invalid_json_degrades_per_search():
    session = FakeSession(
        {
            "geocode": FakeResponse({"status": "OK", "results": [{"geometry": {"location": {"lat": 59.0, "lng": 18.0}}}]}),
            "point_of_interest": BadJSONResponse({}),
            "transit_station": FakeResponse(
                {"status": "OK", "results": [{"name": "Centralen", "vicinity": "Vasagatan", "types": ["subway_station"]}]}
            ),
        }
    )
    insights = GooglePlacesProvider("key", session=session).fetch("Storgatan 4")
    assert insights.points_of_interest == []
    assert insights.transit[0].description == "Centralen, Vasagatan"


def test_google_places_invalid_geocode_json_raises_geodata_error():
    session = FakeSession({"geocode": BadJSONResponse({})})
    with pytest.raises(GeodataError):
        GooglePlacesProvider("key", session=session).fetch("Storgatan 4")
