"""Geodata providers: Google Places lookups, static sample data and a TTL cache."""
from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

import requests

from .config import Config, load_config
from .types import GeodataInsights, PointOfInterest, TransitInfo

_LOGGER = logging.getLogger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
NEARBY_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"

POI_RADIUS_M = 1200
TRANSIT_RADIUS_M = 1500
MAX_POI_RESULTS = 8
MAX_TRANSIT_RESULTS = 4
_HTTP_TIMEOUT_S = 6

_GOOGLE_CATEGORIES: Tuple[Tuple[str, str], ...] = (
    ("cafe", "Café"),
    ("restaurant", "Restaurang"),
    ("park", "Park"),
    ("gym", "Gym"),
    ("supermarket", "Matbutik"),
    ("grocery_or_supermarket", "Matbutik"),
    ("shopping_mall", "Butik"),
    ("store", "Butik"),
    ("pharmacy", "Apotek"),
    ("hospital", "Sjukhus"),
    ("gas_station", "Bensinstation"),
    ("parking", "Parkering"),
    ("school", "Skola"),
    ("primary_school", "Skola"),
    ("secondary_school", "Skola"),
)

_TRANSIT_MODES: Dict[str, str] = {
    "subway_station": "Tunnelbana",
    "train_station": "Tåg",
    "light_rail_station": "Spårvagn",
    "bus_station": "Buss",
    "transit_station": "Kollektivtrafik",
}


class GeodataProvider(Protocol):
    def fetch(self, address: str) -> GeodataInsights:
        ...


class GeodataError(RuntimeError):
    """Raised when an upstream geodata lookup fails."""


def normalize_address(address: str) -> str:
    """Cache key: lower-cased address with collapsed whitespace."""
    return " ".join((address or "").strip().lower().split())


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class _CacheEntry:
    insights: GeodataInsights
    expires_at: float


class TTLCache:
    """Thread-safe address -> insights cache with a fixed time-to-live."""

    def __init__(self, ttl_s: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_s = ttl_s
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: Dict[str, _CacheEntry] = {}

    def get(self, key: str) -> Optional[GeodataInsights]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return None
            return entry.insights

    def put(self, key: str, insights: GeodataInsights) -> None:
        with self._lock:
            now = self._clock()
            expired = [k for k, entry in self._entries.items() if entry.expires_at <= now]
            for k in expired:
                del self._entries[k]
            self._entries[key] = _CacheEntry(insights=insights, expires_at=now + self.ttl_s)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class CachedGeodataProvider:
    """Serves repeated addresses from the cache; concurrent misses each fetch upstream."""

    def __init__(self, base: GeodataProvider, cache: TTLCache) -> None:
        self.base = base
        self.cache = cache

    def fetch(self, address: str) -> GeodataInsights:
        key = normalize_address(address)
        cached = self.cache.get(key)
        if cached is not None:
            _LOGGER.debug("[GEODATA] Cache hit for %s", key)
            return cached
        insights = self.base.fetch(address)
        self.cache.put(key, insights)
        return insights


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

_SAMPLE_POIS = (
    ("Björk Café & Bar", "Café", "250 m"),
    ("Stadshusparken", "Park", "450 m"),
    ("Balance Gym", "Gym", "600 m"),
    ("Matboden", "Matbutik", "200 m"),
)

_SAMPLE_TRANSIT = (
    ("Tunnelbana", "3 minuter till stationen, 12 minuter till T-Centralen"),
    ("Buss", "Linje 52 till city var 6:e minut i rusningstid"),
    ("Pendeltåg", "8 minuter till stationen, 15 minuter till centralen"),
)


class StaticGeodataProvider:
    """Deterministic sample data used when no Places API key is configured."""

    def fetch(self, address: str) -> GeodataInsights:
        prefix = (address or "").strip().split(" ")[0]
        pois = [
            PointOfInterest(name=f"{prefix} {name}".strip(), category=category, distance=distance)
            for name, category, distance in _SAMPLE_POIS
        ]
        transit = [TransitInfo(mode=mode, description=desc) for mode, desc in _SAMPLE_TRANSIT]
        return GeodataInsights(points_of_interest=pois, transit=transit)


def distance_meters(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    """Haversine distance between two (lat, lng) pairs."""
    earth_radius = 6371000.0
    lat1, lat2 = math.radians(a[0]), math.radians(b[0])
    d_lat = math.radians(b[0] - a[0])
    d_lng = math.radians(b[1] - a[1])
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    return 2 * earth_radius * math.asin(math.sqrt(h))


def format_distance(meters: float) -> str:
    if meters < 1000:
        return f"{int(meters + 0.5)} m"
    return f"{meters / 1000:.1f} km"


def map_google_category(types: List[str]) -> str:
    for google_type, label in _GOOGLE_CATEGORIES:
        if google_type in types:
            return label
    return "Plats"


def map_transit_mode(types: List[str]) -> str:
    for google_type in types:
        if google_type in _TRANSIT_MODES:
            return _TRANSIT_MODES[google_type]
    return "Kollektivtrafik"


class GooglePlacesProvider:
    """Geocodes the address and collects nearby places and stations."""

    def __init__(self, api_key: str, session: Optional[requests.Session] = None, timeout_s: float = _HTTP_TIMEOUT_S) -> None:
        if not api_key:
            raise ValueError("GooglePlacesProvider requires an API key.")
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout_s = timeout_s

    def _get(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            resp = self.session.get(url, params={**params, "key": self.api_key}, timeout=self.timeout_s)
            resp.raise_for_status()
            return resp.json() or {}
        except requests.RequestException as exc:
            raise GeodataError(f"Places request failed: {exc}") from exc
        except ValueError as exc:
            raise GeodataError(f"Places returned invalid JSON: {exc}") from exc

    def geocode(self, address: str) -> Tuple[float, float]:
        data = self._get(GEOCODE_URL, {"address": address})
        results = data.get("results") or []
        if data.get("status") != "OK" or not results:
            raise GeodataError(f"geocode status {data.get('status')}")
        loc = results[0]["geometry"]["location"]
        return float(loc["lat"]), float(loc["lng"])

    def _nearby(self, point: Tuple[float, float], place_type: str, radius: int) -> List[Dict[str, Any]]:
        data = self._get(
            NEARBY_URL,
            {"location": f"{point[0]:f},{point[1]:f}", "radius": radius, "type": place_type},
        )
        status = data.get("status")
        if status == "ZERO_RESULTS":
            return []
        if status != "OK":
            raise GeodataError(f"places status {status}")
        return [item for item in data.get("results") or [] if isinstance(item, dict)]

    def _points_of_interest(self, point: Tuple[float, float]) -> List[PointOfInterest]:
        pois: List[PointOfInterest] = []
        for result in self._nearby(point, "point_of_interest", POI_RADIUS_M)[:MAX_POI_RESULTS]:
            loc = (result.get("geometry") or {}).get("location") or {}
            name = result.get("name") or ""
            if result.get("vicinity"):
                name = f"{name}, {result['vicinity']}"
            distance = ""
            if "lat" in loc and "lng" in loc:
                distance = format_distance(distance_meters(point, (float(loc["lat"]), float(loc["lng"]))))
            pois.append(PointOfInterest(name=name, category=map_google_category(result.get("types") or []), distance=distance))
        return pois

    def _transit(self, point: Tuple[float, float]) -> List[TransitInfo]:
        options: List[TransitInfo] = []
        for result in self._nearby(point, "transit_station", TRANSIT_RADIUS_M)[:MAX_TRANSIT_RESULTS]:
            name = result.get("name") or ""
            desc = f"{name}, {result['vicinity']}" if result.get("vicinity") else name
            options.append(TransitInfo(mode=map_transit_mode(result.get("types") or []), description=desc))
        return options

    def fetch(self, address: str) -> GeodataInsights:
        point = self.geocode(address)
        pois: List[PointOfInterest] = []
        transit: List[TransitInfo] = []
        try:
            pois = self._points_of_interest(point)
        except GeodataError as exc:
            _LOGGER.warning("[GEODATA] POI search failed for %s: %s", address, exc)
        try:
            transit = self._transit(point)
        except GeodataError as exc:
            _LOGGER.warning("[GEODATA] Transit search failed for %s: %s", address, exc)
        return GeodataInsights(points_of_interest=pois, transit=transit)


def build_provider(config: Optional[Config] = None, cache: Optional[TTLCache] = None) -> GeodataProvider:
    """Pick Places or static data from config and wrap it in a cache when a TTL is set."""
    cfg = config or load_config()
    base: GeodataProvider
    if cfg.google_places_api_key:
        base = GooglePlacesProvider(cfg.google_places_api_key)
        _LOGGER.info("[GEODATA] Using Google Places provider.")
    else:
        base = StaticGeodataProvider()
        _LOGGER.info("[GEODATA] No Places API key; using static sample provider.")
    if cache is None and cfg.geodata_cache_ttl_s > 0:
        cache = TTLCache(cfg.geodata_cache_ttl_s)
    if cache is None:
        return base
    return CachedGeodataProvider(base, cache)


__all__ = [
    "CachedGeodataProvider",
    "GeodataError",
    "GeodataProvider",
    "GooglePlacesProvider",
    "StaticGeodataProvider",
    "TTLCache",
    "build_provider",
    "distance_meters",
    "format_distance",
    "normalize_address",
]
