"""Neighbourhood summaries built from point-of-interest and transit records.

Everything here is pure: the same ordered input always renders the same text.
Two renderings are produced from the grouped data:

* ``format_summary`` - at most three selling sentences for heuristic copy.
* ``format_prompt_lines`` - one bullet per non-empty category for prompts.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from .types import GeodataInsights, PointOfInterest, TransitInfo

_LOGGER = logging.getLogger(__name__)

CATEGORIES = ("grocery", "restaurant", "cafe", "park", "gym", "health", "service", "parking", "school", "other")

MAX_SUMMARY_SENTENCES = 3

AREA_FALLBACK_TEXT = (
    "Området erbjuder närhet till vardagens alla måsten, med service, grönområden "
    "och kommunikationer inom bekvämt gångavstånd."
)

_CATEGORY_MAP: Dict[str, str] = {
    "matbutik": "grocery",
    "grocery": "grocery",
    "supermarket": "grocery",
    "restaurang": "restaurant",
    "restaurant": "restaurant",
    "café": "cafe",
    "cafe": "cafe",
    "kafé": "cafe",
    "park": "park",
    "gym": "gym",
    "apotek": "health",
    "pharmacy": "health",
    "sjukhus": "health",
    "hospital": "health",
    "vårdcentral": "health",
    "bensinstation": "service",
    "gas_station": "service",
    "butik": "service",
    "store": "service",
    "shopping_mall": "service",
    "parkering": "parking",
    "parking": "parking",
    "skola": "school",
    "school": "school",
    "förskola": "school",
    "forskola": "school",
}


# ---------------------------------------------------------------------------
# Grouping helpers
# ---------------------------------------------------------------------------

def normalize_category(category: Optional[str]) -> str:
    """Map a provider category onto the fixed label set; unknown labels become "other"."""
    key = (category or "").strip().lower()
    return _CATEGORY_MAP.get(key, "other")


def group_by_category(pois: Iterable[PointOfInterest]) -> Dict[str, List[str]]:
    """Group "name distance" entries by normalised category, preserving input order."""
    grouped: Dict[str, List[str]] = {}
    for poi in pois or []:
        entry = " ".join(part for part in ((poi.name or "").strip(), (poi.distance or "").strip()) if part)
        if entry:
            grouped.setdefault(normalize_category(poi.category), []).append(entry)
    return grouped


def join_names(items: Iterable[str], limit: int = 0) -> str:
    """Render ["A", "B", "C"] as "A, B och C", keeping at most ``limit`` items."""
    filtered = [item.strip() for item in items if item and item.strip()]
    if not filtered:
        return ""
    if limit > 0:
        filtered = filtered[:limit]
    if len(filtered) == 1:
        return filtered[0]
    return f"{', '.join(filtered[:-1])} och {filtered[-1]}"


def _transit_entry(option: TransitInfo) -> str:
    mode = (option.mode or "").strip()
    desc = (option.description or "").strip()
    if mode and desc:
        return f"{mode} ({desc})"
    return desc or mode


def transit_highlights(transit: Iterable[TransitInfo], limit: int) -> str:
    entries = [_transit_entry(option) for option in list(transit or [])[:limit]]
    return join_names(entries, limit)


# ---------------------------------------------------------------------------
# Renderings
# ---------------------------------------------------------------------------

def format_summary(insights: Optional[GeodataInsights]) -> str:
    """Short prose summary of the area; empty when there is nothing to say."""
    if insights is None or insights.is_empty:
        return ""

    grouped = group_by_category(insights.points_of_interest)
    sentences: List[str] = []

    # Everyday service, transit, schools and green space sell first.
    names = join_names(grouped.get("grocery", []), 2)
    if names:
        sentences.append(f"Matbutiker som {names} ligger nära för snabba ärenden.")
    names = transit_highlights(insights.transit, 2)
    if names:
        sentences.append(f"Kommunikationerna är smidiga med {names}.")
    names = join_names(grouped.get("school", []), 2)
    if names:
        sentences.append(f"Skolor och förskolor finns i närheten, bland annat {names}.")
    names = join_names(grouped.get("park", []), 2)
    if names:
        sentences.append(f"Gröna platser som {names} ger sköna andrum.")

    if len(sentences) < MAX_SUMMARY_SENTENCES:
        names = join_names(grouped.get("restaurant", []) + grouped.get("cafe", []), 2)
        if names:
            sentences.append(f"Restauranger och kaféer som {names} finns runt knuten.")
    if len(sentences) < MAX_SUMMARY_SENTENCES:
        names = join_names(grouped.get("service", []), 1)
        if names:
            sentences.append(f"Service är lättillgänglig vid {names}.")

    return " ".join(sentences[:MAX_SUMMARY_SENTENCES]).strip()


_PROMPT_LINES = (
    ("Matbutiker", ("grocery",), 3),
    ("Restauranger/kaféer", ("restaurant", "cafe"), 3),
    ("Skolor/förskolor", ("school",), 3),
    ("Parker/natur", ("park",), 3),
    ("Träning", ("gym",), 2),
    ("Vård/apotek", ("health",), 2),
    ("Service/ärenden", ("service",), 3),
    ("Parkering/påfarter", ("parking",), 1),
    ("Övrigt", ("other",), 1),
)


def format_prompt_lines(insights: Optional[GeodataInsights]) -> str:
    """Bullet lines ("- Label: names") for prompt injection, transit last."""
    if insights is None or insights.is_empty:
        return ""
    grouped = group_by_category(insights.points_of_interest)
    lines: List[str] = []
    for label, categories, limit in _PROMPT_LINES:
        merged: List[str] = []
        for category in categories:
            merged.extend(grouped.get(category, []))
        names = join_names(merged, limit)
        if names:
            lines.append(f"- {label}: {names}")
    names = transit_highlights(insights.transit, 3)
    if names:
        lines.append(f"- Kommunikationer: {names}")
    return "\n".join(lines).strip()


def area_copy(insights: Optional[GeodataInsights]) -> str:
    """Area paragraph for heuristic copy, falling back to generic filler."""
    summary = format_summary(insights)
    if not summary:
        _LOGGER.debug("[GEODATA] No points of interest or transit; using area filler.")
        return AREA_FALLBACK_TEXT
    return summary


__all__ = [
    "AREA_FALLBACK_TEXT",
    "CATEGORIES",
    "area_copy",
    "format_prompt_lines",
    "format_summary",
    "group_by_category",
    "join_names",
    "normalize_category",
    "transit_highlights",
]
