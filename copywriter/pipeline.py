"""
Orchestration of a generation or rewrite request.
Coerces caller payloads, hydrates nested details, attaches the style profile,
enriches the listing with geodata and hands it to the configured generator.
"""

from __future__ import annotations
import logging
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import SectionNotFound, ValidationFailed
from .generator import FULL_AD_SLUG, Generator
from .places import GeodataProvider
from .profiles import StyleProfileStore
from .types import GenerationResult, Listing, Section, compose_full_copy, hydrate_details, listing_from_payload

_LOGGER = logging.getLogger(__name__)

HISTORY_SOURCES = ("generate", "rewrite")


def normalize_slug(slug: str) -> str:
    return (slug or "").strip().lower()


def find_section(sections: Sequence[Section], slug: str) -> int:
    """Index of the section matching ``slug``; "main" falls back to the first section."""
    wanted = normalize_slug(slug)
    if not wanted:
        raise ValidationFailed("A section slug is required.")
    for idx, section in enumerate(sections):
        if normalize_slug(section.slug) == wanted:
            return idx
    if wanted == FULL_AD_SLUG and sections:
        return 0
    raise SectionNotFound(f"Section {slug!r} not found.")


def record_history(
    history: Mapping[str, List[Dict[str, Any]]],
    section: Section,
    source: str,
    *,
    instruction: str = "",
    notes: str = "",
    now: Optional[datetime] = None,
) -> Dict[str, List[Dict[str, Any]]]:
    """Return a copy of ``history`` with a snapshot of ``section`` appended under its slug."""
    if source not in HISTORY_SOURCES:
        raise ValidationFailed(f"Unknown history source {source!r}.")
    entry = {
        "title": section.title,
        "content": section.content,
        "source": source,
        "instruction": instruction,
        "notes": notes,
        "created_at": (now or datetime.now(timezone.utc)).isoformat(),
    }
    updated = {slug: list(entries) for slug, entries in history.items()}
    updated.setdefault(section.slug, []).append(entry)
    return updated


class ListingPipeline:
    def __init__(
        self,
        generator: Generator,
        geodata_provider: Optional[GeodataProvider] = None,
        profile_store: Optional[StyleProfileStore] = None,
    ) -> None:
        self.generator = generator
        self.geodata_provider = geodata_provider
        self.profile_store = profile_store

    def prepare(self, payload: Mapping[str, Any]) -> Listing:
        """Build the listing snapshot handed to the generator."""
        listing = hydrate_details(listing_from_payload(payload))
        if not listing.address:
            raise ValidationFailed("address is required.")
        listing = self._attach_profile(listing)
        return self._attach_geodata(listing)

    def _attach_profile(self, listing: Listing) -> Listing:
        profile_id = listing.details.meta.style_profile_id
        if listing.style_profile is not None or not profile_id or self.profile_store is None:
            return listing
        profile = self.profile_store.get(profile_id)
        if profile is None:
            _LOGGER.info("[PIPELINE] Style profile %s not found; continuing without it.", profile_id)
            return listing
        return replace(listing, style_profile=profile)

    def _attach_geodata(self, listing: Listing) -> Listing:
        if self.geodata_provider is None or not listing.insights.is_empty:
            return listing
        try:
            insights = self.geodata_provider.fetch(listing.search_address)
        except Exception as exc:  # provider failures never block copy
            _LOGGER.warning("[PIPELINE] Geodata lookup failed for %s: %s", listing.search_address, exc)
            return listing
        return replace(listing, insights=insights)

    def generate(
        self, payload: Mapping[str, Any], *, cancel: Optional[threading.Event] = None
    ) -> Tuple[Listing, GenerationResult]:
        listing = self.prepare(payload)
        result = self.generator.generate(listing, cancel=cancel)
        _LOGGER.info(
            "[PIPELINE] Generated %d sections for %s (fallback=%s).",
            len(result.sections), listing.address, result.fallback_used,
        )
        return listing, result

    def rewrite(
        self,
        listing: Listing,
        sections: Sequence[Section],
        slug: str,
        instruction: str,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> Tuple[List[Section], str]:
        idx = find_section(sections, slug)
        updated = self.generator.rewrite(listing, sections[idx], instruction, cancel=cancel)
        result = list(sections)
        result[idx] = updated
        _LOGGER.info("[PIPELINE] Rewrote section %s of %s.", updated.slug, listing.address)
        return result, compose_full_copy(result)


__all__ = ["HISTORY_SOURCES", "ListingPipeline", "find_section", "normalize_slug", "record_history"]
