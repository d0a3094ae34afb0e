"""Copy generation strategies: heuristic templates, model-backed and the fallback decorator."""
from __future__ import annotations

import abc
import logging
import threading
from dataclasses import replace
from typing import Dict, List, Optional

from .config import DEFAULT_TONE, Config, load_config
from .errors import CompletionFailed, RecoveryFailed, ValidationFailed
from .geodata import area_copy, format_summary
from .llm import ChatClient, ChatMessage, OpenAIChatClient, call_with_cancellation
from .prompts import (
    REWRITE_SYSTEM_PROMPT,
    SECTION_LAYOUT,
    build_generation_prompts,
    build_premium_prompts,
    build_rewrite_prompt,
    desired_word_count,
)
from .recovery import recover_section, recover_sections
from .rewrite import apply_local_rewrite, log_length_drift
from .types import Details, GenerationResult, Listing, Section
from .utils.cleaners import sanitize_content
from .utils.text import ensure_period, format_rooms, or_default

_LOGGER = logging.getLogger(__name__)

PREMIUM_SLUG = "ad"
PREMIUM_TITLE = "Annons"
FULL_AD_SLUG = "main"


class Generator(abc.ABC):
    """Produces sections for a listing and rewrites single sections on request."""

    @abc.abstractmethod
    def generate(self, listing: Listing, *, cancel: Optional[threading.Event] = None) -> GenerationResult:
        ...

    @abc.abstractmethod
    def rewrite(
        self,
        listing: Listing,
        section: Section,
        instruction: str,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> Section:
        ...


# ---------------------------------------------------------------------------
# Heuristic templates
# ---------------------------------------------------------------------------

def default_tone(tone: str) -> str:
    return or_default(tone, DEFAULT_TONE).strip()


def describe_rooms(rooms: float, area: float) -> str:
    if rooms > 0 and area > 0:
        return f"{format_rooms(rooms)} rum över ca {area:.0f} kvm"
    if rooms > 0:
        return f"{format_rooms(rooms)} rum med flexibel yta"
    if area > 0:
        return f"funktionella {area:.0f} kvm"
    return "välbalanserad planlösning"


def _intro_copy(listing: Listing) -> str:
    parts = [f"Välkommen till {listing.address}, där en {default_tone(listing.tone).lower()} känsla möter en trivsam planlösning."]
    if listing.living_area > 0 and listing.rooms > 0:
        parts.append(f"Här får du ca {listing.living_area:g} kvm fördelade på {format_rooms(listing.rooms)} ljusa rum.")
    if listing.balcony:
        parts.append("Bostaden har egen balkong.")
    if listing.highlights:
        parts.append(f"Highlights: {', '.join(listing.highlights)}.")
    return " ".join(parts)


def _hall_copy(listing: Listing) -> str:
    text = (
        "Entrén öppnar upp mot en välkomnande hall med bra förvaring och en tydlig "
        "siktlinje mot hemmets sociala delar."
    )
    if listing.target_audience:
        text += f" Perfekt anpassat för {listing.target_audience.lower()}."
    return text


def _kitchen_copy(listing: Listing) -> str:
    return (
        "Köket bjuder på generösa arbetsytor, tidlösa materialval och plats för många middagar med vänner. "
        "Här finns både vardagsfunktion och det lilla extra som får bostaden att sticka ut."
    )


def _living_copy(listing: Listing) -> str:
    return (
        "Vardagsrummet är hemmets naturliga mittpunkt med stora fönsterpartier och mjukt ljusinsläpp dagen lång. "
        "Här ryms både soffgrupp, läshörna och favoritmöbeln utan att kompromissa med rymden."
    )


def _area_copy(listing: Listing) -> str:
    return area_copy(listing.insights)


_TEMPLATES = {
    "intro": _intro_copy,
    "hall": _hall_copy,
    "kitchen": _kitchen_copy,
    "living": _living_copy,
    "area": _area_copy,
}


def _key_points(listing: Listing) -> List[str]:
    points: List[str] = []
    if listing.condition:
        points.append(f"skick: {listing.condition.lower()}")
    if listing.balcony:
        points.append("balkong/uteplats")
    if listing.floor:
        points.append(f"våning {listing.floor}")
    if listing.association and listing.fee > 0:
        points.append(f"förening {listing.association}, avgift ca {listing.fee} kr/mån")
    elif listing.association:
        points.append(f"förening {listing.association}")
    elif listing.fee > 0:
        points.append(f"avgift ca {listing.fee} kr/mån")
    if listing.highlights:
        points.append(f"plus: {', '.join(listing.highlights)}")
    return points


def build_full_ad(listing: Listing) -> str:
    """Single-paragraph ad used when a rewrite targets a section without a body."""
    location = ", ".join(part for part in (listing.neighborhood, listing.city) if part)
    opening = f"Välkommen till {listing.address}"
    if location:
        opening += f" i {location}"
    opening += (
        f", en {default_tone(listing.tone).lower()} {or_default(listing.property_type, 'bostad').lower()}"
        f" med {describe_rooms(listing.rooms, listing.living_area)}."
    )
    parts = [opening]
    points = _key_points(listing)
    if points:
        parts.append(f"Nycklar: {'; '.join(points)}.")
    summary = format_summary(listing.insights)
    if summary:
        parts.append(f"Område: {ensure_period(summary)}")
    return sanitize_content(" ".join(parts))


class HeuristicGenerator(Generator):
    """Deterministic template copy; makes no outbound calls and never fails."""

    def generate(self, listing: Listing, *, cancel: Optional[threading.Event] = None) -> GenerationResult:
        sections = []
        for slug, title in SECTION_LAYOUT:
            content = sanitize_content(_TEMPLATES[slug](listing))
            highlights = list(listing.highlights) if slug == "intro" else []
            sections.append(Section(slug=slug, title=title, content=content, highlights=highlights))
        return GenerationResult.from_sections(sections)

    def rewrite(
        self,
        listing: Listing,
        section: Section,
        instruction: str,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> Section:
        base = section.content if section.content.strip() else build_full_ad(listing)
        return replace(section, content=sanitize_content(apply_local_rewrite(base, instruction)))


# ---------------------------------------------------------------------------
# Model-backed generation
# ---------------------------------------------------------------------------

def has_premium_details(details: Details) -> bool:
    """Whether the brief carries the richer fields that select long-form copy."""
    if details.property.address:
        return True
    if details.advantages:
        return True
    return details.meta.desired_word_count > 0 or bool(details.meta.tone)


def _messages(system: str, user: str) -> List[ChatMessage]:
    return [ChatMessage(role="system", content=system), ChatMessage(role="user", content=user)]


def _dedupe(sections: List[Section]) -> List[Section]:
    seen: Dict[str, Section] = {}
    for section in sections:
        seen.setdefault(section.slug, section)
    return list(seen.values())


class ModelBackedGenerator(Generator):
    """Delegates copy to a chat-completion client and recovers its replies.

    Failures surface as CompletionFailed or RecoveryFailed; wrap the
    generator in FallbackGenerator to substitute heuristic copy instead.
    """

    def __init__(self, client: ChatClient, config: Optional[Config] = None) -> None:
        self.client = client
        self.config = config or load_config()

    def _complete(
        self,
        messages: List[ChatMessage],
        temperature: float,
        listing: Listing,
        cancel: Optional[threading.Event],
    ) -> str:
        profile = listing.style_profile
        model = profile.custom_model if profile is not None and profile.custom_model else None
        return call_with_cancellation(
            lambda: self.client.complete(messages, temperature, model=model),
            cancel,
            self.config.request_timeout_s,
        )

    def _premium(self, listing: Listing, cancel: Optional[threading.Event]) -> Optional[GenerationResult]:
        word_count = desired_word_count(listing.details)
        system, user = build_premium_prompts(listing, word_count)
        try:
            raw = self._complete(_messages(system, user), self.config.premium_temperature, listing, cancel)
        except CompletionFailed as exc:
            _LOGGER.warning("[GENERATOR] Premium generation failed, trying structured sections: %s", exc)
            return None
        content = sanitize_content(raw.strip())
        if not content:
            _LOGGER.warning("[GENERATOR] Premium generation returned no text, trying structured sections.")
            return None
        _LOGGER.info("[GENERATOR] Premium ad generated (%d words requested).", word_count)
        return GenerationResult.from_sections([Section(slug=PREMIUM_SLUG, title=PREMIUM_TITLE, content=content)])

    def generate(self, listing: Listing, *, cancel: Optional[threading.Event] = None) -> GenerationResult:
        if listing is None:
            raise ValidationFailed("A listing is required for generation.")
        if has_premium_details(listing.details):
            result = self._premium(listing, cancel)
            if result is not None:
                return result

        system, user = build_generation_prompts(listing, self.config.max_words)
        raw = self._complete(_messages(system, user), self.config.generation_temperature, listing, cancel)
        sections = [replace(section, content=sanitize_content(section.content)) for section in recover_sections(raw)]
        _LOGGER.info("[GENERATOR] Structured generation produced %d sections.", len(sections))
        return GenerationResult.from_sections(_dedupe(sections))

    def rewrite(
        self,
        listing: Listing,
        section: Section,
        instruction: str,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> Section:
        if not (instruction or "").strip():
            raise ValidationFailed("Rewrite instruction must not be empty.")
        user = build_rewrite_prompt(section, instruction.strip(), listing)
        raw = self._complete(_messages(REWRITE_SYSTEM_PROMPT, user), self.config.rewrite_temperature, listing, cancel)
        updated = recover_section(raw, section)
        updated = replace(updated, content=sanitize_content(updated.content))
        log_length_drift(section.slug, section.content, updated.content)
        return updated


# ---------------------------------------------------------------------------
# Fallback decorator
# ---------------------------------------------------------------------------

class FallbackGenerator(Generator):
    """Substitutes the fallback's copy when the primary fails to complete or recover.

    Cancellation and validation errors propagate unchanged.
    """

    def __init__(self, primary: Generator, fallback: Optional[Generator] = None) -> None:
        self.primary = primary
        self.fallback = fallback or HeuristicGenerator()

    def generate(self, listing: Listing, *, cancel: Optional[threading.Event] = None) -> GenerationResult:
        try:
            return self.primary.generate(listing, cancel=cancel)
        except (CompletionFailed, RecoveryFailed) as exc:
            _LOGGER.warning("[GENERATOR] Primary generation failed, using fallback copy: %s", exc)
        result = self.fallback.generate(listing, cancel=cancel)
        return replace(result, fallback_used=True)

    def rewrite(
        self,
        listing: Listing,
        section: Section,
        instruction: str,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> Section:
        try:
            return self.primary.rewrite(listing, section, instruction, cancel=cancel)
        except (CompletionFailed, RecoveryFailed) as exc:
            _LOGGER.warning("[GENERATOR] Primary rewrite of %s failed, using fallback: %s", section.slug, exc)
        return self.fallback.rewrite(listing, section, instruction, cancel=cancel)


def build_generator(config: Optional[Config] = None, client: Optional[ChatClient] = None) -> Generator:
    """Model-backed generation with heuristic fallback when a model is configured."""
    cfg = config or load_config()
    if client is None and not cfg.llm_enabled:
        _LOGGER.info("[GENERATOR] LLM disabled or no API key; using heuristic generator.")
        return HeuristicGenerator()
    return FallbackGenerator(ModelBackedGenerator(client or OpenAIChatClient(cfg), cfg))


__all__ = [
    "FallbackGenerator",
    "Generator",
    "HeuristicGenerator",
    "ModelBackedGenerator",
    "build_full_ad",
    "build_generator",
    "has_premium_details",
]
