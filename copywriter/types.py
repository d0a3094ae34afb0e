"""Listing fact model and generated copy types shared across the copywriter."""
from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .config import DEFAULT_LANGUAGE_VARIANT

_LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Geodata
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PointOfInterest:
    name: str
    category: str = ""
    distance: str = ""


@dataclass(frozen=True)
class TransitInfo:
    mode: str = ""
    description: str = ""


@dataclass(frozen=True)
class GeodataInsights:
    """Neighbourhood context: ordered points of interest and transit options."""

    points_of_interest: List[PointOfInterest] = field(default_factory=list)
    transit: List[TransitInfo] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.points_of_interest and not self.transit


# ---------------------------------------------------------------------------
# Style profile and structured details
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StyleProfile:
    """Reusable tone-of-voice constraints attachable to a listing."""

    name: str
    id: str = ""
    description: str = ""
    tone: str = ""
    guidelines: str = ""
    example_texts: List[str] = field(default_factory=list)
    forbidden_words: List[str] = field(default_factory=list)
    custom_model: str = ""


@dataclass(frozen=True)
class MetaInfo:
    desired_word_count: int = 0
    tone: str = ""
    target_audience: str = ""
    language_variant: str = ""
    style_profile_id: str = ""


@dataclass(frozen=True)
class PropertyInfo:
    address: str = ""
    postal_code: str = ""
    city: str = ""
    area: str = ""
    property_type: str = ""
    tenure: str = ""
    rooms: float = 0.0
    living_area: float = 0.0
    floor: str = ""
    elevator: bool = False
    year_built: int = 0
    condition: str = ""
    plan_summary: str = ""
    kitchen_description: str = ""
    bedroom_description: str = ""
    living_description: str = ""
    bathroom_description: str = ""
    outdoor_description: str = ""
    storage_description: str = ""
    energy_class: str = ""
    fee_per_month: int = 0
    list_price: int = 0


@dataclass(frozen=True)
class AssociationInfo:
    name: str = ""
    financial_summary: str = ""
    common_areas: str = ""
    renovations_done: str = ""
    renovations_planned: str = ""


@dataclass(frozen=True)
class AreaInfo:
    summary: str = ""
    transport: str = ""
    service: str = ""
    schools: str = ""
    nature_leisure: str = ""
    other: str = ""


@dataclass(frozen=True)
class Details:
    """Richer structured brief; its presence selects the long-form premium path."""

    meta: MetaInfo = field(default_factory=MetaInfo)
    property: PropertyInfo = field(default_factory=PropertyInfo)
    association: AssociationInfo = field(default_factory=AssociationInfo)
    area: AreaInfo = field(default_factory=AreaInfo)
    advantages: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Listing fact model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Listing:
    """Read-only snapshot of one property and its marketing intent."""

    address: str
    neighborhood: str = ""
    city: str = ""
    property_type: str = ""
    condition: str = ""
    balcony: bool = False
    floor: str = ""
    association: str = ""
    tone: str = ""
    target_audience: str = ""
    highlights: List[str] = field(default_factory=list)
    fee: int = 0
    living_area: float = 0.0
    rooms: float = 0.0
    details: Details = field(default_factory=Details)
    insights: GeodataInsights = field(default_factory=GeodataInsights)
    style_profile: Optional[StyleProfile] = None

    @property
    def search_address(self) -> str:
        """Address string used for geodata lookups ("street, city")."""
        parts = [part.strip() for part in (self.address, self.city) if part and part.strip()]
        return ", ".join(parts)

    def to_payload(self) -> Dict[str, Any]:
        """Return a JSON-serialisable representation."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Generated copy
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Section:
    """A named, titled block of generated copy."""

    slug: str
    title: str = ""
    content: str = ""
    highlights: List[str] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"slug": self.slug, "title": self.title, "content": self.content}
        if self.highlights:
            payload["highlights"] = list(self.highlights)
        return payload


def compose_full_copy(sections: Iterable[Section]) -> str:
    """Join titles and bodies with blank lines, skipping sections without content."""
    parts: List[str] = []
    for section in sections:
        if not section.content.strip():
            continue
        if section.title:
            parts.append(f"{section.title}\n{section.content}")
        else:
            parts.append(section.content)
    return "\n\n".join(parts)


@dataclass(frozen=True)
class GenerationResult:
    sections: List[Section]
    full_copy: str = ""
    fallback_used: bool = False

    @classmethod
    def from_sections(cls, sections: List[Section], *, fallback_used: bool = False) -> "GenerationResult":
        return cls(sections=list(sections), full_copy=compose_full_copy(sections), fallback_used=fallback_used)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "sections": [section.to_payload() for section in self.sections],
            "full_copy": self.full_copy,
            "fallback_used": self.fallback_used,
        }


# ---------------------------------------------------------------------------
# Payload coercion
# ---------------------------------------------------------------------------

def _str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _float(value: Any) -> float:
    if value in (None, ""):
        return 0.0
    if isinstance(value, str):
        value = value.replace(",", ".").strip()
    try:
        result = float(value)
    except (TypeError, ValueError):
        _LOGGER.debug("Unable to coerce %r to float; using 0.", value)
        return 0.0
    if not math.isfinite(result):
        _LOGGER.debug("Non-finite number %r; using 0.", value)
        return 0.0
    return result


def _int(value: Any) -> int:
    return int(round(_float(value)))


def _bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "ja"}
    return bool(value)


def _str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    return [text for text in (_str(item) for item in value) if text]


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def insights_from_payload(payload: Any) -> GeodataInsights:
    data = _mapping(payload)
    if "geodata" in data:
        data = _mapping(data.get("geodata"))
    pois = [
        PointOfInterest(name=_str(item.get("name")), category=_str(item.get("category")), distance=_str(item.get("distance")))
        for item in data.get("points_of_interest") or []
        if isinstance(item, Mapping)
    ]
    transit = [
        TransitInfo(mode=_str(item.get("mode")), description=_str(item.get("description")))
        for item in data.get("transit") or []
        if isinstance(item, Mapping)
    ]
    return GeodataInsights(points_of_interest=pois, transit=transit)


def style_profile_from_payload(payload: Any) -> Optional[StyleProfile]:
    data = _mapping(payload)
    if not data:
        return None
    return StyleProfile(
        id=_str(data.get("id")),
        name=_str(data.get("name")),
        description=_str(data.get("description")),
        tone=_str(data.get("tone")),
        guidelines=_str(data.get("guidelines")),
        example_texts=_str_list(data.get("example_texts")),
        forbidden_words=_str_list(data.get("forbidden_words")),
        custom_model=_str(data.get("custom_model")),
    )


def details_from_payload(payload: Any) -> Details:
    data = _mapping(payload)
    meta = _mapping(data.get("meta"))
    prop = _mapping(data.get("property"))
    assoc = _mapping(data.get("association"))
    area = _mapping(data.get("area"))
    return Details(
        meta=MetaInfo(
            desired_word_count=_int(meta.get("desired_word_count")),
            tone=_str(meta.get("tone")),
            target_audience=_str(meta.get("target_audience")),
            language_variant=_str(meta.get("language_variant")),
            style_profile_id=_str(meta.get("style_profile_id")),
        ),
        property=PropertyInfo(
            address=_str(prop.get("address")),
            postal_code=_str(prop.get("postal_code")),
            city=_str(prop.get("city")),
            area=_str(prop.get("area")),
            property_type=_str(prop.get("property_type")),
            tenure=_str(prop.get("tenure")),
            rooms=_float(prop.get("rooms")),
            living_area=_float(prop.get("living_area")),
            floor=_str(prop.get("floor")),
            elevator=_bool(prop.get("elevator")),
            year_built=_int(prop.get("year_built")),
            condition=_str(prop.get("condition")),
            plan_summary=_str(prop.get("plan_summary")),
            kitchen_description=_str(prop.get("kitchen_description")),
            bedroom_description=_str(prop.get("bedroom_description")),
            living_description=_str(prop.get("living_description")),
            bathroom_description=_str(prop.get("bathroom_description")),
            outdoor_description=_str(prop.get("outdoor_description")),
            storage_description=_str(prop.get("storage_description")),
            energy_class=_str(prop.get("energy_class")),
            fee_per_month=_int(prop.get("fee_per_month")),
            list_price=_int(prop.get("list_price")),
        ),
        association=AssociationInfo(
            name=_str(assoc.get("name")),
            financial_summary=_str(assoc.get("financial_summary")),
            common_areas=_str(assoc.get("common_areas")),
            renovations_done=_str(assoc.get("renovations_done")),
            renovations_planned=_str(assoc.get("renovations_planned")),
        ),
        area=AreaInfo(
            summary=_str(area.get("summary")),
            transport=_str(area.get("transport")),
            service=_str(area.get("service")),
            schools=_str(area.get("schools")),
            nature_leisure=_str(area.get("nature_leisure")),
            other=_str(area.get("other")),
        ),
        advantages=_str_list(data.get("advantages")),
    )


def listing_from_payload(payload: Mapping[str, Any]) -> Listing:
    """Coerce a caller-supplied mapping into a Listing; unknown keys are ignored."""
    data = _mapping(payload)
    return Listing(
        address=_str(data.get("address")),
        neighborhood=_str(data.get("neighborhood")),
        city=_str(data.get("city")),
        property_type=_str(data.get("property_type")),
        condition=_str(data.get("condition")),
        balcony=_bool(data.get("balcony")),
        floor=_str(data.get("floor")),
        association=_str(data.get("association")),
        tone=_str(data.get("tone")),
        target_audience=_str(data.get("target_audience")),
        highlights=_str_list(data.get("highlights")),
        fee=_int(data.get("fee")),
        living_area=_float(data.get("living_area")),
        rooms=_float(data.get("rooms")),
        details=details_from_payload(data.get("details")),
        insights=insights_from_payload(data.get("insights")),
        style_profile=style_profile_from_payload(data.get("style_profile")),
    )


def section_from_payload(payload: Mapping[str, Any]) -> Section:
    data = _mapping(payload)
    return Section(
        slug=_str(data.get("slug")),
        title=_str(data.get("title")),
        content=str(data.get("content") or ""),
        highlights=_str_list(data.get("highlights")),
    )


def hydrate_details(listing: Listing) -> Listing:
    """Return a copy whose nested details mirror the legacy flat fields.

    Fields that select the premium generation path (nested address, advantages,
    meta tone and desired word count) are never filled in here.
    """
    meta = listing.details.meta
    prop = listing.details.property
    meta = replace(
        meta,
        target_audience=meta.target_audience or listing.target_audience,
        language_variant=meta.language_variant or DEFAULT_LANGUAGE_VARIANT,
    )
    prop = replace(
        prop,
        city=prop.city or listing.city,
        area=prop.area or listing.neighborhood,
        property_type=prop.property_type or listing.property_type,
        rooms=prop.rooms or listing.rooms,
        living_area=prop.living_area or listing.living_area,
        floor=prop.floor or listing.floor,
        condition=prop.condition or listing.condition,
        fee_per_month=prop.fee_per_month or listing.fee,
    )
    return replace(listing, details=replace(listing.details, meta=meta, property=prop))


__all__ = [
    "AreaInfo",
    "AssociationInfo",
    "Details",
    "GenerationResult",
    "GeodataInsights",
    "Listing",
    "MetaInfo",
    "PointOfInterest",
    "PropertyInfo",
    "Section",
    "StyleProfile",
    "TransitInfo",
    "compose_full_copy",
    "details_from_payload",
    "hydrate_details",
    "insights_from_payload",
    "listing_from_payload",
    "section_from_payload",
    "style_profile_from_payload",
]
