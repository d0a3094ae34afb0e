"""Tolerant parsing of model replies into sections."""
from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import Any, List, Mapping, Optional

from .errors import RecoveryFailed
from .types import Section, section_from_payload

_LOGGER = logging.getLogger(__name__)


def _decode(raw: str) -> Optional[Any]:
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return None


def _brace_span(raw: str) -> Optional[str]:
    """Text between the first "{" and the last "}", inclusive."""
    start = raw.find("{")
    end = raw.rfind("}")
    if start < 0 or end <= start:
        return None
    return raw[start:end + 1]


def _candidates(raw: str) -> List[Any]:
    decoded = [_decode(raw)]
    span = _brace_span(raw)
    if span is not None and span != raw.strip():
        decoded.append(_decode(span))
    return decoded


def _sections_from(envelope: Any) -> List[Section]:
    if not isinstance(envelope, Mapping):
        return []
    items = envelope.get("sections")
    if not isinstance(items, list):
        return []
    sections: List[Section] = []
    seen = set()
    for item in items:
        if not isinstance(item, Mapping):
            continue
        section = section_from_payload(item)
        if not section.slug or section.slug in seen:
            continue
        seen.add(section.slug)
        sections.append(section)
    return sections


def recover_sections(raw: str) -> List[Section]:
    """Parse a {"sections": [...]} envelope, tolerating prose around the JSON."""
    text = raw or ""
    for envelope in _candidates(text):
        sections = _sections_from(envelope)
        if sections:
            return sections
    _LOGGER.warning("[RECOVERY] No sections recovered from reply: %s", text[:200])
    raise RecoveryFailed("could not parse sections from response", raw=text)


def _text_field(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    return value if isinstance(value, str) else ""


def recover_section(raw: str, fallback: Section) -> Section:
    """Merge a {"title", "content"} reply over ``fallback``; absent fields keep their value."""
    text = raw or ""
    for payload in _candidates(text):
        if not isinstance(payload, Mapping):
            continue
        title = _text_field(payload, "title").strip()
        content = _text_field(payload, "content").strip()
        if not title and not content:
            continue
        return replace(
            fallback,
            title=title or fallback.title,
            content=content or fallback.content,
        )
    _LOGGER.warning("[RECOVERY] Rewrite reply had no title or content: %s", text[:200])
    raise RecoveryFailed("could not parse section from response", raw=text)


__all__ = ["recover_section", "recover_sections"]
