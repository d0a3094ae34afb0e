"""Small word and sentence helpers shared by the generators and the rewrite engine."""
from __future__ import annotations

import re
from typing import List

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")


def count_words(text: str) -> int:
    """Whitespace-delimited word count."""
    return len((text or "").split())


def split_sentences(text: str) -> List[str]:
    """Split prose into sentences, keeping their terminal punctuation."""
    cleaned = (text or "").strip()
    if not cleaned:
        return []
    return [part.strip() for part in _SENTENCE_SPLIT_RE.split(cleaned) if part.strip()]


def ensure_period(text: str) -> str:
    trimmed = (text or "").strip()
    if not trimmed:
        return ""
    if trimmed[-1] in ".!?":
        return trimmed
    return trimmed + "."


def format_rooms(rooms: float) -> str:
    """Render 2.0 as "2" and 1.5 as "1.5"."""
    if not rooms:
        return ""
    if float(rooms).is_integer():
        return str(int(rooms))
    return f"{rooms:.1f}"


def or_default(value: str, fallback: str) -> str:
    return value if (value or "").strip() else fallback


__all__ = ["count_words", "split_sentences", "ensure_period", "format_rooms", "or_default"]
