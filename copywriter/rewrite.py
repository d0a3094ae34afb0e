"""Local rewrite transforms and the length band requested from the model."""
from __future__ import annotations

import logging
from typing import Tuple

from .intents import ADJUSTMENT_NOTES, classify_instruction
from .utils.text import count_words, split_sentences

_LOGGER = logging.getLogger(__name__)

MAX_SHORT_SENTENCES = 2
LENGTH_TOLERANCE_PCT = 15


def apply_local_rewrite(base: str, instruction: str) -> str:
    """Apply an instruction without a model.

    Brevity is enforced by keeping the first two sentences. Tone and length
    adjustments are not performed; a sentence naming the adjustment is
    appended after a blank line instead.
    """
    cleaned = (base or "").strip()
    intent = classify_instruction(instruction)

    if intent.shorten:
        sentences = split_sentences(cleaned)
        if sentences:
            cleaned = " ".join(sentences[:MAX_SHORT_SENTENCES])

    if intent.adjustment is None:
        return cleaned
    note = ADJUSTMENT_NOTES[intent.adjustment]
    return f"{cleaned}\n\n{note}" if cleaned else note


def length_band(original_words: int) -> Tuple[int, int]:
    """(min, max) word counts for a rewrite: 85 % to 115 % of the original."""
    if original_words <= 0:
        return 0, 0
    low = -(-original_words * (100 - LENGTH_TOLERANCE_PCT) // 100)
    high = original_words * (100 + LENGTH_TOLERANCE_PCT) // 100
    return low, max(low, high)


def within_length_band(original: str, rewritten: str) -> bool:
    original_words = count_words(original)
    if original_words == 0:
        return True
    low, high = length_band(original_words)
    return low <= count_words(rewritten) <= high


def log_length_drift(slug: str, original: str, rewritten: str) -> None:
    """Advisory check after a model rewrite; drift is logged, never corrected."""
    if not within_length_band(original, rewritten):
        low, high = length_band(count_words(original))
        _LOGGER.info(
            "[GENERATOR] Rewrite of %s landed at %d words (requested %d-%d).",
            slug, count_words(rewritten), low, high,
        )


__all__ = ["apply_local_rewrite", "length_band", "log_length_drift", "within_length_band"]
