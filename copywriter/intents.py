"""
Classification of free-text editing instructions for local rewrites.
Scans the instruction once and reports whether it asks for brevity plus at
most one tone or length adjustment, so the rewrite policy can be tested alone.
"""

from __future__ import annotations
import enum
import logging
import re
from dataclasses import dataclass
from typing import Optional, Tuple

_LOGGER = logging.getLogger(__name__)


class RewriteIntent(str, enum.Enum):
    SHORTEN = "shorten"
    SALES_TONE = "sales_tone"
    FORMAL = "formal"
    CLARIFY = "clarify"
    LENGTHEN = "lengthen"
    UNRECOGNIZED = "unrecognized"


# ---------------------------------------------------------------------------
# Cue maps (Swedish first, English variants accepted)
# ---------------------------------------------------------------------------

_SHORTEN_CUES = ("kort", "short")

# First match wins; order is the adjustment priority.
_ADJUSTMENT_CUES: Tuple[Tuple[RewriteIntent, Tuple[str, ...]], ...] = (
    (RewriteIntent.SALES_TONE, ("sälj", "sales", "sell")),
    (RewriteIntent.FORMAL, ("formell", "formal")),
    (RewriteIntent.CLARIFY, ("tydlig", "klar", "clear", "clarif")),
    (RewriteIntent.LENGTHEN, ("längre", "longer", "expand")),
)

ADJUSTMENT_NOTES = {
    RewriteIntent.SALES_TONE: "Texten är tonad mer säljande och engagerande.",
    RewriteIntent.FORMAL: "Texten är mer formell och rak.",
    RewriteIntent.CLARIFY: "Språket är förtydligat utan utfyllnad.",
    RewriteIntent.LENGTHEN: "Texten är utvecklad med mer kontext.",
}

_WS_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class InstructionIntent:
    shorten: bool = False
    adjustment: Optional[RewriteIntent] = None

    @property
    def tags(self) -> Tuple[RewriteIntent, ...]:
        tags = []
        if self.shorten:
            tags.append(RewriteIntent.SHORTEN)
        if self.adjustment is not None:
            tags.append(self.adjustment)
        return tuple(tags) or (RewriteIntent.UNRECOGNIZED,)

    @property
    def recognized(self) -> bool:
        return self.shorten or self.adjustment is not None


def classify_instruction(text: Optional[str]) -> InstructionIntent:
    """Map an editing instruction onto brevity plus one optional adjustment."""
    lowered = _WS_RE.sub(" ", (text or "").lower())
    shorten = any(cue in lowered for cue in _SHORTEN_CUES)
    adjustment: Optional[RewriteIntent] = None
    for intent, cues in _ADJUSTMENT_CUES:
        if any(cue in lowered for cue in cues):
            adjustment = intent
            break
    result = InstructionIntent(shorten=shorten, adjustment=adjustment)
    _LOGGER.debug("Instruction %r classified as %s", text, [tag.value for tag in result.tags])
    return result


__all__ = ["ADJUSTMENT_NOTES", "InstructionIntent", "RewriteIntent", "classify_instruction"]
