"""
Configuration utilities for the listing copywriter.
Ensures every environment variable is read once and exposed through an
immutable Config shared by the generators, the geodata providers and the backend.
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

_LOGGER = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Copy defaults
# ---------------------------------------------------------------------------

MAX_TOTAL_WORDS = 225
DEFAULT_PREMIUM_WORDS = 150
DEFAULT_TONE = "varm och familjär"
DEFAULT_LANGUAGE_VARIANT = "svenska_standard"

_TRUTHY = {"1", "true", "yes", "y"}


# ---------------------------------------------------------------------------
# Dataclass Configuration
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Config:
    """Immutable configuration for the copy generation runtime."""

    openai_model: str
    openai_fallback_model: str
    openai_api_key: Optional[str]
    use_llm: bool
    max_words: int = MAX_TOTAL_WORDS
    generation_temperature: float = 0.4
    rewrite_temperature: float = 0.5
    premium_temperature: float = 0.9
    request_timeout_s: float = 60.0
    geodata_cache_ttl_s: float = 1800.0
    google_places_api_key: Optional[str] = None
    log_level: str = "INFO"

    @property
    def llm_enabled(self) -> bool:
        return self.use_llm and bool(self.openai_api_key)


_cached_config: Optional[Config] = None


# ---------------------------------------------------------------------------
# Environment Handling
# ---------------------------------------------------------------------------

def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        _LOGGER.warning("Ignoring malformed %s=%r; using %s", name, raw, default)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        _LOGGER.warning("Ignoring malformed %s=%r; using %s", name, raw, default)
        return default


def load_config(refresh: bool = False) -> Config:
    """
    Load configuration from environment and cache the result.
    Parameters
    ----------
    refresh : bool
        If True, re-read environment variables and reinitialize Config.
    """
    global _cached_config
    if _cached_config is not None and not refresh:
        return _cached_config

    load_dotenv(override=False)

    openai_model = os.getenv("COPYWRITER_OPENAI_MODEL", "gpt-4o-mini").strip()
    openai_fallback_model = os.getenv("COPYWRITER_OPENAI_FALLBACK_MODEL", "gpt-4o").strip()
    openai_api_key = os.getenv("OPENAI_API_KEY")
    use_llm = os.getenv("COPYWRITER_USE_LLM", "true").strip().lower() in _TRUTHY

    max_words = _env_int("COPYWRITER_MAX_WORDS", MAX_TOTAL_WORDS)
    if max_words <= 0 or max_words > MAX_TOTAL_WORDS:
        _LOGGER.warning("COPYWRITER_MAX_WORDS must be within 1..%d; clamping.", MAX_TOTAL_WORDS)
        max_words = min(max(max_words, 1), MAX_TOTAL_WORDS)

    _cached_config = Config(
        openai_model=openai_model,
        openai_fallback_model=openai_fallback_model,
        openai_api_key=openai_api_key,
        use_llm=use_llm,
        max_words=max_words,
        generation_temperature=_env_float("COPYWRITER_GENERATION_TEMPERATURE", 0.4),
        rewrite_temperature=_env_float("COPYWRITER_REWRITE_TEMPERATURE", 0.5),
        premium_temperature=_env_float("COPYWRITER_PREMIUM_TEMPERATURE", 0.9),
        request_timeout_s=_env_float("COPYWRITER_REQUEST_TIMEOUT_S", 60.0),
        geodata_cache_ttl_s=_env_float("COPYWRITER_GEODATA_CACHE_TTL_S", 1800.0),
        google_places_api_key=os.getenv("GOOGLE_PLACES_API_KEY") or None,
        log_level=os.getenv("COPYWRITER_LOG_LEVEL", "INFO").strip().upper() or "INFO",
    )

    _LOGGER.debug(
        "Loaded configuration: model=%s | fallback=%s | llm_enabled=%s | geodata_ttl=%ss",
        openai_model, openai_fallback_model, _cached_config.llm_enabled, _cached_config.geodata_cache_ttl_s,
    )
    return _cached_config


__all__ = [
    "Config",
    "load_config",
    "MAX_TOTAL_WORDS",
    "DEFAULT_PREMIUM_WORDS",
    "DEFAULT_TONE",
    "DEFAULT_LANGUAGE_VARIANT",
]
