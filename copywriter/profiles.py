"""Style profile lookup."""
from __future__ import annotations

import threading
from typing import Dict, Iterable, Optional, Protocol

from .types import StyleProfile


class StyleProfileStore(Protocol):
    def get(self, profile_id: str) -> Optional[StyleProfile]:
        ...


class InMemoryStyleProfileStore:
    """Thread-safe dictionary-backed store; unknown ids return None."""

    def __init__(self, profiles: Iterable[StyleProfile] = ()) -> None:
        self._lock = threading.Lock()
        self._profiles: Dict[str, StyleProfile] = {}
        for profile in profiles:
            self.put(profile)

    def put(self, profile: StyleProfile) -> None:
        if not profile.id:
            raise ValueError("Style profiles need an id to be stored.")
        with self._lock:
            self._profiles[profile.id] = profile

    def get(self, profile_id: str) -> Optional[StyleProfile]:
        key = (profile_id or "").strip()
        if not key:
            return None
        with self._lock:
            return self._profiles.get(key)
