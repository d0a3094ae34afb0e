"""Chat-completion capability used by the model-backed generator."""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, TypeVar, Union

from openai import OpenAI

from .config import Config, load_config
from .errors import CompletionCancelled, CompletionFailed, CopywriterError

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_POLL_INTERVAL_S = 0.1
ROLES = ("system", "user", "assistant")


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str

    def to_payload(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


MessageLike = Union[ChatMessage, Dict[str, str]]


class ChatClient(Protocol):
    def complete(self, messages: Sequence[MessageLike], temperature: float, *, model: Optional[str] = None) -> str:
        ...


def to_payloads(messages: Sequence[MessageLike]) -> List[Dict[str, str]]:
    payloads: List[Dict[str, str]] = []
    for message in messages:
        payload = message.to_payload() if isinstance(message, ChatMessage) else dict(message)
        if payload.get("role") not in ROLES:
            raise CompletionFailed(f"Unsupported chat role: {payload.get('role')!r}")
        payloads.append(payload)
    return payloads


def call_with_cancellation(
    fn: Callable[[], T],
    cancel: Optional[threading.Event] = None,
    timeout_s: Optional[float] = None,
) -> T:
    """Run ``fn`` on a worker thread, returning early on cancellation or timeout.

    Cancellation raises CompletionCancelled; an elapsed timeout raises
    CompletionFailed. The worker is abandoned, not interrupted.
    """
    if cancel is not None and cancel.is_set():
        raise CompletionCancelled("call cancelled before it started")
    deadline = time.monotonic() + timeout_s if timeout_s else None
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="copywriter-llm")
    try:
        future = executor.submit(fn)
        while True:
            done, _ = wait([future], timeout=_POLL_INTERVAL_S, return_when=FIRST_COMPLETED)
            if done:
                break
            if cancel is not None and cancel.is_set():
                future.cancel()
                raise CompletionCancelled("call cancelled by caller")
            if deadline is not None and time.monotonic() >= deadline:
                future.cancel()
                raise CompletionFailed(f"call timed out after {timeout_s:.1f}s")
    finally:
        executor.shutdown(wait=False)

    exc = future.exception()
    if exc is None:
        return future.result()
    if isinstance(exc, CopywriterError):
        raise exc
    raise CompletionFailed(f"chat completion failed: {exc}") from exc


class OpenAIChatClient:
    """OpenAI chat completions with primary/fallback model routing."""

    def __init__(self, config: Optional[Config] = None, client: Optional[Any] = None) -> None:
        self.config = config or load_config()
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.config.openai_api_key:
                raise CompletionFailed("OPENAI_API_KEY is not configured.")
            self._client = OpenAI(api_key=self.config.openai_api_key, timeout=self.config.request_timeout_s, max_retries=0)
        return self._client

    def _invoke(self, model_name: str, messages: List[Dict[str, str]], temperature: float) -> str:
        resp = self.client.chat.completions.create(model=model_name, messages=messages, temperature=temperature)
        msg = resp.choices[0].message
        return (msg.content or "").strip()

    def complete(self, messages: Sequence[MessageLike], temperature: float, *, model: Optional[str] = None) -> str:
        payloads = to_payloads(messages)
        primary_model = model or self.config.openai_model
        fallback_model = self.config.openai_fallback_model or primary_model

        _LOGGER.info("[MODEL_ROUTER] Using primary model: %s", primary_model)
        try:
            return self._invoke(primary_model, payloads, temperature)
        except CopywriterError:
            raise
        except Exception as primary_exc:
            if not fallback_model or fallback_model == primary_model:
                raise CompletionFailed(
                    f"Primary model {primary_model} failed and no fallback configured: {primary_exc}"
                ) from primary_exc
            _LOGGER.info("[MODEL_ROUTER] Falling back to: %s", fallback_model)
            try:
                return self._invoke(fallback_model, payloads, temperature)
            except Exception as fallback_exc:
                raise CompletionFailed(
                    f"Both primary ({primary_model}) and fallback ({fallback_model}) models failed: {fallback_exc}"
                ) from fallback_exc


__all__ = ["ChatClient", "ChatMessage", "OpenAIChatClient", "call_with_cancellation", "to_payloads"]
