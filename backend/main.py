"""FastAPI backend wiring for the listing copywriter.

Exposes generation and single-section rewrite endpoints over the
``copywriter`` pipeline and maps pipeline errors onto HTTP status codes.
"""
from __future__ import annotations

import logging
import time
from functools import lru_cache
from typing import Any, Dict, List

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware

from copywriter.config import load_config
from copywriter.errors import (
    CompletionCancelled,
    CompletionFailed,
    CopywriterError,
    RecoveryFailed,
    SectionNotFound,
    ValidationFailed,
)
from copywriter.generator import build_generator
from copywriter.pipeline import ListingPipeline, find_section, record_history
from copywriter.places import build_provider
from copywriter.profiles import InMemoryStyleProfileStore
from copywriter.types import Section, section_from_payload

from .models import GenerateRequest, GenerateResponse, RewriteRequest, RewriteResponse


# ---------------------------------------------------------------------------
# FastAPI init + CORS
# ---------------------------------------------------------------------------

app = FastAPI(title="Listing Copywriter", version="1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger("copywriter.backend")
if not logger.handlers:
    logging.basicConfig(level=load_config().log_level, format="%(asctime)s %(levelname)s %(name)s - %(message)s")

RETRY_DETAIL = "Copy generation is temporarily unavailable, please try again."


@app.middleware("http")
async def telemetry_middleware(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration = time.perf_counter() - start
    response.headers["X-Process-Time"] = f"{duration:.2f}s"
    logger.info("[HTTP] %s %s took %.2fs", request.method, request.url.path, duration)
    return response


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_pipeline() -> ListingPipeline:
    cfg = load_config()
    return ListingPipeline(
        generator=build_generator(cfg),
        geodata_provider=build_provider(cfg),
        profile_store=InMemoryStyleProfileStore(),
    )


def _http_error(exc: CopywriterError) -> HTTPException:
    if isinstance(exc, SectionNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, ValidationFailed):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, CompletionCancelled):
        return HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail="Request was cancelled.")
    if isinstance(exc, (CompletionFailed, RecoveryFailed)):
        logger.warning("[HTTP] Generation failed: %s", exc)
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=RETRY_DETAIL)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def _history_payload(history: Dict[str, List[Any]]) -> Dict[str, List[Dict[str, Any]]]:
    return {
        slug: [entry.model_dump() if hasattr(entry, "model_dump") else dict(entry) for entry in entries]
        for slug, entries in history.items()
    }


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/api/health")
def health() -> Dict[str, Any]:
    cfg = load_config()
    return {"status": "ok", "llm_enabled": cfg.llm_enabled, "model": cfg.openai_model}


@app.post("/api/listings/generate", response_model=GenerateResponse)
def generate_listing(req: GenerateRequest, response: Response, pipeline: ListingPipeline = Depends(get_pipeline)):
    try:
        listing, result = pipeline.generate(req.listing)
    except CopywriterError as exc:
        raise _http_error(exc) from exc

    history: Dict[str, List[Dict[str, Any]]] = {}
    for section in result.sections:
        history = record_history(history, section, "generate")

    if result.fallback_used:
        response.headers["X-Fallback-Used"] = "true"
    body = result.to_payload()
    body["history"] = history
    body["listing"] = listing.to_payload()
    return body


@app.post("/api/listings/rewrite", response_model=RewriteResponse)
def rewrite_section(req: RewriteRequest, pipeline: ListingPipeline = Depends(get_pipeline)):
    instruction = req.instruction.strip()
    sections: List[Section] = [section_from_payload(item.model_dump()) for item in req.sections]
    try:
        if not instruction:
            raise ValidationFailed("instruction is required.")
        listing = pipeline.prepare(req.listing)
        updated, full_copy = pipeline.rewrite(listing, sections, req.slug, instruction)
    except CopywriterError as exc:
        raise _http_error(exc) from exc

    changed = updated[find_section(updated, req.slug)]
    history = record_history(_history_payload(req.history), changed, "rewrite", instruction=instruction)
    logger.info("[HTTP] Rewrote %s with instruction %r", changed.slug, instruction)
    return {
        "section": changed.to_payload(),
        "sections": [section.to_payload() for section in updated],
        "full_copy": full_copy,
        "history": history,
    }
