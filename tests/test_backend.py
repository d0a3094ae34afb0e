import pytest
from fastapi.testclient import TestClient

from backend.main import app, get_pipeline
from copywriter.errors import CompletionCancelled, CompletionFailed
from copywriter.generator import FallbackGenerator, HeuristicGenerator, ModelBackedGenerator
from copywriter.pipeline import ListingPipeline


LISTING = {"address": "Storgatan 4", "rooms": 2, "living_area": 55, "highlights": ["balcony"]}


class FailingClient:
    def __init__(self, error):
        self.error = error

    def complete(self, messages, temperature, *, model=None):
        raise self.error


@pytest.fixture
def client():
    def _use(generator):
        app.dependency_overrides[get_pipeline] = lambda: ListingPipeline(generator)
        return TestClient(app)

    yield _use
    app.dependency_overrides.clear()


def test_generate_returns_sections_and_history(client):
    resp = client(HeuristicGenerator()).post("/api/listings/generate", json={"listing": LISTING})
    assert resp.status_code == 200
    body = resp.json()
    assert [s["slug"] for s in body["sections"]] == ["intro", "hall", "kitchen", "living", "area"]
    assert "Storgatan 4" in body["full_copy"]
    assert body["fallback_used"] is False
    assert body["history"]["intro"][0]["source"] == "generate"
    assert "X-Fallback-Used" not in resp.headers


def test_generate_flags_fallback_copy(client):
    generator = FallbackGenerator(ModelBackedGenerator(FailingClient(CompletionFailed("down"))))
    resp = client(generator).post("/api/listings/generate", json={"listing": LISTING})
    assert resp.status_code == 200
    assert resp.json()["fallback_used"] is True
    assert resp.headers["X-Fallback-Used"] == "true"


def test_generate_without_fallback_maps_to_retryable_error(client):
    resp = client(ModelBackedGenerator(FailingClient(CompletionFailed("down")))).post(
        "/api/listings/generate", json={"listing": LISTING}
    )
    assert resp.status_code == 503
    assert "try again" in resp.json()["detail"]


def test_cancelled_generation_maps_to_504(client):
    generator = FallbackGenerator(ModelBackedGenerator(FailingClient(CompletionCancelled("stop"))))
    resp = client(generator).post("/api/listings/generate", json={"listing": LISTING})
    assert resp.status_code == 504


def test_generate_missing_address_is_400(client):
    resp = client(HeuristicGenerator()).post("/api/listings/generate", json={"listing": {"city": "Stockholm"}})
    assert resp.status_code == 400


def test_rewrite_section(client):
    payload = {
        "listing": LISTING,
        "sections": [
            {"slug": "intro", "title": "Inledning", "content": "Ett. Två. Tre. Fyra. Fem."},
            {"slug": "area", "title": "Område", "content": "Nära parken."},
        ],
        "slug": "intro",
        "instruction": "kortare",
    }
    resp = client(HeuristicGenerator()).post("/api/listings/rewrite", json=payload)
    assert resp.status_code == 200
    body = resp.json()
    assert body["section"]["content"] == "Ett. Två."
    assert body["sections"][1]["content"] == "Nära parken."
    assert body["full_copy"] == "Inledning\nEtt. Två.\n\nOmråde\nNära parken."
    assert body["history"]["intro"][-1]["instruction"] == "kortare"


def test_rewrite_unknown_slug_is_404(client):
    payload = {
        "listing": LISTING,
        "sections": [{"slug": "intro", "title": "Inledning", "content": "Text."}],
        "slug": "garage",
        "instruction": "kortare",
    }
    assert client(HeuristicGenerator()).post("/api/listings/rewrite", json=payload).status_code == 404


def test_rewrite_empty_instruction_is_400(client):
    payload = {
        "listing": LISTING,
        "sections": [{"slug": "intro", "title": "Inledning", "content": "Text."}],
        "slug": "intro",
        "instruction": "   ",
    }
    assert client(HeuristicGenerator()).post("/api/listings/rewrite", json=payload).status_code == 400


def test_generate_tolerates_non_finite_fee(client):
    resp = client(HeuristicGenerator()).post(
        "/api/listings/generate", json={"listing": {"address": "Storgatan 4", "fee": "nan"}}
    )
    assert resp.status_code == 200
