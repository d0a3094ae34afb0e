import json
import threading

import pytest

from copywriter.config import Config
from copywriter.errors import CompletionCancelled, CompletionFailed, RecoveryFailed, ValidationFailed
from copywriter.generator import (
    FallbackGenerator,
    HeuristicGenerator,
    ModelBackedGenerator,
    build_full_ad,
    build_generator,
    has_premium_details,
)
from copywriter.types import (
    Details,
    Listing,
    MetaInfo,
    PropertyInfo,
    Section,
    StyleProfile,
    hydrate_details,
    listing_from_payload,
)
from copywriter.utils.text import split_sentences


def _config(**overrides):
    values = dict(openai_model="gpt-test", openai_fallback_model="gpt-test", openai_api_key="sk-test", use_llm=True)
    values.update(overrides)
    return Config(**values)


class FakeClient:
    """Returns queued replies (or raises queued exceptions) and records each call."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.calls = []

    def complete(self, messages, temperature, *, model=None):
        self.calls.append({"messages": messages, "temperature": temperature, "model": model})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


SECTIONS_REPLY = json.dumps(
    {
        "sections": [
            {"slug": "intro", "title": "Inledning", "content": "Välkommen  hem. Ljust. Nära allt."},
            {"slug": "area", "title": "Område", "content": "Parker och skolor."},
            {"slug": "intro", "title": "Dubblett", "content": "Ska bort."},
        ]
    },
    ensure_ascii=False,
)


def _storgatan():
    return listing_from_payload({"address": "Storgatan 4", "rooms": 2, "living_area": 55, "tone": "", "highlights": ["balcony"]})


# ---------------------------------------------------------------------------
# Heuristic
# ---------------------------------------------------------------------------


def test_heuristic_end_to_end_intro():
    result = HeuristicGenerator().generate(_storgatan())
    assert [s.slug for s in result.sections] == ["intro", "hall", "kitchen", "living", "area"]
    intro = result.sections[0]
    assert intro.content
    assert "Storgatan 4" in intro.content
    assert "balcony" in intro.content
    assert "varm och familjär" in intro.content
    assert result.full_copy.startswith("Inledning\n")
    assert not result.fallback_used


def test_heuristic_is_deterministic():
    listing = hydrate_details(_storgatan())
    assert HeuristicGenerator().generate(listing) == HeuristicGenerator().generate(listing)


def test_heuristic_rewrite_shorter_keeps_two_sentences():
    section = Section(slug="living", title="Vardagsrum", content="Ett. Två. Tre. Fyra. Fem.")
    updated = HeuristicGenerator().rewrite(_storgatan(), section, "Gör den kortare")
    assert len(split_sentences(updated.content)) <= 2
    assert updated.title == "Vardagsrum"


def test_heuristic_rewrite_empty_body_uses_full_ad():
    listing = _storgatan()
    updated = HeuristicGenerator().rewrite(listing, Section(slug="main", title="Annons", content=""), "")
    assert updated.content == build_full_ad(listing)
    assert updated.content.startswith("Välkommen till Storgatan 4")


def test_heuristic_area_falls_back_to_filler_without_geodata():
    area = HeuristicGenerator().generate(_storgatan()).sections[-1]
    assert area.content.startswith("Området erbjuder närhet")


# ---------------------------------------------------------------------------
# Model-backed
# ---------------------------------------------------------------------------


def test_has_premium_details_predicate():
    assert not has_premium_details(Details())
    assert has_premium_details(Details(property=PropertyInfo(address="Storgatan 4")))
    assert has_premium_details(Details(advantages=["Sjöutsikt"]))
    assert has_premium_details(Details(meta=MetaInfo(desired_word_count=100)))
    assert has_premium_details(Details(meta=MetaInfo(tone="lyxig")))


def test_hydrated_flat_listing_stays_on_structured_path():
    assert not has_premium_details(hydrate_details(_storgatan()).details)


def test_structured_generation_recovers_sanitizes_and_dedupes():
    client = FakeClient(f"Här är JSON: {SECTIONS_REPLY}")
    result = ModelBackedGenerator(client, _config()).generate(hydrate_details(_storgatan()))
    assert [s.slug for s in result.sections] == ["intro", "area"]
    assert result.sections[0].content == "Välkommen hem. Ljust.\n\nNära allt."
    assert client.calls[0]["temperature"] == 0.4
    assert client.calls[0]["model"] is None
    assert len(client.calls) == 1


def test_structured_generation_surfaces_errors_without_fallback():
    with pytest.raises(RecoveryFailed):
        ModelBackedGenerator(FakeClient("inte json"), _config()).generate(_storgatan())
    with pytest.raises(CompletionFailed):
        ModelBackedGenerator(FakeClient(CompletionFailed("down")), _config()).generate(_storgatan())


def test_premium_path_returns_single_ad_section():
    listing = Listing(address="Storgatan 4", details=Details(meta=MetaInfo(desired_word_count=400, tone="exklusiv")))
    client = FakeClient("En  lång annons. Med flera meningar. Och mer.")
    result = ModelBackedGenerator(client, _config()).generate(listing)
    assert [s.slug for s in result.sections] == ["ad"]
    assert result.sections[0].title == "Annons"
    assert result.sections[0].content == "En lång annons. Med flera meningar.\n\nOch mer."
    assert client.calls[0]["temperature"] == 0.9
    assert "Textlängd ca 225 ord." in client.calls[0]["messages"][1].content


def test_premium_failure_falls_through_to_structured():
    listing = Listing(address="Storgatan 4", details=Details(advantages=["Sjöutsikt"]))
    client = FakeClient(CompletionFailed("timeout"), SECTIONS_REPLY)
    result = ModelBackedGenerator(client, _config()).generate(listing)
    assert [s.slug for s in result.sections] == ["intro", "area"]
    assert [c["temperature"] for c in client.calls] == [0.9, 0.4]


def test_premium_empty_reply_falls_through_to_structured():
    listing = Listing(address="Storgatan 4", details=Details(advantages=["Sjöutsikt"]))
    client = FakeClient("   ", SECTIONS_REPLY)
    result = ModelBackedGenerator(client, _config()).generate(listing)
    assert result.sections[0].slug == "intro"


def test_custom_model_from_style_profile_is_used():
    listing = Listing(address="Storgatan 4", style_profile=StyleProfile(name="Kund", custom_model="ft:kund"))
    client = FakeClient(SECTIONS_REPLY)
    ModelBackedGenerator(client, _config()).generate(listing)
    assert client.calls[0]["model"] == "ft:kund"


def test_model_rewrite_merges_reply_and_sanitizes():
    section = Section(slug="kitchen", title="Kök", content="Gammal text om köket.")
    client = FakeClient('{"content": "Nytt  kök. Med ö. Och ljus."}')
    updated = ModelBackedGenerator(client, _config()).rewrite(_storgatan(), section, "mer säljande")
    assert updated.title == "Kök"
    assert updated.content == "Nytt kök. Med ö.\n\nOch ljus."
    assert client.calls[0]["temperature"] == 0.5
    assert "Mäklarens instruktion" in client.calls[0]["messages"][1].content


def test_model_rewrite_requires_instruction():
    client = FakeClient()
    with pytest.raises(ValidationFailed):
        ModelBackedGenerator(client, _config()).rewrite(_storgatan(), Section(slug="intro"), "   ")
    assert client.calls == []


def test_cancelled_call_raises_cancelled():
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(CompletionCancelled):
        ModelBackedGenerator(FakeClient(SECTIONS_REPLY), _config()).generate(_storgatan(), cancel=cancel)


# ---------------------------------------------------------------------------
# Fallback decorator
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("reply", [CompletionFailed("down"), "ingen json här"])
def test_fallback_substitutes_heuristic_copy(reply):
    generator = FallbackGenerator(ModelBackedGenerator(FakeClient(reply), _config()))
    result = generator.generate(_storgatan())
    expected = HeuristicGenerator().generate(_storgatan())
    assert result.fallback_used
    assert result.sections == expected.sections
    assert result.full_copy == expected.full_copy


def test_fallback_rewrite_uses_local_transform():
    section = Section(slug="living", title="Vardagsrum", content="Ett. Två. Tre.")
    generator = FallbackGenerator(ModelBackedGenerator(FakeClient(CompletionFailed("down")), _config()))
    assert generator.rewrite(_storgatan(), section, "kortare").content == "Ett. Två."


def test_fallback_does_not_catch_cancellation():
    cancel = threading.Event()
    cancel.set()
    generator = FallbackGenerator(ModelBackedGenerator(FakeClient(SECTIONS_REPLY), _config()))
    with pytest.raises(CompletionCancelled):
        generator.generate(_storgatan(), cancel=cancel)


def test_fallback_does_not_catch_validation():
    generator = FallbackGenerator(ModelBackedGenerator(FakeClient(), _config()))
    with pytest.raises(ValidationFailed):
        generator.rewrite(_storgatan(), Section(slug="intro", content="x"), "")


def test_build_generator_selects_strategy():
    assert isinstance(build_generator(_config(use_llm=False)), HeuristicGenerator)
    assert isinstance(build_generator(_config(openai_api_key=None)), HeuristicGenerator)
    wrapped = build_generator(_config(), client=FakeClient())
    assert isinstance(wrapped, FallbackGenerator)
    assert isinstance(wrapped.primary, ModelBackedGenerator)
