"""Prompt construction for listing generation and single-section rewrites."""
from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any, Dict, Optional, Tuple

from .config import DEFAULT_PREMIUM_WORDS, MAX_TOTAL_WORDS
from .errors import ValidationFailed
from .geodata import format_prompt_lines
from .types import Details, Listing, Section, StyleProfile
from .utils.text import count_words

MAX_STYLE_EXAMPLES = 3

SECTION_LAYOUT: Tuple[Tuple[str, str], ...] = (
    ("intro", "Inledning"),
    ("hall", "Hall"),
    ("kitchen", "Kök"),
    ("living", "Vardagsrum"),
    ("area", "Område & kommunikation"),
)

SECTION_GUIDELINES: Dict[str, str] = {
    "intro": "Sätt scenen med adress, känsla och viktigaste argument.",
    "hall": "Beskriv entréns intryck och funktion (ljus, förvaring, koppling till övriga ytor).",
    "kitchen": "Lyft material, vitvaror, förvaring och social matplats.",
    "living": "Fokusera på rymd, ljus, utsikt och hur rummet används för umgänge.",
    "area": "Summera service, rekreation och kommunikation från geodata.",
}
GENERIC_GUIDELINE = "Håll samma struktur men förbättra språk och tydlighet."


# ---------------------------------------------------------------------
# SYSTEM PROMPTS
# ---------------------------------------------------------------------

SYSTEM_PROMPT_TEMPLATE = (
    "Du är en prisbelönt svensk copywriter för fastighetsmäklare. Du skriver alltid på svenska, "
    "använder geodata när den finns och beskriver kommunikationer (buss/tåg/tunnelbana) konkret. "
    "Hitta inte på fakta. Hoppa över självklara basfunktioner och allt som beskriver vad man gör i rummen. "
    "Ta bara med det som är relevant för boendet och håll texten kort (max {max_words} ord totalt). "
    "Lyft området (service, skolor/förskolor, natur, kommunikationer) när data finns. "
    "Om kunden har en stilprofil måste du följa den strikt."
)
SYSTEM_PROMPT = SYSTEM_PROMPT_TEMPLATE.format(max_words=MAX_TOTAL_WORDS)

USER_PROMPT_TEMPLATE = """Returnera JSON {{"sections":[{{"slug":"","title":"","content":"","highlights":["..."]}}, ...]}}.
Krav:
- Skapa sektioner enligt "sections" i datan och behåll deras slug och ordning.
- 1-2 meningar per sektion. Skriv enkelt och rakt så att endast det relevanta återstår.
- "highlights" ska innehålla 1-2 punkter med sektionens starkaste argument.
- Ta inte med självklara basfunktioner eller vad man gör i rummen; fokusera på läge, skick, material, ljus, utsikt, förvaring, förening, avgift, balkong och geodata.
- Total text: max {max_words} ord (alla sektioner tillsammans).
- I områdessektionen: använd geodata för matbutiker, parker, träning, skolor och kommunikationer.
- Respektera ton, målgrupp och detaljer i datan. Om något saknas: skriv professionellt och generellt utan att hitta på.
Data:
{payload}"""

REWRITE_SYSTEM_PROMPT = """Du är en skicklig svensk copywriter. Polera text för en given sektion i en bostadsannons.
- Undvik klyschor och överdrifter.
- Behåll fakta men gör texten mer målande och säljande.
- Hoppa över självklara basfunktioner och beskriv inte vad man gör i rummen.
- Undvik banala konstateranden om kök, vardagsrum eller badrum; lyft det som är unikt.
- Håll rumssektioner korta; om geodata finns, låt området och kommunikationen ta plats.
- Matcha ursprunglig längd (±15 %, aldrig under 85 % av originalet).
- Följ kundens stilprofil om den finns.
- Returnera JSON {"title":"...","content":"..."}."""

REWRITE_USER_TEMPLATE = '''Sektion: {title} ({slug})
Originaltext: """{content}"""
Originalets längd: {words} ord (matcha denna längd, ±15 %)
Mäklarens instruktion: "{instruction}"
Sektionens syfte: {guideline}
Geodata:
{geodata}
Korta hellre ned rumsbeskrivningar än att ta bort geodata.'''

PREMIUM_SYSTEM_PROMPT = f"""Du är en mycket skicklig svensk copywriter som skriver bostadsannonser åt mäklare.
- Skriv alltid på svenska.
- Variera språk, meningslängd och struktur i varje text.
- Anpassa ton och ordval efter målgruppen i datan.
- Undvik återkommande klyschor; texten ska kännas skriven av en människa.
- Nämn aldrig självklarheter om badrum, kök eller vardagsrum.
- Håll dig till maximalt {MAX_TOTAL_WORDS} ord och lägg dem på säljande fakta, geodata och kvaliteter.
- Presentera bostaden i ett sammanhållet flöde och avsluta gärna med en kort punktlista."""

PREMIUM_USER_TEMPLATE = """Skapa en unik bostadsannons baserat på JSON-datan nedan.
Följande ska uppnås:
- Textlängd ca {word_count} ord.
- Ton som harmoniserar med "{tone}".
- Använd strukturen (pitch, bostad, kök, sovrum, badrum, uteplats, förening, område, punktlista) men ändra ordning vid behov.

Data:
{payload}"""


def _require_listing(listing: Optional[Listing]) -> Listing:
    if listing is None:
        raise ValidationFailed("A listing is required to compose a prompt.")
    return listing


def _dump(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False)


def format_style_profile(profile: Optional[StyleProfile]) -> str:
    """Render the customer's style profile as an instruction block."""
    if profile is None:
        return ""
    lines = [f'Kundens stilprofil "{profile.name}":']
    if profile.description:
        lines.append(f"- Beskrivning: {profile.description}")
    if profile.tone:
        lines.append(f"- Önskad ton: {profile.tone}")
    if profile.guidelines:
        lines.append(f"- Riktlinjer: {profile.guidelines}")
    examples = [text.strip() for text in profile.example_texts if text and text.strip()][:MAX_STYLE_EXAMPLES]
    if examples:
        lines.append("- Förebilder (imitera rytm/ordval):")
        lines.extend(f"  {idx}) {text}" for idx, text in enumerate(examples, start=1))
    if profile.forbidden_words:
        lines.append(f"- Undvik orden: {', '.join(profile.forbidden_words)}")
    if profile.custom_model:
        lines.append(f"- Denna kund tränas mot modellen: {profile.custom_model}")
    return "\n".join(lines)


def _with_profile(prompt: str, profile: Optional[StyleProfile]) -> str:
    block = format_style_profile(profile)
    return f"{prompt}\n\n{block}" if block else prompt


def _structured_payload(listing: Listing) -> Dict[str, Any]:
    return {
        "address": listing.address,
        "neighborhood": listing.neighborhood,
        "city": listing.city,
        "property_type": listing.property_type,
        "condition": listing.condition,
        "balcony": listing.balcony,
        "floor": listing.floor,
        "association": listing.association,
        "tone": listing.tone,
        "target_audience": listing.target_audience,
        "highlights": list(listing.highlights),
        "fee": listing.fee,
        "living_area": listing.living_area,
        "rooms": listing.rooms,
        "insights": asdict(listing.insights),
        "details": asdict(listing.details),
        "style_profile_id": listing.details.meta.style_profile_id,
        "sections": [{"slug": slug, "title": title} for slug, title in SECTION_LAYOUT],
    }


def build_generation_prompts(listing: Listing, max_words: int = MAX_TOTAL_WORDS) -> Tuple[str, str]:
    """Return the (system, user) pair for structured multi-section generation."""
    listing = _require_listing(listing)
    user = USER_PROMPT_TEMPLATE.format(max_words=max_words, payload=_dump(_structured_payload(listing)))
    system = SYSTEM_PROMPT_TEMPLATE.format(max_words=max_words)
    return system, _with_profile(user, listing.style_profile)


def section_guideline(slug: str) -> str:
    return SECTION_GUIDELINES.get((slug or "").strip().lower(), GENERIC_GUIDELINE)


def build_rewrite_prompt(section: Section, instruction: str, listing: Listing) -> str:
    """Return the user prompt for rewriting one section; pair it with REWRITE_SYSTEM_PROMPT."""
    listing = _require_listing(listing)
    user = REWRITE_USER_TEMPLATE.format(
        title=section.title,
        slug=section.slug,
        content=section.content,
        words=count_words(section.content),
        instruction=instruction,
        guideline=section_guideline(section.slug),
        geodata=format_prompt_lines(listing.insights) or "- Ingen geodata tillgänglig",
    )
    return _with_profile(user, listing.style_profile)


def desired_word_count(details: Details) -> int:
    """Requested premium length, capped at the domain maximum."""
    requested = details.meta.desired_word_count
    if requested > 0:
        return min(requested, MAX_TOTAL_WORDS)
    return DEFAULT_PREMIUM_WORDS


def build_premium_prompts(listing: Listing, word_count: Optional[int] = None) -> Tuple[str, str]:
    """Return the (system, user) pair for unified long-form copy."""
    listing = _require_listing(listing)
    details = listing.details
    payload = {
        "meta": asdict(details.meta),
        "property": asdict(details.property),
        "association": asdict(details.association),
        "area": asdict(details.area),
        "advantages": list(details.advantages),
    }
    if not listing.insights.is_empty:
        payload["geodata"] = asdict(listing.insights)
    user = PREMIUM_USER_TEMPLATE.format(
        word_count=word_count or desired_word_count(details),
        tone=details.meta.tone or listing.tone,
        payload=_dump(payload),
    )
    return PREMIUM_SYSTEM_PROMPT, _with_profile(user, listing.style_profile)


__all__ = [
    "GENERIC_GUIDELINE",
    "REWRITE_SYSTEM_PROMPT",
    "SECTION_GUIDELINES",
    "SECTION_LAYOUT",
    "SYSTEM_PROMPT",
    "SYSTEM_PROMPT_TEMPLATE",
    "build_generation_prompts",
    "build_premium_prompts",
    "build_rewrite_prompt",
    "desired_word_count",
    "format_style_profile",
    "section_guideline",
]
