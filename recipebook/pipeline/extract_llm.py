from __future__ import annotations
import json, logging, re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from openai import OpenAI

from ..config import Settings, get_settings
from ..models import Ingredient, Recipe
from .extract import parse_recipe
from .language import detect_language, language_name, other_language
from .units import normalize_unit

log = logging.getLogger(__name__)

SYSTEM = """You extract structured recipes from free text written in Greek or English.
Reply ONLY with valid JSON and NOTHING else, in the form:
{"title":"...","translatedTitle":"...","servings":4,"originalLanguage":"el|en","translatedLanguage":"en|el",
 "ingredients":[{"quantity":500,"unit":"g","item":"...","translatedItem":"...","notes":"optional"}],
 "instructions":["..."],"translatedInstructions":["..."]}
Rules:
- Detect the original language (el for Greek, en for English) and translate everything to the other one.
- 'unit' in {g, kg, oz, lb, ml, l, fl oz, cup, tbsp, tsp} or null for unitless items.
- 'quantity' is a number (fractions -> decimal) or null when vague ("a pinch").
- One instruction per step, without step numbers.
"""

USER_TMPL = """Source language hint: {hint}
Recipe text:
```
{content}
```
Return ONLY the requested JSON, no explanations.
"""

TRANSLATE_TMPL = """Translate the following text from {src} to {dst}.
Return ONLY the translation, no explanations.

Text: {content}
"""

FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.S)

class LLMParseError(Exception):
    """The AI collaborator could not produce a recipe."""

@dataclass
class ParseOutcome:
    recipe: Recipe
    engine: str = "heuristic"
    warning: Optional[str] = None

def is_configured(settings: Optional[Settings] = None) -> bool:
    return (settings or get_settings()).llm_enabled

def _client(settings: Settings) -> OpenAI:
    if not settings.openai_api_key:
        raise LLMParseError("OPENAI_API_KEY is not set.")
    return OpenAI(api_key=settings.openai_api_key)

def _complete(settings: Settings, system: Optional[str], prompt: str) -> str:
    client = _client(settings)
    messages = [{"role": "user", "content": prompt}]
    if system:
        messages.insert(0, {"role": "system", "content": system})
    resp = client.chat.completions.create(
        model=settings.openai_model,
        temperature=0.3,
        messages=messages,
    )
    return resp.choices[0].message.content or ""

def _extract_json_block(s: str) -> dict:
    m = FENCE.search(s)
    if m:
        s = m.group(1)
    try:
        return json.loads(s.strip())
    except ValueError:
        pass
    m = re.search(r"\{.*\}", s, flags=re.S)
    if m:
        try:
            return json.loads(m.group(0))
        except ValueError:
            pass
    raise LLMParseError("Failed to parse AI response as JSON")

def _as_list(value: Any) -> list:
    return value if isinstance(value, list) else []

def _clean_ingredients(items: List[Dict[str, Any]]) -> List[Ingredient]:
    cleaned = []
    for it in items or []:
        if not isinstance(it, dict):
            continue
        item = str(it.get("item") or "").strip()
        if not item:
            continue
        try:
            qty = float(str(it.get("quantity")).replace(",", ".")) if it.get("quantity") is not None else None
        except ValueError:
            qty = None
        if qty is not None and qty <= 0:
            qty = None
        raw_unit = str(it.get("unit") or "").strip()
        unit = normalize_unit(raw_unit)
        if raw_unit and unit is None:
            # keep the unknown measure visible in the item text
            item = f"{raw_unit} {item}"
        data = {"quantity": qty, "unit": unit, "item": item, "notes": str(it.get("notes") or "").strip()}
        if it.get("translatedItem"):
            data["translated_item"] = str(it["translatedItem"]).strip()
        cleaned.append(Ingredient(**data))
    return cleaned

def _to_recipe(data: Dict[str, Any], text: str, source_language: str) -> Recipe:
    lang = data.get("originalLanguage")
    if lang not in ("el", "en"):
        lang = source_language if source_language in ("el", "en") else detect_language(text)
    fields: Dict[str, Any] = {
        "title": str(data.get("title") or "").strip() or "Untitled Recipe",
        "original_language": lang,
        "source": "",
        "ingredients": _clean_ingredients(_as_list(data.get("ingredients"))),
        "instructions": [str(s).strip() for s in _as_list(data.get("instructions")) if str(s).strip()],
        "original_text": text,
    }
    try:
        servings = int(data.get("servings") or 4)
    except (TypeError, ValueError):
        servings = 4
    fields["servings"] = servings if servings > 0 else 4
    if data.get("translatedTitle"):
        fields["translated_title"] = str(data["translatedTitle"]).strip()
        fields["translated_language"] = other_language(lang)
    if isinstance(data.get("translatedInstructions"), list):
        n = len(fields["instructions"])
        tr = [str(s).strip() or None if s else None for s in data["translatedInstructions"]]
        # pad or cut so it stays parallel to the instructions
        fields["translated_instructions"] = (tr + [None] * n)[:n]
        fields["translated_language"] = other_language(lang)
    return Recipe(**fields)

def parse_with_llm(text: str, source_language: str = "auto", settings: Optional[Settings] = None) -> Recipe:
    settings = settings or get_settings()
    prompt = USER_TMPL.format(hint=source_language, content=text[:8000])
    try:
        out = _complete(settings, SYSTEM, prompt)
    except LLMParseError:
        raise
    except Exception as e:
        raise LLMParseError(f"AI request failed: {e}") from e
    data = _extract_json_block(out)
    if not isinstance(data, dict):
        raise LLMParseError("AI response is not a JSON object")
    try:
        return _to_recipe(data, text, source_language)
    except (TypeError, ValueError) as e:
        raise LLMParseError(f"AI response does not match the recipe schema: {e}") from e

def smart_parse(text: str, source_language: str = "auto", settings: Optional[Settings] = None) -> ParseOutcome:
    """Parse with the AI collaborator when configured, else (or on failure) heuristically."""
    settings = settings or get_settings()
    warning = None
    if is_configured(settings):
        try:
            return ParseOutcome(parse_with_llm(text, source_language, settings), engine="llm")
        except LLMParseError as e:
            log.warning("AI parsing failed, falling back to heuristic parser: %s", e)
            warning = "AI parsing failed, using basic parser"
    return ParseOutcome(parse_recipe(text, source_language), engine="heuristic", warning=warning)

def translate_text(text: str, from_lang: str, to_lang: str, settings: Optional[Settings] = None) -> Optional[str]:
    settings = settings or get_settings()
    if not settings.llm_enabled or not text.strip():
        return None
    prompt = TRANSLATE_TMPL.format(src=language_name(from_lang), dst=language_name(to_lang), content=text)
    try:
        return _complete(settings, None, prompt).strip() or None
    except Exception as e:
        log.warning("Translation %s->%s failed: %s", from_lang, to_lang, e)
        return None
