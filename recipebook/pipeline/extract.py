from __future__ import annotations
import logging
import math
import re
from typing import Dict, List, Optional

from ..models import Ingredient, Recipe
from .language import detect_language
from .units import normalize_unit

log = logging.getLogger(__name__)

DEFAULT_SERVINGS = 4
UNTITLED = "Untitled Recipe"

FRACTIONS = {"½": 0.5, "¼": 0.25, "¾": 0.75, "⅓": 1 / 3, "⅔": 2 / 3, "⅛": 0.125,
             "⅜": 0.375, "⅝": 0.625, "⅞": 0.875}
_GLYPHS = "".join(FRACTIONS)

WORD_TO_NUM = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "ένα": 1, "μία": 1, "μια": 1, "δύο": 2, "τρία": 3, "τρεις": 3, "τέσσερα": 4, "τέσσερις": 4,
    "πέντε": 5, "έξι": 6, "επτά": 7, "εφτά": 7, "οκτώ": 8, "οχτώ": 8, "εννέα": 9, "εννιά": 9, "δέκα": 10,
}

QUANTITY_PATTERNS = [
    re.compile(rf"^(\d+\s+\d+\s*/\s*\d+|\d*\s*[{_GLYPHS}]|\d[\d.,/]*)\s*"),
    re.compile(r"^(one|two|three|four|five|six|seven|eight|nine|ten)\s+", re.I),
    re.compile(r"^(ένα|μία|μια|δύο|τρία|τρεις|τέσσερα|τέσσερις|πέντε|έξι|επτά|εφτά|οκτώ|οχτώ|εννέα|εννιά|δέκα)\s+", re.I),
]
SLASH_FRACTION = re.compile(r"(?:(\d+)\s+)?(\d+)\s*/\s*(\d+)")

# every token here resolves through normalize_unit; trailing lookahead stops "l" matching "large"
UNIT_PATTERN = re.compile(
    r"^(fl\.?\s*oz\.?|fluid\s+ounces?|tablespoons?|teaspoons?|tbsps?|tbs|tsps?|cups?"
    r"|grams?|gr|g|kilograms?|kgs?|ounces?|oz|pounds?|lbs?|milliliters?|millilitres?|mls?"
    r"|liters?|litres?|l"
    r"|γραμμάρια|γρ\.?|κιλό|κιλά|λίτρο|λίτρα|κ\.σ\.?|κ\.γ\.?|κουταλιές\s+σούπας|κουταλιά\s+σούπας"
    r"|κουταλάκια\s+γλυκού|κουταλάκι\s+γλυκού|κουταλάκια|κουταλάκι|φλιτζάνια|φλιτζάνι)\.?(?![^\W\d_])\s*",
    re.I,
)

_VAGUE_ARTICLE = r"(?:a|an|μια|μία|λίγη|λίγο)\s+(?:pinch|dash|handful|sprinkle|splash|drizzle|πρέζα|χούφτα)"
VAGUE_PATTERN = re.compile(
    rf"^({_VAGUE_ARTICLE}"
    r"|(?:pinch(?:es)?|dash(?:es)?|handful|πρέζα|χούφτα)(?![^\W\d_]))"
    r"\s*(?:of\s+|από\s+)?",
    re.I,
)
# only article forms mark a line as an ingredient; "Pinch the edges..." is a step
VAGUE_SHAPE = re.compile(rf"^{_VAGUE_ARTICLE}(?![^\W\d_])", re.I)
TO_TASTE = re.compile(r",?\s*\b(to taste|as needed|κατά βούληση|όσο πάρει)\s*$", re.I)

NOTES_PATTERN = re.compile(r"\(([^)]+)\)")
CONNECTIVE = re.compile(r"^(of|the|του|της|το|τα|των)\s+", re.I)
BULLET = re.compile(r"^[-•*–]\s*")
STEP_NUMBER = re.compile(r"^\d+[.)]\s")
STEP_PREFIX = re.compile(r"^(?:(?:step|βήμα)\s*\d+\s*[:.)]?|\d+[.)])\s*", re.I)

INGREDIENT_HEADERS = [
    re.compile(r"^(ingredients?|what you'?ll need|υλικ[άα]|συστατικ[άα])[:\s]*$", re.I),
]
INSTRUCTION_HEADERS = [
    re.compile(r"^(instructions?|directions?|method|steps?|preparation"
               r"|εκτέλεση|εκτελεση|οδηγίες|οδηγιες|βήματα|βηματα|παρασκευή|παρασκευη)[:\s]*$", re.I),
]

SERVINGS_PATTERN = re.compile(r"(\d+)\s*(servings?|portions?|μερίδες|μερίδα|άτομα)", re.I)
SERVES_PATTERN = re.compile(r"\b(?:serves|makes|yields?)\s*:?\s*(\d+)", re.I)
SERVINGS_LINE = re.compile(
    r"^[\W_]*(?:(?:serves|makes|yields?)\s*:?\s*\d+"
    r"|(?:(?:for|για)\s+)?\d+\s*(?:servings?|portions?|μερίδες|μερίδα|άτομα))[\W_]*$",
    re.I,
)

def _is_header(line: str, patterns) -> bool:
    return any(p.match(line) for p in patterns)

def _to_float(token: str) -> Optional[float]:
    try:
        value = float(token.strip().replace(",", "."))
    except (ValueError, OverflowError):
        return None
    return value if math.isfinite(value) else None

def parse_quantity(text: str) -> Optional[float]:
    """Resolve a quantity token ("1 ½", "1 1/2", "δύο", "0,5") to a number or None."""
    cleaned = (text or "").strip()
    if not cleaned:
        return None

    for glyph, value in FRACTIONS.items():
        if glyph in cleaned:
            head = cleaned.split(glyph)[0]
            whole = _to_float(head) if head.strip() else 0.0
            return (whole or 0.0) + value

    if "/" in cleaned:
        m = SLASH_FRACTION.fullmatch(cleaned)
        if not m:
            return None
        try:
            whole = int(m.group(1)) if m.group(1) else 0
            denominator = int(m.group(3))
            return whole + int(m.group(2)) / denominator if denominator else None
        except (ValueError, OverflowError):
            return None

    word = WORD_TO_NUM.get(cleaned.lower())
    if word is not None:
        return float(word)

    return _to_float(cleaned)

def parse_ingredient_line(line: str) -> Dict:
    remaining = BULLET.sub("", line.strip())
    quantity: Optional[float] = None
    unit: Optional[str] = None
    notes = ""

    m = NOTES_PATTERN.search(remaining)
    if m:
        notes = m.group(1).strip()
        remaining = " ".join((remaining[:m.start()] + remaining[m.end():]).split())

    # "μια πρέζα" is a vague amount, not the number one
    m = VAGUE_PATTERN.match(remaining)
    if m:
        notes = notes or m.group(1).strip()
        remaining = remaining[m.end():]
    else:
        for pattern in QUANTITY_PATTERNS:
            m = pattern.match(remaining)
            if m:
                quantity = parse_quantity(m.group(1))
                remaining = remaining[m.end():]
                break
        if quantity is not None and quantity <= 0:
            quantity = None

    m = UNIT_PATTERN.match(remaining)
    if m:
        code = normalize_unit(m.group(1))
        if code is not None:
            unit = code
            remaining = remaining[m.end():]

    m = TO_TASTE.search(remaining)
    if m and m.start() > 0:
        notes = notes or m.group(1)
        remaining = remaining[:m.start()]

    item = CONNECTIVE.sub("", remaining.strip()).strip()
    item = BULLET.sub("", item)

    return {"quantity": quantity, "unit": unit, "item": item, "notes": notes}

def looks_like_ingredient(line: str) -> bool:
    if BULLET.match(line):
        return True
    if STEP_NUMBER.match(line):
        return False
    return bool(VAGUE_SHAPE.match(line)) or any(p.match(line) for p in QUANTITY_PATTERNS)

def looks_like_instruction(line: str) -> bool:
    if STEP_NUMBER.match(line):
        return True
    return len(line) > 30 and line.endswith((".", "!"))

def _find_servings(lines: List[str]) -> int:
    # "8 servings" anywhere beats an earlier "Makes 2 loaves"
    for pattern in (SERVINGS_PATTERN, SERVES_PATTERN):
        for ln in lines:
            m = pattern.search(ln)
            if m:
                try:
                    n = int(m.group(1))
                except ValueError:
                    return DEFAULT_SERVINGS
                return n if n > 0 else DEFAULT_SERVINGS
    return DEFAULT_SERVINGS

def _resolve_language(text: str, hint: Optional[str]) -> str:
    if hint in ("el", "en"):
        return hint
    if hint not in (None, "", "auto"):
        log.debug("unknown language hint %r, detecting instead", hint)
    return detect_language(text)

def _to_ingredient(parsed: Dict) -> Ingredient:
    return Ingredient(**parsed)

def parse_recipe(text: str, source_language: str = "auto") -> Recipe:
    """Heuristic, section-aware parse of pasted recipe text.

    Never raises on odd input; degenerate text gives an "Untitled Recipe"
    with empty sections.
    """
    text = text or ""
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    language = _resolve_language(text, source_language)
    servings = _find_servings(lines)

    title = ""
    ingredients: List[Ingredient] = []
    instructions: List[str] = []
    section = "unknown"

    for i, line in enumerate(lines):
        if _is_header(line, INGREDIENT_HEADERS):
            section = "ingredients"
            continue
        if _is_header(line, INSTRUCTION_HEADERS):
            section = "instructions"
            continue
        if SERVINGS_LINE.match(line):
            continue

        if not title and i < 3 and len(line) < 100:
            title = re.sub(r"[()]", "", SERVINGS_PATTERN.sub("", line)).strip()
            continue

        kind = section
        if kind == "unknown":
            if looks_like_ingredient(line):
                kind = "ingredients"
            elif looks_like_instruction(line):
                kind = "instructions"

        if kind == "ingredients":
            parsed = parse_ingredient_line(line)
            if parsed["item"]:
                ingredients.append(_to_ingredient(parsed))
        elif kind == "instructions":
            step = STEP_PREFIX.sub("", line).strip()
            if step:
                instructions.append(step)

    if not ingredients:
        # no markers at all: try every line after the title
        for line in lines[1:]:
            if _is_header(line, INGREDIENT_HEADERS) or _is_header(line, INSTRUCTION_HEADERS):
                continue
            if SERVINGS_LINE.match(line):
                continue
            parsed = parse_ingredient_line(line)
            if parsed["item"] and (parsed["quantity"] is not None or len(parsed["item"]) < 50):
                ingredients.append(_to_ingredient(parsed))
        log.debug("fallback pass recovered %d ingredients", len(ingredients))

    return Recipe(
        title=title or UNTITLED,
        servings=servings,
        original_language=language,
        source="",
        ingredients=ingredients,
        instructions=instructions,
        original_text=text,
    )
