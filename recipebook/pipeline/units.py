from __future__ import annotations
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

Number = Union[int, float]
Display = Union[int, float, str]

SYSTEMS = ("metric", "us", "cooking")

@dataclass(frozen=True)
class UnitDef:
    type: str
    system: str
    name: str
    base: Optional[float] = None  # grams or millilitres; None for temperature

UNITS: Mapping[str, UnitDef] = MappingProxyType({
    # weight, base = grams
    "g": UnitDef("weight", "metric", "grams", 1.0),
    "kg": UnitDef("weight", "metric", "kilograms", 1000.0),
    "oz": UnitDef("weight", "us", "ounces", 28.3495),
    "lb": UnitDef("weight", "us", "pounds", 453.592),
    # volume, base = millilitres
    "ml": UnitDef("volume", "metric", "milliliters", 1.0),
    "l": UnitDef("volume", "metric", "liters", 1000.0),
    "fl oz": UnitDef("volume", "us", "fluid ounces", 29.5735),
    "cup": UnitDef("volume", "cooking", "cups", 236.588),
    "tbsp": UnitDef("volume", "cooking", "tablespoons", 14.7868),
    "tsp": UnitDef("volume", "cooking", "teaspoons", 4.92892),
    # temperature, affine
    "°C": UnitDef("temperature", "metric", "Celsius"),
    "°F": UnitDef("temperature", "us", "Fahrenheit"),
})

UNIT_ALIASES: Mapping[str, str] = MappingProxyType({
    "gram": "g", "grams": "g", "gr": "g", "grs": "g", "γρ": "g", "γρ.": "g", "γραμμάρια": "g", "γραμμάριο": "g",
    "kilogram": "kg", "kilograms": "kg", "kgs": "kg", "κιλό": "kg", "κιλά": "kg",
    "ounce": "oz", "ounces": "oz",
    "pound": "lb", "pounds": "lb", "lbs": "lb",
    "milliliter": "ml", "milliliters": "ml", "millilitre": "ml", "millilitres": "ml", "mls": "ml",
    "liter": "l", "liters": "l", "litre": "l", "litres": "l", "λίτρο": "l", "λίτρα": "l",
    "fluid ounce": "fl oz", "fluid ounces": "fl oz", "floz": "fl oz", "fl oz.": "fl oz",
    "fl. oz": "fl oz", "fl. oz.": "fl oz", "fl.oz": "fl oz", "fl.oz.": "fl oz",
    "tablespoon": "tbsp", "tablespoons": "tbsp", "tbsps": "tbsp", "tbs": "tbsp",
    "κ.σ.": "tbsp", "κ.σ": "tbsp", "κουταλιά σούπας": "tbsp", "κουταλιές σούπας": "tbsp",
    "teaspoon": "tsp", "teaspoons": "tsp", "tsps": "tsp",
    "κ.γ.": "tsp", "κ.γ": "tsp", "κουταλάκι": "tsp", "κουταλάκια": "tsp", "κουταλάκι γλυκού": "tsp", "κουταλάκια γλυκού": "tsp",
    "cups": "cup", "φλιτζάνι": "cup", "φλιτζάνια": "cup",
    "c": "°C", "celsius": "°C", "βαθμούς": "°C", "βαθμοί": "°C",
    "f": "°F", "fahrenheit": "°F",
})

PREFERRED_UNITS: Mapping[str, Mapping[str, str]] = MappingProxyType({
    "metric": MappingProxyType({"weight": "g", "volume": "ml", "temperature": "°C"}),
    "us": MappingProxyType({"weight": "oz", "volume": "fl oz", "temperature": "°F"}),
    "cooking": MappingProxyType({"weight": "oz", "volume": "cup", "temperature": "°F"}),
})

_CANONICAL_LOWER = MappingProxyType({code.lower(): code for code in UNITS})

FRACTION_GLYPHS = (
    (1 / 8, "⅛"),
    (1 / 4, "¼"),
    (1 / 3, "⅓"),
    (1 / 2, "½"),
    (2 / 3, "⅔"),
    (3 / 4, "¾"),
)
SNAP_TOLERANCE = 0.05

def normalize_unit(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    key = " ".join(raw.split()).lower()
    if not key:
        return None
    if key in _CANONICAL_LOWER:
        return _CANONICAL_LOWER[key]
    return UNIT_ALIASES.get(key)

def unit_type(unit: Optional[str]) -> Optional[str]:
    code = normalize_unit(unit)
    return UNITS[code].type if code else None

def _convert_temperature(value: float, src: str, dst: str) -> float:
    if src == dst:
        return value
    if src == "°C":
        return value * 9 / 5 + 32
    return (value - 32) * 5 / 9

def convert(value: Number, from_unit: Optional[str], to_unit: Optional[str]) -> Optional[float]:
    """Convert ``value`` between two units of the same physical type.

    Returns None when a unit is unknown or the types differ. No rounding
    happens here; use :func:`smart_round` on the final display value.
    """
    src, dst = normalize_unit(from_unit), normalize_unit(to_unit)
    if src is None or dst is None:
        return None
    src_def, dst_def = UNITS[src], UNITS[dst]
    if src_def.type != dst_def.type:
        return None
    if src_def.type == "temperature":
        return _convert_temperature(value, src, dst)
    return value * src_def.base / dst_def.base

def smart_round(num: Optional[Number]) -> Optional[Display]:
    """Round for display, snapping to common kitchen fractions ("2 ½")."""
    if num is None:
        return None
    if num == 0:
        return 0
    if num < 0.125:
        return _tidy(round(num, 2))
    whole = int(num // 1)
    remainder = num - whole
    best = None
    best_diff = SNAP_TOLERANCE
    for value, glyph in FRACTION_GLYPHS:
        diff = abs(remainder - value)
        if diff < best_diff:
            best, best_diff = glyph, diff
    if best is not None:
        return best if whole == 0 else f"{whole} {best}"
    return _tidy(round(num, 2))

def _tidy(value: float) -> Number:
    return int(value) if float(value).is_integer() else value

def _get(ingredient: Any, key: str) -> Any:
    if isinstance(ingredient, Mapping):
        return ingredient.get(key)
    return getattr(ingredient, key, None)

def convert_quantity(quantity: Optional[Number], unit: Optional[str], target_system: str) -> Dict[str, Any]:
    if not unit or not quantity:
        return {"quantity": quantity, "unit": unit, "converted": False}

    code = normalize_unit(unit)
    if code is None:
        return {"quantity": quantity, "unit": unit, "converted": False}

    target = PREFERRED_UNITS.get(target_system, {}).get(unit_type(code))
    if not target or code == target:
        return {"quantity": quantity, "unit": code, "converted": False}

    value = convert(quantity, code, target)
    if value is None:
        return {"quantity": quantity, "unit": code, "converted": False}

    return {
        "quantity": smart_round(value),
        "unit": target,
        "converted": True,
        "originalQuantity": quantity,
        "originalUnit": unit,
    }

def convert_ingredient(ingredient: Any, target_system: str) -> Dict[str, Any]:
    return convert_quantity(_get(ingredient, "quantity"), _get(ingredient, "unit"), target_system)

def get_all_conversions(ingredient: Any) -> Dict[str, Dict[str, Any]]:
    out: Dict[str, Dict[str, Any]] = {
        "original": {"quantity": _get(ingredient, "quantity"), "unit": _get(ingredient, "unit")},
    }
    for system in SYSTEMS:
        out[system] = convert_ingredient(ingredient, system)
    return out
