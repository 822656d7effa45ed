from __future__ import annotations
from typing import Dict, Any, List, Optional

from ..models import Ingredient, Recipe
from .scaling import scale_ingredient
from .units import convert_ingredient, get_all_conversions, smart_round

def format_quantity_unit(quantity, unit: Optional[str]) -> str:
    if quantity is None or quantity == "":
        return ""
    q = smart_round(quantity) if isinstance(quantity, (int, float)) else quantity
    return f"{q} {unit}" if unit else f"{q}"

def format_ingredient(ingredient: Ingredient, translated: bool = False) -> str:
    item = ingredient.translated_item if translated and ingredient.translated_item else ingredient.item
    parts = [format_quantity_unit(ingredient.quantity, ingredient.unit) if ingredient.quantity else "", item]
    text = " ".join(p for p in parts if p)
    if ingredient.notes:
        text += f" ({ingredient.notes})"
    return text.strip()

def has_translation(recipe: Recipe) -> bool:
    return bool(recipe.translated_title
                or any(s for s in recipe.translated_instructions or [])
                or any(i.translated_item for i in recipe.ingredients))

def ingredient_row(ingredient: Ingredient, base_servings: int, servings: int, system: str) -> Dict[str, Any]:
    # scale in original units, convert, round only for display
    scaled = scale_ingredient(ingredient, base_servings, servings)
    qty = scaled.quantity
    conv = convert_ingredient(scaled, system)
    row = {
        "quantity": smart_round(qty),
        "unit": ingredient.unit,
        "display": format_quantity_unit(qty, ingredient.unit),
        "item": ingredient.item,
        "translatedItem": ingredient.translated_item,
        "notes": ingredient.notes,
        "text": format_ingredient(scaled),
        "translatedText": format_ingredient(scaled, translated=True) if ingredient.translated_item else None,
        "converted": format_quantity_unit(conv["quantity"], conv["unit"]) if conv["converted"] else None,
    }
    return row

def recipe_view(recipe: Recipe, servings: Optional[int] = None, system: str = "metric") -> Dict[str, Any]:
    servings = servings or recipe.servings
    steps = []
    for i, step in enumerate(recipe.instructions):
        tr = recipe.translated_instructions or []
        steps.append({"number": i + 1, "text": step, "translation": tr[i] if i < len(tr) else None})
    return {
        "id": recipe.id,
        "title": recipe.title,
        "translatedTitle": recipe.translated_title,
        "servings": servings,
        "baseServings": recipe.servings,
        "system": system,
        "hasTranslation": has_translation(recipe),
        "ingredients": [ingredient_row(ing, recipe.servings, servings, system) for ing in recipe.ingredients],
        "instructions": steps,
    }

def conversions_table(ingredients: List[Ingredient]) -> List[Dict[str, Any]]:
    return [{"item": ing.item, **get_all_conversions(ing)} for ing in ingredients]
