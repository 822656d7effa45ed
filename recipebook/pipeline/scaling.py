from __future__ import annotations
from typing import Any, Optional

from .units import Display, Number, smart_round

def scale_factor(base_servings: Optional[int], desired_servings: Optional[int]) -> float:
    if not base_servings or not desired_servings:
        return 1.0
    return desired_servings / base_servings

def scale_quantity(quantity: Any, base_servings: Optional[int], desired_servings: Optional[int]) -> Optional[Display]:
    # falsy inputs (None quantity, zero servings) pass through untouched
    if not quantity or not base_servings or not desired_servings:
        return quantity
    return smart_round(quantity * (desired_servings / base_servings))

def scale_raw(quantity: Optional[Number], base_servings: Optional[int], desired_servings: Optional[int]) -> Optional[Number]:
    """Scaled quantity without display rounding, for chaining into conversion."""
    if not quantity:
        return quantity
    return quantity * scale_factor(base_servings, desired_servings)

def scale_ingredient(ingredient, base_servings: Optional[int], desired_servings: Optional[int]):
    return ingredient.model_copy(update={
        "quantity": scale_raw(ingredient.quantity, base_servings, desired_servings),
    })
