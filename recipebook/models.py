from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Optional, Literal, List, Dict, Any

from .pipeline.units import normalize_unit

Language = Literal["el", "en"]
UnitSystem = Literal["metric", "us", "cooking"]

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class Ingredient(_CamelModel):
    quantity: Optional[float] = Field(None, gt=0, description="None = vague amount, never zero")
    unit: Optional[str] = None
    item: str = Field(..., min_length=1)
    translated_item: Optional[str] = None
    notes: str = ""

    @field_validator("unit")
    @classmethod
    def _canonical_unit(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        code = normalize_unit(v)
        if code is None:
            raise ValueError(f"unknown unit: {v!r}")
        return code

class Recipe(_CamelModel):
    id: Optional[str] = None
    title: str = "Untitled Recipe"
    translated_title: Optional[str] = None
    servings: int = Field(4, gt=0)
    original_language: Language = "en"
    translated_language: Optional[Language] = None
    source: str = ""
    ingredients: List[Ingredient] = []
    instructions: List[str] = []
    translated_instructions: Optional[List[Optional[str]]] = None
    original_text: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @model_validator(mode="after")
    def _parallel_translations(self) -> "Recipe":
        tr = self.translated_instructions
        if tr is not None and len(tr) != len(self.instructions):
            raise ValueError("translatedInstructions must have one entry per instruction (null when missing)")
        return self

def dump_recipe(recipe: Recipe) -> Dict[str, Any]:
    # unset optional fields stay absent so exports re-import to the same JSON
    return recipe.model_dump(by_alias=True, exclude_unset=True)

class ParseRequest(BaseModel):
    text: str = Field(..., description="Free recipe text as pasted by the user")
    language: Literal["auto", "el", "en"] = "auto"

class ParseResponse(BaseModel):
    recipe: Dict[str, Any]
    engine: Literal["heuristic", "llm"]
    warning: Optional[str] = None

class ConversionRequest(BaseModel):
    quantity: Optional[float] = None
    unit: Optional[str] = None
    system: Literal["metric", "us", "cooking", "all"] = "metric"

class ImportResult(BaseModel):
    imported: int
    ids: List[str] = []

class TranslateRequest(BaseModel):
    text: str
    source: Language = Field("en", description="Language of the text")
    target: Optional[Language] = None
