from __future__ import annotations
import json, logging, re, uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, List, Optional, Union

from pydantic import ValidationError
from rapidfuzz import fuzz, process, utils

from .models import Recipe, dump_recipe

log = logging.getLogger(__name__)

EXPORT_VERSION = 1
SEARCH_CUTOFF = 60
SAFE_ID = re.compile(r"[\w-]{1,128}")

class RecipeBookError(Exception):
    pass

class IncompleteRecipeError(RecipeBookError):
    pass

class InvalidImportError(RecipeBookError):
    pass

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()

def new_id() -> str:
    return uuid.uuid4().hex

class RecipeStore:
    """Recipes as one JSON file each, plus an ``index.json`` summary."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.recipes_dir = self.root / "recipes"
        self.index_path = self.root / "index.json"
        self.ensure_dirs()

    def ensure_dirs(self):
        self.recipes_dir.mkdir(parents=True, exist_ok=True)
        if not self.index_path.exists():
            self._write_index({})

    def _read_index(self) -> Dict[str, Any]:
        try:
            return json.loads(self.index_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}

    def _write_index(self, idx: Dict[str, Any]):
        self.index_path.write_text(json.dumps(idx, ensure_ascii=False, indent=2), encoding="utf-8")

    def _path(self, recipe_id: str) -> Path:
        if not SAFE_ID.fullmatch(recipe_id or ""):
            raise RecipeBookError(f"Invalid recipe id: {recipe_id!r}")
        return self.recipes_dir / f"{recipe_id}.json"

    def _write(self, recipe: Recipe) -> Recipe:
        self._path(recipe.id).write_text(
            json.dumps(dump_recipe(recipe), ensure_ascii=False, indent=2), encoding="utf-8"
        )
        idx = self._read_index()
        idx[recipe.id] = {
            "id": recipe.id,
            "title": recipe.title,
            "createdAt": recipe.created_at,
            "updatedAt": recipe.updated_at,
        }
        self._write_index(idx)
        return recipe

    def save(self, recipe: Recipe) -> Recipe:
        """Create or update. New recipes get an id; every save refreshes updatedAt."""
        if not recipe.title.strip() or not recipe.ingredients:
            raise IncompleteRecipeError("A recipe needs a title and at least one ingredient.")
        now = _now()
        update: Dict[str, Any] = {"updated_at": now}
        if not recipe.id:
            update["id"] = new_id()
            update["created_at"] = now
        elif recipe.created_at is None:
            existing = self.get(recipe.id)
            update["created_at"] = existing.created_at if existing and existing.created_at else now
        stored = self._write(recipe.model_copy(update=update))
        log.info("Saved recipe %s (%s)", stored.id, stored.title)
        return stored

    def put(self, recipe: Recipe) -> Recipe:
        """Store as-is, keeping id and timestamps (restores and remote pulls)."""
        if not recipe.id:
            now = _now()
            recipe = recipe.model_copy(update={"id": new_id(), "created_at": recipe.created_at or now,
                                               "updated_at": recipe.updated_at or now})
        return self._write(recipe)

    def get(self, recipe_id: str) -> Optional[Recipe]:
        if not SAFE_ID.fullmatch(recipe_id or ""):
            return None
        path = self._path(recipe_id)
        if not path.is_file():
            return None
        return Recipe.model_validate(json.loads(path.read_text(encoding="utf-8")))

    def list(self) -> List[Recipe]:
        recipes = [Recipe.model_validate(json.loads(p.read_text(encoding="utf-8")))
                   for p in self.recipes_dir.glob("*.json")]
        return sorted(recipes, key=lambda r: r.created_at or "", reverse=True)

    def delete(self, recipe_id: str) -> bool:
        if not SAFE_ID.fullmatch(recipe_id or ""):
            return False
        path = self._path(recipe_id)
        if not path.is_file():
            return False
        path.unlink()
        idx = self._read_index()
        idx.pop(recipe_id, None)
        self._write_index(idx)
        log.info("Deleted recipe %s", recipe_id)
        return True

    def clear(self):
        for p in self.recipes_dir.glob("*.json"):
            p.unlink()
        self._write_index({})

    def export(self) -> Dict[str, Any]:
        return {
            "version": EXPORT_VERSION,
            "exportedAt": _now(),
            "recipes": [dump_recipe(r) for r in self.list()],
        }

    def import_(self, data: Any, merge: bool = True) -> List[Recipe]:
        """Import an export payload.

        ``merge=False`` replaces everything and keeps ids and timestamps;
        ``merge=True`` adds the recipes under fresh ids.
        """
        if not isinstance(data, dict) or not isinstance(data.get("recipes"), list):
            raise InvalidImportError("Invalid import data format")
        try:
            recipes = [Recipe.model_validate(r) for r in data["recipes"]]
        except ValidationError as e:
            raise InvalidImportError(f"Invalid recipe in import data: {e}") from e
        if not merge:
            bad = [r.id for r in recipes if r.id and not SAFE_ID.fullmatch(r.id)]
            if bad:
                raise InvalidImportError(f"Invalid recipe ids in import data: {bad}")
            ids = [r.id for r in recipes if r.id]
            dupes = sorted({i for i in ids if ids.count(i) > 1})
            if dupes:
                raise InvalidImportError(f"Duplicate recipe ids in import data: {dupes}")

        if not merge:
            self.clear()
            imported = [self.put(r) for r in recipes]
        else:
            imported = []
            for r in recipes:
                now = _now()
                imported.append(self._write(r.model_copy(update={"id": new_id(), "created_at": now,
                                                                 "updated_at": now})))
        log.info("Imported %d recipes (merge=%s)", len(imported), merge)
        return imported

    def search(self, query: str, limit: int = 10) -> List[Recipe]:
        """Fuzzy match on titles, translated titles and ingredient names."""
        recipes = self.list()
        if not query.strip():
            return recipes[:limit]
        choices = {}
        for i, r in enumerate(recipes):
            words = [r.title, r.translated_title or ""] + [ing.item for ing in r.ingredients]
            choices[i] = " ".join(w for w in words if w)
        hits = process.extract(query, choices, scorer=fuzz.WRatio, processor=utils.default_process,
                               limit=limit, score_cutoff=SEARCH_CUTOFF)
        return [recipes[key] for _, _, key in hits]
