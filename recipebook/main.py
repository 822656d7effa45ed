from fastapi import Body, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from typing import Any, Optional
import logging

from .config import Settings, get_settings
from .models import (ConversionRequest, ImportResult, ParseRequest, ParseResponse, Recipe, TranslateRequest,
                     UnitSystem, dump_recipe)
from .pipeline.extract_llm import smart_parse, translate_text
from .pipeline.language import other_language
from .pipeline.render import conversions_table, recipe_view
from .pipeline.units import SYSTEMS, convert_quantity
from .storage import IncompleteRecipeError, InvalidImportError, RecipeStore

log = logging.getLogger(__name__)

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="Recipe Book Service", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.store = RecipeStore(settings.recipes_dir)

    def _store(request: Request) -> RecipeStore:
        return request.app.state.store

    def _get_or_404(request: Request, recipe_id: str) -> Recipe:
        recipe = _store(request).get(recipe_id)
        if not recipe:
            raise HTTPException(404, "Recipe not found")
        return recipe

    @app.post("/v1/parse", response_model=ParseResponse)
    def parse(req: ParseRequest, request: Request):
        outcome = smart_parse(req.text, req.language, request.app.state.settings)
        return {"recipe": dump_recipe(outcome.recipe), "engine": outcome.engine, "warning": outcome.warning}

    @app.post("/v1/translate")
    def translate(req: TranslateRequest, request: Request):
        target = req.target or other_language(req.source)
        translation = translate_text(req.text, req.source, target, request.app.state.settings)
        return {"translation": translation, "source": req.source, "target": target}

    @app.post("/v1/convert")
    def convert(req: ConversionRequest):
        if req.system == "all":
            return {s: convert_quantity(req.quantity, req.unit, s) for s in SYSTEMS}
        return convert_quantity(req.quantity, req.unit, req.system)

    @app.get("/v1/recipes")
    def list_recipes(request: Request, q: Optional[str] = None, limit: int = Query(50, ge=1, le=500)):
        store = _store(request)
        recipes = store.search(q, limit=limit) if q else store.list()[:limit]
        return {"recipes": [dump_recipe(r) for r in recipes]}

    @app.post("/v1/recipes", status_code=201)
    def create_recipe(recipe: Recipe, request: Request):
        try:
            stored = _store(request).save(recipe.model_copy(update={"id": None}))
        except IncompleteRecipeError as e:
            raise HTTPException(422, str(e))
        return dump_recipe(stored)

    @app.get("/v1/recipes/{recipe_id}")
    def get_recipe(recipe_id: str, request: Request):
        return dump_recipe(_get_or_404(request, recipe_id))

    @app.put("/v1/recipes/{recipe_id}")
    def update_recipe(recipe_id: str, recipe: Recipe, request: Request):
        existing = _get_or_404(request, recipe_id)
        update = {"id": recipe_id, "created_at": existing.created_at}
        try:
            stored = _store(request).save(recipe.model_copy(update=update))
        except IncompleteRecipeError as e:
            raise HTTPException(422, str(e))
        return dump_recipe(stored)

    @app.delete("/v1/recipes/{recipe_id}", status_code=204)
    def delete_recipe(recipe_id: str, request: Request):
        if not _store(request).delete(recipe_id):
            raise HTTPException(404, "Recipe not found")

    @app.get("/v1/recipes/{recipe_id}/view")
    def view_recipe(recipe_id: str, request: Request, servings: Optional[int] = Query(None, ge=1, le=100),
                    system: Optional[UnitSystem] = None):
        recipe = _get_or_404(request, recipe_id)
        return recipe_view(recipe, servings, system or request.app.state.settings.unit_system)

    @app.get("/v1/recipes/{recipe_id}/conversions")
    def recipe_conversions(recipe_id: str, request: Request):
        return {"ingredients": conversions_table(_get_or_404(request, recipe_id).ingredients)}

    @app.get("/v1/export")
    def export_recipes(request: Request):
        return _store(request).export()

    @app.post("/v1/import", response_model=ImportResult)
    def import_recipes(request: Request, data: Any = Body(...), merge: bool = True):
        try:
            imported = _store(request).import_(data, merge=merge)
        except InvalidImportError as e:
            raise HTTPException(400, str(e))
        return {"imported": len(imported), "ids": [r.id for r in imported]}

    log.info("Recipe store ready at %s", settings.recipes_dir)
    return app

app = create_app()
