from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from .models import Recipe, dump_recipe
from .storage import RecipeBookError, RecipeStore

log = logging.getLogger(__name__)

class RemoteStoreError(RecipeBookError):
    pass

class RemoteRecipeStore:
    """Minimal JSON-over-HTTP recipe store.

    ``GET  {base}/recipes``        -> ``{"recipes": [...]}``
    ``PUT  {base}/recipes/{id}``   <- recipe JSON
    ``DELETE {base}/recipes/{id}``
    """

    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = 15,
                 client: Optional[httpx.Client] = None):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.client = client or httpx.Client(base_url=base_url.rstrip("/"), headers=headers, timeout=timeout)

    def close(self):
        self.client.close()

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            r = self.client.request(method, path, **kwargs)
            r.raise_for_status()
            return r
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"{method} {path} failed: {e}") from e

    def list(self) -> List[Recipe]:
        try:
            data = self._request("GET", "/recipes").json()
        except ValueError as e:
            raise RemoteStoreError(f"Remote store returned invalid JSON: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("recipes"), list):
            raise RemoteStoreError("Remote store returned an unexpected payload")
        try:
            return [Recipe.model_validate(r) for r in data["recipes"]]
        except ValidationError as e:
            raise RemoteStoreError(f"Remote store returned an invalid recipe: {e}") from e

    def put(self, recipe: Recipe) -> None:
        self._request("PUT", f"/recipes/{recipe.id}", json=dump_recipe(recipe))

    def delete(self, recipe_id: str) -> None:
        self._request("DELETE", f"/recipes/{recipe_id}")

@dataclass
class SyncReport:
    pushed: List[str] = field(default_factory=list)
    pulled: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {"pushed": self.pushed, "pulled": self.pulled, "errors": self.errors}

def _newer(a: Recipe, b: Recipe) -> bool:
    return (a.updated_at or "") > (b.updated_at or "")

def sync(local: RecipeStore, remote: RemoteRecipeStore) -> SyncReport:
    """Last-write-wins by ``updatedAt`` in both directions."""
    report = SyncReport()
    remote_by_id = {r.id: r for r in remote.list() if r.id}
    local_by_id = {r.id: r for r in local.list()}

    for rid, recipe in local_by_id.items():
        other = remote_by_id.get(rid)
        if other is None or _newer(recipe, other):
            try:
                remote.put(recipe)
                report.pushed.append(rid)
            except RemoteStoreError as e:
                log.error("Push of %s failed: %s", rid, e)
                report.errors[rid] = str(e)

    for rid, recipe in remote_by_id.items():
        mine = local_by_id.get(rid)
        if mine is None or _newer(recipe, mine):
            try:
                local.put(recipe)
                report.pulled.append(rid)
            except RecipeBookError as e:
                log.error("Pull of %s failed: %s", rid, e)
                report.errors[rid] = str(e)

    log.info("Sync done: %d pushed, %d pulled, %d errors",
             len(report.pushed), len(report.pulled), len(report.errors))
    return report
