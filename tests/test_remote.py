from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import httpx

from recipebook.config import Settings
from recipebook.models import Ingredient, Recipe, dump_recipe
from recipebook.remote import RemoteRecipeStore, RemoteStoreError, sync
from recipebook.storage import RecipeStore
from recipebook.workers import sync_worker

JAN = "2024-01-01T00:00:00+00:00"
FEB = "2024-02-01T00:00:00+00:00"


def make_recipe(recipe_id: str, title: str, updated_at: str) -> Recipe:
    return Recipe(id=recipe_id, title=title, ingredients=[Ingredient(quantity=1, unit="kg", item="lamb")],
                  created_at=JAN, updated_at=updated_at)


class FakeServer:
    """In-memory remote that speaks the /recipes protocol."""

    def __init__(self, *recipes: Recipe):
        self.recipes = {r.id: dump_recipe(r) for r in recipes}
        self.fail_put = set()
        self.fail_list = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        parts = request.url.path.strip("/").split("/")
        if request.method == "GET" and parts == ["recipes"]:
            if self.fail_list:
                return httpx.Response(503)
            return httpx.Response(200, json={"recipes": list(self.recipes.values())})
        if request.method == "PUT" and len(parts) == 2:
            if parts[1] in self.fail_put:
                return httpx.Response(500)
            self.recipes[parts[1]] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True})
        if request.method == "DELETE" and len(parts) == 2:
            self.recipes.pop(parts[1], None)
            return httpx.Response(204)
        return httpx.Response(404)

    def store(self) -> RemoteRecipeStore:
        client = httpx.Client(base_url="http://remote.test", transport=httpx.MockTransport(self))
        return RemoteRecipeStore("http://remote.test", client=client)


class RemoteTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.local = RecipeStore(Path(self.tmp.name))


class RemoteRecipeStoreTests(RemoteTestCase):
    def test_list_put_delete(self) -> None:
        server = FakeServer(make_recipe("a", "Kleftiko", JAN))
        remote = server.store()
        self.assertEqual([r.title for r in remote.list()], ["Kleftiko"])
        remote.put(make_recipe("b", "Stifado", FEB))
        self.assertEqual(server.recipes["b"]["title"], "Stifado")
        remote.delete("a")
        self.assertEqual(set(server.recipes), {"b"})
        remote.close()

    def test_http_errors_are_wrapped(self) -> None:
        server = FakeServer()
        server.fail_list = True
        with self.assertRaises(RemoteStoreError):
            server.store().list()

    def test_unexpected_payload(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=[1, 2, 3]))
        remote = RemoteRecipeStore("http://remote.test",
                                   client=httpx.Client(base_url="http://remote.test", transport=transport))
        with self.assertRaises(RemoteStoreError):
            remote.list()

    def test_invalid_json(self) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"<html>"))
        remote = RemoteRecipeStore("http://remote.test",
                                   client=httpx.Client(base_url="http://remote.test", transport=transport))
        with self.assertRaises(RemoteStoreError):
            remote.list()

    def test_bearer_token(self) -> None:
        remote = RemoteRecipeStore("http://remote.test/", token="secret")
        self.assertEqual(remote.client.headers["Authorization"], "Bearer secret")
        remote.close()


class SyncTests(RemoteTestCase):
    def test_last_write_wins_both_ways(self) -> None:
        self.local.put(make_recipe("a", "Kleftiko (edited)", FEB))
        self.local.put(make_recipe("c", "Local only", JAN))
        server = FakeServer(make_recipe("a", "Kleftiko", JAN), make_recipe("b", "Remote only", JAN))

        report = sync(self.local, server.store())

        self.assertEqual(sorted(report.pushed), ["a", "c"])
        self.assertEqual(report.pulled, ["b"])
        self.assertEqual(report.errors, {})
        self.assertEqual(server.recipes["a"]["title"], "Kleftiko (edited)")
        self.assertEqual(self.local.get("b").title, "Remote only")

    def test_newer_remote_overwrites_local(self) -> None:
        self.local.put(make_recipe("a", "Old", JAN))
        server = FakeServer(make_recipe("a", "New", FEB))
        report = sync(self.local, server.store())
        self.assertEqual(report.as_dict(), {"pushed": [], "pulled": ["a"], "errors": {}})
        self.assertEqual(self.local.get("a").title, "New")
        self.assertEqual(self.local.get("a").updated_at, FEB)

    def test_in_sync_is_a_no_op(self) -> None:
        self.local.put(make_recipe("a", "Same", JAN))
        report = sync(self.local, FakeServer(make_recipe("a", "Same", JAN)).store())
        self.assertEqual((report.pushed, report.pulled), ([], []))

    def test_failed_push_is_reported(self) -> None:
        self.local.put(make_recipe("a", "One", FEB))
        self.local.put(make_recipe("b", "Two", FEB))
        server = FakeServer()
        server.fail_put.add("a")
        report = sync(self.local, server.store())
        self.assertEqual(report.pushed, ["b"])
        self.assertIn("a", report.errors)


class SyncWorkerTests(RemoteTestCase):
    def test_run_once_swallows_unreachable_remote(self) -> None:
        server = FakeServer()
        server.fail_list = True
        self.assertIsNone(sync_worker.run_once(self.local, server.store()))

    def test_main_without_remote_does_nothing(self) -> None:
        with mock.patch.object(sync_worker, "sync") as sync_mock:
            sync_worker.main(Settings(recipes_dir=Path(self.tmp.name)), max_passes=1)
        sync_mock.assert_not_called()

    def test_main_runs_passes_and_closes_remote(self) -> None:
        settings = Settings(recipes_dir=Path(self.tmp.name), remote_store_url="http://remote.test",
                            sync_interval=0)
        with mock.patch.object(sync_worker, "RemoteRecipeStore") as remote_cls, \
                mock.patch.object(sync_worker, "sync") as sync_mock:
            sync_worker.main(settings, max_passes=2)
        self.assertEqual(sync_mock.call_count, 2)
        remote_cls.return_value.close.assert_called_once()


if __name__ == "__main__":
    unittest.main()
