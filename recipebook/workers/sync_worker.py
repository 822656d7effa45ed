from __future__ import annotations
import logging, time
from typing import Optional

from ..config import Settings, get_settings
from ..remote import RemoteRecipeStore, RemoteStoreError, SyncReport, sync
from ..storage import RecipeStore

log = logging.getLogger(__name__)

def run_once(store: RecipeStore, remote: RemoteRecipeStore) -> Optional[SyncReport]:
    try:
        return sync(store, remote)
    except RemoteStoreError as e:
        log.error("Sync pass failed: %s", e)
        return None

def main(settings: Optional[Settings] = None, max_passes: Optional[int] = None):
    settings = settings or get_settings()
    if not settings.remote_enabled:
        log.error("REMOTE_STORE_URL is not set, nothing to sync.")
        return
    store = RecipeStore(settings.recipes_dir)
    remote = RemoteRecipeStore(settings.remote_store_url, settings.remote_store_token)
    log.info("Sync worker started. Syncing %s every %ss", settings.recipes_dir, settings.sync_interval)
    passes = 0
    try:
        while max_passes is None or passes < max_passes:
            run_once(store, remote)
            passes += 1
            if max_passes is None or passes < max_passes:
                time.sleep(settings.sync_interval)
    finally:
        remote.close()

if __name__ == "__main__":
    main()
