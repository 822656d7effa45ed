from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import logging
import os

from dotenv import load_dotenv

load_dotenv()

ROOT = Path(__file__).resolve().parents[1]

# Global logging (module-level loggers inherit this)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)

@dataclass(frozen=True)
class Settings:
    recipes_dir: Path = field(default_factory=lambda: ROOT / "data")
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    unit_system: str = "metric"
    remote_store_url: Optional[str] = None
    remote_store_token: Optional[str] = None
    sync_interval: float = 60.0

    @property
    def llm_enabled(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def remote_enabled(self) -> bool:
        return bool(self.remote_store_url)

def get_settings() -> Settings:
    return Settings(
        recipes_dir=Path(os.getenv("RECIPES_DIR", ROOT / "data")),
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        unit_system=os.getenv("UNIT_SYSTEM", "metric"),
        remote_store_url=os.getenv("REMOTE_STORE_URL") or None,
        remote_store_token=os.getenv("REMOTE_STORE_TOKEN") or None,
        sync_interval=float(os.getenv("SYNC_INTERVAL", "60")),
    )
