"""
Runtime configuration from environment variables (optionally a .env file).
"""

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

PACKAGE_DATA = Path(__file__).resolve().parent / "data"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _split(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    DATA_DIR: Path = Path("data/collected")
    ADMIN_KEY: Optional[str] = None
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-4o-mini"
    CORS_ORIGINS: List[str] = field(default_factory=lambda: ["http://localhost:3000"])
    LOG_LEVEL: str = "INFO"
    TREE_PATH: Path = PACKAGE_DATA / "tree.json"
    TICKETS_PATH: Path = PACKAGE_DATA / "tickets.json"
    SURVEY_PATH: Path = PACKAGE_DATA / "survey.json"
    KNOWLEDGE_DIR: Path = PACKAGE_DATA / "knowledge"
    EXPERIMENT_DURATION_SECONDS: int = 900
    SYNC_INTERVAL_SECONDS: float = 30.0
    UNLOCK_CHECK_INTERVAL_SECONDS: float = 1.0

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            DATA_DIR=Path(os.getenv("DATA_DIR", str(defaults.DATA_DIR))),
            ADMIN_KEY=os.getenv("ADMIN_KEY") or None,
            OPENAI_API_KEY=os.getenv("OPENAI_API_KEY") or None,
            OPENAI_MODEL=os.getenv("OPENAI_MODEL", defaults.OPENAI_MODEL),
            CORS_ORIGINS=_split(os.getenv("CORS_ORIGINS", ",".join(defaults.CORS_ORIGINS))),
            LOG_LEVEL=os.getenv("LOG_LEVEL", defaults.LOG_LEVEL).upper(),
            TREE_PATH=Path(os.getenv("TREE_PATH", str(defaults.TREE_PATH))),
            TICKETS_PATH=Path(os.getenv("TICKETS_PATH", str(defaults.TICKETS_PATH))),
            SURVEY_PATH=Path(os.getenv("SURVEY_PATH", str(defaults.SURVEY_PATH))),
            KNOWLEDGE_DIR=Path(os.getenv("KNOWLEDGE_DIR", str(defaults.KNOWLEDGE_DIR))),
            EXPERIMENT_DURATION_SECONDS=int(
                os.getenv("EXPERIMENT_DURATION_SECONDS", defaults.EXPERIMENT_DURATION_SECONDS)
            ),
            SYNC_INTERVAL_SECONDS=float(
                os.getenv("SYNC_INTERVAL_SECONDS", defaults.SYNC_INTERVAL_SECONDS)
            ),
            UNLOCK_CHECK_INTERVAL_SECONDS=float(
                os.getenv("UNLOCK_CHECK_INTERVAL_SECONDS", defaults.UNLOCK_CHECK_INTERVAL_SECONDS)
            ),
        )


@lru_cache()
def get_settings() -> Settings:
    load_dotenv()
    return Settings.from_env()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
