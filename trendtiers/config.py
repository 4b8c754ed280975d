"""Configuration helpers for the TrendTiers content pipeline."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from .utils import env_bool, env_int

LOGGER = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent.parent
CONTENT_DIR = BASE_DIR / "src" / "content" / "tierlists"
CREDENTIALS_FILE = BASE_DIR / "UpYum.json"

DEFAULT_ASSOCIATE_TAG = "mythorath-20"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_CYCLE_MINUTES = 60
DEFAULT_REQUEST_DELAY_MS = 1000

DEFAULT_CATEGORIES: Tuple[str, ...] = (
    "best gaming headsets 2025",
    "best wireless keyboards 2025",
    "best standing desks 2025",
    "best webcams 2025",
    "best monitors 2025",
    "best speakers 2025",
    "best tablets 2025",
    "best smartwatches 2025",
    "best coffee makers 2025",
    "best air fryers 2025",
)


class ConfigurationError(RuntimeError):
    """Raised when a required provider is not configured."""


@dataclass(frozen=True)
class Settings:
    """Runtime settings shared by every pipeline component."""

    serpapi_key: str | None = None
    openai_api_key: str | None = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    openai_base_url: str | None = None
    associate_tag: str = DEFAULT_ASSOCIATE_TAG
    content_dir: Path = CONTENT_DIR
    categories: Tuple[str, ...] = DEFAULT_CATEGORIES
    max_products: int = 8
    request_delay: float = DEFAULT_REQUEST_DELAY_MS / 1000
    auto_commit: bool = False
    git_push: bool = False
    cycle_minutes: int = DEFAULT_CYCLE_MINUTES

    def require_search(self) -> str:
        if not self.serpapi_key:
            raise ConfigurationError("SERPAPI_KEY environment variable is required")
        return self.serpapi_key

    def require_llm(self) -> str:
        if not self.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY environment variable is required")
        return self.openai_api_key


def _clean(name: str) -> str | None:
    value = (os.getenv(name) or "").strip()
    return value or None


def load_credentials_file(path: Path | None = None) -> int:
    """Copy string values from a JSON credentials file into unset environment variables.

    Returns the number of variables that were filled. A missing or unreadable
    file is not an error; the pipeline simply falls back to the environment.
    """

    target = path or Path(os.getenv("CREDENTIALS_FILE") or CREDENTIALS_FILE)
    if not target.exists():
        return 0
    try:
        data = json.loads(target.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        LOGGER.warning("Unable to read credentials from %s: %s", target, exc)
        return 0
    if not isinstance(data, dict):
        return 0
    filled = 0
    for key, value in data.items():
        if isinstance(value, str) and os.getenv(key) is None:
            os.environ[key] = value
            filled += 1
    if filled:
        LOGGER.info("Loaded %s credentials from %s", filled, target.name)
    return filled


def load_settings(content_dir: Path | None = None) -> Settings:
    """Build :class:`Settings` from the current environment."""

    directory = content_dir or _clean("TRENDTIERS_CONTENT_DIR")
    delay_ms = max(env_int("REQUEST_DELAY_MS", DEFAULT_REQUEST_DELAY_MS), 0)
    return Settings(
        serpapi_key=_clean("SERPAPI_KEY"),
        openai_api_key=_clean("OPENAI_API_KEY"),
        openai_model=_clean("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL,
        openai_base_url=_clean("OPENAI_BASE_URL"),
        associate_tag=_clean("AMAZON_ASSOCIATE_TAG") or DEFAULT_ASSOCIATE_TAG,
        content_dir=Path(directory) if directory else CONTENT_DIR,
        request_delay=delay_ms / 1000,
        auto_commit=env_bool("GIT_AUTOCOMMIT"),
        git_push=env_bool("GIT_PUSH"),
        cycle_minutes=max(env_int("CYCLE_MINUTES", DEFAULT_CYCLE_MINUTES), 1),
    )
