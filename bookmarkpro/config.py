from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from .model import SearchFilter, SortDirection, SortMode

SEEDS = ("demo", "empty")


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return default if v is None else v


@dataclass
class Settings:
    # Store
    root_name: str = "Bookmark Pro"
    seed: str = "demo"  # demo | empty

    # View defaults
    sort_mode: str = "sort-by-name"
    sort_direction: str = "asc"
    search_filter: str = "all"
    favicon_size: int = 32

    # Logging / UX
    log_level: str = "INFO"
    no_color: bool = False

    @staticmethod
    def from_env() -> "Settings":
        s = Settings()
        s.root_name = _env_str("BMPRO_ROOT_NAME", s.root_name)
        s.seed = _env_str("BMPRO_SEED", s.seed)

        s.sort_mode = _env_str("BMPRO_SORT_MODE", s.sort_mode)
        s.sort_direction = _env_str("BMPRO_SORT_DIRECTION", s.sort_direction)
        s.search_filter = _env_str("BMPRO_SEARCH_FILTER", s.search_filter)
        s.favicon_size = _env_int("BMPRO_FAVICON_SIZE", s.favicon_size)

        s.log_level = _env_str("BMPRO_LOG_LEVEL", s.log_level)
        s.no_color = _env_bool("BMPRO_NO_COLOR", s.no_color)
        return s

    @staticmethod
    def from_file(path: Path) -> "Settings":
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        s = Settings.from_env()
        for k, v in data.items():
            if hasattr(s, k):
                setattr(s, k, v)
        return s

    def validate(self) -> "Settings":
        """Raise ValueError for values the engine cannot use; returns self."""
        SortMode.parse(self.sort_mode)
        SortDirection(self.sort_direction)
        SearchFilter(self.search_filter)
        if str(self.seed).strip().lower() not in SEEDS:
            raise ValueError(f"Unknown seed {self.seed!r} (expected one of {', '.join(SEEDS)})")
        if not isinstance(self.favicon_size, int) or self.favicon_size <= 0:
            raise ValueError(f"favicon_size must be a positive integer, got {self.favicon_size!r}")
        return self


def load_settings(config_path: Optional[str]) -> Settings:
    if config_path:
        return Settings.from_file(Path(config_path)).validate()
    return Settings.from_env().validate()
