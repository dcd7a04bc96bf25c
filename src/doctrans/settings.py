from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

from .content import DEFAULT_CONTENT_FILTER
from .errors import ConfigError
from .fill_engine import DEFAULT_PARALLELISM
from .patching import DEFAULT_SAVE_FOLDER

load_dotenv()


def _split(raw: str, separator: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in raw.split(separator) if item.strip())


@dataclass(slots=True)
class Settings:
    anthropic_api_key: str
    anthropic_base_url: str | None
    anthropic_model: str | None
    database_url: str
    data_root: Path
    language: str
    save_folder: str
    content_filter: str
    parallelism: int
    include_dirs: tuple[str, ...] = field(default_factory=tuple)
    exclude_files: tuple[str, ...] = field(default_factory=tuple)
    log_file: Path | None = None

    def require_api_key(self) -> str:
        if not self.anthropic_api_key:
            raise ConfigError("ANTHROPIC_API_KEY is not set; it is required to translate.")
        return self.anthropic_api_key


def require_include_dirs(include_dirs: tuple[str, ...] | list[str] | None) -> tuple[str, ...]:
    dirs = tuple(include_dirs or ())
    if not dirs:
        raise ConfigError("No include directories given (use --include-dir or DOCTRANS_INCLUDE_DIRS).")
    return dirs


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    api_key = os.getenv("ANTHROPIC_API_KEY", "").strip()
    data_root = Path(os.getenv("DATA_ROOT", "./data")).resolve()
    data_root.mkdir(parents=True, exist_ok=True)
    database_url = os.getenv("DATABASE_URL", "").strip() or f"sqlite:///{data_root / 'intellisense.db'}"
    log_file = os.getenv("DOCTRANS_LOG_FILE", "").strip()
    return Settings(
        anthropic_api_key=api_key,
        anthropic_base_url=os.getenv("ANTHROPIC_BASE_URL") or None,
        anthropic_model=os.getenv("ANTHROPIC_MODEL") or None,
        database_url=database_url,
        data_root=data_root,
        language=os.getenv("DOCTRANS_LANGUAGE", "zh"),
        save_folder=os.getenv("DOCTRANS_SAVE_FOLDER", DEFAULT_SAVE_FOLDER),
        content_filter=os.getenv("DOCTRANS_CONTENT_FILTER", DEFAULT_CONTENT_FILTER),
        parallelism=_int_env("DOCTRANS_PARALLELISM", DEFAULT_PARALLELISM),
        include_dirs=_split(os.getenv("DOCTRANS_INCLUDE_DIRS", ""), os.pathsep),
        exclude_files=_split(os.getenv("DOCTRANS_EXCLUDE_FILES", ""), ","),
        log_file=Path(log_file) if log_file else None,
    )
