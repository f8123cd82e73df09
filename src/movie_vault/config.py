"""Configuration helpers for movie-vault."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .utils.paths import coerce_required_path

__all__ = [
    "AppConfig",
    "DATABASE_URL_ENV_VAR",
    "DEFAULT_DATA_ROOT",
    "DEFAULT_DATABASE_URL",
    "DEFAULT_SAVED_ROOT",
    "SAVED_ROOT_ENV_VAR",
    "configure",
    "get_config",
]

SAVED_ROOT_ENV_VAR: Final[str] = "MOVIE_VAULT_SAVED_FOLDER"
"""Environment variable that overrides the folder holding saved movies."""

DATABASE_URL_ENV_VAR: Final[str] = "MOVIE_VAULT_DATABASE_URL"
"""Environment variable that overrides the index database URL."""

DEFAULT_DATA_ROOT: Final[Path] = Path.home() / ".movie-vault"
"""Parent directory for everything movie-vault writes by default."""

DEFAULT_SAVED_ROOT: Final[Path] = DEFAULT_DATA_ROOT / "saved"
"""Default directory where ``<id>.xml``/``<id>.png`` pairs are stored."""

DEFAULT_DATABASE_URL: Final[str] = f"sqlite+pysqlite:///{DEFAULT_DATA_ROOT / 'index.sqlite3'}"
"""Default SQLAlchemy URL for the metadata index."""


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Runtime configuration for movie-vault."""

    saved_root: Path
    database_url: str = DEFAULT_DATABASE_URL

    def __post_init__(self) -> None:
        normalized = coerce_required_path(self.saved_root)
        object.__setattr__(self, "saved_root", normalized)
        url = str(self.database_url).strip()
        if not url:
            raise ValueError("Database URL cannot be empty")
        object.__setattr__(self, "database_url", url)


_CONFIG: AppConfig | None = None


def get_config() -> AppConfig:
    """Return the cached :class:`AppConfig` instance."""

    global _CONFIG
    if _CONFIG is None:
        _CONFIG = _build_config()
    return _CONFIG


def configure(
    *,
    saved_root: str | Path | None = None,
    database_url: str | None = None,
) -> AppConfig:
    """Rebuild the global configuration with optional overrides."""

    global _CONFIG
    _CONFIG = _build_config(saved_root=saved_root, database_url=database_url)
    return _CONFIG


def _build_config(
    *,
    saved_root: str | Path | None = None,
    database_url: str | None = None,
) -> AppConfig:
    if saved_root is None:
        saved_root = os.environ.get(SAVED_ROOT_ENV_VAR) or DEFAULT_SAVED_ROOT
    root = coerce_required_path(
        saved_root,
        empty_error="Saved folder overrides cannot be empty",
    )

    if database_url is None:
        database_url = os.environ.get(DATABASE_URL_ENV_VAR) or DEFAULT_DATABASE_URL

    return AppConfig(saved_root=root, database_url=database_url)
