"""Location of the SQLite session store."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "stepsync"
DEFAULT_DB_FILENAME: Final[str] = "stepsync.db"


def _platform_data_home() -> Path:
    if os.name == "nt":
        variable, fallback = "LOCALAPPDATA", Path.home() / "AppData" / "Local"
    else:
        variable, fallback = "XDG_DATA_HOME", Path.home() / ".local" / "share"
    configured = os.getenv(variable)
    return Path(configured) if configured else fallback


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Directory holding the session store database."""

    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    @property
    def database_path(self) -> Path:
        return self.data_dir / self.database_filename

    def sqlite_uri(self, *, create_dir: bool = True) -> str:
        if create_dir:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        return f"sqlite+pysqlite:///{self.database_path}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def get_storage_config() -> StorageConfig:
    explicit = os.getenv("STEPSYNC_DATA_DIR")
    data_dir = Path(explicit) if explicit else _platform_data_home() / APP_DIR_NAME
    return StorageConfig(data_dir=data_dir.expanduser().resolve())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` wins over the SQLite file in the data directory."""

    override = os.getenv("DATABASE_URI", "").strip()
    if override:
        return DatabaseConfig(uri=override)
    return DatabaseConfig(uri=(storage or get_storage_config()).sqlite_uri())
