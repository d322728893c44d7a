from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


ENV_FILES = (".env.local", ".env")
DEFAULT_EXCEL_NAME = "5517-project-测试数据.xlsx"


class ConfigError(RuntimeError):
    """A required setting is missing or malformed."""


@dataclass(frozen=True)
class Settings:
    mongodb_uri: Optional[str] = None
    database: str = "ui_experiment"
    collection: str = "results"
    excel_path: Path = Path(DEFAULT_EXCEL_NAME)
    api_url: str = "http://127.0.0.1:8000"
    percent_for_all_metrics: bool = False
    log_level: str = "INFO"

    def require_mongodb_uri(self) -> str:
        if not self.mongodb_uri:
            raise ConfigError("MONGODB_URI is not set; export it or add it to .env.local")
        return self.mongodb_uri


_settings: Optional[Settings] = None


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_env_files(base_dir: Optional[Path] = None) -> None:
    base = base_dir or Path.cwd()
    # Earlier files win: load_dotenv never overrides an already-set variable.
    for name in ENV_FILES:
        path = base / name
        if path.exists():
            load_dotenv(dotenv_path=path, override=False)


def settings_from_env() -> Settings:
    return Settings(
        mongodb_uri=os.getenv("MONGODB_URI") or None,
        database=os.getenv("MONGODB_DATABASE", "ui_experiment"),
        collection=os.getenv("MONGODB_COLLECTION", "results"),
        excel_path=Path(os.getenv("EXCEL_PATH", DEFAULT_EXCEL_NAME)),
        api_url=os.getenv("ANALYTICS_API_URL", "http://127.0.0.1:8000").rstrip("/"),
        percent_for_all_metrics=_as_bool(os.getenv("PERCENT_FOR_ALL_METRICS")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def get_settings() -> Settings:
    """Load settings from `.env.local` / `.env` and the environment, once per process."""
    global _settings
    if _settings is None:
        load_env_files()
        _settings = settings_from_env()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
