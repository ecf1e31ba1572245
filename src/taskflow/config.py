# src/taskflow/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKFLOW"

BACKEND_LOCAL = "local"
BACKEND_REMOTE = "remote"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_choice(name: str, choices: set[str], default: str) -> str:
    raw = (os.getenv(name) or "").strip().lower()
    return raw if raw in choices else default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Backend selection ----
    backend: str

    # ---- Remote backend-as-a-service ----
    remote_base_url: str
    remote_project_id: str
    remote_public_key: str
    remote_timeout_seconds: float

    # ---- Local mode ----
    local_user: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    storage_db_path: Path

    # ---- View defaults ----
    dark_mode: bool
    default_sort: str
    default_sort_direction: str

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "TaskFlow").strip() or "TaskFlow"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        remote_base_url = _env(_k("REMOTE_BASE_URL"), "").strip()
        # Remote is only the default when it is actually configured.
        backend = _env_choice(
            _k("BACKEND"),
            {BACKEND_LOCAL, BACKEND_REMOTE},
            BACKEND_REMOTE if remote_base_url else BACKEND_LOCAL,
        )

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskflow"))
        storage_db_path = _env_path(_k("STORAGE_DB_PATH"), data_dir / "taskflow.sqlite3")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            backend=backend,
            remote_base_url=remote_base_url,
            remote_project_id=_env(_k("REMOTE_PROJECT_ID"), "").strip(),
            remote_public_key=_env(_k("REMOTE_PUBLIC_KEY"), "").strip(),
            remote_timeout_seconds=max(1.0, _env_float(_k("REMOTE_TIMEOUT_SECONDS"), 10.0)),
            local_user=_env(_k("LOCAL_USER"), "me").strip() or "me",
            data_dir=data_dir,
            storage_db_path=storage_db_path,
            dark_mode=_env_bool(_k("DARK_MODE"), False),
            default_sort=_env_choice(_k("DEFAULT_SORT"), {"title", "priority", "duedate"}, "duedate"),
            default_sort_direction=_env_choice(
                _k("DEFAULT_SORT_DIRECTION"), {"ascending", "descending"}, "ascending"
            ),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
