# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskflow.cli.bootstrap import create_initial_state
from taskflow.core.state import AppState
from taskflow.storage.local_backend import LocalStorage
from taskflow.tasks.entity_store import EntityStore

from .fakes import FakeBackend, FakeNotifier, StepClock


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the developer's .env.
    """
    return SimpleNamespace(
        app_name="TaskFlow",
        log_level="INFO",
        # Paths (tmp per test run)
        data_dir=tmp_path / "data",
        storage_db_path=tmp_path / "data" / "taskflow.sqlite3",
        # Backend
        backend="local",
        remote_base_url="",
        remote_project_id="",
        remote_public_key="",
        remote_timeout_seconds=5.0,
        local_user="me",
        # UI defaults
        dark_mode=False,
        default_sort="dueDate",
        default_sort_direction="ascending",
    )


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def store(backend: FakeBackend) -> EntityStore:
    return EntityStore(backend, clock=StepClock())


@pytest.fixture()
def storage(tmp_path: Path) -> LocalStorage:
    return LocalStorage(tmp_path / "kv.sqlite3")


@pytest.fixture()
def state(settings: SimpleNamespace, notifier: FakeNotifier) -> AppState:
    """
    AppState wired through the real composition root.

    NOTE: The local SQLite backend is real here because its behavior
    (kv layout, persistence across restarts) is part of what we test.
    """
    return create_initial_state(settings=settings, notifier=notifier)
