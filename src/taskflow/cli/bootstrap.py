# src/taskflow/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the persistence backend + auth provider (remote if configured, else local),
- wires concrete implementations into AppState.
"""

from __future__ import annotations

import logging

from ..auth.providers import OfflineAuthProvider, RemoteAuthProvider
from ..auth.session import AuthSession
from ..config import BACKEND_LOCAL, BACKEND_REMOTE, get_settings
from ..connectors.notifier import ConsoleNotifier
from ..core.ports import AuthProvider, NotificationSink, PersistenceBackend
from ..core.state import AppState, ViewCriteria
from ..core.theme import ThemePreference
from ..storage.local_backend import LocalPersistenceBackend, LocalStorage
from ..storage.remote_backend import RemotePersistenceBackend, build_http_client
from ..tasks.entity_store import EntityStore
from ..tasks.task_form import FormController
from ..tasks.task_view import SortDirection, SortKey

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.storage_db_path.parent.mkdir(parents=True, exist_ok=True)


def _build_backend(settings, storage: LocalStorage) -> tuple[PersistenceBackend, AuthProvider, str]:
    if settings.backend == BACKEND_REMOTE:
        try:
            client = build_http_client(settings)
        except RuntimeError:
            # Fallback for demos / local runs without external services.
            logger.warning("Remote backend is not configured; using local storage.", exc_info=True)
        else:
            return RemotePersistenceBackend(client), RemoteAuthProvider(client), BACKEND_REMOTE

    local_user = getattr(settings, "local_user", "me")
    return LocalPersistenceBackend(storage), OfflineAuthProvider(storage, local_user), BACKEND_LOCAL


def create_initial_state(*, settings=None, notifier: NotificationSink | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    # Local storage always exists: it holds the theme flag (and the data in local mode).
    storage = LocalStorage(settings.storage_db_path)
    backend, provider, kind = _build_backend(settings, storage)
    logger.info("Using %s backend", kind)

    notifier = notifier or ConsoleNotifier()
    store = EntityStore(backend)

    return AppState(
        settings=settings,
        backend=backend,
        store=store,
        forms=FormController(store, notifier),
        session=AuthSession(provider),
        theme=ThemePreference(storage, default_dark=bool(getattr(settings, "dark_mode", False))),
        notifier=notifier,
        view=ViewCriteria(
            sort_key=SortKey.parse(getattr(settings, "default_sort", None)),
            direction=SortDirection.parse(getattr(settings, "default_sort_direction", None)),
        ),
    )
