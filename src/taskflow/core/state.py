# src/taskflow/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..auth.session import AuthSession
from ..tasks.entity_store import EntityStore
from ..tasks.task_form import FormController
from ..tasks.task_view import FILTER_ALL, SortDirection, SortKey, TaskView, derive_view
from .ports import NotificationSink, PersistenceBackend
from .theme import ThemePreference


@dataclass(slots=True)
class ViewCriteria:
    """UI-selected filter/sort (the sidebar + sort controls)."""

    filter_key: str = FILTER_ALL
    sort_key: SortKey = SortKey.DUE_DATE
    direction: SortDirection = SortDirection.ASCENDING


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    backend: PersistenceBackend
    store: EntityStore
    forms: FormController
    session: AuthSession
    theme: ThemePreference
    notifier: NotificationSink

    view: ViewCriteria = field(default_factory=ViewCriteria)

    def current_view(self) -> TaskView:
        return derive_view(
            self.store.tasks,
            self.store.categories,
            self.view.filter_key,
            self.view.sort_key,
            self.view.direction,
        )

    def reset_session_data(self) -> None:
        """Drop per-user data on logout (entities, draft, filter)."""
        self.store.reset()
        self.forms.cancel()
        self.view.filter_key = FILTER_ALL
