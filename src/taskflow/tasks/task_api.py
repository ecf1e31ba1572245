# src/taskflow/tasks/task_api.py

"""
UI-layer task actions.

Each helper calls the Entity Store and reports the outcome to the notification sink.
Persistence failures are surfaced, never raised to the view; the store already rolled back.
"""

from __future__ import annotations

import logging

from ..core.errors import NotFoundError, PersistenceError
from ..core.ports import NotificationKind
from ..core.state import AppState
from .task_models import Task

logger = logging.getLogger(__name__)


async def load_entities(state: AppState) -> bool:
    try:
        await state.store.load()
    except PersistenceError:
        state.notifier.notify("Failed to load data. Please try again.", NotificationKind.ERROR)
        return False
    return True


async def toggle_task(state: AppState, task_id: str) -> Task | None:
    try:
        return await state.store.toggle_task_completion(task_id)
    except NotFoundError:
        logger.debug("Toggle of unknown task_id=%s", task_id)
        state.notifier.notify("Task not found.", NotificationKind.ERROR)
    except PersistenceError:
        logger.exception("toggle_task_completion failed task_id=%s", task_id)
        state.notifier.notify("Failed to update task status. Please try again.", NotificationKind.ERROR)
    return None


async def delete_task(state: AppState, task_id: str) -> bool:
    try:
        await state.store.delete_task(task_id)
    except PersistenceError:
        logger.exception("delete_task failed task_id=%s", task_id)
        state.notifier.notify("Failed to delete task. Please try again.", NotificationKind.ERROR)
        return False
    state.notifier.notify("Task deleted successfully!", NotificationKind.SUCCESS)
    return True


async def delete_category(state: AppState, category_id: str) -> bool:
    """Tasks in the category are kept; their badge simply disappears."""
    try:
        await state.store.delete_category(category_id)
    except PersistenceError:
        logger.exception("delete_category failed category_id=%s", category_id)
        state.notifier.notify("Failed to delete category. Please try again.", NotificationKind.ERROR)
        return False
    state.notifier.notify("Category deleted successfully!", NotificationKind.SUCCESS)
    return True
