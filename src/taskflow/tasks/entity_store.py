# src/taskflow/tasks/entity_store.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from collections.abc import AsyncIterator, Callable
from dataclasses import replace
from datetime import datetime
from typing import Any, TypeVar

from ..core.errors import NotFoundError, PersistenceError, ValidationError
from ..core.ports import EntityType, PersistenceBackend, Record
from .task_models import (
    DESCRIPTION_MAX_LEN,
    TITLE_MAX_LEN,
    Category,
    CategoryDraft,
    Priority,
    Task,
    TaskDraft,
    category_from_record,
    category_to_record,
    task_from_record,
    task_to_record,
    utc_now,
)

logger = logging.getLogger(__name__)

E = TypeVar("E", Task, Category)


def _new_id() -> str:
    return uuid.uuid4().hex


def _clean_title(title: str) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Task title is required!")
    if len(title) > TITLE_MAX_LEN:
        raise ValidationError(f"Task title must be at most {TITLE_MAX_LEN} characters.")
    return title


def _clean_description(description: str) -> str:
    description = (description or "").strip()
    if len(description) > DESCRIPTION_MAX_LEN:
        raise ValidationError(f"Description must be at most {DESCRIPTION_MAX_LEN} characters.")
    return description


def _clean_priority(priority: Any) -> Priority:
    try:
        return Priority(str(priority).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown priority: {priority!r}") from None


def _clean_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name is required!")
    return name


def _index_of(items: list[E], entity_id: str) -> int | None:
    for i, item in enumerate(items):
        if item.id == entity_id:
            return i
    return None


class EntityStore:
    """
    Authoritative in-memory tasks + categories for the current session.

    Every mutation is persisted through the injected backend before it completes:
    - creates are appended only after the backend confirms (and adopt the backend record),
    - updates/deletes/toggles are applied optimistically and rolled back on failure.

    Mutations on the same entity id are serialized with a per-id asyncio.Lock.
    """

    def __init__(
        self,
        backend: PersistenceBackend,
        *,
        id_factory: Callable[[], str] = _new_id,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._backend = backend
        self._id_factory = id_factory
        self._clock = clock
        self._tasks: list[Task] = []
        self._categories: list[Category] = []
        self._locks: dict[tuple[EntityType, str], asyncio.Lock] = {}
        self._lock_users: dict[tuple[EntityType, str], int] = {}
        # completed_at cleared by the last toggle to incomplete, restored by the next toggle back
        self._cleared_completions: dict[str, datetime] = {}

    # ---- lifecycle ----

    async def load(self) -> None:
        """Replace in-memory lists with backend contents (categories first, then tasks)."""
        try:
            raw_categories = await self._backend.list(EntityType.CATEGORY)
            raw_tasks = await self._backend.list(EntityType.TASK)
        except PersistenceError:
            logger.exception("Failed to load entities from backend")
            raise

        categories = [c for c in map(category_from_record, raw_categories) if c is not None]
        tasks: list[Task] = []
        seen: set[str] = set()
        for task in map(task_from_record, raw_tasks):
            if task is None or task.id in seen:
                continue
            seen.add(task.id)
            tasks.append(task)

        self._categories = categories
        self._tasks = tasks
        logger.info("EntityStore loaded tasks=%d categories=%d", len(tasks), len(categories))

    def reset(self) -> None:
        self._tasks = []
        self._categories = []
        self._cleared_completions.clear()

    # ---- reads ----

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    @property
    def categories(self) -> list[Category]:
        return list(self._categories)

    def get_task(self, task_id: str) -> Task | None:
        idx = _index_of(self._tasks, task_id)
        return self._tasks[idx] if idx is not None else None

    def get_category(self, category_id: str) -> Category | None:
        idx = _index_of(self._categories, category_id)
        return self._categories[idx] if idx is not None else None

    # ---- helpers ----

    @contextlib.asynccontextmanager
    async def _serialized(self, entity: EntityType, entity_id: str) -> AsyncIterator[None]:
        """Per-id lock, dropped once nobody holds or waits for it."""
        key = (entity, entity_id)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._lock_users[key] - 1
            if remaining:
                self._lock_users[key] = remaining
            else:
                del self._lock_users[key]
                if self._locks.get(key) is lock:
                    del self._locks[key]

    async def _persist(self, op: str, entity: EntityType, *args: Any) -> Any:
        call = getattr(self._backend, op)
        try:
            return await call(entity, *args)
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(f"{op} {entity.value} failed: {exc}") from exc

    async def _commit_replace(
        self,
        entity: EntityType,
        items: list[E],
        previous: E,
        updated: E,
        to_record: Callable[[E], Record],
        from_record: Callable[[Record], E | None],
    ) -> E:
        idx = _index_of(items, previous.id)
        if idx is None:
            raise NotFoundError(entity.value, previous.id)
        items[idx] = updated

        try:
            raw = await self._persist("update", entity, to_record(updated))
        except PersistenceError:
            idx = _index_of(items, previous.id)
            if idx is not None:
                items[idx] = previous
            logger.warning("Rolled back %s %s after failed update", entity.value, previous.id)
            raise

        saved = from_record(raw) if isinstance(raw, dict) else None
        if saved is None or saved.id != previous.id:
            saved = updated
        idx = _index_of(items, previous.id)
        if idx is not None:
            items[idx] = saved
        return saved

    async def _commit_delete(self, entity: EntityType, items: list[E], entity_id: str) -> None:
        idx = _index_of(items, entity_id)
        if idx is None:
            logger.debug("Delete of unknown %s %s ignored", entity.value, entity_id)
            return
        previous = items.pop(idx)

        try:
            await self._persist("delete", entity, entity_id)
        except PersistenceError:
            items.insert(min(idx, len(items)), previous)
            logger.warning("Rolled back %s %s after failed delete", entity.value, entity_id)
            raise

    def _completion_fields(self, task: Task, previous: Task | None) -> Task:
        if not task.is_completed:
            return replace(task, completed_at=None)
        if task.completed_at is not None:
            return task
        if previous is not None and previous.is_completed and previous.completed_at is not None:
            return replace(task, completed_at=previous.completed_at)
        return replace(task, completed_at=self._clock())

    # ---- tasks ----

    async def create_task(self, draft: TaskDraft) -> Task:
        title = _clean_title(draft.title)
        description = _clean_description(draft.description)
        priority = _clean_priority(draft.priority)
        category_id = draft.category_id or None
        if category_id is not None and self.get_category(category_id) is None:
            raise ValidationError(f"Unknown category: {category_id}")

        now = self._clock()
        task = Task(
            id=self._id_factory(),
            title=title,
            description=description,
            due_date=draft.due_date,
            priority=priority,
            category_id=category_id,
            is_completed=bool(draft.is_completed),
            created_at=now,
            completed_at=now if draft.is_completed else None,
        )

        raw = await self._persist("create", EntityType.TASK, task_to_record(task))
        saved = task_from_record(raw) if isinstance(raw, dict) else None
        if saved is None:
            saved = task
        if self.get_task(saved.id) is not None:
            raise PersistenceError(f"Backend returned duplicate task id {saved.id}")

        self._tasks.append(saved)
        logger.debug("Task created id=%s priority=%s", saved.id, saved.priority.value)
        return saved

    async def update_task(self, task: Task) -> Task:
        """Full-record replace. Unknown id raises NotFoundError."""
        async with self._serialized(EntityType.TASK, task.id):
            current = self.get_task(task.id)
            if current is None:
                raise NotFoundError(EntityType.TASK.value, task.id)

            updated = replace(
                task,
                title=_clean_title(task.title),
                description=_clean_description(task.description),
                priority=_clean_priority(task.priority),
                category_id=task.category_id or None,
                created_at=current.created_at,
            )
            updated = self._completion_fields(updated, current)
            saved = await self._commit_replace(
                EntityType.TASK, self._tasks, current, updated, task_to_record, task_from_record
            )
            if saved.is_completed != current.is_completed:
                self._cleared_completions.pop(task.id, None)
            return saved

    async def delete_task(self, task_id: str) -> None:
        async with self._serialized(EntityType.TASK, task_id):
            await self._commit_delete(EntityType.TASK, self._tasks, task_id)
            self._cleared_completions.pop(task_id, None)

    async def toggle_task_completion(self, task_id: str) -> Task:
        async with self._serialized(EntityType.TASK, task_id):
            current = self.get_task(task_id)
            if current is None:
                raise NotFoundError(EntityType.TASK.value, task_id)

            if current.is_completed:
                toggled = replace(current, is_completed=False, completed_at=None)
            else:
                restored = self._cleared_completions.get(task_id)
                toggled = replace(current, is_completed=True, completed_at=restored or self._clock())
            saved = await self._commit_replace(
                EntityType.TASK, self._tasks, current, toggled, task_to_record, task_from_record
            )
            if current.completed_at is not None and not saved.is_completed:
                self._cleared_completions[task_id] = current.completed_at
            else:
                self._cleared_completions.pop(task_id, None)
            logger.debug("Task %s completed=%s", task_id, saved.is_completed)
            return saved

    # ---- categories ----

    async def create_category(self, draft: CategoryDraft) -> Category:
        category = Category(id=self._id_factory(), name=_clean_name(draft.name), color=draft.color)

        raw = await self._persist("create", EntityType.CATEGORY, category_to_record(category))
        saved = category_from_record(raw) if isinstance(raw, dict) else None
        if saved is None:
            saved = category
        if self.get_category(saved.id) is not None:
            raise PersistenceError(f"Backend returned duplicate category id {saved.id}")

        self._categories.append(saved)
        logger.debug("Category created id=%s name=%s", saved.id, saved.name)
        return saved

    async def update_category(self, category: Category) -> Category:
        async with self._serialized(EntityType.CATEGORY, category.id):
            current = self.get_category(category.id)
            if current is None:
                raise NotFoundError(EntityType.CATEGORY.value, category.id)
            updated = replace(category, name=_clean_name(category.name))
            return await self._commit_replace(
                EntityType.CATEGORY,
                self._categories,
                current,
                updated,
                category_to_record,
                category_from_record,
            )

    async def delete_category(self, category_id: str) -> None:
        """Remove a category. Tasks keep their (now dangling) category_id."""
        async with self._serialized(EntityType.CATEGORY, category_id):
            await self._commit_delete(EntityType.CATEGORY, self._categories, category_id)
