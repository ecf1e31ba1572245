# src/taskflow/tasks/task_form.py

"""
Task/category form controller.

Holds a single edit-in-progress draft, separate from the authoritative store.
Submitting trims and validates the draft, then issues a create or update command.
Validation and persistence failures are reported to the notification sink and keep the draft.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from datetime import date
from typing import Any

from ..core.errors import NotFoundError, PersistenceError, ValidationError
from ..core.ports import NotificationKind, NotificationSink
from .entity_store import EntityStore
from .task_models import DEFAULT_CATEGORY_COLOR, Category, CategoryDraft, Priority, Task, TaskDraft

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TaskForm:
    title: str = ""
    description: str = ""
    due_date: str = ""  # "YYYY-MM-DD" or ""
    priority: str = Priority.MEDIUM.value
    category_id: str = ""
    is_completed: bool = False
    editing: Task | None = None


@dataclass(slots=True)
class CategoryForm:
    name: str = ""
    color: str = DEFAULT_CATEGORY_COLOR
    editing: Category | None = None


Draft = TaskForm | CategoryForm

_TRUE = {"1", "true", "yes", "y", "on", "done"}


def _parse_due_date(raw: str) -> date | None:
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f"Invalid due date {raw!r}; use YYYY-MM-DD.") from None


class FormController:
    def __init__(self, store: EntityStore, notifier: NotificationSink) -> None:
        self._store = store
        self._notifier = notifier
        self.draft: Draft | None = None
        self._submitting = False

    @property
    def is_open(self) -> bool:
        return self.draft is not None

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    # ---- open / cancel ----

    def open_create_task(self, **initial: Any) -> TaskForm:
        categories = self._store.categories
        self.draft = TaskForm(category_id=categories[0].id if categories else "")
        for name, value in initial.items():
            self.set_field(name, value)
        return self.draft

    def open_edit_task(self, task: Task) -> TaskForm:
        self.draft = TaskForm(
            title=task.title,
            description=task.description,
            due_date=task.due_date.isoformat() if task.due_date else "",
            priority=task.priority.value,
            category_id=task.category_id or "",
            is_completed=task.is_completed,
            editing=task,
        )
        return self.draft

    def open_create_category(self, **initial: Any) -> CategoryForm:
        self.draft = CategoryForm()
        for name, value in initial.items():
            self.set_field(name, value)
        return self.draft

    def open_edit_category(self, category: Category) -> CategoryForm:
        self.draft = CategoryForm(name=category.name, color=category.color, editing=category)
        return self.draft

    def cancel(self) -> None:
        self.draft = None

    # ---- editing ----

    def set_field(self, name: str, value: Any) -> None:
        if self.draft is None:
            raise ValidationError("No form is open.")
        allowed = {f.name for f in fields(self.draft)} - {"editing"}
        if name not in allowed:
            raise ValidationError(f"Unknown field {name!r}; expected one of: {', '.join(sorted(allowed))}.")

        if name == "is_completed" and not isinstance(value, bool):
            value = str(value).strip().lower() in _TRUE
        elif name == "priority":
            value = str(value).strip().lower()
            if value not in {p.value for p in Priority}:
                raise ValidationError(f"Unknown priority {value!r}; use low, medium or high.")
        elif name != "is_completed":
            value = "" if value is None else str(value)
        setattr(self.draft, name, value)

    # ---- submit ----

    async def submit(self) -> Task | Category | None:
        draft = self.draft
        if draft is None:
            self._notifier.notify("Nothing to save.", NotificationKind.ERROR)
            return None
        if self._submitting:
            logger.debug("Duplicate submit ignored while a save is pending")
            return None

        self._submitting = True
        try:
            if isinstance(draft, TaskForm):
                entity, message = await self._submit_task(draft)
            else:
                entity, message = await self._submit_category(draft)
        except ValidationError as e:
            self._notifier.notify(str(e), NotificationKind.ERROR)
            return None
        except NotFoundError as e:
            self._notifier.notify(f"Cannot save: {e}.", NotificationKind.ERROR)
            return None
        except PersistenceError:
            logger.exception("Form submit failed to persist")
            what = "task" if isinstance(draft, TaskForm) else "category"
            verb = "update" if draft.editing is not None else "add"
            self._notifier.notify(f"Failed to {verb} {what}. Please try again.", NotificationKind.ERROR)
            return None
        finally:
            self._submitting = False

        # a new form may have been opened while the save was pending
        if self.draft is draft:
            self.draft = None
        self._notifier.notify(message, NotificationKind.SUCCESS)
        return entity

    async def _submit_task(self, form: TaskForm) -> tuple[Task, str]:
        title = form.title.strip()
        if not title:
            raise ValidationError("Task title is required!")
        description = form.description.strip()
        due_date = _parse_due_date(form.due_date)
        priority = Priority(form.priority)
        category_id = form.category_id.strip() or None

        if form.editing is not None:
            record = replace(
                form.editing,
                title=title,
                description=description,
                due_date=due_date,
                priority=priority,
                category_id=category_id,
                is_completed=form.is_completed,
            )
            return await self._store.update_task(record), "Task updated successfully!"

        draft = TaskDraft(
            title=title,
            description=description,
            due_date=due_date,
            priority=priority,
            category_id=category_id,
            is_completed=form.is_completed,
        )
        return await self._store.create_task(draft), "Task added successfully!"

    async def _submit_category(self, form: CategoryForm) -> tuple[Category, str]:
        name = form.name.strip()
        if not name:
            raise ValidationError("Category name is required!")
        color = form.color.strip() or DEFAULT_CATEGORY_COLOR

        if form.editing is not None:
            record = replace(form.editing, name=name, color=color)
            return await self._store.update_category(record), "Category updated successfully!"

        draft = CategoryDraft(name=name, color=color)
        return await self._store.create_category(draft), "Category added successfully!"
