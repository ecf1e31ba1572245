# src/taskflow/tasks/task_models.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import StrEnum
from typing import Any

from ..core.ports import Record

logger = logging.getLogger(__name__)

TITLE_MAX_LEN = 100
DESCRIPTION_MAX_LEN = 500
DEFAULT_CATEGORY_COLOR = "#818cf8"


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_raw(cls, raw: str | None) -> Priority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.MEDIUM


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True, frozen=True)
class Category:
    id: str
    name: str
    color: str = DEFAULT_CATEGORY_COLOR


@dataclass(slots=True, frozen=True)
class Task:
    """
    A single task.

    Invariant: completed_at is set if and only if is_completed is True.
    Records are immutable; the store replaces them wholesale on update.
    """

    id: str
    title: str
    created_at: datetime
    description: str = ""
    due_date: date | None = None
    priority: Priority = Priority.MEDIUM
    category_id: str | None = None
    is_completed: bool = False
    completed_at: datetime | None = None


# ---- record (de)serialization ----


def _parse_date(raw: Any) -> date | None:
    if not raw:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    s = str(raw).strip()
    try:
        # Accept both "YYYY-MM-DD" and full ISO timestamps.
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def _parse_ts(raw: Any) -> datetime | None:
    if not raw:
        return None
    if isinstance(raw, datetime):
        return raw
    s = str(raw).strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def _ts_to_str(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt is not None else None


def task_to_record(task: Task) -> Record:
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "dueDate": task.due_date.isoformat() if task.due_date else None,
        "priority": task.priority.value,
        "categoryId": task.category_id,
        "isCompleted": task.is_completed,
        "createdAt": _ts_to_str(task.created_at),
        "completedAt": _ts_to_str(task.completed_at),
    }


def task_from_record(raw: Record) -> Task | None:
    """Build a Task from a stored record; returns None for unusable records."""
    task_id = raw.get("id")
    title = raw.get("title")
    if task_id is None or title is None:
        logger.debug("Skipping task record without id/title: %r", raw)
        return None

    is_completed = bool(raw.get("isCompleted", False))
    completed_at = _parse_ts(raw.get("completedAt")) if is_completed else None
    created_at = _parse_ts(raw.get("createdAt")) or utc_now()
    if is_completed and completed_at is None:
        completed_at = created_at

    category_id = raw.get("categoryId")
    return Task(
        id=str(task_id),
        title=str(title),
        description=str(raw.get("description") or ""),
        due_date=_parse_date(raw.get("dueDate")),
        priority=Priority.from_raw(raw.get("priority")),
        category_id=str(category_id) if category_id else None,
        is_completed=is_completed,
        created_at=created_at,
        completed_at=completed_at,
    )


def category_to_record(category: Category) -> Record:
    return {"id": category.id, "name": category.name, "color": category.color}


def category_from_record(raw: Record) -> Category | None:
    cat_id = raw.get("id")
    name = raw.get("name")
    if cat_id is None or name is None:
        logger.debug("Skipping category record without id/name: %r", raw)
        return None
    return Category(
        id=str(cat_id),
        name=str(name),
        color=str(raw.get("color") or DEFAULT_CATEGORY_COLOR),
    )


# ---- drafts (unsaved input for create commands) ----


@dataclass(slots=True)
class TaskDraft:
    title: str = ""
    description: str = ""
    due_date: date | None = None
    priority: Priority = Priority.MEDIUM
    category_id: str | None = None
    is_completed: bool = False


@dataclass(slots=True)
class CategoryDraft:
    name: str = ""
    color: str = DEFAULT_CATEGORY_COLOR
