# src/taskflow/tasks/task_view.py

"""
Derived view over the store: filtering, sorting, statistics, due-date labels.

Everything here is a pure function of its inputs; nothing is cached or stored.
"""

from __future__ import annotations

import locale
import unicodedata
from collections.abc import Container, Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import StrEnum

from .task_models import Category, Priority, Task

FILTER_ALL = "all"
FILTER_COMPLETED = "completed"

PRIORITY_RANK: dict[Priority, int] = {
    Priority.HIGH: 0,
    Priority.MEDIUM: 1,
    Priority.LOW: 2,
}


class SortKey(StrEnum):
    TITLE = "title"
    PRIORITY = "priority"
    DUE_DATE = "dueDate"

    @classmethod
    def parse(cls, raw: str | None, default: SortKey | None = None) -> SortKey:
        s = (raw or "").strip().lower()
        aliases = {
            "title": cls.TITLE,
            "priority": cls.PRIORITY,
            "duedate": cls.DUE_DATE,
            "due": cls.DUE_DATE,
        }
        return aliases.get(s, default or cls.DUE_DATE)


class SortDirection(StrEnum):
    ASCENDING = "ascending"
    DESCENDING = "descending"

    @classmethod
    def parse(cls, raw: str | None, default: SortDirection | None = None) -> SortDirection:
        s = (raw or "").strip().lower()
        if s in ("asc", "ascending", "up"):
            return cls.ASCENDING
        if s in ("desc", "descending", "down"):
            return cls.DESCENDING
        return default or cls.ASCENDING


@dataclass(slots=True, frozen=True)
class TaskStats:
    total: int
    completed: int
    pending: int
    completion_percent: int


@dataclass(slots=True, frozen=True)
class TaskView:
    tasks: list[Task]
    stats: TaskStats
    categories: dict[str, Category]

    def category_for(self, task: Task) -> Category | None:
        """Badge lookup; dangling or missing references yield None."""
        if not task.category_id:
            return None
        return self.categories.get(task.category_id)


# ---- filtering ----


def filter_tasks(tasks: Iterable[Task], filter_key: str, known_categories: Container[str] | None = None) -> list[Task]:
    """A category key matches nothing once that category is gone from `known_categories`."""
    if filter_key == FILTER_ALL:
        return list(tasks)
    if filter_key == FILTER_COMPLETED:
        return [t for t in tasks if t.is_completed]
    if known_categories is not None and filter_key not in known_categories:
        return []
    return [t for t in tasks if t.category_id == filter_key]


# ---- sorting ----


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


def _title_key(task: Task) -> tuple[str, str]:
    # accent-folded first so "Éclair" sorts with "e" even under the C locale; collation breaks ties
    return _fold(task.title), locale.strxfrm(task.title.casefold())


def sort_tasks(tasks: Sequence[Task], sort_key: SortKey, direction: SortDirection) -> list[Task]:
    """
    Stable sort.

    For dueDate, undated tasks always go last (in their prior relative order);
    only the order of dated tasks follows the direction.
    """
    descending = direction == SortDirection.DESCENDING

    if sort_key == SortKey.TITLE:
        return sorted(tasks, key=_title_key, reverse=descending)

    if sort_key == SortKey.PRIORITY:
        return sorted(tasks, key=lambda t: PRIORITY_RANK[t.priority], reverse=descending)

    dated = [t for t in tasks if t.due_date is not None]
    undated = [t for t in tasks if t.due_date is None]
    dated.sort(key=lambda t: t.due_date, reverse=descending)  # type: ignore[arg-type, return-value]
    return dated + undated


# ---- statistics ----


def compute_stats(tasks: Sequence[Task]) -> TaskStats:
    total = len(tasks)
    completed = sum(1 for t in tasks if t.is_completed)
    # round-half-up in integer arithmetic; 0 for an empty list
    percent = (200 * completed + total) // (2 * total) if total else 0
    return TaskStats(
        total=total,
        completed=completed,
        pending=total - completed,
        completion_percent=percent,
    )


def derive_view(
    tasks: Sequence[Task],
    categories: Sequence[Category],
    filter_key: str = FILTER_ALL,
    sort_key: SortKey = SortKey.DUE_DATE,
    direction: SortDirection = SortDirection.ASCENDING,
) -> TaskView:
    by_id = {c.id: c for c in categories}
    visible = sort_tasks(filter_tasks(tasks, filter_key, by_id), sort_key, direction)
    return TaskView(
        tasks=visible,
        stats=compute_stats(tasks),
        categories=by_id,
    )


# ---- due dates ----


def format_due_date(due: date | None, *, today: date | None = None) -> str:
    if due is None:
        return ""
    today = today or date.today()
    if due == today:
        return "Today"
    if due == today + timedelta(days=1):
        return "Tomorrow"
    return f"{due:%b} {due.day}, {due.year}"


def is_overdue(task: Task, *, now: datetime | None = None) -> bool:
    """Due date set, not completed, and the end of the due day is in the past (local time)."""
    if task.due_date is None or task.is_completed:
        return False
    now = now or datetime.now()
    end_of_day = datetime.combine(task.due_date, time.max)
    if now.tzinfo is not None:
        now = now.astimezone().replace(tzinfo=None)
    return end_of_day < now
