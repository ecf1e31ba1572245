# src/taskflow/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from datetime import date
from typing import cast

from ..auth.session import Route
from ..core.errors import ValidationError
from ..core.ports import NotificationKind
from ..core.state import AppState
from ..tasks import task_api
from ..tasks.task_form import TaskForm
from ..tasks.task_models import Category, Task
from ..tasks.task_view import (
    FILTER_ALL,
    FILTER_COMPLETED,
    SortDirection,
    SortKey,
    TaskView,
    format_due_date,
    is_overdue,
)

CommandEmitter = Callable[[str], None]
CommandResult = str | Awaitable[str]
CommandHandler2 = Callable[[AppState, list[str]], CommandResult]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], CommandResult]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

LOGIN_REQUIRED = "Please sign in first: /login <user> [password]."


class CommandRegistry:
    """Slash-command registry used by the console connector (/help, /new, /done, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}
        self._protected: set[str] = set()

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
        *,
        protected: bool = False,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler
        if protected:
            self._protected.update([key, *(a.lower() for a in aliases)])

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        if name in self._protected and state.session.require(Route.DASHBOARD) is not None:
            return LOGIN_REQUIRED

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            result = cast(CommandHandler3, handler)(state, args, emit)
        else:
            result = cast(CommandHandler2, handler)(state, args)

        if inspect.isawaitable(result):
            return await result
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- rendering ----

_FIELD_ALIASES = {
    "title": "title",
    "desc": "description",
    "description": "description",
    "due": "due_date",
    "due_date": "due_date",
    "priority": "priority",
    "prio": "priority",
    "cat": "category_id",
    "category": "category_id",
    "category_id": "category_id",
    "done": "is_completed",
    "completed": "is_completed",
    "is_completed": "is_completed",
    "name": "name",
    "color": "color",
}


def _filter_label(state: AppState) -> str:
    key = state.view.filter_key
    if key in (FILTER_ALL, FILTER_COMPLETED):
        return key
    cat = state.store.get_category(key)
    return f"category {cat.name}" if cat else "category (deleted)"


def format_task_line(index: int, task: Task, view: TaskView, *, today: date | None = None) -> str:
    mark = "x" if task.is_completed else " "
    parts = [f"{index:>3}. [{mark}] {task.title}", f"!{task.priority.value}"]
    category = view.category_for(task)
    if category is not None:
        parts.append(f"@{category.name}")
    if task.due_date is not None:
        parts.append(f"due {format_due_date(task.due_date, today=today)}")
        if is_overdue(task):
            parts.append("OVERDUE")
    return "  ".join(parts)


def render_view(state: AppState) -> str:
    view = state.current_view()
    s = view.stats
    header = (
        f"Tasks [{_filter_label(state)}; sort {state.view.sort_key.value} {state.view.direction.value}] "
        f"{s.completed}/{s.total} done ({s.completion_percent}%)"
    )
    if not view.tasks:
        return header + "\n  (no tasks)"
    lines = [header]
    for i, task in enumerate(view.tasks, start=1):
        lines.append(format_task_line(i, task, view))
        if task.description:
            lines.append(f"         {task.description}")
    return "\n".join(lines)


def _format_draft(state: AppState) -> str:
    draft = state.forms.draft
    if draft is None:
        return "No form is open."
    if isinstance(draft, TaskForm):
        mode = "Edit Task" if draft.editing else "Create New Task"
        cat = state.store.get_category(draft.category_id) if draft.category_id else None
        return (
            f"{mode}:\n"
            f"  title:       {draft.title}\n"
            f"  description: {draft.description}\n"
            f"  due:         {draft.due_date or '-'}\n"
            f"  priority:    {draft.priority}\n"
            f"  category:    {cat.name if cat else '-'}\n"
            f"  done:        {'yes' if draft.is_completed else 'no'}\n"
            "Use /set <field> <value>, then /save or /cancel."
        )
    mode = "Edit Category" if draft.editing else "New Category"
    return (
        f"{mode}:\n"
        f"  name:  {draft.name}\n"
        f"  color: {draft.color}\n"
        "Use /set <field> <value>, then /save or /cancel."
    )


# ---- reference resolution ----


def _resolve_task(state: AppState, ref: str) -> Task | None:
    """
    Accept a task id, a 1-based index into the current view, or a unique id prefix.

    An exact id wins over an index, so numeric ids from a remote backend stay addressable.
    """
    task = state.store.get_task(ref)
    if task is not None:
        return task
    view = state.current_view()
    if ref.isdigit():
        idx = int(ref) - 1
        if 0 <= idx < len(view.tasks):
            return view.tasks[idx]
    matches = [t for t in state.store.tasks if len(ref) >= 4 and t.id.startswith(ref)]
    return matches[0] if len(matches) == 1 else None


def _resolve_category(state: AppState, ref: str) -> Category | None:
    ref = ref.strip()
    found = state.store.get_category(ref)
    if found is not None:
        return found
    low = ref.casefold()
    for cat in state.store.categories:
        if cat.name.casefold() == low:
            return cat
    return None


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    user = state.session.user
    who = f" ({user.user_id})" if user else ""
    return (
        "Status:\n"
        f"  Backend: {getattr(state.settings, 'backend', '?')}\n"
        f"  Session: {state.session.state.value}{who}\n"
        f"  Theme: {'dark' if state.theme.is_dark else 'light'}\n"
        f"  Filter: {_filter_label(state)}\n"
        f"  Sort: {state.view.sort_key.value} {state.view.direction.value}"
    )


async def cmd_login(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /login <user> [password]
    """
    if not args:
        return "Usage: /login <user> [password]."
    if emit:
        with contextlib.suppress(Exception):
            emit("Signing in...")

    nav = await state.session.login(args[0], " ".join(args[1:]))
    if not state.session.is_authenticated:
        return nav.message or "Authentication failed."

    if not await task_api.load_entities(state):
        return f"Signed in as {args[0]}, but tasks could not be loaded."
    return f"Signed in as {args[0]}.\n" + render_view(state)


async def cmd_logout(state: AppState, args: list[str]) -> str:
    if not state.session.is_authenticated:
        return "Not signed in."
    nav = await state.session.logout()
    if state.session.is_authenticated:
        state.notifier.notify(nav.message or "Logout failed", NotificationKind.ERROR)
        return "Still signed in."
    state.reset_session_data()
    state.notifier.notify(nav.message or "Successfully logged out", NotificationKind.SUCCESS)
    return "Signed out."


def cmd_list(state: AppState, args: list[str]) -> str:
    return render_view(state)


def cmd_stats(state: AppState, args: list[str]) -> str:
    s = state.current_view().stats
    return (
        "Statistics:\n"
        f"  Total:     {s.total}\n"
        f"  Completed: {s.completed}\n"
        f"  Pending:   {s.pending}\n"
        f"  Progress:  {s.completion_percent}%"
    )


def cmd_filter(state: AppState, args: list[str]) -> str:
    """
    /filter all | completed | <category name or id>
    """
    if not args:
        return "Usage: /filter all | completed | <category>."
    ref = " ".join(args)
    if ref.lower() in (FILTER_ALL, FILTER_COMPLETED):
        state.view.filter_key = ref.lower()
    else:
        category = _resolve_category(state, ref)
        if category is None:
            return f"No category named {ref!r}."
        state.view.filter_key = category.id
    return render_view(state)


def cmd_sort(state: AppState, args: list[str]) -> str:
    """
    /sort                       -> flip direction
    /sort title|priority|due [asc|desc]
    """
    if not args:
        state.view.direction = (
            SortDirection.DESCENDING
            if state.view.direction == SortDirection.ASCENDING
            else SortDirection.ASCENDING
        )
        return render_view(state)

    state.view.sort_key = SortKey.parse(args[0], default=state.view.sort_key)
    if len(args) > 1:
        state.view.direction = SortDirection.parse(args[1], default=state.view.direction)
    return render_view(state)


def cmd_new(state: AppState, args: list[str]) -> str:
    """
    /new [title...] -> open the task form (first category preselected)
    """
    title = " ".join(args)
    if title:
        state.forms.open_create_task(title=title)
    else:
        state.forms.open_create_task()
    return _format_draft(state)


def cmd_edit(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /edit <n|id>."
    task = _resolve_task(state, args[0])
    if task is None:
        return f"No task {args[0]!r}."
    state.forms.open_edit_task(task)
    return _format_draft(state)


def cmd_set(state: AppState, args: list[str]) -> str:
    """
    /set <field> <value...>
    Task fields: title, desc, due (YYYY-MM-DD or empty), priority, cat, done.
    Category fields: name, color.
    """
    if state.forms.draft is None:
        return "No form is open. Use /new or /edit first."
    if not args:
        return "Usage: /set <field> <value>."

    field = _FIELD_ALIASES.get(args[0].lower(), args[0].lower())
    value: str = " ".join(args[1:])

    if field == "category_id" and isinstance(state.forms.draft, TaskForm) and value:
        category = _resolve_category(state, value)
        if category is None:
            return f"No category named {value!r}."
        value = category.id
    elif field == "due_date" and value.lower() in ("none", "-"):
        value = ""

    try:
        state.forms.set_field(field, value)
    except ValidationError as e:
        return str(e)
    return _format_draft(state)


async def cmd_save(state: AppState, args: list[str]) -> str:
    if state.forms.draft is None:
        return "No form is open."
    saved = await state.forms.submit()
    if saved is None:
        return _format_draft(state) if state.forms.draft is not None else "Nothing saved."
    return render_view(state)


def cmd_cancel(state: AppState, args: list[str]) -> str:
    if state.forms.draft is None:
        return "No form is open."
    state.forms.cancel()
    return "Form discarded."


async def cmd_done(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /done <n|id>."
    task = _resolve_task(state, args[0])
    if task is None:
        return f"No task {args[0]!r}."
    await task_api.toggle_task(state, task.id)
    return render_view(state)


async def cmd_rm(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /rm <n|id>."
    task = _resolve_task(state, args[0])
    if task is None:
        return f"No task {args[0]!r}."
    await task_api.delete_task(state, task.id)
    return render_view(state)


def _render_categories(state: AppState) -> str:
    cats = state.store.categories
    if not cats:
        return "No categories. Use /cat new <name> [#color]."
    tasks = state.store.tasks
    lines = ["Categories:"]
    for cat in cats:
        n = sum(1 for t in tasks if t.category_id == cat.id)
        lines.append(f"  {cat.name} ({cat.color}) - {n} task(s)")
    return "\n".join(lines)


async def cmd_cat(state: AppState, args: list[str]) -> str:
    """
    /cat                          -> list categories
    /cat new <name...> [#color]   -> add a category
    /cat edit <name|id>           -> open the category form
    /cat rm <name|id>             -> delete (tasks keep a dangling reference)
    """
    if not args or args[0].lower() in ("list", "ls"):
        return _render_categories(state)

    sub = args[0].lower()
    rest = args[1:]

    if sub in ("new", "add"):
        color = None
        if rest and rest[-1].startswith("#"):
            color = rest.pop()
        initial = {"name": " ".join(rest)}
        if color:
            initial["color"] = color
        state.forms.open_create_category(**initial)
        saved = await state.forms.submit()
        if saved is None:
            return _format_draft(state)
        return _render_categories(state)

    if sub == "edit":
        category = _resolve_category(state, " ".join(rest))
        if category is None:
            return f"No category {' '.join(rest)!r}."
        state.forms.open_edit_category(category)
        return _format_draft(state)

    if sub in ("rm", "del", "delete"):
        category = _resolve_category(state, " ".join(rest))
        if category is None:
            return f"No category {' '.join(rest)!r}."
        await task_api.delete_category(state, category.id)
        return _render_categories(state)

    return "Usage: /cat | /cat new <name> [#color] | /cat edit <name> | /cat rm <name>."


def cmd_form(state: AppState, args: list[str]) -> str:
    return _format_draft(state)


def cmd_theme(state: AppState, args: list[str]) -> str:
    dark = state.theme.toggle()
    return f"Switched to {'dark' if dark else 'light'} mode."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show session, backend, theme and view settings.")
registry.register("login", cmd_login, help_text="Sign in: /login <user> [password].")
registry.register("logout", cmd_logout, help_text="Sign out.")
registry.register("theme", cmd_theme, help_text="Toggle dark/light mode.")
registry.register("list", cmd_list, help_text="Show tasks for the current filter/sort.", aliases=["ls"], protected=True)
registry.register("stats", cmd_stats, help_text="Show completion statistics.", protected=True)
registry.register(
    "filter", cmd_filter, help_text="Filter: /filter all | completed | <category>.", protected=True
)
registry.register(
    "sort",
    cmd_sort,
    help_text="Sort: /sort title|priority|due [asc|desc]; /sort alone flips direction.",
    protected=True,
)
registry.register("new", cmd_new, help_text="Open the new-task form: /new [title].", aliases=["add"], protected=True)
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <n|id>.", protected=True)
registry.register("set", cmd_set, help_text="Set a form field: /set <field> <value>.", protected=True)
registry.register("form", cmd_form, help_text="Show the open form.", protected=True)
registry.register("save", cmd_save, help_text="Submit the open form.", protected=True)
registry.register("cancel", cmd_cancel, help_text="Discard the open form.", protected=True)
registry.register("done", cmd_done, help_text="Toggle completion: /done <n|id>.", aliases=["toggle"], protected=True)
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <n|id>.", protected=True)
registry.register(
    "cat", cmd_cat, help_text="Categories: /cat | new <name> [#color] | edit <name> | rm <name>.", protected=True
)
