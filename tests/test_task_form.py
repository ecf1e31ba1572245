# tests/test_task_form.py

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from taskflow.core.errors import ValidationError
from taskflow.core.ports import EntityType
from taskflow.tasks.task_form import CategoryForm, FormController, TaskForm
from taskflow.tasks.task_models import CategoryDraft, Priority, TaskDraft


@pytest.fixture()
def forms(store, notifier) -> FormController:
    return FormController(store, notifier)


@pytest.mark.asyncio
async def test_open_create_preselects_first_category(forms, store) -> None:
    assert forms.open_create_task().category_id == ""

    work = await store.create_category(CategoryDraft(name="Work"))
    await store.create_category(CategoryDraft(name="Personal"))

    draft = forms.open_create_task(title="Buy milk")
    assert isinstance(draft, TaskForm)
    assert draft.category_id == work.id
    assert draft.title == "Buy milk"
    assert draft.priority == Priority.MEDIUM.value
    assert forms.is_open


@pytest.mark.asyncio
async def test_open_edit_seeds_form_from_task(forms, store) -> None:
    task = await store.create_task(
        TaskDraft(title="Report", description="Q3", due_date=date(2026, 10, 20), priority=Priority.HIGH)
    )

    draft = forms.open_edit_task(task)

    assert draft.editing == task
    assert draft.title == "Report"
    assert draft.description == "Q3"
    assert draft.due_date == "2026-10-20"
    assert draft.priority == "high"


@pytest.mark.asyncio
async def test_submit_creates_task_and_clears_draft(forms, store, notifier) -> None:
    forms.open_create_task()
    forms.set_field("title", "  Buy milk ")
    forms.set_field("description", " 2 liters ")
    forms.set_field("due_date", "2026-10-20")
    forms.set_field("priority", "LOW")

    saved = await forms.submit()

    assert saved is not None
    assert saved.title == "Buy milk"
    assert saved.description == "2 liters"
    assert saved.due_date == date(2026, 10, 20)
    assert saved.priority == Priority.LOW
    assert store.tasks == [saved]
    assert forms.draft is None
    assert notifier.successes == ["Task added successfully!"]


@pytest.mark.asyncio
async def test_blank_title_keeps_draft_and_notifies(forms, store, notifier) -> None:
    forms.open_create_task(title="   ", description="keep this")

    assert await forms.submit() is None

    assert store.tasks == []
    assert forms.draft is not None
    assert forms.draft.description == "keep this"
    assert notifier.errors == ["Task title is required!"]


@pytest.mark.asyncio
async def test_invalid_due_date_keeps_draft(forms, store, notifier) -> None:
    forms.open_create_task(title="x", due_date="20/10/2026")

    assert await forms.submit() is None
    assert forms.is_open
    assert store.tasks == []
    assert "YYYY-MM-DD" in notifier.errors[0]


@pytest.mark.asyncio
async def test_persistence_failure_keeps_draft(forms, store, backend, notifier) -> None:
    backend.fail_ops = {"create"}
    forms.open_create_task(title="Buy milk")

    assert await forms.submit() is None

    assert forms.draft is not None
    assert forms.draft.title == "Buy milk"
    assert notifier.errors == ["Failed to add task. Please try again."]

    backend.fail_ops = set()
    assert await forms.submit() is not None
    assert forms.draft is None


@pytest.mark.asyncio
async def test_submit_edit_updates_task(forms, store, notifier) -> None:
    task = await store.create_task(TaskDraft(title="Old"))
    forms.open_edit_task(task)
    forms.set_field("title", "New")
    forms.set_field("is_completed", "yes")

    saved = await forms.submit()

    assert saved.id == task.id
    assert saved.title == "New"
    assert saved.is_completed is True
    assert saved.completed_at is not None
    assert len(store.tasks) == 1
    assert notifier.successes == ["Task updated successfully!"]


@pytest.mark.asyncio
async def test_cancel_discards_without_mutating(forms, store, backend) -> None:
    task = await store.create_task(TaskDraft(title="Keep"))
    calls_before = len(backend.calls)

    forms.open_edit_task(task)
    forms.set_field("title", "Changed")
    forms.cancel()

    assert forms.draft is None
    assert store.get_task(task.id) == task
    assert len(backend.calls) == calls_before


def test_set_field_rejects_unknown_field_and_priority(forms) -> None:
    with pytest.raises(ValidationError):
        forms.set_field("title", "no form open")

    forms.open_create_task()
    with pytest.raises(ValidationError):
        forms.set_field("color", "#fff")
    with pytest.raises(ValidationError):
        forms.set_field("priority", "urgent")


@pytest.mark.asyncio
async def test_duplicate_submit_while_pending_is_ignored(forms, store, backend) -> None:
    backend.gate = asyncio.Event()
    forms.open_create_task(title="Once")

    first = asyncio.create_task(forms.submit())
    for _ in range(3):
        await asyncio.sleep(0)
    assert forms.is_submitting

    assert await forms.submit() is None

    backend.gate.set()
    assert await first is not None
    assert len(store.tasks) == 1
    assert len(backend.records[EntityType.TASK]) == 1


@pytest.mark.asyncio
async def test_category_form_create_and_edit(forms, store, notifier) -> None:
    draft = forms.open_create_category(name="   ")
    assert isinstance(draft, CategoryForm)
    assert draft.color == "#818cf8"

    assert await forms.submit() is None
    assert notifier.errors == ["Category name is required!"]

    forms.set_field("name", "Work")
    forms.set_field("color", "#22c55e")
    work = await forms.submit()
    assert work.name == "Work"
    assert work.color == "#22c55e"

    forms.open_edit_category(work)
    forms.set_field("name", "Office")
    renamed = await forms.submit()
    assert renamed.id == work.id
    assert store.get_category(work.id).name == "Office"
    assert notifier.successes == ["Category added successfully!", "Category updated successfully!"]
