# tests/test_remote_backend.py

from __future__ import annotations

import json
from types import SimpleNamespace

import httpx
import pytest

from taskflow.auth.providers import AuthUser, RemoteAuthProvider
from taskflow.core.errors import AuthError, PersistenceError
from taskflow.core.ports import EntityType
from taskflow.storage.remote_backend import RemotePersistenceBackend, build_http_client
from taskflow.tasks.entity_store import EntityStore
from taskflow.tasks.task_models import TaskDraft


def _settings(**overrides) -> SimpleNamespace:
    base = dict(
        remote_base_url="https://api.example.test/v1/",
        remote_project_id="proj-1",
        remote_public_key="pk-123",
        remote_timeout_seconds=5.0,
    )
    base.update(overrides)
    return SimpleNamespace(**base)


def _client(handler) -> httpx.AsyncClient:
    return build_http_client(_settings(), transport=httpx.MockTransport(handler))


def _envelope(record: dict) -> dict:
    return {"success": True, "results": [{"success": True, "data": record}]}


def test_build_http_client_requires_base_url() -> None:
    with pytest.raises(RuntimeError):
        build_http_client(_settings(remote_base_url=""))


@pytest.mark.asyncio
async def test_list_create_update_delete_wire_format() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.method == "GET":
            return httpx.Response(200, json={"data": [{"id": "t1", "title": "a"}, "junk"]})
        if request.method in ("POST", "PUT"):
            record = json.loads(request.content)["records"][0]
            return httpx.Response(200, json=_envelope({**record, "title": record["title"] + "!"}))
        return httpx.Response(204)

    backend = RemotePersistenceBackend(_client(handler))

    assert await backend.list(EntityType.TASK) == [{"id": "t1", "title": "a"}]
    created = await backend.create(EntityType.TASK, {"id": "t2", "title": "b"})
    updated = await backend.update(EntityType.TASK, {"id": "t2", "title": "c"})
    await backend.delete(EntityType.TASK, "t2")
    await backend.aclose()

    assert created == {"id": "t2", "title": "b!"}
    assert updated == {"id": "t2", "title": "c!"}
    assert [(r.method, r.url.path) for r in seen] == [
        ("GET", "/v1/task"),
        ("POST", "/v1/task"),
        ("PUT", "/v1/task/t2"),
        ("DELETE", "/v1/task/t2"),
    ]
    assert seen[0].headers["X-Project-Id"] == "proj-1"
    assert seen[0].headers["Authorization"] == "Bearer pk-123"


@pytest.mark.asyncio
async def test_list_without_data_is_empty() -> None:
    backend = RemotePersistenceBackend(_client(lambda request: httpx.Response(200, json={})))
    assert await backend.list(EntityType.CATEGORY) == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "body"),
    [
        (500, b'{"error": "boom"}'),
        (200, b'{"success": false, "message": "nope"}'),
        (200, b'{"success": true, "results": []}'),
        (200, b"<html>"),
    ],
)
async def test_create_failures_raise_persistence_error(status: int, body: bytes) -> None:
    backend = RemotePersistenceBackend(_client(lambda request: httpx.Response(status, content=body)))
    with pytest.raises(PersistenceError):
        await backend.create(EntityType.TASK, {"id": "t1", "title": "a"})


@pytest.mark.asyncio
async def test_transport_error_raises_persistence_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    backend = RemotePersistenceBackend(_client(handler))
    with pytest.raises(PersistenceError):
        await backend.list(EntityType.TASK)


@pytest.mark.asyncio
async def test_store_rolls_back_when_remote_update_fails() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            return httpx.Response(200, json=_envelope(json.loads(request.content)["records"][0]))
        return httpx.Response(503)

    store = EntityStore(RemotePersistenceBackend(_client(handler)))
    task = await store.create_task(TaskDraft(title="Buy milk"))

    with pytest.raises(PersistenceError):
        await store.toggle_task_completion(task.id)
    assert store.get_task(task.id) == task


@pytest.mark.asyncio
async def test_remote_auth_provider() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/auth/login"):
            body = json.loads(request.content)
            if body["username"] == "alice" and body["password"] == "secret":
                return httpx.Response(200, json={"user": {"userId": "u1", "email": "a@example.test"}})
            return httpx.Response(401)
        if request.url.path.endswith("/auth/session"):
            return httpx.Response(200, json={"user": None})
        if request.url.path.endswith("/auth/logout"):
            return httpx.Response(500)
        return httpx.Response(404)

    provider = RemoteAuthProvider(_client(handler))

    assert await provider.login("alice", "secret") == AuthUser(user_id="u1", email="a@example.test")
    assert await provider.login("alice", "wrong") is None
    assert await provider.restore_session() is None
    with pytest.raises(AuthError):
        await provider.logout()
