# src/taskflow/storage/remote_backend.py

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.errors import PersistenceError
from ..core.ports import EntityType, Record

logger = logging.getLogger(__name__)


def build_http_client(settings: Any, *, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """
    Create the AsyncClient shared by the remote backend and the remote auth provider.

    IMPORTANT:
    - No secrets required at import time.
    - Raises RuntimeError when the remote backend is not configured.
    """
    base_url = str(getattr(settings, "remote_base_url", "") or "").strip()
    if not base_url:
        raise RuntimeError("Remote backend URL is not set. Set TASKFLOW_REMOTE_BASE_URL in your .env.")

    project_id = str(getattr(settings, "remote_project_id", "") or "")
    public_key = str(getattr(settings, "remote_public_key", "") or "")
    timeout_s = float(getattr(settings, "remote_timeout_seconds", 10.0) or 10.0)

    headers = {"Accept": "application/json"}
    if project_id:
        headers["X-Project-Id"] = project_id
    if public_key:
        headers["Authorization"] = f"Bearer {public_key}"

    return httpx.AsyncClient(
        base_url=base_url.rstrip("/"),
        headers=headers,
        timeout=httpx.Timeout(connect=min(5.0, timeout_s), read=timeout_s, write=timeout_s, pool=timeout_s),
        transport=transport,
    )


def _first_result(payload: Any, what: str) -> Record:
    """
    Unwrap the {"success": true, "results": [{"data": {...}}]} envelope.
    """
    if not isinstance(payload, dict) or not payload.get("success"):
        raise PersistenceError(f"Failed to {what}")
    results = payload.get("results")
    if not isinstance(results, list) or not results:
        raise PersistenceError(f"Failed to {what}: empty results")
    data = results[0].get("data") if isinstance(results[0], dict) else None
    if not isinstance(data, dict):
        raise PersistenceError(f"Failed to {what}: malformed result")
    return data


class RemotePersistenceBackend:
    """
    PersistenceBackend over a backend-as-a-service HTTP API.

    Endpoints (relative to the client's base URL):
    - GET    /{entity}        -> {"data": [...]}
    - POST   /{entity}        -> {"success": true, "results": [{"data": {...}}]}
    - PUT    /{entity}/{id}   -> same envelope
    - DELETE /{entity}/{id}   -> any 2xx
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def _request(self, method: str, url: str, *, json: Any = None) -> Any:
        try:
            resp = await self._client.request(method, url, json=json)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("Backend %s %s -> HTTP %s", method, url, exc.response.status_code)
            raise PersistenceError(f"{method} {url} failed with HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.warning("Backend %s %s transport error: %s", method, url, exc)
            raise PersistenceError(f"{method} {url} failed: {exc}") from exc

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise PersistenceError(f"{method} {url} returned invalid JSON") from exc

    async def list(self, entity: EntityType) -> list[Record]:
        payload = await self._request("GET", f"/{entity.value}")
        if not isinstance(payload, dict):
            return []
        data = payload.get("data")
        if not isinstance(data, list):
            return []
        return [r for r in data if isinstance(r, dict)]

    async def create(self, entity: EntityType, record: Record) -> Record:
        payload = await self._request("POST", f"/{entity.value}", json={"records": [record]})
        return _first_result(payload, f"create {entity.value}")

    async def update(self, entity: EntityType, record: Record) -> Record:
        entity_id = record.get("id")
        payload = await self._request("PUT", f"/{entity.value}/{entity_id}", json={"records": [record]})
        return _first_result(payload, f"update {entity.value}")

    async def delete(self, entity: EntityType, entity_id: str) -> None:
        await self._request("DELETE", f"/{entity.value}/{entity_id}")

    async def aclose(self) -> None:
        await self._client.aclose()
