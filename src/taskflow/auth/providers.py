# src/taskflow/auth/providers.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..core.errors import AuthError

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class AuthUser:
    user_id: str
    email: str = ""
    display_name: str = ""


def _user_from_payload(payload: Any) -> AuthUser | None:
    if not isinstance(payload, dict):
        return None
    raw = payload.get("user")
    if not isinstance(raw, dict):
        return None
    user_id = raw.get("id") or raw.get("userId")
    if not user_id:
        return None
    return AuthUser(
        user_id=str(user_id),
        email=str(raw.get("email") or ""),
        display_name=str(raw.get("name") or raw.get("displayName") or ""),
    )


def _json(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError as exc:
        raise AuthError("auth endpoint returned invalid JSON") from exc


class RemoteAuthProvider:
    """
    AuthProvider backed by the same HTTP service as the remote persistence backend.

    - POST /auth/login   {"username", "password"} -> {"user": {...}} | 401
    - POST /auth/logout
    - GET  /auth/session -> {"user": {...} | null}
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def login(self, username: str, password: str) -> AuthUser | None:
        try:
            resp = await self._client.post("/auth/login", json={"username": username, "password": password})
        except httpx.HTTPError as exc:
            raise AuthError(f"login request failed: {exc}") from exc
        if resp.status_code in (400, 401, 403):
            return None
        if resp.is_error:
            raise AuthError(f"login failed with HTTP {resp.status_code}")
        return _user_from_payload(_json(resp))

    async def logout(self) -> None:
        try:
            resp = await self._client.post("/auth/logout")
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise AuthError(f"logout failed: {exc}") from exc

    async def restore_session(self) -> AuthUser | None:
        try:
            resp = await self._client.get("/auth/session")
        except httpx.HTTPError as exc:
            raise AuthError(f"session request failed: {exc}") from exc
        if resp.status_code == 401:
            return None
        if resp.is_error:
            raise AuthError(f"session check failed with HTTP {resp.status_code}")
        return _user_from_payload(_json(resp))


class OfflineAuthProvider:
    """
    Offline single-user provider used with the local backend.

    Behavior:
    - login succeeds for the configured local user (any password), fails otherwise
    - the session survives restarts via the `session` key in local storage
    """

    SESSION_KEY = "session"

    def __init__(self, storage: Any, local_user: str = "me") -> None:
        self._storage = storage
        self._local_user = local_user

    async def login(self, username: str, password: str) -> AuthUser | None:
        name = (username or "").strip()
        if not name or name != self._local_user:
            return None
        self._storage.set_item(self.SESSION_KEY, {"user": {"id": name, "name": name}})
        return AuthUser(user_id=name, display_name=name)

    async def logout(self) -> None:
        self._storage.remove_item(self.SESSION_KEY)

    async def restore_session(self) -> AuthUser | None:
        return _user_from_payload(self._storage.get_item(self.SESSION_KEY))
