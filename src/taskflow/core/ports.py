# src/taskflow/core/ports.py

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps persistence/auth/notification providers swappable and makes testing easier.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Protocol

Record = dict[str, Any]
# Canonical camelCase record: {"id": "...", "title": "...", ...}.


class EntityType(StrEnum):
    TASK = "task"
    CATEGORY = "category"


class NotificationKind(StrEnum):
    SUCCESS = "success"
    ERROR = "error"


class PersistenceBackend(Protocol):
    """
    Four-operation persistence contract.

    Implementations raise PersistenceError on any failure.
    The Entity Store depends only on this, whether the data lives locally or remotely.
    """

    async def list(self, entity: EntityType) -> list[Record]: ...
    async def create(self, entity: EntityType, record: Record) -> Record: ...
    async def update(self, entity: EntityType, record: Record) -> Record: ...
    async def delete(self, entity: EntityType, entity_id: str) -> None: ...
    async def aclose(self) -> None: ...


class AuthProvider(Protocol):
    """
    Authentication SDK port.

    Each call yields an opaque authenticated-user object or None.
    """

    async def login(self, username: str, password: str) -> Any | None: ...
    async def logout(self) -> None: ...
    async def restore_session(self) -> Any | None: ...


class NotificationSink(Protocol):
    """Fire-and-forget user notifications (toasts)."""

    def notify(self, message: str, kind: NotificationKind) -> None: ...
