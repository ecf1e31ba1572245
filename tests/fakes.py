# tests/fakes.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from taskflow.auth.providers import AuthUser
from taskflow.core.errors import AuthError, PersistenceError
from taskflow.core.ports import EntityType, NotificationKind, Record


@dataclass(slots=True)
class FakeNotifier:
    """
    Records every notification instead of printing it.
    """

    sent: list[tuple[str, NotificationKind]] = field(default_factory=list)

    def notify(self, message: str, kind: NotificationKind) -> None:
        self.sent.append((message, kind))

    @property
    def errors(self) -> list[str]:
        return [m for m, k in self.sent if k == NotificationKind.ERROR]

    @property
    def successes(self) -> list[str]:
        return [m for m, k in self.sent if k == NotificationKind.SUCCESS]


class FakeBackend:
    """
    In-memory PersistenceBackend.

    - `fail_ops` makes the named operations ("list", "create", "update", "delete") raise PersistenceError
    - `fail_ids` does the same for any call touching one of those record ids
    - `gate`, when set, blocks every call until the test releases it
    - every call is logged in `calls` for ordering assertions
    """

    def __init__(self) -> None:
        self.records: dict[EntityType, list[Record]] = {EntityType.TASK: [], EntityType.CATEGORY: []}
        self.fail_ops: set[str] = set()
        self.fail_ids: set[str] = set()
        self.gate: asyncio.Event | None = None
        self.calls: list[tuple[str, EntityType, str | None]] = []
        self.closed = False

    async def _enter(self, op: str, entity: EntityType, entity_id: str | None) -> None:
        self.calls.append((op, entity, entity_id))
        if self.gate is not None:
            await self.gate.wait()
        else:
            # yield once so concurrent callers can interleave
            await asyncio.sleep(0)
        if op in self.fail_ops or (entity_id is not None and entity_id in self.fail_ids):
            raise PersistenceError(f"{op} failed (fake)")

    def _find(self, entity: EntityType, entity_id: str | None) -> int | None:
        for i, r in enumerate(self.records[entity]):
            if r.get("id") == entity_id:
                return i
        return None

    async def list(self, entity: EntityType) -> list[Record]:
        await self._enter("list", entity, None)
        return [dict(r) for r in self.records[entity]]

    async def create(self, entity: EntityType, record: Record) -> Record:
        await self._enter("create", entity, record.get("id"))
        self.records[entity].append(dict(record))
        return dict(record)

    async def update(self, entity: EntityType, record: Record) -> Record:
        await self._enter("update", entity, record.get("id"))
        idx = self._find(entity, record.get("id"))
        if idx is None:
            raise PersistenceError("not found (fake)")
        self.records[entity][idx] = dict(record)
        return dict(record)

    async def delete(self, entity: EntityType, entity_id: str) -> None:
        await self._enter("delete", entity, entity_id)
        idx = self._find(entity, entity_id)
        if idx is not None:
            self.records[entity].pop(idx)

    async def aclose(self) -> None:
        self.closed = True


class FakeAuthProvider:
    """
    AuthProvider with a fixed set of valid users.

    `observed_states` captures the session state seen while a provider call is in flight.
    """

    def __init__(self, users: set[str] | None = None) -> None:
        self.users = users if users is not None else {"alice"}
        self.current: AuthUser | None = None
        self.fail_login = False
        self.fail_logout = False
        self.session = None
        self.observed_states: list[str] = []

    def _observe(self) -> None:
        if self.session is not None:
            self.observed_states.append(self.session.state.value)

    async def login(self, username: str, password: str) -> AuthUser | None:
        self._observe()
        if self.fail_login:
            raise AuthError("provider down (fake)")
        if username not in self.users:
            return None
        self.current = AuthUser(user_id=username)
        return self.current

    async def logout(self) -> None:
        if self.fail_logout:
            raise AuthError("provider down (fake)")
        self.current = None

    async def restore_session(self) -> AuthUser | None:
        self._observe()
        return self.current


class StepClock:
    """Deterministic clock: each call advances by one second."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 10, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now
