# src/taskflow/storage/local_backend.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from ..core.errors import PersistenceError
from ..core.ports import EntityType, Record

logger = logging.getLogger(__name__)

TASKS_KEY = "tasks"
CATEGORIES_KEY = "categories"

_KEYS: dict[EntityType, str] = {
    EntityType.TASK: TASKS_KEY,
    EntityType.CATEGORY: CATEGORIES_KEY,
}


class LocalStorage:
    """
    Browser-style local storage: string keys -> JSON values, kept in SQLite.

    Schema is created on open:
    - one table kv(key PRIMARY KEY, value TEXT)
    - values are JSON text, decoded on read

    Thread-safety:
    - each method opens its own SQLite connection
    """

    def __init__(self, db_path: str | Path = "taskflow.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("LocalStorage ready db=%s", self._db_path)

    @property
    def path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(Exception):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    # ---- public API ----

    def get_item(self, key: str, default: Any = None) -> Any:
        """Return the decoded JSON value for key; corrupt or missing values yield default."""
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        if row is None:
            return default
        try:
            return json.loads(row["value"])
        except (TypeError, ValueError):
            logger.warning("Corrupt JSON under key=%s; using default", key)
            return default

    def set_item(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        conn = self._get_conn()
        try:
            conn.execute(
                "INSERT INTO kv(key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, payload),
            )
            conn.commit()
        finally:
            conn.close()

    def remove_item(self, key: str) -> None:
        conn = self._get_conn()
        try:
            conn.execute("DELETE FROM kv WHERE key = ?", (key,))
            conn.commit()
        finally:
            conn.close()


class LocalPersistenceBackend:
    """
    PersistenceBackend over LocalStorage.

    Each entity type is one JSON array under a fixed key, rewritten in full on every mutation.
    """

    def __init__(self, storage: LocalStorage) -> None:
        self._storage = storage

    def _read(self, entity: EntityType) -> list[Record]:
        raw = self._storage.get_item(_KEYS[entity], [])
        if not isinstance(raw, list):
            return []
        return [r for r in raw if isinstance(r, dict)]

    def _write(self, entity: EntityType, records: list[Record]) -> None:
        try:
            self._storage.set_item(_KEYS[entity], records)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to write {entity.value} list: {exc}") from exc

    async def list(self, entity: EntityType) -> list[Record]:
        try:
            return self._read(entity)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to read {entity.value} list: {exc}") from exc

    async def create(self, entity: EntityType, record: Record) -> Record:
        records = await self.list(entity)
        if any(r.get("id") == record.get("id") for r in records):
            raise PersistenceError(f"{entity.value} {record.get('id')!r} already exists")
        records.append(dict(record))
        self._write(entity, records)
        return dict(record)

    async def update(self, entity: EntityType, record: Record) -> Record:
        records = await self.list(entity)
        for i, r in enumerate(records):
            if r.get("id") == record.get("id"):
                records[i] = dict(record)
                self._write(entity, records)
                return dict(record)
        raise PersistenceError(f"{entity.value} {record.get('id')!r} not found in local storage")

    async def delete(self, entity: EntityType, entity_id: str) -> None:
        records = await self.list(entity)
        kept = [r for r in records if r.get("id") != entity_id]
        if len(kept) != len(records):
            self._write(entity, kept)

    async def aclose(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return
