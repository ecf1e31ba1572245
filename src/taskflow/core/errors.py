# src/taskflow/core/errors.py

from __future__ import annotations


class TaskFlowError(Exception):
    """Base class for all domain errors raised by the core."""


class ValidationError(TaskFlowError):
    """A required field is missing or a value is out of range."""


class NotFoundError(TaskFlowError):
    """Operation on an id that is not in the store."""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} {entity_id!r} not found")
        self.entity = entity
        self.entity_id = entity_id


class PersistenceError(TaskFlowError):
    """The backing store call failed; in-memory state was left untouched."""


class AuthError(TaskFlowError):
    """Authentication provider failure (network, bad response)."""
