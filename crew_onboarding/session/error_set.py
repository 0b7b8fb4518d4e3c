from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ..models.entities import EntityType

"""Validation error set: server-reported messages per entity type.

Blocking entries come from a failed commit; warnings come from a successful
commit whose response carried warnings (e.g. the backend skipped a record a
concurrent session created first). Warnings are shown but do not hold the
wizard on its step.

Row validation and session duplicates are not stored here; they are derived
from the draft on demand (see session.context).
"""

__all__ = [
    "ErrorEntry",
    "ValidationErrorSet",
]


@dataclass(frozen=True)
class ErrorEntry:
    message: str
    blocking: bool = True


class ValidationErrorSet:
    def __init__(self, entity_types: Iterable[EntityType]) -> None:
        self._entries: dict[EntityType, list[ErrorEntry]] = {t: [] for t in entity_types}

    def set_errors(self, entity_type: EntityType, messages: Iterable[str]) -> None:
        self._entries[entity_type] = [ErrorEntry(m, blocking=True) for m in messages]

    def set_warnings(self, entity_type: EntityType, messages: Iterable[str]) -> None:
        self._entries[entity_type] = [ErrorEntry(m, blocking=False) for m in messages]

    def clear(self, entity_type: EntityType) -> None:
        self._entries[entity_type] = []

    def clear_all(self) -> None:
        for entity_type in self._entries:
            self._entries[entity_type] = []

    def entries(self, entity_type: EntityType) -> list[ErrorEntry]:
        return list(self._entries[entity_type])

    def errors(self, entity_type: EntityType) -> list[str]:
        return [e.message for e in self._entries[entity_type] if e.blocking]

    def warnings(self, entity_type: EntityType) -> list[str]:
        return [e.message for e in self._entries[entity_type] if not e.blocking]

    def messages(self, entity_type: EntityType) -> list[str]:
        return [e.message for e in self._entries[entity_type]]
