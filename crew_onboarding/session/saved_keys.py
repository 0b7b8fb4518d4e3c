from __future__ import annotations

from collections.abc import Iterable

from ..models.entities import EntityRecord, EntityType
from ..schema.registry import REGISTRY, SchemaRegistry

"""Saved-key tracker.

Natural keys already persisted, per entity type. The sets only grow for the
lifetime of a session: navigating backwards, failed commits and wizard
resets never remove a key, so a record can never be submitted twice.
"""

__all__ = [
    "SavedKeyTracker",
]


class SavedKeyTracker:
    def __init__(self, registry: SchemaRegistry = REGISTRY) -> None:
        self._registry = registry
        self._keys: dict[EntityType, set[str]] = {s.entity_type: set() for s in registry}

    def add(self, entity_type: EntityType, key: str) -> None:
        self._keys[entity_type].add(key.strip().lower())

    def add_many(self, entity_type: EntityType, keys: Iterable[str]) -> int:
        """Record keys; returns how many were new."""
        before = len(self._keys[entity_type])
        for key in keys:
            self.add(entity_type, key)
        return len(self._keys[entity_type]) - before

    def has(self, entity_type: EntityType, key: str) -> bool:
        return key.strip().lower() in self._keys[entity_type]

    def is_saved(self, record: EntityRecord) -> bool:
        schema = self._registry.for_record(record)
        return schema.natural_key(record) in self._keys[schema.entity_type]

    def unsaved(self, entity_type: EntityType, records: Iterable[EntityRecord]) -> list[EntityRecord]:
        schema = self._registry.get(entity_type)
        saved = self._keys[entity_type]
        return [r for r in records if schema.natural_key(r) not in saved]

    def keys(self, entity_type: EntityType) -> frozenset[str]:
        return frozenset(self._keys[entity_type])

    def __len__(self) -> int:
        return sum(len(v) for v in self._keys.values())
