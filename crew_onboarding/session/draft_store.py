from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from ..models.entities import EntityRecord, EntityType
from ..schema.registry import REGISTRY, SchemaRegistry

"""Draft store: the in-progress records of every entity type.

A DraftCollection is an insertion-ordered list of records with one optional
edit in progress. Callers address rows by index (what the table shows), but
each entry also gets an opaque local id when it is inserted and the edit
state remembers that id. Removing the row being edited clears the edit;
removing any other row leaves the edit on the same record even though its
index shifted.

Every mutation (add, add_many, update, remove, commit_edit) fires the
collection's on_change callback; the session uses it to clear that entity
type's error set.
"""

__all__ = [
    "DraftEntry",
    "DraftCollection",
    "DraftStore",
]


@dataclass(frozen=True)
class DraftEntry:
    entry_id: str
    record: EntityRecord
    source_file: str | None = None  # import file the record came from, for display only


class DraftCollection:
    """Ordered drafts of one entity type plus its edit state."""

    def __init__(self, entity_type: EntityType, on_change: Callable[[EntityType], None] | None = None) -> None:
        self.entity_type = entity_type
        self._entries: list[DraftEntry] = []
        self._on_change = on_change
        self._editing_id: str | None = None
        self._editing_record: EntityRecord | None = None

    # -- read side ---------------------------------------------------------
    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[EntityRecord]:
        return (e.record for e in self._entries)

    def __getitem__(self, index: int) -> EntityRecord:
        return self._entries[self._check(index)].record

    @property
    def records(self) -> list[EntityRecord]:
        return [e.record for e in self._entries]

    @property
    def entries(self) -> tuple[DraftEntry, ...]:
        return tuple(self._entries)

    @property
    def editing_index(self) -> int | None:
        if self._editing_id is None:
            return None
        for idx, entry in enumerate(self._entries):
            if entry.entry_id == self._editing_id:
                return idx
        return None

    @property
    def editing_record(self) -> EntityRecord | None:
        """Working copy of the record being edited."""
        return self._editing_record

    # -- mutations ---------------------------------------------------------
    def add(self, record: EntityRecord, source_file: str | None = None) -> str:
        entry = DraftEntry(entry_id=uuid.uuid4().hex, record=record, source_file=source_file)
        self._entries.append(entry)
        self._changed()
        return entry.entry_id

    def add_many(self, records: Iterable[EntityRecord], source_file: str | None = None) -> list[str]:
        new = [DraftEntry(entry_id=uuid.uuid4().hex, record=r, source_file=source_file) for r in records]
        if not new:
            return []
        self._entries.extend(new)
        self._changed()
        return [e.entry_id for e in new]

    def update(self, index: int, record: EntityRecord) -> None:
        pos = self._check(index)
        old = self._entries[pos]
        self._entries[pos] = DraftEntry(entry_id=old.entry_id, record=record, source_file=old.source_file)
        self._changed()

    def remove(self, index: int) -> EntityRecord:
        pos = self._check(index)
        entry = self._entries.pop(pos)
        if entry.entry_id == self._editing_id:
            self._editing_id = None
            self._editing_record = None
        self._changed()
        return entry.record

    def clear(self) -> None:
        self._entries.clear()
        self._editing_id = None
        self._editing_record = None

    # -- edit state --------------------------------------------------------
    def start_edit(self, index: int) -> EntityRecord:
        entry = self._entries[self._check(index)]
        self._editing_id = entry.entry_id
        self._editing_record = entry.record
        return entry.record

    def set_edit(self, record: EntityRecord) -> None:
        """Replace the working copy of the edit in progress."""
        if self._editing_id is None:
            raise LookupError("no edit in progress")
        self._editing_record = record

    def commit_edit(self, record: EntityRecord | None = None) -> bool:
        """Write the working copy back. Returns False when nothing was being edited."""
        index = self.editing_index
        if index is None:
            self._editing_id = None
            self._editing_record = None
            return False
        new_record = record if record is not None else self._editing_record
        self._editing_id = None
        self._editing_record = None
        if new_record is None:
            return False
        self.update(index, new_record)
        return True

    def cancel_edit(self) -> None:
        self._editing_id = None
        self._editing_record = None

    def _check(self, index: int) -> int:
        if not 0 <= index < len(self._entries):
            raise IndexError(f"{self.entity_type.value} draft has no row {index}")
        return index

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self.entity_type)


class DraftStore:
    """One DraftCollection per registered entity type."""

    def __init__(
        self,
        on_change: Callable[[EntityType], None] | None = None,
        registry: SchemaRegistry = REGISTRY,
    ) -> None:
        self._registry = registry
        self._collections = {s.entity_type: DraftCollection(s.entity_type, on_change) for s in registry}

    def __getitem__(self, entity_type: EntityType) -> DraftCollection:
        return self._collections[entity_type]

    def __iter__(self) -> Iterator[DraftCollection]:
        return iter(self._collections.values())

    def add(self, record: EntityRecord, source_file: str | None = None) -> str:
        entity_type = self._registry.for_record(record).entity_type
        return self._collections[entity_type].add(record, source_file)

    def add_many(self, entity_type: EntityType, records: Iterable[EntityRecord], source_file: str | None = None) -> list[str]:
        return self._collections[entity_type].add_many(records, source_file)

    def update(self, entity_type: EntityType, index: int, record: EntityRecord) -> None:
        self._collections[entity_type].update(index, record)

    def remove(self, entity_type: EntityType, index: int) -> EntityRecord:
        return self._collections[entity_type].remove(index)

    def start_edit(self, entity_type: EntityType, index: int) -> EntityRecord:
        return self._collections[entity_type].start_edit(index)

    def commit_edit(self, entity_type: EntityType, record: EntityRecord | None = None) -> bool:
        return self._collections[entity_type].commit_edit(record)

    def cancel_edit(self, entity_type: EntityType) -> None:
        self._collections[entity_type].cancel_edit()

    def clear(self) -> None:
        for collection in self._collections.values():
            collection.clear()
