from __future__ import annotations

import pytest

from crew_onboarding.models.entities import EntityType, ProjectManager, Worker
from crew_onboarding.session.draft_store import DraftCollection, DraftStore


def _workers(n: int) -> list[Worker]:
    return [Worker(f"W{i}", "Doe", f"w{i}@x.com") for i in range(n)]


def test_add_and_add_many_keep_order():
    drafts = DraftCollection(EntityType.WORKERS)
    drafts.add(_workers(1)[0])
    drafts.add_many(_workers(3)[1:])
    assert [r.first_name for r in drafts] == ["W0", "W1", "W2"]
    assert len(drafts) == 3


def test_removing_the_edited_row_clears_the_edit():
    drafts = DraftCollection(EntityType.WORKERS)
    drafts.add_many(_workers(3))
    drafts.start_edit(1)
    drafts.remove(1)
    assert drafts.editing_index is None
    assert drafts.editing_record is None
    assert drafts.commit_edit() is False
    assert [r.first_name for r in drafts] == ["W0", "W2"]


def test_removing_an_earlier_row_keeps_the_edit_on_its_record():
    drafts = DraftCollection(EntityType.WORKERS)
    drafts.add_many(_workers(3))
    drafts.start_edit(2)
    drafts.remove(0)
    assert drafts.editing_index == 1

    edited = Worker("W2", "Doe", "new@x.com")
    assert drafts.commit_edit(edited) is True
    assert drafts[1] == edited
    assert drafts[0].first_name == "W1"


def test_set_edit_then_commit_writes_working_copy():
    drafts = DraftCollection(EntityType.WORKERS)
    drafts.add_many(_workers(2))
    drafts.start_edit(0)
    drafts.set_edit(Worker("Changed", "Doe", "w0@x.com"))
    assert drafts.commit_edit() is True
    assert drafts[0].first_name == "Changed"
    assert drafts.editing_index is None


def test_cancel_edit_leaves_record_untouched():
    drafts = DraftCollection(EntityType.WORKERS)
    drafts.add_many(_workers(1))
    drafts.start_edit(0)
    drafts.set_edit(Worker("Changed", "Doe", "w0@x.com"))
    drafts.cancel_edit()
    assert drafts[0].first_name == "W0"


def test_set_edit_without_edit_raises():
    drafts = DraftCollection(EntityType.WORKERS)
    with pytest.raises(LookupError):
        drafts.set_edit(_workers(1)[0])


@pytest.mark.parametrize("index", [-1, 5])
def test_bad_index_raises(index: int):
    drafts = DraftCollection(EntityType.WORKERS)
    drafts.add_many(_workers(2))
    with pytest.raises(IndexError):
        drafts.remove(index)
    with pytest.raises(IndexError):
        drafts.start_edit(index)


def test_on_change_fires_for_every_mutation():
    seen: list[EntityType] = []
    store = DraftStore(on_change=seen.append)
    store.add(ProjectManager("Jane", "jane@x.com"))
    store.add_many(EntityType.WORKERS, _workers(2))
    store.update(EntityType.WORKERS, 0, Worker("X", "Y", "x@y.com"))
    store.start_edit(EntityType.WORKERS, 1)
    store.commit_edit(EntityType.WORKERS)
    store.remove(EntityType.WORKERS, 0)
    assert seen == [
        EntityType.MANAGERS,
        EntityType.WORKERS,
        EntityType.WORKERS,
        EntityType.WORKERS,
        EntityType.WORKERS,
    ]


def test_add_many_empty_is_silent():
    seen: list[EntityType] = []
    drafts = DraftCollection(EntityType.WORKERS, on_change=seen.append)
    assert drafts.add_many([]) == []
    assert seen == []


def test_store_add_infers_entity_type():
    store = DraftStore()
    store.add(Worker("Jane", "Doe", "jane@x.com"), source_file="crew.csv")
    assert len(store[EntityType.WORKERS]) == 1
    assert store[EntityType.WORKERS].entries[0].source_file == "crew.csv"
    assert len(store[EntityType.MANAGERS]) == 0


def test_clear_drops_rows_and_edit():
    store = DraftStore()
    store.add_many(EntityType.WORKERS, _workers(2))
    store.start_edit(EntityType.WORKERS, 0)
    store.clear()
    assert len(store[EntityType.WORKERS]) == 0
    assert store[EntityType.WORKERS].editing_index is None
