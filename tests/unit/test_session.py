from __future__ import annotations

from crew_onboarding.models.entities import EntityType, Project, ProjectManager, Subcontractor, Worker
from crew_onboarding.session.context import OnboardingSession, ReferenceData
from crew_onboarding.session.error_set import ValidationErrorSet
from crew_onboarding.session.saved_keys import SavedKeyTracker


def test_saved_keys_are_case_insensitive_and_only_grow():
    tracker = SavedKeyTracker()
    assert tracker.add_many(EntityType.WORKERS, ["Jane@X.com", "jane@x.com", "amy@x.com"]) == 2
    assert tracker.has(EntityType.WORKERS, "JANE@x.COM")
    assert tracker.is_saved(Worker("J", "D", " jane@x.com "))
    assert tracker.keys(EntityType.WORKERS) == frozenset({"jane@x.com", "amy@x.com"})
    assert len(tracker) == 2


def test_unsaved_filters_by_natural_key():
    tracker = SavedKeyTracker()
    tracker.add(EntityType.WORKERS, "jane@x.com")
    records = [Worker("Jane", "Doe", "JANE@x.com"), Worker("Amy", "Poe", "amy@x.com")]
    assert tracker.unsaved(EntityType.WORKERS, records) == [records[1]]


def test_error_set_separates_blocking_and_warnings():
    errors = ValidationErrorSet(EntityType)
    errors.set_warnings(EntityType.WORKERS, ["a duplicate entry was skipped"])
    assert errors.errors(EntityType.WORKERS) == []
    assert errors.warnings(EntityType.WORKERS) == ["a duplicate entry was skipped"]
    errors.set_errors(EntityType.WORKERS, ["boom"])
    assert errors.messages(EntityType.WORKERS) == ["boom"]
    errors.clear_all()
    assert errors.entries(EntityType.WORKERS) == []


def test_jane_example_duplicates_then_edit_unblocks():
    session = OnboardingSession()
    session.drafts.add(Worker("Jane", "Doe", "jane@x.com"))
    session.drafts.add(Worker("Jane", "Doe", "JANE@X.COM"))
    assert session.duplicate_count(EntityType.WORKERS) == 2
    assert session.is_duplicate(EntityType.WORKERS, 0)
    assert session.is_duplicate(EntityType.WORKERS, 1)
    assert not session.can_advance(EntityType.WORKERS)

    session.drafts.start_edit(EntityType.WORKERS, 1)
    session.drafts.commit_edit(EntityType.WORKERS, Worker("Jane", "Doe", "jane2@x.com"))
    assert session.duplicate_count(EntityType.WORKERS) == 0
    assert session.can_advance(EntityType.WORKERS)


def test_removing_one_of_a_duplicate_pair_clears_the_duplicate():
    session = OnboardingSession()
    session.drafts.add(ProjectManager("Jane", "jane@x.com"))
    session.drafts.add(ProjectManager("Janet", "Jane@x.com"))
    session.drafts.remove(EntityType.MANAGERS, 1)
    assert session.duplicate_count(EntityType.MANAGERS) == 0
    assert session.blocking_errors(EntityType.MANAGERS) == []


def test_draft_change_clears_server_errors():
    session = OnboardingSession()
    session.errors.set_errors(EntityType.WORKERS, ["server said no"])
    assert not session.can_advance(EntityType.WORKERS)
    session.drafts.add(Worker("Jane", "Doe", "jane@x.com"))
    assert session.errors.errors(EntityType.WORKERS) == []
    assert session.can_advance(EntityType.WORKERS)


def test_warnings_do_not_block():
    session = OnboardingSession()
    session.errors.set_warnings(EntityType.WORKERS, ["a duplicate entry was skipped"])
    assert session.warnings(EntityType.WORKERS) == ["a duplicate entry was skipped"]
    assert session.can_advance(EntityType.WORKERS)


def test_known_names_include_persisted_and_drafted_subcontractors():
    session = OnboardingSession(ReferenceData(subcontractors=("ABC",)))
    session.drafts.add(Subcontractor("DEF"))
    assert session.known_names()[EntityType.SUBCONTRACTORS] == {"ABC", "DEF"}

    session.drafts.add(Worker("Jane", "Doe", "jane@x.com", subcontractor_name="GHI"))
    assert session.blocking_errors(EntityType.WORKERS) == ['Row 1: Subcontractor "GHI" not found']


def test_manager_choices_persisted_first_without_repeats():
    session = OnboardingSession(ReferenceData(project_managers=("Ann", "Bob")))
    session.drafts.add(ProjectManager("Bob", "bob@x.com"))
    session.drafts.add(ProjectManager("Cy", "cy@x.com"))
    assert session.manager_choices() == ["Ann", "Bob", "Cy"]


def test_is_fully_saved_and_is_saved():
    session = OnboardingSession()
    project = Project("Tower", "Main St")
    session.drafts.add(project)
    assert not session.is_fully_saved(EntityType.PROJECTS)
    session.saved_keys.add(EntityType.PROJECTS, "tower|main st")
    assert session.is_saved(project)
    assert session.is_fully_saved(EntityType.PROJECTS)


def test_reset_keeps_saved_keys():
    session = OnboardingSession()
    session.accept(EntityType.WORKERS, [Worker("Jane", "Doe", "jane@x.com")], source_file="crew.csv")
    session.saved_keys.add(EntityType.WORKERS, "jane@x.com")
    session.errors.set_warnings(EntityType.WORKERS, ["w"])
    session.reset()
    assert len(session.drafts[EntityType.WORKERS]) == 0
    assert session.warnings(EntityType.WORKERS) == []
    assert session.saved_keys.has(EntityType.WORKERS, "jane@x.com")


def test_reference_data_load(fake_client):
    fake_client.subcontractors = ["ABC"]
    fake_client.project_managers = ["Ann"]
    ref = ReferenceData.load(fake_client)
    assert ref == ReferenceData(subcontractors=("ABC",), project_managers=("Ann",))
