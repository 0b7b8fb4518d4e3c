from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ..models.entities import EntityRecord, EntityType
from ..schema.registry import REGISTRY, SchemaRegistry
from ..validation.row_validator import ValidationReport, validate_rows
from .draft_store import DraftStore
from .error_set import ValidationErrorSet
from .saved_keys import SavedKeyTracker

"""Session context shared by every component of the onboarding core.

OnboardingSession owns the draft store, the saved-key tracker and the
validation error set. Nothing else holds wizard state; the commit
orchestrator and the wizard step machine receive the session explicitly.

The gate used by the wizard is the same for every entity type:

    can_advance(t) = duplicate_count(t) == 0 and not blocking_errors(t)
"""

__all__ = [
    "ReferenceData",
    "OnboardingSession",
]


@dataclass(frozen=True)
class ReferenceData:
    """Read-only records already persisted before this session started."""
    subcontractors: tuple[str, ...] = ()
    project_managers: tuple[str, ...] = ()

    @classmethod
    def load(cls, client) -> ReferenceData:
        """Fetch reference names from a bulk-create client (see services.remote)."""
        return cls(
            subcontractors=tuple(client.list_subcontractors()),
            project_managers=tuple(client.list_project_managers()),
        )


class OnboardingSession:
    def __init__(self, reference: ReferenceData | None = None, registry: SchemaRegistry = REGISTRY) -> None:
        self.registry = registry
        self.reference = reference or ReferenceData()
        self.errors = ValidationErrorSet(s.entity_type for s in registry)
        self.drafts = DraftStore(on_change=self._draft_changed, registry=registry)
        self.saved_keys = SavedKeyTracker(registry)

    def _draft_changed(self, entity_type: EntityType) -> None:
        # any edit may resolve what the server complained about
        self.errors.clear(entity_type)

    # -- derived state -----------------------------------------------------
    def known_names(self) -> dict[EntityType, set[str]]:
        """Names a referential field may point at: persisted plus drafted."""
        subcontractors = set(self.reference.subcontractors)
        subcontractors.update(r.name.strip() for r in self.drafts[EntityType.SUBCONTRACTORS] if r.name.strip())
        return {EntityType.SUBCONTRACTORS: subcontractors}

    def validate(self, entity_type: EntityType) -> ValidationReport:
        return validate_rows(entity_type, self.drafts[entity_type].records, known_names=self.known_names())

    def duplicate_count(self, entity_type: EntityType) -> int:
        return self.validate(entity_type).duplicate_count

    def blocking_errors(self, entity_type: EntityType) -> list[str]:
        """Row validation errors followed by server errors (warnings excluded)."""
        row_errors = [issue.message for issue in self.validate(entity_type).field_issues]
        return row_errors + self.errors.errors(entity_type)

    def warnings(self, entity_type: EntityType) -> list[str]:
        return self.errors.warnings(entity_type)

    def can_advance(self, entity_type: EntityType) -> bool:
        return self.duplicate_count(entity_type) == 0 and not self.blocking_errors(entity_type)

    def is_saved(self, record: EntityRecord) -> bool:
        return self.saved_keys.is_saved(record)

    def is_duplicate(self, entity_type: EntityType, index: int) -> bool:
        return index in self.validate(entity_type).duplicate_indices

    def is_fully_saved(self, entity_type: EntityType) -> bool:
        """True when every draft record's key is already persisted."""
        return not self.saved_keys.unsaved(entity_type, self.drafts[entity_type])

    def manager_choices(self) -> list[str]:
        """Manager names for a project's selection list, persisted first."""
        names: list[str] = []
        drafted = (r.name.strip() for r in self.drafts[EntityType.MANAGERS])
        for name in (*self.reference.project_managers, *drafted):
            if name and name not in names:
                names.append(name)
        return names

    # -- mutation entry points --------------------------------------------
    def accept(self, entity_type: EntityType, records: Iterable[EntityRecord], source_file: str | None = None) -> int:
        """Append accepted import rows (or a manual "save and continue" batch)."""
        return len(self.drafts.add_many(entity_type, records, source_file))

    def reset(self) -> None:
        """Drop drafts, edits and errors. Saved keys are kept for the session."""
        self.drafts.clear()
        self.errors.clear_all()
