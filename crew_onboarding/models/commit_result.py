from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .entities import EntityType

"""Result models for commits and the end-of-run summary.

BulkCreateResponse is the decoded success payload of a remote bulk-create
call. CommitOutcome is what the commit orchestrator reports back to the
wizard for one commit attempt. StepStat / SessionSummary aggregate outcomes
for the SUMMARY line.
"""


@dataclass(frozen=True)
class BulkCreateResponse:
    """Decoded success payload of a bulk-create call.

    created_records holds the entity-shaped payload dicts the backend
    actually persisted; their natural keys feed the saved-key tracker.
    """
    created_records: list[dict[str, Any]]
    created_count: int
    skipped_count: int = 0
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CommitOutcome:
    """Outcome of one commit attempt for one entity type.

    remote_called is False for the idempotent no-op (nothing unsaved).
    On failure errors holds the normalised server messages and the draft
    and saved keys are untouched.
    """
    entity_type: EntityType
    success: bool
    remote_called: bool
    attempted: int = 0  # records sent
    created: int = 0
    skipped: int = 0
    warnings: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()


@dataclass(frozen=True)
class StepStat:
    """Per entity type totals for the SUMMARY line."""
    entity_type: EntityType
    drafted: int  # records in the draft at the end of the run
    saved: int  # draft records whose key is in the saved-key set
    created: int  # sum of created over all commits
    skipped: int
    warnings: int
    errors: int  # outstanding blocking errors at the end of the run


@dataclass(frozen=True)
class SessionSummary:
    """Aggregated results of one onboarding run."""
    final_step: str
    step_stats: list[StepStat]
    elapsed_seconds: float = 0.0

    @property
    def total_created(self) -> int:
        return sum(s.created for s in self.step_stats)

    @property
    def total_skipped(self) -> int:
        return sum(s.skipped for s in self.step_stats)

    @property
    def total_warnings(self) -> int:
        return sum(s.warnings for s in self.step_stats)

    @property
    def total_errors(self) -> int:
        return sum(s.errors for s in self.step_stats)
