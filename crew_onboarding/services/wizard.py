from __future__ import annotations

import logging
from dataclasses import dataclass

from ..logging.error_log import ErrorLogBuffer
from ..models.entities import EntityType
from ..models.error_record import DUPLICATE_ERROR, VALIDATION_ERROR, ErrorRecord
from ..models.wizard_state import STEP_ORDER, WizardStep
from ..session.context import OnboardingSession
from .commit import CommitInProgressError, CommitOrchestrator

"""Wizard step machine.

intro → managers → projects → subcontractors → workers → complete

next() on an entity step holds while the draft has session duplicates or
row validation errors, then commits the draft (if any), then advances only
when can_advance holds: no duplicates, no blocking errors. A server error
from an earlier commit does not stop next() from retrying. Warnings never
hold the step.

skip() advances without committing or checking anything. previous() never
commits and never touches saved state.
"""

__all__ = [
    "WizardError",
    "TransitionResult",
    "WizardStepMachine",
]

logger = logging.getLogger(__name__)

DRAFT_SOURCE = "<DRAFT>"


class WizardError(Exception):
    """Illegal wizard transition."""


@dataclass(frozen=True)
class TransitionResult:
    """What happened on a next()/skip()/previous() call."""
    advanced: bool
    step: WizardStep
    reasons: tuple[str, ...] = ()  # why the step held, empty when advanced


class WizardStepMachine:
    def __init__(
        self,
        session: OnboardingSession,
        orchestrator: CommitOrchestrator,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self.session = session
        self.orchestrator = orchestrator
        self.error_log = error_log
        self.step = WizardStep.INTRO

    @property
    def progress(self) -> float:
        """Percentage shown by the progress bar."""
        return (self.step.index + 1) / len(STEP_ORDER) * 100

    @property
    def busy(self) -> bool:
        """True while the current step's commit is unresolved (controls disabled)."""
        entity_type = self.step.entity_type
        return entity_type is not None and self.orchestrator.is_in_flight(entity_type)

    def can_advance(self, entity_type: EntityType) -> bool:
        return self.session.can_advance(entity_type)

    def has_local_issues(self, entity_type: EntityType) -> bool:
        """Session duplicates or row validation errors in the draft.

        Server errors are left out: they are retried by the next commit.
        """
        report = self.session.validate(entity_type)
        return report.duplicate_count > 0 or bool(report.field_issues)

    def blocking_reasons(self, entity_type: EntityType) -> list[str]:
        """Messages explaining why next() would hold on this entity type."""
        session = self.session
        schema = session.registry.get(entity_type)
        reasons: list[str] = []
        duplicates = session.duplicate_count(entity_type)
        if duplicates:
            reasons.append(
                f"{duplicates} duplicate {schema.plural} found; each {schema.label.lower()} "
                f"must have a unique {schema.key_label}"
            )
        reasons.extend(session.blocking_errors(entity_type))
        return reasons

    def next(self) -> TransitionResult:
        if self.step is WizardStep.COMPLETE:
            raise WizardError("wizard already complete")
        entity_type = self.step.entity_type
        if entity_type is None:
            return self._advance()
        if self.busy:
            raise CommitInProgressError(f"a {entity_type.value} commit is already in progress")

        drafts = self.session.drafts[entity_type]
        if len(drafts) > 0:
            if self.has_local_issues(entity_type):
                return self._hold(entity_type)
            outcome = self.orchestrator.commit(entity_type)
            if not outcome.success:
                return self._hold(entity_type)
        if not self.can_advance(entity_type):
            return self._hold(entity_type)
        return self._advance()

    def complete(self) -> TransitionResult:
        """Finish from the last entity step (next() on workers)."""
        if self.step is not WizardStep.WORKERS:
            raise WizardError(f"cannot complete from step {self.step.value}")
        return self.next()

    def skip(self) -> TransitionResult:
        if self.step is WizardStep.COMPLETE:
            raise WizardError("wizard already complete")
        logger.debug("skipping step %s", self.step.value)
        return self._advance()

    def previous(self) -> TransitionResult:
        if self.step in (WizardStep.INTRO, WizardStep.MANAGERS):
            raise WizardError(f"cannot go back from step {self.step.value}")
        if self.step is WizardStep.COMPLETE:
            raise WizardError("wizard already complete")
        self.step = STEP_ORDER[self.step.index - 1]
        return TransitionResult(advanced=False, step=self.step)

    def reset(self) -> None:
        """Back to intro with empty drafts; saved keys survive."""
        self.session.reset()
        self.step = WizardStep.INTRO

    def _advance(self) -> TransitionResult:
        self.step = STEP_ORDER[self.step.index + 1]
        logger.debug("wizard step -> %s", self.step.value)
        return TransitionResult(advanced=True, step=self.step)

    def _hold(self, entity_type: EntityType) -> TransitionResult:
        reasons = self.blocking_reasons(entity_type)
        logger.warning("holding on %s: %d blocking issue(s)", entity_type.value, len(reasons))
        self._log_row_issues(entity_type)
        return TransitionResult(advanced=False, step=self.step, reasons=tuple(reasons))

    def _log_row_issues(self, entity_type: EntityType) -> None:
        if self.error_log is None:
            return
        for issue in self.session.validate(entity_type).issues:
            self.error_log.append(
                ErrorRecord.create(
                    file=issue.source or DRAFT_SOURCE,
                    entity=entity_type.value,
                    row=issue.row,
                    error_type=DUPLICATE_ERROR if issue.kind == DUPLICATE_ERROR else VALIDATION_ERROR,
                    message=issue.message,
                )
            )
