from __future__ import annotations

from collections.abc import Iterable

from ..models.commit_result import CommitOutcome, SessionSummary, StepStat
from ..models.wizard_state import WizardStep
from ..session.context import OnboardingSession

"""SUMMARY line for an onboarding run.

Format:
SUMMARY step=<step> managers=<saved>/<drafted> projects=<saved>/<drafted>
subcontractors=<saved>/<drafted> workers=<saved>/<drafted> created=N
skipped=N warnings=N errors=N

(one line; wrapped here for reading). <saved> counts draft records whose
natural key is in the saved-key set, so a fully committed step reads n/n.
"""

__all__ = [
    "build_session_summary",
    "render_summary_fields",
    "render_summary_line",
]


def build_session_summary(
    session: OnboardingSession,
    history: Iterable[CommitOutcome],
    final_step: WizardStep,
    elapsed_seconds: float = 0.0,
) -> SessionSummary:
    outcomes = list(history)
    stats: list[StepStat] = []
    for schema in session.registry:
        t = schema.entity_type
        drafts = session.drafts[t]
        mine = [o for o in outcomes if o.entity_type is t]
        stats.append(
            StepStat(
                entity_type=t,
                drafted=len(drafts),
                saved=sum(1 for r in drafts if session.is_saved(r)),
                created=sum(o.created for o in mine),
                skipped=sum(o.skipped for o in mine),
                warnings=sum(len(o.warnings) for o in mine),
                errors=len(session.blocking_errors(t)),
            )
        )
    return SessionSummary(final_step=final_step.value, step_stats=stats, elapsed_seconds=elapsed_seconds)


def render_summary_fields(summary: SessionSummary) -> str:
    """The key=value part of the SUMMARY line (log_summary adds the label)."""
    counts = " ".join(f"{s.entity_type.value}={s.saved}/{s.drafted}" for s in summary.step_stats)
    return (
        f"step={summary.final_step} "
        f"{counts} "
        f"created={summary.total_created} "
        f"skipped={summary.total_skipped} "
        f"warnings={summary.total_warnings} "
        f"errors={summary.total_errors}"
    )


def render_summary_line(summary: SessionSummary) -> str:
    """Render the SUMMARY line.

    >>> from crew_onboarding.models import EntityType
    >>> s = SessionSummary("complete", [StepStat(EntityType.MANAGERS, 2, 2, 2, 0, 0, 0)])
    >>> render_summary_line(s)
    'SUMMARY step=complete managers=2/2 created=2 skipped=0 warnings=0 errors=0'
    """
    return f"SUMMARY {render_summary_fields(summary)}"
