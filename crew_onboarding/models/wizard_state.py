from __future__ import annotations

from enum import Enum

from .entities import EntityType

"""WizardStep enum for the onboarding flow.

State order: intro → managers → projects → subcontractors → workers → complete

No cycles; previous() walks back along the same order but never into intro
from the first entity step (see services.wizard).
"""

__all__ = [
    "WizardStep",
    "STEP_ORDER",
]


class WizardStep(Enum):
    """Ordered steps of the onboarding wizard.

    - INTRO: welcome screen, nothing to commit
    - MANAGERS .. WORKERS: one step per entity type
    - COMPLETE: terminal
    """
    INTRO = "intro"
    MANAGERS = "managers"
    PROJECTS = "projects"
    SUBCONTRACTORS = "subcontractors"
    WORKERS = "workers"
    COMPLETE = "complete"

    @property
    def entity_type(self) -> EntityType | None:
        """Entity type handled by this step, None for intro/complete."""
        try:
            return EntityType(self.value)
        except ValueError:
            return None

    @property
    def index(self) -> int:
        return STEP_ORDER.index(self)


STEP_ORDER: tuple[WizardStep, ...] = (
    WizardStep.INTRO,
    WizardStep.MANAGERS,
    WizardStep.PROJECTS,
    WizardStep.SUBCONTRACTORS,
    WizardStep.WORKERS,
    WizardStep.COMPLETE,
)
