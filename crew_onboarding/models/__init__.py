"""Domain models for the crew onboarding tool.

Entity records, import rows, wizard steps, commit results and the error log
record shape.
"""

from .commit_result import BulkCreateResponse, CommitOutcome, SessionSummary, StepStat
from .config_models import BackendConfig, DatabaseConfig, ImportOptions, OnboardingConfig
from .entities import EntityRecord, EntityType, Project, ProjectManager, Subcontractor, Worker
from .import_row import ImportRow
from .wizard_state import STEP_ORDER, WizardStep

__all__ = [
    # Configuration models
    "BackendConfig",
    "DatabaseConfig",
    "ImportOptions",
    "OnboardingConfig",
    # Entity models
    "EntityRecord",
    "EntityType",
    "Project",
    "ProjectManager",
    "Subcontractor",
    "Worker",
    # Processing models
    "ImportRow",
    "BulkCreateResponse",
    "CommitOutcome",
    "SessionSummary",
    "StepStat",
    "STEP_ORDER",
    "WizardStep",
]
