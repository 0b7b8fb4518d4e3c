from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

"""Entity records provisioned by the onboarding wizard.

The four shapes mirror what the tenant backend accepts on its bulk-create
endpoints. All scalar fields hold the trimmed text the operator typed or the
spreadsheet cell contained; numeric fields stay as text until payload
serialisation so that validation can report the original value.
"""

__all__ = [
    "EntityType",
    "ProjectManager",
    "Project",
    "Subcontractor",
    "Worker",
    "EntityRecord",
]


class EntityType(Enum):
    """Entity types handled by the wizard, in step order."""
    MANAGERS = "managers"
    PROJECTS = "projects"
    SUBCONTRACTORS = "subcontractors"
    WORKERS = "workers"


@dataclass(frozen=True)
class ProjectManager:
    name: str
    email: str


@dataclass(frozen=True)
class Project:
    name: str
    location: str
    project_manager: str | None = None  # manager name picked from the selection list
    cost: str | None = None


@dataclass(frozen=True)
class Subcontractor:
    name: str
    contract_amount: str | None = None
    foreman: str | None = None
    project_refs: tuple[str, ...] = field(default_factory=tuple)  # project names


@dataclass(frozen=True)
class Worker:
    first_name: str
    last_name: str
    email: str
    rate: str | None = None
    subcontractor_name: str | None = None


EntityRecord = ProjectManager | Project | Subcontractor | Worker
