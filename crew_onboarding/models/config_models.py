from __future__ import annotations

from dataclasses import dataclass, field

from .entities import EntityType

"""Config dataclasses for the onboarding tool.

These are the typed form of config/onboarding.yml; crew_onboarding.config.loader
validates the raw YAML against contracts/config_schema.json and builds them.
"""

DEFAULT_TABLES: dict[EntityType, str] = {
    EntityType.MANAGERS: "project_managers",
    EntityType.PROJECTS: "projects",
    EntityType.SUBCONTRACTORS: "subcontractors",
    EntityType.WORKERS: "workers",
}


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration for backend.mode=postgres.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class BackendConfig:
    """Where the remote bulk-create operations live."""
    mode: str = "http"  # http | postgres
    base_url: str | None = None
    timeout_seconds: float = 30.0
    endpoints: dict[EntityType, str] = field(default_factory=dict)  # overrides only
    reference_endpoints: dict[str, str] = field(default_factory=dict)  # overrides only
    api_token: str | None = None


@dataclass(frozen=True)
class ImportOptions:
    """Spreadsheet import settings."""
    # entity type -> field name -> extra header synonyms
    header_synonyms: dict[EntityType, dict[str, list[str]]] = field(default_factory=dict)
    null_sentinels: set[str] | None = None  # upper-cased
    delimiter: str = ","


@dataclass(frozen=True)
class OnboardingConfig:
    """Root configuration object for an onboarding run."""
    backend: BackendConfig
    database: DatabaseConfig
    tables: dict[EntityType, str]
    imports: ImportOptions

    def table_for(self, entity_type: EntityType) -> str:
        return self.tables.get(entity_type, DEFAULT_TABLES[entity_type])
