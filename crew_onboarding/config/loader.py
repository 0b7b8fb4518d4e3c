from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_TABLES,
    BackendConfig,
    DatabaseConfig,
    ImportOptions,
    OnboardingConfig,
)
from ..models.entities import EntityType

"""Config loader.

Responsibilities:
- Load YAML config/onboarding.yml
- Validate it against contracts/config_schema.json
- Apply defaults (http backend, 30s timeout, default table names)
- Apply environment overrides: ONBOARDING_API_URL, ONBOARDING_API_TOKEN

Database connection variables (DATABASE_URL, PGDSN, PG*) are resolved at
connect time by the CLI; the `database` section only supplies fallbacks.
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
]

DEFAULT_CONFIG_PATH = Path("config/onboarding.yml")
# crew_onboarding/config/loader.py -> crew_onboarding/contracts
SCHEMA_PATH = Path(__file__).parent.parent / "contracts" / "config_schema.json"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: Any) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: the schema file is missing or not valid JSON, or the
            config data violates it (unknown keys, wrong types, bad enum).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        where = ".".join(str(p) for p in e.absolute_path)
        raise ConfigError(f"config validation failed: {where + ': ' if where else ''}{e.message}") from e


def _per_entity(raw: Mapping[str, Any] | None) -> dict[EntityType, Any]:
    return {EntityType(k): v for k, v in (raw or {}).items()}


def load_config(path: Path = DEFAULT_CONFIG_PATH, environ: Mapping[str, str] | None = None) -> OnboardingConfig:
    env = os.environ if environ is None else environ
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e

    _validate_config_schema(data)

    backend_raw = data.get("backend") or {}
    backend = BackendConfig(
        mode=backend_raw.get("mode", "http"),
        base_url=env.get("ONBOARDING_API_URL") or backend_raw.get("base_url"),
        timeout_seconds=float(backend_raw.get("timeout_seconds", 30.0)),
        endpoints=_per_entity(backend_raw.get("endpoints")),
        reference_endpoints=dict(backend_raw.get("reference_endpoints") or {}),
        api_token=env.get("ONBOARDING_API_TOKEN") or None,
    )
    if backend.mode == "http" and not backend.base_url:
        raise ConfigError("backend.base_url is required for http mode (or set ONBOARDING_API_URL)")

    db_raw = data.get("database") or {}
    database = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )

    imports_raw = data.get("imports") or {}
    sentinels = imports_raw.get("null_sentinels")
    imports = ImportOptions(
        header_synonyms=_per_entity(imports_raw.get("header_synonyms")),
        null_sentinels={s.strip().upper() for s in sentinels} if sentinels else None,
        delimiter=imports_raw.get("delimiter", ","),
    )

    return OnboardingConfig(
        backend=backend,
        database=database,
        tables={**DEFAULT_TABLES, **_per_entity(data.get("tables"))},
        imports=imports,
    )
