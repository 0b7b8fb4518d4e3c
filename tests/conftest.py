# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from crew_onboarding.logging.init import reset_logging
from crew_onboarding.models.commit_result import BulkCreateResponse
from crew_onboarding.models.entities import EntityType
from crew_onboarding.schema.registry import get_schema


class FakeBulkCreateClient:
    """In-memory BulkCreateClient.

    Creates every payload whose natural key it has not stored yet and reports
    the rest as skipped with an "already exists" warning, like the backend's
    uniqueness constraint. fail_with / fail_when make the next call(s) raise.
    """

    def __init__(
        self,
        subcontractors: Sequence[str] = (),
        project_managers: Sequence[str] = (),
    ) -> None:
        self.calls: list[tuple[EntityType, list[dict[str, Any]]]] = []
        self.stored: dict[EntityType, set[str]] = {t: set() for t in EntityType}
        self.subcontractors = list(subcontractors)
        self.project_managers = list(project_managers)
        self.fail_with: Exception | None = None
        self.fail_when: Callable[[EntityType, list[dict[str, Any]]], Exception | None] | None = None
        self.response: BulkCreateResponse | None = None

    def bulk_create(self, entity_type: EntityType, payloads: Sequence[dict[str, Any]]) -> BulkCreateResponse:
        payloads = list(payloads)
        self.calls.append((entity_type, payloads))
        if self.fail_with is not None:
            raise self.fail_with
        if self.fail_when is not None:
            problem = self.fail_when(entity_type, payloads)
            if problem is not None:
                raise problem
        if self.response is not None:
            return self.response
        schema = get_schema(entity_type)
        created, warnings = [], []
        for payload in payloads:
            key = schema.key_from_payload(payload)
            if key in self.stored[entity_type]:
                warnings.append(schema.already_exists_message(schema.from_payload(payload)))
                continue
            self.stored[entity_type].add(key)
            created.append(payload)
        return BulkCreateResponse(
            created_records=created,
            created_count=len(created),
            skipped_count=len(payloads) - len(created),
            warnings=warnings,
        )

    def list_subcontractors(self) -> list[str]:
        return list(self.subcontractors)

    def list_project_managers(self) -> list[str]:
        return list(self.project_managers)


@pytest.fixture()
def fake_client() -> FakeBulkCreateClient:
    return FakeBulkCreateClient()


@pytest.fixture()
def make_client() -> Callable[..., FakeBulkCreateClient]:
    return FakeBulkCreateClient


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """backend:
  mode: http
  base_url: https://api.example.com/v1
  timeout_seconds: 10
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
imports:
  header_synonyms:
    workers:
      subcontractor_name: [Crew]
  null_sentinels: [N/A, "-"]
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "onboarding.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def write_csv(temp_workdir: Path) -> Callable[[str, str], Path]:
    def _write(name: str, text: str) -> Path:
        path = temp_workdir / "data" / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    yield
    reset_logging()
