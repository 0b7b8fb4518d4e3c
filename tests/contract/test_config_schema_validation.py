from __future__ import annotations

import json

import jsonschema
import pytest

from crew_onboarding.config.loader import SCHEMA_PATH


@pytest.fixture(scope="module")
def schema() -> dict:
    return json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))


def test_schema_is_valid_draft_2020_12(schema):
    jsonschema.Draft202012Validator.check_schema(schema)


def test_full_example_validates(schema):
    config = {
        "backend": {
            "mode": "http",
            "base_url": "https://api.example.com/v1",
            "timeout_seconds": 15,
            "endpoints": {"workers": "/contractors/bulk"},
            "reference_endpoints": {"subcontractors": "/subcontractors"},
        },
        "database": {"host": "db", "port": 5432, "user": "u", "password": None, "database": "d", "dsn": None},
        "tables": {"managers": "project_managers", "workers": "workers"},
        "imports": {
            "header_synonyms": {"workers": {"email": ["Mail"]}},
            "null_sentinels": ["N/A"],
            "delimiter": ";",
        },
    }
    jsonschema.validate(config, schema)


def test_empty_config_is_schema_valid(schema):
    jsonschema.validate({}, schema)


def test_unknown_entity_in_header_synonyms_rejected(schema):
    with pytest.raises(jsonschema.exceptions.ValidationError):
        jsonschema.validate({"imports": {"header_synonyms": {"trucks": {"name": ["x"]}}}}, schema)
