from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from crew_onboarding.models.entities import EntityType
from crew_onboarding.services.remote import (
    BulkCreateClient,
    HttpBulkCreateClient,
    ServerError,
    SingleError,
    SingleMessage,
    StructuredErrors,
    UnknownError,
    error_messages,
    normalize_error_payload,
    parse_bulk_response,
)


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"errors": ["a", "b"], "message": "m", "error": "e"}, StructuredErrors(("a", "b"))),
        ({"errors": "only one"}, StructuredErrors(("only one",))),
        ({"errors": [], "message": "m"}, SingleMessage("m")),
        ({"message": "m", "error": "e"}, SingleMessage("m")),
        ({"error": "e"}, SingleError("e")),
        ({}, UnknownError("fallback")),
        (None, UnknownError("fallback")),
        ("plain text body", UnknownError("fallback")),
    ],
)
def test_normalize_error_payload_precedence(payload, expected):
    assert normalize_error_payload(payload, "fallback") == expected


def test_error_messages_flatten_every_variant():
    assert error_messages(StructuredErrors(("a", "b"))) == ["a", "b"]
    assert error_messages(SingleMessage("m")) == ["m"]
    assert error_messages(SingleError("e")) == ["e"]
    assert error_messages(UnknownError("u")) == ["u"]


def test_parse_bulk_response_created_records():
    body = {
        "success": True,
        "created": 1,
        "skipped": 1,
        "createdRecords": [{"email": "a@x.com"}],
        "warnings": ["a duplicate entry was skipped"],
    }
    resp = parse_bulk_response(EntityType.WORKERS, body)
    assert resp.created_records == [{"email": "a@x.com"}]
    assert (resp.created_count, resp.skipped_count) == (1, 1)
    assert resp.warnings == ["a duplicate entry was skipped"]


def test_parse_bulk_response_collection_key_fallback():
    body = {"adminUsers": [{"name": "Jane", "email": "jane@x.com"}]}
    resp = parse_bulk_response(EntityType.MANAGERS, body)
    assert resp.created_count == 1
    assert resp.skipped_count == 0


def test_parse_bulk_response_success_false_raises_with_payload():
    body = {"success": False, "errors": ["Email taken"]}
    with pytest.raises(ServerError) as exc:
        parse_bulk_response(EntityType.WORKERS, body)
    assert exc.value.payload == body


@pytest.mark.parametrize("counts", [{"created": "one"}, {"skipped": [1]}])
def test_parse_bulk_response_bad_counts_raise_server_error(counts):
    body = {"success": True, "createdRecords": [], **counts}
    with pytest.raises(ServerError, match="invalid bulk-create response") as exc:
        parse_bulk_response(EntityType.WORKERS, body)
    assert exc.value.payload == body


def _response(status: int, body) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.ok = status < 400
    if isinstance(body, Exception):
        resp.json.side_effect = body
    else:
        resp.json.return_value = body
    return resp


def test_http_bulk_create_posts_collection_key():
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    session.request.return_value = _response(200, {"success": True, "created": 1, "contractors": [{"email": "a@x.com"}]})
    client = HttpBulkCreateClient("https://api.example.com/v1/", api_token="t0k", session=session)

    resp = client.bulk_create(EntityType.WORKERS, [{"email": "a@x.com"}])

    assert resp.created_count == 1
    session.request.assert_called_once_with(
        "POST",
        "https://api.example.com/v1/contractors/bulk",
        timeout=30.0,
        json={"contractors": [{"email": "a@x.com"}]},
    )
    assert session.headers["Authorization"] == "Bearer t0k"


def test_http_error_status_carries_payload():
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    session.request.return_value = _response(409, {"message": "Worker with email a@x.com already exists"})
    client = HttpBulkCreateClient("https://api.example.com", session=session)

    with pytest.raises(ServerError) as exc:
        client.bulk_create(EntityType.WORKERS, [{"email": "a@x.com"}])
    assert exc.value.status == 409
    assert error_messages(normalize_error_payload(exc.value.payload, str(exc.value))) == [
        "Worker with email a@x.com already exists"
    ]


def test_http_transport_failure_becomes_server_error():
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    session.request.side_effect = requests.ConnectionError("connection refused")
    client = HttpBulkCreateClient("https://api.example.com", session=session)

    with pytest.raises(ServerError, match="connection refused"):
        client.bulk_create(EntityType.PROJECTS, [{"name": "Tower", "location": "Main"}])


def test_http_non_json_error_body():
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    session.request.return_value = _response(502, ValueError("no json"))
    client = HttpBulkCreateClient("https://api.example.com", session=session)

    with pytest.raises(ServerError) as exc:
        client.bulk_create(EntityType.PROJECTS, [])
    assert exc.value.payload is None
    assert exc.value.status == 502


def test_http_reference_lists():
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    session.request.side_effect = [
        _response(200, {"subcontractors": [{"name": "ABC"}, {"name": ""}, {"id": 3}]}),
        _response(200, {"adminUsers": [{"name": "Ann", "role": "admin"}, {"name": "Root", "role": "owner"}]}),
    ]
    client = HttpBulkCreateClient("https://api.example.com", session=session)
    assert client.list_subcontractors() == ["ABC"]
    assert client.list_project_managers() == ["Ann"]
    urls = [c.args[1] for c in session.request.call_args_list]
    assert urls == ["https://api.example.com/subcontractors", "https://api.example.com/admin/users?fetchAll=true"]


def test_clients_satisfy_protocol(fake_client):
    assert isinstance(fake_client, BulkCreateClient)
    assert isinstance(HttpBulkCreateClient("https://api.example.com", session=MagicMock(headers={})), BulkCreateClient)
