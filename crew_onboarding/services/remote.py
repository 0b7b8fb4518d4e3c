from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import requests

from ..models.commit_result import BulkCreateResponse
from ..models.entities import EntityType

"""Remote bulk-create operations.

A BulkCreateClient persists a list of entity-shaped payloads for one entity
type and answers with the records it actually created. Two implementations
exist: HttpBulkCreateClient (tenant REST API, here) and
PostgresBulkCreateClient (direct insert, crew_onboarding.db.client).

Failures raise ServerError carrying the raw error payload. The payload has
no fixed shape ({errors: [...]}, {message}, {error}, or nothing usable), so
normalize_error_payload() turns it into one of four tagged variants before
anything is shown to the operator.
"""

__all__ = [
    "ServerError",
    "StructuredErrors",
    "SingleMessage",
    "SingleError",
    "UnknownError",
    "ErrorPayload",
    "normalize_error_payload",
    "error_messages",
    "BulkCreateClient",
    "parse_bulk_response",
    "HttpBulkCreateClient",
    "DEFAULT_ENDPOINTS",
    "COLLECTION_KEYS",
]

logger = logging.getLogger(__name__)

# entity type -> bulk-create path below the API base URL
DEFAULT_ENDPOINTS: dict[EntityType, str] = {
    EntityType.MANAGERS: "/admin/users",
    EntityType.PROJECTS: "/projects/bulk",
    EntityType.SUBCONTRACTORS: "/subcontractors/bulk",
    EntityType.WORKERS: "/contractors/bulk",
}

# request/response collection key per entity type
COLLECTION_KEYS: dict[EntityType, str] = {
    EntityType.MANAGERS: "adminUsers",
    EntityType.PROJECTS: "projects",
    EntityType.SUBCONTRACTORS: "subcontractors",
    EntityType.WORKERS: "contractors",
}

DEFAULT_REFERENCE_ENDPOINTS: dict[str, str] = {
    "subcontractors": "/subcontractors",
    "project_managers": "/admin/users?fetchAll=true",
}


class ServerError(Exception):
    """Remote call failed (transport, HTTP status, or success=false body)."""

    def __init__(self, message: str, payload: Any = None, status: int | None = None) -> None:
        super().__init__(message)
        self.payload = payload
        self.status = status


@dataclass(frozen=True)
class StructuredErrors:
    messages: tuple[str, ...]


@dataclass(frozen=True)
class SingleMessage:
    message: str


@dataclass(frozen=True)
class SingleError:
    error: str


@dataclass(frozen=True)
class UnknownError:
    message: str


ErrorPayload = StructuredErrors | SingleMessage | SingleError | UnknownError


def normalize_error_payload(payload: Any, fallback: str) -> ErrorPayload:
    """Resolve an error payload, preferring errors[] > message > error > fallback.

    A non-list errors value is wrapped into a one-element list; an empty list
    falls through to the next candidate.
    """
    if isinstance(payload, Mapping):
        errors = payload.get("errors")
        if errors:
            items = errors if isinstance(errors, (list, tuple)) else [errors]
            messages = tuple(str(e) for e in items if e not in (None, ""))
            if messages:
                return StructuredErrors(messages)
        message = payload.get("message")
        if message:
            return SingleMessage(str(message))
        error = payload.get("error")
        if error:
            return SingleError(str(error))
    return UnknownError(fallback)


def error_messages(normalized: ErrorPayload) -> list[str]:
    """Flatten a normalised payload into the messages shown to the operator."""
    if isinstance(normalized, StructuredErrors):
        return list(normalized.messages)
    if isinstance(normalized, SingleMessage):
        return [normalized.message]
    if isinstance(normalized, SingleError):
        return [normalized.error]
    return [normalized.message]


@runtime_checkable
class BulkCreateClient(Protocol):
    """Remote bulk-create operation, one call per entity type."""

    def bulk_create(self, entity_type: EntityType, payloads: Sequence[dict[str, Any]]) -> BulkCreateResponse:
        """Persist payloads; raise ServerError on failure."""
        ...

    def list_subcontractors(self) -> list[str]:
        """Names of subcontractors already persisted for the tenant."""
        ...

    def list_project_managers(self) -> list[str]:
        """Names of project managers already persisted for the tenant."""
        ...


def parse_bulk_response(entity_type: EntityType, body: Any) -> BulkCreateResponse:
    """Decode a bulk-create success body.

    Accepts the created records under "createdRecords" or under the entity's
    collection key (e.g. "adminUsers"). success=false is treated as failure.
    """
    if not isinstance(body, Mapping):
        raise ServerError("invalid response body from bulk-create", payload=body)
    if body.get("success") is False:
        raise ServerError("bulk-create reported failure", payload=body)
    records = body.get("createdRecords")
    if records is None:
        records = body.get(COLLECTION_KEYS.get(entity_type, ""), [])
    if not isinstance(records, list):
        raise ServerError("invalid createdRecords in bulk-create response", payload=body)
    warnings = body.get("warnings") or []
    if not isinstance(warnings, list):
        warnings = [warnings]
    try:
        created_count = int(body.get("created", len(records)) or 0)
        skipped_count = int(body.get("skipped", 0) or 0)
    except (TypeError, ValueError) as e:
        raise ServerError("invalid bulk-create response", payload=body) from e
    return BulkCreateResponse(
        created_records=[dict(r) for r in records if isinstance(r, Mapping)],
        created_count=created_count,
        skipped_count=skipped_count,
        warnings=[str(w) for w in warnings],
    )


class HttpBulkCreateClient:
    """Bulk-create over the tenant's REST API (requests)."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        api_token: str | None = None,
        endpoints: Mapping[EntityType, str] | None = None,
        reference_endpoints: Mapping[str, str] | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.endpoints = {**DEFAULT_ENDPOINTS, **(endpoints or {})}
        self.reference_endpoints = {**DEFAULT_REFERENCE_ENDPOINTS, **(reference_endpoints or {})}
        self._session = session or requests.Session()
        if api_token:
            self._session.headers["Authorization"] = f"Bearer {api_token}"

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = self._url(path)
        try:
            resp = self._session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise ServerError(f"request to {url} failed: {e}") from e
        try:
            body = resp.json()
        except ValueError:
            body = None
        if not resp.ok:
            raise ServerError(f"HTTP {resp.status_code} from {url}", payload=body, status=resp.status_code)
        return body

    def bulk_create(self, entity_type: EntityType, payloads: Sequence[dict[str, Any]]) -> BulkCreateResponse:
        key = COLLECTION_KEYS[entity_type]
        logger.debug("POST %s (%d %s)", self.endpoints[entity_type], len(payloads), entity_type.value)
        body = self._request("POST", self.endpoints[entity_type], json={key: list(payloads)})
        return parse_bulk_response(entity_type, body)

    def list_subcontractors(self) -> list[str]:
        body = self._request("GET", self.reference_endpoints["subcontractors"])
        items = body.get("subcontractors", []) if isinstance(body, Mapping) else body or []
        return [str(item["name"]) for item in items if isinstance(item, Mapping) and item.get("name")]

    def list_project_managers(self) -> list[str]:
        body = self._request("GET", self.reference_endpoints["project_managers"])
        items = body.get("adminUsers", []) if isinstance(body, Mapping) else body or []
        return [
            str(item["name"])
            for item in items
            if isinstance(item, Mapping) and item.get("name") and item.get("role", "admin") == "admin"
        ]
