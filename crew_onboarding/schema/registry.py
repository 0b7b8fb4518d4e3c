from __future__ import annotations

import math
import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, fields as dc_fields
from typing import Any

from ..models.entities import EntityRecord, EntityType, Project, ProjectManager, Subcontractor, Worker

"""Entity schema registry.

One EntitySchema per entity type declares the field set, which fields are
required, per-field format validators, the header synonyms accepted on
import, and the natural key the backend enforces as unique per tenant.

Everything here is pure. Parsers, validators and the commit orchestrator
look schemas up by entity type, so adding a type means registering one more
EntitySchema and nothing else.
"""

__all__ = [
    "FieldSpec",
    "EntitySchema",
    "SchemaRegistry",
    "REGISTRY",
    "EMAIL_PATTERN",
    "email_format",
    "numeric",
    "normalize_header",
    "get_schema",
    "natural_key",
    "required_fields",
    "field_validators",
]

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# (field spec, trimmed non-empty value) -> message tail, or None when valid
FieldValidator = Callable[["FieldSpec", str], str | None]


def email_format(spec: FieldSpec, value: str) -> str | None:
    if EMAIL_PATTERN.match(value):
        return None
    return "Invalid email format"


def numeric(spec: FieldSpec, value: str) -> str | None:
    # float() would also accept digit separators and inf/nan
    if "_" in value:
        return f"{spec.label} must be a valid number"
    try:
        number = float(value)
    except ValueError:
        return f"{spec.label} must be a valid number"
    if not math.isfinite(number):
        return f"{spec.label} must be a valid number"
    return None


def normalize_header(text: Any) -> str:
    """Header matching key: lower case, alphanumerics only.

    "First Name", "first_name", "FIRSTNAME" and " firstname " all collapse to
    "firstname".
    """
    if text is None:
        return ""
    return re.sub(r"[^0-9a-z]", "", str(text).strip().lower())


@dataclass(frozen=True)
class FieldSpec:
    """One field of an entity record."""
    name: str  # dataclass attribute
    label: str  # human label, also the template header
    payload_key: str  # key in the remote payload
    required: bool = False
    validators: tuple[FieldValidator, ...] = ()
    synonyms: tuple[str, ...] = ()
    example: str = ""
    is_list: bool = False
    is_numeric: bool = False
    references: EntityType | None = None  # value must name an existing record of this type


@dataclass(frozen=True)
class EntitySchema:
    entity_type: EntityType
    label: str  # singular, e.g. "Worker"
    plural: str  # e.g. "workers"
    record_cls: type
    fields: tuple[FieldSpec, ...]
    key_fields: tuple[str, ...]
    key_label: str  # e.g. "email address"

    def field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(f"{self.entity_type.value} has no field '{name}'")

    def required_fields(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields if f.required)

    def field_validators(self) -> dict[str, tuple[FieldValidator, ...]]:
        return {f.name: f.validators for f in self.fields if f.validators}

    def natural_key(self, record: EntityRecord) -> str:
        """Case-insensitive natural key, composite fields joined with '|'."""
        parts = []
        for name in self.key_fields:
            value = getattr(record, name, None) or ""
            parts.append(str(value).strip().lower())
        return "|".join(parts)

    def describe_key(self, record: EntityRecord) -> str:
        return " / ".join(str(getattr(record, name, "") or "").strip() for name in self.key_fields)

    def already_exists_message(self, record: EntityRecord) -> str:
        return f"{self.label} with {self.key_label} {self.describe_key(record)} already exists"

    def build(self, values: Mapping[str, Any]) -> EntityRecord:
        """Build a record from a field-name -> value mapping.

        Missing required fields become "" (validation reports them), missing
        optional fields stay None. List fields accept a sequence or a text
        cell separated by ';' or ','.
        """
        kwargs: dict[str, Any] = {}
        for spec in self.fields:
            raw = values.get(spec.name)
            if spec.is_list:
                kwargs[spec.name] = _split_list(raw)
                continue
            text = "" if raw is None else str(raw).strip()
            if text == "" and not spec.required:
                kwargs[spec.name] = None
            else:
                kwargs[spec.name] = text
        return self.record_cls(**kwargs)

    def to_payload(self, record: EntityRecord) -> dict[str, Any]:
        """Entity-shaped payload for the remote bulk-create call."""
        payload: dict[str, Any] = {}
        for spec in self.fields:
            value = getattr(record, spec.name)
            if spec.is_list:
                if value:
                    payload[spec.payload_key] = list(value)
                continue
            if value is None or (value == "" and not spec.required):
                continue
            if spec.is_numeric and value != "":
                try:
                    payload[spec.payload_key] = float(value)
                    continue
                except ValueError:
                    pass
            payload[spec.payload_key] = value.strip()
        return payload

    def from_payload(self, payload: Mapping[str, Any]) -> EntityRecord:
        values = {spec.name: payload.get(spec.payload_key) for spec in self.fields}
        return self.build(values)

    def key_from_payload(self, payload: Mapping[str, Any]) -> str:
        return self.natural_key(self.from_payload(payload))

    def header_lookup(self, extra_synonyms: Mapping[str, list[str]] | None = None) -> dict[str, str]:
        """Normalised header -> field name.

        Each field answers to its attribute name, payload key, label and
        synonyms. Earlier fields win when two fields share a synonym.
        """
        lookup: dict[str, str] = {}
        for spec in self.fields:
            candidates = [spec.name, spec.payload_key, spec.label, *spec.synonyms]
            if extra_synonyms and spec.name in extra_synonyms:
                candidates.extend(extra_synonyms[spec.name])
            for candidate in candidates:
                key = normalize_header(candidate)
                if key and key not in lookup:
                    lookup[key] = spec.name
        return lookup


def _split_list(raw: Any) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, (list, tuple)):
        items = [str(v).strip() for v in raw]
    else:
        items = [part.strip() for part in re.split(r"[;,]", str(raw))]
    return tuple(item for item in items if item)


class SchemaRegistry:
    """Lookup of EntitySchema by entity type and by record class."""

    def __init__(self) -> None:
        self._by_type: dict[EntityType, EntitySchema] = {}
        self._by_cls: dict[type, EntitySchema] = {}

    def register(self, schema: EntitySchema) -> None:
        attrs = {f.name for f in dc_fields(schema.record_cls)}
        unknown = {f.name for f in schema.fields} - attrs
        if unknown:
            raise ValueError(f"schema {schema.entity_type.value} declares unknown fields: {sorted(unknown)}")
        self._by_type[schema.entity_type] = schema
        self._by_cls[schema.record_cls] = schema

    def get(self, entity_type: EntityType) -> EntitySchema:
        try:
            return self._by_type[entity_type]
        except KeyError:
            raise KeyError(f"no schema registered for {entity_type}") from None

    def for_record(self, record: EntityRecord) -> EntitySchema:
        try:
            return self._by_cls[type(record)]
        except KeyError:
            raise KeyError(f"no schema registered for {type(record).__name__}") from None

    def __iter__(self) -> Iterator[EntitySchema]:
        return iter(self._by_type.values())

    def __contains__(self, entity_type: object) -> bool:
        return entity_type in self._by_type


def _default_registry() -> SchemaRegistry:
    registry = SchemaRegistry()
    registry.register(EntitySchema(
        entity_type=EntityType.MANAGERS,
        label="Project manager",
        plural="project managers",
        record_cls=ProjectManager,
        fields=(
            FieldSpec("name", "Manager Name", "name", required=True,
                      synonyms=("Name", "Full Name", "Project Manager"), example="Jane Smith"),
            FieldSpec("email", "Email", "email", required=True, validators=(email_format,),
                      synonyms=("Email Address", "E-mail"), example="jane.smith@email.com"),
        ),
        key_fields=("email",),
        key_label="email address",
    ))
    registry.register(EntitySchema(
        entity_type=EntityType.PROJECTS,
        label="Project",
        plural="projects",
        record_cls=Project,
        fields=(
            FieldSpec("name", "Project Name", "name", required=True,
                      synonyms=("Name", "Project"), example="Downtown Office Tower"),
            FieldSpec("location", "Location", "location", required=True,
                      synonyms=("Address", "Site", "Project Location"), example="123 Main St, Springfield"),
            FieldSpec("project_manager", "Project Manager", "projectManager",
                      synonyms=("Manager", "PM", "Manager Name"), example="Jane Smith"),
            FieldSpec("cost", "Project Cost", "cost", validators=(numeric,), is_numeric=True,
                      synonyms=("Cost", "Budget"), example="250000"),
        ),
        key_fields=("name", "location"),
        key_label="name and location",
    ))
    registry.register(EntitySchema(
        entity_type=EntityType.SUBCONTRACTORS,
        label="Subcontractor",
        plural="subcontractors",
        record_cls=Subcontractor,
        fields=(
            FieldSpec("name", "Company Name", "name", required=True,
                      synonyms=("Name", "Subcontractor", "Company", "Subcontractor Name"), example="ABC Construction"),
            FieldSpec("contract_amount", "Contract Amount", "contractAmount", validators=(numeric,),
                      is_numeric=True, synonyms=("Contract Value", "Contract"), example="50000"),
            FieldSpec("foreman", "Foreman", "foreman", synonyms=("Foreman Name",), example="Bob Jones"),
            FieldSpec("project_refs", "Projects", "projectRefs", is_list=True,
                      synonyms=("Project Names", "Project Refs"), example="Downtown Office Tower"),
        ),
        key_fields=("name",),
        key_label="company name",
    ))
    registry.register(EntitySchema(
        entity_type=EntityType.WORKERS,
        label="Worker",
        plural="workers",
        record_cls=Worker,
        fields=(
            FieldSpec("first_name", "First Name", "firstName", required=True,
                      synonyms=("Given Name",), example="John"),
            FieldSpec("last_name", "Last Name", "lastName", required=True,
                      synonyms=("Surname", "Family Name"), example="Smith"),
            FieldSpec("email", "Email", "email", required=True, validators=(email_format,),
                      synonyms=("Email Address", "E-mail"), example="john.smith@email.com"),
            FieldSpec("rate", "Rate", "rate", validators=(numeric,), is_numeric=True,
                      synonyms=("Hourly Rate", "Pay Rate"), example="50.00"),
            FieldSpec("subcontractor_name", "Subcontractor", "subcontractorName",
                      references=EntityType.SUBCONTRACTORS,
                      synonyms=("Company Name", "Company", "Company/Subcontractor"), example="ABC Construction"),
        ),
        key_fields=("email",),
        key_label="email address",
    ))
    return registry


REGISTRY = _default_registry()


def get_schema(entity_type: EntityType) -> EntitySchema:
    return REGISTRY.get(entity_type)


def required_fields(entity_type: EntityType) -> tuple[str, ...]:
    return REGISTRY.get(entity_type).required_fields()


def field_validators(entity_type: EntityType) -> dict[str, tuple[FieldValidator, ...]]:
    return REGISTRY.get(entity_type).field_validators()


def natural_key(record: EntityRecord) -> str:
    return REGISTRY.for_record(record).natural_key(record)
