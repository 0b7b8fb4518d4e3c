from __future__ import annotations

from collections import defaultdict
from collections.abc import Collection, Mapping, Sequence
from dataclasses import dataclass

from ..models.entities import EntityRecord, EntityType
from ..models.error_record import DUPLICATE_ERROR, VALIDATION_ERROR
from ..schema.registry import EntitySchema, get_schema

"""Row validator.

Applies the entity schema to a list of records (typed by hand, imported, or
both) and reports one RowIssue per violated rule. Per row the rules run in
this order:

a. required fields are non-empty after trimming
b. format validators (email pattern, numeric coercion) on non-empty values
c. referential fields name a known record (Worker.subcontractor_name)
d. natural key collides with another row of the same list

Every row taking part in a collision is flagged, not only the later ones.
Validation never mutates its input and can be re-run on every draft change.
"""

__all__ = [
    "RowIssue",
    "ValidationReport",
    "find_duplicate_indices",
    "validate_rows",
]


@dataclass(frozen=True)
class RowIssue:
    """One violated rule on one row."""
    row: int  # 1-based, header offset applied when the source was a file
    field: str | None  # None for key collisions spanning several fields
    kind: str  # VALIDATION_ERROR | DUPLICATE_ERROR
    message: str  # "Row 3: Email is required"
    source: str | None = None  # import file name, None for drafted rows

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ValidationReport:
    issues: tuple[RowIssue, ...]
    duplicate_indices: tuple[int, ...]  # 0-based positions in the validated list

    @property
    def errors(self) -> list[str]:
        return [issue.message for issue in self.issues]

    @property
    def duplicate_count(self) -> int:
        """Rows involved in a natural-key collision."""
        return len(self.duplicate_indices)

    @property
    def field_issues(self) -> tuple[RowIssue, ...]:
        return tuple(i for i in self.issues if i.kind == VALIDATION_ERROR)

    @property
    def ok(self) -> bool:
        return not self.issues


def _has_complete_key(schema: EntitySchema, record: EntityRecord) -> bool:
    return all(str(getattr(record, name, "") or "").strip() for name in schema.key_fields)


def find_duplicate_indices(entity_type: EntityType, records: Sequence[EntityRecord]) -> list[int]:
    """Positions of every record sharing its natural key with another record.

    Records with a blank key part are left to the required-field rule.
    """
    schema = get_schema(entity_type)
    positions: dict[str, list[int]] = defaultdict(list)
    for idx, record in enumerate(records):
        if _has_complete_key(schema, record):
            positions[schema.natural_key(record)].append(idx)
    flagged = [idx for group in positions.values() if len(group) > 1 for idx in group]
    return sorted(flagged)


def validate_rows(
    entity_type: EntityType,
    records: Sequence[EntityRecord],
    *,
    known_names: Mapping[EntityType, Collection[str]] | None = None,
    row_numbers: Sequence[int] | None = None,
    sources: Sequence[str | None] | None = None,
    from_file: bool = False,
) -> ValidationReport:
    """Validate records of one entity type.

    Parameters
    ----------
    entity_type: schema to apply
    records: the accumulated list (manual + imported) for that type
    known_names: for referential fields, the names currently known per
        referenced type. A referenced type missing from the mapping (or
        known_names=None) disables that check.
    row_numbers: explicit row number per record (import rows carry their
        spreadsheet row); overrides the positional numbering
    sources: file name per record, copied onto the issues
    from_file: positional numbering skips a header row (first record = row 2)
    """
    schema = get_schema(entity_type)
    duplicates = set(find_duplicate_indices(entity_type, records))
    offset = 2 if from_file else 1
    issues: list[RowIssue] = []

    for idx, record in enumerate(records):
        row = row_numbers[idx] if row_numbers is not None else idx + offset
        source = sources[idx] if sources is not None else None

        def add(field_name: str | None, kind: str, text: str) -> None:
            issues.append(RowIssue(row=row, field=field_name, kind=kind, message=f"Row {row}: {text}", source=source))

        for spec in schema.fields:
            if spec.is_list:
                continue
            value = str(getattr(record, spec.name) or "").strip()
            if spec.required and not value:
                add(spec.name, VALIDATION_ERROR, f"{spec.label} is required")
                continue
            if not value:
                continue
            for validator in spec.validators:
                problem = validator(spec, value)
                if problem:
                    add(spec.name, VALIDATION_ERROR, problem)
            if spec.references is not None and known_names is not None and spec.references in known_names:
                if value not in known_names[spec.references]:
                    add(spec.name, VALIDATION_ERROR, f'{spec.label} "{value}" not found')

        if idx in duplicates:
            add(None, DUPLICATE_ERROR, f"Duplicate {schema.key_label} ({schema.describe_key(record)})")

    return ValidationReport(issues=tuple(issues), duplicate_indices=tuple(sorted(duplicates)))
