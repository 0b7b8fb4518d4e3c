from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from ..models.commit_result import BulkCreateResponse
from ..models.config_models import DEFAULT_TABLES
from ..models.entities import EntityRecord, EntityType
from ..schema.registry import EntitySchema, get_schema
from ..services.remote import ServerError
from .batch_insert import batch_insert

"""Bulk-create straight into the tenant database.

Implements the BulkCreateClient protocol on top of batch_insert. Each call
runs in its own transaction. Uniqueness is left to the database: the
tables are expected to carry unique indexes on the natural keys (for
example lower(email)), and rows rejected by them come back as skipped with
one warning each.
"""

__all__ = [
    "PostgresBulkCreateClient",
]

logger = logging.getLogger(__name__)


class PostgresBulkCreateClient:
    def __init__(self, connection: Any, tables: Mapping[EntityType, str] | None = None) -> None:
        self._conn = connection
        self.tables = {**DEFAULT_TABLES, **(tables or {})}

    @staticmethod
    def _row(schema: EntitySchema, record: EntityRecord) -> list[Any]:
        row: list[Any] = []
        for spec in schema.fields:
            value = getattr(record, spec.name)
            if spec.is_list:
                row.append(list(value) if value else None)
            elif value is None or value == "":
                row.append(None)
            elif spec.is_numeric:
                row.append(float(value))
            else:
                row.append(value)
        return row

    def bulk_create(self, entity_type: EntityType, payloads: Sequence[dict[str, Any]]) -> BulkCreateResponse:
        schema = get_schema(entity_type)
        table = self.tables[entity_type]
        columns = [spec.name for spec in schema.fields]
        records = [schema.from_payload(p) for p in payloads]

        cursor = self._conn.cursor()
        try:
            cursor.execute("BEGIN")
            result = batch_insert(
                cursor,
                table,
                columns,
                [self._row(schema, r) for r in records],
                returning=True,
                skip_conflicts=True,
            )
            cursor.execute("COMMIT")
        except Exception as e:
            try:
                cursor.execute("ROLLBACK")
            except Exception:  # pragma: no cover
                logger.debug("rollback after failed insert into %s failed", table, exc_info=True)
            raise ServerError(f"insert into {table} failed", payload={"error": str(e)}) from e
        finally:
            cursor.close()

        created = [
            schema.to_payload(schema.build(dict(zip(columns, row, strict=False))))
            for row in result.returned_values or []
        ]
        created_keys = {schema.key_from_payload(p) for p in created}
        skipped = [r for r in records if schema.natural_key(r) not in created_keys]
        logger.debug("%s: inserted=%d skipped=%d", table, len(created), len(skipped))
        return BulkCreateResponse(
            created_records=created,
            created_count=len(created),
            skipped_count=len(skipped),
            warnings=[schema.already_exists_message(r) for r in skipped],
        )

    def _names(self, entity_type: EntityType) -> list[str]:
        cursor = self._conn.cursor()
        try:
            cursor.execute(f'SELECT "name" FROM {self.tables[entity_type]} ORDER BY "name"')
            return [str(r[0]) for r in cursor.fetchall() if r[0]]
        except Exception as e:
            raise ServerError(f"reading {self.tables[entity_type]} failed", payload={"error": str(e)}) from e
        finally:
            cursor.close()

    def list_subcontractors(self) -> list[str]:
        return self._names(EntityType.SUBCONTRACTORS)

    def list_project_managers(self) -> list[str]:
        return self._names(EntityType.MANAGERS)
