from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2.extras import execute_values

"""Batched INSERT for the PostgreSQL backend.

psycopg2.extras.execute_values sends the rows in pages. With
skip_conflicts=True the statement carries ON CONFLICT DO NOTHING, so rows
hitting a unique index (the tenant's natural keys) are dropped by the
database instead of failing the batch; RETURNING then lists only the rows
that were really inserted.
"""

__all__ = [
    "BatchInsertError",
    "InsertResult",
    "batch_insert",
]


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int
    returned_values: list[tuple[Any, ...]] | None = None


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    returning: bool = False,
    skip_conflicts: bool = False,
    page_size: int = 1000,
) -> InsertResult:
    """Perform batched INSERT using psycopg2.extras.execute_values.

    Parameters
    ----------
    cursor: psycopg2 cursor
    table: target table name (taken from validated config)
    columns: insert columns, also the RETURNING list
    rows: row sequences in column order
    returning: add RETURNING <columns> and collect the inserted rows
    skip_conflicts: add ON CONFLICT DO NOTHING
    page_size: execute_values page size
    """
    rows_list = list(rows)
    if not rows_list:
        return InsertResult(inserted_rows=0, returned_values=[] if returning else None)

    cols_sql = ",".join(f'"{c}"' for c in columns)
    sql = f"INSERT INTO {table} ({cols_sql}) VALUES %s"
    if skip_conflicts:
        sql += " ON CONFLICT DO NOTHING"
    if returning:
        sql += f" RETURNING {cols_sql}"

    try:
        # fetch=True collects RETURNING rows across all pages
        returned = execute_values(cursor, sql, rows_list, page_size=page_size, fetch=returning)
    except Exception as e:
        raise BatchInsertError(str(e)) from e

    if returning:
        returned_rows = [tuple(r) for r in (returned or [])]
        return InsertResult(inserted_rows=len(returned_rows), returned_values=returned_rows)
    return InsertResult(inserted_rows=len(rows_list), returned_values=None)
