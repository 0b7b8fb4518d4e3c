from __future__ import annotations

from dataclasses import dataclass

from .entities import EntityRecord

"""ImportRow model: one parsed spreadsheet row awaiting acceptance.

The file name is kept for the upload preview (per-file removal, file badges)
and is never part of what gets committed.
"""

__all__ = [
    "ImportRow",
]


@dataclass(frozen=True)
class ImportRow:
    """A record parsed from an import file.

    row_number is the spreadsheet row the record came from (header = row 1,
    so the first data row is 2).
    """
    file_name: str
    row_number: int
    record: EntityRecord
