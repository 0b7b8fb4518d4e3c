from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from dataclasses import dataclass
from pathlib import Path

from ..models.config_models import ImportOptions
from ..models.entities import EntityRecord, EntityType
from ..models.import_row import ImportRow
from ..schema.registry import get_schema
from ..validation.row_validator import ValidationReport, validate_rows
from .reader import ParseError, parse_import_file

"""Bulk upload preview for one entity type.

Several files can be added to one batch. Each file is parsed on its own: a
ParseError is recorded against that file and the rows of the other files are
kept. Rows remember their file so a whole file can be taken out again before
the batch is accepted into the draft.
"""

__all__ = [
    "FileFailure",
    "ImportBatch",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileFailure:
    file_name: str
    message: str


class ImportBatch:
    def __init__(
        self,
        entity_type: EntityType,
        options: ImportOptions | None = None,
        known_names: Mapping[EntityType, Collection[str]] | None = None,
    ) -> None:
        self.entity_type = entity_type
        self.options = options or ImportOptions()
        self.known_names = known_names
        self._rows: list[ImportRow] = []
        self._files: list[str] = []
        self._failures: list[FileFailure] = []

    @property
    def rows(self) -> list[ImportRow]:
        return list(self._rows)

    @property
    def files(self) -> list[str]:
        return list(self._files)

    @property
    def failures(self) -> list[FileFailure]:
        return list(self._failures)

    def add_file(self, file_name: str, content: bytes | str) -> int:
        """Parse one file into the batch. Returns the number of rows added."""
        if file_name in self._files:
            self._fail(file_name, f'File "{file_name}" has already been uploaded')
            return 0
        try:
            rows = parse_import_file(
                file_name,
                content,
                self.entity_type,
                extra_synonyms=self.options.header_synonyms.get(self.entity_type),
                null_sentinels=self.options.null_sentinels,
                delimiter=self.options.delimiter,
            )
        except ParseError as e:
            self._fail(file_name, str(e))
            return 0
        self._rows.extend(rows)
        self._files.append(file_name)
        logger.debug("parsed %s: %d %s rows", file_name, len(rows), self.entity_type.value)
        return len(rows)

    def add_path(self, path: Path) -> int:
        try:
            content = path.read_bytes()
        except OSError as e:
            self._fail(path.name, f'File "{path.name}": cannot read file ({e.strerror or e})')
            return 0
        return self.add_file(path.name, content)

    def remove_file(self, file_name: str) -> int:
        """Drop every row (and failure) of one file. Returns rows removed."""
        before = len(self._rows)
        self._rows = [r for r in self._rows if r.file_name != file_name]
        self._failures = [f for f in self._failures if f.file_name != file_name]
        if file_name in self._files:
            self._files.remove(file_name)
        return before - len(self._rows)

    def validate(self) -> ValidationReport:
        return validate_rows(
            self.entity_type,
            [r.record for r in self._rows],
            known_names=self.known_names,
            row_numbers=[r.row_number for r in self._rows],
            sources=[r.file_name for r in self._rows],
        )

    @property
    def issues(self) -> list[str]:
        """File failures first, then row validation, as shown in the preview."""
        messages = [f.message for f in self._failures]
        if self._rows:
            messages.extend(self.validate().errors)
        elif self._files and not self._failures:
            messages.append(f"No valid {get_schema(self.entity_type).plural} data found in uploaded files")
        return messages

    def records(self) -> list[EntityRecord]:
        return [r.record for r in self._rows]

    def accept(self, session) -> int:
        """Move the rows into the session draft, file by file. Returns rows accepted."""
        accepted = 0
        for file_name in self._files:
            records = [r.record for r in self._rows if r.file_name == file_name]
            accepted += session.accept(self.entity_type, records, source_file=file_name)
        self.clear()
        return accepted

    def clear(self) -> None:
        self._rows.clear()
        self._files.clear()
        self._failures.clear()

    def _fail(self, file_name: str, message: str) -> None:
        logger.warning(message)
        self._failures.append(FileFailure(file_name=file_name, message=message))
