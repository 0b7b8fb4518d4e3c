from __future__ import annotations

import io
import math
import warnings
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.entities import EntityType
from ..models.import_row import ImportRow
from ..schema.registry import EntitySchema, get_schema, normalize_header

"""Import file reader.

Turns delimited text or a workbook (first sheet) into ImportRows:
- row 1 is the header, rows 2.. are data
- headers are matched case-insensitively against the entity schema's
  synonyms; unmapped columns are ignored
- a row survives only if at least one mapped cell is non-empty
- fewer than two rows, or no recognised column at all -> ParseError

pandas does the actual reading (openpyxl engine for workbooks). Every cell is
read as text so that "007" or "N/A" reach validation unchanged.
"""

__all__ = [
    "ParseError",
    "DELIMITED_SUFFIXES",
    "WORKBOOK_SUFFIXES",
    "read_import_frame",
    "map_headers",
    "normalize_import",
    "parse_import_file",
    "read_import_path",
    "write_template",
]

DELIMITED_SUFFIXES = frozenset({".csv", ".txt", ".tsv"})
WORKBOOK_SUFFIXES = frozenset({".xlsx", ".xlsm"})


class ParseError(Exception):
    """Raised when one import file cannot be turned into rows."""

    def __init__(self, file_name: str, message: str) -> None:
        super().__init__(f'File "{file_name}": {message}')
        self.file_name = file_name
        self.reason = message


def _suffix(file_name: str) -> str:
    return Path(file_name).suffix.lower()


def read_import_frame(file_name: str, content: bytes | str, delimiter: str = ",") -> pd.DataFrame:
    """Read raw file content into a header-less DataFrame of text cells.

    Parameters
    ----------
    file_name: original file name; its extension selects the format
    content: raw bytes (workbook or encoded text) or already decoded text
    delimiter: field separator for delimited text (.tsv always uses tab)
    """
    suffix = _suffix(file_name)
    if suffix in WORKBOOK_SUFFIXES:
        return _read_workbook(file_name, content)
    if suffix in DELIMITED_SUFFIXES:
        sep = "\t" if suffix == ".tsv" else delimiter
        return _read_delimited(file_name, content, sep)
    raise ParseError(file_name, "Please upload only CSV or Excel files")


def _read_delimited(file_name: str, content: bytes | str, sep: str) -> pd.DataFrame:
    if isinstance(content, bytes):
        try:
            text = content.decode("utf-8-sig")  # strip BOM if present
        except UnicodeDecodeError as e:
            raise ParseError(file_name, f"file is not valid UTF-8 text ({e.reason})") from e
    else:
        text = content.lstrip("\ufeff")
    if not text.strip():
        raise ParseError(file_name, "file must have at least a header row and one data row")
    try:
        # Rows longer than the header keep their leading cells; the surplus
        # sits past every mapped column and is dropped.
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", pd.errors.ParserWarning)
            return pd.read_csv(
                io.StringIO(text),
                header=None,
                sep=sep,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                skipinitialspace=True,
                engine="python",
                on_bad_lines=lambda cells: cells,
            )
    except pd.errors.EmptyDataError as e:
        raise ParseError(file_name, "file must have at least a header row and one data row") from e
    except pd.errors.ParserError as e:
        raise ParseError(file_name, f"malformed delimited text: {e}") from e


def _read_workbook(file_name: str, content: bytes | str) -> pd.DataFrame:
    if isinstance(content, str):
        raise ParseError(file_name, "workbook content must be binary")
    try:
        xls = pd.ExcelFile(io.BytesIO(content), engine="openpyxl")
    except Exception as e:  # openpyxl raises several unrelated types for corrupt files
        raise ParseError(file_name, f"unreadable workbook: {e}") from e
    if not xls.sheet_names:
        raise ParseError(file_name, "Excel file must contain at least one worksheet")
    # Only the first sheet is imported; keep_default_na=False keeps "NA" etc. as text
    return xls.parse(xls.sheet_names[0], header=None, dtype=object, keep_default_na=False)


def _cell_text(value: Any) -> str:
    """Normalise a cell to trimmed text; blanks and NaN become ""."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
        return str(value)
    try:
        if pd.isna(value):
            return ""
    except (TypeError, ValueError):
        pass
    return str(value).strip()


def map_headers(
    headers: Sequence[Any],
    schema: EntitySchema,
    extra_synonyms: Mapping[str, list[str]] | None = None,
) -> dict[int, str]:
    """Column index -> field name for every recognised header.

    The first column mapped to a field wins; later columns resolving to the
    same field are ignored.
    """
    lookup = schema.header_lookup(extra_synonyms)
    mapping: dict[int, str] = {}
    taken: set[str] = set()
    for idx, header in enumerate(headers):
        field_name = lookup.get(normalize_header(header))
        if field_name is None or field_name in taken:
            continue
        mapping[idx] = field_name
        taken.add(field_name)
    return mapping


def normalize_import(
    df: pd.DataFrame,
    file_name: str,
    schema: EntitySchema,
    extra_synonyms: Mapping[str, list[str]] | None = None,
    null_sentinels: set[str] | None = None,
) -> list[ImportRow]:
    """Normalise a raw DataFrame using the first row as header.

    Steps:
    1. Validate at least 2 rows exist (header + one data row)
    2. Resolve header cells to schema fields
    3. Build one ImportRow per data row with at least one mapped value
    """
    if df.shape[0] < 2:
        raise ParseError(file_name, "file must have at least a header row and one data row")
    headers = [_cell_text(h) for h in df.iloc[0].tolist()]
    mapping = map_headers(headers, schema, extra_synonyms)
    if not mapping:
        expected = ", ".join(f.label for f in schema.fields if f.required)
        raise ParseError(file_name, f"no recognised columns (expected headers such as {expected})")

    rows: list[ImportRow] = []
    for pos in range(1, df.shape[0]):
        cells = [_cell_text(v) for v in df.iloc[pos].tolist()]
        values: dict[str, str] = {}
        for idx, field_name in mapping.items():
            text = cells[idx] if idx < len(cells) else ""
            if null_sentinels and text.upper() in null_sentinels:
                text = ""
            values[field_name] = text
        if not any(values.values()):
            # fully blank (for the mapped columns) rows are dropped silently
            continue
        rows.append(
            ImportRow(
                file_name=file_name,
                row_number=pos + 1,  # header is row 1
                record=schema.build(values),
            )
        )
    return rows


def parse_import_file(
    file_name: str,
    content: bytes | str,
    entity_type: EntityType,
    *,
    extra_synonyms: Mapping[str, list[str]] | None = None,
    null_sentinels: set[str] | None = None,
    delimiter: str = ",",
) -> list[ImportRow]:
    """Parse one import file for one entity type. Raises ParseError."""
    schema = get_schema(entity_type)
    df = read_import_frame(file_name, content, delimiter=delimiter)
    return normalize_import(df, file_name, schema, extra_synonyms, null_sentinels)


def read_import_path(path: Path, entity_type: EntityType, **options: Any) -> list[ImportRow]:
    """Convenience wrapper reading the file from disk."""
    try:
        content = path.read_bytes()
    except OSError as e:
        raise ParseError(path.name, f"cannot read file: {e}") from e
    return parse_import_file(path.name, content, entity_type, **options)


def write_template(entity_type: EntityType, path: Path) -> Path:
    """Write a header + example row template (.csv or .xlsx by extension)."""
    schema = get_schema(entity_type)
    df = pd.DataFrame([[f.example for f in schema.fields]], columns=[f.label for f in schema.fields])
    suffix = path.suffix.lower()
    if suffix in WORKBOOK_SUFFIXES:
        df.to_excel(path, index=False, sheet_name=schema.plural.title()[:31], engine="openpyxl")
    elif suffix in DELIMITED_SUFFIXES:
        df.to_csv(path, index=False, sep="\t" if suffix == ".tsv" else ",")
    else:
        raise ValueError(f"unsupported template format: {path.suffix}")
    return path
