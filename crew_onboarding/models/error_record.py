from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the onboarding error log.

Every problem the wizard surfaces (parse failures, row validation, session
duplicates, server errors and warnings) is also written as one JSON Lines
record. row=-1 marks file-level or step-level problems where no single row
applies.

The record shape is fixed by contracts/error_log_schema.json.
"""

__all__ = [
    "ErrorRecord",
    "PARSE_ERROR",
    "VALIDATION_ERROR",
    "DUPLICATE_ERROR",
    "SERVER_ERROR",
    "SERVER_WARNING",
]

PARSE_ERROR = "PARSE_ERROR"
VALIDATION_ERROR = "VALIDATION_ERROR"
DUPLICATE_ERROR = "DUPLICATE_ERROR"
SERVER_ERROR = "SERVER_ERROR"
SERVER_WARNING = "SERVER_WARNING"


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: Import file name, or "<DRAFT>" for rows entered by hand
        entity: Entity type value (managers, projects, subcontractors, workers)
        row: Row number (1-based). -1 when the problem is not tied to a row
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: Human-readable message as shown to the operator
    """
    timestamp: str  # ISO8601 UTC
    file: str
    entity: str
    row: int
    error_type: str  # UPPER_SNAKE
    message: str

    @staticmethod
    def create(file: str, entity: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            entity=entity,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        # dataclass -> dict keeps the key set fixed
        return json.dumps(asdict(self), ensure_ascii=False)
