from __future__ import annotations

import json
import re
from pathlib import Path

from crew_onboarding.logging.error_log import ErrorLogBuffer
from crew_onboarding.models.error_record import PARSE_ERROR, VALIDATION_ERROR, ErrorRecord


def test_create_stamps_utc_timestamp():
    rec = ErrorRecord.create("crew.csv", "workers", 3, VALIDATION_ERROR, "Row 3: Email is required")
    assert re.match(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?Z$", rec.timestamp)
    assert json.loads(rec.to_json_line()) == {
        "timestamp": rec.timestamp,
        "file": "crew.csv",
        "entity": "workers",
        "row": 3,
        "error_type": "VALIDATION_ERROR",
        "message": "Row 3: Email is required",
    }


def test_to_json_line_keeps_non_ascii():
    rec = ErrorRecord.create("équipe.csv", "workers", 2, VALIDATION_ERROR, "Row 2: Invalid email format")
    assert "équipe.csv" in rec.to_json_line()


def test_flush_writes_json_lines_and_clears(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    buf.append(ErrorRecord.create("a.csv", "managers", -1, PARSE_ERROR, 'File "a.csv": bad'))
    buf.extend([ErrorRecord.create("b.csv", "managers", 2, VALIDATION_ERROR, "Row 2: Email is required")])
    assert len(buf) == 2

    path = buf.flush()

    assert path.parent == tmp_path / "logs"
    assert re.match(r"errors-\d{8}-\d{6}\.log$", path.name)
    lines = path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(x)["file"] for x in lines] == ["a.csv", "b.csv"]
    assert len(buf) == 0
    assert buf.written == 2


def test_flush_appends_to_same_file(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path)
    buf.append(ErrorRecord.create("a.csv", "workers", 2, VALIDATION_ERROR, "x"))
    first = buf.flush()
    buf.append(ErrorRecord.create("a.csv", "workers", 3, VALIDATION_ERROR, "y"))
    assert buf.flush() == first
    assert len(first.read_text(encoding="utf-8").splitlines()) == 2


def test_empty_flush_creates_nothing(tmp_path: Path):
    buf = ErrorLogBuffer(logs_dir=tmp_path / "logs")
    assert buf.flush() is None
    assert not (tmp_path / "logs").exists()
