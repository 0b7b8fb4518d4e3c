from __future__ import annotations

import re

from crew_onboarding.models.commit_result import SessionSummary, StepStat
from crew_onboarding.models.entities import EntityType
from crew_onboarding.services.summary import render_summary_line

SUMMARY_REGEX = re.compile(
    r"^SUMMARY step=(intro|managers|projects|subcontractors|workers|complete) "
    r"managers=\d+/\d+ projects=\d+/\d+ subcontractors=\d+/\d+ workers=\d+/\d+ "
    r"created=\d+ skipped=\d+ warnings=\d+ errors=\d+$"
)


def test_summary_regex_matches_rendered_line():
    stats = [StepStat(t, drafted=3, saved=2, created=2, skipped=0, warnings=1, errors=0) for t in EntityType]
    line = render_summary_line(SessionSummary(final_step="complete", step_stats=stats))
    assert SUMMARY_REGEX.match(line), line


def test_summary_regex_rejects_missing_counts():
    assert not SUMMARY_REGEX.match("SUMMARY step=complete managers=1/1 created=1")
