from __future__ import annotations

from crew_onboarding.cli.__main__ import EXIT_BLOCKED, EXIT_FATAL, EXIT_SUCCESS


def test_exit_code_values():
    assert (EXIT_SUCCESS, EXIT_FATAL, EXIT_BLOCKED) == (0, 1, 2)
