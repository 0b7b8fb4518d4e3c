from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

from ..models.wizard_state import STEP_ORDER, WizardStep

"""Progress display with tqdm (TTY only).

- one tqdm bar over the import files of a step
- a plain one-line step indicator ("[3/6] projects") per wizard step
- both stay silent when stdout is not a TTY, so CI logs carry no ANSI noise
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
    "StepProgressIndicator",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """tqdm progress over the import files of one entity type.

    Disabled (no bar created) when stdout is not a TTY.
    """

    def __init__(self, total_files: int, *, description: str = "Reading files") -> None:
        self.total_files = total_files
        self.description = description
        self.current_file = 0
        self.failed_files = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_files,
                desc=description,
                unit="file",
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def start_file(self, file_path: Path) -> None:
        self.current_file += 1
        if self.enabled and self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({file_path.name})")

    def finish_file(self, success: bool = True, rows: int = 0) -> None:
        if not success:
            self.failed_files += 1
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_description(self.description)
            self.pbar.set_postfix(rows=rows, failed=self.failed_files)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


class StepProgressIndicator:
    """Step position and bar percentage, printed once per step on a TTY."""

    def __init__(self) -> None:
        self.enabled = is_tty_enabled()
        self.shown: list[WizardStep] = []

    @staticmethod
    def label(step: WizardStep) -> str:
        percent = (step.index + 1) / len(STEP_ORDER) * 100
        return f"[{step.index + 1}/{len(STEP_ORDER)}] {step.value} ({percent:.0f}%)"

    def show(self, step: WizardStep) -> None:
        self.shown.append(step)
        if self.enabled:
            print(self.label(step), flush=True)
