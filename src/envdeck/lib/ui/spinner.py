"""Spinner animation utilities.

Provides the spinner frame rotation and the step outcome markers shown when a
console step finishes.
"""

from enum import Enum
from typing import ClassVar


class StepResult(str, Enum):
    """Outcome of a console step."""

    DONE = "done"
    FAILED = "failed"
    SKIPPED = "skipped"


STEP_MARKERS: dict[StepResult, str] = {
    StepResult.DONE: "(✓) Done:",
    StepResult.FAILED: "(x) Failed:",
    StepResult.SKIPPED: "(-) Skipped:",
}


class SpinnerMixin:
    """Mixin providing spinner animation functionality.

    Classes using this mixin should initialize _spinner_index = 0 in their __init__.

    Class Attributes:
        SPINNER_CHARS: Braille characters for spinner animation.

    Instance Attributes:
        _spinner_index: Current position in spinner rotation (must be initialized).
    """

    SPINNER_CHARS: ClassVar[list[str]] = [
        "\u280b",  # ⠋
        "\u2819",  # ⠙
        "\u2839",  # ⠹
        "\u2838",  # ⠸
        "\u283c",  # ⠼
        "\u2834",  # ⠴
        "\u2826",  # ⠦
        "\u2827",  # ⠧
        "\u2807",  # ⠇
        "\u280f",  # ⠏
    ]
    _spinner_index: int

    def get_spinner_char(self) -> str:
        """Get current spinner character and advance rotation."""
        char = self.SPINNER_CHARS[self._spinner_index % len(self.SPINNER_CHARS)]
        self._spinner_index += 1
        return char
