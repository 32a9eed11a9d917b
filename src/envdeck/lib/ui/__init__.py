"""UI utilities for terminal-based progress display.

This module provides shared utilities for terminal interaction, including:
- TTY detection for adaptive output formatting
- Spinner animation and step outcome markers
- ANSI color support with graceful degradation
"""

from envdeck.lib.ui.colors import ANSIColors, colorize, highlight, muted, warning
from envdeck.lib.ui.spinner import SpinnerMixin, StepResult
from envdeck.lib.ui.terminal import is_tty, terminal_width

__all__ = [
    "ANSIColors",
    "SpinnerMixin",
    "StepResult",
    "colorize",
    "highlight",
    "is_tty",
    "muted",
    "terminal_width",
    "warning",
]
