"""Terminal detection utilities."""

import shutil
import sys


def is_tty() -> bool:
    """Check if stdout is connected to a terminal.

    Used to decide between an animated spinner and plain line output
    suitable for CI/CD logs.

    Returns:
        True if stdout is a TTY (interactive terminal), False otherwise.
    """
    return sys.stdout.isatty()


def terminal_width(default: int = 80) -> int:
    """Return the current terminal width in columns."""
    return shutil.get_terminal_size((default, 24)).columns
