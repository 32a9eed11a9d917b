"""ANSI color utilities for terminal output.

Provides color constants plus the highlight and warning formatters used in
console messages, with graceful degradation in non-TTY environments.
"""

from envdeck.lib.ui.terminal import is_tty


class ANSIColors:
    """ANSI color escape codes for terminal output.

    Attributes:
        GREEN: Bright green (step done).
        RED: Bright red (step failed).
        YELLOW: Bright yellow (warnings, skipped steps).
        CYAN: Bright cyan (highlighted names).
        GRAY: Dim gray (secondary detail such as durations).
        RESET: Reset code to restore default terminal color.
    """

    GREEN = "\033[92m"
    RED = "\033[91m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    GRAY = "\033[90m"
    RESET = "\033[0m"


def colorize(text: str, color: str, force_tty: bool | None = None) -> str:
    """Apply ANSI color codes to text if in TTY mode.

    Args:
        text: Text to colorize.
        color: ANSI color code to apply (e.g., ANSIColors.GREEN).
        force_tty: Override TTY detection (for testing). None uses auto-detection.

    Returns:
        Colorized text if in TTY mode, plain text otherwise.
    """
    use_colors = force_tty if force_tty is not None else is_tty()
    if not use_colors:
        return text
    return f"{color}{text}{ANSIColors.RESET}"


def highlight(text: str, force_tty: bool | None = None) -> str:
    """Format a resource or environment name for emphasis."""
    return colorize(text, ANSIColors.CYAN, force_tty)


def warning(text: str, force_tty: bool | None = None) -> str:
    """Format a warning message."""
    return colorize(text, ANSIColors.YELLOW, force_tty)


def muted(text: str, force_tty: bool | None = None) -> str:
    """Format secondary detail."""
    return colorize(text, ANSIColors.GRAY, force_tty)
