"""Terminal console used by provisioning commands.

ClickConsole renders step spinners on a background thread when stdout is a
terminal and falls back to plain lines otherwise. Messages printed while a
spinner is running clear the spinner line first, so progress lines written by
the background watch tasks never interleave with the animation.
"""

from __future__ import annotations

import sys
import threading
import time

import click

from envdeck.lib.ui.colors import ANSIColors, colorize
from envdeck.lib.ui.spinner import STEP_MARKERS, SpinnerMixin, StepResult
from envdeck.lib.ui.terminal import is_tty, terminal_width

_RESULT_COLORS: dict[StepResult, str] = {
    StepResult.DONE: ANSIColors.GREEN,
    StepResult.FAILED: ANSIColors.RED,
    StepResult.SKIPPED: ANSIColors.YELLOW,
}


class SpinnerThread(SpinnerMixin, threading.Thread):
    """Background thread animating the current step of a ClickConsole."""

    def __init__(self, console: ClickConsole) -> None:
        """Initialize spinner thread.

        Args:
            console: Console whose spinner text is rendered.
        """
        super().__init__(daemon=True)
        self.console = console
        self._spinner_index = 0
        self._stop_event = threading.Event()

    def run(self) -> None:
        """Run spinner animation loop."""
        while not self._stop_event.is_set():
            self.console._draw_spinner(self.get_spinner_char())
            time.sleep(0.1)  # 10 FPS update rate

    def stop(self) -> None:
        """Stop the animation and wait for the thread to exit."""
        self._stop_event.set()
        if self.is_alive():
            self.join(timeout=1.0)


class ClickConsole:
    """Console implementation writing to stdout with click."""

    def __init__(self, quiet: bool = False, animate: bool | None = None) -> None:
        """Initialize the console.

        Args:
            quiet: Suppress messages and spinners; prompts are still shown
            animate: Force the animated spinner on or off (default: TTY detection)
        """
        self.quiet = quiet
        self.animate = is_tty() if animate is None else animate
        self._lock = threading.Lock()
        self._spinner_text: str | None = None
        self._spinner: SpinnerThread | None = None

    def message(self, text: str) -> None:
        """Write a line of output above the spinner."""
        if self.quiet:
            return
        with self._lock:
            self._clear_line()
            click.echo(text)

    def show_spinner(self, text: str) -> None:
        """Start the spinner for a step, or retitle the running one."""
        if self.quiet:
            return
        with self._lock:
            self._spinner_text = text
        if not self.animate:
            click.echo(f"{text}...")
            return
        if self._spinner is None:
            self._spinner = SpinnerThread(self)
            self._spinner.start()

    def stop_spinner(self, text: str, result: StepResult) -> None:
        """Stop the spinner and print the step outcome."""
        if self._spinner is not None:
            self._spinner.stop()
            self._spinner = None
        if self.quiet:
            return
        with self._lock:
            self._clear_line()
            self._spinner_text = None
            line = f"{STEP_MARKERS[result]} {text}"
            click.echo(colorize(line, _RESULT_COLORS[result], force_tty=self.animate))

    def confirm(self, message: str, default: bool = False) -> bool:
        """Ask a yes/no question.

        Raises:
            EOFError: If the prompt was aborted (closed stdin or Ctrl+C)
        """
        try:
            return click.confirm(message, default=default)
        except click.Abort as e:
            raise EOFError("confirmation prompt aborted") from e

    def _draw_spinner(self, char: str) -> None:
        with self._lock:
            if self._spinner_text is None:
                return
            sys.stdout.write(f"\r{char} {self._spinner_text}")
            sys.stdout.flush()

    def _clear_line(self) -> None:
        if self.animate and self._spinner_text is not None:
            sys.stdout.write("\r" + " " * terminal_width() + "\r")
            sys.stdout.flush()
