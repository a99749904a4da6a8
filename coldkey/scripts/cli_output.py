"""
CLI Output Formatting Module (SSOT)

This module provides consistent terminal output for coldkey and the
confirmation prompts used at every cancellation point.

Everything is written to stderr through a rich Console: stdout belongs to the
delegated gpg command (for example ``coldkey -- --armor --export-secret-keys > backup.asc``).

Usage:
    from coldkey.scripts.cli_output import CLIOutput, Prompter

    out = CLIOutput.detect()
    out.info("Volume mounted")
    out.warn("Import reported errors")
    out.error("Failed!")
    out.step(1, 5, "Resolving device")

    prompter = Prompter(out, force=False)
    if not prompter.confirm("Continue?"):
        ...
"""

import logging
import shutil
import signal
from typing import Optional, TextIO

from rich.console import Console
from rich.prompt import Confirm

from coldkey.core.constants import ConsoleStyle
from coldkey.core.errors import SessionInterrupted
from coldkey.core.platform import is_interactive

_output_logger = logging.getLogger("coldkey.output")


class CLIOutput:
    """
    SSOT for consistent CLI output formatting.

    Features:
    - Unicode symbols with an ASCII fallback for non-UTF-8 consoles
    - Consistent success/warning/error prefixes and colors
    - Step counters for the session stages
    """

    def __init__(self, console: Optional[Console] = None, style: Optional[ConsoleStyle] = None, indent: int = 2):
        """
        Initialize CLI output formatter.

        Args:
            console: rich Console to write to (default: a stderr console)
            style: Symbol set (default: auto-detected)
            indent: Left margin indent (spaces)
        """
        self.console = console or Console(stderr=True)
        self.style = style or ConsoleStyle()
        self._prefix = " " * indent

    @classmethod
    def detect(cls, width: Optional[int] = None) -> "CLIOutput":
        """
        Auto-detect console capabilities and return an appropriate formatter.

        Returns:
            CLIOutput writing to stderr, width capped at 80 columns
        """
        if width is None:
            width = min(shutil.get_terminal_size(fallback=(80, 24)).columns, 80)
        return cls(console=Console(stderr=True, width=width), style=ConsoleStyle())

    def _print(self, msg: str, style: Optional[str] = None) -> None:
        # markup=False: device labels and paths may contain [brackets]
        self.console.print(msg, style=style, markup=False, highlight=False, soft_wrap=True)

    def info(self, message: str) -> None:
        """Print success/info message."""
        self._print(f"{self._prefix}{self.style.symbol('SUCCESS')} {message}", style="green")

    def warn(self, message: str) -> None:
        """Print warning message."""
        self._print(f"{self._prefix}{self.style.symbol('WARNING')} {message}", style="yellow")

    def error(self, message: str) -> None:
        """Print error message."""
        self._print(f"{self._prefix}{self.style.symbol('FAILURE')} {message}", style="bold red")

    def log(self, message: str) -> None:
        """Print plain message with indent."""
        self._print(f"{self._prefix}{message}")

    def step(self, current: int, total: int, message: str) -> None:
        """Print step progress (e.g., Step 3/5: Importing keys)."""
        self._print(f"{self._prefix}Step {current}/{total}: {message}", style="bold")


class Prompter:
    """
    Yes/no confirmations for the session's cancellation points.

    A question is skipped and counted as "yes" when ``force`` is set or when
    stdin is not a terminal. EOF and Ctrl-C at the prompt count as "no".
    """

    def __init__(self, output: CLIOutput, force: bool = False, stdin: Optional[TextIO] = None):
        self.output = output
        self.force = force
        self._stdin = stdin

    @property
    def interactive(self) -> bool:
        return is_interactive(self._stdin)

    def confirm(self, question: str, default: bool = False) -> bool:
        """
        Ask ``question`` and return the answer.

        Args:
            question: Question text, without the [y/n] suffix
            default: Answer used when the user just presses Enter

        Returns:
            True to proceed, False to abort
        """
        if self.force:
            _output_logger.debug(f"Confirmation skipped (--force): {question}")
            return True
        if not self.interactive:
            _output_logger.info(f"Confirmation skipped (no terminal): {question}")
            return True

        try:
            return Confirm.ask(question, console=self.output.console, default=default)
        except (EOFError, KeyboardInterrupt):
            self.output.log("")
            return False
        except SessionInterrupted as e:
            # Inside a session Ctrl-C arrives through the signal bridge
            if e.signum != signal.SIGINT:
                raise
            self.output.log("")
            return False
