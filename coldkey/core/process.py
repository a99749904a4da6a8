# core/process.py - SINGLE SOURCE OF TRUTH for spawning external programs
"""
Every external program coldkey runs goes through one of two helpers:

- run_foreground(argv): lifecycle steps (udisksctl mount/unmount, gpg --import,
  the delegated gpg command). The child inherits stdin/stdout/stderr and the
  controlling terminal, no timeout is applied, and the exit status is returned.
- run_query(argv): short read-only queries (findfs, findmnt, gpgconf --list-dirs).
  Output is captured and a timeout from Limits applies.

argv is always a list; nothing is passed through a shell.
"""

import logging
import shlex
import subprocess
from typing import Optional, Sequence

from coldkey.core import interrupts
from coldkey.core.errors import ToolNotFound
from coldkey.core.limits import Limits

_process_logger = logging.getLogger("coldkey.process")


def format_argv(argv: Sequence[str]) -> str:
    """Render argv as a copy-pasteable shell command."""
    return shlex.join([str(arg) for arg in argv])


def run_foreground(argv: Sequence[str]) -> int:
    """
    Run a program attached to the terminal and wait for it.

    Handled signals received meanwhile are raised after the child exits.

    Args:
        argv: Program and arguments

    Returns:
        The child's exit status (negative when killed by a signal)

    Raises:
        ToolNotFound: If the program does not exist
    """
    args = [str(arg) for arg in argv]
    _process_logger.debug(f"+ {format_argv(args)}")

    with interrupts.deferred():
        try:
            result = subprocess.run(args, check=False)
        except FileNotFoundError as e:
            raise ToolNotFound(args[0]) from e

    _process_logger.debug(f"{args[0]} exited with status {result.returncode}")
    return result.returncode


def run_query(argv: Sequence[str], timeout: float = Limits.QUERY_TIMEOUT) -> Optional[str]:
    """
    Run a read-only query and return its stripped stdout.

    Args:
        argv: Program and arguments
        timeout: Seconds before the query is abandoned

    Returns:
        stdout on exit status 0, None on any other status or on timeout

    Raises:
        ToolNotFound: If the program does not exist
    """
    args = [str(arg) for arg in argv]
    _process_logger.debug(f"+ {format_argv(args)}")

    try:
        result = subprocess.run(args, capture_output=True, text=True, timeout=timeout, check=False)
    except FileNotFoundError as e:
        raise ToolNotFound(args[0]) from e
    except subprocess.TimeoutExpired:
        _process_logger.warning(f"{args[0]} did not answer within {timeout}s")
        return None

    if result.returncode != 0:
        stderr = (result.stderr or "").strip()
        _process_logger.debug(f"{args[0]} exited with status {result.returncode}: {stderr}")
        return None

    return result.stdout.strip()
