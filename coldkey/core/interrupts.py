# core/interrupts.py - Signal-to-exception bridge for the session
"""
Turns SIGINT/SIGTERM/SIGHUP into SessionInterrupted so an interrupted session
unwinds through the orchestrator's finally block like any other error.

While a foreground child runs, signals are deferred instead: the child owns the
terminal and gets the same SIGINT, and a mount or key import is never cut off
halfway. The recorded signal is raised once the child has exited.

Usage:
    from coldkey.core import interrupts

    previous = interrupts.install()
    try:
        with interrupts.deferred():
            subprocess.run(argv)
    finally:
        interrupts.restore(previous)
"""

import contextlib
import logging
import signal
from typing import Dict, Iterator, Optional

from coldkey.core.errors import SessionInterrupted

_interrupt_logger = logging.getLogger("coldkey.interrupts")

HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)

# Deferral nesting depth and the first signal seen while deferred
_defer_depth = 0
_pending_signal: Optional[int] = None


def _handle(signum, frame) -> None:
    global _pending_signal
    if _defer_depth > 0:
        if _pending_signal is None:
            _pending_signal = signum
        _interrupt_logger.debug(f"Signal {signum} deferred until the running step finishes")
        return
    raise SessionInterrupted(signum)


def install() -> Dict[int, object]:
    """
    Install the session handlers.

    Returns:
        The previous handlers, for restore().
    """
    previous = {}
    for signum in HANDLED_SIGNALS:
        previous[signum] = signal.getsignal(signum)
        signal.signal(signum, _handle)
    _interrupt_logger.debug("Signal handlers installed")
    return previous


def restore(previous: Dict[int, object]) -> None:
    """Put back the handlers returned by install()."""
    for signum, handler in previous.items():
        signal.signal(signum, handler if handler is not None else signal.SIG_DFL)


def pending() -> Optional[int]:
    """Return the signal recorded while deferred, if any."""
    return _pending_signal


@contextlib.contextmanager
def deferred(reraise: bool = True) -> Iterator[None]:
    """
    Hold back handled signals for the duration of the block.

    With ``reraise`` the first signal received is raised as SessionInterrupted
    when the outermost block exits. Without it the signal is dropped, which is
    what cleanup wants.
    """
    global _defer_depth, _pending_signal
    _defer_depth += 1
    try:
        yield
    finally:
        _defer_depth -= 1
        if _defer_depth == 0 and _pending_signal is not None:
            signum = _pending_signal
            _pending_signal = None
            if reraise:
                raise SessionInterrupted(signum)
            _interrupt_logger.info(f"Ignored signal {signum} received during cleanup")
