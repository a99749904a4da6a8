# core/context.py - SINGLE SOURCE OF TRUTH for session state
"""
SessionContext is the one mutable object that flows through a coldkey session.

RULES:
- SessionContext is created ONCE by the orchestrator
- Components receive it by reference and fill in their field when they succeed
- CleanupCoordinator resets each field as it tears the matching resource down,
  so running cleanup a second time finds nothing left to do

Usage:
    from coldkey.core.context import DeviceSpec, SessionContext

    ctx = SessionContext()
    spec = DeviceSpec(label="SECURE_KEY_3Z")
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

_context_logger = logging.getLogger("coldkey.context")


class SessionState(Enum):
    """Forward-only session states. CLEANED_UP is reachable from every state."""

    START = "start"
    DEVICE_RESOLVED = "device_resolved"
    MOUNTED = "mounted"
    WORKSPACE_READY = "workspace_ready"
    KEYS_STAGED = "keys_staged"
    UNMOUNTED = "unmounted"
    COMMAND_RAN = "command_ran"
    CLEANED_UP = "cleaned_up"


_STATE_ORDER = list(SessionState)


@dataclass(frozen=True)
class DeviceSpec:
    """
    Identifiers for the offline volume, exactly as the caller supplied them.

    An explicit path wins over a label, which wins over a UUID.
    """

    path: Optional[str] = None
    label: Optional[str] = None
    uuid: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.path or self.label or self.uuid)

    def describe(self) -> str:
        if self.path:
            return f"device {self.path}"
        if self.label:
            return f"label {self.label}"
        if self.uuid:
            return f"UUID {self.uuid}"
        return "no device"


@dataclass
class CleanupState:
    """One-shot latch guarding the cleanup coordinator."""

    already_run: bool = False


@dataclass
class SessionContext:
    """
    Mutable state of one session.

    Invariants:
    - mounted_by_session implies mount_point is set and the device was not
      mounted when the session began
    - workspace_path, once set, is a directory only the invoking user can access
    """

    device_path: Optional[Path] = None
    mount_point: Optional[Path] = None
    workspace_path: Optional[Path] = None
    mounted_by_session: bool = False
    key_file_path: Optional[Path] = None
    state: SessionState = field(default=SessionState.START)

    def advance(self, state: SessionState) -> None:
        """Move forward to ``state``. Moving backwards is a programming error."""
        if _STATE_ORDER.index(state) < _STATE_ORDER.index(self.state):
            raise ValueError(f"Session state cannot go back from {self.state.value} to {state.value}")
        _context_logger.debug(f"Session state: {self.state.value} -> {state.value}")
        self.state = state
