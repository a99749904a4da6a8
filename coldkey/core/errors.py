# core/errors.py - Exception taxonomy for a coldkey session
"""
Every error a session can end with derives from ColdKeyError and carries the
process exit code main() returns for it.

Resolution, mount and workspace errors are fatal. ImportFailed is raised only
after the user declines to continue past a partial import. DelegatedCommandFailed
is reported through its exit code and is not treated as a crash.
"""

from pathlib import Path
from typing import Optional

from coldkey.core.limits import Limits


class ColdKeyError(Exception):
    """Base exception for coldkey sessions."""

    exit_code = Limits.EXIT_FAILURE


class ConfigError(ColdKeyError):
    """Raised when config.json cannot be read or has invalid values."""

    pass


class ToolNotFound(ColdKeyError):
    """Raised when a required external program is not installed."""

    def __init__(self, program: str, hint: Optional[str] = None):
        self.program = program
        message = f"Required program not found in PATH: {program}"
        if hint:
            message += f"\n  Install it with: {hint}"
        super().__init__(message)


# =============================================================================
# Device resolution
# =============================================================================


class DeviceNotFound(ColdKeyError):
    """Raised when no device was specified or the identifier resolves to nothing."""

    pass


class NotABlockDevice(DeviceNotFound):
    """Raised when the resolved path exists but is not a block device."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Not a block device: {path}")


# =============================================================================
# Mount / workspace / import
# =============================================================================


class MountFailed(ColdKeyError):
    """Raised when the device cannot be mounted read-only."""

    pass


class WorkspaceCreationFailed(ColdKeyError):
    """Raised when the private workspace cannot be created or locked down."""

    pass


class KeyFileNotFound(ColdKeyError):
    """Raised when the key file is missing from the mounted volume."""

    def __init__(self, path: Path, reason: str = "not found on the mounted volume"):
        self.path = path
        super().__init__(f"Key file {reason}: {path}")


class ImportFailed(ColdKeyError):
    """Raised when gpg --import fails and the user does not accept the partial import."""

    def __init__(self, returncode: int):
        self.returncode = returncode
        super().__init__(f"Key import failed (gpg exited with status {returncode})")


class UserDeclined(ColdKeyError):
    """Raised when the user answers no at a confirmation prompt."""

    def __init__(self, question: str = ""):
        self.question = question
        super().__init__("Aborted by user.")


# =============================================================================
# Delegated command / interruption
# =============================================================================


class DelegatedCommandFailed(ColdKeyError):
    """Raised when the delegated gpg command exits non-zero."""

    def __init__(self, returncode: int):
        self.returncode = returncode
        super().__init__(f"gpg exited with status {returncode}")

    @property
    def exit_code(self) -> int:
        # subprocess reports death by signal N as -N; a shell reports 128 + N
        if self.returncode < 0:
            return Limits.SIGNAL_EXIT_BASE - self.returncode
        return self.returncode


class SessionInterrupted(ColdKeyError):
    """Raised from a signal handler to unwind the session."""

    def __init__(self, signum: int):
        self.signum = signum
        super().__init__(f"Interrupted by signal {signum}")

    @property
    def exit_code(self) -> int:
        return Limits.SIGNAL_EXIT_BASE + self.signum
