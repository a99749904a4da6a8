# coldkey SSOT core modules
# This package contains all single-source-of-truth modules for a coldkey session.
# =============================================================================
# Session state and errors
# =============================================================================
from .context import CleanupState, DeviceSpec, SessionContext, SessionState
from .errors import (
    ColdKeyError,
    ConfigError,
    DelegatedCommandFailed,
    DeviceNotFound,
    ImportFailed,
    KeyFileNotFound,
    MountFailed,
    NotABlockDevice,
    SessionInterrupted,
    ToolNotFound,
    UserDeclined,
    WorkspaceCreationFailed,
)
from .version import VERSION

# =============================================================================
# Public API
# =============================================================================
__all__ = [
    # Version
    "VERSION",
    # Session state
    "CleanupState",
    "DeviceSpec",
    "SessionContext",
    "SessionState",
    # Errors
    "ColdKeyError",
    "ConfigError",
    "DelegatedCommandFailed",
    "DeviceNotFound",
    "ImportFailed",
    "KeyFileNotFound",
    "MountFailed",
    "NotABlockDevice",
    "SessionInterrupted",
    "ToolNotFound",
    "UserDeclined",
    "WorkspaceCreationFailed",
]
