# core/limits.py - SINGLE SOURCE OF TRUTH for timeouts, sizes and thresholds
"""
All numeric limits, timeouts, and thresholds MUST be defined here.
No other module may define these values.
"""


class Limits:
    """Operational limits and thresholds."""

    # ==========================================================================
    # Timeouts (seconds)
    # ==========================================================================

    # Read-only queries (findfs, findmnt, gpgconf --list-dirs).
    # Lifecycle steps (mount, import, delegated command) never time out.
    QUERY_TIMEOUT = 10

    # gpgconf --kill gpg-agent during cleanup
    AGENT_KILL_TIMEOUT = 10

    # ==========================================================================
    # Size limits
    # ==========================================================================

    # Maximum log file size before rotation (bytes)
    MAX_LOG_FILE_SIZE = 5 * 1024 * 1024  # 5 MB
    LOG_FILE_BACKUPS = 3

    # Chunk size used when overwriting workspace files
    SCRUB_CHUNK_SIZE = 64 * 1024

    # ==========================================================================
    # Security thresholds
    # ==========================================================================

    # Overwrite passes before a workspace file is unlinked (zeros, then random)
    SCRUB_PASSES = 2

    # Workspace directory mode; any bit in WORKSPACE_FORBIDDEN_BITS is fatal
    WORKSPACE_MODE = 0o700
    WORKSPACE_FORBIDDEN_BITS = 0o077

    # ==========================================================================
    # Exit codes
    # ==========================================================================

    EXIT_OK = 0
    EXIT_FAILURE = 1
    # Interrupted sessions exit with SIGNAL_EXIT_BASE + signum, like a shell
    SIGNAL_EXIT_BASE = 128
