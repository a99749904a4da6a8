# core/platform.py - SINGLE SOURCE OF TRUTH for platform detection
"""
Platform-specific detection and capability checks.

This module provides:
- get_platform() / is_linux(): normalized platform name
- is_block_device(): stat-based block device check
- is_interactive(): whether confirmations can be asked
- have(): whether a program is on PATH

No heuristics. Direct OS API checks only.
"""

import os
import platform as _platform
import shutil
import stat
import sys
from pathlib import Path
from typing import Optional, TextIO


def get_platform() -> str:
    """
    Get normalized platform name.

    Returns:
        One of: "windows", "darwin", "linux", or the raw system name lowercase.
    """
    return _platform.system().lower()


def is_linux() -> bool:
    """Check if running on Linux."""
    return get_platform() == "linux"


def is_block_device(path: Path) -> bool:
    """
    Check whether ``path`` is a block device, following symlinks.

    /dev/disk/by-label entries are symlinks, so the target is what counts.
    """
    try:
        return stat.S_ISBLK(os.stat(path).st_mode)
    except OSError:
        return False


def is_interactive(stream: Optional[TextIO] = None) -> bool:
    """Check whether ``stream`` (stdin by default) is attached to a terminal."""
    stream = stream if stream is not None else sys.stdin
    try:
        return stream is not None and stream.isatty()
    except (AttributeError, ValueError):
        # Closed or replaced streams
        return False


def have(cmd: str) -> bool:
    """Check if a command is available in PATH."""
    return shutil.which(cmd) is not None
