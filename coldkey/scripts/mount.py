"""
coldkey mount management

Mounts the offline volume read-only through udisks, so no root shell is needed
and polkit can ask for authorization on the terminal.

Ownership rule: a volume that was already mounted when the session started is
left alone. Only a mount this session performed is ever unmounted, and
unmount() can be called any number of times.
"""

import logging
import re
import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from coldkey.core import interrupts, process
from coldkey.core.constants import Defaults
from coldkey.core.context import SessionContext, SessionState
from coldkey.core.errors import MountFailed, ToolNotFound

_mount_logger = logging.getLogger("coldkey.mount")

_HEX_ESCAPE = re.compile(r"\\x([0-9a-fA-F]{2})")


@dataclass(frozen=True)
class MountInfo:
    """Where a device is mounted and with which options."""

    target: Path
    options: tuple

    @property
    def read_only(self) -> bool:
        return "ro" in self.options


def _unescape(value: str) -> str:
    """Decode the \\xNN escapes findmnt uses for spaces and quotes."""
    return _HEX_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), value)


def parse_findmnt_pairs(output: str) -> Optional[MountInfo]:
    """
    Parse one line of ``findmnt -P -o TARGET,OPTIONS`` output.

    Returns:
        MountInfo, or None when the output has no TARGET
    """
    line = output.strip().splitlines()[0] if output and output.strip() else ""
    fields: Dict[str, str] = {}
    for token in shlex.split(line):
        key, sep, value = token.partition("=")
        if sep:
            fields[key] = _unescape(value)

    target = fields.get("TARGET")
    if not target:
        return None
    options = tuple(opt for opt in fields.get("OPTIONS", "").split(",") if opt)
    return MountInfo(target=Path(target), options=options)


class MountManager:
    """Read-only mount of ``ctx.device_path`` with session ownership tracking."""

    def __init__(
        self,
        ctx: SessionContext,
        udisksctl: str = Defaults.UDISKSCTL_PROGRAM,
        findmnt: str = Defaults.FINDMNT_PROGRAM,
        require_read_only: bool = Defaults.REQUIRE_READ_ONLY_MOUNT,
    ):
        self.ctx = ctx
        self.udisksctl = udisksctl
        self.findmnt = findmnt
        self.require_read_only = require_read_only

    def current_mount(self, device: Path) -> Optional[MountInfo]:
        """Return the current mount of ``device``, or None if it is not mounted."""
        output = process.run_query(
            [self.findmnt, "--pairs", "--noheadings", "--first-only", "--output", "TARGET,OPTIONS", "--source", device]
        )
        if not output:
            return None
        return parse_findmnt_pairs(output)

    def mount(self) -> Path:
        """
        Make sure the session device is mounted and record the mount point.

        Returns:
            The mount point

        Raises:
            MountFailed: If udisksctl fails or the device is still not mounted,
                or if an existing read-write mount is rejected by config
        """
        device = self.ctx.device_path
        if device is None:
            raise MountFailed("No device resolved, nothing to mount")

        existing = self.current_mount(device)
        if existing is not None:
            if not existing.read_only:
                message = f"{device} is already mounted read-write at {existing.target}"
                if self.require_read_only:
                    raise MountFailed(f"{message}; unmount it or remount it read-only first")
                _mount_logger.warning(f"{message}; using the existing mount")
            _mount_logger.info(f"{device} already mounted at {existing.target}, leaving it mounted")
            self.ctx.mount_point = existing.target
            self.ctx.mounted_by_session = False
            self.ctx.advance(SessionState.MOUNTED)
            return existing.target

        _mount_logger.info(f"Mounting {device} read-only")
        # A signal during udisksctl is raised only once ownership is recorded
        with interrupts.deferred():
            returncode = process.run_foreground(
                [self.udisksctl, "mount", "--block-device", device, "--options", "ro"]
            )
            mounted = self.current_mount(device)
            if mounted is not None:
                self.ctx.mount_point = mounted.target
                self.ctx.mounted_by_session = True
                self.ctx.advance(SessionState.MOUNTED)

        if returncode != 0 and mounted is None:
            raise MountFailed(f"udisksctl could not mount {device} (exit status {returncode})")
        if mounted is None:
            raise MountFailed(f"udisksctl reported success but {device} is not mounted")
        _mount_logger.info(f"Mounted {device} at {mounted.target}")
        return mounted.target

    def unmount(self) -> bool:
        """
        Unmount the device if, and only if, this session mounted it.

        A failed unmount is logged, not raised, and the ownership flag is
        kept so a later call (cleanup) can retry. A signal received meanwhile
        is raised after the flag is up to date.

        Returns:
            True if nothing is left mounted by this session
        """
        if not self.ctx.mounted_by_session:
            return True

        device = self.ctx.device_path
        _mount_logger.info(f"Unmounting {device}")
        with interrupts.deferred():
            try:
                returncode = process.run_foreground([self.udisksctl, "unmount", "--block-device", device])
            except (ToolNotFound, OSError) as e:
                _mount_logger.warning(f"Could not run udisksctl to unmount {device}: {e}")
                return False

            if returncode != 0:
                _mount_logger.warning(f"Unmounting {device} failed (exit status {returncode})")
                return False

            self.ctx.mounted_by_session = False
            self.ctx.mount_point = None
        return True
