"""
coldkey device resolution

Turns the caller's device identifier into a verified block device path:

- an explicit path is used as given, no lookup
- a label is looked up with ``findfs LABEL=...``
- a UUID is looked up with ``findfs UUID=...``

When findfs has no answer, the udev symlinks under /dev/disk/by-label and
/dev/disk/by-uuid are tried. Removable devices are never enumerated.
"""

import logging
from pathlib import Path
from typing import Optional

from coldkey.core import platform as host
from coldkey.core import process
from coldkey.core.constants import Defaults
from coldkey.core.context import DeviceSpec, SessionContext, SessionState
from coldkey.core.errors import DeviceNotFound, NotABlockDevice
from coldkey.core.paths import Paths

_resolve_logger = logging.getLogger("coldkey.resolve")


class DeviceResolver:
    """Resolve a DeviceSpec into ``ctx.device_path``."""

    def __init__(self, ctx: SessionContext, findfs: str = Defaults.FINDFS_PROGRAM):
        self.ctx = ctx
        self.findfs = findfs

    def resolve(self, spec: DeviceSpec) -> Path:
        """
        Resolve ``spec`` and record the result in the session context.

        Raises:
            DeviceNotFound: No identifier given, lookup failed, or path missing
            NotABlockDevice: Path exists but is not a block device
        """
        if spec.is_empty():
            raise DeviceNotFound("No device given: use --device, --label or --uuid")

        if spec.path:
            device = Path(spec.path)
        elif spec.label:
            device = self._lookup("LABEL", spec.label, Paths.device_by_label(spec.label))
        else:
            device = self._lookup("UUID", spec.uuid, Paths.device_by_uuid(spec.uuid))

        if device is None:
            raise DeviceNotFound(f"No device found for {spec.describe()}")
        if not device.exists():
            raise DeviceNotFound(f"Device does not exist: {device}")
        if not host.is_block_device(device):
            raise NotABlockDevice(device)

        _resolve_logger.info(f"Resolved {spec.describe()} to {device}")
        self.ctx.device_path = device
        self.ctx.advance(SessionState.DEVICE_RESOLVED)
        return device

    def _lookup(self, tag: str, value: str, udev_link: Path) -> Optional[Path]:
        found = process.run_query([self.findfs, f"{tag}={value}"])
        if found:
            return Path(found.splitlines()[0])

        _resolve_logger.debug(f"findfs has no {tag}={value}, trying {udev_link}")
        if udev_link.exists():
            return udev_link.resolve()
        return None
