# core/paths.py - SINGLE SOURCE OF TRUTH for all filesystem paths
"""
All filesystem paths MUST be resolved here as Path objects.

RULES:
- All paths are Path objects internally
- Convert to str() ONLY at I/O boundaries (subprocess argv, log messages)
- Environment lookups go through this module, never os.environ in callers
"""

import os
import tempfile
from pathlib import Path
from typing import Mapping, Optional

from coldkey.core.constants import EnvVars, FileNames


class Paths:
    """
    Centralized path resolution. All methods return Path objects.

    Every method accepts an optional ``environ`` mapping so tests can pass a
    controlled environment instead of patching os.environ.

    Usage:
        from coldkey.core.paths import Paths
        parent = Paths.runtime_dir()
    """

    @classmethod
    def _env(cls, environ: Optional[Mapping[str, str]]) -> Mapping[str, str]:
        return os.environ if environ is None else environ

    # ==========================================================================
    # Workspace parent
    # ==========================================================================

    @classmethod
    def runtime_dir(cls, environ: Optional[Mapping[str, str]] = None) -> Path:
        """
        Return the private per-user runtime directory used as workspace parent.

        Order: $XDG_RUNTIME_DIR, /run/user/<uid>, then the system temp dir.
        """
        env = cls._env(environ)
        xdg_runtime = env.get(EnvVars.XDG_RUNTIME_DIR)
        if xdg_runtime:
            return Path(xdg_runtime)

        run_user = Path(FileNames.RUN_USER) / str(os.geteuid())
        if run_user.is_dir():
            return run_user

        return Path(tempfile.gettempdir())

    @classmethod
    def is_private_runtime_dir(cls, path: Path) -> bool:
        """Return False when ``path`` is the shared system temp dir."""
        return Path(path).resolve() != Path(tempfile.gettempdir()).resolve()

    # ==========================================================================
    # Caller's GnuPG home (public keyring only)
    # ==========================================================================

    @classmethod
    def gnupg_home(cls, environ: Optional[Mapping[str, str]] = None) -> Path:
        """Return $GNUPGHOME or ~/.gnupg."""
        env = cls._env(environ)
        gnupg_home = env.get(EnvVars.GNUPGHOME)
        if gnupg_home:
            return Path(gnupg_home).expanduser()
        return Path.home() / FileNames.GNUPG_DIR

    @classmethod
    def public_keyring(cls, environ: Optional[Mapping[str, str]] = None) -> Path:
        """
        Return the caller's public keyring.

        pubring.kbx is preferred; a legacy pubring.gpg is used only when it is the
        sole keyring present.
        """
        home = cls.gnupg_home(environ)
        kbx = home / FileNames.PUBRING_KBX
        legacy = home / FileNames.PUBRING_GPG
        if not kbx.exists() and legacy.exists():
            return legacy
        return kbx

    # ==========================================================================
    # Configuration
    # ==========================================================================

    @classmethod
    def config_file(cls, environ: Optional[Mapping[str, str]] = None) -> Path:
        """Return $XDG_CONFIG_HOME/coldkey/config.json (default ~/.config)."""
        env = cls._env(environ)
        config_home = env.get(EnvVars.XDG_CONFIG_HOME)
        base = Path(config_home) if config_home else Path.home() / ".config"
        return base / FileNames.CONFIG_DIR / FileNames.CONFIG_JSON

    # ==========================================================================
    # Device lookup
    # ==========================================================================

    @classmethod
    def device_by_label(cls, label: str) -> Path:
        """Return the udev by-label symlink for ``label``."""
        return Path(FileNames.DEV_BY_LABEL) / encode_udev_name(label)

    @classmethod
    def device_by_uuid(cls, uuid: str) -> Path:
        """Return the udev by-uuid symlink for ``uuid``."""
        return Path(FileNames.DEV_BY_UUID) / encode_udev_name(uuid)


def encode_udev_name(value: str) -> str:
    """
    Encode a label the way udev names its /dev/disk/by-* links.

    Whitespace, slashes and backslashes become \\xNN escapes.
    """
    encoded = []
    for char in value:
        if char in "/\\" or char.isspace():
            encoded.append(f"\\x{ord(char):02x}")
        else:
            encoded.append(char)
    return "".join(encoded)
