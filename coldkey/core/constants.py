# core/constants.py - SINGLE SOURCE OF TRUTH for all shared string literals
"""
All shared string constants MUST be defined here.
No other module may define these values.

Categories:
- ConsoleStyle: Unicode vs ASCII-safe output mode
- ConfigKeys: JSON config keys
- Defaults: Default config values
- FileNames: File and directory names
- EnvVars: Environment variables read by coldkey
- Tools: External program names and install hints
- Prompts: User-facing confirmation questions
"""

import os
import sys


# =============================================================================
# Console Style - Unicode vs ASCII-safe output
# =============================================================================


class ConsoleStyle:
    """
    Console output style selection for unicode vs ASCII-safe rendering.

    Usage:
        style = ConsoleStyle()
        print(style.symbol("SUCCESS") + " Operation completed")
    """

    UNICODE = "unicode"
    ASCII = "ascii"

    _SYMBOLS = {
        UNICODE: {
            "SUCCESS": "✓",
            "WARNING": "⚠",
            "FAILURE": "✗",
        },
        ASCII: {
            "SUCCESS": "[OK]",
            "WARNING": "[!]",
            "FAILURE": "[X]",
        },
    }

    def __init__(self, mode: str = None):
        self._mode = mode or self.detect_mode()

    @classmethod
    def detect_mode(cls) -> str:
        """
        Auto-detect console style based on environment.

        ASCII is chosen when PYTHONIOENCODING or the stderr encoding is not UTF-8.
        """
        io_encoding = os.environ.get("PYTHONIOENCODING", "")
        if io_encoding and "utf" not in io_encoding.lower():
            return cls.ASCII

        stream_encoding = getattr(sys.stderr, "encoding", None) or ""
        if stream_encoding and "utf" not in stream_encoding.lower():
            return cls.ASCII

        return cls.UNICODE

    def symbol(self, name: str) -> str:
        return self._SYMBOLS[self._mode][name]


# =============================================================================
# Config keys
# =============================================================================


class ConfigKeys:
    """Keys of config.json. Values are the literal JSON keys."""

    DEVICE = "device"
    LABEL = "label"
    UUID = "uuid"
    KEY_FILE = "key_file"
    GPG_PROGRAM = "gpg_program"
    GPGCONF_PROGRAM = "gpgconf_program"
    UDISKSCTL_PROGRAM = "udisksctl_program"
    FINDFS_PROGRAM = "findfs_program"
    FINDMNT_PROGRAM = "findmnt_program"
    REQUIRE_READ_ONLY_MOUNT = "require_read_only_mount"
    LOG_FILE = "log_file"


class FileNames:
    """File and directory names used by coldkey."""

    # ASCII-armored secret key export expected on the offline volume
    DEFAULT_KEY_FILE = "private-keys.asc"

    CONFIG_DIR = "coldkey"
    CONFIG_JSON = "config.json"

    # Prefix for the ephemeral GnuPG home under the runtime directory
    WORKSPACE_PREFIX = "coldkey."

    # GnuPG home layout
    GNUPG_DIR = ".gnupg"
    PUBRING_KBX = "pubring.kbx"
    PUBRING_GPG = "pubring.gpg"
    AGENT_SOCKET = "S.gpg-agent"

    # udev lookup directories
    DEV_BY_LABEL = "/dev/disk/by-label"
    DEV_BY_UUID = "/dev/disk/by-uuid"
    RUN_USER = "/run/user"


class Defaults:
    """Default config values."""

    KEY_FILE = FileNames.DEFAULT_KEY_FILE
    GPG_PROGRAM = "gpg"
    GPGCONF_PROGRAM = "gpgconf"
    UDISKSCTL_PROGRAM = "udisksctl"
    FINDFS_PROGRAM = "findfs"
    FINDMNT_PROGRAM = "findmnt"
    REQUIRE_READ_ONLY_MOUNT = False


class EnvVars:
    """Environment variables read by coldkey."""

    GNUPGHOME = "GNUPGHOME"
    XDG_RUNTIME_DIR = "XDG_RUNTIME_DIR"
    XDG_CONFIG_HOME = "XDG_CONFIG_HOME"


class Tools:
    """Install hints for external programs, keyed by default program name."""

    INSTALL_HINTS = {
        Defaults.GPG_PROGRAM: "Ubuntu/Debian: sudo apt install gnupg | Fedora: sudo dnf install gnupg2",
        Defaults.GPGCONF_PROGRAM: "Ubuntu/Debian: sudo apt install gnupg | Fedora: sudo dnf install gnupg2",
        Defaults.UDISKSCTL_PROGRAM: "Ubuntu/Debian: sudo apt install udisks2 | Fedora: sudo dnf install udisks2",
        Defaults.FINDFS_PROGRAM: "Ubuntu/Debian: sudo apt install util-linux | Fedora: sudo dnf install util-linux",
        Defaults.FINDMNT_PROGRAM: "Ubuntu/Debian: sudo apt install util-linux | Fedora: sudo dnf install util-linux",
    }


class Prompts:
    """User-facing confirmation questions."""

    NO_ARGUMENTS = "No arguments for gpg were given, so gpg will only wait for input. Continue?"
    IMPORT_KEYS = "Import keys from {key_file} into the temporary keyring?"
    IMPORT_PARTIAL = (
        "gpg --import exited with status {returncode}; some keys may not have been imported. Continue anyway?"
    )
    RUN_COMMAND = "Run: {command}?"
