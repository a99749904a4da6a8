# core/gpg.py - GnuPG command lines used by a session
"""
Builds every gpg/gpgconf argv coldkey runs. Commands are returned as lists and
executed through core.process; nothing here spawns anything.

All commands point --homedir at the session workspace, so staged secret keys
never touch the caller's own GnuPG home.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from coldkey.core.constants import Defaults


@dataclass(frozen=True)
class GpgTool:
    """Program names for gpg and gpgconf."""

    gpg: str = Defaults.GPG_PROGRAM
    gpgconf: str = Defaults.GPGCONF_PROGRAM

    def import_argv(self, workspace: Path, key_file: Path) -> List[str]:
        """gpg --homedir <ws> --import <key file>"""
        return [self.gpg, "--homedir", str(workspace), "--import", str(key_file)]

    def session_argv(self, workspace: Path, public_keyring: Path, extra: Sequence[str]) -> List[str]:
        """
        The delegated command: secret keys from the workspace, public keys from
        the caller's own keyring, then the pass-through arguments verbatim.
        """
        return [
            self.gpg,
            "--homedir",
            str(workspace),
            "--no-default-keyring",
            "--keyring",
            str(public_keyring),
            *extra,
        ]

    def agent_socket_argv(self, workspace: Path) -> List[str]:
        """gpgconf --homedir <ws> --list-dirs agent-socket"""
        return [self.gpgconf, "--homedir", str(workspace), "--list-dirs", "agent-socket"]

    def kill_agent_argv(self, workspace: Path) -> List[str]:
        """gpgconf --homedir <ws> --kill gpg-agent"""
        return [self.gpgconf, "--homedir", str(workspace), "--kill", "gpg-agent"]
