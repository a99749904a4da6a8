"""
coldkey key import

Stages the exported secret keys from the mounted volume into the workspace:

1. Find the key file on the volume (default: private-keys.asc)
2. Ask before importing
3. gpg --homedir <workspace> --import <key file>
4. Unmount the volume right away; it is not needed any more

A non-zero exit from gpg --import is a soft failure. A file holding several
keys can legitimately import only some of them, so the user is asked whether
to continue instead of the session aborting.
"""

import logging
from pathlib import Path

from coldkey.core import process
from coldkey.core.constants import Defaults, Prompts
from coldkey.core.context import SessionContext, SessionState
from coldkey.core.errors import ImportFailed, KeyFileNotFound, UserDeclined
from coldkey.core.gpg import GpgTool
from coldkey.scripts.cli_output import Prompter
from coldkey.scripts.mount import MountManager

_import_logger = logging.getLogger("coldkey.keyimport")


class KeyImporter:
    """Import the volume's key file into ``ctx.workspace_path``."""

    def __init__(
        self,
        ctx: SessionContext,
        mounts: MountManager,
        prompter: Prompter,
        gpg: GpgTool = GpgTool(),
        key_file: str = Defaults.KEY_FILE,
    ):
        self.ctx = ctx
        self.mounts = mounts
        self.prompter = prompter
        self.gpg = gpg
        self.key_file = key_file

    def locate(self) -> Path:
        """
        Return the key file path on the mounted volume.

        Raises:
            KeyFileNotFound: If the file is missing, not a regular file, or
                resolves outside the mount point
        """
        mount_point = self.ctx.mount_point
        if mount_point is None:
            raise KeyFileNotFound(Path(self.key_file), reason="cannot be located, volume is not mounted")

        candidate = mount_point / self.key_file
        resolved = candidate.resolve()
        try:
            resolved.relative_to(mount_point.resolve())
        except ValueError:
            raise KeyFileNotFound(candidate, reason="is outside the mounted volume")

        if not resolved.is_file():
            raise KeyFileNotFound(candidate)

        self.ctx.key_file_path = candidate
        return candidate

    def run(self) -> None:
        """
        Import the keys and release the volume.

        Raises:
            KeyFileNotFound: Key file missing; nothing was imported
            UserDeclined: User declined the import
            ImportFailed: gpg --import failed and the user chose not to continue
        """
        key_file = self.locate()
        workspace = self.ctx.workspace_path

        question = Prompts.IMPORT_KEYS.format(key_file=key_file)
        if not self.prompter.confirm(question, default=True):
            raise UserDeclined(question)

        _import_logger.info(f"Importing keys from {key_file}")
        returncode = process.run_foreground(self.gpg.import_argv(workspace, key_file))

        if returncode != 0:
            failure = ImportFailed(returncode)
            _import_logger.warning(f"{failure}; the key file may contain keys that were not imported")
            if not self.prompter.confirm(Prompts.IMPORT_PARTIAL.format(returncode=returncode)):
                raise failure
            _import_logger.info("Continuing after partial import")

        self.ctx.advance(SessionState.KEYS_STAGED)

        # The volume is no longer needed once the keys are in the workspace
        if self.mounts.unmount() and self.ctx.mount_point is None:
            self.ctx.advance(SessionState.UNMOUNTED)
