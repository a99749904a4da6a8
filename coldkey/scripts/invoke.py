"""
coldkey delegated command

Runs gpg against the session: secret keys come from the workspace, public
keys from the caller's normal keyring, and the remaining arguments are passed
through untouched. gpg gets the terminal, so interactive dialogs such as
--edit-key work as usual.
"""

import logging
from pathlib import Path
from typing import List, Mapping, Optional, Sequence

from coldkey.core import process
from coldkey.core.constants import Prompts
from coldkey.core.context import SessionContext, SessionState
from coldkey.core.errors import DelegatedCommandFailed, UserDeclined
from coldkey.core.gpg import GpgTool
from coldkey.core.paths import Paths
from coldkey.scripts.cli_output import Prompter

_invoke_logger = logging.getLogger("coldkey.invoke")


class CommandInvoker:
    """Build and run the delegated gpg command."""

    def __init__(
        self,
        ctx: SessionContext,
        prompter: Prompter,
        gpg: GpgTool = GpgTool(),
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.ctx = ctx
        self.prompter = prompter
        self.gpg = gpg
        self._environ = environ

    def public_keyring(self) -> Path:
        keyring = Paths.public_keyring(self._environ)
        if not keyring.exists():
            _invoke_logger.warning(f"Public keyring {keyring} does not exist; gpg will start an empty one")
        return keyring

    def build_argv(self, extra: Sequence[str]) -> List[str]:
        return self.gpg.session_argv(self.ctx.workspace_path, self.public_keyring(), extra)

    def run(self, extra: Sequence[str]) -> int:
        """
        Confirm and run the delegated command in the foreground.

        Returns:
            0 when gpg succeeded

        Raises:
            UserDeclined: User declined to run the command
            DelegatedCommandFailed: gpg exited non-zero
        """
        argv = self.build_argv(extra)
        question = Prompts.RUN_COMMAND.format(command=process.format_argv(argv))
        if not self.prompter.confirm(question, default=True):
            raise UserDeclined(question)

        returncode = process.run_foreground(argv)
        self.ctx.advance(SessionState.COMMAND_RAN)

        if returncode != 0:
            raise DelegatedCommandFailed(returncode)
        return 0
