"""
coldkey cleanup coordinator

The single finalizer of a session. It is installed before any state exists
and runs on every way out: normal return, an error, a declined prompt, a
signal (through core.interrupts) and interpreter exit (through atexit).

Steps, each best-effort and independent of the others:
1. Unmount the volume if this session mounted it
2. Stop the gpg-agent bound to the workspace, if its socket exists
3. Scrub and remove the workspace

The latch makes every call after the first a no-op.
"""

import atexit
import logging
from pathlib import Path
from typing import Dict, Optional

from coldkey.core import interrupts, process
from coldkey.core.constants import FileNames
from coldkey.core.context import CleanupState, SessionContext, SessionState
from coldkey.core.gpg import GpgTool
from coldkey.core.limits import Limits
from coldkey.scripts.mount import MountManager
from coldkey.scripts.workspace import SecureWorkspace

_cleanup_logger = logging.getLogger("coldkey.cleanup")


class CleanupCoordinator:
    """Idempotent teardown of everything a session acquired."""

    def __init__(
        self,
        ctx: SessionContext,
        mounts: MountManager,
        workspace: SecureWorkspace,
        gpg: GpgTool = GpgTool(),
    ):
        self.ctx = ctx
        self.mounts = mounts
        self.workspace = workspace
        self.gpg = gpg
        self.state = CleanupState()
        self._previous_handlers: Optional[Dict[int, object]] = None

    # =========================================================================
    # Registration
    # =========================================================================

    def install(self) -> None:
        """Register cleanup for signals and interpreter exit."""
        atexit.register(self.cleanup)
        self._previous_handlers = interrupts.install()

    def uninstall(self) -> None:
        """Undo install(). Safe to call when install() was never called."""
        atexit.unregister(self.cleanup)
        if self._previous_handlers is not None:
            interrupts.restore(self._previous_handlers)
            self._previous_handlers = None

    # =========================================================================
    # Teardown
    # =========================================================================

    def cleanup(self) -> None:
        """Tear the session down once. Later calls return immediately."""
        # A second Ctrl-C must not cut cleanup short, latch included
        with interrupts.deferred(reraise=False):
            if self.state.already_run:
                return
            self.state.already_run = True

            self._step("unmount", self._unmount)
            self._step("stop gpg-agent", self._stop_agent)
            self._step("remove workspace", self.workspace.destroy)

            self.ctx.key_file_path = None
            self.ctx.device_path = None
            self.ctx.advance(SessionState.CLEANED_UP)

    def _step(self, name: str, action) -> None:
        try:
            action()
        except Exception as e:
            _cleanup_logger.error(f"Cleanup step '{name}' failed: {e}")

    def _unmount(self) -> None:
        if self.ctx.mounted_by_session:
            self.mounts.unmount()
        if self.ctx.mounted_by_session:
            _cleanup_logger.error(f"{self.ctx.device_path} is still mounted at {self.ctx.mount_point}")
            return
        # A mount that predates the session is forgotten, not unmounted
        self.ctx.mount_point = None

    def agent_socket(self, workspace: Path) -> Path:
        """Return the gpg-agent socket path for ``workspace``."""
        try:
            answer = process.run_query(self.gpg.agent_socket_argv(workspace))
        except Exception as e:
            _cleanup_logger.debug(f"gpgconf could not report the agent socket: {e}")
            answer = None
        if answer:
            return Path(answer.splitlines()[0])
        return workspace / FileNames.AGENT_SOCKET

    def _stop_agent(self) -> None:
        workspace = self.ctx.workspace_path
        if workspace is None or not workspace.exists():
            return

        socket_path = self.agent_socket(workspace)
        if not socket_path.exists():
            _cleanup_logger.debug("No gpg-agent running for the workspace")
            return

        _cleanup_logger.info(f"Stopping gpg-agent ({socket_path})")
        # --kill has no interactive part; a query with a timeout is enough
        if process.run_query(self.gpg.kill_agent_argv(workspace), timeout=Limits.AGENT_KILL_TIMEOUT) is None:
            _cleanup_logger.warning("gpgconf --kill gpg-agent failed; the agent may still be running")
