"""
coldkey secure workspace

The workspace is the temporary GnuPG home that holds the staged secret keys
and gpg-agent's sockets for the duration of one session.

- Created under the per-user runtime directory ($XDG_RUNTIME_DIR, which is
  normally a RAM-backed tmpfs) with an unpredictable name
- Mode 0700, owned by the effective user; anything else is fatal
- Destroyed by overwriting every regular file before removing the tree
"""

import logging
import os
import shutil
import stat
import tempfile
from pathlib import Path
from typing import Mapping, Optional

from coldkey.core import interrupts
from coldkey.core.constants import FileNames
from coldkey.core.context import SessionContext, SessionState
from coldkey.core.errors import WorkspaceCreationFailed
from coldkey.core.limits import Limits
from coldkey.core.paths import Paths

_workspace_logger = logging.getLogger("coldkey.workspace")


def scrub_file(path: Path, passes: int = Limits.SCRUB_PASSES) -> None:
    """
    Overwrite a regular file in place: zeros first, random data after that.

    Args:
        path: File to overwrite (not unlinked here)
        passes: Number of overwrite passes
    """
    size = path.stat().st_size
    if size == 0:
        return

    with path.open("r+b") as f:
        for pass_number in range(passes):
            f.seek(0)
            remaining = size
            while remaining > 0:
                chunk = min(remaining, Limits.SCRUB_CHUNK_SIZE)
                f.write(b"\x00" * chunk if pass_number == 0 else os.urandom(chunk))
                remaining -= chunk
            f.flush()
            os.fsync(f.fileno())


class SecureWorkspace:
    """Owner of ``ctx.workspace_path`` from creation to destruction."""

    def __init__(self, ctx: SessionContext, environ: Optional[Mapping[str, str]] = None):
        self.ctx = ctx
        self._environ = environ

    def create(self) -> Path:
        """
        Create the private workspace directory.

        Returns:
            Path of the new directory

        Raises:
            WorkspaceCreationFailed: If the directory cannot be created or its
                permissions cannot be restricted to the owner
        """
        if self.ctx.workspace_path is not None:
            raise WorkspaceCreationFailed(f"Workspace already exists: {self.ctx.workspace_path}")

        parent = Paths.runtime_dir(self._environ)
        if not parent.is_dir():
            raise WorkspaceCreationFailed(f"Runtime directory does not exist: {parent}")
        if not Paths.is_private_runtime_dir(parent):
            _workspace_logger.warning(
                f"No per-user runtime directory (XDG_RUNTIME_DIR); staging keys in the shared {parent}"
            )

        # A signal is raised only once the directory is either recorded or removed
        with interrupts.deferred():
            try:
                path = Path(tempfile.mkdtemp(prefix=FileNames.WORKSPACE_PREFIX, dir=str(parent)))
            except OSError as e:
                raise WorkspaceCreationFailed(f"Cannot create workspace in {parent}: {e}") from e

            try:
                os.chmod(path, Limits.WORKSPACE_MODE)
                self._verify(path)
            except (OSError, WorkspaceCreationFailed) as e:
                shutil.rmtree(path, ignore_errors=True)
                if isinstance(e, WorkspaceCreationFailed):
                    raise
                raise WorkspaceCreationFailed(f"Cannot restrict permissions of {path}: {e}") from e

            self.ctx.workspace_path = path
            self.ctx.advance(SessionState.WORKSPACE_READY)

        _workspace_logger.info(f"Workspace created: {path}")
        return path

    @staticmethod
    def _verify(path: Path) -> None:
        st = os.lstat(path)
        if not stat.S_ISDIR(st.st_mode):
            raise WorkspaceCreationFailed(f"Workspace is not a directory: {path}")
        if st.st_uid != os.geteuid():
            raise WorkspaceCreationFailed(f"Workspace {path} is owned by uid {st.st_uid}, not {os.geteuid()}")
        if st.st_mode & Limits.WORKSPACE_FORBIDDEN_BITS:
            raise WorkspaceCreationFailed(
                f"Workspace {path} has mode {stat.S_IMODE(st.st_mode):o}, expected {Limits.WORKSPACE_MODE:o}"
            )

    def destroy(self) -> None:
        """
        Scrub and remove the workspace. An absent workspace is not an error.

        Raises:
            OSError: If the tree exists but cannot be removed
        """
        path = self.ctx.workspace_path
        if path is None:
            return
        if not path.exists():
            self.ctx.workspace_path = None
            return

        for root, _dirs, files in os.walk(path):
            for name in files:
                file_path = Path(root) / name
                # Sockets and symlinks are unlinked, never opened
                if file_path.is_symlink() or not file_path.is_file():
                    continue
                try:
                    scrub_file(file_path)
                except OSError as e:
                    _workspace_logger.warning(f"Could not overwrite {file_path}: {e}")

        shutil.rmtree(path)
        self.ctx.workspace_path = None
        _workspace_logger.info(f"Workspace removed: {path}")
