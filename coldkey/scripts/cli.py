"""
coldkey - run gpg against secret keys kept on an offline volume

Mounts the volume read-only, imports the exported secret keys into a private
temporary GnuPG home, unmounts the volume again, and runs gpg with that home
plus your normal public keyring. The temporary home is wiped and the volume
unmounted however the session ends.

Usage:
    coldkey --label SECURE_KEY_3Z -- --edit-key alice@example.org
    coldkey --uuid 1234-ABCD -- --armor --export-secret-subkeys alice > subkeys.asc
    coldkey --device /dev/sdb1 --key-file backup/keys.asc -- --list-secret-keys

Dependencies (runtime):
- Python 3
- gpg and gpgconf (GnuPG 2.1+)
- udisksctl (udisks2), findfs and findmnt (util-linux)
"""

import argparse
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from rich.logging import RichHandler

from coldkey.core import platform as host
from coldkey.core.config import apply_overrides, load_config
from coldkey.core.constants import ConfigKeys, FileNames, Prompts, Tools
from coldkey.core.context import DeviceSpec, SessionContext
from coldkey.core.errors import ColdKeyError, DelegatedCommandFailed, ToolNotFound, UserDeclined
from coldkey.core.gpg import GpgTool
from coldkey.core.limits import Limits
from coldkey.core.version import VERSION
from coldkey.scripts.cleanup import CleanupCoordinator
from coldkey.scripts.cli_output import CLIOutput, Prompter
from coldkey.scripts.invoke import CommandInvoker
from coldkey.scripts.keyimport import KeyImporter
from coldkey.scripts.mount import MountManager
from coldkey.scripts.resolve import DeviceResolver
from coldkey.scripts.workspace import SecureWorkspace

_session_logger = logging.getLogger("coldkey.session")

TOTAL_STEPS = 5


# ============================================================
# LOGGING
# ============================================================


def setup_logging(verbosity: int = 0, log_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure the "coldkey" logger.

    Args:
        verbosity: 0 = warnings, 1 = progress (-v), 2+ = command trace (-vv)
        log_file: Optional rotating log file, always at DEBUG level

    Returns:
        Configured logger instance
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logger = logging.getLogger("coldkey")
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(show_path=False, show_time=False, markup=False)
    console_handler.setLevel(level)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            str(log_file),
            maxBytes=Limits.MAX_LOG_FILE_SIZE,
            backupCount=Limits.LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s - %(name)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        )
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


# ============================================================
# PREFLIGHT
# ============================================================


def required_programs(config: Mapping[str, Any], spec: DeviceSpec) -> List[str]:
    """Return the external programs this session will run."""
    programs = [
        config[ConfigKeys.GPG_PROGRAM],
        config[ConfigKeys.GPGCONF_PROGRAM],
        config[ConfigKeys.UDISKSCTL_PROGRAM],
        config[ConfigKeys.FINDMNT_PROGRAM],
    ]
    if not spec.path:
        programs.append(config[ConfigKeys.FINDFS_PROGRAM])
    return programs


def check_dependencies(config: Mapping[str, Any], spec: DeviceSpec) -> None:
    """
    Fail early when a required program is missing.

    Raises:
        ToolNotFound: For the first missing program
    """
    for program in required_programs(config, spec):
        if not host.have(program):
            raise ToolNotFound(program, Tools.INSTALL_HINTS.get(Path(program).name))


# ============================================================
# SESSION
# ============================================================


class Session:
    """
    One end-to-end run: resolve, mount, stage keys, run gpg, clean up.

    All components share one SessionContext. The cleanup coordinator is
    installed before the first step and runs exactly once on the way out.
    """

    def __init__(
        self,
        config: Mapping[str, Any],
        gpg_args: Sequence[str],
        output: CLIOutput,
        prompter: Prompter,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.config = config
        self.gpg_args = list(gpg_args)
        self.output = output
        self.prompter = prompter
        self.spec = DeviceSpec(
            path=config[ConfigKeys.DEVICE],
            label=config[ConfigKeys.LABEL],
            uuid=config[ConfigKeys.UUID],
        )

        self.ctx = SessionContext()
        gpg = GpgTool(gpg=config[ConfigKeys.GPG_PROGRAM], gpgconf=config[ConfigKeys.GPGCONF_PROGRAM])
        self.resolver = DeviceResolver(self.ctx, findfs=config[ConfigKeys.FINDFS_PROGRAM])
        self.mounts = MountManager(
            self.ctx,
            udisksctl=config[ConfigKeys.UDISKSCTL_PROGRAM],
            findmnt=config[ConfigKeys.FINDMNT_PROGRAM],
            require_read_only=config[ConfigKeys.REQUIRE_READ_ONLY_MOUNT],
        )
        self.workspace = SecureWorkspace(self.ctx, environ=environ)
        self.importer = KeyImporter(
            self.ctx, self.mounts, prompter, gpg=gpg, key_file=config[ConfigKeys.KEY_FILE]
        )
        self.invoker = CommandInvoker(self.ctx, prompter, gpg=gpg, environ=environ)
        self.coordinator = CleanupCoordinator(self.ctx, self.mounts, self.workspace, gpg=gpg)

    def run(self, preflight: bool = True) -> int:
        """
        Run the session.

        Returns:
            0 on success, the delegated gpg exit status when gpg failed

        Raises:
            ColdKeyError: Any fatal error; cleanup has already run
        """
        self.coordinator.install()
        try:
            if not self.gpg_args and not self.prompter.force:
                self.output.warn("No gpg arguments given (pass them after --)")
                if not self.prompter.confirm(Prompts.NO_ARGUMENTS):
                    raise UserDeclined(Prompts.NO_ARGUMENTS)

            if preflight:
                check_dependencies(self.config, self.spec)

            self.output.step(1, TOTAL_STEPS, f"Resolving {self.spec.describe()}")
            device = self.resolver.resolve(self.spec)

            self.output.step(2, TOTAL_STEPS, f"Mounting {device} read-only")
            mount_point = self.mounts.mount()
            self.output.info(f"Volume available at {mount_point}")

            self.output.step(3, TOTAL_STEPS, "Creating temporary GnuPG home")
            self.workspace.create()

            self.output.step(4, TOTAL_STEPS, "Importing secret keys")
            self.importer.run()
            if self.ctx.mounted_by_session:
                self.output.warn(f"Volume is still mounted at {self.ctx.mount_point}; will retry at cleanup")

            self.output.step(5, TOTAL_STEPS, "Running gpg")
            try:
                return self.invoker.run(self.gpg_args)
            except DelegatedCommandFailed as e:
                self.output.warn(str(e))
                return e.exit_code
        finally:
            self.coordinator.cleanup()
            self.coordinator.uninstall()
            _session_logger.info("Session cleaned up")


# ============================================================
# COMMAND LINE
# ============================================================


def split_passthrough(argv: Sequence[str]) -> Tuple[List[str], List[str]]:
    """Split argv at the first "--" into (coldkey options, gpg arguments)."""
    argv = list(argv)
    if "--" in argv:
        index = argv.index("--")
        return argv[:index], argv[index + 1 :]
    return argv, []


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="coldkey",
        description="Run gpg with secret keys staged from an offline volume into a temporary GnuPG home.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  coldkey --label SECURE_KEY_3Z -- --edit-key alice@example.org
  coldkey --device /dev/sdb1 -- --list-secret-keys
  coldkey -f --uuid 1234-ABCD -- --armor --export-secret-subkeys alice > subkeys.asc

The volume must contain an ASCII-armored secret key export, by default
{FileNames.DEFAULT_KEY_FILE} at its root.
        """,
    )
    device = parser.add_argument_group("device (one is required unless set in the config file)")
    device.add_argument("--device", "-d", metavar="PATH", help="Block device of the offline volume")
    device.add_argument("--label", "-l", metavar="LABEL", help="Filesystem label of the offline volume")
    device.add_argument("--uuid", "-u", metavar="UUID", help="Filesystem UUID of the offline volume")

    parser.add_argument(
        "--key-file",
        "-k",
        metavar="FILE",
        help=f"Key file relative to the volume root (default: {FileNames.DEFAULT_KEY_FILE})",
    )
    parser.add_argument("--force", "-f", action="store_true", help="Do not ask for any confirmation")
    parser.add_argument(
        "--verbose", "-v", action="count", default=0, help="Show progress (-v) or trace every command (-vv)"
    )
    parser.add_argument("--config", "-c", type=Path, metavar="PATH", help="Path to config.json")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("gpg_args", nargs="*", metavar="GPG_ARG", help="Arguments for gpg (put them after --)")
    return parser


def main(argv: Optional[Sequence[str]] = None, environ: Optional[Mapping[str, str]] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    options, passthrough = split_passthrough(argv)
    args = build_parser().parse_args(options)

    output = CLIOutput.detect()

    try:
        config = load_config(args.config, environ=environ)
    except ColdKeyError as e:
        setup_logging(args.verbose)
        output.error(str(e))
        return e.exit_code

    overrides: Dict[str, Any] = {
        ConfigKeys.DEVICE: args.device,
        ConfigKeys.LABEL: args.label,
        ConfigKeys.UUID: args.uuid,
        ConfigKeys.KEY_FILE: args.key_file,
    }
    config = apply_overrides(config, overrides)
    log_file = config[ConfigKeys.LOG_FILE]
    setup_logging(args.verbose, Path(log_file) if log_file else None)

    if not host.is_linux():
        _session_logger.warning(f"coldkey relies on udisks and util-linux; {host.get_platform()} is not supported")

    prompter = Prompter(output, force=args.force)
    session = Session(config, [*args.gpg_args, *passthrough], output, prompter, environ=environ)

    try:
        returncode = session.run()
    except UserDeclined as e:
        output.warn(str(e))
        return e.exit_code
    except ColdKeyError as e:
        output.error(str(e))
        return e.exit_code

    if returncode == Limits.EXIT_OK:
        output.info("Done. Temporary keys removed.")
    return returncode


def cli() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nAborted by user.", file=sys.stderr)
        sys.exit(Limits.EXIT_FAILURE)


if __name__ == "__main__":
    cli()
