#!/usr/bin/env python3
"""
Unit tests for CommandInvoker and GpgTool argv building.
"""

from pathlib import Path

import pytest

from coldkey.core.context import SessionContext, SessionState
from coldkey.core.errors import DelegatedCommandFailed, UserDeclined
from coldkey.core.gpg import GpgTool
from coldkey.core.paths import Paths
from coldkey.scripts.invoke import CommandInvoker


@pytest.fixture
def ready_ctx(tmp_path):
    ctx = SessionContext()
    ctx.workspace_path = tmp_path / "ws"
    ctx.workspace_path.mkdir(mode=0o700)
    return ctx


class TestBuildArgv:
    """Tests for the delegated command line."""

    def test_argv_uses_workspace_and_caller_keyring(self, ready_ctx, session_env, make_prompter):
        invoker = CommandInvoker(ready_ctx, make_prompter(force=True), environ=session_env)

        argv = invoker.build_argv(["--edit-key", "alice@example.org"])

        keyring = Path(session_env["GNUPGHOME"]) / "pubring.kbx"
        assert argv == [
            "gpg",
            "--homedir",
            str(ready_ctx.workspace_path),
            "--no-default-keyring",
            "--keyring",
            str(keyring),
            "--edit-key",
            "alice@example.org",
        ]

    def test_arguments_pass_through_verbatim(self, ready_ctx, session_env, make_prompter):
        extra = ["--comment", "two words", "--", "-weird-name"]
        argv = CommandInvoker(ready_ctx, make_prompter(force=True), environ=session_env).build_argv(extra)
        assert argv[-4:] == extra

    def test_custom_gpg_program(self, ready_ctx, session_env, make_prompter):
        gpg = GpgTool(gpg="/usr/local/bin/gpg2")
        argv = CommandInvoker(ready_ctx, make_prompter(force=True), gpg=gpg, environ=session_env).build_argv([])
        assert argv[0] == "/usr/local/bin/gpg2"


class TestPublicKeyring:
    """Tests for Paths.public_keyring selection."""

    def test_kbx_preferred(self, tmp_path):
        (tmp_path / "pubring.kbx").touch()
        (tmp_path / "pubring.gpg").touch()
        assert Paths.public_keyring({"GNUPGHOME": str(tmp_path)}) == tmp_path / "pubring.kbx"

    def test_legacy_keyring_when_only_one(self, tmp_path):
        (tmp_path / "pubring.gpg").touch()
        assert Paths.public_keyring({"GNUPGHOME": str(tmp_path)}) == tmp_path / "pubring.gpg"

    def test_missing_keyring_warns(self, ready_ctx, tmp_path, make_prompter, caplog):
        environ = {"GNUPGHOME": str(tmp_path / "empty")}
        invoker = CommandInvoker(ready_ctx, make_prompter(force=True), environ=environ)

        with caplog.at_level("WARNING", logger="coldkey.invoke"):
            keyring = invoker.public_keyring()

        assert keyring == tmp_path / "empty" / "pubring.kbx"
        assert "does not exist" in caplog.text


class TestRun:
    """Tests for CommandInvoker.run."""

    def test_success(self, fake_host, ready_ctx, session_env, make_prompter):
        invoker = CommandInvoker(ready_ctx, make_prompter(force=True), environ=session_env)

        assert invoker.run(["--list-secret-keys"]) == 0
        assert fake_host.sessions()[0][-1] == "--list-secret-keys"
        assert ready_ctx.state == SessionState.COMMAND_RAN

    def test_non_zero_exit_is_reported(self, fake_host, ready_ctx, session_env, make_prompter):
        fake_host.gpg_rc = 2

        with pytest.raises(DelegatedCommandFailed) as exc_info:
            CommandInvoker(ready_ctx, make_prompter(force=True), environ=session_env).run([])

        assert exc_info.value.exit_code == 2
        assert ready_ctx.state == SessionState.COMMAND_RAN

    def test_killed_by_signal_maps_to_shell_status(self):
        assert DelegatedCommandFailed(-15).exit_code == 143

    def test_confirmation_shows_command(self, fake_host, ready_ctx, session_env, make_prompter):
        prompter = make_prompter(answers=[True])

        CommandInvoker(ready_ctx, prompter, environ=session_env).run(["--sign", "my file.txt"])

        assert prompter.asked[0].startswith("Run: gpg --homedir")
        assert "'my file.txt'" in prompter.asked[0]

    def test_declined(self, fake_host, ready_ctx, session_env, make_prompter):
        with pytest.raises(UserDeclined):
            CommandInvoker(ready_ctx, make_prompter(answers=[False]), environ=session_env).run([])
        assert fake_host.sessions() == []
