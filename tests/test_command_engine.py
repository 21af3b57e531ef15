"""Tests for the command dispatcher: pipelines, redirects and elevation."""

import json
import logging
import threading
import time

import pytest

from core.command_engine import HELP_TEXT, Shell
from core.context import ShellContext
from core.errors import AuthenticationError
from core.prompts import AwaitingInput, Reply
from core.store import MemoryTreeStore


class TestPipeline:
    """Tests for stage chaining."""

    def test_echo_into_cat(self, shell):
        assert shell.execute("echo hello | cat") == "hello"

    def test_echo_joins_arguments(self, shell):
        assert shell.execute("echo  hello   world ") == "hello world"

    def test_echo_without_arguments_passes_stdin(self, shell):
        assert shell.execute("echo hi | echo | echo") == "hi"

    def test_unknown_command(self, shell):
        assert shell.execute("bogus") == "shell: command not found: bogus"

    def test_unknown_command_does_not_abort(self, shell):
        """The error text flows on as ordinary stdin."""
        assert shell.execute("echo a | bogus | cat") == "shell: command not found: bogus"

    def test_empty_stage(self, shell):
        assert shell.execute("echo a |") == "shell: command not found: "

    def test_help(self, shell):
        assert shell.execute("help") == HELP_TEXT
        assert shell.execute("-h") == HELP_TEXT
        assert "mkdir [-s] <dir>" in HELP_TEXT

    def test_pwd(self, shell):
        assert shell.execute("pwd") == "/"


class TestRedirect:
    """Tests for a trailing "> target" on the last stage."""

    def test_write_then_cat(self, shell):
        assert shell.execute("echo hello > /tmp/f") == "hello"
        assert shell.execute("cat /tmp/f") == "hello"

    def test_without_space(self, shell):
        shell.execute("echo hello >f")
        assert shell.execute("cat f") == "hello"

    def test_save_idiom(self, shell):
        shell.execute("echo hi > a")
        assert shell.execute("cat a | echo > b") == "hi"
        assert shell.execute("cat b") == "hi"

    def test_overwrite(self, shell):
        shell.execute("echo one > f")
        shell.execute("echo two > f")
        assert shell.execute("cat f") == "two"

    def test_error_text_is_persisted(self, shell):
        shell.execute("ls nope > out")
        assert shell.execute("cat out") == "ls: no such file or dir: nope"

    def test_directory_target_refused(self, shell, caplog):
        """The computed text comes back unchanged; the refusal is logged."""
        shell.execute("mkdir d")
        with caplog.at_level(logging.INFO, logger="commands"):
            assert shell.execute("echo x > d") == "x"
        refusals = [json.loads(r.getMessage()) for r in caplog.records
                    if "redirect_refused" in r.getMessage()]
        assert refusals[0]["reason"] == "shell: cannot redirect to directory: d"
        assert shell.execute("ls d") == "📄 DONOTDELETE"

    def test_metadata_target_refused(self, shell, store):
        shell.execute("mkdir -s locked", answers=["pw", "pw"])
        result = shell.execute("echo pwned > __PASSWORDS__/locked")
        assert result == "pwned"
        assert store.get("shellFS/__PASSWORDS__/locked") == "pw"

    def test_protected_target(self, shell):
        shell.execute("vim -s f", answers=["pw", "pw", "old"])

        assert shell.execute("echo new > f", answers=["wrong"]) == "new"
        assert shell.execute("cat f", answers=["pw"]) == "old"
        assert shell.execute("echo new > f", answers=["pw"]) == "new"
        assert shell.execute("cat f", answers=["pw"]) == "new"


class TestElevation:
    """Tests for the per-stage elevation keyword."""

    def test_sudo_without_token(self, shell):
        assert shell.execute("sudo ls") == "sudo: permission denied (elevation not granted)"

    def test_bare_boolean_is_ignored(self, shell):
        assert shell.execute("sudo ls", True) == "sudo: permission denied (elevation not granted)"

    def test_sudo_missing_command(self, shell, elevation):
        assert shell.execute("sudo", elevation) == "sudo: missing command"

    def test_elevation_is_per_stage(self, shell, elevation):
        shell.execute("mkdir -s locked", answers=["pw", "pw"])
        assert shell.execute("sudo echo | ls locked", elevation) == "ls: incorrect password"

    def test_token_without_keyword_does_not_elevate(self, shell, elevation):
        shell.execute("mkdir -s locked", answers=["pw", "pw"])
        assert shell.execute("ls locked", elevation) == "ls: incorrect password"


class TestModeration:
    """Tests for ban, unban and listbanned."""

    def test_requires_elevation(self, shell):
        assert shell.execute("ban bob@example.com") == "ban: permission denied (use sudo)"
        assert shell.execute("listbanned") == "listbanned: permission denied (use sudo)"

    def test_ban_cycle(self, shell, elevation, store):
        assert shell.execute("sudo listbanned", elevation) == "(no banned users)"
        assert shell.execute("sudo ban bob.j@example.com", elevation) == "Banned 'bob.j@example.com'"
        assert store.get("ban") == {"bob*j@example*com": True}
        assert shell.execute("sudo listbanned", elevation) == "bob.j@example.com"
        assert shell.execute("sudo unban bob.j@example.com", elevation) == "Unbanned 'bob.j@example.com'"
        assert shell.execute("sudo listbanned", elevation) == "(no banned users)"

    def test_missing_operand(self, shell, elevation):
        assert shell.execute("sudo ban", elevation) == "ban: missing operand"


class TestSessionState:
    """Tests for exec / resume bookkeeping."""

    def test_requires_identity(self, store):
        shell = Shell(store, ShellContext("", store))
        with pytest.raises(AuthenticationError):
            shell.exec("ls")

    def test_loads_context_once(self, shell, context, store):
        store.set("cwd/alice*smith@example*com", "/saved")
        shell.exec("pwd")
        assert context.loaded
        assert shell.execute("pwd") == "/saved"

    def test_invalid_stored_cwd_resets(self, shell, store):
        store.set("cwd/alice*smith@example*com", {"weird": "shape"})
        assert shell.execute("pwd") == "/"

    def test_resume_without_prompt(self, shell):
        assert shell.resume("x") == Reply("shell: nothing is waiting for input")

    def test_new_command_abandons_prompt(self, shell):
        assert isinstance(shell.exec("vim a.txt"), AwaitingInput)
        assert shell.pending

        assert shell.exec("pwd") == Reply("/")
        assert not shell.pending

    def test_concurrent_answers_are_serialised(self, identity):
        """Two answers racing for one prompt: one finishes it, the other finds nothing pending."""

        class SlowStore(MemoryTreeStore):
            def get(self, key):
                time.sleep(0.05)
                return super().get(key)

        store = SlowStore()
        shell = Shell(store, ShellContext(identity, store))
        shell.execute("mkdir -s p", answers=["pw", "pw"])
        assert isinstance(shell.exec("ls p"), AwaitingInput)

        results, errors = [], []

        def answer():
            try:
                results.append(shell.resume("pw"))
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=answer) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert errors == []
        assert sorted(r.text for r in results) == [
            "shell: nothing is waiting for input",
            "📄 DONOTDELETE",
        ]
        assert not shell.pending
