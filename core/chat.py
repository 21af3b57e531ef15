"""
Chat-side entry point for ``/shell`` messages.

Wraps one ``Shell`` per identity with the checks the chat applies before a
command runs: the ban list, the empty-command hint and the sudo password
challenge that issues an ``Elevation`` for the invocation.
"""
import threading

from config.settings import ELEVATE_KEYWORD, HELP_HINT, SHELL_PREFIX
from core.command_engine import Shell
from core.context import ShellContext
from core.elevation import ElevationGate
from core.errors import AuthenticationError
from core.filesystem import FilesystemEngine
from core.moderation import BanList
from core.prompts import Reply
from core.store import TreeStore


def wants_elevation(command: str) -> bool:
    """True when any pipeline stage starts with the elevation keyword."""
    for stage in command.split("|"):
        tokens = stage.split()
        if tokens and tokens[0] == ELEVATE_KEYWORD:
            return True
    return False


def strip_prefix(message: str) -> str:
    text = message.strip()
    if text.lower().startswith(SHELL_PREFIX):
        text = text[len(SHELL_PREFIX):]
    return text.strip()


class ChatShell:

    def __init__(self, store: TreeStore, gate: ElevationGate = None, db=None,
                 hint: str = HELP_HINT):
        self._store  = store
        self._engine = FilesystemEngine(store)
        self._bans   = BanList(store)
        self._gate   = gate or ElevationGate()
        self._db     = db
        self._hint   = hint
        self._shells: dict[str, Shell] = {}
        self._lock   = threading.Lock()

    def shell_for(self, identity: str) -> Shell:
        with self._lock:
            shell = self._shells.get(identity)
            if shell is None:
                ctx = ShellContext(identity, self._store)
                shell = self._shells[identity] = Shell(self._store, ctx, self._engine)
            return shell

    def handle(self, identity: str, message: str, sudo_password: str = None):
        """Run a chat message; returns ``Reply`` or ``AwaitingInput``."""
        if not identity:
            raise AuthenticationError("Must be signed in")
        command = strip_prefix(message)

        if self._bans.is_banned(identity):
            return self._frame(Reply("You have been banned."))
        if not command:
            return self._frame(Reply("No command detected"))

        elevation = None
        if wants_elevation(command):
            elevation = self._gate.verify(identity, sudo_password)
            if self._db:
                self._db.insert_elevation(identity, elevation is not None)
            if elevation is None:
                return Reply("Incorrect Sudo Password\nNo command executed")

        if self._db:
            self._db.insert_command(identity, command, elevation is not None)
        return self._frame(self.shell_for(identity).exec(command, elevation))

    def respond(self, identity: str, answer):
        """Answer the prompt pending for *identity* (``None`` cancels)."""
        if not identity:
            raise AuthenticationError("Must be signed in")
        return self._frame(self.shell_for(identity).resume(answer))

    def _frame(self, result):
        if isinstance(result, Reply) and self._hint:
            return Reply(f"{self._hint}\n\n{result.text}")
        return result
