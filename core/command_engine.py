"""
Command Engine – runs shell command lines against the virtual filesystem.

Key features
------------
* Pipelines: ``a | b | c`` – each stage gets the previous stage's output as stdin
* Redirection: a trailing ``> path`` on the last stage saves the final output
* ``sudo`` prefix per stage, honoured only with an ``Elevation`` token
* Interactive prompts surface as ``AwaitingInput`` and continue via ``resume``
* Unknown commands produce text, so a pipeline never aborts midway
* JSON audit logging of every command line
"""
import inspect
import json
import logging
import re
import threading

from config.settings import ELEVATE_KEYWORD
from core.audit import now_iso
from core.context import ShellContext
from core.elevation import Elevation, is_elevated
from core.errors import AuthenticationError
from core.filesystem import FilesystemEngine
from core.prompts import AwaitingInput, Reply
from core.store import TreeStore

cmd_logger = logging.getLogger("commands")

_REDIRECT = re.compile(r"(.*)>\s*(\S+)$", re.DOTALL)

HELP_TEXT = "\n".join([
    "Available commands:",
    "  ls [path]            List files & directories",
    "  file <path>          File or directory?",
    "  mkdir [-s] <dir>     Make dir; -s password-protected",
    "  cd <dir>             Change directory",
    "  rm [-r] <path>       Remove; -r recursive",
    "  cp <src> <dst>       Copy file or directory",
    "  mv <src> <dst>       Move / rename",
    "  cat <file>           Show file contents",
    "  echo <text>          Print text",
    "  vim [-s] <file>      Edit file; -s password-protected",
    f"  {ELEVATE_KEYWORD} ban <email>     Ban email",
    f"  {ELEVATE_KEYWORD} unban <email>   Unban email",
    f"  {ELEVATE_KEYWORD} listbanned      List banned emails",
    "  help, -h             Show this help text",
    "  pwd                  Print working directory",
    "",
    "Supports piping (|) & redirect (>) like Unix.",
])

MODERATION_CMDS = {"ban", "unban", "listbanned"}


def _arg(args: list, i: int) -> str:
    return args[i] if len(args) > i else ""


class Shell:
    """
    Command dispatcher bound to one session context.

    ``exec`` starts a command line.  When a stage needs the human, the result
    is ``AwaitingInput``; pass the answer (``None`` to cancel) to ``resume``
    until a ``Reply`` comes back.  Only one command line is in flight at a
    time; concurrent callers for the same context wait their turn.
    """

    def __init__(self, store: TreeStore, context: ShellContext, engine: FilesystemEngine = None):
        self.context  = context
        self.engine   = engine or FilesystemEngine(store)
        self._pending = None
        self._lock    = threading.Lock()
        e, ctx = self.engine, context
        self._commands = {
            "echo":       lambda a, stdin, el: " ".join(a) if a else stdin,
            "cp":         lambda a, stdin, el: e.cp(ctx, _arg(a, 0), _arg(a, 1), el),
            "mv":         lambda a, stdin, el: e.mv(ctx, _arg(a, 0), _arg(a, 1), el),
            "ls":         lambda a, stdin, el: e.ls(ctx, _arg(a, 0), el),
            "file":       lambda a, stdin, el: e.file(ctx, _arg(a, 0), el),
            "mkdir":      lambda a, stdin, el: e.mkdir(ctx, a, el),
            "vim":        lambda a, stdin, el: e.vim(ctx, a, el),
            "cd":         lambda a, stdin, el: e.cd(ctx, _arg(a, 0), el),
            "rm":         lambda a, stdin, el: e.rm(ctx, a, el),
            "cat":        lambda a, stdin, el: stdin or e.cat(ctx, _arg(a, 0), el),
            "ban":        lambda a, stdin, el: e.ban(_arg(a, 0)),
            "unban":      lambda a, stdin, el: e.unban(_arg(a, 0)),
            "listbanned": lambda a, stdin, el: e.listbanned(),
            "help":       lambda a, stdin, el: HELP_TEXT,
            "-h":         lambda a, stdin, el: HELP_TEXT,
            "pwd":        lambda a, stdin, el: ctx.cwd,
        }

    @property
    def pending(self) -> bool:
        return self._pending is not None

    # ── Public API ────────────────────────────────────────────────────────────

    def exec(self, line: str, elevation: Elevation = None):
        if not self.context.identity:
            raise AuthenticationError("Must be signed in")
        with self._lock:
            if not self.context.loaded:
                self.context.load()
            if self._pending is not None:
                self._pending.close()
                self._pending = None
                cmd_logger.info(json.dumps({
                    "timestamp": now_iso(), "event_type": "prompt_abandoned",
                    "identity": self.context.identity,
                }))

            cmd_logger.info(json.dumps({
                "timestamp":  now_iso(),
                "event_type": "shell_command",
                "identity":   self.context.identity,
                "cwd":        self.context.cwd,
                "command":    line,
                "elevated":   is_elevated(elevation),
            }))
            self._pending = self._pipeline(line, elevation)
            return self._advance(None)

    def resume(self, answer):
        with self._lock:
            if self._pending is None:
                return Reply("shell: nothing is waiting for input")
            return self._advance(answer)

    def execute(self, line: str, elevation: Elevation = None, answers=()) -> str:
        """Run *line* to completion, answering prompts from *answers* (then cancelling)."""
        answers = iter(answers)
        result = self.exec(line, elevation)
        while isinstance(result, AwaitingInput):
            result = self.resume(next(answers, None))
        return result.text

    # ── Pipeline ──────────────────────────────────────────────────────────────

    def _advance(self, answer):
        gen = self._pending
        try:
            prompt = gen.send(answer)
        except StopIteration as stop:
            self._pending = None
            return Reply(stop.value)
        except BaseException:
            self._pending = None
            raise
        return AwaitingInput(prompt)

    def _pipeline(self, line: str, elevation: Elevation):
        stages = [s.strip() for s in line.split("|")]
        redirect = None
        m = _REDIRECT.match(stages[-1])
        if m:
            stages[-1], redirect = m.group(1).strip(), m.group(2)

        out = ""
        stage_elevation = None
        for stage in stages:
            out, stage_elevation = yield from self._run_stage(stage, out, elevation)

        if redirect:
            err = yield from self.engine.write(self.context, redirect, out, stage_elevation)
            if err:
                cmd_logger.info(json.dumps({
                    "timestamp": now_iso(), "event_type": "redirect_refused",
                    "identity": self.context.identity, "target": redirect, "reason": err,
                }))
        return out

    def _run_stage(self, stage: str, stdin: str, elevation: Elevation):
        tokens = stage.split()
        stage_elevation = None
        if tokens and tokens[0] == ELEVATE_KEYWORD:
            tokens.pop(0)
            if not is_elevated(elevation):
                return f"{ELEVATE_KEYWORD}: permission denied (elevation not granted)", None
            stage_elevation = elevation
            if not tokens:
                return f"{ELEVATE_KEYWORD}: missing command", stage_elevation

        action = tokens[0] if tokens else ""
        args   = tokens[1:]
        handler = self._commands.get(action)
        if handler is None:
            return f"shell: command not found: {action}", stage_elevation
        if action in MODERATION_CMDS and stage_elevation is None:
            return f"{action}: permission denied (use {ELEVATE_KEYWORD})", None

        out = handler(args, stdin, stage_elevation)
        if inspect.isgenerator(out):
            out = yield from out
        return out, stage_elevation
