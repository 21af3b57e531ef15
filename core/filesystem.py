"""
Filesystem Operations Engine.

Implements the file and directory verbs on top of the remote tree store.
Every operation takes the caller's ``ShellContext`` and an optional
``Elevation`` token and returns a descriptive string; ordinary failures are
reported in that string, never raised.

Operations that may need the human (password entry, the edit surface) are
generators: they ``yield`` a ``Prompt`` and receive the answer, ``None``
meaning cancel.  Drive them with ``yield from`` or through ``core.command_engine``.

Storage round trips are independent; there is no locking between two
sessions working on the same path.
"""
import logging

from config.settings import SENTINEL_NAME, SENTINEL_VALUE
from core.audit import log_event
from core.context import ShellContext
from core.elevation import Elevation, internal_elevation, is_elevated
from core.keys import escape_segment, node_key
from core.moderation import BanList
from core.nodes import Directory, File, decode
from core.paths import basename, is_within, join, parent_of, resolve
from core.prompts import EDIT, Prompt
from core.store import TreeStore
from core.vault import PasswordVault, is_metadata_path

_audit = logging.getLogger("commands")


class FilesystemEngine:

    def __init__(self, store: TreeStore):
        self._store = store
        self.vault  = PasswordVault(store)
        self.bans   = BanList(store)

    # ── Storage helpers ───────────────────────────────────────────────────────

    def load(self, path: str):
        """Typed node at *path*, or None.  The root always exists."""
        node = decode(self._store.get(node_key(path)))
        if path == "/" and not isinstance(node, Directory):
            return Directory()
        return node

    def _under_file(self, verb: str, label: str, path: str):
        """
        Error when some ancestor of *path* is a file.  Writing there would
        turn the file into a mapping and drop its content.  The walk stops at
        the first existing directory.
        """
        cur = parent_of(path)
        while cur != "/":
            node = self.load(cur)
            if isinstance(node, File):
                return f"{verb}: not a directory: {label}"
            if isinstance(node, Directory):
                return None
            cur = parent_of(cur)
        return None

    def _gate(self, verb: str, label: str, path: str, elevated: bool):
        """Metadata and password checks shared by the read-style verbs."""
        if elevated:
            return None
        if is_metadata_path(path):
            return f"{verb}: permission denied to access metadata"
        if self.vault.is_protected(path):
            attempt = yield Prompt(f"Password for '{label}':")
            if not self.vault.check(path, attempt):
                return f"{verb}: incorrect password"
        return None

    def _new_password(self, verb: str, label: str, path: str):
        first = yield Prompt(f"Set password for '{label}':")
        if not first:
            return f"{verb}: cancelled"
        second = yield Prompt("Confirm password:")
        if first != second:
            return f"{verb}: passwords do not match"
        self.vault.set_password(path, first)
        return None

    # ── Verbs ─────────────────────────────────────────────────────────────────

    def mkdir(self, ctx: ShellContext, args: list, elevation: Elevation = None):
        protect  = bool(args) and args[0] == "-s"
        operands = args[1:] if protect else args
        target   = operands[0] if operands else ""
        if not target:
            return "mkdir: missing operand"
        elevated = is_elevated(elevation)
        path = resolve(target, ctx.cwd)
        if path == "/":
            return f"mkdir: name in use: {target}"
        if is_metadata_path(path) and not elevated:
            return "mkdir: permission denied to access metadata"

        parent = self.load(parent_of(path))
        if not isinstance(parent, Directory):
            return f"mkdir: parent not found: {target}"
        name = basename(path)
        if name in parent.entries:
            return f"mkdir: name in use: {target}"

        protected = protect and not elevated
        if protected:
            err = yield from self._new_password("mkdir", target, path)
            if err:
                return err

        self._store.update(node_key(parent_of(path)), {
            escape_segment(name): {escape_segment(SENTINEL_NAME): SENTINEL_VALUE},
        })
        return f"Directory '{target}' created" + (" (password-protected)" if protected else "")

    def ls(self, ctx: ShellContext, target: str = "", elevation: Elevation = None):
        elevated = is_elevated(elevation)
        path = resolve(target, ctx.cwd)
        node = self.load(path)
        if node is None:
            return f"ls: no such file or dir: {target}"
        err = yield from self._gate("ls", target or path, path, elevated)
        if err:
            return err

        if isinstance(node, File):
            return f"📄 {target or basename(path)}"
        names = sorted(node.names())
        if path == "/" and not elevated:
            names = [n for n in names if not is_metadata_path(join("/", n))]
        if not names:
            return "(empty directory)"
        return "\n".join(
            f"📁 {n}" if isinstance(node.child(n), Directory) else f"📄 {n}"
            for n in names
        )

    def file(self, ctx: ShellContext, target: str = "", elevation: Elevation = None):
        if not target:
            return "file: missing operand"
        path = resolve(target, ctx.cwd)
        node = self.load(path)
        if node is None:
            return f"file: no such file or dir: {target}"
        err = yield from self._gate("file", target, path, is_elevated(elevation))
        if err:
            return err
        if isinstance(node, File):
            return f"📄 '{target}' is a file"
        return f"📁 '{target}' is a directory"

    def cd(self, ctx: ShellContext, target: str = "", elevation: Elevation = None):
        if not target:
            return "cd: missing operand"
        path = resolve(target, ctx.cwd)
        node = self.load(path)
        if node is None:
            return f"cd: no such file or dir: {target}"
        if isinstance(node, File):
            return f"cd: not a directory: {target}"
        err = yield from self._gate("cd", target, path, is_elevated(elevation))
        if err:
            return err
        ctx.change_dir(path)
        return f"Changed directory to '{target}'"

    def cat(self, ctx: ShellContext, target: str = "", elevation: Elevation = None):
        if not target:
            return "cat: missing operand"
        path = resolve(target, ctx.cwd)
        node = self.load(path)
        if node is None:
            return f"cat: no such file: {target}"
        err = yield from self._gate("cat", target, path, is_elevated(elevation))
        if err:
            return err
        if isinstance(node, Directory):
            return f"cat: is a directory: {target}"
        return node.content

    def cp(self, ctx: ShellContext, src: str = "", dst: str = "", elevation: Elevation = None):
        if not src or not dst:
            return "cp: missing operand"
        elevated = is_elevated(elevation)
        sp, dp = resolve(src, ctx.cwd), resolve(dst, ctx.cwd)
        if sp == "/":
            # the root value also holds the password metadata
            return "cp: cannot copy root directory"
        raw = self._store.get(node_key(sp))
        if raw is None:
            return f"cp: no such file or dir: {src}"
        err = yield from self._gate("cp", src, sp, elevated)
        if err:
            return err
        if dp == "/":
            return "cp: cannot overwrite root directory"
        if is_metadata_path(dp) and not elevated:
            return "cp: permission denied to access metadata"
        err = self._under_file("cp", dst, dp)
        if err:
            return err
        err = yield from self._gate("cp", dst, dp, elevated)
        if err:
            return err
        # password entries stay with the source
        self._store.set(node_key(dp), raw)
        return f"Copied '{src}' to '{dst}'"

    def mv(self, ctx: ShellContext, src: str = "", dst: str = "", elevation: Elevation = None):
        if not src or not dst:
            return "mv: missing operand"
        elevated = is_elevated(elevation)
        sp, dp = resolve(src, ctx.cwd), resolve(dst, ctx.cwd)
        if sp == "/":
            return "mv: cannot move root directory"
        raw = self._store.get(node_key(sp))
        if raw is None:
            return f"mv: no such file or dir: {src}"
        if basename(sp) == SENTINEL_NAME and not elevated:
            return "mv: permission denied to move placeholder"
        err = yield from self._gate("mv", src, sp, elevated)
        if err:
            return err

        final = dp
        if isinstance(self.load(dp), Directory):
            final = join(dp, basename(sp))
        if is_within(final, sp):
            return f"mv: cannot move '{src}' into itself"
        if is_metadata_path(final) and not elevated:
            return "mv: permission denied to access metadata"
        err = self._under_file("mv", dst, final)
        if err:
            return err

        self._store.set(node_key(final), raw)
        # the read above already authorized the move, so the removal skips the prompts
        node = decode(raw)
        self._remove(sp, node, recursive=isinstance(node, Directory),
                     elevation=internal_elevation(ctx.identity))
        return f"Moved '{src}' to '{basename(final)}'"

    def rm(self, ctx: ShellContext, args: list, elevation: Elevation = None):
        recursive = "-r" in args
        target = next((a for a in args if a != "-r"), "")
        if not target:
            return "rm: missing operand"
        elevated = is_elevated(elevation)
        path = resolve(target, ctx.cwd)
        if path == "/":
            return "rm: cannot remove root directory"
        if is_metadata_path(path):
            return "rm: permission denied to remove password metadata"
        node = self.load(path)
        if node is None:
            return f"rm: no such file or dir: {target}"
        if basename(path) == SENTINEL_NAME and not elevated:
            return "rm: permission denied to remove placeholder"
        err = yield from self._gate("rm", target, path, elevated)
        if err:
            return err
        if isinstance(node, Directory) and not recursive and node.entries:
            return "rm: directory not empty (use -r)"

        self._remove(path, node, recursive, elevation)
        if isinstance(node, Directory):
            return f"Removed directory '{target}'"
        return f"Removed file '{target}'"

    def _remove(self, path: str, node, recursive: bool, elevation: Elevation):
        """
        Delete *path* and its password entry.  With *recursive*, every
        descendant's entry goes too; the subtree is already materialized in
        *node*, so the walk costs no extra reads.
        """
        doomed = [path]
        if recursive and isinstance(node, Directory):
            doomed += [p for p, _ in node.walk(path)]
        self._store.remove(node_key(path))
        self.vault.remove_many(doomed)
        log_event(_audit, "fs_remove", path=path, nodes=len(doomed),
                  elevation=elevation.reason if elevation else None)

    def vim(self, ctx: ShellContext, args: list, elevation: Elevation = None):
        protect  = bool(args) and args[0] == "-s"
        operands = args[1:] if protect else args
        target   = operands[0] if operands else ""
        if not target:
            return "vim: missing operand"
        elevated = is_elevated(elevation)
        path = resolve(target, ctx.cwd)
        node = self.load(path)
        if isinstance(node, Directory):
            return f"vim: cannot edit directory: {target}"
        if node is None:
            err = self._under_file("vim", target, path)
            if err:
                return err
        err = yield from self._gate("vim", target, path, elevated)
        if err:
            return err
        if protect and not elevated:
            err = yield from self._new_password("vim", target, path)
            if err:
                return err

        # the placeholder stays behind if the edit is cancelled
        existing = node.content if isinstance(node, File) else ""
        self._store.set(node_key(path), existing)
        edited = yield Prompt(f"Editing '{target}'", kind=EDIT, initial=existing)
        if edited is None:
            return "vim: editing canceled"
        self._store.set(node_key(path), edited)
        return f"File '{target}' saved."

    def write(self, ctx: ShellContext, target: str, text: str, elevation: Elevation = None):
        """Redirect target: overwrite or create a file.  Returns an error or None."""
        elevated = is_elevated(elevation)
        path = resolve(target, ctx.cwd)
        if is_metadata_path(path) and not elevated:
            return f"shell: permission denied to access metadata: {target}"
        node = self.load(path)
        if isinstance(node, Directory):
            return f"shell: cannot redirect to directory: {target}"
        if node is None:
            err = self._under_file("shell", target, path)
            if err:
                return err
        err = yield from self._gate("shell", target, path, elevated)
        if err:
            return err
        self._store.set(node_key(path), text)
        return None

    # ── Moderation ────────────────────────────────────────────────────────────
    # Callers verify elevation before reaching these.

    def ban(self, identity: str = "") -> str:
        if not identity:
            return "ban: missing operand"
        self.bans.ban(identity)
        return f"Banned '{identity}'"

    def unban(self, identity: str = "") -> str:
        if not identity:
            return "unban: missing operand"
        self.bans.unban(identity)
        return f"Unbanned '{identity}'"

    def listbanned(self) -> str:
        banned = self.bans.list()
        if not banned:
            return "(no banned users)"
        return "\n".join(banned)
