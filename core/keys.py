"""
Storage addressing for the virtual filesystem.

The remote store forbids ".", "$", "#", "[", "]" and "/" inside a key, so
every path segment is escaped before it becomes part of a key path and
unescaped again on read.  Both substitutions below are bijections: every
reserved character is replaced by a backslash-introduced name and the
backslash itself is doubled, so no two inputs share an escaped form.

Identity strings (e-mail addresses) use a second substitution where "."
becomes "*", which keeps ban-list keys readable.

The supported alphabet is any printable text; ASCII control characters are
rejected by the store and are not escaped.
"""
import re

from config.settings import (
    FS_PREFIX, PASSWORDS_DIR, ROOT_PASSWORD_KEY, BAN_PREFIX, CWD_PREFIX,
)
from core.paths import segments

# ── Substitution tables ───────────────────────────────────────────────────────

_SEGMENT_ESCAPES = {
    "\\": "\\\\",
    ".":  "\\period",
    "$":  "\\dollar",
    "#":  "\\hash",
    "[":  "\\lbracket",
    "]":  "\\rbracket",
    "/":  "\\slash",
}
_SEGMENT_UNESCAPES = {v[1:]: k for k, v in _SEGMENT_ESCAPES.items()}

_IDENTITY_ESCAPES = {**_SEGMENT_ESCAPES, "*": "\\star", ".": "*"}
_IDENTITY_UNESCAPES = {v[1:]: k for k, v in _IDENTITY_ESCAPES.items() if v.startswith("\\")}

_SEGMENT_SPECIAL = re.compile(r"[\\.$#\[\]/]")
_SEGMENT_ENCODED = re.compile(r"\\(\\|period|dollar|hash|lbracket|rbracket|slash)")
_IDENTITY_SPECIAL = re.compile(r"[\\.*$#\[\]/]")
_IDENTITY_ENCODED = re.compile(r"\\(\\|star|dollar|hash|lbracket|rbracket|slash)|\*")


def escape_segment(name: str) -> str:
    return _SEGMENT_SPECIAL.sub(lambda m: _SEGMENT_ESCAPES[m.group()], name)


def unescape_segment(key: str) -> str:
    return _SEGMENT_ENCODED.sub(lambda m: _SEGMENT_UNESCAPES[m.group(1)], key)


def escape_identity(identity: str) -> str:
    # "user.name@example.com" → "user*name@example*com"
    return _IDENTITY_SPECIAL.sub(lambda m: _IDENTITY_ESCAPES[m.group()], identity)


def unescape_identity(key: str) -> str:
    def _sub(m):
        if m.group() == "*":
            return "."
        return _IDENTITY_UNESCAPES[m.group(1)]
    return _IDENTITY_ENCODED.sub(_sub, key)


# ── Key paths ─────────────────────────────────────────────────────────────────

METADATA_PATH = "/" + PASSWORDS_DIR
PASSWORDS_KEY = f"{FS_PREFIX}/{PASSWORDS_DIR}"


def node_key(path: str) -> str:
    """Key path of the filesystem node at resolved *path*."""
    return "/".join([FS_PREFIX] + [escape_segment(s) for s in segments(path)])


def password_entry(path: str) -> str:
    """
    Child key of *path* inside the flat password mapping.

    The whole path is escaped as a single key ("/" included), so entries for
    nested paths never overlap and the root gets a literal of its own.
    """
    if path == "/":
        return ROOT_PASSWORD_KEY
    return escape_segment(path[1:])


def password_key(path: str) -> str:
    return f"{PASSWORDS_KEY}/{password_entry(path)}"


def ban_key(identity: str = "") -> str:
    if not identity:
        return BAN_PREFIX
    return f"{BAN_PREFIX}/{escape_identity(identity)}"


def cwd_key(identity: str) -> str:
    return f"{CWD_PREFIX}/{escape_identity(identity)}"
