"""
Typed view of stored filesystem values.

The store keeps a file as a string and a directory as a mapping of escaped
child names.  Everything above the store works on the two variants below
instead of probing raw shapes.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

from core.keys import escape_segment, unescape_segment
from core.paths import join


@dataclass(frozen=True)
class File:
    content: str = ""


@dataclass(frozen=True)
class Directory:
    # unescaped child name → raw stored value of that child
    entries: dict = field(default_factory=dict)

    def names(self) -> list[str]:
        return list(self.entries)

    def child(self, name: str) -> Optional[Node]:
        return decode(self.entries.get(name))

    def walk(self, path: str) -> Iterator[tuple[str, Node]]:
        """Yield (path, node) for every descendant, children before parents."""
        stack = [(path, self, False)]
        while stack:
            cur_path, node, expanded = stack.pop()
            if isinstance(node, Directory) and not expanded:
                stack.append((cur_path, node, True))
                for name in node.names():
                    stack.append((join(cur_path, name), node.child(name), False))
                continue
            if cur_path != path:
                yield cur_path, node


Node = Union[File, Directory]


def decode(raw) -> Optional[Node]:
    if raw is None:
        return None
    if isinstance(raw, dict):
        return Directory({unescape_segment(k): v for k, v in raw.items()})
    if isinstance(raw, bool):
        return File("true" if raw else "false")
    return File(str(raw))


def encode(node: Node):
    if isinstance(node, File):
        return node.content
    return {escape_segment(k): v for k, v in node.entries.items()}
