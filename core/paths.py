"""
Path helpers for the virtual filesystem.

Paths are plain strings. A resolved path always starts with "/" and never
ends with one, except for the root itself.
"""


def resolve(path: str, cwd: str = "/") -> str:
    """Normalize *path* against *cwd* into an absolute path. Never raises.

    Absolute input ignores *cwd* but is normalized the same way, so
    "/a//b/./" and "/a/b/" both resolve to "/a/b".
    """
    base = "" if path.startswith("/") else cwd
    stack: list[str] = []
    for seg in base.split("/") + path.split("/"):
        if not seg or seg == ".":
            continue
        if seg == "..":
            if stack:
                stack.pop()
        else:
            stack.append(seg)
    return "/" + "/".join(stack) if stack else "/"


def parent_of(path: str) -> str:
    return path[:path.rfind("/")] or "/"


def basename(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def join(parent: str, name: str) -> str:
    return f"/{name}" if parent == "/" else f"{parent}/{name}"


def segments(path: str) -> list[str]:
    return [] if path == "/" else path[1:].split("/")


def is_within(path: str, ancestor: str) -> bool:
    """True when *path* is *ancestor* or lies below it."""
    if ancestor == "/":
        return True
    return path == ancestor or path.startswith(ancestor + "/")
