"""
Per-session shell context.

The working directory belongs to one identity and is passed explicitly into
every engine call.  It is read from the store once, on first use, and written
back after every successful ``cd``.
"""
from core.keys import cwd_key
from core.store import TreeStore


class ShellContext:

    def __init__(self, identity: str, store: TreeStore):
        self.identity = identity
        self._store   = store
        self._cwd     = "/"
        self.loaded   = False

    @property
    def cwd(self) -> str:
        return self._cwd

    def load(self) -> None:
        stored = self._store.get(cwd_key(self.identity))
        if isinstance(stored, str) and stored.startswith("/"):
            self._cwd = stored
        else:
            self._cwd = "/"
            self._store.set(cwd_key(self.identity), "/")
        self.loaded = True

    def change_dir(self, path: str) -> None:
        self._cwd = path
        self._store.set(cwd_key(self.identity), path)
