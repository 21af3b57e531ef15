"""
Per-path password metadata.

Entries live in one flat mapping under the metadata directory of the
filesystem subtree (``/__PASSWORDS__``).  Presence of an entry means the path
is protected.  Values are kept as entered; they are not hashed.
"""
import hmac

from core.keys import METADATA_PATH, PASSWORDS_KEY, password_entry, password_key
from core.paths import is_within
from core.store import TreeStore


def is_metadata_path(path: str) -> bool:
    return is_within(path, METADATA_PATH)


class PasswordVault:

    def __init__(self, store: TreeStore):
        self._store = store

    def get(self, path: str):
        value = self._store.get(password_key(path))
        return value if isinstance(value, str) else None

    def is_protected(self, path: str) -> bool:
        return self.get(path) is not None

    def set_password(self, path: str, value: str) -> None:
        self._store.set(password_key(path), value)

    def check(self, path: str, attempt, elevated: bool = False) -> bool:
        if elevated:
            return True
        expected = self.get(path)
        if expected is None:
            return True
        if attempt is None:
            return False
        return hmac.compare_digest(str(attempt).encode(), expected.encode())

    def remove(self, path: str) -> None:
        self._store.remove(password_key(path))

    def remove_many(self, paths) -> None:
        """Drop the entries of several paths in a single round trip."""
        batch = {password_entry(p): None for p in paths}
        if batch:
            self._store.update(PASSWORDS_KEY, batch)
