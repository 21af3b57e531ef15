"""Ban list: a flat mapping of escaped identity → true."""
from core.keys import ban_key, escape_identity, unescape_identity
from core.store import TreeStore


class BanList:

    def __init__(self, store: TreeStore):
        self._store = store

    def ban(self, identity: str) -> None:
        self._store.update(ban_key(), {escape_identity(identity): True})

    def unban(self, identity: str) -> None:
        self._store.remove(ban_key(identity))

    def list(self) -> list[str]:
        raw = self._store.get(ban_key())
        if not isinstance(raw, dict):
            return []
        return sorted(unescape_identity(k) for k in raw)

    def is_banned(self, identity: str) -> bool:
        return self._store.get(ban_key(identity)) is not None
