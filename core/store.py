"""
Remote tree store backends.

The shell consumes the store only through four primitives addressed by
slash-joined key paths:

    get(key)             → stored value, or None when nothing is there
    set(key, value)      → overwrite (None removes)
    update(key, mapping) → multi-path merge below key (None values remove)
    remove(key)          → delete, no-op when absent

Values are strings, booleans, numbers or nested mappings.  As in a Firebase
Realtime Database, an empty mapping is the same as no value at all, so a
directory only exists while it has at least one child.

No backend offers transactions or version tokens; concurrent writers on the
same key interleave freely.
"""
import copy
import json
import logging
import threading
from urllib.parse import quote

import requests

from config.settings import STORE_BACKEND, FIREBASE_URL, FIREBASE_AUTH, STORE_TIMEOUT
from core.errors import StoreError

_log = logging.getLogger("system")


def _split(key: str) -> list[str]:
    return [p for p in key.split("/") if p]


def _clean(value):
    """Drop None leaves and empty mappings the way the remote store does."""
    if isinstance(value, dict):
        out = {}
        for k, v in value.items():
            v = _clean(v)
            if v is not None:
                out[k] = v
        return out or None
    return value


class TreeStore:
    """Interface shared by every backend."""

    def get(self, key: str):
        raise NotImplementedError

    def set(self, key: str, value) -> None:
        raise NotImplementedError

    def update(self, key: str, mapping: dict) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class MemoryTreeStore(TreeStore):
    """In-process tree with the same semantics as the remote database."""

    def __init__(self, data: dict = None):
        self._root: dict = _clean(copy.deepcopy(data or {})) or {}
        self._lock = threading.Lock()

    def get(self, key: str):
        with self._lock:
            node = self._root
            for part in _split(key):
                if not isinstance(node, dict) or part not in node:
                    return None
                node = node[part]
            return copy.deepcopy(node) if node != {} else None

    def set(self, key: str, value) -> None:
        with self._lock:
            self._set(_split(key), _clean(copy.deepcopy(value)))

    def update(self, key: str, mapping: dict) -> None:
        base = _split(key)
        with self._lock:
            for child, value in mapping.items():
                self._set(base + _split(child), _clean(copy.deepcopy(value)))

    def remove(self, key: str) -> None:
        with self._lock:
            self._set(_split(key), None)

    def snapshot(self) -> dict:
        with self._lock:
            return copy.deepcopy(self._root)

    # ── Internals ─────────────────────────────────────────────────────────────

    def _set(self, parts: list[str], value) -> None:
        if not parts:
            self._root = value if isinstance(value, dict) else {}
            return
        trail = [self._root]
        node = self._root
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                if value is None:
                    return
                child = node[part] = {}
            node = child
            trail.append(node)
        if value is None:
            node.pop(parts[-1], None)
        else:
            node[parts[-1]] = value
        # prune mappings left empty by a delete
        for depth in range(len(parts) - 1, 0, -1):
            if trail[depth]:
                break
            trail[depth - 1].pop(parts[depth - 1], None)


class FirebaseTreeStore(TreeStore):
    """Firebase Realtime Database over its REST interface."""

    def __init__(self, url: str = FIREBASE_URL, auth: str = FIREBASE_AUTH,
                 timeout: float = STORE_TIMEOUT, session: requests.Session = None):
        if not url:
            raise ValueError("FirebaseTreeStore requires a database URL")
        self._url     = url.rstrip("/")
        self._auth    = auth
        self._timeout = timeout
        self._http    = session or requests.Session()

    def get(self, key: str):
        return self._request("GET", key, decode=True)

    def set(self, key: str, value) -> None:
        if value is None:
            self.remove(key)
            return
        self._request("PUT", key, body=value, silent=True)

    def update(self, key: str, mapping: dict) -> None:
        if mapping:
            self._request("PATCH", key, body=mapping, silent=True)

    def remove(self, key: str) -> None:
        self._request("DELETE", key, silent=True)

    def close(self) -> None:
        self._http.close()

    def _request(self, method: str, key: str, body=None, silent: bool = False,
                 decode: bool = False):
        params = {}
        if self._auth:
            params["auth"] = self._auth
        if silent:
            params["print"] = "silent"
        url = f"{self._url}/{quote(key.strip('/'), safe='/@*')}.json"
        try:
            resp = self._http.request(method, url, params=params, json=body,
                                      timeout=self._timeout)
            resp.raise_for_status()
            if decode:
                return resp.json()
        except (requests.RequestException, ValueError) as exc:
            _log.error(json.dumps({
                "event": "store_error", "method": method, "key": key, "error": str(exc),
            }))
            raise StoreError(f"{method} {key} failed: {exc}", key) from exc
        return resp


def create_store(backend: str = STORE_BACKEND, url: str = FIREBASE_URL,
                 auth: str = FIREBASE_AUTH) -> TreeStore:
    if backend == "memory":
        return MemoryTreeStore()
    if backend == "firebase":
        return FirebaseTreeStore(url=url, auth=auth)
    raise ValueError(f"unknown store backend: {backend!r}")
