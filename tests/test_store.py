"""Tests for the tree store backends."""

from unittest.mock import MagicMock

import pytest
import requests

from core.errors import StoreError
from core.store import FirebaseTreeStore, MemoryTreeStore, create_store


class TestMemoryTreeStore:
    """Tests for the in-process backend."""

    def test_get_missing(self, store):
        assert store.get("nothing/here") is None

    def test_set_and_get_nested(self, store):
        store.set("a/b/c", "x")
        assert store.get("a/b/c") == "x"
        assert store.get("a") == {"b": {"c": "x"}}

    def test_empty_mapping_vanishes(self, store):
        """An empty mapping is the same as no value."""
        store.set("a", {})
        assert store.get("a") is None
        store.set("b", {"c": {}})
        assert store.get("b") is None

    def test_remove_prunes_empty_parents(self, store):
        store.set("a/b/c", "x")
        store.remove("a/b/c")
        assert store.get("a") is None
        assert store.snapshot() == {}

    def test_remove_keeps_siblings(self, store):
        store.set("a/b", "1")
        store.set("a/c", "2")
        store.remove("a/b")
        assert store.get("a") == {"c": "2"}

    def test_remove_missing_is_noop(self, store):
        store.set("a", "1")
        store.remove("x/y/z")
        assert store.snapshot() == {"a": "1"}

    def test_set_none_removes(self, store):
        store.set("a", "1")
        store.set("a", None)
        assert store.get("a") is None

    def test_update_multi_path(self, store):
        """Should merge several child paths in one call."""
        store.set("a/keep", "k")
        store.update("a", {"x": 1, "y/z": 2})
        assert store.get("a") == {"keep": "k", "x": 1, "y": {"z": 2}}

    def test_update_none_deletes(self, store):
        store.update("p", {"one": "1", "two": "2"})
        store.update("p", {"one": None, "missing": None})
        assert store.get("p") == {"two": "2"}

    def test_get_returns_copy(self, store):
        store.set("a/b", "1")
        value = store.get("a")
        value["b"] = "changed"
        assert store.get("a/b") == "1"

    def test_set_through_file_replaces_it(self, store):
        """Writing below a string turns it into a mapping."""
        store.set("a", "file")
        store.set("a/b", "x")
        assert store.get("a") == {"b": "x"}

    def test_initial_data(self):
        s = MemoryTreeStore({"a": {"b": "1"}, "empty": {}})
        assert s.snapshot() == {"a": {"b": "1"}}


class TestFirebaseTreeStore:
    """Tests for the REST backend with a mocked HTTP session."""

    @pytest.fixture
    def http(self):
        session = MagicMock()
        session.request.return_value.json.return_value = None
        return session

    @pytest.fixture
    def remote(self, http):
        return FirebaseTreeStore(url="https://db.example.com/", auth="tok", timeout=5, session=http)

    def test_requires_url(self):
        with pytest.raises(ValueError):
            FirebaseTreeStore(url="")

    def test_get(self, remote, http):
        http.request.return_value.json.return_value = {"k": "v"}

        assert remote.get("shellFS/docs") == {"k": "v"}

        args, kwargs = http.request.call_args
        assert args == ("GET", "https://db.example.com/shellFS/docs.json")
        assert kwargs["params"] == {"auth": "tok"}
        assert kwargs["timeout"] == 5

    def test_get_missing(self, remote):
        assert remote.get("shellFS/none") is None

    def test_set_puts_json(self, remote, http):
        remote.set("shellFS/a", "hello")

        args, kwargs = http.request.call_args
        assert args[0] == "PUT"
        assert kwargs["json"] == "hello"
        assert kwargs["params"] == {"auth": "tok", "print": "silent"}

    def test_set_none_deletes(self, remote, http):
        remote.set("shellFS/a", None)
        assert http.request.call_args[0][0] == "DELETE"

    def test_update_patches(self, remote, http):
        remote.update("ban", {"a*b": True})

        args, kwargs = http.request.call_args
        assert args == ("PATCH", "https://db.example.com/ban.json")
        assert kwargs["json"] == {"a*b": True}

    def test_update_empty_skips_request(self, remote, http):
        remote.update("ban", {})
        http.request.assert_not_called()

    def test_escaped_key_is_url_quoted(self, remote, http):
        remote.get("shellFS/a\\periodtxt")
        url = http.request.call_args[0][1]
        assert url == "https://db.example.com/shellFS/a%5Cperiodtxt.json"

    def test_transport_error_raises_store_error(self, remote, http):
        http.request.side_effect = requests.ConnectionError("boom")

        with pytest.raises(StoreError) as exc_info:
            remote.get("shellFS/a")

        assert exc_info.value.key == "shellFS/a"

    def test_malformed_body_raises_store_error(self, remote, http):
        http.request.return_value.json.side_effect = ValueError("Expecting value")

        with pytest.raises(StoreError) as exc_info:
            remote.get("shellFS/a")

        assert exc_info.value.key == "shellFS/a"

    def test_http_error_raises_store_error(self, remote, http):
        http.request.return_value.raise_for_status.side_effect = requests.HTTPError("401")

        with pytest.raises(StoreError):
            remote.remove("shellFS/a")

    def test_close(self, remote, http):
        remote.close()
        http.close.assert_called_once()


class TestCreateStore:
    """Tests for create_store()."""

    def test_memory(self):
        assert isinstance(create_store("memory"), MemoryTreeStore)

    def test_firebase(self):
        s = create_store("firebase", url="https://db.example.com")
        assert isinstance(s, FirebaseTreeStore)
        s.close()

    def test_unknown(self):
        with pytest.raises(ValueError):
            create_store("redis")
