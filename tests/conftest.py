"""Shared fixtures for the chat shell tests."""

import hashlib
import os
import tempfile

# Settings are read at import time, so the environment goes first.
SUDO_PASSWORD = "correct horse"
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="chatshell-logs-"))
os.environ.setdefault("DB_ENABLED", "false")
os.environ.setdefault("SUDO_PASSWORD_SHA256", hashlib.sha256(SUDO_PASSWORD.encode()).hexdigest())

import pytest  # noqa: E402

from core.chat import ChatShell  # noqa: E402
from core.command_engine import Shell  # noqa: E402
from core.context import ShellContext  # noqa: E402
from core.elevation import ElevationGate  # noqa: E402
from core.store import MemoryTreeStore  # noqa: E402

IDENTITY = "alice.smith@example.com"


@pytest.fixture
def sudo_digest():
    return hashlib.sha256(SUDO_PASSWORD.encode()).hexdigest()


@pytest.fixture
def store():
    return MemoryTreeStore()


@pytest.fixture
def context(store):
    return ShellContext(IDENTITY, store)


@pytest.fixture
def shell(store, context):
    return Shell(store, context)


@pytest.fixture
def gate(sudo_digest):
    return ElevationGate(sudo_digest)


@pytest.fixture
def elevation(gate):
    """A genuine capability issued by the gate."""
    return gate.verify(IDENTITY, SUDO_PASSWORD)


@pytest.fixture
def chat(store, gate):
    return ChatShell(store, gate=gate)


@pytest.fixture
def identity():
    return IDENTITY


@pytest.fixture
def sudo_password():
    return SUDO_PASSWORD
