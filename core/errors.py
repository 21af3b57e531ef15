"""
Exception types for the chat shell.

Ordinary command failures are never raised; they come back as reply text.
Only the conditions below abort an invocation.
"""


class ShellError(Exception):
    """Base class for errors that abort a shell invocation."""


class AuthenticationError(ShellError):
    """No verified identity is attached to the session."""


class StoreError(ShellError):
    """A round trip to the remote tree store failed."""

    def __init__(self, message: str, key: str = ""):
        super().__init__(message)
        self.key = key
