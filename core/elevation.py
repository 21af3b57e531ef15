"""
Elevation capability.

An ``Elevation`` can only be obtained from ``ElevationGate.verify`` (after a
correct sudo password) or, for the engine's own follow-up operations, from
``internal_elevation``.  Code that wants to bypass a password check must hold
one; a bare boolean is never accepted.
"""
import hashlib
import hmac
import logging

from config.settings import SUDO_PASSWORD_SHA256
from core.audit import log_event

_audit = logging.getLogger("commands")
_ISSUER = object()


class Elevation:
    __slots__ = ("identity", "reason")

    def __init__(self, issuer, identity: str, reason: str):
        if issuer is not _ISSUER:
            raise TypeError("Elevation tokens are issued by ElevationGate only")
        self.identity = identity
        self.reason   = reason

    def __repr__(self):
        return f"<Elevation {self.identity!r} ({self.reason})>"


def is_elevated(token) -> bool:
    return isinstance(token, Elevation)


def internal_elevation(identity: str = "") -> Elevation:
    """Token for an operation already authorized by an earlier step (mv → rm)."""
    return Elevation(_ISSUER, identity, "internal")


class ElevationGate:
    """Checks the sudo password against its configured sha256 digest."""

    def __init__(self, password_sha256: str = SUDO_PASSWORD_SHA256):
        self._digest = password_sha256.lower()

    def verify(self, identity: str, password) -> "Elevation | None":
        ok = False
        if self._digest and password is not None:
            attempt = hashlib.sha256(str(password).encode()).hexdigest()
            ok = hmac.compare_digest(attempt, self._digest)
        log_event(_audit, "elevation_attempt", identity=identity,
                  result="SUCCESS" if ok else "FAILED")
        return Elevation(_ISSUER, identity, "sudo") if ok else None
