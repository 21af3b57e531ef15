"""
Paramiko SSH Server Interface.
Handles channel negotiation and authentication for the shell console.
The authenticated username becomes the session identity.
"""
import hmac
import logging
import threading
import time

import paramiko

from core.audit import log_event

# ── Session logger (shared with session.py via name) ──────────────────────────
session_logger = logging.getLogger("sessions")

FAILED_AUTH_DELAY = 1.0


class ShellServer(paramiko.ServerInterface):
    """
    Paramiko server interface for the console.

    With ``valid_user``/``valid_pass`` set only that pair gets in; with both
    empty any non-empty username is taken as the caller's identity.  Attempts
    are logged without the password.
    """

    def __init__(self, client_ip: str, valid_user: str = "", valid_pass: str = ""):
        self.client_ip  = client_ip
        self.valid_user = valid_user
        self.valid_pass = valid_pass
        self.username   = ""
        self.event      = threading.Event()

    # ── Channel ───────────────────────────────────────────────────────────────

    def check_channel_request(self, kind, chanid):
        if kind == "session":
            return paramiko.OPEN_SUCCEEDED
        return paramiko.OPEN_FAILED_ADMINISTRATIVELY_PROHIBITED

    def get_allowed_auths(self, username):
        return "password"

    # ── Authentication ────────────────────────────────────────────────────────

    def _accept(self, username: str, result: str):
        log_event(session_logger, "ssh_auth_attempt", source_ip=self.client_ip,
                  username=username, result=result)
        self.username = username
        return paramiko.AUTH_SUCCESSFUL

    def check_auth_password(self, username: str, password: str):
        if not self.valid_user:
            if not username:
                return paramiko.AUTH_FAILED
            return self._accept(username, "ACCEPT_ANY")

        user_ok = hmac.compare_digest(username.encode(), self.valid_user.encode())
        pass_ok = hmac.compare_digest(password.encode(), self.valid_pass.encode())
        if user_ok and pass_ok:
            return self._accept(username, "SUCCESS")

        log_event(session_logger, "ssh_auth_attempt", source_ip=self.client_ip,
                  username=username, result="FAILED")
        time.sleep(FAILED_AUTH_DELAY)
        return paramiko.AUTH_FAILED

    # ── PTY / shell ───────────────────────────────────────────────────────────

    def check_channel_pty_request(self, channel, term, width, height,
                                   pixelwidth, pixelheight, modes):
        return True

    def check_channel_window_change_request(self, channel, width, height,
                                            pixelwidth, pixelheight):
        # output is line-oriented, nothing to redraw
        return True

    def check_channel_shell_request(self, channel):
        self.event.set()
        return True
