"""
SSH Session Handler.
Manages the full lifecycle of a single console connection:
connect → authenticate → shell → disconnect.

The console answers shell prompts in-line: secrets are read without echo
and the vim edit surface is a small line editor.
"""
import codecs

import paramiko

from config.settings import (
    SSH_BANNER, HOST_KEY_PATH, SHELL_HOSTNAME,
    SESSION_LOG, CMD_AUDIT_LOG, SYSTEM_LOG,
    AUTH_USER, AUTH_PASS, ELEVATE_KEYWORD,
)
from core.audit import make_logger, log_event
from core.chat import ChatShell, wants_elevation
from core.errors import StoreError
from core.prompts import AwaitingInput, EDIT, SECRET
from core.ssh_server import ShellServer


session_logger = make_logger("sessions", SESSION_LOG)
cmd_logger     = make_logger("commands", CMD_AUDIT_LOG)
sys_logger     = make_logger("system",   SYSTEM_LOG)

EDITOR_HELP = "-- :wq save, :q! cancel, :a keep the current text and append --"


# ── Session handler ───────────────────────────────────────────────────────────

def handle_client(
    client_sock,
    addr,
    chat: ChatShell,
    username: str = AUTH_USER,
    password: str = AUTH_PASS,
    db=None,
):
    """
    Handle one inbound SSH connection.

    Parameters
    ----------
    client_sock : socket
    addr        : (ip, port) tuple
    chat        : ChatShell shared by every connection
    username    : expected username (empty = accept any identity)
    password    : expected password (empty = accept any identity)
    db          : DatabaseManager instance or None
    """
    client_ip = addr[0]
    log_event(session_logger, "session_connect", source_ip=client_ip, port=addr[1])

    transport = None
    identity  = ""
    try:
        try:
            host_key = paramiko.RSAKey(filename=HOST_KEY_PATH)
        except FileNotFoundError:
            host_key = paramiko.RSAKey.generate(2048)
            host_key.write_private_key_file(HOST_KEY_PATH)
            log_event(sys_logger, "host_key_generated", path=HOST_KEY_PATH)

        transport = paramiko.Transport(client_sock)
        transport.local_version = SSH_BANNER
        transport.add_server_key(host_key)

        server = ShellServer(client_ip, username, password)
        transport.start_server(server=server)

        channel = transport.accept(30)
        if channel is None:
            log_event(session_logger, "session_no_channel", source_ip=client_ip)
            return

        server.event.wait(10)
        identity = server.username
        if db:
            db.insert_session(identity, client_ip)

        shell_loop(channel, identity, chat)

    except (paramiko.SSHException, OSError) as exc:
        log_event(session_logger, "session_error", source_ip=client_ip, error=str(exc))
    finally:
        if transport:
            transport.close()
        client_sock.close()
        log_event(session_logger, "session_disconnect", source_ip=client_ip, identity=identity)
        if db and identity:
            db.close_session(identity)


# ── Interactive console ───────────────────────────────────────────────────────

def shell_loop(channel, identity: str, chat: ChatShell):
    """Read command lines from *channel* until exit or disconnect."""
    shell = chat.shell_for(identity)
    if not shell.context.loaded:
        try:
            shell.context.load()
        except StoreError as exc:
            log_event(sys_logger, "store_error", identity=identity, error=str(exc))
    channel.send(f"\r\nSigned in as {identity}. Type 'help' for commands.\r\n\r\n".encode())
    try:
        while True:
            channel.send(f"{identity}@{SHELL_HOSTNAME}:{shell.context.cwd}$ ".encode())
            line = read_line(channel)
            if line is None:
                continue
            line = line.strip()
            if not line:
                continue
            if line in ("exit", "logout"):
                channel.send(b"logout\r\n")
                break

            sudo_password = None
            if wants_elevation(line):
                channel.send(f"[{ELEVATE_KEYWORD}] password for {identity}: ".encode())
                sudo_password = read_line(channel, echo=False)

            try:
                result = chat.handle(identity, line, sudo_password)
                while isinstance(result, AwaitingInput):
                    result = chat.respond(identity, _answer(channel, result.prompt))
            except StoreError as exc:
                log_event(sys_logger, "store_error", identity=identity, error=str(exc))
                channel.send(f"shell: storage error: {exc}\r\n".encode())
                continue
            if result.text:
                channel.send((result.text.replace("\n", "\r\n") + "\r\n").encode(errors="replace"))
    except ConnectionAbortedError:
        return
    finally:
        channel.close()


def _answer(channel, prompt):
    if prompt.kind == EDIT:
        return edit_text(channel, prompt.label, prompt.initial)
    channel.send(f"{prompt.label} ".encode())
    return read_line(channel, echo=prompt.kind != SECRET)


def read_line(channel, echo: bool = True):
    """
    Char-by-char readline.  Returns None on Ctrl+C; raises
    ConnectionAbortedError on Ctrl+D or disconnect.
    """
    buf = ""
    decoder = codecs.getincrementaldecoder("utf-8")(errors="ignore")
    while True:
        try:
            ch = channel.recv(1)
        except OSError:
            raise ConnectionAbortedError("channel closed")
        if not ch or ch == b"\x04":
            channel.send(b"\r\n")
            raise ConnectionAbortedError("end of input")
        if ch in (b"\r", b"\n"):
            channel.send(b"\r\n")
            return buf
        if ch in (b"\x7f", b"\x08"):
            if buf:
                buf = buf[:-1]
                if echo:
                    channel.send(b"\x08 \x08")
        elif ch == b"\x03":
            channel.send(b"^C\r\n")
            return None
        else:
            buf += decoder.decode(ch)
            if echo:
                channel.send(ch)


def edit_text(channel, label: str, initial: str = ""):
    """Line editor for vim.  Returns the new text, or None when cancelled."""
    channel.send(f"{label}\r\n".encode())
    for existing in initial.split("\n") if initial else []:
        channel.send(f"  | {existing}\r\n".encode())
    channel.send(f"{EDITOR_HELP}\r\n".encode())

    lines: list[str] = []
    while True:
        line = read_line(channel)
        if line is None or line == ":q!":
            return None
        if line == ":wq":
            return "\n".join(lines)
        if line == ":a" and not lines:
            lines = initial.split("\n") if initial else []
            continue
        lines.append(line)
