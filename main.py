#!/usr/bin/env python3
"""
Chat Shell – Application Entry Point
=====================================
Usage:
    python main.py [--host HOST] [--port PORT] [--user USER] [--pass PASS]
                   [--open]                 # accept any identity on the SSH console
                   [--no-db]                # disable SQLite audit trail
                   [--store memory|firebase] [--firebase-url URL]
                   [--dashboard]            # also serve the HTTP console
"""
import argparse
import os
import socket
import sys
import threading
import logging

from config.settings import (
    BIND_HOST, BIND_PORT, AUTH_USER, AUTH_PASS,
    LOG_DIR, SYSTEM_LOG, DB_ENABLED, DB_PATH,
    STORE_BACKEND, FIREBASE_URL, DASHBOARD_HOST, DASHBOARD_PORT,
)
from core.audit import make_logger, log_event
from core.chat import ChatShell
from core.store import create_store
from core.session import handle_client


# ── Ensure log directory exists ───────────────────────────────────────────────
os.makedirs(LOG_DIR, exist_ok=True)

# ── System logger ─────────────────────────────────────────────────────────────
_sys = make_logger("system", SYSTEM_LOG)

# Also echo to stdout
_stdout = logging.StreamHandler(sys.stdout)
_stdout.setFormatter(logging.Formatter("%(asctime)s | %(message)s"))
_sys.addHandler(_stdout)


# ── Console entry point ───────────────────────────────────────────────────────

def start_console(
    chat: ChatShell,
    host: str     = BIND_HOST,
    port: int     = BIND_PORT,
    username: str = AUTH_USER,
    password: str = AUTH_PASS,
    db=None,
):
    """Bind the SSH listener and spawn a thread per connection."""

    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
    except PermissionError:
        print(f"[!] Cannot bind to port {port}. Try: sudo python main.py")
        sys.exit(1)

    sock.listen(100)

    mode = "open (any identity)" if not username else "credential-enforced"
    log_event(_sys, "console_start", host=host, port=port, mode=mode)
    print(f"[*] Shell console listening on {host}:{port}  [{mode}]")
    print(f"[*] Logs → {LOG_DIR}/")
    if db:
        print(f"[*] Database → {DB_PATH}")
    print("[*] Press Ctrl+C to stop.\n")

    while True:
        try:
            client_sock, addr = sock.accept()
            t = threading.Thread(
                target=handle_client,
                args=(client_sock, addr, chat, username, password, db),
                daemon=True,
            )
            t.start()
        except KeyboardInterrupt:
            print("\n[*] Shutting down console.")
            log_event(_sys, "console_stop")
            break
        except OSError as exc:
            print(f"[!] Accept error: {exc}")

    sock.close()


# ── CLI ───────────────────────────────────────────────────────────────────────

def main():
    parser = argparse.ArgumentParser(description="Chat shell over a remote tree store")
    parser.add_argument("--host",           default=BIND_HOST,  help="Bind address")
    parser.add_argument("--port",           default=BIND_PORT,  type=int, help="Bind port")
    parser.add_argument("--user",           default=AUTH_USER,  help="Expected username")
    parser.add_argument("--pass",           dest="password", default=AUTH_PASS, help="Expected password")
    parser.add_argument("--open",           action="store_true", help="Accept any identity")
    parser.add_argument("--no-db",          action="store_true", help="Disable SQLite audit trail")
    parser.add_argument("--store",          default=STORE_BACKEND, choices=["memory", "firebase"],
                        help="Tree store backend")
    parser.add_argument("--firebase-url",   default=FIREBASE_URL, help="Realtime Database URL")
    parser.add_argument("--dashboard",      action="store_true", help="Start HTTP console")
    parser.add_argument("--dashboard-port", default=DASHBOARD_PORT, type=int, help="HTTP console port")
    args = parser.parse_args()

    username = "" if args.open else args.user
    password = "" if args.open else args.password

    store = create_store(args.store, url=args.firebase_url)

    # Database
    db = None
    if not args.no_db and DB_ENABLED:
        from database.db import DatabaseManager
        db = DatabaseManager()

    # HTTP console runs beside the SSH listener on the same store
    if args.dashboard:
        from web.app import start_dashboard
        dash_thread = threading.Thread(
            target=start_dashboard,
            kwargs={"chat": ChatShell(store, db=db), "db": db,
                    "host": DASHBOARD_HOST, "port": args.dashboard_port},
            daemon=True,
        )
        dash_thread.start()

    try:
        start_console(
            ChatShell(store, db=db, hint=""),
            host=args.host,
            port=args.port,
            username=username,
            password=password,
            db=db,
        )
    finally:
        store.close()
        if db:
            db.close()


if __name__ == "__main__":
    main()
