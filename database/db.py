"""
Database Layer – SQLite-backed audit trail for the chat shell.

Tables
------
sessions    – one row per console connection
commands    – every command line accepted for execution
elevations  – every sudo password challenge and its outcome
"""
import sqlite3
import json
import logging
import threading

from config.settings import DB_ENABLED, DB_PATH

_log = logging.getLogger("system")


class DatabaseManager:
    """Thread-safe SQLite manager for shell audit events."""

    def __init__(self, db_path: str = DB_PATH, enabled: bool = DB_ENABLED):
        if not enabled:
            self._enabled = False
            return
        self._enabled = True
        self._path    = db_path
        self._lock    = threading.Lock()
        self._conn    = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._create_tables()
        _log.info(json.dumps({"event": "db_init", "path": db_path}))

    # ── Schema ────────────────────────────────────────────────────────────────

    def _create_tables(self):
        with self._lock, self._conn:
            self._conn.executescript("""
                CREATE TABLE IF NOT EXISTS sessions (
                    id              INTEGER PRIMARY KEY AUTOINCREMENT,
                    identity        TEXT    NOT NULL,
                    source          TEXT,
                    connected_at    TEXT    DEFAULT (datetime('now')),
                    disconnected_at TEXT
                );

                CREATE TABLE IF NOT EXISTS commands (
                    id          INTEGER PRIMARY KEY AUTOINCREMENT,
                    identity    TEXT    NOT NULL,
                    command     TEXT,
                    elevated    INTEGER DEFAULT 0,
                    issued_at   TEXT    DEFAULT (datetime('now'))
                );

                CREATE TABLE IF NOT EXISTS elevations (
                    id           INTEGER PRIMARY KEY AUTOINCREMENT,
                    identity     TEXT    NOT NULL,
                    success      INTEGER DEFAULT 0,
                    attempted_at TEXT    DEFAULT (datetime('now'))
                );
            """)

    # ── Inserts ───────────────────────────────────────────────────────────────

    def _exec(self, sql: str, params=()):
        if not self._enabled:
            return
        try:
            with self._lock, self._conn:
                self._conn.execute(sql, params)
        except sqlite3.Error as exc:
            _log.error(json.dumps({"event": "db_error", "error": str(exc), "sql": sql}))

    def insert_session(self, identity: str, source: str = ""):
        self._exec(
            "INSERT INTO sessions (identity, source) VALUES (?, ?)",
            (identity, source),
        )

    def close_session(self, identity: str):
        self._exec(
            "UPDATE sessions SET disconnected_at = datetime('now') "
            "WHERE identity = ? AND disconnected_at IS NULL",
            (identity,),
        )

    def insert_command(self, identity: str, command: str, elevated: bool = False):
        self._exec(
            "INSERT INTO commands (identity, command, elevated) VALUES (?, ?, ?)",
            (identity, command, int(elevated)),
        )

    def insert_elevation(self, identity: str, success: bool):
        self._exec(
            "INSERT INTO elevations (identity, success) VALUES (?, ?)",
            (identity, int(success)),
        )

    # ── Queries (for reporting) ───────────────────────────────────────────────

    def get_recent_commands(self, limit: int = 40) -> list[dict]:
        if not self._enabled:
            return []
        with self._lock:
            rows = self._conn.execute(
                "SELECT identity, command, elevated, issued_at FROM commands "
                "ORDER BY id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [dict(r) for r in rows]

    def get_top_commands(self, limit: int = 10) -> list[dict]:
        if not self._enabled:
            return []
        with self._lock:
            rows = self._conn.execute(
                "SELECT command, COUNT(*) as cnt FROM commands "
                "GROUP BY command ORDER BY cnt DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [dict(r) for r in rows]

    def get_elevations(self, identity: str = None, limit: int = 100) -> list[dict]:
        if not self._enabled:
            return []
        with self._lock:
            if identity:
                rows = self._conn.execute(
                    "SELECT * FROM elevations WHERE identity = ? ORDER BY id DESC LIMIT ?",
                    (identity, limit),
                ).fetchall()
            else:
                rows = self._conn.execute(
                    "SELECT * FROM elevations ORDER BY id DESC LIMIT ?",
                    (limit,),
                ).fetchall()
        return [dict(r) for r in rows]

    def close(self):
        if self._enabled and self._conn:
            self._conn.close()
