"""
Central configuration for the chat shell.
All settings can be overridden via environment variables.
"""
import os

# ── Remote tree store ─────────────────────────────────────────────────────────
STORE_BACKEND  = os.getenv("STORE_BACKEND",  "memory")     # "memory" or "firebase"
FIREBASE_URL   = os.getenv("FIREBASE_URL",   "")           # https://<db>.firebaseio.com
FIREBASE_AUTH  = os.getenv("FIREBASE_AUTH",  "")           # database secret / ID token
STORE_TIMEOUT  = float(os.getenv("STORE_TIMEOUT", "10"))

# ── Tree layout ───────────────────────────────────────────────────────────────
FS_PREFIX          = os.getenv("FS_PREFIX",  "shellFS")
PASSWORDS_DIR      = "__PASSWORDS__"
ROOT_PASSWORD_KEY  = "\\root"          # never produced by key escaping
BAN_PREFIX         = os.getenv("BAN_PREFIX", "ban")
CWD_PREFIX         = os.getenv("CWD_PREFIX", "cwd")

# Every directory made by mkdir carries this child so it is stored as a mapping
SENTINEL_NAME  = "DONOTDELETE"
SENTINEL_VALUE = "NODELETE"

# ── Elevation ─────────────────────────────────────────────────────────────────
ELEVATE_KEYWORD      = "sudo"
# sha256 hex digest of the sudo password; empty disables elevation entirely
SUDO_PASSWORD_SHA256 = os.getenv("SUDO_PASSWORD_SHA256", "")

# ── Chat framing ──────────────────────────────────────────────────────────────
SHELL_PREFIX = "/shell"
HELP_HINT    = "Use /shell help to display help"

# ── SSH console ───────────────────────────────────────────────────────────────
SSH_BANNER    = os.getenv("SSH_BANNER",    "SSH-2.0-chatshell_1.0")
HOST_KEY_PATH = os.getenv("HOST_KEY_PATH", "server.key")
BIND_HOST     = os.getenv("BIND_HOST",     "0.0.0.0")
BIND_PORT     = int(os.getenv("BIND_PORT", "2222"))
SHELL_HOSTNAME = os.getenv("SHELL_HOSTNAME", "chatshell")

# Auth credentials – leave both empty ("") to accept any identity
AUTH_USER     = os.getenv("AUTH_USER",     "")
AUTH_PASS     = os.getenv("AUTH_PASS",     "")

# ── Dashboard ─────────────────────────────────────────────────────────────────
DASHBOARD_HOST = os.getenv("DASHBOARD_HOST", "0.0.0.0")
DASHBOARD_PORT = int(os.getenv("DASHBOARD_PORT", "5000"))

# ── Logging ───────────────────────────────────────────────────────────────────
LOG_DIR           = os.getenv("LOG_DIR",           "logs")
SESSION_LOG       = os.path.join(LOG_DIR, "sessions.log")
CMD_AUDIT_LOG     = os.path.join(LOG_DIR, "cmd_audits.log")
SYSTEM_LOG        = os.path.join(LOG_DIR, "system.log")
LOG_MAX_BYTES     = int(os.getenv("LOG_MAX_BYTES",    "5000000"))   # 5 MB
LOG_BACKUP_COUNT  = int(os.getenv("LOG_BACKUP_COUNT", "5"))

# ── Database ──────────────────────────────────────────────────────────────────
DB_ENABLED = os.getenv("DB_ENABLED", "true").lower() == "true"
DB_PATH    = os.getenv("DB_PATH", "chatshell.db")
