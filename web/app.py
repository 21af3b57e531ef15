"""
Shell Console  ·  FastAPI
==========================
Started by main.py via:
    python main.py --dashboard

Exposes the chat ``/shell`` entry point over HTTP.  The caller's verified
identity arrives in the ``X-Shell-Identity`` header; a request without one
is rejected before any command runs.  When a command needs a password or
the edit surface, the reply is ``awaiting_input`` and the client answers
through ``/api/shell/respond``.
"""

from __future__ import annotations

import os
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from config.settings import CMD_AUDIT_LOG, SYSTEM_LOG, HELP_HINT
from core.audit import make_logger, log_event
from core.chat import ChatShell
from core.errors import StoreError
from core.prompts import AwaitingInput

_sys = make_logger("system", SYSTEM_LOG)
make_logger("commands", CMD_AUDIT_LOG)

_TEMPLATE_DIR = os.path.join(os.path.dirname(__file__), "templates")
templates = Jinja2Templates(directory=_TEMPLATE_DIR)


class ShellRequest(BaseModel):
    message: str
    sudo_password: Optional[str] = None


class RespondRequest(BaseModel):
    answer: Optional[str] = None


def _to_json(result) -> dict:
    if isinstance(result, AwaitingInput):
        p = result.prompt
        return {
            "status": "awaiting_input",
            "prompt": {"label": p.label, "kind": p.kind, "initial": p.initial},
        }
    return {"status": "reply", "text": result.text}


def _require_identity(identity: Optional[str]) -> str:
    if not identity:
        raise HTTPException(status_code=401, detail="Must be signed in")
    return identity


def create_app(chat: ChatShell, db=None) -> FastAPI:
    app = FastAPI(title="Shell Console", docs_url=None, redoc_url=None)

    # ══════════════════════════════════════════════════════════════════════════
    # HTML PAGES
    # ══════════════════════════════════════════════════════════════════════════

    @app.get("/", response_class=HTMLResponse)
    async def index(request: Request):
        return templates.TemplateResponse(request, "index.html", {"hint": HELP_HINT})

    # ══════════════════════════════════════════════════════════════════════════
    # SHELL API
    # ══════════════════════════════════════════════════════════════════════════

    @app.post("/api/shell")
    def api_shell(body: ShellRequest,
                  identity: Optional[str] = Header(default=None, alias="X-Shell-Identity")):
        identity = _require_identity(identity)
        try:
            result = chat.handle(identity, body.message, body.sudo_password)
        except StoreError as exc:
            log_event(_sys, "store_error", identity=identity, error=str(exc))
            return JSONResponse({"status": "error", "text": f"shell: storage error: {exc}"},
                                status_code=502)
        return JSONResponse(_to_json(result))

    @app.post("/api/shell/respond")
    def api_respond(body: RespondRequest,
                    identity: Optional[str] = Header(default=None, alias="X-Shell-Identity")):
        identity = _require_identity(identity)
        try:
            result = chat.respond(identity, body.answer)
        except StoreError as exc:
            log_event(_sys, "store_error", identity=identity, error=str(exc))
            return JSONResponse({"status": "error", "text": f"shell: storage error: {exc}"},
                                status_code=502)
        return JSONResponse(_to_json(result))

    # ══════════════════════════════════════════════════════════════════════════
    # AUDIT API
    # ══════════════════════════════════════════════════════════════════════════

    @app.get("/api/commands/recent")
    def api_recent_commands():
        return JSONResponse(db.get_recent_commands(limit=40) if db else [])

    @app.get("/api/commands/top")
    def api_top_commands():
        return JSONResponse(db.get_top_commands(limit=20) if db else [])

    @app.get("/api/elevations")
    def api_elevations(identity: Optional[str] = None, limit: int = 100):
        return JSONResponse(db.get_elevations(identity, limit=limit) if db else [])

    return app


# ══════════════════════════════════════════════════════════════════════════════
# ENTRY POINT  (called from main.py in a daemon thread)
# ══════════════════════════════════════════════════════════════════════════════

def start_dashboard(chat: ChatShell, db=None, host: str = "0.0.0.0", port: int = 5000):
    import uvicorn
    print(f"[*] Shell console → http://{host}:{port}")
    uvicorn.run(create_app(chat, db), host=host, port=port,
                log_level="warning", use_colors=False)
