from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Dict, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .realtime_ws import SessionHandle, websocket_session
from .schemas import HealthOut, SessionSnapshot

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.sessions = {}
    yield
    sessions: Dict[str, SessionHandle] = app.state.sessions
    if sessions:
        logger.info(f"Shutting down, closing {len(sessions)} open session(s)")
    for handle in list(sessions.values()):
        handle.session.close("shutdown")
    sessions.clear()


app = FastAPI(title="Session Core - Attention & Resource Controller", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health", response_model=HealthOut)
async def health():
    return HealthOut(status="ok", sessions=len(app.state.sessions))


@app.get("/api/sessions/{session_id}", response_model=SessionSnapshot)
async def get_session(session_id: str):
    """Current controller state for an open session."""
    handle = app.state.sessions.get(session_id)
    if handle is None:
        raise HTTPException(404, "Session not found")
    return handle.snapshot()


@app.websocket("/ws/session/{session_id}")
async def ws_session(ws: WebSocket, session_id: str, local_id: Optional[str] = None):
    await websocket_session(ws, session_id, local_id, app.state.sessions)


def run() -> None:
    uvicorn.run(
        "session_core.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
