"""WebSocket endpoint handler bridging a browser meeting page to its session controller."""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState
from pydantic import ValidationError

from .event_bus import SessionEvent, SessionEventType
from .primary_selector import OverrideKind
from .provider import QueueingProvider
from .schemas import (
    DataPayload,
    OverridePayload,
    ParticipantListPayload,
    ParticipantPayload,
    SessionSnapshot,
    ViewMode,
    ViewModePayload,
)
from .session import AttentionSession

logger = logging.getLogger("realtime_ws")

SENDER_DRAIN_TIMEOUT = 2.0

# Bus events forwarded to the page, keyed by outbound message type.
FORWARDED_EVENTS = {
    SessionEventType.PRIMARY_CHANGED: "primary_changed",
    SessionEventType.SPEAKING_CHANGED: "speaking",
    SessionEventType.SESSION_TERMINATED: "terminated",
}


@dataclass
class SessionHandle:
    session: AttentionSession
    provider: QueueingProvider
    view_mode: ViewMode = ViewMode.SPEAKER

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(**self.session.snapshot(), view_mode=self.view_mode)


async def websocket_session(
    ws: WebSocket,
    session_id: str,
    local_id: Optional[str],
    sessions: Dict[str, SessionHandle],
):
    """WebSocket handler at /ws/session/{session_id}?local_id=...

    Protocol messages (client → server):
      {"action": "roster", "participant_ids": ["alice", "bob"]}
      {"action": "participant_connected", "participant_id": "bob"}
      {"action": "participant_disconnected", "participant_id": "bob"}
      {"action": "active_speakers", "participant_ids": ["bob"]}
      {"action": "track_subscribed", "participant_id": "bob"}
      {"action": "track_unsubscribed", "participant_id": "bob"}
      {"action": "pin", "participant_id": "bob"}        (null clears)
      {"action": "spotlight", "participant_id": "bob"}  (null clears)
      {"action": "data_received", "payload": "{\"participantId\": ...}"}
      {"action": "view_mode", "view_mode": "gallery"}
      {"action": "snapshot"}
      {"action": "unload"}

    Server → client messages have {"type": ..., "data": ...} shape.
    """
    await ws.accept()

    if not local_id:
        await ws.send_json({"type": "error", "data": {"message": "local_id is required"}})
        await ws.close()
        return

    existing = sessions.get(session_id)
    if existing is not None:
        logger.warning(f"WS [{session_id[:8]}] replacing an open session")
        existing.session.close("replaced")

    queue: "asyncio.Queue[Optional[dict]]" = asyncio.Queue()
    provider = QueueingProvider(local_id, queue)
    session = AttentionSession(session_id, provider)
    handle = SessionHandle(session, provider)
    sessions[session_id] = handle

    def _forward(event: SessionEvent) -> None:
        queue.put_nowait({"type": FORWARDED_EVENTS[event.event_type], "data": event.data})

    session.bus.subscribe(_forward, *FORWARDED_EVENTS)

    sender = asyncio.create_task(_sender(ws, queue, session_id))
    terminated = asyncio.Event()
    session.bus.subscribe(lambda event: terminated.set(), SessionEventType.SESSION_TERMINATED)
    session.start()

    receiver = asyncio.create_task(_receiver(ws, handle, queue))
    waiter = asyncio.create_task(terminated.wait())
    try:
        done, _ = await asyncio.wait({receiver, waiter}, return_when=asyncio.FIRST_COMPLETED)
        if receiver in done:
            receiver.result()

    except WebSocketDisconnect:
        logger.info(f"WS [{session_id[:8]}] client disconnected")
        session.on_page_unload()
    except Exception as e:
        logger.error(f"WS [{session_id[:8]}] error: {e}")
    finally:
        receiver.cancel()
        waiter.cancel()
        await asyncio.gather(receiver, waiter, return_exceptions=True)
        session.close()
        if sessions.get(session_id) is handle:
            del sessions[session_id]
        queue.put_nowait(None)
        try:
            await asyncio.wait_for(sender, timeout=SENDER_DRAIN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning(f"WS [{session_id[:8]}] sender did not drain in time")
        if (
            ws.client_state == WebSocketState.CONNECTED
            and ws.application_state == WebSocketState.CONNECTED
        ):
            try:
                await ws.close()
            except RuntimeError as e:
                logger.debug(f"WS [{session_id[:8]}] close after disconnect: {e}")


async def _receiver(ws: WebSocket, handle: SessionHandle, queue: asyncio.Queue) -> None:
    """Apply client actions until the socket closes."""
    session_id = handle.session.session_id
    while True:
        raw = await ws.receive_text()
        try:
            msg = json.loads(raw)
        except json.JSONDecodeError:
            continue
        if not isinstance(msg, dict):
            continue

        action = msg.get("action", "")
        logger.debug(f"WS [{session_id[:8]}] action={action} {msg}")
        try:
            _dispatch(handle, queue, action, msg)
        except ValidationError as e:
            queue.put_nowait(
                {"type": "error", "data": {"action": action, "message": str(e)}}
            )


def _dispatch(handle: SessionHandle, queue: asyncio.Queue, action: str, msg: dict) -> None:
    session = handle.session
    provider = handle.provider

    if action == "roster":
        provider.set_roster(ParticipantListPayload(**msg).participant_ids)
        session.on_roster_changed()

    elif action == "participant_connected":
        pid = ParticipantPayload(**msg).participant_id
        provider.add(pid)
        session.on_participant_connected(pid)

    elif action == "participant_disconnected":
        pid = ParticipantPayload(**msg).participant_id
        provider.remove(pid)
        session.on_participant_disconnected(pid)

    elif action == "active_speakers":
        session.on_active_speakers_changed(ParticipantListPayload(**msg).participant_ids)

    elif action == "track_subscribed":
        session.on_track_subscribed(ParticipantPayload(**msg).participant_id)

    elif action == "track_unsubscribed":
        session.on_track_unsubscribed(ParticipantPayload(**msg).participant_id)

    elif action == "pin":
        session.set_override(OverrideKind.PINNED, OverridePayload(**msg).participant_id)

    elif action == "spotlight":
        session.set_override(OverrideKind.SPOTLIGHTED, OverridePayload(**msg).participant_id)

    elif action == "data_received":
        session.on_data_received(DataPayload(**msg).payload)

    elif action == "view_mode":
        handle.view_mode = ViewModePayload(**msg).view_mode

    elif action == "snapshot":
        queue.put_nowait({"type": "snapshot", "data": handle.snapshot().model_dump(mode="json")})

    elif action == "unload":
        session.on_page_unload()

    else:
        logger.info(f"WS [{session.session_id[:8]}] unknown action={action!r}, ignoring")


async def _sender(ws: WebSocket, queue: asyncio.Queue, session_id: str) -> None:
    """Drain outbound messages until the None sentinel arrives."""
    while True:
        message = await queue.get()
        if message is None:
            return
        try:
            await ws.send_json(message)
        except WebSocketDisconnect:
            return
        except Exception as e:
            logger.warning(f"WS [{session_id[:8]}] send failed: {e}")
            return
