"""Boundary to the media session provider.

The controller only needs four things from the provider: who is in the room,
who the local participant is, a way to request a video quality tier and a way
to leave. Both calls are fire-and-forget.
"""
from __future__ import annotations

import asyncio
import logging
from typing import List, Protocol

from .quality_allocator import VideoQuality

logger = logging.getLogger(__name__)


class MediaSessionProvider(Protocol):
    local_participant_id: str

    def roster(self) -> List[str]:
        ...

    def request_video_quality(self, participant_id: str, tier: VideoQuality) -> None:
        ...

    def disconnect(self) -> None:
        ...


class QueueingProvider:
    """Provider whose commands become outbound messages on a queue.

    Used by the WebSocket bridge: the browser holds the real media connection,
    so quality requests and disconnects are forwarded to it. ``put_nowait``
    keeps every call synchronous; a sender task drains the queue.
    """

    def __init__(self, local_participant_id: str, queue: "asyncio.Queue[dict]") -> None:
        self.local_participant_id = local_participant_id
        self._queue = queue
        self._roster: List[str] = [local_participant_id]
        self.connected = True

    def roster(self) -> List[str]:
        return list(self._roster)

    def set_roster(self, participant_ids: List[str]) -> None:
        ordered = [self.local_participant_id]
        ordered.extend(pid for pid in participant_ids if pid != self.local_participant_id)
        self._roster = list(dict.fromkeys(ordered))

    def add(self, participant_id: str) -> None:
        if participant_id not in self._roster:
            self._roster.append(participant_id)

    def remove(self, participant_id: str) -> None:
        if participant_id != self.local_participant_id and participant_id in self._roster:
            self._roster.remove(participant_id)

    def request_video_quality(self, participant_id: str, tier: VideoQuality) -> None:
        self._queue.put_nowait(
            {"type": "video_quality", "data": {"participant_id": participant_id, "tier": tier.value}}
        )

    def disconnect(self) -> None:
        if not self.connected:
            return
        self.connected = False
        self._queue.put_nowait({"type": "disconnect", "data": {}})
