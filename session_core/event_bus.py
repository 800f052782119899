"""
Decision events emitted by an AttentionSession.

The session publishes one SessionEvent per decision: a new primary, a change
in who is visibly speaking, a quality pass, or termination. Listeners run
inline on the publishing call, so a listener sees the session exactly as it
was when the decision was made.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)


class SessionEventType(enum.Enum):
    PRIMARY_CHANGED = "primary_changed"
    SPEAKING_CHANGED = "speaking_changed"
    QUALITY_REQUESTED = "quality_requested"
    SESSION_TERMINATED = "session_terminated"


@dataclass
class SessionEvent:
    event_type: SessionEventType
    session_id: str
    timestamp: float
    data: dict = field(default_factory=dict)


Listener = Callable[[SessionEvent], None]


class EventBus:
    """Fans session decisions out to listeners.

    A listener that raises is logged and skipped; the session and the
    remaining listeners carry on.
    """

    def __init__(self) -> None:
        self._listeners: Dict[SessionEventType, List[Listener]] = {}

    def subscribe(self, listener: Listener, *event_types: SessionEventType) -> Callable[[], None]:
        """Call *listener* for each of *event_types* (every type when none are given).

        Returns a function that removes the listener again.
        """
        types = event_types or tuple(SessionEventType)
        for event_type in types:
            self._listeners.setdefault(event_type, []).append(listener)

        def unsubscribe() -> None:
            for event_type in types:
                listeners = self._listeners.get(event_type, [])
                if listener in listeners:
                    listeners.remove(listener)

        return unsubscribe

    def publish(self, event: SessionEvent) -> None:
        for listener in list(self._listeners.get(event.event_type, ())):
            try:
                listener(event)
            except Exception as e:
                logger.warning(
                    f"[{event.session_id[:8]}] {event.event_type.value} listener failed: {e}"
                )
