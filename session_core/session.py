"""Per-session attention and resource controller.

One AttentionSession exists per connected meeting session. It owns the score
model, primary selector, quality allocator and lifecycle guard, drives the
periodic decay tick, and routes provider/UI events into them. Nothing in here
awaits: every handler is synchronous bookkeeping on the event loop, and
provider calls are fire-and-forget.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Union

from .config import TICK_INTERVAL
from .event_bus import EventBus, SessionEvent, SessionEventType
from .lifecycle_guard import Scheduler, SessionLifecycleGuard
from .primary_selector import OverrideKind, OverrideSlots, PrimarySelector
from .provider import MediaSessionProvider
from .quality_allocator import AllocationTrigger, QualityAllocator
from .score_model import ScoreModel
from .spotlight import parse_spotlight_message

logger = logging.getLogger(__name__)


class AttentionSession:
    """Owns all controller state for one session.

    Lifecycle: construct on connect, ``start()`` arms the decay tick and
    evaluates the initial roster, ``close()`` cancels every timer and resets
    state. A closed session ignores further events; reconnecting means
    building a new instance.
    """

    TICK_INTERVAL = TICK_INTERVAL

    def __init__(
        self,
        session_id: str,
        provider: MediaSessionProvider,
        scheduler: Optional[Scheduler] = None,
        bus: Optional[EventBus] = None,
    ):
        self.session_id = session_id
        self.provider = provider
        self.scheduler: Scheduler = scheduler if scheduler is not None else asyncio.get_running_loop()
        self.bus = bus if bus is not None else EventBus()
        self._label = session_id[:8]

        self.score_model = ScoreModel()
        self.selector = PrimarySelector(now=self.scheduler.time())
        self.allocator = QualityAllocator()
        self.overrides = OverrideSlots()
        self.guard = SessionLifecycleGuard(
            provider,
            self.scheduler,
            on_terminated=self._on_guard_terminated,
            label=self._label,
        )

        # Latest provider inputs
        self._active_speakers: FrozenSet[str] = frozenset()
        self._speakers_seen = False
        self._camera_subscriptions: Dict[str, None] = {}  # ordered set

        # Last published outputs
        self._published_primary: Optional[str] = None
        self._speaking: FrozenSet[str] = frozenset()

        self._tick_handle: Optional[asyncio.TimerHandle] = None
        self.started = False
        self.closed = False
        self.close_reason: Optional[str] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self.started or self.closed:
            return
        self.started = True
        logger.info(f"[{self._label}] Session started (local={self.provider.local_participant_id})")

        self.selector.reset(self.now())
        roster = self.roster()
        self.guard.on_roster_changed(len(roster))
        self._evaluate_primary()
        self._apply_quality(AllocationTrigger.ROSTER_CHANGED)
        self._arm_tick()

    def close(self, reason: str = "closed") -> None:
        """Cancel both timers and drop all per-session state."""
        if self.closed:
            return
        self.closed = True
        self.close_reason = reason

        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None
        self.guard.close()

        self.score_model.reset()
        self.selector.reset()
        self.overrides.clear()
        self._active_speakers = frozenset()
        self._camera_subscriptions.clear()
        self._speakers_seen = False
        self._speaking = frozenset()
        self._published_primary = None

        logger.info(f"[{self._label}] Session closed ({reason})")
        self._publish(SessionEventType.SESSION_TERMINATED, {"reason": reason})

    # ------------------------------------------------------------------
    # Provider events
    # ------------------------------------------------------------------

    def on_active_speakers_changed(self, speaker_ids: Iterable[str]) -> None:
        if self.closed:
            return
        present = set(self.roster())
        active = frozenset(pid for pid in speaker_ids if pid in present)
        self._active_speakers = active
        self._speakers_seen = True

        self.score_model.on_speaking_event(active)
        self._publish_speaking()
        self._evaluate_primary()
        self._apply_quality(AllocationTrigger.SPEAKERS_CHANGED)

    def on_roster_changed(self) -> None:
        """Re-read the provider roster after any join/leave."""
        if self.closed:
            return
        roster = self.roster()
        present = set(roster)

        for pid in list(self.score_model.scores()):
            if pid not in present:
                self.score_model.forget(pid)
        for pid in list(self._camera_subscriptions):
            if pid not in present:
                del self._camera_subscriptions[pid]
        self._active_speakers = frozenset(pid for pid in self._active_speakers if pid in present)

        self.guard.on_roster_changed(len(roster))
        self._publish_speaking()
        self._evaluate_primary()
        self._apply_quality(AllocationTrigger.ROSTER_CHANGED)

    def on_participant_connected(self, participant_id: str) -> None:
        logger.info(f"[{self._label}] Participant connected: {participant_id}")
        self.on_roster_changed()

    def on_participant_disconnected(self, participant_id: str) -> None:
        logger.info(f"[{self._label}] Participant disconnected: {participant_id}")
        self.on_roster_changed()

    def on_track_subscribed(self, participant_id: str) -> None:
        """A remote camera publication became subscribed."""
        if self.closed:
            return
        if participant_id == self.provider.local_participant_id:
            return
        if participant_id not in self.roster():
            return
        self._camera_subscriptions[participant_id] = None
        self._apply_quality(AllocationTrigger.TRACK_SUBSCRIBED)

    def on_track_unsubscribed(self, participant_id: str) -> None:
        if self.closed:
            return
        self._camera_subscriptions.pop(participant_id, None)

    # ------------------------------------------------------------------
    # UI events
    # ------------------------------------------------------------------

    def set_override(self, kind: OverrideKind, participant_id: Optional[str]) -> None:
        """Pin/spotlight *participant_id*, or clear the slot with None."""
        if self.closed:
            return
        self.overrides.set(kind, participant_id)
        logger.info(f"[{self._label}] {kind.value} override -> {participant_id}")
        self._evaluate_primary()

    def on_data_received(self, payload: Union[bytes, str]) -> None:
        """Apply a host spotlight broadcast; other data messages are ignored."""
        spotlight = parse_spotlight_message(payload)
        if spotlight is None:
            return
        self.set_override(OverrideKind.SPOTLIGHTED, spotlight.participant_id)

    def on_page_unload(self) -> None:
        if self.closed:
            return
        self.guard.on_page_unload()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def now(self) -> float:
        return self.scheduler.time()

    def roster(self) -> List[str]:
        return self.provider.roster()

    @property
    def primary_id(self) -> Optional[str]:
        return self._published_primary

    @property
    def active_speakers(self) -> FrozenSet[str]:
        return self._active_speakers

    @property
    def camera_subscriptions(self) -> List[str]:
        return list(self._camera_subscriptions)

    def is_speaking(self, participant_id: str) -> bool:
        return self.score_model.is_speaking(participant_id)

    def snapshot(self) -> dict:
        roster = [] if self.closed else self.roster()
        scores = self.score_model.scores(roster)
        return {
            "session_id": self.session_id,
            "primary_id": self.primary_id,
            "roster": roster,
            "scores": scores,
            "speaking": sorted(pid for pid, value in scores.items() if self.is_speaking(pid)),
            "pinned_id": self.overrides.get(OverrideKind.PINNED),
            "spotlight_id": self.overrides.get(OverrideKind.SPOTLIGHTED),
            "active_speakers": sorted(self._active_speakers),
            "alone_since": self.guard.window.alone_since,
            "closed": self.closed,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _arm_tick(self) -> None:
        self._tick_handle = self.scheduler.call_later(self.TICK_INTERVAL, self._on_tick)

    def _on_tick(self) -> None:
        self._tick_handle = None
        if self.closed:
            return
        self.score_model.tick()
        self._publish_speaking()
        self._evaluate_primary()
        self._arm_tick()

    def _evaluate_primary(self) -> None:
        roster = self.roster()
        override = self.overrides.effective(roster)
        primary = self.selector.evaluate(
            self.now(),
            self.score_model.scores(roster),
            roster,
            override,
        )
        if primary == self._published_primary:
            return

        previous = self._published_primary
        self._published_primary = primary
        reason = override.kind.value if override is not None else "automatic"
        logger.info(f"[{self._label}] Primary {previous} -> {primary} ({reason})")
        self._publish(
            SessionEventType.PRIMARY_CHANGED,
            {"primary_id": primary, "previous_id": previous, "reason": reason},
        )

    def _apply_quality(self, trigger: AllocationTrigger) -> None:
        assignments = self.allocator.allocate(
            self._camera_subscriptions, self._active_speakers, self._speakers_seen
        )
        if not assignments:
            return
        for assignment in assignments:
            try:
                self.provider.request_video_quality(assignment.participant_id, assignment.tier)
            except Exception as e:
                # Re-issued on the next trigger.
                logger.warning(
                    f"[{self._label}] Quality request for {assignment.participant_id} failed: {e}"
                )
        self._publish(
            SessionEventType.QUALITY_REQUESTED,
            {
                "trigger": trigger.value,
                "assignments": {a.participant_id: a.tier.value for a in assignments},
            },
        )

    def _publish_speaking(self) -> None:
        speaking = frozenset(
            pid for pid in self.score_model.scores() if self.score_model.is_speaking(pid)
        )
        if speaking == self._speaking:
            return
        self._speaking = speaking
        self._publish(SessionEventType.SPEAKING_CHANGED, {"speaking": sorted(speaking)})

    def _publish(self, event_type: SessionEventType, data: dict) -> None:
        self.bus.publish(
            SessionEvent(
                event_type=event_type,
                session_id=self.session_id,
                timestamp=self.now(),
                data=data,
            )
        )

    def _on_guard_terminated(self, reason: str) -> None:
        self.close(reason)
