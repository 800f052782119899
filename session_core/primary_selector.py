"""
PrimarySelector: picks the single participant shown as "main" speaker.

Priority, first match wins:
    1. Pinned override (participant still in the roster)
    2. Spotlighted override (participant still in the roster)
    3. Automatic selection from speaking scores, with hysteresis

Automatic selection only switches away from the current primary when the
challenger is past the cooldown since the last switch, scores at least
SWITCH_THRESHOLD times the current primary, and keeps doing so for DWELL_TIME.
During long silences the current primary is held.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from .config import (
    ACTIVITY_THRESHOLD,
    COOLDOWN,
    DWELL_TIME,
    SILENCE_TIMEOUT,
    SWITCH_THRESHOLD,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------

class OverrideKind(enum.Enum):
    """Manual designations, highest precedence first."""
    PINNED = "pinned"
    SPOTLIGHTED = "spotlighted"


@dataclass(frozen=True)
class Override:
    kind: OverrideKind
    participant_id: str


class OverrideSlots:
    """At most one participant per override kind.

    ``effective()`` resolves the slots to ``None``, ``Override(PINNED, id)`` or
    ``Override(SPOTLIGHTED, id)``. A slot naming someone outside the roster is
    kept but skipped, so it takes effect if that participant shows up.
    """

    def __init__(self) -> None:
        self._slots: Dict[OverrideKind, str] = {}

    def set(self, kind: OverrideKind, participant_id: Optional[str]) -> None:
        if participant_id:
            self._slots[kind] = participant_id
        else:
            self._slots.pop(kind, None)

    def get(self, kind: OverrideKind) -> Optional[str]:
        return self._slots.get(kind)

    def effective(self, roster: Sequence[str]) -> Optional[Override]:
        present = set(roster)
        for kind in OverrideKind:
            pid = self._slots.get(kind)
            if pid is not None and pid in present:
                return Override(kind, pid)
        return None

    def clear(self) -> None:
        self._slots.clear()


# ---------------------------------------------------------------------------
# Selection state
# ---------------------------------------------------------------------------

@dataclass
class PrimarySelectionState:
    primary_id: Optional[str] = None
    candidate_id: Optional[str] = None
    candidate_since: Optional[float] = None
    last_switch_at: float = 0.0
    last_activity_at: float = 0.0

    def clear_candidate(self) -> None:
        self.candidate_id = None
        self.candidate_since = None


class PrimarySelector:
    """Hysteresis state machine producing ``primary_id``.

    Parameters
    ----------
    now : float
        Clock value at construction; seeds ``last_activity_at`` so the silence
        hold does not kick in before anyone had a chance to speak.
    """

    def __init__(
        self,
        now: float = 0.0,
        switch_threshold: float = SWITCH_THRESHOLD,
        dwell_time: float = DWELL_TIME,
        cooldown: float = COOLDOWN,
        silence_timeout: float = SILENCE_TIMEOUT,
    ) -> None:
        self.switch_threshold = switch_threshold
        self.dwell_time = dwell_time
        self.cooldown = cooldown
        self.silence_timeout = silence_timeout
        self.state = PrimarySelectionState(last_activity_at=now)

    @property
    def primary_id(self) -> Optional[str]:
        return self.state.primary_id

    def reset(self, now: float = 0.0) -> None:
        self.state = PrimarySelectionState(last_activity_at=now)

    def evaluate(
        self,
        now: float,
        scores: Dict[str, float],
        roster: Sequence[str],
        override: Optional[Override] = None,
    ) -> Optional[str]:
        """Run one selection cycle and return the primary participant id.

        *scores* should cover the roster (missing ids count as 0). *override*
        is the already-resolved effective override, if any.
        """
        state = self.state

        if state.primary_id is not None and state.primary_id not in roster:
            state.primary_id = None
            state.clear_candidate()

        if not roster:
            return None

        if override is not None:
            state.primary_id = override.participant_id
            state.last_activity_at = now
            state.clear_candidate()
            return state.primary_id

        return self._select_automatic(now, scores, roster)

    def _select_automatic(
        self,
        now: float,
        scores: Dict[str, float],
        roster: Sequence[str],
    ) -> Optional[str]:
        state = self.state
        current_score = scores.get(state.primary_id, 0.0) if state.primary_id else 0.0

        best_id: Optional[str] = None
        best_score = 0.0
        for pid in roster:
            value = scores.get(pid, 0.0)
            if value > best_score:
                best_id, best_score = pid, value

        if best_score > ACTIVITY_THRESHOLD:
            state.last_activity_at = now

        # Silence: nobody worth switching to, keep the last known speaker.
        if state.primary_id is not None and now - state.last_activity_at > self.silence_timeout:
            return state.primary_id

        if best_id is None:
            if state.primary_id is None:
                state.primary_id = roster[0]
            return state.primary_id

        if state.primary_id is None:
            state.primary_id = best_id
            state.last_switch_at = now
            state.clear_candidate()
            return state.primary_id

        if best_id == state.primary_id:
            state.clear_candidate()
            return state.primary_id

        if now - state.last_switch_at < self.cooldown:
            return state.primary_id

        if best_score < current_score * self.switch_threshold:
            state.clear_candidate()
            return state.primary_id

        if state.candidate_since is None or state.candidate_id != best_id:
            state.candidate_id = best_id
            state.candidate_since = now
            return state.primary_id

        if now - state.candidate_since < self.dwell_time:
            return state.primary_id

        logger.debug(
            f"Primary switch {state.primary_id} -> {best_id} "
            f"({current_score:.2f} -> {best_score:.2f})"
        )
        state.primary_id = best_id
        state.last_switch_at = now
        state.clear_candidate()
        return state.primary_id
