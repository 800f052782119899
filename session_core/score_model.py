"""
ScoreModel: per-participant speaking activity that decays smoothly instead
of flipping on/off.

Every active-speakers notification adds BOOST to each reported speaker; every
tick multiplies all scores by DECAY. A participant who keeps talking climbs,
one who stops fades to nothing within a few seconds.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from .config import BOOST, DECAY, SCORE_FLOOR, SPEAKING_THRESHOLD


class ScoreModel:
    """Decaying speaking scores keyed by participant id.

    Entries are created on the first boost and removed once they decay below
    SCORE_FLOOR, so the map only holds participants with recent activity.
    """

    def __init__(
        self,
        decay: float = DECAY,
        boost: float = BOOST,
        floor: float = SCORE_FLOOR,
    ) -> None:
        self.decay = decay
        self.boost = boost
        self.floor = floor
        self._scores: Dict[str, float] = {}

    def tick(self) -> None:
        """Apply one decay step to every tracked participant."""
        for pid in list(self._scores):
            value = self._scores[pid] * self.decay
            if value < self.floor:
                del self._scores[pid]
            else:
                self._scores[pid] = value

    def on_speaking_event(self, active_speaker_ids: Iterable[str]) -> None:
        """Boost every participant the provider currently reports as speaking."""
        for pid in set(active_speaker_ids):
            current = self._scores.get(pid, 0.0)
            self._scores[pid] = current * 1.0 + self.boost

    def scores(self, roster: Optional[Iterable[str]] = None) -> Dict[str, float]:
        """Return a copy of the score map.

        With *roster*, every listed participant is present (0.0 when silent)
        and nobody outside the roster is.
        """
        if roster is None:
            return dict(self._scores)
        return {pid: self._scores.get(pid, 0.0) for pid in roster}

    def score(self, participant_id: str) -> float:
        return self._scores.get(participant_id, 0.0)

    def is_speaking(self, participant_id: str) -> bool:
        return self.score(participant_id) > SPEAKING_THRESHOLD

    def forget(self, participant_id: str) -> None:
        self._scores.pop(participant_id, None)

    def reset(self) -> None:
        self._scores.clear()

    def __len__(self) -> int:
        return len(self._scores)
