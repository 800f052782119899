"""
QualityAllocator: decides which video quality tier to request for each
subscribed remote camera.

Only the participants the provider currently reports as speaking get HIGH,
everyone else gets LOW. Until the first active-speakers signal of the session
arrives, cameras get MEDIUM so a new subscription does not flash full
resolution. Once any signal has arrived, including an empty one, every pass
uses the HIGH/LOW rule. The allocator keeps no state: every call derives the
full assignment from its inputs.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import AbstractSet, Iterable, List


class VideoQuality(enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class AllocationTrigger(enum.Enum):
    """What caused the allocation pass."""
    SPEAKERS_CHANGED = "speakers_changed"
    TRACK_SUBSCRIBED = "track_subscribed"
    ROSTER_CHANGED = "roster_changed"


@dataclass(frozen=True)
class QualityAssignment:
    participant_id: str
    tier: VideoQuality


class QualityAllocator:

    def allocate(
        self,
        subscribed_cameras: Iterable[str],
        active_speakers: AbstractSet[str],
        speakers_seen: bool = True,
    ) -> List[QualityAssignment]:
        """Return one assignment per subscribed remote camera.

        *active_speakers* is the latest set reported by the provider, not the
        decayed score, so tiers follow the detector without smoothing.
        *speakers_seen* is False until the provider has reported speakers once.
        """
        assignments: List[QualityAssignment] = []
        for pid in subscribed_cameras:
            if not speakers_seen:
                tier = VideoQuality.MEDIUM
            elif pid in active_speakers:
                tier = VideoQuality.HIGH
            else:
                tier = VideoQuality.LOW
            assignments.append(QualityAssignment(pid, tier))
        return assignments
