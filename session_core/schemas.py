from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel


class ViewMode(str, Enum):
    SPEAKER = "speaker"
    GALLERY = "gallery"
    MULTI_SPEAKER = "multi-speaker"
    IMMERSIVE = "immersive"


# ---------------------------------------------------------------------------
# Client -> server payloads
# ---------------------------------------------------------------------------

class ParticipantPayload(BaseModel):
    participant_id: str


class ParticipantListPayload(BaseModel):
    participant_ids: List[str] = []


class OverridePayload(BaseModel):
    participant_id: Optional[str] = None


class DataPayload(BaseModel):
    payload: str


class ViewModePayload(BaseModel):
    view_mode: ViewMode


# ---------------------------------------------------------------------------
# Server -> client
# ---------------------------------------------------------------------------

class SessionSnapshot(BaseModel):
    session_id: str
    primary_id: Optional[str] = None
    roster: List[str] = []
    scores: Dict[str, float] = {}
    speaking: List[str] = []
    pinned_id: Optional[str] = None
    spotlight_id: Optional[str] = None
    active_speakers: List[str] = []
    alone_since: Optional[float] = None
    closed: bool = False
    view_mode: ViewMode = ViewMode.SPEAKER


class HealthOut(BaseModel):
    status: str
    sessions: int
