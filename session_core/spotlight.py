"""Host spotlight messages received over the data channel.

A host spotlights a participant by broadcasting
``{"participantId": "...", "timestamp": 1712345678901}``. Anything else on the
data channel (chat, reactions, garbage) is not a spotlight and is ignored.
"""
from __future__ import annotations

import json
import logging
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class SpotlightData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    participant_id: str = Field(alias="participantId", min_length=1)
    timestamp: float = Field(gt=0)


def parse_spotlight_message(payload: Union[bytes, str]) -> Optional[SpotlightData]:
    """Decode a data-channel payload; returns None when it is not a spotlight."""
    try:
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        raw = json.loads(payload)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return None

    if not isinstance(raw, dict):
        return None

    try:
        return SpotlightData.model_validate(raw)
    except ValidationError:
        logger.debug("Data message is not a spotlight, ignoring")
        return None
