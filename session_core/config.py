"""Controller constants and service settings.

The attention/resource constants are fixed for every session and are not read
from the environment. Only the service knobs (bind address, log level, CORS)
come from ``.env`` / the process environment.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()

# ---------------------------------------------------------------------------
# Score model
# ---------------------------------------------------------------------------

TICK_INTERVAL = 0.1        # seconds between decay ticks
DECAY = 0.85               # fraction of score retained per tick
BOOST = 1.0                # added per active-speakers notification
SCORE_FLOOR = 0.01         # entries below this are dropped
SPEAKING_THRESHOLD = 0.1   # score above which a tile shows "speaking"

# ---------------------------------------------------------------------------
# Primary selection (hysteresis)
# ---------------------------------------------------------------------------

SWITCH_THRESHOLD = 1.25    # challenger must reach 1.25x the current score
DWELL_TIME = 1.5           # seconds a challenger must keep qualifying
COOLDOWN = 2.0             # seconds between two committed switches
SILENCE_TIMEOUT = 5.0      # hold the current primary after this much silence
ACTIVITY_THRESHOLD = SPEAKING_THRESHOLD

# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

ALONE_TIMEOUT = 10 * 60.0  # disconnect after 10 minutes alone


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class Settings:
    host: str = os.getenv("SESSION_CORE_HOST", "0.0.0.0")
    port: int = int(os.getenv("SESSION_CORE_PORT", "8000"))
    log_level: str = os.getenv("SESSION_CORE_LOG_LEVEL", "INFO").upper()
    cors_origins: List[str] = field(
        default_factory=lambda: _split_csv(os.getenv("SESSION_CORE_CORS_ORIGINS", "*"))
    )


settings = Settings()
