"""
SessionLifecycleGuard: tears a session down when it no longer serves a
purpose.

Two triggers:
    - Alone timeout: once only the local participant remains, a one-shot
      timer of ALONE_TIMEOUT is armed. If nobody joins before it fires the
      provider is disconnected. Anyone joining cancels the timer.
    - Page unload: a best-effort disconnect when the tab/window goes away.

Camera state is never touched here: switching tabs or windows must not pause
the local camera.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

from .config import ALONE_TIMEOUT
from .provider import MediaSessionProvider

logger = logging.getLogger(__name__)


class Scheduler(Protocol):
    """The slice of ``asyncio.AbstractEventLoop`` the controller uses."""

    def time(self) -> float:
        ...

    def call_later(self, delay: float, callback: Callable[..., object], *args: object) -> asyncio.TimerHandle:
        ...


@dataclass
class PresenceWindow:
    alone_since: Optional[float] = None


class SessionLifecycleGuard:
    """Populated/Alone state machine driven by participant count.

    Parameters
    ----------
    provider : MediaSessionProvider
        Receives the ``disconnect()`` call.
    scheduler : Scheduler
        Event loop (or test double) used for the clock and the one-shot timer.
    on_terminated : callable, optional
        Called with the reason string after the guard disconnects the session.
    """

    def __init__(
        self,
        provider: MediaSessionProvider,
        scheduler: Scheduler,
        on_terminated: Optional[Callable[[str], None]] = None,
        alone_timeout: float = ALONE_TIMEOUT,
        label: str = "",
    ) -> None:
        self.provider = provider
        self.scheduler = scheduler
        self.alone_timeout = alone_timeout
        self.window = PresenceWindow()
        self.terminated = False
        self._on_terminated = on_terminated
        self._timer: Optional[asyncio.TimerHandle] = None
        self._label = label

    @property
    def is_alone(self) -> bool:
        return self.window.alone_since is not None

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None

    def on_roster_changed(self, participant_count: int) -> None:
        """Re-evaluate presence; *participant_count* includes the local participant."""
        if self.terminated:
            return

        if participant_count >= 2:
            if self.window.alone_since is not None:
                logger.info(f"[{self._label}] Participant joined, alone timer cancelled")
            self.window.alone_since = None
            self._cancel_timer()
            return

        if self._timer is None:
            self.window.alone_since = self.scheduler.time()
            self._timer = self.scheduler.call_later(self.alone_timeout, self._on_alone_timeout)
            logger.info(f"[{self._label}] Alone in session, disconnecting in {self.alone_timeout:.0f}s")

    def on_page_unload(self) -> None:
        """Fire-and-forget disconnect as the page goes away."""
        if self.terminated:
            return
        self._terminate("page_unload")

    def close(self) -> None:
        """Release the timer. Called when the session ends for any reason."""
        self._cancel_timer()
        self.window.alone_since = None

    def _on_alone_timeout(self) -> None:
        self._timer = None
        if self.terminated or self.window.alone_since is None:
            return
        logger.info(f"[{self._label}] Alone for {self.alone_timeout:.0f}s, disconnecting")
        self._terminate("alone_timeout")

    def _terminate(self, reason: str) -> None:
        self.terminated = True
        self._cancel_timer()
        try:
            self.provider.disconnect()
        except Exception as e:
            logger.warning(f"[{self._label}] Provider disconnect failed: {e}")
        if self._on_terminated is not None:
            self._on_terminated(reason)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
