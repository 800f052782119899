"""Shared fixtures."""

import pytest

from session_core.event_bus import EventBus, SessionEventType
from session_core.session import AttentionSession
from session_core.tests.fakes import FakeLoop, RecordingProvider


@pytest.fixture
def loop():
    return FakeLoop()


@pytest.fixture
def provider():
    return RecordingProvider(local_id="local", remotes=("alice", "bob"))


@pytest.fixture
def events():
    """Bus plus a per-type list of everything published on it."""
    bus = EventBus()
    received = {et: [] for et in SessionEventType}
    bus.subscribe(lambda event: received[event.event_type].append(event))
    return bus, received


@pytest.fixture
def session(loop, provider, events):
    bus, _ = events
    s = AttentionSession("session-0001", provider, scheduler=loop, bus=bus)
    yield s
    s.close()
