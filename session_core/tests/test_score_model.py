"""Tests for the decaying speaking-score model."""

import pytest

from session_core.config import BOOST, DECAY, SCORE_FLOOR
from session_core.score_model import ScoreModel


@pytest.fixture
def model():
    """Return a fresh ScoreModel for each test."""
    return ScoreModel()


class TestBoost:
    def test_first_boost_creates_entry(self, model):
        model.on_speaking_event({"alice"})
        assert model.scores() == {"alice": BOOST}

    def test_boost_is_additive(self, model):
        model.on_speaking_event({"alice"})
        model.on_speaking_event({"alice"})
        model.on_speaking_event({"alice"})
        assert model.score("alice") == pytest.approx(3.0)

    def test_duplicate_ids_boost_once(self, model):
        model.on_speaking_event(["alice", "alice"])
        assert model.score("alice") == pytest.approx(1.0)

    def test_only_reported_speakers_are_boosted(self, model):
        model.on_speaking_event({"alice"})
        model.on_speaking_event({"bob"})
        assert model.score("alice") == pytest.approx(1.0)
        assert model.score("bob") == pytest.approx(1.0)


class TestDecay:
    def test_one_tick_after_boost(self, model):
        """Boost once then one tick -> BOOST x DECAY = 0.85"""
        model.on_speaking_event({"alice"})
        model.tick()
        assert model.score("alice") == pytest.approx(0.85)

    def test_n_ticks_after_boost(self, model):
        model.on_speaking_event({"alice"})
        for n in range(1, 11):
            model.tick()
            assert model.score("alice") == pytest.approx(0.85 * 0.85 ** (n - 1))

    def test_monotonic_without_boost(self, model):
        model.on_speaking_event({"alice", "bob"})
        model.on_speaking_event({"bob"})
        previous = model.scores()
        for _ in range(40):
            model.tick()
            current = model.scores()
            for pid, value in previous.items():
                assert current.get(pid, 0.0) <= value
            previous = current

    def test_entries_removed_below_floor(self, model):
        """1.0 x 0.85^n drops below 0.01 after 29 ticks (~3 s)."""
        model.on_speaking_event({"alice"})
        ticks = 0
        while "alice" in model.scores():
            model.tick()
            ticks += 1
            assert ticks < 100
        assert DECAY ** ticks < SCORE_FLOOR
        assert DECAY ** (ticks - 1) >= SCORE_FLOOR
        assert len(model) == 0

    def test_tick_on_empty_map(self, model):
        model.tick()
        assert model.scores() == {}


class TestReads:
    def test_scores_with_roster_fills_zero(self, model):
        model.on_speaking_event({"alice"})
        assert model.scores(["alice", "bob"]) == {"alice": 1.0, "bob": 0.0}

    def test_scores_with_roster_excludes_outsiders(self, model):
        model.on_speaking_event({"alice", "ghost"})
        assert "ghost" not in model.scores(["alice"])

    def test_scores_returns_copy(self, model):
        model.on_speaking_event({"alice"})
        model.scores()["alice"] = 99.0
        assert model.score("alice") == pytest.approx(1.0)

    def test_is_speaking_threshold(self, model):
        model.on_speaking_event({"alice"})
        assert model.is_speaking("alice")
        # 0.85^14 ~ 0.103, 0.85^15 ~ 0.087
        for _ in range(14):
            model.tick()
        assert model.is_speaking("alice")
        model.tick()
        assert not model.is_speaking("alice")
        assert not model.is_speaking("nobody")

    def test_forget_and_reset(self, model):
        model.on_speaking_event({"alice", "bob"})
        model.forget("alice")
        assert model.scores() == {"bob": 1.0}
        model.reset()
        assert model.scores() == {}
