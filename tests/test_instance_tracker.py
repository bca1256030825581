"""Tests for instance_tracker.py"""

import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from tonstat.services.instance_tracker import InstanceState, InstanceTracker
from tonstat.services.round_classifier import MoonVariant


class TestInstanceState:
    """Tests for the state defaults and derived properties."""

    def test_defaults(self):
        """Test a fresh state."""
        state = InstanceState()
        assert state.special_unlocked is True
        assert state.is_instance_owner is False
        assert state.normal_round_count == 0
        assert not state.all_birds_met
        assert not state.all_moons_unlocked

    def test_all_moons_ignores_solstice(self):
        """Test Solstice is not required for all moons."""
        state = InstanceState(blood_moon_unlocked=True, twilight_unlocked=True,
                              mystic_moon_unlocked=True)
        assert state.all_moons_unlocked


class TestMoonUnlocks:
    """Tests for moon unlocks at round start."""

    def test_first_occurrence_unlocks(self):
        """Test the first Twilight unlocks it."""
        tracker = InstanceTracker()
        variant = tracker.on_round_start("Twilight")
        assert variant == MoonVariant.TWILIGHT
        assert tracker.state.twilight_unlocked
        assert tracker.state.first_occurrence_moon == MoonVariant.TWILIGHT
        assert tracker.state.current_round_type == "Twilight"

    def test_repeat_is_not_first(self):
        """Test a second Twilight is not a first occurrence."""
        tracker = InstanceTracker()
        tracker.on_round_start("Twilight")
        tracker.on_round_end("Twilight", alive_count=1)
        assert tracker.on_round_start("Twilight") is None
        assert tracker.state.first_occurrence_moon is None

    def test_non_moon_round(self):
        """Test ordinary rounds unlock nothing."""
        tracker = InstanceTracker()
        assert tracker.on_round_start("Classic") is None
        assert not tracker.state.blood_moon_unlocked


class TestBirds:
    """Tests for bird detection."""

    def test_bird_flag_set_once(self):
        """Test Big Bird is flagged, then unchanged."""
        tracker = InstanceTracker()
        assert tracker.on_terrors_updated(["Big Bird"])
        assert tracker.state.met_big_bird
        assert not tracker.on_terrors_updated(["Big Bird"])

    def test_all_birds(self):
        """Test meeting all three birds."""
        tracker = InstanceTracker()
        tracker.on_terrors_updated(["Big Bird", "Haket"])
        tracker.on_terrors_updated(["Judgment Bird"])
        tracker.on_terrors_updated(["パニッシングバード"])
        assert tracker.state.all_birds_met

    def test_unrelated_terrors(self):
        """Test other terrors leave bird flags alone."""
        tracker = InstanceTracker()
        assert not tracker.on_terrors_updated(["Miros Birds", "Sawrunner"])
        assert not tracker.state.met_big_bird


class TestMidnight:
    """Tests for Blood Moon unlock through Midnight."""

    def test_midnight_survived_unlocks_blood_moon(self):
        """Test a Midnight with survivors unlocks Blood Moon."""
        tracker = InstanceTracker()
        tracker.on_round_start("Midnight")
        assert tracker.on_round_end("Midnight", alive_count=1)
        assert tracker.state.midnight_survived
        assert tracker.state.blood_moon_unlocked

    def test_midnight_wipe_keeps_blood_moon_locked(self):
        """Test a Midnight with nobody alive unlocks nothing."""
        tracker = InstanceTracker()
        tracker.on_round_start("Midnight")
        assert not tracker.on_round_end("Midnight", alive_count=0)
        assert not tracker.state.blood_moon_unlocked


class TestReset:
    """Tests for reset."""

    def test_reset_is_idempotent(self):
        """Test reset twice equals reset once."""
        tracker = InstanceTracker()
        tracker.on_round_start("Blood Moon")
        tracker.on_terrors_updated(["Big Bird"])
        first = tracker.reset()
        second = tracker.reset()
        assert first == second == InstanceState()
