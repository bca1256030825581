"""Tests for round_lifecycle.py"""

import pytest
import sys
import os
from unittest.mock import MagicMock

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from tonstat.config import Settings
from tonstat.services.context import SessionContext, TerrorEntity
from tonstat.services.notifications import Notification
from tonstat.services.round_lifecycle import RoundLifecycleTracker


@pytest.fixture
def context():
    ctx = SessionContext.create(Settings(round_history_limit=3))
    ctx.roster.set_local_player("LocalHero", "usr_local_0001")
    return ctx


@pytest.fixture
def lifecycle(context):
    return RoundLifecycleTracker(context)


class TestRoundOpenClose:
    """Tests for opening and finalizing rounds."""

    def test_round_record_fields(self, context, lifecycle):
        """Test a finished round captures map, terrors and items."""
        context.game_data.map_name = "Lobby Hall"
        lifecycle.on_round_start("Classic")
        context.terrors = [TerrorEntity("Haket"), TerrorEntity("Sawrunner")]
        lifecycle.add_item("Glow Coil")
        lifecycle.add_item("Glow Coil")
        record = lifecycle.on_round_end("Classic")

        assert record.round_type == "Classic"
        assert record.map_name == "Lobby Hall"
        assert record.terror_names == "Haket, Sawrunner"
        assert record.items == "Glow Coil"
        assert record.survived
        assert not lifecycle.is_open

    def test_empty_round_placeholders(self, lifecycle):
        """Test placeholders for a round without terrors or items."""
        lifecycle.on_round_start("Fog")
        record = lifecycle.on_round_end("Fog")
        assert record.terror_names == "Unknown"
        assert record.items == "none"
        assert record.map_name == "Unknown"

    def test_end_without_open_round(self, context, lifecycle):
        """Test a round end while idle is a no-op."""
        assert lifecycle.on_round_end("Classic") is None
        assert lifecycle.history == []
        assert context.statistics.rounds.total_rounds == 0
        assert context.instance.state.normal_round_count == 0

    def test_start_while_open_replaces_round(self, lifecycle):
        """Test a second start discards the open round."""
        lifecycle.on_round_start("Classic")
        lifecycle.on_round_start("Fog")
        record = lifecycle.on_round_end("Fog")
        assert record.round_type == "Fog"
        assert len(lifecycle.history) == 1

    def test_round_uses_start_label(self, lifecycle):
        """Test the record keeps the label the round opened with."""
        lifecycle.on_round_start("Ghost")
        record = lifecycle.on_round_end("Unknown")
        assert record.round_type == "Ghost"


class TestSurvival:
    """Tests for survival resolution."""

    def test_death_overrides_later_alive(self, context, lifecycle):
        """Test a death then an alive signal still records a death."""
        lifecycle.on_round_start("Classic")
        lifecycle.on_death()
        context.roster.set_local_alive(True)
        lifecycle.on_alive_signal(True)
        assert lifecycle.on_round_end("Classic").survived is False

    def test_alive_false_signal(self, lifecycle):
        """Test ALIVE false counts as a death."""
        lifecycle.on_round_start("Classic")
        lifecycle.on_alive_signal(False)
        assert lifecycle.on_round_end("Classic").survived is False

    def test_local_player_dead(self, context, lifecycle):
        """Test the local player's liveness decides the outcome."""
        lifecycle.on_round_start("Classic")
        context.roster.local_player.is_alive = False
        assert lifecycle.on_round_end("Classic").survived is False

    def test_no_local_player_uses_alive_signal(self, context, lifecycle):
        """Test the raw alive signal is the fallback."""
        context.roster.clear()
        context.game_data.alive_signal = True
        lifecycle.on_round_start("Classic")
        assert lifecycle.on_round_end("Classic").survived is True

    def test_nothing_known_is_death(self, context, lifecycle):
        """Test an unknown outcome is recorded as died."""
        context.roster.clear()
        lifecycle.on_round_start("Classic")
        assert lifecycle.on_round_end("Classic").survived is False

    def test_death_outside_round_ignored(self, lifecycle):
        """Test a death while idle does not carry into the next round."""
        lifecycle.on_death()
        lifecycle.on_round_start("Classic")
        assert lifecycle.on_round_end("Classic").survived is True


class TestFinalizationEffects:
    """Tests for everything a round end updates."""

    def test_history_is_fifo(self, lifecycle):
        """Test the oldest record is evicted at the limit."""
        for label in ["Classic", "Fog", "Ghost", "Punished"]:
            lifecycle.on_round_start(label)
            lifecycle.on_round_end(label)
        assert [r.round_type for r in lifecycle.history] == ["Fog", "Ghost", "Punished"]

    def test_everyone_revived_and_saboteur_cleared(self, context, lifecycle):
        """Test round end revives players and clears the saboteur flag."""
        context.roster.join("Alice", "usr_a", round_active=True)
        context.game_data.saboteur = True
        lifecycle.on_round_start("Sabotage")
        lifecycle.on_round_end("Sabotage")
        assert context.roster.alive_count == 2
        assert context.game_data.saboteur is False

    def test_statistics_recorded(self, context, lifecycle):
        """Test the round reaches the statistics aggregator."""
        lifecycle.on_round_start("Classic")
        context.terrors = [TerrorEntity("Haket")]
        lifecycle.on_round_end("Classic")
        assert context.statistics.rounds.total_rounds == 1
        assert context.statistics.terrors.terror_type_counts == {"Haket": 1}

    def test_midnight_counts_alive_before_revive(self, context, lifecycle):
        """Test Midnight survival uses the alive count before the revive."""
        context.roster.join("Alice", "usr_a", round_active=False)
        context.roster.join("Bob", "usr_b", round_active=False)
        lifecycle.on_round_start("Midnight")
        context.roster.mark_dead("LocalHero")
        context.roster.mark_dead("Alice")
        lifecycle.on_round_end("Midnight")
        assert context.instance.state.blood_moon_unlocked

    def test_midnight_wipe(self, context, lifecycle):
        """Test a Midnight with everyone dead unlocks nothing."""
        lifecycle.on_round_start("Midnight")
        context.roster.mark_dead("LocalHero")
        lifecycle.on_round_end("Midnight")
        assert not context.instance.state.blood_moon_unlocked

    def test_notifications(self, context, lifecycle):
        """Test start and end notifications reach subscribers."""
        started, ended = MagicMock(), MagicMock()
        context.notifier.subscribe(Notification.ROUND_STARTED, started)
        context.notifier.subscribe(Notification.ROUND_ENDED, ended)
        lifecycle.on_round_start("Classic")
        lifecycle.on_round_end("Classic")
        started.assert_called_once_with("Classic")
        ended.assert_called_once_with()

    def test_moon_unlock_notifies_on_start(self, context, lifecycle):
        """Test a first moon emits an instance change at round start."""
        changed = MagicMock()
        context.notifier.subscribe(Notification.INSTANCE_STATE_CHANGED, changed)
        lifecycle.on_round_start("Blood Moon")
        assert changed.call_count == 1
        assert context.instance.state.blood_moon_unlocked

    def test_three_classics_through_lifecycle(self, context, lifecycle):
        """Test owner inference from finished rounds."""
        for _ in range(3):
            lifecycle.on_round_start("Classic")
            lifecycle.on_round_end("Classic")
        state = context.instance.state
        assert state.is_instance_owner
        assert state.estimated_survival_count == 3
        assert state.last_round_type == "Classic"


class TestConnectionScope:
    """Tests for rounds replayed after a reconnect."""

    def test_known_rounds_not_logged_again(self, context, lifecycle):
        """Test replayed rounds already in the history are skipped."""
        lifecycle.on_round_start("Classic")
        lifecycle.on_round_end("Classic")
        lifecycle.start_connection(known_rounds=lifecycle.rounds_this_connection)

        lifecycle.on_round_start("Classic")
        lifecycle.on_round_end("Classic")
        lifecycle.on_round_start("Fog")
        lifecycle.on_round_end("Fog")
        lifecycle.end_replay()

        assert [r.round_type for r in lifecycle.history] == ["Classic", "Fog"]
        assert context.statistics.rounds.total_rounds == 2
        assert lifecycle.rounds_this_connection == 2

    def test_end_replay_stops_skipping(self, lifecycle):
        """Test live rounds after a short replay are logged."""
        lifecycle.start_connection(known_rounds=3)
        lifecycle.end_replay()
        lifecycle.on_round_start("Classic")
        lifecycle.on_round_end("Classic")
        assert len(lifecycle.history) == 1

    def test_start_connection_discards_open_round(self, lifecycle):
        """Test a new connection drops the open round."""
        lifecycle.on_round_start("Ghost")
        lifecycle.add_item("Radar")
        lifecycle.start_connection()
        assert not lifecycle.is_open
        assert lifecycle.items == []

    def test_record_keeps_terror_names(self, context, lifecycle):
        """Test the record keeps each terror name intact."""
        lifecycle.on_round_start("Classic")
        context.terrors = [TerrorEntity("Hello, World"), TerrorEntity("Haket")]
        record = lifecycle.on_round_end("Classic")
        assert record.terrors == ("Hello, World", "Haket")
        assert context.statistics.terrors.terror_type_counts == {"Hello, World": 1, "Haket": 1}
