"""Tests for statistics.py"""

import sys
import os
from datetime import datetime

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from tonstat.services.round_lifecycle import RoundRecord
from tonstat.services.statistics import StatisticsAggregator


def make_record(round_type="Classic", terrors="Unknown", survived=True, terror_list=()):
    return RoundRecord(
        started_at=datetime(2024, 1, 1),
        round_type=round_type,
        map_name="Unknown",
        terror_names=terrors,
        items="none",
        survived=survived,
        terrors=terror_list,
    )


class TestStatistics:
    """Tests for round and terror tallies."""

    def test_round_counts(self):
        """Test totals, survivals and per-type counts."""
        stats = StatisticsAggregator()
        stats.record(make_record("Classic", survived=True))
        stats.record(make_record("Classic", survived=False))
        stats.record(make_record("Fog", survived=True))

        assert stats.rounds.total_rounds == 3
        assert stats.rounds.survived_rounds == 2
        assert stats.rounds.round_type_counts == {"Classic": 2, "Fog": 1}
        assert abs(stats.rounds.survival_rate - 2 / 3) < 1e-9
        assert abs(stats.rounds.share_of("Fog") - 1 / 3) < 1e-9

    def test_terror_counts(self):
        """Test multi-terror rounds count each terror."""
        stats = StatisticsAggregator()
        stats.record(make_record(terrors="Haket, Sawrunner"))
        stats.record(make_record(terrors="Haket"))
        assert stats.terrors.terror_type_counts == {"Haket": 2, "Sawrunner": 1}
        assert stats.terrors.terrors_met == 3
        assert stats.top_terrors()[0] == ("Haket", 2)

    def test_terror_name_with_separator(self):
        """Test a terror name containing a comma is counted once."""
        stats = StatisticsAggregator()
        stats.record(make_record(terrors="Hello, World, Haket", terror_list=("Hello, World", "Haket")))
        assert stats.terrors.terror_type_counts == {"Hello, World": 1, "Haket": 1}
        assert stats.terrors.terrors_met == 2

    def test_unknown_terrors_skipped(self):
        """Test rounds without terrors add no terror counts."""
        stats = StatisticsAggregator()
        stats.record(make_record(terrors="Unknown"))
        assert stats.terrors.terrors_met == 0

    def test_empty_rates(self):
        """Test rates are zero before any round."""
        stats = StatisticsAggregator()
        assert stats.rounds.survival_rate == 0.0
        assert stats.rounds.share_of("Classic") == 0.0

    def test_reset(self):
        """Test reset clears every tally."""
        stats = StatisticsAggregator()
        stats.record(make_record(terrors="Haket"))
        stats.reset()
        assert stats.rounds.total_rounds == 0
        assert stats.terrors.terror_type_counts == {}
        assert stats.top_round_types() == []
