"""Session tallies for display: round types and terror encounters."""

from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from .round_lifecycle import NO_TERRORS, TERROR_NAME_SEPARATOR, RoundRecord


@dataclass
class RoundStats:
    round_type_counts: Dict[str, int] = field(default_factory=dict)
    total_rounds: int = 0
    survived_rounds: int = 0

    @property
    def survival_rate(self) -> float:
        if self.total_rounds == 0:
            return 0.0
        return self.survived_rounds / self.total_rounds

    def share_of(self, round_type: str) -> float:
        """Fraction of all rounds that were ``round_type``."""
        if self.total_rounds == 0:
            return 0.0
        return self.round_type_counts.get(round_type, 0) / self.total_rounds


@dataclass
class TerrorStats:
    terror_type_counts: Dict[str, int] = field(default_factory=dict)
    terrors_met: int = 0


class StatisticsAggregator:
    """Append-only counters, reset only on user request."""

    def __init__(self) -> None:
        self.rounds = RoundStats()
        self.terrors = TerrorStats()

    def record(self, record: RoundRecord) -> None:
        self.rounds.total_rounds += 1
        if record.survived:
            self.rounds.survived_rounds += 1
        counts = self.rounds.round_type_counts
        counts[record.round_type] = counts.get(record.round_type, 0) + 1

        for terror in self.terror_names(record):
            terror_counts = self.terrors.terror_type_counts
            terror_counts[terror] = terror_counts.get(terror, 0) + 1
            self.terrors.terrors_met += 1

    @staticmethod
    def terror_names(record: RoundRecord) -> List[str]:
        if record.terrors:
            return list(record.terrors)
        if record.terror_names == NO_TERRORS:
            return []
        return [name for name in record.terror_names.split(TERROR_NAME_SEPARATOR) if name]

    def top_round_types(self) -> List[Tuple[str, int]]:
        return sorted(self.rounds.round_type_counts.items(), key=lambda kv: kv[1], reverse=True)

    def top_terrors(self) -> List[Tuple[str, int]]:
        return sorted(self.terrors.terror_type_counts.items(), key=lambda kv: kv[1], reverse=True)

    def reset(self) -> None:
        self.rounds = RoundStats()
        self.terrors = TerrorStats()
