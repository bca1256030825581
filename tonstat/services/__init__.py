from .terror_catalog import StunPolicy, TerrorCatalog, split_terror_names
from .round_classifier import MoonVariant, RoundCategory, classify_round
from .roster import PlayerRecord, PlayerRoster, MatchRank
from .instance_tracker import InstanceState, InstanceTracker
from .escalation import CycleCategory, EscalationPredictor, Prediction
from .round_lifecycle import RoundLifecycleTracker, RoundRecord
from .statistics import StatisticsAggregator, RoundStats, TerrorStats
from .notifications import Notification, SessionNotifier
from .context import SessionContext, TerrorEntity, LiveGameData
from .game_session import GameSession

__all__ = [
    "StunPolicy",
    "TerrorCatalog",
    "split_terror_names",
    "MoonVariant",
    "RoundCategory",
    "classify_round",
    "PlayerRecord",
    "PlayerRoster",
    "MatchRank",
    "InstanceState",
    "InstanceTracker",
    "CycleCategory",
    "EscalationPredictor",
    "Prediction",
    "RoundLifecycleTracker",
    "RoundRecord",
    "StatisticsAggregator",
    "RoundStats",
    "TerrorStats",
    "Notification",
    "SessionNotifier",
    "SessionContext",
    "TerrorEntity",
    "LiveGameData",
    "GameSession",
]
