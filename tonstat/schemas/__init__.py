from .events import (
    EventType, FeedEvent, ConnectedEvent, TerrorsEvent, RoundTypeEvent,
    LocationEvent, FlagEvent, PageCountEvent, ItemEvent, PlayerJoinEvent,
    PlayerLeaveEvent, DeathEvent, TrackerEntry, TrackerEvent, GenericEvent,
    parse_event, parse_message,
)
from .snapshot import (
    TerrorResponse, PlayerResponse, RoundRecordResponse, InstanceStateResponse,
    StatsResponse, GameDataResponse, SessionSnapshot,
)

__all__ = [
    "EventType", "FeedEvent", "ConnectedEvent", "TerrorsEvent", "RoundTypeEvent",
    "LocationEvent", "FlagEvent", "PageCountEvent", "ItemEvent", "PlayerJoinEvent",
    "PlayerLeaveEvent", "DeathEvent", "TrackerEntry", "TrackerEvent", "GenericEvent",
    "parse_event", "parse_message",
    "TerrorResponse", "PlayerResponse", "RoundRecordResponse", "InstanceStateResponse",
    "StatsResponse", "GameDataResponse", "SessionSnapshot",
]
