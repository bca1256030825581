"""Bounded log of recently processed feed messages."""

from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Deque, List, Optional

from ..schemas.events import (
    DeathEvent, FeedEvent, FlagEvent, ItemEvent, LocationEvent, PageCountEvent,
    PlayerJoinEvent, PlayerLeaveEvent, RoundTypeEvent, TerrorsEvent,
)


@dataclass(frozen=True)
class GameEvent:
    type: str
    timestamp: datetime
    description: str


def describe_event(event: FeedEvent) -> str:
    """One-line human-readable summary of a feed message."""
    kind = event.type
    if kind == "CONNECTED":
        return "Connected to the game feed"
    if isinstance(event, TerrorsEvent):
        names = event.announced_names()
        if event.is_reset or not names:
            return "Terrors reset"
        return f"Terrors: {', '.join(names)}"
    if isinstance(event, RoundTypeEvent):
        return f"Round started: {event.label}" if event.is_start else f"Round ended: {event.label}"
    if isinstance(event, LocationEvent):
        return f"Map changed: {event.name}" if event.command == 1 else "Map reset"
    if isinstance(event, PlayerJoinEvent):
        return f"Player joined: {event.value}"
    if isinstance(event, PlayerLeaveEvent):
        return f"Player left: {event.value}"
    if isinstance(event, DeathEvent):
        return f"Death: {event.name} - {event.message}"
    if isinstance(event, PageCountEvent):
        return f"Pages collected: {event.value}/8"
    if isinstance(event, ItemEvent):
        return f"Item grabbed: {event.name}" if event.is_grab else f"Item dropped: {event.name}"
    if isinstance(event, FlagEvent):
        if kind == "ALIVE":
            return "Revived" if event.value else "Died"
        if kind == "IS_SABOTEUR":
            return "Saboteur assigned" if event.value else "Saboteur cleared"
        if kind == "ROUND_ACTIVE":
            return "Round became active" if event.value else "Round became inactive"
    return kind or "UNKNOWN"


class EventLog:
    def __init__(self, limit: int = 500, clock: Callable[[], datetime] = datetime.now):
        self._events: Deque[GameEvent] = deque(maxlen=limit)
        self.clock = clock

    def __len__(self) -> int:
        return len(self._events)

    def add(self, event_type: str, description: str, timestamp: Optional[datetime] = None) -> GameEvent:
        entry = GameEvent(type=event_type, timestamp=timestamp or self.clock(), description=description)
        self._events.append(entry)
        return entry

    def recent(self, count: Optional[int] = None) -> List[GameEvent]:
        events = list(self._events)
        return events if count is None else events[-count:]

    def trim(self, before: datetime) -> int:
        """Drop entries older than ``before``. Returns the number dropped."""
        dropped = 0
        while self._events and self._events[0].timestamp < before:
            self._events.popleft()
            dropped += 1
        return dropped
