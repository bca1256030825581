"""Inbound game feed messages.

The ToN feed emits one JSON object per WebSocket frame, dispatched on a
``Type`` field. Field names and command codes are dictated by the game-side
emitter, so the models here only describe what arrives; every field degrades
to a safe default when missing, null, or of an unexpected shape.
"""

import json
import uuid
from enum import Enum
from typing import Any, Dict, List, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ..exceptions import MalformedMessageError


class EventType(str, Enum):
    """Message kinds recognised on the feed."""
    CONNECTED = "CONNECTED"
    TERRORS = "TERRORS"
    ROUND_TYPE = "ROUND_TYPE"
    LOCATION = "LOCATION"
    ROUND_ACTIVE = "ROUND_ACTIVE"
    ALIVE = "ALIVE"
    IS_SABOTEUR = "IS_SABOTEUR"
    PAGE_COUNT = "PAGE_COUNT"
    ITEM = "ITEM"
    PLAYER_JOIN = "PLAYER_JOIN"
    PLAYER_LEAVE = "PLAYER_LEAVE"
    DEATH = "DEATH"
    TRACKER = "TRACKER"
    INSTANCE = "INSTANCE"
    STATS = "STATS"


# Command codes used by the emitter
TERRORS_SET = 0
TERRORS_REVEAL = 1
TERRORS_RESET = 255

ROUND_ENDED = 0
ROUND_STARTED = 1

LOCATION_RESET = 0
LOCATION_SET = 1

ITEM_GRAB = 1


def _as_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no", ""):
            return False
    return default


def _as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_str(value: Any, default: str = "") -> str:
    if value is None:
        return default
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list)):
        return default
    return str(value)


class FeedEvent(BaseModel):
    """Base for all feed messages."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str = ""

    @field_validator("*", mode="before")
    @classmethod
    def _coerce(cls, value: Any, info: ValidationInfo) -> Any:
        field = cls.model_fields[info.field_name]
        default = field.get_default(call_default_factory=True)
        annotation = field.annotation
        if value is None:
            return default
        if annotation is bool:
            return _as_bool(value, default)
        if annotation is int:
            return _as_int(value, default)
        if annotation is str:
            return _as_str(value, default)
        return value


class ConnectedEvent(FeedEvent):
    display_name: str = Field("", alias="DisplayName")
    user_id: str = Field("", alias="UserID")
    args: List[Dict[str, Any]] = Field(default_factory=list, alias="Args")

    @field_validator("args", mode="before")
    @classmethod
    def _args_list(cls, value: Any) -> List[Any]:
        return [item for item in value if isinstance(item, dict)] if isinstance(value, list) else []


class TerrorsEvent(FeedEvent):
    command: int = Field(TERRORS_SET, alias="Command")
    names: List[str] = Field(default_factory=list, alias="Names")
    display_name: str = Field("", alias="DisplayName")
    display_color: int = Field(0, alias="DisplayColor")

    @field_validator("names", mode="before")
    @classmethod
    def _names_list(cls, value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [str(name) for name in value if name is not None]

    @property
    def is_reset(self) -> bool:
        return self.command == TERRORS_RESET

    @property
    def is_set_or_reveal(self) -> bool:
        return self.command in (TERRORS_SET, TERRORS_REVEAL)

    def announced_names(self) -> List[str]:
        """Names from the ``Names`` array, falling back to ``DisplayName``."""
        if self.names:
            return list(self.names)
        return [self.display_name] if self.display_name else []


class RoundTypeEvent(FeedEvent):
    command: int = Field(ROUND_ENDED, alias="Command")
    name: str = Field("", alias="Name")
    display_name: str = Field("", alias="DisplayName")

    @property
    def label(self) -> str:
        return self.name or self.display_name or "Unknown"

    @property
    def is_start(self) -> bool:
        return self.command == ROUND_STARTED

    @property
    def is_end(self) -> bool:
        return self.command == ROUND_ENDED


class LocationEvent(FeedEvent):
    command: int = Field(LOCATION_RESET, alias="Command")
    name: str = Field("Unknown", alias="Name")
    creator: str = Field("", alias="Creator")
    origin: str = Field("", alias="Origin")


class FlagEvent(FeedEvent):
    """ROUND_ACTIVE, ALIVE and IS_SABOTEUR all carry a boolean ``Value``."""
    value: bool = Field(False, alias="Value")


class PageCountEvent(FeedEvent):
    value: int = Field(0, alias="Value")


class ItemEvent(FeedEvent):
    command: int = Field(0, alias="Command")
    name: str = Field("Unknown Item", alias="Name")

    @property
    def is_grab(self) -> bool:
        return self.command == ITEM_GRAB


class PlayerJoinEvent(FeedEvent):
    value: str = Field("Unknown", alias="Value")
    player_id: str = Field("", alias="ID")

    @property
    def resolved_id(self) -> str:
        return self.player_id or self.value


class PlayerLeaveEvent(FeedEvent):
    value: str = Field("Unknown", alias="Value")
    player_id: str = Field("", alias="ID")


class DeathEvent(FeedEvent):
    name: str = Field("Unknown", alias="Name")
    message: str = Field("", alias="Message")


class TrackerEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field("Unknown", alias="Name")
    user_id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="UserId")
    is_alive: bool = Field(True, alias="IsAlive")

    @field_validator("name", mode="before")
    @classmethod
    def _name(cls, value: Any) -> str:
        return _as_str(value, "Unknown")

    @field_validator("user_id", mode="before")
    @classmethod
    def _user_id(cls, value: Any) -> str:
        text = _as_str(value)
        return text or str(uuid.uuid4())

    @field_validator("is_alive", mode="before")
    @classmethod
    def _is_alive(cls, value: Any) -> bool:
        return _as_bool(value, True) if value is not None else True


class TrackerEvent(FeedEvent):
    value: List[TrackerEntry] = Field(default_factory=list, alias="Value")
    has_roster: bool = False

    @field_validator("value", mode="before")
    @classmethod
    def _entries(cls, value: Any) -> List[Any]:
        if not isinstance(value, list):
            return []
        return [entry for entry in value if isinstance(entry, dict)]

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "TrackerEvent":
        event = cls.model_validate(data)
        event.has_roster = isinstance(data.get("Value"), list)
        return event


class GenericEvent(FeedEvent):
    """Recognised-but-stateless or unknown message kinds."""


EVENT_MODELS: Dict[str, Type[FeedEvent]] = {
    EventType.CONNECTED.value: ConnectedEvent,
    EventType.TERRORS.value: TerrorsEvent,
    EventType.ROUND_TYPE.value: RoundTypeEvent,
    EventType.LOCATION.value: LocationEvent,
    EventType.ROUND_ACTIVE.value: FlagEvent,
    EventType.ALIVE.value: FlagEvent,
    EventType.IS_SABOTEUR.value: FlagEvent,
    EventType.PAGE_COUNT.value: PageCountEvent,
    EventType.ITEM.value: ItemEvent,
    EventType.PLAYER_JOIN.value: PlayerJoinEvent,
    EventType.PLAYER_LEAVE.value: PlayerLeaveEvent,
    EventType.DEATH.value: DeathEvent,
    EventType.TRACKER.value: TrackerEvent,
    EventType.INSTANCE.value: GenericEvent,
    EventType.STATS.value: GenericEvent,
}


def event_type_of(data: Dict[str, Any]) -> str:
    """Upper-cased ``Type`` of a raw message ("" when absent)."""
    raw_type = data.get("Type")
    if raw_type is None:
        raw_type = data.get("TYPE")
    return _as_str(raw_type).strip().upper()


def parse_event(data: Dict[str, Any]) -> FeedEvent:
    """Validate a decoded message into its typed model.

    Unknown kinds come back as ``GenericEvent`` with their type preserved so
    the caller can log them. Raises ``pydantic.ValidationError`` only for
    payloads that cannot be coerced at all.
    """
    kind = event_type_of(data)
    model = EVENT_MODELS.get(kind, GenericEvent)
    if model is TrackerEvent:
        event = TrackerEvent.from_payload(data)
    else:
        event = model.model_validate(data)
    event.type = kind
    return event


def parse_message(message: str) -> Dict[str, Any]:
    """Decode one feed frame into a JSON object."""
    try:
        data = json.loads(message)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedMessageError(f"Invalid JSON ({e})", str(message)) from e
    if not isinstance(data, dict):
        raise MalformedMessageError("Message is not a JSON object", str(message))
    return data
