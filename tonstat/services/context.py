"""Per-connection session context shared by every component."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..config import Settings
from .escalation import EscalationPredictor
from .instance_tracker import InstanceTracker
from .notifications import SessionNotifier
from .roster import PlayerRoster
from .statistics import StatisticsAggregator
from .terror_catalog import StunPolicy, TerrorCatalog


PAGE_TOTAL = 8


@dataclass
class TerrorEntity:
    name: str
    display_color: Optional[Tuple[int, int, int]] = None
    stun_policy: StunPolicy = StunPolicy.UNKNOWN


def color_from_packed(value: int) -> Optional[Tuple[int, int, int]]:
    """Unpack a 0xRRGGBB display colour (0 means unset)."""
    if not value:
        return None
    return ((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)


@dataclass
class LiveGameData:
    """Direct readouts from the feed that need no inference."""
    round_type_display: str = ""
    map_name: str = ""
    map_creator: str = ""
    map_origin: str = ""
    round_active: bool = False
    alive_signal: Optional[bool] = None
    saboteur: bool = False
    page_count: int = 0

    @property
    def location_display(self) -> str:
        if not self.map_name:
            return "-"
        text = self.map_name
        if self.map_creator:
            text += f" (by {self.map_creator})"
        if self.map_origin:
            text += f" [{self.map_origin}]"
        return text

    @property
    def page_display(self) -> str:
        # Feed counts pages from zero
        if self.page_count == 0:
            return "-"
        return f"{self.page_count + 1} / {PAGE_TOTAL}"

    def clear_location(self) -> None:
        self.map_name = ""
        self.map_creator = ""
        self.map_origin = ""


@dataclass
class SessionContext:
    """Everything one connection owns. Built once per GameSession."""
    settings: Settings
    roster: PlayerRoster
    instance: InstanceTracker
    escalation: EscalationPredictor
    statistics: StatisticsAggregator
    catalog: TerrorCatalog
    notifier: SessionNotifier
    terrors: List[TerrorEntity] = field(default_factory=list)
    game_data: LiveGameData = field(default_factory=LiveGameData)

    @classmethod
    def create(cls, settings: Settings, catalog: Optional[TerrorCatalog] = None,
               notifier: Optional[SessionNotifier] = None, **roster_kwargs) -> "SessionContext":
        notifier = notifier or SessionNotifier()
        roster = PlayerRoster(
            max_name_length=settings.max_player_name_length,
            warning_users=settings.warning_users,
            **roster_kwargs,
        )
        return cls(
            settings=settings,
            roster=roster,
            instance=InstanceTracker(),
            escalation=EscalationPredictor(settings.mystic_moon_survival_threshold),
            statistics=StatisticsAggregator(),
            catalog=catalog or TerrorCatalog(),
            notifier=notifier,
        )

    @property
    def terror_names(self) -> List[str]:
        return [t.name for t in self.terrors]
