from pydantic import BaseModel, ConfigDict
from typing import Dict, List, Optional, Tuple
from datetime import datetime


class TerrorResponse(BaseModel):
    name: str
    display_color: Optional[Tuple[int, int, int]] = None
    stun_policy: str = "unknown"

    model_config = ConfigDict(from_attributes=True)


class PlayerResponse(BaseModel):
    name: str
    stable_id: str
    is_local: bool = False
    is_alive: bool = True
    is_warning_user: bool = False
    joined_at: datetime
    last_seen: datetime

    model_config = ConfigDict(from_attributes=True)


class RoundRecordResponse(BaseModel):
    started_at: datetime
    round_type: str
    map_name: str
    terror_names: str
    items: str
    survived: bool

    model_config = ConfigDict(from_attributes=True)


class InstanceStateResponse(BaseModel):
    is_instance_owner: bool = False
    special_unlocked: bool = True
    normal_round_count: int = 0
    last_round_type: str = ""
    current_round_type: str = ""
    estimated_survival_count: int = 0
    met_big_bird: bool = False
    met_judgement_bird: bool = False
    met_punishing_bird: bool = False
    blood_moon_unlocked: bool = False
    twilight_unlocked: bool = False
    mystic_moon_unlocked: bool = False
    solstice_unlocked: bool = False
    midnight_survived: bool = False

    model_config = ConfigDict(from_attributes=True)


class StatsResponse(BaseModel):
    total_rounds: int = 0
    survived_rounds: int = 0
    round_type_counts: Dict[str, int] = {}
    terror_type_counts: Dict[str, int] = {}
    terrors_met: int = 0


class GameDataResponse(BaseModel):
    round_type: str = ""
    location: str = "-"
    round_active: bool = False
    alive: Optional[bool] = None
    saboteur: bool = False
    page_count: str = "-"


class SessionSnapshot(BaseModel):
    """Read model for the presentation layer."""
    connected: bool = False
    local_player_name: str = ""
    terrors: List[TerrorResponse] = []
    players: List[PlayerResponse] = []
    alive_count: int = 0
    total_count: int = 0
    round_open: bool = False
    open_round_type: Optional[str] = None
    history: List[RoundRecordResponse] = []
    instance: InstanceStateResponse
    prediction: str
    stats: StatsResponse
    game_data: GameDataResponse
