import logging
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TONSTAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    app_name: str = "ToN Stat Tool"
    debug: bool = False
    log_level: str = "INFO"

    # Game event feed
    websocket_url: str = "ws://localhost:11398"

    # Retention
    round_history_limit: int = 999
    recent_events_limit: int = 500
    player_stale_minutes: int = 60

    # Roster
    max_player_name_length: int = 50
    warning_users: List[str] = []

    # Prediction
    mystic_moon_survival_threshold: int = 15

    # Optional terror trait catalog (terrorsInfo.json layout)
    terror_catalog_path: Optional[str] = None


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Apply the configured log level to the root logger."""
    settings = settings or get_settings()
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
