"""Engine configuration loaded from environment variables."""
from datetime import tzinfo
from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Energy balance engine settings loaded from environment."""

    # Activity platform has no push notifications, so live data is polled
    poll_interval_seconds: float = 300.0

    # IANA zone name for day boundaries; None uses the system local zone
    timezone: Optional[str] = None

    # Per-consumer buffer for aggregator results
    subscriber_queue_size: int = 100

    @property
    def zone(self) -> Optional[tzinfo]:
        return ZoneInfo(self.timezone) if self.timezone else None

    class Config:
        env_prefix = "ENERGY_BALANCE_"


@lru_cache
def get_settings() -> Settings:
    return Settings()
