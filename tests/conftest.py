"""
Pytest fixtures for Energy Balance Engine tests.
"""
import sys
import time as time_module
import pytest
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from dotenv import load_dotenv

# Ensure src/ is on sys.path so tests can import energy_balance without installing.
ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# Load environment variables
load_dotenv()

from energy_balance.aggregator import EnergyBalanceAggregator  # noqa: E402
from energy_balance.config import Settings  # noqa: E402
from energy_balance.models import Sex, UserProfile  # noqa: E402
from energy_balance.stores import (  # noqa: E402
    InMemoryActivityProvider,
    InMemoryProfileStore,
)


# ============================================================================
# Shared constants and helpers
# ============================================================================

TODAY = date(2026, 10, 18)
YESTERDAY = TODAY - timedelta(days=1)
TOMORROW = TODAY + timedelta(days=1)
NOW = datetime.combine(TODAY, time(14, 0), tzinfo=timezone.utc)

# Polling fast enough for live tests to see several ticks
FAST_POLL_SECONDS = 0.01


def at(hour: int, minute: int = 0, day: date = TODAY) -> datetime:
    """Timezone-aware instant on day (UTC)."""
    return datetime.combine(day, time(hour, minute), tzinfo=timezone.utc)


class FakeClock:
    """Settable clock returning a fixed timezone-aware instant."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


def make_profile(
    sex: Sex = Sex.MALE,
    age: int = 30,
    weight_kg: float = 75.5,
    height_cm: float = 178.0,
) -> UserProfile:
    """Profile whose age on TODAY is exactly age (birthday earlier in the year)."""
    return UserProfile(
        sex=sex,
        birth_date=date(TODAY.year - age, 5, 1),
        weight_kg=weight_kg,
        height_cm=height_cm,
    )


# BMR of make_profile(): 10*75.5 + 6.25*178 - 5*30 + 5
DEFAULT_BMR = 1722.5


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def clock():
    """Clock fixed at 14:00 UTC on TODAY."""
    return FakeClock()


@pytest.fixture
def settings():
    """Settings with fast polling and UTC day boundaries."""
    return Settings(poll_interval_seconds=FAST_POLL_SECONDS, timezone="UTC")


@pytest.fixture
def profile():
    return make_profile()


@pytest.fixture
def profile_store(profile):
    return InMemoryProfileStore(profile)


@pytest.fixture
def provider():
    return InMemoryActivityProvider()


@pytest.fixture
def local_zone(monkeypatch):
    """Run with the process local zone set to Europe/Berlin (CET/CEST)."""
    if not hasattr(time_module, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "Europe/Berlin")
    time_module.tzset()
    yield
    monkeypatch.undo()
    time_module.tzset()


@pytest.fixture
def aggregator(profile_store, provider, clock, settings):
    return EnergyBalanceAggregator(
        profile_store, provider, clock=clock, settings=settings
    )
