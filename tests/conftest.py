"""Global test fixtures and utilities for dreamwell tests"""
import random
import pytest
from datetime import datetime, timedelta

from dreamwell.models.alarm import Alarm, SnoozeSettings
from dreamwell.models.sleep import NoteActivities, SleepNote, SleepPhases, SleepSession


# ============================================================================
# Clock Fixtures
# ============================================================================

class FakeClock:
    """Manually advanced wall clock"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class FakeMonotonic:
    """Manually advanced monotonic clock for circuit breaker cooldowns"""

    def __init__(self):
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def fixed_now():
    """Wednesday 2024-01-10 12:00"""
    return datetime(2024, 1, 10, 12, 0, 0)


@pytest.fixture
def fake_clock(fixed_now):
    return FakeClock(fixed_now)


@pytest.fixture
def fake_monotonic():
    return FakeMonotonic()


@pytest.fixture
def seeded_rng():
    return random.Random(42)


# ============================================================================
# Record Factories
# ============================================================================

@pytest.fixture
def make_session():
    """Factory for completed sessions (22:00 -> 06:00 by default)"""
    def _make(
        start: datetime = datetime(2024, 1, 1, 22, 0),
        duration: int = 480,
        quality: int = 80,
        phases: dict = None,
        interruptions: int = 2,
        completed: bool = True,
        **overrides
    ) -> SleepSession:
        return SleepSession(
            start_time=start,
            end_time=start + timedelta(minutes=duration) if completed else None,
            duration=duration if completed else 0,
            quality=quality,
            phases=SleepPhases(**(phases or {"awake": 10, "light": 200, "deep": 150, "rem": 120})),
            interruptions=interruptions,
            **overrides
        )
    return _make


@pytest.fixture
def make_alarm():
    """Factory for alarms that ring every day"""
    def _make(time: str = "07:30", **overrides) -> Alarm:
        fields = {
            "id": "alarm-1",
            "time": time,
            "label": "Wake up",
            "snooze": SnoozeSettings(duration=5, max_count=2),
        }
        fields.update(overrides)
        return Alarm(**fields)
    return _make


@pytest.fixture
def make_note():
    """Factory for sleep notes"""
    def _make(date: datetime, **activities) -> SleepNote:
        return SleepNote(
            date=date,
            text="Evening notes",
            activities=NoteActivities(**activities),
        )
    return _make
