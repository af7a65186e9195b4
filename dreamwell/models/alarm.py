"""Alarm models"""
from dataclasses import dataclass
from datetime import datetime, time as dt_time
from typing import Optional
from uuid import uuid4
from pydantic import BaseModel, Field, field_validator


class SnoozeSettings(BaseModel):
    """Snooze behaviour for an alarm"""
    duration: int = Field(default=9, ge=1, le=30)  # minutes per snooze
    max_count: int = Field(default=3, ge=1, le=10)


class Alarm(BaseModel):
    """Recurring wake configuration with validation"""
    id: str = Field(default_factory=lambda: str(uuid4()))
    time: str  # "07:30"
    label: str = Field(default="", max_length=100)
    days: list[bool] = Field(default_factory=lambda: [True] * 7)  # Sunday=0 .. Saturday=6
    enabled: bool = True
    sound_id: str = "default"
    smart_wake: bool = False
    wake_window: int = Field(default=30, ge=0, le=60)  # minutes, only used with smart_wake
    vibration: bool = True
    snooze: SnoozeSettings = Field(default_factory=SnoozeSettings)

    @field_validator('time')
    @classmethod
    def validate_time_format(cls, v: str) -> str:
        """Ensure HH:MM format and valid time"""
        parts = v.split(":")
        try:
            if len(parts) != 2 or len(parts[1]) != 2:
                raise ValueError(v)
            dt_time(int(parts[0]), int(parts[1]))
        except ValueError:
            raise ValueError(
                f"Invalid time format: '{v}'. Must be HH:MM (e.g., '07:30')"
            )
        return f"{int(parts[0]):02d}:{parts[1]}"

    @field_validator('days')
    @classmethod
    def validate_days(cls, v: list[bool]) -> list[bool]:
        """Ensure one flag per weekday"""
        if len(v) != 7:
            raise ValueError(
                f"Invalid days: expected 7 flags (Sunday..Saturday), got {len(v)}"
            )
        return v

    def is_scheduled_on(self, weekday: int) -> bool:
        """True if the alarm rings on the given weekday (Sunday=0)"""
        return self.days[weekday]


@dataclass
class ActiveAlarm:
    """Runtime state of a ringing alarm, owned by the scheduler"""
    alarm: Alarm
    triggered_at: datetime
    snooze_count: int = 0
    snoozed_until: Optional[datetime] = None
