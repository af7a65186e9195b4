"""Pydantic models for user settings"""
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional

from dreamwell.utils.datetime_helpers import parse_hhmm


class NotificationPreferences(BaseModel):
    """Which notifications the user wants"""

    alarms: bool = True
    bedtime_reminder: bool = True
    weekly_report: bool = False


class UserSettings(BaseModel):
    """User preferences consumed by sleep debt and recommendations"""

    sleep_goal: int = Field(default=480, ge=180, le=720)  # minutes per night
    ideal_bedtime: str = "22:30"
    ideal_wake_time: str = "06:30"
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)
    data_backup: Optional[datetime] = None

    @field_validator('ideal_bedtime', 'ideal_wake_time')
    @classmethod
    def validate_time_format(cls, v: str) -> str:
        """Ensure HH:MM format"""
        try:
            parse_hhmm(v)
        except ValueError:
            raise ValueError(f"Invalid time format: '{v}'. Must be HH:MM (e.g., '22:30')")
        return v
