"""Pydantic models for sleep sessions and sleep notes"""
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional, List, Literal
from uuid import uuid4


class SleepPhases(BaseModel):
    """Minutes spent in each sleep phase"""

    awake: int = Field(default=0, ge=0)
    light: int = Field(default=0, ge=0)
    deep: int = Field(default=0, ge=0)
    rem: int = Field(default=0, ge=0)

    @property
    def total(self) -> int:
        return self.awake + self.light + self.deep + self.rem


class SleepEnvironment(BaseModel):
    """Ambient conditions recorded during a session"""

    noise: float = Field(default=0, ge=0)
    temperature: Optional[float] = None


class SleepSession(BaseModel):
    """
    One tracked sleep attempt.

    Active while end_time is None; completed once end_time, duration,
    phases and quality have been filled in.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    start_time: datetime
    end_time: Optional[datetime] = None
    duration: int = Field(default=0, ge=0, le=24 * 60)  # minutes
    quality: int = Field(default=0, ge=0, le=100)
    phases: SleepPhases = Field(default_factory=SleepPhases)
    interruptions: int = Field(default=0, ge=0)
    notes: str = Field(default="", max_length=1000)
    sound_recordings: List[str] = Field(default_factory=list)
    environment: SleepEnvironment = Field(default_factory=SleepEnvironment)

    @property
    def is_completed(self) -> bool:
        return self.end_time is not None


ExerciseTiming = Literal["morning", "afternoon", "evening"]


class NoteActivities(BaseModel):
    """Structured factors from the day before a night's sleep"""

    exercise: Optional[ExerciseTiming] = None
    caffeine: List[str] = Field(default_factory=list, max_length=10)
    alcohol: bool = False
    heavy_meal: bool = False
    stress: int = Field(default=3, ge=1, le=5)
    screen_time: int = Field(default=0, ge=0, le=1440)  # minutes
    nap: bool = False


class SleepNote(BaseModel):
    """Journal entry for one calendar day"""

    id: str = Field(default_factory=lambda: str(uuid4()))
    date: datetime
    text: str = Field(min_length=1, max_length=1000)
    tags: List[str] = Field(default_factory=list, max_length=10)
    activities: NoteActivities = Field(default_factory=NoteActivities)
    mood_before: int = Field(default=3, ge=1, le=5)
    mood_after: int = Field(default=3, ge=1, le=5)
