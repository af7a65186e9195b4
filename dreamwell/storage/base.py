"""Storage interface consumed by the engine

Persistence itself (key-value store, encryption, serialization) belongs to
the host. Implementations exchange the pydantic models with real datetimes.
"""
import logging
from typing import Dict, List, Optional, Protocol

from dreamwell.models.alarm import Alarm
from dreamwell.models.settings import UserSettings
from dreamwell.models.sleep import SleepNote, SleepSession

logger = logging.getLogger(__name__)


class SleepStorage(Protocol):
    def get_sleep_sessions(self) -> List[SleepSession]: ...

    def save_sleep_session(self, session: SleepSession) -> None: ...

    def delete_sleep_session(self, session_id: str) -> bool: ...

    def get_alarms(self) -> List[Alarm]: ...

    def save_alarm(self, alarm: Alarm) -> None: ...

    def delete_alarm(self, alarm_id: str) -> bool: ...

    def get_notes(self) -> List[SleepNote]: ...

    def save_note(self, note: SleepNote) -> None: ...

    def delete_note(self, note_id: str) -> bool: ...

    def get_settings(self) -> UserSettings: ...

    def save_settings(self, settings: UserSettings) -> None: ...


class InMemoryStorage:
    """
    Dict-backed SleepStorage.

    Records keep insertion order; saving an existing id replaces it in place,
    which preserves the positional order sleep debt relies on. Getters return
    copies so callers cannot mutate stored state.
    """

    def __init__(self, settings: Optional[UserSettings] = None):
        self._sessions: Dict[str, SleepSession] = {}
        self._alarms: Dict[str, Alarm] = {}
        self._notes: Dict[str, SleepNote] = {}
        self._settings = settings or UserSettings()

    def get_sleep_sessions(self) -> List[SleepSession]:
        return [s.model_copy(deep=True) for s in self._sessions.values()]

    def save_sleep_session(self, session: SleepSession) -> None:
        self._sessions[session.id] = session.model_copy(deep=True)

    def delete_sleep_session(self, session_id: str) -> bool:
        return self._delete(self._sessions, session_id, "session")

    def get_alarms(self) -> List[Alarm]:
        return [a.model_copy(deep=True) for a in self._alarms.values()]

    def save_alarm(self, alarm: Alarm) -> None:
        self._alarms[alarm.id] = alarm.model_copy(deep=True)

    def delete_alarm(self, alarm_id: str) -> bool:
        return self._delete(self._alarms, alarm_id, "alarm")

    def get_notes(self) -> List[SleepNote]:
        return [n.model_copy(deep=True) for n in self._notes.values()]

    def save_note(self, note: SleepNote) -> None:
        self._notes[note.id] = note.model_copy(deep=True)

    def delete_note(self, note_id: str) -> bool:
        return self._delete(self._notes, note_id, "note")

    def get_settings(self) -> UserSettings:
        return self._settings.model_copy(deep=True)

    def save_settings(self, settings: UserSettings) -> None:
        self._settings = settings.model_copy(deep=True)

    @staticmethod
    def _delete(records: dict, record_id: str, kind: str) -> bool:
        if records.pop(record_id, None) is None:
            logger.warning(f"Cannot delete {kind} {record_id}: not found")
            return False
        return True
