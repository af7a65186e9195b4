"""
Data export and import

- JSON backup of sessions, alarms, notes and settings (restorable)
- CSV export of sessions for spreadsheets

Date fields are ISO-8601 strings in the files and real datetimes everywhere
else; conversion happens only here.
"""

import csv
import io
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from dreamwell.exceptions import DataImportError, ValidationError
from dreamwell.models.alarm import Alarm
from dreamwell.models.settings import UserSettings
from dreamwell.models.sleep import SleepNote, SleepSession
from dreamwell.storage.base import SleepStorage

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0.0"
BACKUP_KEYS = ("sessions", "alarms", "notes", "settings")

CSV_HEADERS = [
    "Date",
    "Start Time",
    "End Time",
    "Duration (hours)",
    "Quality (%)",
    "Deep Sleep (min)",
    "REM Sleep (min)",
    "Light Sleep (min)",
    "Awake (min)",
    "Interruptions",
    "Notes",
]


@dataclass
class ImportResult:
    success: bool
    message: str
    sessions: int = 0
    alarms: int = 0
    notes: int = 0
    settings: bool = False


def export_data_to_json(storage: SleepStorage, now: Optional[datetime] = None) -> str:
    """Serialize everything in storage into a versioned JSON backup"""
    data = {
        "version": EXPORT_VERSION,
        "exportDate": (now or datetime.now()).isoformat(),
        "sessions": [s.model_dump(mode="json") for s in storage.get_sleep_sessions()],
        "alarms": [a.model_dump(mode="json") for a in storage.get_alarms()],
        "notes": [n.model_dump(mode="json") for n in storage.get_notes()],
        "settings": storage.get_settings().model_dump(mode="json"),
    }
    return json.dumps(data, indent=2, ensure_ascii=False)


def export_sessions_to_csv(sessions: Sequence[SleepSession]) -> str:
    """One CSV row per session; "No data to export" when empty"""
    if not sessions:
        return "No data to export"

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)

    for session in sessions:
        end = session.end_time
        writer.writerow([
            end.date().isoformat() if end else "N/A",
            session.start_time.strftime("%H:%M:%S"),
            end.strftime("%H:%M:%S") if end else "N/A",
            f"{session.duration / 60:.2f}",
            session.quality,
            session.phases.deep,
            session.phases.rem,
            session.phases.light,
            session.phases.awake,
            session.interruptions,
            session.notes,
        ])

    return buffer.getvalue().rstrip("\n")


def _parse_backup(json_string: str) -> dict:
    try:
        data = json.loads(json_string)
    except json.JSONDecodeError as e:
        raise DataImportError("Invalid JSON file.", operation="import_data", cause=e)

    if not isinstance(data, dict) or not any(key in data for key in BACKUP_KEYS):
        raise DataImportError(
            "Invalid backup file format. Missing required data fields.",
            operation="import_data",
        )
    return data


def _validate_section(data: dict, key: str, model):
    """Validate one backup section, reporting the first bad record"""
    raw = data.get(key)
    if not raw:
        return [] if key != "settings" else None

    records = [raw] if key == "settings" else raw
    validated = []
    for index, record in enumerate(records):
        try:
            validated.append(model.model_validate(record))
        except PydanticValidationError as e:
            record_id = record.get("id", index) if isinstance(record, dict) else index
            raise ValidationError(
                e.errors()[0]["msg"],
                field=key,
                value=record_id,
                operation="import_data",
                cause=e,
            )
    return validated[0] if key == "settings" else validated


def import_data_from_json(json_string: str, storage: SleepStorage) -> ImportResult:
    """
    Restore a JSON backup into storage.

    Every record is validated before anything is written, so a bad file
    leaves storage untouched.
    """
    try:
        data = _parse_backup(json_string)
        sessions = _validate_section(data, "sessions", SleepSession)
        alarms = _validate_section(data, "alarms", Alarm)
        notes = _validate_section(data, "notes", SleepNote)
        settings = _validate_section(data, "settings", UserSettings)
    except ValidationError as e:
        return ImportResult(success=False, message=e.user_message)
    except DataImportError as e:
        return ImportResult(success=False, message=e.user_message)

    for session in sessions:
        storage.save_sleep_session(session)
    for alarm in alarms:
        storage.save_alarm(alarm)
    for note in notes:
        storage.save_note(note)
    if settings is not None:
        storage.save_settings(settings)

    logger.info(
        f"Imported {len(sessions)} sessions, {len(alarms)} alarms, {len(notes)} notes"
    )
    return ImportResult(
        success=True,
        message=f"Imported {len(sessions)} sessions, {len(alarms)} alarms and {len(notes)} notes.",
        sessions=len(sessions),
        alarms=len(alarms),
        notes=len(notes),
        settings=settings is not None,
    )
