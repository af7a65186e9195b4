"""
Notification delivery for alarms and bedtime reminders

The scheduler only depends on the Notifier protocol. Two implementations
ship with the package:
- LoggingNotifier: records the notification in the log (in-app indicator only)
- WebhookNotifier: POSTs the notification as JSON to a push gateway
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Protocol

import httpx

from dreamwell.models.alarm import Alarm
from dreamwell.models.settings import UserSettings
from dreamwell.utils.datetime_helpers import at_time_of_day, format_hhmm

logger = logging.getLogger(__name__)

BEDTIME_REMINDER_LEAD = timedelta(minutes=30)
VIBRATION_PATTERN = [200, 100, 200]


@dataclass
class NotificationPayload:
    """Channel-independent notification content"""
    title: str
    body: str
    tag: str
    require_interaction: bool = False
    vibrate: Optional[List[int]] = None
    data: dict = field(default_factory=dict)


class Notifier(Protocol):
    """Delivers alarm notifications; may raise on failure"""

    name: str

    async def trigger_alarm_notification(self, alarm: Alarm) -> None: ...


def build_alarm_notification(alarm: Alarm) -> NotificationPayload:
    """Notification content for a ringing alarm"""
    body = "Time to wake up!"
    if alarm.smart_wake:
        body += " (Smart wake enabled)"

    return NotificationPayload(
        title=f"⏰ {alarm.label or 'Alarm'}",
        body=body,
        tag=f"alarm-{alarm.id}",
        require_interaction=True,
        vibrate=list(VIBRATION_PATTERN) if alarm.vibration else None,
        data={"alarm_id": alarm.id, "sound_id": alarm.sound_id, "time": alarm.time},
    )


def should_show_bedtime_reminder(settings: UserSettings, now: datetime) -> bool:
    """
    True during the minute that falls 30 minutes before the ideal bedtime.

    Wraps past midnight, so a 00:15 bedtime reminds at 23:45.
    """
    if not settings.notifications.bedtime_reminder:
        return False

    reminder_at = at_time_of_day(now, settings.ideal_bedtime) - BEDTIME_REMINDER_LEAD
    return format_hhmm(now) == format_hhmm(reminder_at)


def build_bedtime_reminder(settings: UserSettings) -> NotificationPayload:
    return NotificationPayload(
        title="Time to Wind Down",
        body=f"Your ideal bedtime is {settings.ideal_bedtime}. Start preparing for restful sleep!",
        tag="bedtime-reminder",
    )


class LoggingNotifier:
    """Notifier that only logs; the in-app active alarm list is the indicator"""

    name = "log"

    async def trigger_alarm_notification(self, alarm: Alarm) -> None:
        payload = build_alarm_notification(alarm)
        logger.info(f"[NOTIFY] {payload.title}: {payload.body} (tag={payload.tag})")


class WebhookNotifier:
    """
    Notifier that POSTs alarm notifications to a push gateway.

    Raises httpx errors on timeouts and non-2xx responses so the scheduler's
    retry and circuit breaker can handle them.
    """

    name = "webhook"

    def __init__(
        self,
        url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0
    ):
        self.url = url
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def send(self, payload: NotificationPayload) -> None:
        client = await self._get_client()
        response = await client.post(self.url, json=asdict(payload))
        response.raise_for_status()
        logger.info(f"[NOTIFY] Delivered '{payload.tag}' to {self.url} ({response.status_code})")

    async def trigger_alarm_notification(self, alarm: Alarm) -> None:
        await self.send(build_alarm_notification(alarm))

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
