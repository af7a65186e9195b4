"""Alarm scheduler: periodic polling of configured alarms

Per-alarm state machine:

    Idle --trigger--> Triggered --snooze--> Snoozed --expiry--> Triggered
    Triggered/Snoozed --dismiss--> Idle (entry removed)
    Triggered/Snoozed --1h without dismiss--> Idle (garbage-collected)

A single asyncio task starts a tick every `check_interval` seconds, never
skipping one. Each tick evaluates the alarm snapshot under a lock, then
releases it before delivering: delivery is the only slow part and goes
through retry + circuit breaker, so a stuck notifier cannot delay the next
evaluation. The alarm is recorded as active before delivery is attempted,
so the in-app indicator works even when notifications are down.

Each alarm rings at most once per occurrence (its time of day on a given
date), so dismissing inside the trigger minute or window is final.
"""
import asyncio
import logging
import math
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

import pybreaker

from dreamwell import config
from dreamwell.exceptions import NotificationDeliveryError
from dreamwell.models.alarm import ActiveAlarm, Alarm
from dreamwell.models.sleep import SleepSession
from dreamwell.resilience.circuit_breaker import AsyncCircuitBreaker, create_breaker, with_circuit_breaker
from dreamwell.resilience.metrics import record_alarm_triggered, record_delivery
from dreamwell.resilience.retry import with_retry
from dreamwell.services.notifications import Notifier
from dreamwell.utils.datetime_helpers import at_time_of_day, format_hhmm, now_local, sunday_based_weekday

logger = logging.getLogger(__name__)

SLEEP_CYCLE = timedelta(minutes=90)
TRIGGER_TOLERANCE = timedelta(seconds=30)

TriggerCallback = Callable[[Alarm], Any]
FailureCallback = Callable[[Alarm, NotificationDeliveryError], Any]


class AlarmScheduler:
    """Evaluate alarms on a clock tick and manage ringing-alarm state"""

    def __init__(
        self,
        notifier: Notifier,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        check_interval: float = config.ALARM_CHECK_INTERVAL_SECONDS,
        stale_after: timedelta = timedelta(minutes=config.ALARM_STALE_AFTER_MINUTES),
        max_retries: int = config.NOTIFICATION_MAX_RETRIES,
        initial_delay: float = config.NOTIFICATION_INITIAL_DELAY_SECONDS,
        breaker: Optional[AsyncCircuitBreaker] = None,
        on_trigger: Optional[TriggerCallback] = None,
        on_notification_failure: Optional[FailureCallback] = None,
    ):
        self._notifier = notifier
        self._clock = clock or now_local
        self._check_interval = check_interval
        self._stale_after = stale_after
        self._on_trigger = on_trigger
        self._on_notification_failure = on_notification_failure

        self.breaker = breaker or AsyncCircuitBreaker(create_breaker(
            "alarm_notifications",
            fail_max=config.NOTIFICATION_BREAKER_FAIL_MAX,
            reset_timeout=config.NOTIFICATION_BREAKER_RESET_SECONDS,
        ))

        # Retry runs inside the breaker: one exhausted retry sequence is one breaker failure
        deliver = with_retry(max_retries=max_retries, initial_delay=initial_delay)(
            notifier.trigger_alarm_notification
        )
        self._deliver = with_circuit_breaker(self.breaker)(deliver)

        self._alarms: tuple = ()
        self._active_sleep: Optional[SleepSession] = None
        self._active_alarms: Dict[str, ActiveAlarm] = {}
        self._last_checked: Dict[str, datetime] = {}
        self._fired_occurrences: Dict[str, datetime] = {}
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._ticks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, alarms: Iterable[Alarm], on_trigger: Optional[TriggerCallback] = None) -> None:
        """
        Start polling the given alarms.

        Checks immediately, then every `check_interval` seconds. Any polling
        task from a previous start is cancelled first. Must be called from a
        running event loop.
        """
        self._alarms = tuple(alarms)
        if on_trigger is not None:
            self._on_trigger = on_trigger

        self._cancel_polling()
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info(f"[ALARM] Scheduler started with {len(self._alarms)} alarms (every {self._check_interval}s)")

    def stop(self) -> None:
        """
        Stop future ticks.

        In-flight deliveries finish on their own and active alarms stay
        active until dismissed.
        """
        if self._cancel_polling():
            logger.info("[ALARM] Scheduler stopped")

    async def dispose(self) -> None:
        """Stop polling, wait for in-flight ticks and drop all references"""
        self.stop()
        if self._ticks:
            await asyncio.gather(*self._ticks, return_exceptions=True)
        self._alarms = ()
        self._active_sleep = None
        self._active_alarms.clear()
        self._last_checked.clear()
        self._fired_occurrences.clear()
        self._on_trigger = None
        self._on_notification_failure = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def update_alarms(self, alarms: Iterable[Alarm]) -> None:
        """Replace the alarm snapshot; re-checks at once when running"""
        self._alarms = tuple(alarms)
        known = {alarm.id for alarm in self._alarms}
        for history in (self._last_checked, self._fired_occurrences):
            for alarm_id in [a for a in history if a not in known]:
                del history[alarm_id]
        if self.is_running:
            self._spawn_tick()

    def update_active_sleep(self, active_sleep: Optional[SleepSession]) -> None:
        """Set (or clear) the in-progress session used for smart wake timing"""
        self._active_sleep = active_sleep
        if self.is_running:
            self._spawn_tick()

    def _cancel_polling(self) -> bool:
        if self._task is None:
            return False
        self._task.cancel()
        self._task = None
        return True

    async def _run(self) -> None:
        while True:
            self._spawn_tick()
            await asyncio.sleep(self._check_interval)

    def _spawn_tick(self) -> None:
        # Ticks run as their own tasks so stop() never cancels a delivery
        tick = asyncio.get_running_loop().create_task(self.check_alarms())
        self._ticks.add(tick)
        tick.add_done_callback(self._on_tick_done)

    def _on_tick_done(self, tick: asyncio.Task) -> None:
        self._ticks.discard(tick)
        if not tick.cancelled() and tick.exception() is not None:
            logger.error("[ALARM] Alarm check failed", exc_info=tick.exception())

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    async def check_alarms(self, now: Optional[datetime] = None) -> None:
        """
        Run one tick: evaluate every alarm, drop stale active alarms, then
        deliver whatever came due.

        Evaluation is serialized across ticks; delivery happens after the
        lock is released, so a slow notifier never holds up the next tick.
        A failure while evaluating one alarm is logged and does not stop the
        others from being checked.
        """
        due: List[Alarm] = []
        async with self._lock:
            now = now or self._clock()
            weekday = sunday_based_weekday(now)

            for alarm in self._alarms:
                previous = self._last_checked.get(alarm.id)
                try:
                    if self._evaluate(alarm, now, weekday, previous):
                        due.append(alarm)
                except Exception as e:
                    logger.error(f"[ALARM] Failed to evaluate alarm {alarm.id}: {e}", exc_info=True)
                self._last_checked[alarm.id] = now

            self._collect_stale(now)

        if due:
            await asyncio.gather(*(self._deliver_and_report(alarm, now) for alarm in due))

    def _evaluate(self, alarm: Alarm, now: datetime, weekday: int, previous: Optional[datetime]) -> bool:
        """Update ringing state for one alarm; True when a notification is due"""
        if not alarm.enabled or not alarm.is_scheduled_on(weekday):
            return False

        active = self._active_alarms.get(alarm.id)
        if active is not None:
            if active.snoozed_until is not None and now >= active.snoozed_until:
                active.snoozed_until = None
                record_alarm_triggered("snooze_expired")
                return True
            return False

        occurrence = at_time_of_day(now, alarm.time)
        if self._fired_occurrences.get(alarm.id) == occurrence:
            return False

        if self.should_trigger_alarm(alarm, now, previous=previous):
            self._active_alarms[alarm.id] = ActiveAlarm(alarm=alarm, triggered_at=now)
            self._fired_occurrences[alarm.id] = occurrence
            record_alarm_triggered("initial")
            return True
        return False

    def _collect_stale(self, now: datetime) -> None:
        cutoff = now - self._stale_after
        stale = [alarm_id for alarm_id, active in self._active_alarms.items() if active.triggered_at < cutoff]
        for alarm_id in stale:
            del self._active_alarms[alarm_id]
            logger.info(f"[ALARM] Dropped alarm {alarm_id}: never dismissed")

    # ------------------------------------------------------------------
    # Trigger decision
    # ------------------------------------------------------------------

    def should_trigger_alarm(self, alarm: Alarm, now: datetime, previous: Optional[datetime] = None) -> bool:
        """
        Decide whether an idle alarm fires at `now`.

        Regular alarms fire during their minute. Smart alarms fire inside
        [time - wake_window, time]: at the next sleep-cycle boundary of the
        active session when one is tracked, otherwise once on entering the
        window.

        Args:
            alarm: Alarm to evaluate
            now: Tick time
            previous: Time of the previous tick for this alarm, if any. The
                window counts as entered when it started after `previous`;
                without one, only the first 30 seconds of the window count.
        """
        if not alarm.smart_wake or alarm.wake_window == 0:
            return format_hhmm(now) == alarm.time

        alarm_at = at_time_of_day(now, alarm.time)
        window_start = alarm_at - timedelta(minutes=alarm.wake_window)

        if now < window_start or now > alarm_at:
            return False

        if self._active_sleep is not None:
            optimal = self.calculate_optimal_wake_time(alarm, now)
            if optimal is not None:
                return abs(now - optimal) <= TRIGGER_TOLERANCE

        if previous is None:
            return now - window_start < TRIGGER_TOLERANCE
        return previous < window_start

    def calculate_optimal_wake_time(self, alarm: Alarm, now: datetime) -> Optional[datetime]:
        """
        Next 90-minute cycle boundary of the active session inside the wake window.

        A new cycle starts in light sleep, the easiest point to wake. Returns
        `now` when every boundary in the window has passed, and None when no
        boundary falls in the window (or nothing is being tracked).
        """
        if self._active_sleep is None:
            return None

        sleep_start = self._active_sleep.start_time
        alarm_at = at_time_of_day(now, alarm.time)
        window_start = alarm_at - timedelta(minutes=alarm.wake_window)

        first_cycle = max(0, math.ceil((window_start - sleep_start) / SLEEP_CYCLE))
        boundary = sleep_start + first_cycle * SLEEP_CYCLE

        boundaries = []
        while boundary <= alarm_at:
            boundaries.append(boundary)
            boundary += SLEEP_CYCLE

        if not boundaries:
            return None

        upcoming = next((b for b in boundaries if b >= now), None)
        return upcoming if upcoming is not None else now

    # ------------------------------------------------------------------
    # Trigger / snooze / dismiss
    # ------------------------------------------------------------------

    async def trigger_alarm(self, alarm: Alarm, now: Optional[datetime] = None) -> None:
        """
        Mark the alarm active and deliver its notification.

        Never raises: a delivery failure is logged and passed to
        `on_notification_failure`, and the alarm stays active.
        """
        now = now or self._clock()
        if alarm.id not in self._active_alarms:
            self._active_alarms[alarm.id] = ActiveAlarm(alarm=alarm, triggered_at=now)
        await self._deliver_and_report(alarm, now)

    async def _deliver_and_report(self, alarm: Alarm, now: datetime) -> None:
        channel = getattr(self._notifier, "name", type(self._notifier).__name__)
        try:
            await self._deliver(alarm)
        except Exception as e:
            record_delivery(channel, "circuit_open" if isinstance(e, pybreaker.CircuitBreakerError) else "failure")
            error = NotificationDeliveryError(
                f"Alarm '{alarm.label or alarm.id}' triggered but notification failed: {type(e).__name__}: {e}",
                alarm_id=alarm.id,
                operation="trigger_alarm",
                cause=e,
            )
            self._notify_failure(alarm, error)
        else:
            record_delivery(channel, "success")

        if self._on_trigger is not None:
            try:
                self._on_trigger(alarm)
            except Exception as e:
                logger.error(f"[ALARM] Trigger callback failed for {alarm.id}: {e}", exc_info=True)

        logger.info(f"[ALARM] Alarm triggered: {alarm.label or alarm.id} at {now:%H:%M:%S}")

    def _notify_failure(self, alarm: Alarm, error: NotificationDeliveryError) -> None:
        if self._on_notification_failure is None:
            return
        try:
            self._on_notification_failure(alarm, error)
        except Exception as e:
            logger.error(f"[ALARM] Failure callback failed for {alarm.id}: {e}", exc_info=True)

    def snooze_alarm(self, alarm_id: str, now: Optional[datetime] = None) -> None:
        """
        Snooze a ringing alarm for its snooze duration.

        Once the snooze limit is reached the alarm is dismissed instead.
        """
        active = self._active_alarms.get(alarm_id)
        if active is None:
            logger.warning(f"Cannot snooze alarm {alarm_id}: not active")
            return

        if active.snooze_count >= active.alarm.snooze.max_count:
            logger.warning(f"Cannot snooze alarm {alarm_id}: max snooze count reached")
            self.dismiss_alarm(alarm_id)
            return

        now = now or self._clock()
        active.snooze_count += 1
        active.snoozed_until = now + timedelta(minutes=active.alarm.snooze.duration)

        logger.info(
            f"[ALARM] Alarm {alarm_id} snoozed until {active.snoozed_until:%H:%M:%S} "
            f"({active.snooze_count}/{active.alarm.snooze.max_count})"
        )

    def dismiss_alarm(self, alarm_id: str) -> None:
        if self._active_alarms.pop(alarm_id, None) is None:
            logger.warning(f"Cannot dismiss alarm {alarm_id}: not active")
            return
        logger.info(f"[ALARM] Alarm {alarm_id} dismissed")

    def get_active_alarms(self) -> List[ActiveAlarm]:
        """Snapshot of ringing and snoozed alarms"""
        return [replace(active) for active in self._active_alarms.values()]

    def is_alarm_active(self, alarm_id: str) -> bool:
        return alarm_id in self._active_alarms
