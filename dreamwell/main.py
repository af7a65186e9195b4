"""Main entry point: wires storage, notifier and alarm scheduler"""
import logging
import asyncio
from typing import Optional

from dreamwell import config
from dreamwell.config import validate_config, LOG_LEVEL
from dreamwell.models.alarm import Alarm
from dreamwell.models.sleep import SleepSession
from dreamwell.exceptions import NotificationDeliveryError
from dreamwell.scheduler.alarm_scheduler import AlarmScheduler
from dreamwell.services.notifications import LoggingNotifier, Notifier, WebhookNotifier
from dreamwell.storage.base import InMemoryStorage, SleepStorage

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO)
)

logger = logging.getLogger(__name__)


def create_notifier() -> Notifier:
    """Webhook delivery when a gateway is configured, log-only otherwise"""
    if config.NOTIFICATION_WEBHOOK_URL:
        return WebhookNotifier(config.NOTIFICATION_WEBHOOK_URL)
    return LoggingNotifier()


def _warn_user(alarm: Alarm, error: NotificationDeliveryError) -> None:
    logger.warning(f"[ALARM] {error.user_message} (alarm {alarm.id})")


def create_scheduler(notifier: Notifier, storage: SleepStorage) -> AlarmScheduler:
    """Build a scheduler and seed it with the in-progress session, if any"""
    scheduler = AlarmScheduler(notifier, on_notification_failure=_warn_user)
    active: Optional[SleepSession] = next(
        (s for s in storage.get_sleep_sessions() if s.end_time is None), None
    )
    scheduler.update_active_sleep(active)
    return scheduler


async def main(storage: Optional[SleepStorage] = None) -> None:
    """Main application entry point"""
    scheduler = None
    notifier = None
    try:
        logger.info("Validating configuration...")
        validate_config()

        storage = storage or InMemoryStorage()
        notifier = create_notifier()

        logger.info("Starting alarm scheduler...")
        scheduler = create_scheduler(notifier, storage)
        scheduler.start(storage.get_alarms())

        logger.info("Dreamwell is running. Press Ctrl+C to stop.")
        await asyncio.Event().wait()

    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        raise
    finally:
        if scheduler:
            logger.info("Stopping alarm scheduler...")
            await scheduler.dispose()
        if isinstance(notifier, WebhookNotifier):
            await notifier.close()

        logger.info("Shutdown complete")


def run() -> None:
    """Console script entry point"""
    asyncio.run(main())


if __name__ == "__main__":
    run()
