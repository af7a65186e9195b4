"""Configuration management"""
import os
from dotenv import load_dotenv
import pytz

from dreamwell.exceptions import ConfigurationError

load_dotenv()

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# Clock
# Empty means the host's local time
TIMEZONE: str = os.getenv("TIMEZONE", "")

# Alarm scheduler
ALARM_CHECK_INTERVAL_SECONDS: float = float(os.getenv("ALARM_CHECK_INTERVAL_SECONDS", "30"))
ALARM_STALE_AFTER_MINUTES: int = int(os.getenv("ALARM_STALE_AFTER_MINUTES", "60"))

# Notification delivery
NOTIFICATION_MAX_RETRIES: int = int(os.getenv("NOTIFICATION_MAX_RETRIES", "3"))
NOTIFICATION_INITIAL_DELAY_SECONDS: float = float(os.getenv("NOTIFICATION_INITIAL_DELAY_SECONDS", "0.5"))
NOTIFICATION_BREAKER_FAIL_MAX: int = int(os.getenv("NOTIFICATION_BREAKER_FAIL_MAX", "3"))
NOTIFICATION_BREAKER_RESET_SECONDS: float = float(os.getenv("NOTIFICATION_BREAKER_RESET_SECONDS", "60"))
NOTIFICATION_WEBHOOK_URL: str = os.getenv("NOTIFICATION_WEBHOOK_URL", "")

# Sleep goal used until the user saves their own settings
DEFAULT_SLEEP_GOAL_MINUTES: int = int(os.getenv("DEFAULT_SLEEP_GOAL_MINUTES", "480"))


# Validation
def validate_config() -> None:
    """Validate configuration values"""
    if LOG_LEVEL.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ConfigurationError(f"Unknown LOG_LEVEL: {LOG_LEVEL}", config_key="LOG_LEVEL")
    if TIMEZONE:
        try:
            pytz.timezone(TIMEZONE)
        except pytz.exceptions.UnknownTimeZoneError:
            raise ConfigurationError(
                f"Invalid timezone: '{TIMEZONE}'. Use IANA timezone (e.g., 'Europe/Stockholm')",
                config_key="TIMEZONE"
            )
    if ALARM_CHECK_INTERVAL_SECONDS <= 0:
        raise ConfigurationError("ALARM_CHECK_INTERVAL_SECONDS must be positive", config_key="ALARM_CHECK_INTERVAL_SECONDS")
    if NOTIFICATION_MAX_RETRIES < 0:
        raise ConfigurationError("NOTIFICATION_MAX_RETRIES cannot be negative", config_key="NOTIFICATION_MAX_RETRIES")
    if NOTIFICATION_BREAKER_FAIL_MAX < 1:
        raise ConfigurationError("NOTIFICATION_BREAKER_FAIL_MAX must be at least 1", config_key="NOTIFICATION_BREAKER_FAIL_MAX")
    if not 180 <= DEFAULT_SLEEP_GOAL_MINUTES <= 720:
        raise ConfigurationError("DEFAULT_SLEEP_GOAL_MINUTES must be between 180 and 720", config_key="DEFAULT_SLEEP_GOAL_MINUTES")
    if NOTIFICATION_WEBHOOK_URL and not NOTIFICATION_WEBHOOK_URL.startswith(("http://", "https://")):
        raise ConfigurationError("NOTIFICATION_WEBHOOK_URL must be an http(s) URL", config_key="NOTIFICATION_WEBHOOK_URL")
