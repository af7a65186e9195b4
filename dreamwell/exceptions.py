"""
Standardized exception hierarchy for dreamwell
Provides rich context, consistent logging, and user-friendly error messages
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)


class DreamwellError(Exception):
    """
    Base exception for all dreamwell errors

    Provides:
    - Automatic timestamping
    - Request ID for tracing
    - User-friendly messages
    - Structured context
    - Automatic logging

    Example:
        raise DreamwellError(
            message="Failed to complete sleep session",
            operation="complete_session",
            context={"session_id": "abc-123"}
        )
    """

    def __init__(
        self,
        message: str,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "An error occurred. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        # Auto-log on creation
        self._log_error()

    def _log_error(self) -> None:
        """Log error with full context"""
        log_data = {
            "error_type": self.__class__.__name__,
            "error_message": self.message,  # Avoid conflict with logging's 'message' field
            "request_id": self.request_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for the host application"""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Validation Errors (User Input)
# ==========================================

class ValidationError(DreamwellError):
    """
    Raised when a record fails validation at the storage boundary

    Examples:
    - Alarm time not in HH:MM format
    - Backup file with a malformed session
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=message,
            user_message=f"Invalid {field}: {message}" if field else message,
            context={"field": field, "value": value},
            **kwargs
        )


class SessionStateError(DreamwellError):
    """Sleep session is not in the state the operation requires"""

    def __init__(
        self,
        message: str,
        session_id: Optional[str] = None,
        **kwargs
    ):
        self.session_id = session_id
        super().__init__(
            message=message,
            user_message="This sleep session has already been completed.",
            context={"session_id": session_id},
            **kwargs
        )


# ==========================================
# Delivery Errors
# ==========================================

class NotificationDeliveryError(DreamwellError):
    """Alarm notification could not be delivered after retries"""

    def __init__(
        self,
        message: str,
        alarm_id: Optional[str] = None,
        **kwargs
    ):
        self.alarm_id = alarm_id
        super().__init__(
            message=message,
            user_message="Alarm triggered but notifications failed. Please check your notification settings.",
            context={"alarm_id": alarm_id},
            **kwargs
        )


# ==========================================
# Data Import Errors
# ==========================================

class DataImportError(DreamwellError):
    """Backup payload could not be imported"""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            user_message=f"Import failed: {message}",
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(DreamwellError):
    """System configuration is invalid or missing"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="Dreamwell is not properly configured. Please check your settings.",
            context={"config_key": config_key},
            **kwargs
        )
