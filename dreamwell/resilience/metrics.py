"""Prometheus metrics for alarm delivery

Exposes metrics for the notification circuit breaker, delivery attempts,
retries and triggered alarms. Recording a metric never raises.
"""

import logging
from prometheus_client import Counter, Enum

logger = logging.getLogger(__name__)

# Circuit breaker state
# Values: closed, open, half_open
circuit_breaker_state = Enum(
    'dreamwell_circuit_breaker_state',
    'Current state of circuit breaker',
    ['breaker'],
    states=['closed', 'open', 'half_open']
)

# Labels: channel (notifier name), status (success/failure/circuit_open)
notification_deliveries_total = Counter(
    'dreamwell_notification_deliveries_total',
    'Total number of alarm notification deliveries',
    ['channel', 'status']
)

# Labels: operation (function name)
retries_total = Counter(
    'dreamwell_retries_total',
    'Total number of retry attempts',
    ['operation']
)

# Labels: kind (initial/snooze_expired)
alarms_triggered_total = Counter(
    'dreamwell_alarms_triggered_total',
    'Total number of alarms triggered',
    ['kind']
)


def record_circuit_breaker_state(breaker: str, state: str) -> None:
    """
    Record circuit breaker state change.

    Args:
        breaker: Breaker name
        state: New state (closed, open, half_open)
    """
    try:
        circuit_breaker_state.labels(breaker=breaker).state(state.replace('-', '_'))
        logger.debug(f"[METRICS] Circuit breaker {breaker} state: {state}")
    except Exception as e:
        logger.error(f"Failed to record circuit breaker state: {e}")


def record_delivery(channel: str, status: str) -> None:
    """Record the outcome of one notification delivery"""
    try:
        notification_deliveries_total.labels(channel=channel, status=status).inc()
        logger.debug(f"[METRICS] Delivery via {channel}: {status}")
    except Exception as e:
        logger.error(f"Failed to record delivery: {e}")


def record_retry(operation: str) -> None:
    """Record retry attempt"""
    try:
        retries_total.labels(operation=operation).inc()
        logger.debug(f"[METRICS] Retry attempt for {operation}")
    except Exception as e:
        logger.error(f"Failed to record retry: {e}")


def record_alarm_triggered(kind: str) -> None:
    """Record an alarm trigger (initial or after snooze)"""
    try:
        alarms_triggered_total.labels(kind=kind).inc()
    except Exception as e:
        logger.error(f"Failed to record alarm trigger: {e}")
