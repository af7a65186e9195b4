"""Resilience patterns for notification delivery

This module provides the circuit breaker, retry logic and metrics
collection that keep a failing notification channel from disrupting the
alarm scheduler.
"""

from dreamwell.resilience.circuit_breaker import (
    AsyncCircuitBreaker,
    CircuitBreakerListener,
    create_breaker,
    with_circuit_breaker,
)
from dreamwell.resilience.retry import retry_with_backoff, with_retry
from dreamwell.resilience.metrics import (
    record_circuit_breaker_state,
    record_delivery,
    record_retry,
    record_alarm_triggered,
)

__all__ = [
    # Circuit Breakers
    "AsyncCircuitBreaker",
    "CircuitBreakerListener",
    "create_breaker",
    "with_circuit_breaker",
    # Retry
    "retry_with_backoff",
    "with_retry",
    # Metrics
    "record_circuit_breaker_state",
    "record_delivery",
    "record_retry",
    "record_alarm_triggered",
]
