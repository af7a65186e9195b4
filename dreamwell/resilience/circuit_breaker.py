"""Circuit breaker for alarm notification delivery

Implements the Circuit Breaker pattern so a failing notification channel is
not hammered on every alarm tick.

State Machine:
    CLOSED (normal) → OPEN (failing fast) → HALF_OPEN (testing) → CLOSED/OPEN

pybreaker keeps the state, failure counter and listeners. Coroutine calls
are driven through AsyncCircuitBreaker, which reports each outcome to the
breaker and measures the open cooldown on an injectable monotonic clock.
"""

import time
import pybreaker
import logging
from typing import Awaitable, Callable, Any, Optional, TypeVar
from functools import wraps

from dreamwell.resilience.metrics import record_circuit_breaker_state

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Configuration: 3 failures triggers OPEN, 60s before HALF_OPEN
DEFAULT_FAIL_MAX = 3
DEFAULT_RESET_TIMEOUT = 60


class CircuitBreakerListener(pybreaker.CircuitBreakerListener):
    """Listener to log circuit breaker state changes and emit metrics"""

    def state_change(self, cb: pybreaker.CircuitBreaker, old_state: Any, new_state: Any) -> None:
        """Called when circuit breaker changes state"""
        old_name = getattr(old_state, "name", old_state)
        new_name = getattr(new_state, "name", new_state)
        logger.warning(
            f"[CIRCUIT_BREAKER] {cb.name}: {old_name} → {new_name}"
        )
        record_circuit_breaker_state(cb.name, str(new_name))

    def failure(self, cb: pybreaker.CircuitBreaker, exc: BaseException) -> None:
        """Called when circuit breaker records a failure"""
        logger.error(
            f"[CIRCUIT_BREAKER] {cb.name} recorded failure: {type(exc).__name__}: {exc}"
        )

    def success(self, cb: pybreaker.CircuitBreaker) -> None:
        """Called when circuit breaker records a success"""
        logger.debug(f"[CIRCUIT_BREAKER] {cb.name} recorded success")


def create_breaker(
    name: str,
    fail_max: int = DEFAULT_FAIL_MAX,
    reset_timeout: float = DEFAULT_RESET_TIMEOUT,
) -> pybreaker.CircuitBreaker:
    """Create a pybreaker circuit breaker with the logging listener attached"""
    return pybreaker.CircuitBreaker(
        fail_max=fail_max,
        reset_timeout=reset_timeout,
        name=name,
        listeners=[CircuitBreakerListener()]
    )


def _reraise(exc: BaseException) -> None:
    raise exc


def _succeed() -> None:
    return None


class AsyncCircuitBreaker:
    """
    Guards coroutine calls with a pybreaker.CircuitBreaker.

    - CLOSED: calls pass through; fail_max consecutive failures open the circuit
    - OPEN: calls fail immediately with pybreaker.CircuitBreakerError until
      reset_timeout seconds have passed on `clock`
    - HALF_OPEN: the next call is a trial; success closes, failure re-opens
    """

    def __init__(
        self,
        breaker: pybreaker.CircuitBreaker,
        clock: Callable[[], float] = time.monotonic,
        reset_timeout: Optional[float] = None,
    ):
        self.breaker = breaker
        self.reset_timeout = reset_timeout if reset_timeout is not None else breaker.reset_timeout
        self._clock = clock
        self._opened_at: Optional[float] = None

    @property
    def name(self) -> str:
        return self.breaker.name

    @property
    def state(self) -> str:
        """Current state: 'closed', 'open' or 'half-open'"""
        return self.breaker.current_state

    @property
    def fail_counter(self) -> int:
        return self.breaker.fail_counter

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Run `func` under the breaker, raising CircuitBreakerError while OPEN"""
        if self.breaker.current_state == pybreaker.STATE_OPEN:
            now = self._clock()
            if self._opened_at is None:
                # Opened outside this guard; start the cooldown now
                self._opened_at = now
            if now - self._opened_at < self.reset_timeout:
                raise pybreaker.CircuitBreakerError(
                    f"Circuit breaker {self.name} is OPEN"
                )
            self.breaker.half_open()

        try:
            result = await func(*args, **kwargs)
        except Exception as exc:
            self._record_failure(exc)
            raise

        self.breaker.call(_succeed)
        self._opened_at = None
        return result

    def _record_failure(self, exc: Exception) -> None:
        try:
            self.breaker.call(_reraise, exc)
        except pybreaker.CircuitBreakerError:
            logger.warning(
                f"[CIRCUIT_BREAKER] {self.name} tripped by {type(exc).__name__}"
            )
        except Exception as recorded:
            if recorded is not exc:
                raise

        if self.breaker.current_state == pybreaker.STATE_OPEN:
            self._opened_at = self._clock()


def with_circuit_breaker(guard: AsyncCircuitBreaker) -> Callable:
    """
    Decorator to wrap async functions with circuit breaker protection.

    When the circuit is OPEN, calls will fail immediately with CircuitBreakerError
    instead of attempting to call the underlying function.

    Example:
        guard = AsyncCircuitBreaker(create_breaker("notifications"))

        @with_circuit_breaker(guard)
        async def deliver(alarm):
            ...
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await guard.call(func, *args, **kwargs)
            except pybreaker.CircuitBreakerError:
                logger.warning(
                    f"[CIRCUIT_BREAKER] {guard.name} is OPEN - failing fast"
                )
                raise
        return wrapper
    return decorator
