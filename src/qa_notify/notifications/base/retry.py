"""Retry with backoff and a circuit breaker for outbound calls."""

from __future__ import annotations

import asyncio
import logging
import random
import time
from enum import Enum
from functools import wraps
from typing import TYPE_CHECKING, TypeVar, cast

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

F = TypeVar("F", bound="Callable[..., Awaitable[object]]")


class CircuitBreakerState(Enum):
    """States for the circuit breaker."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerError(Exception):
    """Raised when a call is rejected because the circuit is open."""
    pass


class CircuitBreaker:
    """Stops calling a failing dependency until a cooldown has passed."""

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        expected_exception: type[Exception] | tuple[type[Exception], ...] = Exception,
    ) -> None:
        """Initialize circuit breaker.

        Args:
            name: Name used in log messages
            failure_threshold: Consecutive failures before opening the circuit
            recovery_timeout: Seconds to wait before letting a trial call through
            expected_exception: Exception types that count as failures
        """
        self.name: str = name
        self.failure_threshold: int = failure_threshold
        self.recovery_timeout: float = recovery_timeout
        self.expected_exception: type[Exception] | tuple[type[Exception], ...] = expected_exception

        self.failure_count: int = 0
        self.last_failure_time: float = 0.0
        self.state: CircuitBreakerState = CircuitBreakerState.CLOSED

    def before_call(self) -> None:
        """Gate a call, moving OPEN to HALF_OPEN once the cooldown expired.

        Raises:
            CircuitBreakerError: If the circuit is open
        """
        if self.state != CircuitBreakerState.OPEN:
            return
        if time.monotonic() - self.last_failure_time > self.recovery_timeout:
            self.state = CircuitBreakerState.HALF_OPEN
            logger.info("Circuit breaker %s transitioning to HALF_OPEN", self.name)
            return
        logger.warning("Circuit breaker %s is OPEN, rejecting call", self.name)
        raise CircuitBreakerError(f"Circuit breaker '{self.name}' is open")

    def record_success(self) -> None:
        """Close the circuit after a successful call."""
        if self.state == CircuitBreakerState.HALF_OPEN:
            logger.info("Circuit breaker %s transitioning to CLOSED", self.name)
        self.state = CircuitBreakerState.CLOSED
        self.failure_count = 0

    def record_failure(self) -> None:
        """Count a failure and open the circuit past the threshold."""
        self.failure_count += 1
        self.last_failure_time = time.monotonic()
        if self.state == CircuitBreakerState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            if self.state != CircuitBreakerState.OPEN:
                logger.warning(
                    "Circuit breaker %s opening after %d failures", self.name, self.failure_count
                )
            self.state = CircuitBreakerState.OPEN

    def __call__(self, func: F) -> F:
        """Decorator form."""
        @wraps(func)
        async def wrapper(*args: object, **kwargs: object) -> object:
            self.before_call()
            try:
                result = await func(*args, **kwargs)  # type: ignore[misc]
            except self.expected_exception:
                self.record_failure()
                raise
            self.record_success()
            return result

        return cast(F, wrapper)


def backoff_delay(attempt: int, backoff_factor: float, max_delay: float, jitter: bool) -> float:
    """Exponential delay for a zero-indexed attempt, capped at ``max_delay``."""
    delay: float = min(backoff_factor ** attempt, max_delay)
    if jitter:
        delay *= random.uniform(0.8, 1.2)
    return min(delay, max_delay)


def with_backoff(
    max_attempts: int = 3,
    backoff_factor: float = 2.0,
    max_delay: float = 30.0,
    retry_on: type[Exception] | tuple[type[Exception], ...] = Exception,
    jitter: bool = True,
) -> Callable[[F], F]:
    """Retry an async callable with exponential backoff.

    Circuit breaker rejections are never retried.

    Args:
        max_attempts: Total attempts including the first one
        backoff_factor: Base of the exponential delay
        max_delay: Upper bound for a single delay in seconds
        retry_on: Exception types that trigger another attempt
        jitter: Whether to randomize delays by up to 20%

    Returns:
        Decorated function with retry logic
    """
    def decorator(func: F) -> F:
        @wraps(func)
        async def wrapper(*args: object, **kwargs: object) -> object:
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)  # type: ignore[misc]
                except CircuitBreakerError:
                    raise
                except retry_on as e:
                    if attempt == max_attempts - 1:
                        logger.error("All %d attempts failed for %s", max_attempts, func.__name__)
                        raise
                    delay = backoff_delay(attempt, backoff_factor, max_delay, jitter)
                    logger.info(
                        "Attempt %d/%d failed for %s, retrying in %.2fs: %s",
                        attempt + 1, max_attempts, func.__name__, delay, e
                    )
                    await asyncio.sleep(delay)
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

        return cast(F, wrapper)
    return decorator
