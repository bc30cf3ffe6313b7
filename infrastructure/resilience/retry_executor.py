"""
Retry executor with bounded attempts and exponential backoff.

Each ``execute`` call is independent: the executor holds no state between calls
and only touches the outside world through the operation and the ``on_retry`` hook.
"""

import asyncio
import inspect
import random
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from utils.logging_config import get_logger

RetryPredicate = Callable[[Exception], bool]
RetryObserver = Callable[[Exception, int, float], Any]


def exponential_backoff_delay(
    attempt: int,
    base_delay: float = 1.0,
    backoff_factor: float = 1.5,
    jitter: float = 0.0
) -> float:
    """
    Calculate the delay before the retry following ``attempt``

    Args:
        attempt: Attempt that just failed (0-indexed)
        base_delay: Delay before the first retry, in seconds
        backoff_factor: Multiplicative growth per retry
        jitter: Upper bound of a random extra delay, in seconds

    Returns:
        Delay in seconds
    """
    delay = base_delay * (backoff_factor ** attempt)

    if jitter > 0:
        delay += random.uniform(0, jitter)

    return delay


class RetryExhaustedError(Exception):
    """Raised when an operation failed and no further attempt will be made"""

    def __init__(self, attempts: int, last_exception: Exception):
        self.attempts = attempts
        self.last_exception = last_exception
        noun = "attempt" if attempts == 1 else "attempts"
        super().__init__(f"Failed after {attempts} {noun}: {last_exception}")


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry configuration for one ``execute`` call.

    ``max_attempts`` counts retries after the initial attempt, so an always
    failing operation runs ``max_attempts + 1`` times.
    """
    max_attempts: int = 3
    base_delay: float = 1.0
    backoff_factor: float = 1.5
    retry_predicate: Optional[RetryPredicate] = None
    on_retry: Optional[RetryObserver] = None
    jitter: float = 0.0

    def __post_init__(self):
        if self.max_attempts < 0:
            raise ValueError(f"max_attempts must be >= 0, got {self.max_attempts}")
        if self.base_delay < 0:
            raise ValueError(f"base_delay must be >= 0, got {self.base_delay}")
        if self.backoff_factor < 1:
            raise ValueError(f"backoff_factor must be >= 1, got {self.backoff_factor}")
        if self.jitter < 0:
            raise ValueError(f"jitter must be >= 0, got {self.jitter}")

    @classmethod
    def from_config(
        cls,
        retry_config,
        retry_predicate: Optional[RetryPredicate] = None,
        on_retry: Optional[RetryObserver] = None
    ) -> 'RetryPolicy':
        """Build a policy from a ``config.app_config.RetryConfig``"""
        return cls(
            max_attempts=retry_config.max_attempts,
            base_delay=retry_config.base_delay,
            backoff_factor=retry_config.backoff_factor,
            retry_predicate=retry_predicate,
            on_retry=on_retry,
            jitter=retry_config.jitter
        )

    def delay_for(self, attempt: int) -> float:
        return exponential_backoff_delay(attempt, self.base_delay, self.backoff_factor, self.jitter)


@dataclass(frozen=True)
class RetryOutcome:
    """Result of an ``execute`` call: a value, or the last error seen"""
    success: bool
    attempts: int
    value: Any = None
    error: Optional[Exception] = None

    @property
    def failed(self) -> bool:
        return not self.success

    def unwrap(self) -> Any:
        """
        Return the operation's value

        Raises:
            RetryExhaustedError: If the operation never succeeded
        """
        if self.success:
            return self.value
        raise RetryExhaustedError(self.attempts, self.error) from self.error


class RetryStatus:
    """Tracks retry progress for UI feedback; usable directly as ``on_retry``"""

    def __init__(self, model_name: Optional[str] = None):
        self.model_name = model_name
        self.is_retrying = False
        self.current_attempt = 0
        self.last_error = None
        self.next_delay = 0.0

    def __call__(self, error: Exception, attempt: int, delay: float):
        self.on_retry_attempt(attempt, error, delay)

    def on_retry_attempt(self, attempt: int, error: Exception, next_delay: float = 0.0):
        """Update status for a retry attempt"""
        self.is_retrying = True
        self.current_attempt = attempt
        self.last_error = error
        self.next_delay = next_delay

    def finish_retry(self, success: bool = True):
        """Finish the retry sequence"""
        self.is_retrying = False
        if success:
            self.current_attempt = 0
            self.last_error = None

    def get_status_message(self) -> str:
        """Get a user-friendly status message"""
        if not self.is_retrying:
            return ""

        model = self.model_name or "nežinomu"
        message = f"🔄 Bandymas #{self.current_attempt} su modeliu {model}..."
        if self.next_delay > 0:
            message += f" (po {self.next_delay:.1f}s)"
        return message


class RetryExecutor:
    """
    Runs an operation under a ``RetryPolicy``.

    The operation is called as ``operation(attempt)`` with the 0-indexed attempt
    number and must be safe to call up to ``max_attempts + 1`` times.
    """

    def __init__(
        self,
        sleep: Callable[[float], None] = time.sleep,
        async_sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.logger = get_logger(__name__)
        self._sleep = sleep
        self._async_sleep = async_sleep

    def _next_delay(self, policy: RetryPolicy, attempt: int, error: Exception) -> Optional[float]:
        """
        Decide what follows a failed attempt

        Returns:
            The delay before the next attempt, or None when the failure is terminal
        """
        if attempt == policy.max_attempts:
            noun = "attempt" if attempt == 0 else "attempts"
            self.logger.error(
                f"Operation failed after {attempt + 1} {noun}: "
                f"{error.__class__.__name__}: {error}"
            )
            return None

        if policy.retry_predicate is not None and not policy.retry_predicate(error):
            self.logger.warning(
                f"Non-retriable error on attempt {attempt + 1}: "
                f"{error.__class__.__name__}: {error}"
            )
            return None

        delay = policy.delay_for(attempt)

        self.logger.warning(
            f"Attempt {attempt + 1} failed ({error.__class__.__name__}), retrying in {delay:.2f}s"
        )

        if policy.on_retry is not None:
            policy.on_retry(error, attempt + 1, delay)

        return delay

    def _succeeded(self, attempt: int, value: Any) -> RetryOutcome:
        if attempt > 0:
            self.logger.info(f"Operation succeeded after {attempt} retries")
        return RetryOutcome(success=True, attempts=attempt + 1, value=value)

    def execute(self, operation: Callable[[int], Any], policy: Optional[RetryPolicy] = None) -> RetryOutcome:
        """
        Execute an operation with retry logic and exponential backoff

        Args:
            operation: Callable receiving the attempt number
            policy: Retry policy, defaults to ``RetryPolicy()``

        Returns:
            RetryOutcome with the value or the last error
        """
        policy = policy or RetryPolicy()
        attempt = 0

        while True:
            try:
                value = operation(attempt)
            except Exception as e:
                delay = self._next_delay(policy, attempt, e)
                if delay is None:
                    return RetryOutcome(success=False, attempts=attempt + 1, error=e)
                self._sleep(delay)
                attempt += 1
                continue

            return self._succeeded(attempt, value)

    async def execute_async(
        self,
        operation: Callable[[int], Any],
        policy: Optional[RetryPolicy] = None
    ) -> RetryOutcome:
        """
        Async counterpart of ``execute``; the backoff wait yields to the event loop

        ``operation`` may be a coroutine function or return a plain value.
        """
        policy = policy or RetryPolicy()
        attempt = 0

        while True:
            try:
                value = operation(attempt)
                if inspect.isawaitable(value):
                    value = await value
            except Exception as e:
                delay = self._next_delay(policy, attempt, e)
                if delay is None:
                    return RetryOutcome(success=False, attempts=attempt + 1, error=e)
                await self._async_sleep(delay)
                attempt += 1
                continue

            return self._succeeded(attempt, value)

    def run(self, operation: Callable[[int], Any], policy: Optional[RetryPolicy] = None) -> Any:
        """Execute and return the value, raising ``RetryExhaustedError`` on failure"""
        return self.execute(operation, policy).unwrap()

    async def run_async(self, operation: Callable[[int], Any], policy: Optional[RetryPolicy] = None) -> Any:
        """Async counterpart of ``run``"""
        outcome = await self.execute_async(operation, policy)
        return outcome.unwrap()


# Global retry executor instance
_retry_executor: Optional[RetryExecutor] = None


def get_retry_executor() -> RetryExecutor:
    """Get the global retry executor instance"""
    global _retry_executor
    if _retry_executor is None:
        _retry_executor = RetryExecutor()
    return _retry_executor
