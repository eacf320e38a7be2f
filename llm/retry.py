from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar, Union

from tenacity import Retrying, retry_if_not_exception_type, stop_after_attempt, wait_exponential

log = logging.getLogger(__name__)

T = TypeVar("T")

QUOTA_MARKERS = ("quota", "billing", "exceeded", "insufficient", "payment")


class NonRetryableError(RuntimeError):
    """Raised by an operation to stop retrying immediately (e.g. missing API key)."""


class QuotaExceededError(NonRetryableError):
    pass


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    backoff_factor: float = 2.0

    @classmethod
    def from_settings(cls, openai_settings: Any) -> "RetryPolicy":
        return cls(
            max_retries=openai_settings.max_retries,
            base_delay=openai_settings.base_delay,
            max_delay=openai_settings.max_delay,
        )


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T
    attempts: int = 1


@dataclass(frozen=True)
class QuotaExceeded:
    message: str
    attempts: int = 1


@dataclass(frozen=True)
class Failed:
    message: str
    attempts: int = 1
    retryable: bool = True


Outcome = Union[Success, QuotaExceeded, Failed]


def is_quota_error(exc: BaseException) -> bool:
    msg = str(exc).lower()
    return any(m in msg for m in QUOTA_MARKERS)


def with_retry(
    operation: Callable[[], T],
    policy: RetryPolicy,
    context: str,
    *,
    logger: Optional[logging.Logger] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Outcome:
    """
    Run `operation` with exponential backoff and return an Outcome instead of raising.

    Delay before retry n (0-based) is min(base_delay * backoff_factor**n, max_delay).
    Quota/billing errors and NonRetryableError stop immediately.
    """
    logger = logger or log
    attempts = 0

    def _attempt() -> T:
        nonlocal attempts
        attempts += 1
        logger.debug("Attempting operation: %s", context,
                     extra={"context": {"attempt": attempts, "maxRetries": policy.max_retries}})
        try:
            return operation()
        except NonRetryableError:
            raise
        except Exception as e:
            if is_quota_error(e):
                logger.warning("Quota/billing error detected, stopping retries: %s", context,
                               extra={"context": {"attempt": attempts, "errorMessage": str(e)}})
                raise QuotaExceededError(str(e)) from e
            logger.warning("Operation failed on attempt %d: %s", attempts, context,
                           extra={"context": {"attempt": attempts, "errorMessage": str(e)}})
            raise

    retrying = Retrying(
        stop=stop_after_attempt(policy.max_retries + 1),
        wait=wait_exponential(multiplier=policy.base_delay, exp_base=policy.backoff_factor, max=policy.max_delay),
        retry=retry_if_not_exception_type(NonRetryableError),
        sleep=sleep,
        reraise=True,
    )

    try:
        value = retrying(_attempt)
    except QuotaExceededError as e:
        return QuotaExceeded(message=str(e), attempts=attempts)
    except NonRetryableError as e:
        return Failed(message=str(e), attempts=attempts, retryable=False)
    except Exception as e:
        logger.error("Operation failed after all retries: %s", context, exc_info=True,
                     extra={"context": {"totalAttempts": attempts}})
        return Failed(message=str(e), attempts=attempts, retryable=True)

    if attempts > 1:
        logger.info("Operation succeeded after %d retries: %s", attempts - 1, context)
    return Success(value=value, attempts=attempts)
