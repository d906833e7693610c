"""Bounded exponential backoff around a single asynchronous operation."""

import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

from ..config import RetryConfig
from .errors import RetryError

logger = logging.getLogger(__name__)

T = TypeVar('T')


def retry_always(error: BaseException) -> bool:
    """Default retry predicate: every failure is treated as transient."""
    return True


def backoff_delay(attempt: int, cfg: RetryConfig, jitter: float) -> float:
    """Seconds to wait before retry number ``attempt`` (1-based).

    ``base_delay * 2^(attempt-1)`` plus ``jitter``, where jitter is a
    fraction in [0, 1) scaled by ``max_jitter``.
    """
    return cfg.base_delay * (2 ** (attempt - 1)) + jitter * cfg.max_jitter


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    label: str,
    cfg: RetryConfig | None = None,
    *,
    retry_if: Callable[[BaseException], bool] = retry_always,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rand: Callable[[], float] = random.random,
) -> T:
    """Run ``operation`` with up to ``cfg.max_retries`` additional attempts.

    Each call has its own retry budget. Cancellation is never retried.
    Failures rejected by ``retry_if`` propagate unchanged on the spot.

    Args:
        operation: Zero-argument coroutine factory, called once per attempt
        label: Name of the operation for logs and the final error
        cfg: Retry policy (defaults to 5 retries, 1s base delay, 1s jitter)
        retry_if: Predicate deciding whether a failure is worth retrying
        sleep: Awaitable delay function
        rand: Source of jitter in [0, 1)

    Returns:
        The first successful result of ``operation``

    Raises:
        RetryError: If every attempt failed; the last failure is chained
    """
    cfg = cfg or RetryConfig()
    retries = 0

    while True:
        try:
            return await operation()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if not retry_if(e):
                raise
            retries += 1
            if retries > cfg.max_retries:
                logger.error(
                    "%s failed after %d retries: %s", label, cfg.max_retries, e
                )
                raise RetryError(label, retries, e) from e

            delay = backoff_delay(retries, cfg, rand())
            logger.warning(
                "Attempt %d for %s failed: %s. Retrying in %.1fs...",
                retries, label, e, delay
            )
            await sleep(delay)
