"""
Retry — Экспоненциальный backoff для вызовов RPC

Ретраится только ExternalDependencyError: повтор безопасен, потому что
каждый вызов целевого ledger несёт idempotency key. Остальные ошибки
пробрасываются сразу.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from usdx_protocol.core.errors import ExternalDependencyError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class BackoffPolicy:
    """delay(attempt) = min(base × 2^attempt, max)."""

    max_retries: int = 5
    base_delay_sec: float = 0.5
    max_delay_sec: float = 30.0

    def delay(self, attempt: int) -> float:
        return min(self.base_delay_sec * (2**attempt), self.max_delay_sec)


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: BackoffPolicy,
    description: str,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """
    Вызов operation с ретраями ExternalDependencyError.

    Raises:
        ExternalDependencyError: reason="retries_exhausted" после max_retries повторов
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except ExternalDependencyError as exc:
            if attempt >= policy.max_retries:
                raise ExternalDependencyError(
                    f"{description}: giving up after {attempt + 1} attempt(s): {exc}",
                    "retries_exhausted",
                ) from exc
            delay = policy.delay(attempt)
            logger.warning(
                "%s failed (%s), retry %d/%d in %.2fs",
                description,
                exc,
                attempt + 1,
                policy.max_retries,
                delay,
            )
            attempt += 1
            await sleep(delay)
