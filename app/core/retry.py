import asyncio
import errno
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with exponential backoff.

    ``max_attempts`` counts the first call. The delay before attempt ``k + 1``
    is ``min(base_delay * 2**k, max_delay)``.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    retry_on_status: frozenset[int] = field(default_factory=lambda: frozenset({429, 502}))

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** attempt), self.max_delay)

    def is_retryable(self, exc: BaseException) -> bool:
        if isinstance(exc, httpx.HTTPStatusError):
            return exc.response.status_code in self.retry_on_status
        return isinstance(exc, httpx.TransportError)


PAGE_POLICY = RetryPolicy(max_attempts=3, base_delay=1.0, max_delay=10.0)
HEAD_POLICY = RetryPolicy(max_attempts=2, base_delay=0.5, max_delay=2.0, retry_on_status=frozenset())
DOWNLOAD_POLICY = RetryPolicy(max_attempts=1)

_CONNECTION_ERRNOS = {errno.ECONNRESET, errno.EMFILE, errno.ENFILE}


def is_connection_exhaustion(exc: BaseException) -> bool:
    """Connection reset or out of file descriptors, anywhere in the cause chain."""
    seen = exc
    while seen is not None:
        if isinstance(seen, OSError) and seen.errno in _CONNECTION_ERRNOS:
            return True
        if isinstance(seen, (httpx.ConnectError, httpx.ReadError, httpx.RemoteProtocolError)):
            return True
        text = str(seen)
        if "ECONNRESET" in text or "EMFILE" in text:
            return True
        seen = seen.__cause__ or seen.__context__
    return False


async def call_with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    is_retryable: Callable[[BaseException], bool] | None = None,
    sleep: Sleep = asyncio.sleep,
    label: str = "request",
) -> T:
    check = is_retryable or policy.is_retryable
    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as exc:
            attempt += 1
            if attempt >= policy.max_attempts or not check(exc):
                raise
            delay = policy.delay_for(attempt - 1)
            logger.warning(
                "%s failed (attempt %d/%d): %s; retrying in %.1fs",
                label, attempt, policy.max_attempts, exc, delay,
            )
            await sleep(delay)
