"""Optional retry policy layered above a ProviderClient.

The DeepSeek client itself is single-attempt. When retries are wanted they are
configured here, explicitly, and only for failures that can succeed on a second
try. Everything else is surfaced on the first failure.
"""

from typing import FrozenSet

from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from assistant_core.domain.exceptions import ApiError
from assistant_core.domain.models import ChatRequest, ErrorKind
from assistant_core.infrastructure.logging.logger import logger
from assistant_core.providers.base import ProviderClient


RETRYABLE_KINDS: FrozenSet[ErrorKind] = frozenset(
    {ErrorKind.RATE_LIMITED, ErrorKind.SERVER_ERROR, ErrorKind.TIMEOUT}
)


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ApiError) and exc.kind in RETRYABLE_KINDS


class RetryingProvider:
    """Wrap ``inner`` and retry transient ApiErrors with exponential backoff."""

    def __init__(
        self,
        inner: ProviderClient,
        max_attempts: int = 3,
        min_wait: float = 1.0,
        max_wait: float = 8.0,
    ):
        self._inner = inner
        self._max_attempts = max(1, max_attempts)
        self._min_wait = min_wait
        self._max_wait = max_wait
        self.name = inner.name

    @property
    def has_credential(self) -> bool:
        return self._inner.has_credential

    async def complete(self, req: ChatRequest) -> str:
        async for attempt in self._retrying():
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(
                        "Retrying provider call",
                        extra={"extra": {
                            "provider": self.name,
                            "attempt": attempt.retry_state.attempt_number,
                        }},
                    )
                return await self._inner.complete(req)
        raise AssertionError("unreachable: tenacity reraises the last error")

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._min_wait, max=self._max_wait),
            retry=retry_if_exception(_is_retryable),
        )
