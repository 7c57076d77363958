# evmcl Completion Engine — (c) 2025 rtj.dev LLC — MIT Licensed
"""
Retries for remote module manifest fetches.

- `RetryPolicy`: How many times to retry and how long to wait in between.
- `RetryHandler`: Awaits a callable and retries the errors it is told to retry.

Retries are disabled by default. The whole call stays bounded by the module
timeout of the completion pass, so a generous policy only ever shortens the
time left for the last attempt.

Example:
    handler = RetryHandler(RetryPolicy(max_retries=2, delay=0.2, enabled=True))
    text = await handler.call("ipfs:Qm...", resolver.fetch, cid)
"""
from __future__ import annotations

import asyncio
import random
from typing import Any, Awaitable, Callable, Iterator

from pydantic import BaseModel, Field

from evmcl.logger import logger


class RetryPolicy(BaseModel):
    """
    Retry strategy of manifest fetches.

    Example `evmcl.yaml` section:

        retry_policy:
          enabled: true
          max_retries: 3
          delay: 0.1
          backoff: 2
          jitter: 0.05
    """

    max_retries: int = Field(default=2, ge=0)
    delay: float = Field(default=0.25, ge=0.0)
    backoff: float = Field(default=2.0, ge=1.0)
    jitter: float = Field(default=0.0, ge=0.0)
    enabled: bool = False

    def enable_policy(self) -> None:
        self.enabled = True

    def is_active(self) -> bool:
        return self.max_retries > 0 and self.enabled

    def delays(self) -> Iterator[float]:
        """Sleep before each retry: exponential backoff with optional jitter."""
        current = self.delay
        for _ in range(self.max_retries):
            noise = random.uniform(-self.jitter, self.jitter) if self.jitter else 0.0
            yield max(0.0, current + noise)
            current *= self.backoff


class RetryHandler:
    """
    Runs an async callable under a `RetryPolicy`.

    With an inactive policy the callable runs exactly once. Errors outside
    `retry_on` are raised at once, and the last error is raised when every
    attempt failed.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
    ):
        self.policy = policy or RetryPolicy()
        self.retry_on = retry_on

    async def call(
        self, name: str, function: Callable[..., Awaitable[Any]], *args, **kwargs
    ) -> Any:
        attempts = [0.0, *self.policy.delays()] if self.policy.is_active() else [0.0]
        last_error: BaseException | None = None
        for attempt, sleep_for in enumerate(attempts):
            if attempt:
                logger.info(
                    "[%s] Retrying (%s/%s) in %ss after %s",
                    name,
                    attempt,
                    self.policy.max_retries,
                    round(sleep_for, 3),
                    type(last_error).__name__,
                )
                await asyncio.sleep(sleep_for)
            try:
                result = await function(*args, **kwargs)
            except self.retry_on as error:
                last_error = error
                continue
            if attempt:
                logger.info("[%s] Retry succeeded on attempt %s.", name, attempt)
            return result

        if len(attempts) > 1:
            logger.warning("[%s] All %s retries failed.", name, self.policy.max_retries)
        assert last_error is not None
        raise last_error
