import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Union

from .errors import Exhausted
from .state import RetryState
from .types import RetryConfig


class RetryPolicy:
    """Bounded exponential backoff around an async operation.

    After failure ``i`` (0-based) that is not the last, wait ``base_delay * 2**i``.
    The final failure raises Exhausted without waiting.
    """

    def __init__(
        self,
        config: Union[RetryConfig, None] = None,
        sleep: Union[Callable[[float], Awaitable[Any]], None] = None,
    ):
        self.config = config or RetryConfig()
        self._sleep = sleep or asyncio.sleep
        self._logger = logging.getLogger("zewed")

    def delay_for(self, attempt: int, base_delay: Union[float, None] = None) -> float:
        base = self.config.base_delay if base_delay is None else base_delay
        return base * (2**attempt)

    async def execute(
        self,
        operation: Callable[[], Awaitable[Any]],
        max_attempts: Union[int, None] = None,
        base_delay: Union[float, None] = None,
    ) -> Any:
        attempts = max(1, max_attempts if max_attempts is not None else self.config.max_attempts)
        state = RetryState()
        while state.attempt < attempts:
            try:
                return await operation()
            except self.config.retry_on as e:
                state.last_error = e
            if state.attempt == attempts - 1:
                break
            delay = self.delay_for(state.attempt, base_delay)
            self._logger.info(
                f"attempt {state.attempt + 1}/{attempts} failed: {state.last_error}; "
                f"retrying in {delay:.2f}s"
            )
            await self._sleep(delay)
            state.attempt += 1
        raise Exhausted(state.last_error, attempts) from state.last_error
