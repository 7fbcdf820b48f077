import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from .types import BatchItem, BatchResult

Dispatch = Callable[[BatchItem], Awaitable[Any]]


class BatchDispatcher:
    """Runs independent requests concurrently; one failure never cancels the rest."""

    def __init__(self, dispatch: Dispatch):
        self._dispatch = dispatch
        self._logger = logging.getLogger("zewed")

    async def run(self, items: Sequence[BatchItem]) -> list[BatchResult]:
        items = list(items)
        if not items:
            return []
        outcomes = await asyncio.gather(
            *(self._dispatch(item) for item in items), return_exceptions=True
        )
        results: list[BatchResult] = []
        for item, outcome in zip(items, outcomes):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                results.append(BatchResult(request=item, status="rejected", error=outcome))
            else:
                results.append(BatchResult(request=item, status="fulfilled", data=outcome))
        rejected = sum(1 for r in results if not r.ok)
        self._logger.debug(f"batch done size={len(results)} rejected={rejected}")
        return results
