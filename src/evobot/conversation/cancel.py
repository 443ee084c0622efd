from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import anyio

from .model import OperationCancelled

T = TypeVar("T")


class CancelToken:
    """Cooperative cancellation for one wizard run.

    The polling loop sets the token as soon as a cancel request arrives,
    before that request waits for the user's earlier events to finish. A
    handler wraps slow work in `run` so it stops early instead of holding
    up the cancel.
    """

    def __init__(self) -> None:
        self._event = anyio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelled("operation cancelled")

    async def run(self, func: Callable[..., Awaitable[T]], *args: Any) -> T:
        self.raise_if_cancelled()
        finished = False
        result: T | None = None
        error: Exception | None = None

        async with anyio.create_task_group() as tg:

            async def watch() -> None:
                await self._event.wait()
                tg.cancel_scope.cancel()

            tg.start_soon(watch)
            # task groups wrap body errors in ExceptionGroup; re-raise bare
            try:
                result = await func(*args)
                finished = True
            except Exception as exc:
                error = exc
            tg.cancel_scope.cancel()

        if error is not None:
            raise error
        if not finished:
            raise OperationCancelled("operation cancelled")
        return result  # type: ignore[return-value]
