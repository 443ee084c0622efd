from __future__ import annotations

from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

import anyio
from anyio.abc import TaskGroup

from ..conversation import Dispatcher, EventKind, InboundEvent
from ..domain.repositories import RepositoryError
from ..logging import get_logger
from ..transport import Transport
from .client import TelegramClient, TelegramRetryAfter
from .parsing import parse_incoming_update

logger = get_logger(__name__)

ALLOWED_UPDATES = ["message", "callback_query"]
GENERIC_ERROR_TEXT = "Something went wrong. Please try again later."
POLL_FAILURE_DELAY_S = 2.0


async def drain_backlog(client: TelegramClient, offset: int | None) -> int | None:
    """Skip updates that piled up while the bot was offline."""
    drained = 0
    while True:
        updates = await client.get_updates(
            offset=offset, timeout_s=0, allowed_updates=ALLOWED_UPDATES
        )
        if updates is None:
            logger.info("startup.backlog.failed")
            return offset
        if not updates:
            if drained:
                logger.info("startup.backlog.drained", count=drained)
            return offset
        offset = updates[-1]["update_id"] + 1
        drained += len(updates)


async def poll_updates(
    client: TelegramClient,
    *,
    timeout_s: int = 50,
    offset: int | None = None,
    sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
) -> AsyncIterator[InboundEvent]:
    while True:
        try:
            updates = await client.get_updates(
                offset=offset, timeout_s=timeout_s, allowed_updates=ALLOWED_UPDATES
            )
        except TelegramRetryAfter as exc:
            await sleep(exc.retry_after)
            continue
        if updates is None:
            logger.info("loop.get_updates.failed")
            await sleep(POLL_FAILURE_DELAY_S)
            continue
        logger.debug("loop.updates", count=len(updates))
        for upd in updates:
            update_id = upd.get("update_id")
            if isinstance(update_id, int):
                offset = update_id + 1
            event = parse_incoming_update(upd)
            if event is not None:
                yield event


class UserLanes:
    """One FIFO lock per user so a user's events run one at a time, in order.

    A lane is dropped once no event holds or waits on it.
    """

    def __init__(self) -> None:
        self._locks: dict[int, anyio.Lock] = {}
        self._holders: dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, user_id: int) -> AsyncIterator[None]:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = anyio.Lock()
        self._holders[user_id] = self._holders.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[user_id] -= 1
            if self._holders[user_id] == 0:
                del self._holders[user_id]
                del self._locks[user_id]


class EventRouter:
    def __init__(self, dispatcher: Dispatcher, transport: Transport) -> None:
        self._dispatcher = dispatcher
        self._transport = transport
        self._lanes = UserLanes()

    async def submit(self, event: InboundEvent, task_group: TaskGroup) -> None:
        """Signal cancellation right away, then queue the event on its user's lane."""
        await self._dispatcher.request_cancel(event)
        task_group.start_soon(self.handle, event)

    async def handle(self, event: InboundEvent) -> None:
        async with self._lanes.hold(event.user_id):
            transition = None
            try:
                transition = await self._dispatcher.dispatch(event)
            except RepositoryError:
                logger.exception(
                    "loop.storage_error", user_id=event.user_id, chat_id=event.chat_id
                )
                await self._transport.send_prompt(event.chat_id, GENERIC_ERROR_TEXT)
            except Exception:
                logger.exception(
                    "loop.dispatch_failed", user_id=event.user_id, chat_id=event.chat_id
                )
                await self._transport.send_prompt(event.chat_id, GENERIC_ERROR_TEXT)
            if (
                transition is None
                and event.kind is EventKind.CALLBACK
                and event.callback_id is not None
            ):
                await self._transport.answer_callback(event.callback_id)


async def run_polling(
    dispatcher: Dispatcher,
    transport: Transport,
    updates: AsyncIterable[InboundEvent],
) -> None:
    router = EventRouter(dispatcher, transport)
    async with anyio.create_task_group() as tg:
        async for event in updates:
            if event.sender.is_bot:
                continue
            await router.submit(event, tg)
