from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import anyio
import msgspec

from ..logging import get_logger
from ..transport import Keyboard, MessageRef
from .api_models import Message
from .client import TelegramClient, TelegramRetryAfter

logger = get_logger(__name__)

T = TypeVar("T")

MAX_RETRIES = 3


def inline_markup(keyboard: Keyboard | None) -> dict[str, Any] | None:
    if keyboard is None:
        return None
    rows: list[list[dict[str, str]]] = []
    for row in keyboard:
        buttons: list[dict[str, str]] = []
        for button in row:
            item = {"text": button.text}
            if button.callback_data is not None:
                item["callback_data"] = button.callback_data
            else:
                item["url"] = button.url or ""
            buttons.append(item)
        rows.append(buttons)
    return {"inline_keyboard": rows}


class TelegramTransport:
    """`Transport` over the Bot API; all text is sent in HTML parse mode."""

    def __init__(
        self,
        client: TelegramClient,
        *,
        sleep: Callable[[float], Awaitable[None]] = anyio.sleep,
        max_retries: int = MAX_RETRIES,
    ) -> None:
        self._client = client
        self._sleep = sleep
        self._max_retries = max_retries

    async def send_prompt(
        self,
        chat_id: int,
        text: str,
        keyboard: Keyboard | None = None,
        *,
        thread_id: int | None = None,
        disable_preview: bool = False,
    ) -> MessageRef | None:
        result = await self._retrying(
            "send_message",
            lambda: self._client.send_message(
                chat_id,
                text,
                reply_markup=inline_markup(keyboard),
                message_thread_id=thread_id,
                disable_preview=disable_preview,
            ),
        )
        if result is None:
            return None
        try:
            message = msgspec.convert(result, type=Message)
        except msgspec.ValidationError as exc:
            logger.error("telegram.send_unparsed", chat_id=chat_id, error=str(exc))
            return None
        return MessageRef(chat_id=chat_id, message_id=message.message_id)

    async def edit_text(
        self,
        ref: MessageRef,
        text: str,
        keyboard: Keyboard | None = None,
        *,
        disable_preview: bool = False,
    ) -> bool:
        return bool(
            await self._retrying(
                "edit_message_text",
                lambda: self._client.edit_message_text(
                    ref.chat_id,
                    ref.message_id,
                    text,
                    reply_markup=inline_markup(keyboard),
                    disable_preview=disable_preview,
                ),
            )
        )

    async def delete_prompt(self, ref: MessageRef) -> bool:
        return bool(
            await self._retrying(
                "delete_message",
                lambda: self._client.delete_message(ref.chat_id, ref.message_id),
            )
        )

    async def remove_keyboard(self, ref: MessageRef) -> bool:
        return bool(
            await self._retrying(
                "edit_message_reply_markup",
                lambda: self._client.edit_message_reply_markup(
                    ref.chat_id, ref.message_id, {"inline_keyboard": []}
                ),
            )
        )

    async def answer_callback(self, callback_id: str, text: str | None = None) -> None:
        await self._retrying(
            "answer_callback_query",
            lambda: self._client.answer_callback_query(callback_id, text),
        )

    async def pin(self, ref: MessageRef, *, silent: bool = True) -> bool:
        return bool(
            await self._retrying(
                "pin_chat_message",
                lambda: self._client.pin_chat_message(
                    ref.chat_id, ref.message_id, disable_notification=silent
                ),
            )
        )

    async def _retrying(self, label: str, call: Callable[[], Awaitable[T]]) -> T | None:
        attempt = 0
        while True:
            try:
                return await call()
            except TelegramRetryAfter as exc:
                attempt += 1
                if attempt > self._max_retries:
                    logger.warning(
                        "telegram.retry_exhausted", method=label, attempts=attempt
                    )
                    return None
                await self._sleep(exc.retry_after)
