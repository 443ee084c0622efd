from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeVar

from ..transport import Keyboard, MessageRef, Transport
from .cancel import CancelToken
from .model import EventKind, InboundEvent
from .session import SessionStore
from .ui import Cleanup, Prompter

T = TypeVar("T")


@dataclass(slots=True)
class HandlerContext:
    """Everything a step handler may touch while handling one event."""

    event: InboundEvent
    wizard: str
    state: str | None
    store: SessionStore
    prompter: Prompter
    cancel_token: CancelToken
    cleanup: Cleanup = Cleanup.DELETE

    @property
    def user_id(self) -> int:
        return self.event.user_id

    @property
    def chat_id(self) -> int:
        return self.event.chat_id

    @property
    def text(self) -> str:
        return self.event.payload.strip()

    @property
    def transport(self) -> Transport:
        return self.prompter.transport

    async def get(self, key: str) -> tuple[Any, bool]:
        return await self.store.get(self.user_id, key)

    async def require(self, key: str, type_: type[T]) -> T:
        return await self.store.require(self.user_id, key, type_)

    async def set(self, key: str, value: Any) -> None:
        await self.store.set(self.user_id, key, value)

    async def prompt(
        self, text: str, keyboard: Keyboard | None = None
    ) -> MessageRef | None:
        """Send the next interactive prompt, retiring the previous one first."""
        return await self.prompter.prompt(
            self.user_id, self.chat_id, text, keyboard, cleanup=self.cleanup
        )

    async def reply(
        self, text: str, keyboard: Keyboard | None = None
    ) -> MessageRef | None:
        return await self.prompter.reply(self.chat_id, text, keyboard)

    async def clear_prompt(self) -> None:
        await self.prompter.clear_previous(self.user_id, self.cleanup)

    async def delete_incoming(self) -> None:
        """Delete the user's message; a button click has none of its own."""
        if self.event.kind is not EventKind.TEXT or self.event.message_id is None:
            return
        await self.transport.delete_prompt(
            MessageRef(chat_id=self.chat_id, message_id=self.event.message_id)
        )

    async def answer(self, text: str | None = None) -> None:
        if self.event.callback_id is not None:
            await self.transport.answer_callback(self.event.callback_id, text)
