from __future__ import annotations

import enum

from ..logging import get_logger
from ..transport import Keyboard, MessageRef, Transport
from .session import SessionStore

logger = get_logger(__name__)


class Cleanup(enum.Enum):
    """What happens to the previous prompt when a new one is sent."""

    DELETE = "delete"
    STRIP = "strip"


class Prompter:
    def __init__(self, transport: Transport, store: SessionStore) -> None:
        self._transport = transport
        self._store = store

    @property
    def transport(self) -> Transport:
        return self._transport

    async def prompt(
        self,
        user_id: int,
        chat_id: int,
        text: str,
        keyboard: Keyboard | None = None,
        *,
        cleanup: Cleanup = Cleanup.DELETE,
    ) -> MessageRef | None:
        await self.clear_previous(user_id, cleanup)
        ref = await self._transport.send_prompt(chat_id, text, keyboard)
        if ref is not None:
            await self._store.set_previous_message_info(
                user_id, ref.message_id, ref.chat_id
            )
        return ref

    async def reply(
        self, chat_id: int, text: str, keyboard: Keyboard | None = None
    ) -> MessageRef | None:
        return await self._transport.send_prompt(chat_id, text, keyboard)

    async def clear_previous(
        self, user_id: int, cleanup: Cleanup = Cleanup.DELETE
    ) -> None:
        message_id, chat_id = await self._store.get_previous_message_info(user_id)
        if message_id == 0 or chat_id == 0:
            return
        ref = MessageRef(chat_id=chat_id, message_id=message_id)
        if cleanup is Cleanup.STRIP:
            ok = await self._transport.remove_keyboard(ref)
        else:
            ok = await self._transport.delete_prompt(ref)
        if not ok:
            logger.info(
                "prompt.cleanup_failed",
                user_id=user_id,
                chat_id=chat_id,
                message_id=message_id,
                cleanup=cleanup.value,
            )
        await self._store.set_previous_message_info(user_id, 0, 0)
