from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class MessageRef:
    chat_id: int
    message_id: int


@dataclass(frozen=True, slots=True)
class Button:
    text: str
    callback_data: str | None = None
    url: str | None = None

    def __post_init__(self) -> None:
        if (self.callback_data is None) == (self.url is None):
            raise ValueError("button needs exactly one of callback_data or url")


Keyboard = tuple[tuple[Button, ...], ...]


def keyboard(*rows: Iterable[Button] | Button) -> Keyboard:
    """Build a keyboard from rows; a bare button is a row of its own."""
    built: list[tuple[Button, ...]] = []
    for row in rows:
        if isinstance(row, Button):
            built.append((row,))
        else:
            built.append(tuple(row))
    return tuple(built)


@runtime_checkable
class Transport(Protocol):
    """Outbound side of the chat platform.

    Every method is fallible I/O: implementations log failures and report
    them through the return value instead of raising.
    """

    async def send_prompt(
        self,
        chat_id: int,
        text: str,
        keyboard: Keyboard | None = None,
        *,
        thread_id: int | None = None,
        disable_preview: bool = False,
    ) -> MessageRef | None: ...

    async def edit_text(
        self,
        ref: MessageRef,
        text: str,
        keyboard: Keyboard | None = None,
        *,
        disable_preview: bool = False,
    ) -> bool: ...

    async def delete_prompt(self, ref: MessageRef) -> bool: ...

    async def remove_keyboard(self, ref: MessageRef) -> bool: ...

    async def answer_callback(self, callback_id: str, text: str | None = None) -> None: ...

    async def pin(self, ref: MessageRef, *, silent: bool = True) -> bool: ...
