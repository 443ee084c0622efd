from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, TypeAlias


class EventKind(enum.Enum):
    TEXT = "text"
    CALLBACK = "callback"


@dataclass(frozen=True, slots=True)
class Sender:
    id: int
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    is_bot: bool = False


@dataclass(frozen=True, slots=True)
class InboundEvent:
    """One text message or button click, already resolved to its user."""

    sender: Sender
    chat_id: int
    kind: EventKind
    payload: str
    message_id: int | None = None
    callback_id: str | None = None
    chat_type: str = "private"
    date: int | None = None
    forward_from: Sender | None = None
    forward_origin_type: str | None = None
    raw: dict[str, Any] | None = None

    @property
    def user_id(self) -> int:
        return self.sender.id

    @property
    def is_private(self) -> bool:
        return self.chat_type == "private"

    @property
    def command(self) -> str | None:
        """Command name without the slash and bot suffix, for `/cmd@bot args`."""
        if self.kind is not EventKind.TEXT:
            return None
        stripped = self.payload.lstrip()
        if not stripped.startswith("/"):
            return None
        token = stripped.split(maxsplit=1)[0][1:]
        name = token.split("@", 1)[0]
        return name or None


@dataclass(frozen=True, slots=True)
class Advance:
    state: str


@dataclass(frozen=True, slots=True)
class Stay:
    pass


@dataclass(frozen=True, slots=True)
class End:
    pass


Transition: TypeAlias = Advance | Stay | End

STAY = Stay()
END = End()


class ConversationError(Exception):
    pass


class RegistryError(ConversationError):
    """A wizard definition is inconsistent; raised while building the registry."""


class TransitionError(ConversationError):
    def __init__(self, wizard: str, state: str) -> None:
        super().__init__(f"wizard {wizard!r} has no state {state!r}")
        self.wizard = wizard
        self.state = state


class SessionDataError(ConversationError):
    """Expected session data is missing or has the wrong type."""

    def __init__(self, key: str, expected: type, actual: object | None = None) -> None:
        if actual is None:
            message = f"session key {key!r} is missing"
        else:
            message = (
                f"session key {key!r} holds {type(actual).__name__}, "
                f"expected {expected.__name__}"
            )
        super().__init__(message)
        self.key = key
        self.expected = expected


class OperationCancelled(ConversationError):
    pass


class SelectionLost(ConversationError):
    """A record picked earlier in the dialog is gone; `str(exc)` is shown to the user."""
