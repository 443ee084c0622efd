from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from .model import EventKind, InboundEvent


class Matcher(Protocol):
    def __call__(self, event: InboundEvent) -> bool: ...


@dataclass(frozen=True, slots=True)
class CommandMatcher:
    command: str

    def __call__(self, event: InboundEvent) -> bool:
        return event.command == self.command


@dataclass(frozen=True, slots=True)
class TextMatcher:
    """Any text message, commands included (`/3` is a valid menu answer)."""

    allow_empty: bool = False

    def __call__(self, event: InboundEvent) -> bool:
        if event.kind is not EventKind.TEXT:
            return False
        return self.allow_empty or bool(event.payload)


@dataclass(frozen=True, slots=True)
class CallbackMatcher:
    data: str
    prefix: bool = False

    def __call__(self, event: InboundEvent) -> bool:
        if event.kind is not EventKind.CALLBACK:
            return False
        if self.prefix:
            return event.payload.startswith(self.data)
        return event.payload == self.data


def command(name: str) -> CommandMatcher:
    return CommandMatcher(name.lstrip("/"))


def text() -> TextMatcher:
    return TextMatcher()


def any_message() -> TextMatcher:
    return TextMatcher(allow_empty=True)


def callback(data: str) -> CallbackMatcher:
    return CallbackMatcher(data)


def callback_prefix(prefix: str) -> CallbackMatcher:
    return CallbackMatcher(prefix, prefix=True)
