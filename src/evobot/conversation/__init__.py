from __future__ import annotations

from .cancel import CancelToken
from .context import HandlerContext
from .dispatcher import Dispatcher
from .matchers import any_message, callback, callback_prefix, command, text
from .model import (
    END,
    STAY,
    Advance,
    End,
    EventKind,
    InboundEvent,
    OperationCancelled,
    SelectionLost,
    RegistryError,
    Sender,
    SessionDataError,
    Stay,
    Transition,
    TransitionError,
)
from .registry import CANCEL_COMMAND, Handler, Registry, Route, State, Wizard, state
from .session import SessionStore
from .ui import Cleanup, Prompter

__all__ = [
    "CANCEL_COMMAND",
    "END",
    "STAY",
    "Advance",
    "CancelToken",
    "Cleanup",
    "Dispatcher",
    "End",
    "EventKind",
    "Handler",
    "HandlerContext",
    "InboundEvent",
    "OperationCancelled",
    "SelectionLost",
    "Prompter",
    "Registry",
    "RegistryError",
    "Route",
    "Sender",
    "SessionDataError",
    "SessionStore",
    "State",
    "Stay",
    "Transition",
    "TransitionError",
    "Wizard",
    "any_message",
    "callback",
    "callback_prefix",
    "command",
    "state",
    "text",
]
