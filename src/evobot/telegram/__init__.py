"""Telegram Bot API client and adapters."""

from .client import TelegramClient, TelegramRetryAfter
from .loop import poll_updates, run_polling
from .parsing import parse_incoming_update
from .permissions import TelegramPermissionGate
from .transport import TelegramTransport

__all__ = [
    "TelegramClient",
    "TelegramPermissionGate",
    "TelegramRetryAfter",
    "TelegramTransport",
    "parse_incoming_update",
    "poll_updates",
    "run_polling",
]
