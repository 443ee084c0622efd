from __future__ import annotations

from typing import Any

import msgspec

__all__ = [
    "ApiResponse",
    "CallbackQuery",
    "Chat",
    "ChatMember",
    "Message",
    "MessageOrigin",
    "ResponseParameters",
    "Update",
    "User",
]


class User(msgspec.Struct, forbid_unknown_fields=False):
    id: int
    is_bot: bool = False
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class Chat(msgspec.Struct, forbid_unknown_fields=False):
    id: int
    type: str


class ChatMember(msgspec.Struct, forbid_unknown_fields=False):
    status: str
    is_member: bool | None = None


class MessageOrigin(msgspec.Struct, forbid_unknown_fields=False):
    type: str
    sender_user: User | None = None
    sender_user_name: str | None = None


class Message(msgspec.Struct, forbid_unknown_fields=False):
    message_id: int
    date: int | None = None
    chat: Chat | None = None
    from_: User | None = msgspec.field(default=None, name="from")
    text: str | None = None
    caption: str | None = None
    forward_origin: MessageOrigin | None = None
    forward_from: User | None = None


class CallbackQuery(msgspec.Struct, forbid_unknown_fields=False):
    id: str
    from_: User = msgspec.field(name="from")
    message: Message | None = None
    data: str | None = None


class Update(msgspec.Struct, forbid_unknown_fields=False):
    update_id: int
    message: Message | None = None
    callback_query: CallbackQuery | None = None


class ResponseParameters(msgspec.Struct, forbid_unknown_fields=False):
    retry_after: float | None = None


class ApiResponse(msgspec.Struct, forbid_unknown_fields=False):
    """Envelope every Bot API method answers with."""

    ok: bool
    result: Any = None
    description: str | None = None
    error_code: int | None = None
    parameters: ResponseParameters | None = None
