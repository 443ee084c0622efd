from __future__ import annotations

from typing import Any

import msgspec

from ..conversation import EventKind, InboundEvent, Sender
from ..logging import get_logger
from .api_models import CallbackQuery, Message, Update, User

logger = get_logger(__name__)


def parse_incoming_update(update: Update | dict[str, Any]) -> InboundEvent | None:
    """Normalize a Bot API update into an inbound event.

    Only text messages (captions count as text) and button clicks are
    kept; everything else yields None.
    """
    raw: dict[str, Any] | None = None
    if isinstance(update, dict):
        raw = update
        try:
            update = msgspec.convert(update, type=Update)
        except msgspec.ValidationError as exc:
            logger.info("telegram.update_invalid", error=str(exc))
            return None

    if update.message is not None:
        return _parse_message(update.message, raw=raw)
    if update.callback_query is not None:
        return _parse_callback_query(update.callback_query, raw=raw)
    return None


def _sender(user: User) -> Sender:
    return Sender(
        id=user.id,
        username=user.username,
        first_name=user.first_name,
        last_name=user.last_name,
        is_bot=user.is_bot,
    )


def _parse_message(msg: Message, *, raw: dict[str, Any] | None) -> InboundEvent | None:
    text = msg.text if msg.text is not None else msg.caption
    if text is None or msg.chat is None or msg.from_ is None:
        return None
    forward_from: Sender | None = None
    origin_type: str | None = None
    origin = msg.forward_origin
    if origin is not None:
        origin_type = origin.type
        if origin.sender_user is not None:
            forward_from = _sender(origin.sender_user)
    elif msg.forward_from is not None:
        origin_type = "user"
        forward_from = _sender(msg.forward_from)
    return InboundEvent(
        sender=_sender(msg.from_),
        chat_id=msg.chat.id,
        kind=EventKind.TEXT,
        payload=text,
        message_id=msg.message_id,
        chat_type=msg.chat.type,
        date=msg.date,
        forward_from=forward_from,
        forward_origin_type=origin_type,
        raw=raw,
    )


def _parse_callback_query(
    query: CallbackQuery, *, raw: dict[str, Any] | None
) -> InboundEvent | None:
    msg = query.message
    if msg is None or msg.chat is None:
        return None
    return InboundEvent(
        sender=_sender(query.from_),
        chat_id=msg.chat.id,
        kind=EventKind.CALLBACK,
        payload=query.data or "",
        message_id=msg.message_id,
        callback_id=query.id,
        chat_type=msg.chat.type,
        raw=raw,
    )
