from __future__ import annotations

import re
from typing import Any

import httpx
import msgspec

from ..logging import get_logger
from .api_models import ApiResponse

logger = get_logger(__name__)

API_BASE = "https://api.telegram.org"
NOT_MODIFIED_MARKER = "message is not modified"

_RETRY_AFTER_RE = re.compile(r"retry after (\d+)", re.IGNORECASE)
_response_decoder = msgspec.json.Decoder(ApiResponse)


class TelegramRetryAfter(Exception):
    def __init__(self, retry_after: float, description: str | None = None) -> None:
        super().__init__(description or f"retry after {retry_after}")
        self.retry_after = float(retry_after)
        self.description = description


def retry_after_from_text(text: str) -> float | None:
    match = _RETRY_AFTER_RE.search(text)
    return float(match.group(1)) if match else None


def _retry_after(reply: ApiResponse) -> float | None:
    if reply.parameters is not None and reply.parameters.retry_after is not None:
        return float(reply.parameters.retry_after)
    return retry_after_from_text(reply.description or "")


def _params(**values: Any) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


class TelegramClient:
    """Thin Bot API wrapper.

    Every call returns None (or False) on failure after logging it; only
    rate limiting surfaces as `TelegramRetryAfter` so callers can back off.
    """

    def __init__(
        self,
        token: str,
        timeout_s: float = 120,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not token:
            raise ValueError("Telegram token is empty")
        self._base = f"{API_BASE}/bot{token}"
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._owns_client = client is None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _call(self, method: str, params: dict[str, Any]) -> Any | None:
        logger.debug("telegram.request", method=method, params=params)
        try:
            resp = await self._client.post(f"{self._base}/{method}", json=params)
        except httpx.HTTPError as exc:
            logger.error(
                "telegram.network_error",
                method=method,
                error=str(exc),
                error_type=exc.__class__.__name__,
            )
            return None

        try:
            reply = _response_decoder.decode(resp.content)
        except msgspec.DecodeError as exc:
            retry_after = retry_after_from_text(resp.text)
            if resp.status_code == 429 and retry_after is not None:
                raise TelegramRetryAfter(retry_after) from exc
            logger.error(
                "telegram.bad_response",
                method=method,
                status=resp.status_code,
                error=str(exc),
                body=resp.text,
            )
            return None

        if reply.ok:
            logger.debug("telegram.response", method=method, result=reply.result)
            return reply.result
        return self._rejected(method, resp.status_code, reply)

    def _rejected(self, method: str, status: int, reply: ApiResponse) -> Any | None:
        description = reply.description or ""
        # editing to identical content is a no-op, not a failure
        if NOT_MODIFIED_MARKER in description.lower():
            logger.debug("telegram.not_modified", method=method)
            return True
        retry_after = _retry_after(reply)
        if retry_after is not None:
            logger.info(
                "telegram.rate_limited",
                method=method,
                status=status,
                retry_after=retry_after,
            )
            raise TelegramRetryAfter(retry_after, description or None)
        logger.error(
            "telegram.api_error",
            method=method,
            status=status,
            error_code=reply.error_code,
            description=description,
        )
        return None

    async def get_updates(
        self,
        offset: int | None,
        timeout_s: int = 50,
        allowed_updates: list[str] | None = None,
    ) -> list[dict] | None:
        result = await self._call(
            "getUpdates",
            _params(timeout=timeout_s, offset=offset, allowed_updates=allowed_updates),
        )
        return result if isinstance(result, list) else None

    async def send_message(
        self,
        chat_id: int,
        text: str,
        *,
        reply_markup: dict[str, Any] | None = None,
        parse_mode: str | None = "HTML",
        message_thread_id: int | None = None,
        disable_preview: bool = False,
        disable_notification: bool | None = None,
    ) -> dict | None:
        result = await self._call(
            "sendMessage",
            _params(
                chat_id=chat_id,
                text=text,
                parse_mode=parse_mode,
                reply_markup=reply_markup,
                message_thread_id=message_thread_id,
                link_preview_options={"is_disabled": True} if disable_preview else None,
                disable_notification=disable_notification,
            ),
        )
        return result if isinstance(result, dict) else None

    async def edit_message_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        *,
        reply_markup: dict[str, Any] | None = None,
        parse_mode: str | None = "HTML",
        disable_preview: bool = False,
    ) -> bool:
        result = await self._call(
            "editMessageText",
            _params(
                chat_id=chat_id,
                message_id=message_id,
                text=text,
                parse_mode=parse_mode,
                reply_markup=reply_markup,
                link_preview_options={"is_disabled": True} if disable_preview else None,
            ),
        )
        return bool(result)

    async def edit_message_reply_markup(
        self,
        chat_id: int,
        message_id: int,
        reply_markup: dict[str, Any] | None = None,
    ) -> bool:
        params = _params(chat_id=chat_id, message_id=message_id, reply_markup=reply_markup)
        return bool(await self._call("editMessageReplyMarkup", params))

    async def delete_message(self, chat_id: int, message_id: int) -> bool:
        params = _params(chat_id=chat_id, message_id=message_id)
        return bool(await self._call("deleteMessage", params))

    async def answer_callback_query(
        self, callback_query_id: str, text: str | None = None
    ) -> bool:
        params = _params(callback_query_id=callback_query_id, text=text)
        return bool(await self._call("answerCallbackQuery", params))

    async def pin_chat_message(
        self,
        chat_id: int,
        message_id: int,
        *,
        disable_notification: bool = True,
    ) -> bool:
        params = _params(
            chat_id=chat_id,
            message_id=message_id,
            disable_notification=disable_notification,
        )
        return bool(await self._call("pinChatMessage", params))

    async def get_chat_member(self, chat_id: int, user_id: int) -> dict | None:
        result = await self._call(
            "getChatMember", _params(chat_id=chat_id, user_id=user_id)
        )
        return result if isinstance(result, dict) else None

    async def set_my_commands(
        self,
        commands: list[dict[str, Any]],
        *,
        scope: dict[str, Any] | None = None,
        language_code: str | None = None,
    ) -> bool:
        params = _params(commands=commands, scope=scope, language_code=language_code)
        return bool(await self._call("setMyCommands", params))
