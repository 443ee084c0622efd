from __future__ import annotations

import msgspec

from ..logging import get_logger
from ..permissions import authorize
from ..settings import BotSettings
from .api_models import ChatMember
from .client import TelegramClient

logger = get_logger(__name__)

ADMIN_STATUSES = frozenset({"creator", "administrator"})
MEMBER_STATUSES = ADMIN_STATUSES | {"member"}


class TelegramPermissionGate:
    """Roles from the supergroup's member list plus the configured admins."""

    def __init__(self, client: TelegramClient, settings: BotSettings) -> None:
        self._client = client
        self._settings = settings

    async def is_admin(self, user_id: int) -> bool:
        if self._settings.is_configured_admin(user_id):
            return True
        member = await self._member(user_id)
        return member is not None and member.status in ADMIN_STATUSES

    async def is_member(self, user_id: int) -> bool:
        if self._settings.is_configured_admin(user_id):
            return True
        member = await self._member(user_id)
        if member is None:
            return False
        if member.status == "restricted":
            return bool(member.is_member)
        return member.status in MEMBER_STATUSES

    async def is_authorized(self, user_id: int, command: str) -> bool:
        return await authorize(self, user_id, command)

    async def _member(self, user_id: int) -> ChatMember | None:
        result = await self._client.get_chat_member(
            self._settings.supergroup_chat_id, user_id
        )
        if result is None:
            return None
        try:
            return msgspec.convert(result, type=ChatMember)
        except msgspec.ValidationError as exc:
            logger.warning("telegram.chat_member_invalid", user_id=user_id, error=str(exc))
            return None
