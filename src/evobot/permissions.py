from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from .commands import Access, access_for
from .conversation import HandlerContext
from .logging import get_logger

logger = get_logger(__name__)

ADMIN_ONLY_TEXT = "This command is only available to administrators."
MEMBER_ONLY_TEXT = "This command is only available to group members."
PRIVATE_ONLY_TEXT = (
    "<b>My apologies</b> 🧐\n\n"
    "This command only works in a <i>private chat</i> with me. "
    "Send me a DM and I'll be happy to help."
)


@runtime_checkable
class PermissionGate(Protocol):
    async def is_admin(self, user_id: int) -> bool: ...

    async def is_member(self, user_id: int) -> bool: ...

    async def is_authorized(self, user_id: int, command: str) -> bool: ...


async def authorize(
    gate: PermissionGate, user_id: int, command: str
) -> bool:
    match access_for(command):
        case Access.PUBLIC:
            return True
        case Access.MEMBER:
            return await gate.is_member(user_id)
        case Access.ADMIN:
            return await gate.is_admin(user_id)
    return False


async def check_access(
    ctx: HandlerContext,
    gate: PermissionGate,
    command: str,
    *,
    private_only: bool = True,
) -> bool:
    """Entry-handler guard; replies with the reason when access is denied."""
    access = access_for(command)
    if access is Access.ADMIN and not await gate.is_authorized(ctx.user_id, command):
        await ctx.reply(ADMIN_ONLY_TEXT)
        logger.info("access.denied", user_id=ctx.user_id, command=command, access="admin")
        return False
    if private_only and not ctx.event.is_private:
        await ctx.reply(PRIVATE_ONLY_TEXT)
        logger.info("access.denied", user_id=ctx.user_id, command=command, access="private")
        return False
    if access is Access.MEMBER and not await gate.is_authorized(ctx.user_id, command):
        await ctx.reply(MEMBER_ONLY_TEXT)
        logger.info("access.denied", user_id=ctx.user_id, command=command, access="member")
        return False
    return True


class StaticPermissionGate:
    """Gate backed by fixed id lists; `member_ids=None` admits everyone."""

    def __init__(
        self,
        admin_ids: Iterable[int],
        member_ids: Iterable[int] | None = None,
    ) -> None:
        self._admin_ids = frozenset(admin_ids)
        self._member_ids = None if member_ids is None else frozenset(member_ids)

    async def is_admin(self, user_id: int) -> bool:
        return user_id in self._admin_ids

    async def is_member(self, user_id: int) -> bool:
        if user_id in self._admin_ids:
            return True
        return self._member_ids is None or user_id in self._member_ids

    async def is_authorized(self, user_id: int, command: str) -> bool:
        return await authorize(self, user_id, command)
