from __future__ import annotations

from ..domain.formatters import format_public_profile
from ..domain.models import Profile, User, is_profile_complete
from ..domain.repositories import ProfileRepository
from ..logging import get_logger
from ..settings import BotSettings
from ..transport import MessageRef, Transport

logger = get_logger(__name__)


class ProfilePublisher:
    """Keeps a member's intro post in the supergroup in sync with their profile."""

    def __init__(
        self,
        transport: Transport,
        profiles: ProfileRepository,
        settings: BotSettings,
    ) -> None:
        self._transport = transport
        self._profiles = profiles
        self._settings = settings

    async def publish(
        self, user: User, profile: Profile, *, without_preview: bool = True
    ) -> int | None:
        """Edit the existing post or send a new one.

        Returns the published message id, or None when the profile is
        incomplete or the platform refused both the edit and the send.
        """
        if not is_profile_complete(user, profile):
            return None
        text = format_public_profile(user, profile)
        chat_id = self._settings.supergroup_chat_id

        if profile.published_message_id is not None:
            ref = MessageRef(chat_id=chat_id, message_id=profile.published_message_id)
            if await self._transport.edit_text(
                ref, text, disable_preview=without_preview
            ):
                return profile.published_message_id
            logger.info(
                "profile.publish_edit_failed",
                user_id=user.id,
                message_id=profile.published_message_id,
            )

        sent = await self._transport.send_prompt(
            chat_id,
            text,
            thread_id=self._settings.intro_topic_id or None,
            disable_preview=without_preview,
        )
        if sent is None:
            logger.warning("profile.publish_failed", user_id=user.id)
            return None
        await self._profiles.update_published_message_id(profile.id, sent.message_id)
        logger.info("profile.published", user_id=user.id, message_id=sent.message_id)
        return sent.message_id

    def published_note(self, message_id: int | None) -> str:
        if message_id is None:
            return ""
        link = self._settings.intro_message_link(message_id)
        return f"\n✅ Profile <a href='{link}'>published</a> in the \"Intro\" channel."
