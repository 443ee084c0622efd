from __future__ import annotations

from html import escape

from ..commands import PROFILE
from ..conversation import (
    END,
    STAY,
    Advance,
    Cleanup,
    HandlerContext,
    Route,
    Transition,
    Wizard,
    any_message,
    callback,
    callback_prefix,
    state,
    text,
)
from ..domain.formatters import format_profile_view
from ..domain.models import Profile, User
from ..keyboards import (
    PROFILE_BACK_TO_MAIN,
    PROFILE_CANCEL,
    PROFILE_EDIT_BIO,
    PROFILE_EDIT_FIRSTNAME,
    PROFILE_EDIT_LASTNAME,
    PROFILE_EDIT_MENU,
    PROFILE_PREFIX,
    PROFILE_SEARCH,
    profile_back_cancel_keyboard,
    profile_edit_keyboard,
    profile_main_keyboard,
)
from ..logging import get_logger
from .common import Services, guard

logger = get_logger(__name__)

VIEW_OPTIONS = "view_options"
AWAIT_SEARCH = "await_search"
AWAIT_BIO = "await_bio"
AWAIT_FIRSTNAME = "await_firstname"
AWAIT_LASTNAME = "await_lastname"

KEY_LAST_MESSAGE_DATE = "lastMessageDate"

FIELD_CALLBACKS = {
    PROFILE_EDIT_BIO: AWAIT_BIO,
    PROFILE_EDIT_FIRSTNAME: AWAIT_FIRSTNAME,
    PROFILE_EDIT_LASTNAME: AWAIT_LASTNAME,
}

MENU_HEADER = "Profile Menu"
EDIT_HEADER = "Profile Menu → Edit"
SEARCH_HEADER = "Profile Menu → Search"
BIO_HEADER = "Profile Menu → Edit → Bio"
FIRSTNAME_HEADER = "Profile Menu → Edit → First Name"
LASTNAME_HEADER = "Profile Menu → Edit → Last Name"


def utf16_length(value: str) -> int:
    """Length as the chat platform counts it (UTF-16 code units)."""
    return len(value.encode("utf-16-le")) // 2


def _status_line(label: str, value: str, *, show_value: bool = True) -> str:
    if not value:
        return f"└ ❌ {label}"
    if show_value:
        return f"└ ✅ {label} <i>({escape(value)})</i>"
    return f"└ ✅ {label}"


class ProfileWizard:
    """Member's own profile editing plus search over other members."""

    def __init__(self, services: Services) -> None:
        self._services = services

    def definition(self) -> Wizard:
        return Wizard(
            name="profile",
            entry_command=PROFILE,
            entry=self.start,
            states=(
                state(VIEW_OPTIONS, Route(callback_prefix(PROFILE_PREFIX), self.handle_menu)),
                state(
                    AWAIT_SEARCH,
                    Route(text(), self.handle_search_input),
                    Route(callback(PROFILE_BACK_TO_MAIN), self.handle_menu),
                ),
                state(
                    AWAIT_BIO,
                    Route(text(), self.handle_bio_input),
                    Route(callback(PROFILE_EDIT_MENU), self.handle_menu),
                ),
                state(
                    AWAIT_FIRSTNAME,
                    Route(text(), self.handle_firstname_input),
                    Route(callback(PROFILE_EDIT_MENU), self.handle_menu),
                ),
                state(
                    AWAIT_LASTNAME,
                    Route(text(), self.handle_lastname_input),
                    Route(callback(PROFILE_EDIT_MENU), self.handle_menu),
                ),
            ),
            fallbacks=(Route(any_message(), self.handle_stray_message),),
            cancel_text="Profile session ended.",
            cancel_callback=PROFILE_CANCEL,
            cleanup=Cleanup.DELETE,
        )

    async def start(self, ctx: HandlerContext) -> Transition:
        if not await guard(ctx, self._services, PROFILE):
            return END
        await self._show_main_menu(ctx)
        return Advance(VIEW_OPTIONS)

    async def handle_menu(self, ctx: HandlerContext) -> Transition:
        await ctx.answer()
        data = ctx.event.payload
        if data == PROFILE_EDIT_MENU:
            await ctx.prompt(
                f"<b>{EDIT_HEADER}</b>\n\nChoose what you would like to change:",
                profile_edit_keyboard(),
            )
            return Advance(VIEW_OPTIONS)
        if data == PROFILE_SEARCH:
            await ctx.prompt(
                f"<b>{SEARCH_HEADER}</b>\n\n"
                "Enter the user's Telegram username <i>(with or without @)</i>, "
                "or their first and last name <i>(separated by a space)</i>:",
                profile_back_cancel_keyboard(PROFILE_BACK_TO_MAIN),
            )
            return Advance(AWAIT_SEARCH)
        if data in FIELD_CALLBACKS:
            return await self._prompt_field(ctx, FIELD_CALLBACKS[data])
        if data == PROFILE_BACK_TO_MAIN:
            await self._show_main_menu(ctx)
            return Advance(VIEW_OPTIONS)
        logger.debug("profile.unknown_callback", data=data)
        return STAY

    async def handle_search_input(self, ctx: HandlerContext) -> Transition:
        query = ctx.text.removeprefix("@").strip()
        found = await ctx.cancel_token.run(self._search, query)
        await ctx.delete_incoming()
        if found is None:
            await ctx.prompt(
                f"<b>{SEARCH_HEADER}</b>\n\nUser <b>{escape(query)}</b> not found."
                "\n\nPlease try again by sending me the username:",
                profile_back_cancel_keyboard(PROFILE_BACK_TO_MAIN),
            )
            return STAY
        user, profile = found
        await ctx.prompt(
            f"<b>{SEARCH_HEADER}</b>\n\n{format_profile_view(user, profile)}",
            profile_back_cancel_keyboard(PROFILE_BACK_TO_MAIN),
        )
        return Advance(VIEW_OPTIONS)

    async def handle_bio_input(self, ctx: HandlerContext) -> Transition:
        date = ctx.event.date
        if date is not None:
            last_date, found = await ctx.get(KEY_LAST_MESSAGE_DATE)
            if found and last_date == date:
                await ctx.delete_incoming()
                return STAY
            await ctx.set(KEY_LAST_MESSAGE_DATE, date)

        bio = ctx.text
        limit = self._services.settings.bio_length_limit
        length = utf16_length(bio)
        if length > limit:
            await ctx.delete_incoming()
            await ctx.prompt(
                f"<b>{BIO_HEADER}</b>\n\nCurrent length: {length} characters"
                f"\n\nPlease shorten it to {limit} characters and send again:",
                profile_back_cancel_keyboard(PROFILE_EDIT_MENU),
            )
            return STAY

        user = await self._current_user(ctx)
        profile = await self._services.profiles.get_or_create(user.id)
        await self._services.profiles.update_bio(profile.id, bio)
        logger.info("profile.bio_saved", user_id=user.id, length=length)
        return await self._saved(ctx, user.id, BIO_HEADER, "✅ Bio saved!")

    async def handle_firstname_input(self, ctx: HandlerContext) -> Transition:
        return await self._save_name(
            ctx, "firstname", FIRSTNAME_HEADER, "first name", "✅ First name saved!"
        )

    async def handle_lastname_input(self, ctx: HandlerContext) -> Transition:
        return await self._save_name(
            ctx, "lastname", LASTNAME_HEADER, "last name", "✅ Last name saved!"
        )

    async def handle_stray_message(self, ctx: HandlerContext) -> Transition:
        await ctx.delete_incoming()
        return STAY

    async def _save_name(
        self,
        ctx: HandlerContext,
        field: str,
        header: str,
        label: str,
        saved_text: str,
    ) -> Transition:
        value = ctx.text
        limit = self._services.settings.name_length_limit
        if len(value) > limit:
            await ctx.delete_incoming()
            await ctx.prompt(
                f"<b>{header}</b>\n\nThe {label} is too long. "
                f"Please enter a shorter {label} (max {limit} characters):",
                profile_back_cancel_keyboard(PROFILE_EDIT_MENU),
            )
            return STAY
        user = await self._current_user(ctx)
        await self._services.profiles.get_or_create(user.id)
        await self._services.users.update(user.id, **{field: value})
        logger.info("profile.name_saved", user_id=user.id, field=field)
        return await self._saved(ctx, user.id, header, saved_text)

    async def _saved(
        self, ctx: HandlerContext, user_id: int, header: str, saved_text: str
    ) -> Transition:
        user = await self._services.users.get_by_id(user_id)
        profile = await self._services.profiles.get_or_create(user.id)
        published = await self._services.publisher.publish(user, profile)
        note = self._services.publisher.published_note(published)
        await ctx.delete_incoming()
        await ctx.prompt(
            f"<b>{header}</b>\n\n{saved_text}{note}",
            profile_back_cancel_keyboard(PROFILE_EDIT_MENU),
        )
        return Advance(VIEW_OPTIONS)

    async def _prompt_field(self, ctx: HandlerContext, target: str) -> Transition:
        user = await self._current_user(ctx)
        profile = await self._services.profiles.get_or_create(user.id)
        if target == AWAIT_BIO:
            header = BIO_HEADER
            current = f"<pre>{escape(profile.bio)}</pre>" if profile.bio else ""
            ask = (
                "your updated bio "
                f"(up to {self._services.settings.bio_length_limit} characters)"
            )
        elif target == AWAIT_FIRSTNAME:
            header = FIRSTNAME_HEADER
            current = f"<code>{escape(user.firstname)}</code>" if user.firstname else ""
            ask = "your new first name"
        else:
            header = LASTNAME_HEADER
            current = f"<code>{escape(user.lastname)}</code>" if user.lastname else ""
            ask = "your new last name"
        current_line = f"Current value: {current}" if current else "not set"
        await ctx.prompt(
            f"<b>{header}</b>\n\n{current_line}\n\nEnter {ask}:",
            profile_back_cancel_keyboard(PROFILE_EDIT_MENU),
        )
        return Advance(target)

    async def _show_main_menu(self, ctx: HandlerContext) -> None:
        settings = self._services.settings
        user = await self._current_user(ctx)
        profile = await self._services.profiles.get_or_create(user.id)
        link_line = ""
        if profile.published_message_id is not None:
            link = settings.intro_message_link(profile.published_message_id)
            link_line = f"👉 <a href='{link}'>Link</a> to your profile."
        text = (
            f"<b>{MENU_HEADER}</b>"
            "\n\nHere you can edit your profile and search for other members "
            "by name or username."
            "\n\n<blockquote>⚠️ Your profile will be automatically published in the "
            f"\"<a href='{settings.intro_topic_link()}'>Intro</a>\" channel "
            "once all fields are filled in.</blockquote>"
            "\n\nField statuses:\n"
            f"{_status_line('First Name', user.firstname)}\n"
            f"{_status_line('Last Name', user.lastname)}\n"
            f"{_status_line('Bio', profile.bio, show_value=False)}"
            f"\n\n{link_line}"
        )
        await ctx.prompt(text, profile_main_keyboard())

    async def _current_user(self, ctx: HandlerContext) -> User:
        sender = ctx.event.sender
        return await self._services.users.get_or_create(
            sender.id,
            firstname=sender.first_name,
            lastname=sender.last_name,
            tg_username=sender.username,
        )

    async def _search(self, query: str) -> tuple[User, Profile] | None:
        users = self._services.users
        user = await users.get_by_username(query)
        if user is None:
            parts = query.split()
            if not parts:
                return None
            user = await users.search_by_name(parts[0], " ".join(parts[1:]))
        if user is None:
            return None
        profile = await self._services.profiles.get_or_create(user.id)
        return user, profile
