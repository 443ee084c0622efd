from __future__ import annotations

from html import escape

from ..commands import PROFILES_MANAGER
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
    state,
    text,
)
from ..domain.formatters import format_field_status, format_profile_manager_view
from ..domain.models import Profile, User, is_profile_complete
from ..keyboards import (
    ADMIN_PROFILES_BACK_TO_MAIN,
    ADMIN_PROFILES_BACK_TO_PROFILE,
    ADMIN_PROFILES_CANCEL,
    ADMIN_PROFILES_CREATE_FORWARD,
    ADMIN_PROFILES_CREATE_TG_ID,
    ADMIN_PROFILES_EDIT_BIO,
    ADMIN_PROFILES_EDIT_COFFEE,
    ADMIN_PROFILES_EDIT_FIRSTNAME,
    ADMIN_PROFILES_EDIT_LASTNAME,
    ADMIN_PROFILES_EDIT_USERNAME,
    ADMIN_PROFILES_PUBLISH,
    ADMIN_PROFILES_PUBLISH_NO_PREVIEW,
    ADMIN_PROFILES_SEARCH_FULL_NAME,
    ADMIN_PROFILES_SEARCH_TG_ID,
    ADMIN_PROFILES_SEARCH_USERNAME,
    ADMIN_PROFILES_TOGGLE_COFFEE,
    admin_profiles_back_cancel_keyboard,
    admin_profiles_coffee_keyboard,
    admin_profiles_edit_keyboard,
    admin_profiles_main_keyboard,
)
from ..logging import get_logger
from ..transport import Keyboard
from .common import Services, guard, selected
from .profile import utf16_length

logger = get_logger(__name__)

MAIN_MENU = "main_menu"
AWAIT_SEARCH_USERNAME = "await_search_username"
AWAIT_SEARCH_TG_ID = "await_search_tg_id"
AWAIT_SEARCH_FULL_NAME = "await_search_full_name"
AWAIT_CREATE_FORWARD = "await_create_forward"
AWAIT_CREATE_TG_ID = "await_create_tg_id"
EDIT_PROFILE = "edit_profile"
AWAIT_BIO = "await_bio"
AWAIT_FIRSTNAME = "await_firstname"
AWAIT_LASTNAME = "await_lastname"
AWAIT_USERNAME = "await_username"
AWAIT_COFFEE_BAN = "await_coffee_ban"

KEY_USER_ID = "managedUserId"
KEY_PROFILE_ID = "managedProfileId"
KEY_LAST_MESSAGE_DATE = "lastMessageDate"

MENU_HEADER = 'Admin Menu "Profile Manager"'
EDIT_HEADER = "Profile Manager → Edit"
CREATE_BY_ID_HEADER = "Profile Manager → Create by ID"
SEARCH_BY_ID_HEADER = "Profile Manager → Search by ID"
SEARCH_BY_NAME_HEADER = "Profile Manager → Search by Name"
FIRSTNAME_HEADER = "Profile Manager → Edit → First Name"
LASTNAME_HEADER = "Profile Manager → Edit → Last Name"
BIO_HEADER = "Profile Manager → Edit → Bio"
USERNAME_HEADER = "Profile Manager → Edit → Username"
PUBLISH_HEADER = "Profile Manager → Publish"
COFFEE_HEADER = "Profile Manager → Coffee Meetings Ban"

SAVED_TEXT = "✅ Value saved successfully!"

# main menu button -> (state, prompt)
MAIN_MENU_PROMPTS = {
    ADMIN_PROFILES_SEARCH_USERNAME: (
        AWAIT_SEARCH_USERNAME,
        f"<b>{MENU_HEADER}</b>\n\nEnter the username (with or without @) to search:",
    ),
    ADMIN_PROFILES_SEARCH_TG_ID: (
        AWAIT_SEARCH_TG_ID,
        f"<b>{SEARCH_BY_ID_HEADER}</b>\n\nEnter the Telegram user ID to search for a profile:",
    ),
    ADMIN_PROFILES_SEARCH_FULL_NAME: (
        AWAIT_SEARCH_FULL_NAME,
        f"<b>{SEARCH_BY_NAME_HEADER}</b>\n\n"
        "Enter the user's first and last name (separated by a space) "
        "to search for a profile:",
    ),
    ADMIN_PROFILES_CREATE_FORWARD: (
        AWAIT_CREATE_FORWARD,
        f"<b>{MENU_HEADER}</b>\n\n"
        "Forward me a message from the user for whom you want to create a profile:",
    ),
    ADMIN_PROFILES_CREATE_TG_ID: (
        AWAIT_CREATE_TG_ID,
        f"<b>{CREATE_BY_ID_HEADER}</b>\n\nEnter the Telegram user ID to create a profile:",
    ),
}

EDIT_FIELD_STATES = {
    ADMIN_PROFILES_EDIT_FIRSTNAME: AWAIT_FIRSTNAME,
    ADMIN_PROFILES_EDIT_LASTNAME: AWAIT_LASTNAME,
    ADMIN_PROFILES_EDIT_USERNAME: AWAIT_USERNAME,
    ADMIN_PROFILES_EDIT_BIO: AWAIT_BIO,
    ADMIN_PROFILES_EDIT_COFFEE: AWAIT_COFFEE_BAN,
}


def _coffee_status(banned: bool) -> str:
    return "❌ Banned" if banned else "✅ Allowed"


class AdminProfilesWizard:
    """Admin tool to find, create, edit and publish any member's profile."""

    def __init__(self, services: Services) -> None:
        self._services = services

    def definition(self) -> Wizard:
        back_to_main = Route(callback(ADMIN_PROFILES_BACK_TO_MAIN), self.handle_back_to_main)
        back_to_profile = Route(
            callback(ADMIN_PROFILES_BACK_TO_PROFILE), self.handle_back_to_profile
        )
        main_menu_routes = tuple(
            Route(callback(data), self.handle_main_menu) for data in MAIN_MENU_PROMPTS
        )
        edit_routes = tuple(
            Route(callback(data), self.handle_edit_field) for data in EDIT_FIELD_STATES
        )
        return Wizard(
            name="admin_profiles",
            entry_command=PROFILES_MANAGER,
            entry=self.start,
            states=(
                state(MAIN_MENU, *main_menu_routes),
                state(
                    AWAIT_SEARCH_USERNAME,
                    Route(text(), self.handle_search_username),
                    back_to_main,
                ),
                state(AWAIT_SEARCH_TG_ID, Route(text(), self.handle_search_tg_id), back_to_main),
                state(
                    AWAIT_SEARCH_FULL_NAME,
                    Route(text(), self.handle_search_full_name),
                    back_to_main,
                ),
                state(
                    AWAIT_CREATE_FORWARD,
                    Route(any_message(), self.handle_create_forward),
                    back_to_main,
                ),
                state(AWAIT_CREATE_TG_ID, Route(text(), self.handle_create_tg_id), back_to_main),
                state(
                    EDIT_PROFILE,
                    *edit_routes,
                    Route(callback(ADMIN_PROFILES_PUBLISH), self.handle_publish),
                    Route(callback(ADMIN_PROFILES_PUBLISH_NO_PREVIEW), self.handle_publish),
                    back_to_profile,
                    back_to_main,
                ),
                state(AWAIT_BIO, Route(text(), self.handle_bio), back_to_profile),
                state(AWAIT_FIRSTNAME, Route(text(), self.handle_firstname), back_to_profile),
                state(AWAIT_LASTNAME, Route(text(), self.handle_lastname), back_to_profile),
                state(AWAIT_USERNAME, Route(text(), self.handle_username), back_to_profile),
                state(
                    AWAIT_COFFEE_BAN,
                    Route(callback(ADMIN_PROFILES_TOGGLE_COFFEE), self.handle_toggle_coffee),
                    back_to_profile,
                ),
            ),
            fallbacks=(Route(any_message(), self.handle_stray_message),),
            cancel_text="Admin profile management session ended.",
            cancel_callback=ADMIN_PROFILES_CANCEL,
            cleanup=Cleanup.DELETE,
        )

    async def start(self, ctx: HandlerContext) -> Transition:
        if not await guard(ctx, self._services, PROFILES_MANAGER):
            return END
        await self._show_main_menu(ctx)
        return Advance(MAIN_MENU)

    async def handle_back_to_main(self, ctx: HandlerContext) -> Transition:
        await ctx.answer()
        await self._show_main_menu(ctx)
        return Advance(MAIN_MENU)

    async def handle_main_menu(self, ctx: HandlerContext) -> Transition:
        await ctx.answer()
        target, message = MAIN_MENU_PROMPTS[ctx.event.payload]
        await ctx.prompt(message, self._back_to_main_keyboard())
        return Advance(target)

    async def handle_search_username(self, ctx: HandlerContext) -> Transition:
        username = ctx.text.removeprefix("@")
        user = await self._services.users.get_by_username(username)
        if user is None:
            return await self._retry(
                ctx,
                f"<b>{MENU_HEADER}</b>\n\nUser <b>{escape(username)}</b> not found."
                "\n\nTry again, or go back:",
            )
        return await self._select(ctx, user)

    async def handle_search_tg_id(self, ctx: HandlerContext) -> Transition:
        tg_id = self._parse_tg_id(ctx.text)
        if tg_id is None:
            return await self._retry(
                ctx,
                f"<b>{SEARCH_BY_ID_HEADER}</b>\n\nInvalid ID format: "
                f"<b>{escape(ctx.text)}</b>. Enter a numeric Telegram user ID:",
            )
        user = await self._services.users.get_by_tg_id(tg_id)
        if user is None:
            return await self._retry(
                ctx,
                f"<b>{SEARCH_BY_ID_HEADER}</b>\n\nUser with ID <b>{tg_id}</b> not found."
                "\n\nTry again, or go back:",
            )
        return await self._select(ctx, user)

    async def handle_search_full_name(self, ctx: HandlerContext) -> Transition:
        parts = ctx.text.split()
        if len(parts) < 2:
            return await self._retry(
                ctx,
                f"<b>{SEARCH_BY_NAME_HEADER}</b>\n\nInvalid name format: "
                f"<b>{escape(ctx.text)}</b>.\n\n"
                "Please enter the user's first and last name separated by a space:",
            )
        firstname, lastname = parts[0], " ".join(parts[1:])
        user = await self._services.users.search_by_name(firstname, lastname)
        if user is None:
            return await self._retry(
                ctx,
                f"<b>{SEARCH_BY_NAME_HEADER}</b>\n\nUser with name "
                f"<b>{escape(firstname)} {escape(lastname)}</b> not found."
                "\n\nTry again, or go back:",
            )
        return await self._select(ctx, user)

    async def handle_create_tg_id(self, ctx: HandlerContext) -> Transition:
        tg_id = self._parse_tg_id(ctx.text)
        if tg_id is None:
            return await self._retry(
                ctx,
                f"<b>{CREATE_BY_ID_HEADER}</b>\n\nInvalid ID format: "
                f"<b>{escape(ctx.text)}</b>. Enter a numeric Telegram user ID:",
            )
        user = await self._services.users.get_or_create(tg_id)
        logger.info("admin_profiles.user_by_id", user_id=user.id, tg_id=tg_id)
        return await self._select(ctx, user)

    async def handle_create_forward(self, ctx: HandlerContext) -> Transition:
        origin = ctx.event.forward_from
        if origin is None or ctx.event.forward_origin_type != "user":
            message = (
                f"<b>{MENU_HEADER}</b>\n\n"
                "This is not a forwarded message from a user. Please forward a message "
                "from the user for whom you want to create a profile:"
            )
            if ctx.event.forward_origin_type == "hidden_user":
                message += (
                    "\n\n<i>A message from a hidden user cannot be used "
                    "to create a profile.</i>"
                )
            return await self._retry(ctx, message)
        user = await self._services.users.get_or_create(
            origin.id,
            firstname=origin.first_name,
            lastname=origin.last_name,
            tg_username=origin.username,
        )
        profile = await self._services.profiles.get_or_create_with_bio(
            user.id, ctx.event.payload
        )
        logger.info("admin_profiles.user_by_forward", user_id=user.id, tg_id=origin.id)
        return await self._select(ctx, user, profile)

    async def handle_edit_field(self, ctx: HandlerContext) -> Transition:
        await ctx.answer()
        target = EDIT_FIELD_STATES[ctx.event.payload]
        user, profile = await self._managed(ctx)
        back: Keyboard = admin_profiles_back_cancel_keyboard()
        if target == AWAIT_FIRSTNAME:
            header = FIRSTNAME_HEADER
            current = f"<code>{escape(user.firstname)}</code>"
            action = "Enter a new value for the <b>first name</b> field"
        elif target == AWAIT_LASTNAME:
            header = LASTNAME_HEADER
            current = f"<code>{escape(user.lastname)}</code>"
            action = "Enter a new value for the <b>last name</b> field"
        elif target == AWAIT_USERNAME:
            header = USERNAME_HEADER
            current = f"<code>{escape(user.tg_username)}</code>"
            action = "Enter a new value for the <b>username</b> field (without @)"
        elif target == AWAIT_BIO:
            header = BIO_HEADER
            current = f"<pre>{escape(profile.bio)}</pre>"
            action = (
                "Enter a new value for the <b>bio</b> field "
                f"(up to {self._services.settings.bio_length_limit} characters)"
            )
        else:
            header = COFFEE_HEADER
            current = _coffee_status(user.has_coffee_ban)
            action = "Click the button to change the coffee meetings status"
            back = admin_profiles_coffee_keyboard(user.has_coffee_ban)
        await ctx.prompt(
            f"<b>{header}</b>\n\nCurrent value: {current}\n\n{action}", back
        )
        return Advance(target)

    async def handle_back_to_profile(self, ctx: HandlerContext) -> Transition:
        await ctx.answer()
        user, profile = await self._managed(ctx)
        await self._show_edit_menu(ctx, user, profile)
        return Advance(EDIT_PROFILE)

    async def handle_publish(self, ctx: HandlerContext) -> Transition:
        await ctx.answer()
        without_preview = ctx.event.payload == ADMIN_PROFILES_PUBLISH_NO_PREVIEW
        user, profile = await self._managed(ctx)
        if not is_profile_complete(user, profile):
            await ctx.prompt(
                f"<b>{PUBLISH_HEADER}</b>\n\n⚠️ The user profile is incomplete. "
                "\n\nTo publish it in the "
                f"\"<a href='{self._services.settings.intro_topic_link()}'>Intro</a>\" "
                "channel, the following must be provided: "
                f"\n└ {format_field_status(user.firstname)} First Name"
                f"\n└ {format_field_status(user.lastname)} Last Name"
                f"\n└ {format_field_status(profile.bio)} Bio",
                admin_profiles_back_cancel_keyboard(),
            )
            return STAY
        message_id = await self._services.publisher.publish(
            user, profile, without_preview=without_preview
        )
        if message_id is None:
            await ctx.prompt(
                f"<b>{PUBLISH_HEADER}</b>\n\n❌ Failed to publish the profile. "
                "Please try again later.",
                admin_profiles_back_cancel_keyboard(),
            )
            return STAY
        link = self._services.settings.intro_message_link(message_id)
        logger.info("admin_profiles.published", user_id=user.id, message_id=message_id)
        await ctx.prompt(
            f"<b>{PUBLISH_HEADER}</b>\n\n✅ User profile successfully published in the "
            f"\"<a href='{link}'>Intro</a>\" channel!",
            admin_profiles_back_cancel_keyboard(),
        )
        return STAY

    async def handle_bio(self, ctx: HandlerContext) -> Transition:
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
            return await self._retry(
                ctx,
                f"<b>{BIO_HEADER}</b>\n\nCurrent length: {length} characters"
                f"\n\nPlease shorten to {limit} characters and send again:",
                admin_profiles_back_cancel_keyboard(),
            )
        profile_id = await ctx.require(KEY_PROFILE_ID, int)
        with selected("profile", profile_id):
            await self._services.profiles.update_bio(profile_id, bio)
        return await self._return_to_profile(ctx)

    async def handle_firstname(self, ctx: HandlerContext) -> Transition:
        limit = self._services.settings.name_length_limit
        return await self._save_user_field(
            ctx, "firstname", FIRSTNAME_HEADER, "first name", limit
        )

    async def handle_lastname(self, ctx: HandlerContext) -> Transition:
        limit = self._services.settings.name_length_limit
        return await self._save_user_field(ctx, "lastname", LASTNAME_HEADER, "last name", limit)

    async def handle_username(self, ctx: HandlerContext) -> Transition:
        return await self._save_user_field(
            ctx,
            "tg_username",
            USERNAME_HEADER,
            "username",
            self._services.settings.username_length_limit,
            value=ctx.text.removeprefix("@"),
        )

    async def handle_toggle_coffee(self, ctx: HandlerContext) -> Transition:
        await ctx.answer()
        user_id = await ctx.require(KEY_USER_ID, int)
        with selected("user", user_id):
            user = await self._services.users.get_by_id(user_id)
            banned = not user.has_coffee_ban
            await self._services.users.set_coffee_ban(user_id, banned)
        logger.info("admin_profiles.coffee_ban", user_id=user_id, banned=banned)
        await ctx.prompt(
            f"<b>{COFFEE_HEADER}</b>\n\nCurrent value: {_coffee_status(banned)}"
            "\n\nEnter a new value for the <b>coffee meetings status</b> field:",
            admin_profiles_coffee_keyboard(banned),
        )
        return STAY

    async def handle_stray_message(self, ctx: HandlerContext) -> Transition:
        await ctx.delete_incoming()
        return STAY

    async def _save_user_field(
        self,
        ctx: HandlerContext,
        field: str,
        header: str,
        label: str,
        limit: int,
        *,
        value: str | None = None,
    ) -> Transition:
        value = ctx.text if value is None else value
        if len(value) > limit:
            capitalized = label[0].upper() + label[1:]
            return await self._retry(
                ctx,
                f"<b>{header}</b>\n\n{capitalized} is too long. Please enter a shorter "
                f"{label} (no more than {limit} characters):",
                admin_profiles_back_cancel_keyboard(),
            )
        user_id = await ctx.require(KEY_USER_ID, int)
        with selected("user", user_id):
            await self._services.users.update(user_id, **{field: value})
        logger.info("admin_profiles.field_saved", user_id=user_id, field=field)
        return await self._return_to_profile(ctx)

    async def _return_to_profile(self, ctx: HandlerContext) -> Transition:
        await ctx.delete_incoming()
        await ctx.clear_prompt()
        user, profile = await self._managed(ctx)
        notice = await ctx.reply(SAVED_TEXT)
        await self._services.sleep(self._services.settings.save_refresh_delay_s)
        if notice is not None:
            await ctx.transport.delete_prompt(notice)
        await self._show_edit_menu(ctx, user, profile)
        return Advance(EDIT_PROFILE)

    async def _select(
        self, ctx: HandlerContext, user: User, profile: Profile | None = None
    ) -> Transition:
        if profile is None:
            profile = await self._services.profiles.get_or_create(user.id)
        await ctx.set(KEY_USER_ID, user.id)
        await ctx.set(KEY_PROFILE_ID, profile.id)
        await ctx.delete_incoming()
        await self._show_edit_menu(ctx, user, profile)
        return Advance(EDIT_PROFILE)

    async def _retry(
        self, ctx: HandlerContext, message: str, keyboard: Keyboard | None = None
    ) -> Transition:
        await ctx.delete_incoming()
        await ctx.prompt(message, keyboard or self._back_to_main_keyboard())
        return STAY

    async def _managed(self, ctx: HandlerContext) -> tuple[User, Profile]:
        user_id = await ctx.require(KEY_USER_ID, int)
        profile_id = await ctx.require(KEY_PROFILE_ID, int)
        with selected("user", user_id):
            user = await self._services.users.get_by_id(user_id)
        with selected("profile", profile_id):
            profile = await self._services.profiles.get_by_id(profile_id)
        return user, profile

    async def _show_main_menu(self, ctx: HandlerContext) -> None:
        await ctx.prompt(
            f"<b>{MENU_HEADER}</b>\n\nHere you can edit user profiles or create a new "
            "profile based on a forwarded message.",
            admin_profiles_main_keyboard(),
        )

    async def _show_edit_menu(self, ctx: HandlerContext, user: User, profile: Profile) -> None:
        link = None
        if profile.published_message_id is not None:
            link = self._services.settings.intro_message_link(profile.published_message_id)
        await ctx.prompt(
            f"<b>{EDIT_HEADER}</b>\n\n"
            + format_profile_manager_view(user, profile, profile_link=link),
            admin_profiles_edit_keyboard(),
        )

    @staticmethod
    def _back_to_main_keyboard() -> Keyboard:
        return admin_profiles_back_cancel_keyboard(ADMIN_PROFILES_BACK_TO_MAIN)

    @staticmethod
    def _parse_tg_id(value: str) -> int | None:
        try:
            return int(value.strip())
        except ValueError:
            return None
