import pytest

from evobot.conversation import END, STAY, Advance, Dispatcher
from evobot.keyboards import (
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
)
from evobot.permissions import ADMIN_ONLY_TEXT
from evobot.transport import MessageRef
from evobot.wizards import Services
from evobot.wizards.admin_profiles import SAVED_TEXT
from tests.conftest import ADMIN_ID, MEMBER_ID, SUPERGROUP_ID
from tests.fakes import FakeTransport, callback_event, sender, text_event

BOB_TG_ID = 50


@pytest.fixture
async def bob(services: Services) -> int:
    user_id = await services.users.create(BOB_TG_ID, "Bob", "Builder", "bob")
    profile = await services.profiles.get_or_create(user_id)
    await services.profiles.update_bio(profile.id, "Builds things")
    return user_id


async def _menu(dispatcher: Dispatcher, data: str) -> None:
    await dispatcher.dispatch(text_event(ADMIN_ID, "/profilesManager"))
    await dispatcher.dispatch(callback_event(ADMIN_ID, data))


async def _select_bob(dispatcher: Dispatcher) -> None:
    await _menu(dispatcher, ADMIN_PROFILES_SEARCH_USERNAME)
    await dispatcher.dispatch(text_event(ADMIN_ID, "@bob"))


class TestEntry:
    @pytest.mark.anyio
    async def test_shows_main_menu(
        self, dispatcher: Dispatcher, transport: FakeTransport
    ) -> None:
        result = await dispatcher.dispatch(text_event(ADMIN_ID, "/profilesManager"))

        assert result == Advance("main_menu")
        assert transport.last.text.startswith('<b>Admin Menu "Profile Manager"</b>')
        assert transport.last.callbacks() == [
            ADMIN_PROFILES_SEARCH_USERNAME,
            ADMIN_PROFILES_SEARCH_TG_ID,
            ADMIN_PROFILES_SEARCH_FULL_NAME,
            ADMIN_PROFILES_CREATE_FORWARD,
            ADMIN_PROFILES_CREATE_TG_ID,
            ADMIN_PROFILES_CANCEL,
        ]

    @pytest.mark.anyio
    async def test_members_are_refused(
        self, dispatcher: Dispatcher, transport: FakeTransport
    ) -> None:
        assert await dispatcher.dispatch(text_event(MEMBER_ID, "/profilesManager")) == END
        assert transport.texts == [ADMIN_ONLY_TEXT]

    @pytest.mark.anyio
    async def test_cancel_button(
        self, dispatcher: Dispatcher, transport: FakeTransport
    ) -> None:
        await dispatcher.dispatch(text_event(ADMIN_ID, "/profilesManager"))

        assert await dispatcher.dispatch(callback_event(ADMIN_ID, ADMIN_PROFILES_CANCEL)) == END
        assert transport.last.text == "Admin profile management session ended."


class TestSearch:
    @pytest.mark.anyio
    async def test_by_username(
        self, dispatcher: Dispatcher, transport: FakeTransport, bob: int
    ) -> None:
        await _menu(dispatcher, ADMIN_PROFILES_SEARCH_USERNAME)
        assert transport.last.callbacks() == [ADMIN_PROFILES_BACK_TO_MAIN, ADMIN_PROFILES_CANCEL]

        incoming = text_event(ADMIN_ID, "@bob")
        assert await dispatcher.dispatch(incoming) == Advance("edit_profile")

        assert MessageRef(chat_id=ADMIN_ID, message_id=incoming.message_id) in transport.deleted
        text = transport.last.text
        assert text.startswith("<b>Profile Manager → Edit</b>")
        assert "<i>Telegram ID:</i> <code>50</code>" in text
        assert "<i>Coffee meetings:</i> ✅ Allowed" in text
        assert await dispatcher.store.get(ADMIN_ID, "managedUserId") == (bob, True)

    @pytest.mark.anyio
    async def test_unknown_username_stays(
        self, dispatcher: Dispatcher, transport: FakeTransport
    ) -> None:
        await _menu(dispatcher, ADMIN_PROFILES_SEARCH_USERNAME)

        assert await dispatcher.dispatch(text_event(ADMIN_ID, "ghost")) == STAY
        assert "User <b>ghost</b> not found." in transport.last.text

    @pytest.mark.anyio
    async def test_by_tg_id(
        self, dispatcher: Dispatcher, transport: FakeTransport, bob: int
    ) -> None:
        await _menu(dispatcher, ADMIN_PROFILES_SEARCH_TG_ID)

        assert await dispatcher.dispatch(text_event(ADMIN_ID, "abc")) == STAY
        assert "Invalid ID format: <b>abc</b>" in transport.last.text
        assert await dispatcher.dispatch(text_event(ADMIN_ID, "999")) == STAY
        assert "User with ID <b>999</b> not found." in transport.last.text

        assert await dispatcher.dispatch(text_event(ADMIN_ID, str(BOB_TG_ID))) == Advance(
            "edit_profile"
        )

    @pytest.mark.anyio
    async def test_by_full_name(
        self, dispatcher: Dispatcher, transport: FakeTransport, bob: int
    ) -> None:
        await _menu(dispatcher, ADMIN_PROFILES_SEARCH_FULL_NAME)

        assert await dispatcher.dispatch(text_event(ADMIN_ID, "Bob")) == STAY
        assert "Invalid name format" in transport.last.text
        assert await dispatcher.dispatch(text_event(ADMIN_ID, "Bob Marley")) == STAY
        assert "User with name <b>Bob Marley</b> not found." in transport.last.text

        assert await dispatcher.dispatch(text_event(ADMIN_ID, "bob builder")) == Advance(
            "edit_profile"
        )

    @pytest.mark.anyio
    async def test_back_to_main(
        self, dispatcher: Dispatcher, transport: FakeTransport
    ) -> None:
        await _menu(dispatcher, ADMIN_PROFILES_SEARCH_TG_ID)

        result = await dispatcher.dispatch(callback_event(ADMIN_ID, ADMIN_PROFILES_BACK_TO_MAIN))

        assert result == Advance("main_menu")
        assert transport.last.text.startswith('<b>Admin Menu "Profile Manager"</b>')


class TestCreate:
    @pytest.mark.anyio
    async def test_by_tg_id(
        self, dispatcher: Dispatcher, transport: FakeTransport, services: Services
    ) -> None:
        await _menu(dispatcher, ADMIN_PROFILES_CREATE_TG_ID)

        assert await dispatcher.dispatch(text_event(ADMIN_ID, "777")) == Advance(
            "edit_profile"
        )

        user = await services.users.get_by_tg_id(777)
        assert user is not None
        assert "<code>777</code>" in transport.last.text

    @pytest.mark.anyio
    async def test_from_forwarded_message(
        self, dispatcher: Dispatcher, transport: FakeTransport, services: Services
    ) -> None:
        await _menu(dispatcher, ADMIN_PROFILES_CREATE_FORWARD)
        origin = sender(88, first_name="Fay", last_name="Ward", username="fay")
        forwarded = text_event(
            ADMIN_ID,
            "Hi, I design things",
            forward_from=origin,
            forward_origin_type="user",
        )

        assert await dispatcher.dispatch(forwarded) == Advance("edit_profile")

        user = await services.users.get_by_tg_id(88)
        assert (user.firstname, user.lastname, user.tg_username) == ("Fay", "Ward", "fay")
        profile = await services.profiles.get_or_create(user.id)
        assert profile.bio == "Hi, I design things"

    @pytest.mark.anyio
    async def test_plain_message_is_rejected(
        self, dispatcher: Dispatcher, transport: FakeTransport
    ) -> None:
        await _menu(dispatcher, ADMIN_PROFILES_CREATE_FORWARD)

        assert await dispatcher.dispatch(text_event(ADMIN_ID, "just text")) == STAY
        assert "This is not a forwarded message from a user." in transport.last.text
        assert "hidden user" not in transport.last.text

    @pytest.mark.anyio
    async def test_hidden_user_is_explained(
        self, dispatcher: Dispatcher, transport: FakeTransport
    ) -> None:
        await _menu(dispatcher, ADMIN_PROFILES_CREATE_FORWARD)

        result = await dispatcher.dispatch(
            text_event(ADMIN_ID, "secret", forward_origin_type="hidden_user")
        )

        assert result == STAY
        assert "A message from a hidden user cannot be used" in transport.last.text


class TestEdit:
    @pytest.mark.anyio
    async def test_save_shows_notice_then_refreshes(
        self,
        dispatcher: Dispatcher,
        transport: FakeTransport,
        services: Services,
        sleeps: list[float],
        bob: int,
    ) -> None:
        await _select_bob(dispatcher)
        await dispatcher.dispatch(callback_event(ADMIN_ID, ADMIN_PROFILES_EDIT_FIRSTNAME))
        assert "Current value: <code>Bob</code>" in transport.last.text
        field_prompt = transport.last.ref
        transport.reset()

        incoming = text_event(ADMIN_ID, "Robert")
        assert await dispatcher.dispatch(incoming) == Advance("edit_profile")

        notice = next(m for m in transport.sent if m.text == SAVED_TEXT)
        assert transport.calls[:5] == [
            ("delete", MessageRef(chat_id=ADMIN_ID, message_id=incoming.message_id)),
            ("delete", field_prompt),
            ("send", ADMIN_ID),
            ("delete", notice.ref),
            ("send", ADMIN_ID),
        ]
        assert sleeps == [0.5]
        assert "Robert Builder" in transport.last.text
        assert (await services.users.get_by_id(bob)).firstname == "Robert"

    @pytest.mark.anyio
    async def test_username_drops_at_sign(
        self, dispatcher: Dispatcher, services: Services, bob: int
    ) -> None:
        await _select_bob(dispatcher)
        await dispatcher.dispatch(callback_event(ADMIN_ID, ADMIN_PROFILES_EDIT_USERNAME))

        await dispatcher.dispatch(text_event(ADMIN_ID, "@the_builder"))

        assert (await services.users.get_by_id(bob)).tg_username == "the_builder"

    @pytest.mark.anyio
    async def test_too_long_name_stays(
        self,
        dispatcher: Dispatcher,
        transport: FakeTransport,
        services: Services,
        bob: int,
    ) -> None:
        await _select_bob(dispatcher)
        await dispatcher.dispatch(callback_event(ADMIN_ID, ADMIN_PROFILES_EDIT_LASTNAME))
        limit = services.settings.name_length_limit

        assert await dispatcher.dispatch(text_event(ADMIN_ID, "y" * (limit + 1))) == STAY
        assert f"Last name is too long. Please enter a shorter last name (no more than {limit}" in (
            transport.last.text
        )
        assert (await services.users.get_by_id(bob)).lastname == "Builder"

    @pytest.mark.anyio
    async def test_bio_over_limit_stays(
        self,
        dispatcher: Dispatcher,
        transport: FakeTransport,
        services: Services,
        bob: int,
    ) -> None:
        await _select_bob(dispatcher)
        await dispatcher.dispatch(callback_event(ADMIN_ID, ADMIN_PROFILES_EDIT_BIO))
        assert "<pre>Builds things</pre>" in transport.last.text
        limit = services.settings.bio_length_limit

        assert await dispatcher.dispatch(text_event(ADMIN_ID, "b" * (limit + 1))) == STAY
        assert f"Please shorten to {limit} characters" in transport.last.text

        assert await dispatcher.dispatch(text_event(ADMIN_ID, "Builds bridges")) == Advance(
            "edit_profile"
        )
        profile = await services.profiles.get_or_create(bob)
        assert profile.bio == "Builds bridges"

    @pytest.mark.anyio
    async def test_toggle_coffee_ban(
        self,
        dispatcher: Dispatcher,
        transport: FakeTransport,
        services: Services,
        bob: int,
    ) -> None:
        await _select_bob(dispatcher)
        assert await dispatcher.dispatch(
            callback_event(ADMIN_ID, ADMIN_PROFILES_EDIT_COFFEE)
        ) == Advance("await_coffee_ban")
        assert transport.last.callbacks() == [
            ADMIN_PROFILES_TOGGLE_COFFEE,
            ADMIN_PROFILES_BACK_TO_PROFILE,
            ADMIN_PROFILES_CANCEL,
        ]

        toggle = callback_event(ADMIN_ID, ADMIN_PROFILES_TOGGLE_COFFEE)
        assert await dispatcher.dispatch(toggle) == STAY
        assert (await services.users.get_by_id(bob)).has_coffee_ban
        assert "Current value: ❌ Banned" in transport.last.text

        await dispatcher.dispatch(callback_event(ADMIN_ID, ADMIN_PROFILES_TOGGLE_COFFEE))
        assert not (await services.users.get_by_id(bob)).has_coffee_ban

        result = await dispatcher.dispatch(
            callback_event(ADMIN_ID, ADMIN_PROFILES_BACK_TO_PROFILE)
        )
        assert result == Advance("edit_profile")
        assert transport.last.text.startswith("<b>Profile Manager → Edit</b>")

    @pytest.mark.anyio
    async def test_stray_message_is_deleted(
        self, dispatcher: Dispatcher, transport: FakeTransport, bob: int
    ) -> None:
        await _select_bob(dispatcher)
        stray = text_event(ADMIN_ID, "oops")

        assert await dispatcher.dispatch(stray) == STAY
        assert transport.deleted[-1] == MessageRef(chat_id=ADMIN_ID, message_id=stray.message_id)


class TestPublish:
    @pytest.mark.anyio
    async def test_incomplete_profile(
        self, dispatcher: Dispatcher, transport: FakeTransport, services: Services
    ) -> None:
        await services.users.create(60, "Solo", "", "solo")
        await _menu(dispatcher, ADMIN_PROFILES_SEARCH_USERNAME)
        await dispatcher.dispatch(text_event(ADMIN_ID, "solo"))

        result = await dispatcher.dispatch(callback_event(ADMIN_ID, ADMIN_PROFILES_PUBLISH))

        assert result == STAY
        text = transport.last.text
        assert "⚠️ The user profile is incomplete." in text
        assert "└ ✅ First Name" in text
        assert "└ ❌ Last Name" in text
        assert "└ ❌ Bio" in text
        assert all(m.ref.chat_id != SUPERGROUP_ID for m in transport.sent)

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        ("data", "without_preview"),
        [(ADMIN_PROFILES_PUBLISH, False), (ADMIN_PROFILES_PUBLISH_NO_PREVIEW, True)],
    )
    async def test_publishes_to_intro_topic(
        self,
        dispatcher: Dispatcher,
        transport: FakeTransport,
        services: Services,
        bob: int,
        data: str,
        without_preview: bool,
    ) -> None:
        await _select_bob(dispatcher)

        assert await dispatcher.dispatch(callback_event(ADMIN_ID, data)) == STAY

        post = next(m for m in transport.sent if m.ref.chat_id == SUPERGROUP_ID)
        assert post.thread_id == 9
        assert post.disable_preview is without_preview
        link = f"https://t.me/c/1234567890/9/{post.ref.message_id}"
        assert f"<a href='{link}'>Intro</a>" in transport.last.text
        profile = await services.profiles.get_or_create(bob)
        assert profile.published_message_id == post.ref.message_id

    @pytest.mark.anyio
    async def test_failed_publish_keeps_profile_unpublished(
        self,
        dispatcher: Dispatcher,
        transport: FakeTransport,
        services: Services,
        bob: int,
    ) -> None:
        await _select_bob(dispatcher)
        transport.fail_send = True

        assert await dispatcher.dispatch(callback_event(ADMIN_ID, ADMIN_PROFILES_PUBLISH)) == STAY

        assert ("send", SUPERGROUP_ID) in transport.calls
        profile = await services.profiles.get_or_create(bob)
        assert profile.published_message_id is None
