import pytest

from evobot.conversation import END, STAY, Advance, Dispatcher
from evobot.keyboards import (
    PROFILE_BACK_TO_MAIN,
    PROFILE_CANCEL,
    PROFILE_EDIT_BIO,
    PROFILE_EDIT_FIRSTNAME,
    PROFILE_EDIT_LASTNAME,
    PROFILE_EDIT_MENU,
    PROFILE_SEARCH,
)
from evobot.transport import MessageRef
from evobot.wizards import Services
from evobot.wizards.profile import utf16_length
from tests.conftest import MEMBER_ID, OUTSIDER_ID, SUPERGROUP_ID
from tests.fakes import FakeTransport, callback_event, text_event


def test_utf16_length_counts_surrogate_pairs() -> None:
    assert utf16_length("abc") == 3
    assert utf16_length("😀") == 2
    assert utf16_length("") == 0


async def _open_field(dispatcher: Dispatcher, field_callback: str) -> None:
    await dispatcher.dispatch(text_event(MEMBER_ID, "/profile"))
    await dispatcher.dispatch(callback_event(MEMBER_ID, PROFILE_EDIT_MENU))
    await dispatcher.dispatch(callback_event(MEMBER_ID, field_callback))


class TestMenu:
    @pytest.mark.anyio
    async def test_main_menu_shows_field_statuses(
        self, dispatcher: Dispatcher, transport: FakeTransport, services: Services
    ) -> None:
        result = await dispatcher.dispatch(text_event(MEMBER_ID, "/profile"))

        assert result == Advance("view_options")
        text = transport.last.text
        assert text.startswith("<b>Profile Menu</b>")
        assert "└ ✅ First Name <i>(User2)</i>" in text
        assert "└ ❌ Last Name" in text
        assert "└ ❌ Bio" in text
        assert "https://t.me/c/1234567890/9" in text
        assert transport.last.callbacks() == [PROFILE_EDIT_MENU, PROFILE_SEARCH, PROFILE_CANCEL]
        assert await services.users.get_by_tg_id(MEMBER_ID) is not None

    @pytest.mark.anyio
    async def test_navigation_deletes_previous_prompt(
        self, dispatcher: Dispatcher, transport: FakeTransport
    ) -> None:
        await dispatcher.dispatch(text_event(MEMBER_ID, "/profile"))
        menu = transport.last.ref

        result = await dispatcher.dispatch(callback_event(MEMBER_ID, PROFILE_EDIT_MENU))

        assert result == Advance("view_options")
        assert transport.deleted == [menu]
        assert transport.last.text.startswith("<b>Profile Menu → Edit</b>")
        assert transport.answered

        await dispatcher.dispatch(callback_event(MEMBER_ID, PROFILE_BACK_TO_MAIN))
        assert transport.last.text.startswith("<b>Profile Menu</b>")

    @pytest.mark.anyio
    async def test_stray_text_is_deleted(
        self, dispatcher: Dispatcher, transport: FakeTransport
    ) -> None:
        await dispatcher.dispatch(text_event(MEMBER_ID, "/profile"))
        stray = text_event(MEMBER_ID, "hello?")

        assert await dispatcher.dispatch(stray) == STAY
        assert MessageRef(chat_id=MEMBER_ID, message_id=stray.message_id) in transport.deleted
        assert await dispatcher.store.position(MEMBER_ID) == ("profile", "view_options")

    @pytest.mark.anyio
    async def test_cancel_button_ends_session(
        self, dispatcher: Dispatcher, transport: FakeTransport
    ) -> None:
        await dispatcher.dispatch(text_event(MEMBER_ID, "/profile"))
        menu = transport.last.ref

        assert await dispatcher.dispatch(callback_event(MEMBER_ID, PROFILE_CANCEL)) == END
        assert menu in transport.deleted
        assert transport.last.text == "Profile session ended."
        assert not await dispatcher.store.has_session(MEMBER_ID)

    @pytest.mark.anyio
    async def test_outsiders_are_refused(
        self, dispatcher: Dispatcher, transport: FakeTransport
    ) -> None:
        assert await dispatcher.dispatch(text_event(OUTSIDER_ID, "/profile")) == END
        assert transport.texts == ["This command is only available to group members."]


class TestEditing:
    @pytest.mark.anyio
    async def test_bio_over_limit_stays(
        self, dispatcher: Dispatcher, transport: FakeTransport, services: Services
    ) -> None:
        await _open_field(dispatcher, PROFILE_EDIT_BIO)
        assert await dispatcher.store.position(MEMBER_ID) == ("profile", "await_bio")

        limit = services.settings.bio_length_limit
        bio = "😀" * (limit // 2 + 1)
        assert await dispatcher.dispatch(text_event(MEMBER_ID, bio)) == STAY

        assert f"Current length: {utf16_length(bio)} characters" in transport.last.text
        assert f"Please shorten it to {limit} characters" in transport.last.text
        user = await services.users.get_by_tg_id(MEMBER_ID)
        assert (await services.profiles.get_or_create(user.id)).bio == ""

    @pytest.mark.anyio
    async def test_incomplete_profile_is_saved_but_not_published(
        self, dispatcher: Dispatcher, transport: FakeTransport, services: Services
    ) -> None:
        await _open_field(dispatcher, PROFILE_EDIT_BIO)
        incoming = text_event(MEMBER_ID, "I build <bots>")

        assert await dispatcher.dispatch(incoming) == Advance("view_options")

        assert transport.last.text == "<b>Profile Menu → Edit → Bio</b>\n\n✅ Bio saved!"
        assert MessageRef(chat_id=MEMBER_ID, message_id=incoming.message_id) in transport.deleted
        user = await services.users.get_by_tg_id(MEMBER_ID)
        assert (await services.profiles.get_or_create(user.id)).bio == "I build <bots>"
        assert all(m.ref.chat_id != SUPERGROUP_ID for m in transport.sent)

    @pytest.mark.anyio
    async def test_duplicate_message_date_is_ignored(
        self, dispatcher: Dispatcher, transport: FakeTransport, services: Services
    ) -> None:
        await _open_field(dispatcher, PROFILE_EDIT_BIO)
        await dispatcher.dispatch(text_event(MEMBER_ID, "part one", date=1_700_000_000))
        await dispatcher.dispatch(callback_event(MEMBER_ID, PROFILE_EDIT_BIO))

        result = await dispatcher.dispatch(
            text_event(MEMBER_ID, "part two", date=1_700_000_000)
        )

        assert result == STAY
        user = await services.users.get_by_tg_id(MEMBER_ID)
        assert (await services.profiles.get_or_create(user.id)).bio == "part one"

    @pytest.mark.anyio
    async def test_name_over_limit_stays(
        self, dispatcher: Dispatcher, transport: FakeTransport, services: Services
    ) -> None:
        await _open_field(dispatcher, PROFILE_EDIT_FIRSTNAME)
        limit = services.settings.name_length_limit

        assert await dispatcher.dispatch(text_event(MEMBER_ID, "x" * (limit + 1))) == STAY
        assert "The first name is too long" in transport.last.text
        assert (await services.users.get_by_tg_id(MEMBER_ID)).firstname == "User2"

    @pytest.mark.anyio
    async def test_completing_profile_publishes_then_edits(
        self, dispatcher: Dispatcher, transport: FakeTransport, services: Services
    ) -> None:
        await _open_field(dispatcher, PROFILE_EDIT_BIO)
        await dispatcher.dispatch(text_event(MEMBER_ID, "Hello there"))
        await dispatcher.dispatch(callback_event(MEMBER_ID, PROFILE_EDIT_LASTNAME))

        assert await dispatcher.dispatch(text_event(MEMBER_ID, "Doe")) == Advance(
            "view_options"
        )

        post = next(m for m in transport.sent if m.ref.chat_id == SUPERGROUP_ID)
        assert post.thread_id == 9
        assert post.disable_preview
        assert "User2 Doe" in post.text
        assert "Hello there" in post.text
        assert "✅ Last name saved!" in transport.last.text
        assert "published</a> in the \"Intro\" channel." in transport.last.text
        user = await services.users.get_by_tg_id(MEMBER_ID)
        profile = await services.profiles.get_or_create(user.id)
        assert profile.published_message_id == post.ref.message_id

        await dispatcher.dispatch(callback_event(MEMBER_ID, PROFILE_EDIT_FIRSTNAME))
        assert "Current value: <code>User2</code>" in transport.last.text
        await dispatcher.dispatch(text_event(MEMBER_ID, "Jane"))

        assert [ref for ref, _, _ in transport.edited] == [post.ref]
        assert "Jane Doe" in transport.edited[-1][1]
        assert len([m for m in transport.sent if m.ref.chat_id == SUPERGROUP_ID]) == 1

    @pytest.mark.anyio
    async def test_back_from_field_returns_to_edit_menu(
        self, dispatcher: Dispatcher, transport: FakeTransport
    ) -> None:
        await _open_field(dispatcher, PROFILE_EDIT_LASTNAME)

        result = await dispatcher.dispatch(callback_event(MEMBER_ID, PROFILE_EDIT_MENU))

        assert result == Advance("view_options")
        assert transport.last.text.startswith("<b>Profile Menu → Edit</b>")


class TestSearch:
    @pytest.fixture
    async def bob(self, services: Services) -> int:
        user_id = await services.users.create(50, "Bob", "Builder", "bob")
        profile = await services.profiles.get_or_create(user_id)
        await services.profiles.update_bio(profile.id, "Builds things")
        return user_id

    @pytest.mark.anyio
    @pytest.mark.parametrize("query", ["@bob", "BOB", "bob builder"])
    async def test_finds_member(
        self, dispatcher: Dispatcher, transport: FakeTransport, bob: int, query: str
    ) -> None:
        await dispatcher.dispatch(text_event(MEMBER_ID, "/profile"))
        assert await dispatcher.dispatch(callback_event(MEMBER_ID, PROFILE_SEARCH)) == Advance(
            "await_search"
        )

        assert await dispatcher.dispatch(text_event(MEMBER_ID, query)) == Advance(
            "view_options"
        )
        text = transport.last.text
        assert '<a href="tg://user?id=50">Bob Builder</a>' in text
        assert "(@bob)" in text
        assert "Builds things" in text

    @pytest.mark.anyio
    async def test_not_found_stays(
        self, dispatcher: Dispatcher, transport: FakeTransport, bob: int
    ) -> None:
        await dispatcher.dispatch(text_event(MEMBER_ID, "/profile"))
        await dispatcher.dispatch(callback_event(MEMBER_ID, PROFILE_SEARCH))

        assert await dispatcher.dispatch(text_event(MEMBER_ID, "@ghost")) == STAY
        assert "User <b>ghost</b> not found." in transport.last.text
        assert await dispatcher.store.position(MEMBER_ID) == ("profile", "await_search")
