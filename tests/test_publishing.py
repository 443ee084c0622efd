import pytest

from evobot.domain.models import Profile, User
from evobot.wizards import ProfilePublisher, Services
from tests.conftest import SUPERGROUP_ID
from tests.fakes import FakeTransport


@pytest.fixture
def publisher(services: Services) -> ProfilePublisher:
    return services.publisher


async def _complete_profile(services: Services) -> tuple[User, Profile]:
    user_id = await services.users.create(70, "Ann", "Lee", "ann")
    profile = await services.profiles.get_or_create_with_bio(user_id, "Hello")
    return await services.users.get_by_id(user_id), profile


@pytest.mark.anyio
async def test_incomplete_profile_is_not_published(
    publisher: ProfilePublisher, transport: FakeTransport
) -> None:
    user = User(id=1, tg_id=70, firstname="Ann")

    assert await publisher.publish(user, Profile(id=1, user_id=1, bio="Hi")) is None
    assert transport.calls == []


@pytest.mark.anyio
async def test_failed_edit_falls_back_to_new_post(
    publisher: ProfilePublisher, transport: FakeTransport, services: Services
) -> None:
    user, profile = await _complete_profile(services)
    await services.profiles.update_published_message_id(profile.id, 123)
    profile = await services.profiles.get_by_id(profile.id)
    transport.fail_edit = True

    message_id = await publisher.publish(user, profile, without_preview=False)

    assert message_id == transport.last.ref.message_id
    assert transport.last.ref.chat_id == SUPERGROUP_ID
    assert transport.last.disable_preview is False
    stored = await services.profiles.get_by_id(profile.id)
    assert stored.published_message_id == message_id


@pytest.mark.anyio
async def test_send_failure_returns_none(
    publisher: ProfilePublisher, transport: FakeTransport, services: Services
) -> None:
    user, profile = await _complete_profile(services)
    transport.fail_send = True

    assert await publisher.publish(user, profile) is None
    assert (await services.profiles.get_by_id(profile.id)).published_message_id is None


def test_published_note(publisher: ProfilePublisher) -> None:
    assert publisher.published_note(None) == ""
    assert "https://t.me/c/1234567890/9/5" in publisher.published_note(5)
