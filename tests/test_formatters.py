from datetime import UTC, datetime, timedelta

import pytest

from evobot.domain.formatters import (
    format_event_list_for_admin,
    format_event_list_for_events,
    format_event_list_for_topics,
    format_field_status,
    format_help_message,
    format_profile_manager_view,
    format_profile_view,
    format_started_at,
    format_time_until,
    format_topic_list_for_admin,
    format_topic_list_for_users,
)
from evobot.domain.models import (
    Event,
    EventStatus,
    EventType,
    Profile,
    Topic,
    User,
    is_profile_complete,
)

NOW = datetime(2030, 6, 1, 12, 0, tzinfo=UTC)


def _event(**kwargs) -> Event:
    values = {
        "id": 3,
        "name": "Talk & Tea",
        "type": EventType.CLUB_CALL,
        "status": EventStatus.ACTUAL,
        "started_at": datetime(2030, 6, 2, 18, 30, tzinfo=UTC),
        "created_at": NOW,
    }
    values.update(kwargs)
    return Event(**values)


def _topic(topic_id: int, text: str, nickname: str | None = None) -> Topic:
    return Topic(
        id=topic_id, topic=text, user_nickname=nickname, event_id=3, created_at=NOW
    )


class TestTimes:
    def test_started_at(self) -> None:
        assert format_started_at(_event()) == "02.06.2030 at 18:30 UTC"
        assert format_started_at(_event(), with_zone=False) == "02.06.2030 at 18:30"
        assert format_started_at(_event(started_at=None)) == "not set"

    @pytest.mark.parametrize(
        ("delta", "expected"),
        [
            (timedelta(minutes=45), "in 45min"),
            (timedelta(hours=3, minutes=20), "in 3h 20min"),
            (timedelta(hours=24), "in 24h 0min"),
            (timedelta(days=2, hours=5), "in 2d 5h"),
            (timedelta(days=8), None),
            (timedelta(minutes=-5), None),
        ],
    )
    def test_time_until(self, delta: timedelta, expected: str | None) -> None:
        assert format_time_until(NOW + delta, NOW) == expected


class TestEventLists:
    def test_admin_list(self) -> None:
        text = format_event_list_for_admin(
            [_event(), _event(id=4, status=EventStatus.FINISHED, started_at=None)],
            "Last 2 events:",
            "edit",
        )

        assert text.splitlines()[0] == "<b>Last 2 events:</b>"
        assert "💬 ID /3: <b>Talk &amp; Tea</b>" in text
        assert "└ 🔄 <i>when</i>: <b>02.06.2030 at 18:30 UTC</b>" in text
        assert "└ ✅ <i>when</i>: <b>not set</b>" in text
        assert text.endswith("Please send the event ID to edit.")

    def test_topics_list(self) -> None:
        text = format_event_list_for_topics([_event()], "Pick one")

        assert text.startswith("Pick one:")
        assert "<i>club call</i>: <b>Talk &amp; Tea</b>" in text
        assert "<i>ID</i> /3, <i>when</i>: 02.06.2030 at 18:30" in text
        assert "UTC" not in text

    def test_events_list_adds_relative_hint(self) -> None:
        text = format_event_list_for_events([_event()], "📋 Upcoming Events", NOW)

        assert text.startswith("📋 Upcoming Events:")
        assert "<i>(in 1d 6h)</i>" in text


class TestTopicLists:
    def test_users_view_hides_authors(self) -> None:
        text = format_topic_list_for_users([_topic(1, "<why?>", "alice")], _event())

        assert "💬 Event (club call): <b>Talk &amp; Tea</b>" in text
        assert "Topics and questions found: <b>1</b>" in text
        assert "<blockquote expandable>&lt;why?&gt;</blockquote>" in text
        assert "alice" not in text

    def test_users_view_empty(self) -> None:
        text = format_topic_list_for_users([], _event())

        assert "No topics or questions for this event yet." in text
        assert "/topicAdd" in text

    def test_admin_view_shows_ids_and_authors(self) -> None:
        text = format_topic_list_for_admin(
            [_topic(1, "First", "alice"), _topic(2, "Second")], _event()
        )

        assert "ID:<code>1</code> / <i>01.06.2030</i> / @alice" in text
        assert "ID:<code>2</code> / <i>01.06.2030</i> / not specified" in text


class TestProfiles:
    user = User(
        id=1, tg_id=42, firstname="Ann", lastname="Lee", tg_username="ann", score=150
    )

    def test_profile_view(self) -> None:
        text = format_profile_view(self.user, Profile(id=1, user_id=1, bio="Hi <3"))

        assert text.startswith('🖐 <b><a href="tg://user?id=42">Ann Lee</a></b> (@ann)')
        assert "Hi &lt;3" in text
        assert "150" not in text

    def test_profile_view_with_score(self) -> None:
        text = format_profile_view(self.user, Profile(id=1, user_id=1), show_score=True)

        assert "<b>150</b>" in text

    def test_missing_profile(self) -> None:
        assert format_profile_view(self.user, None).startswith("Your profile was not found.")

    def test_manager_view(self) -> None:
        banned = User(id=1, tg_id=42, firstname="Ann", has_coffee_ban=True)
        text = format_profile_manager_view(
            banned, Profile(id=1, user_id=1), profile_link="https://t.me/c/1/2/3"
        )

        assert "<i>Coffee meetings:</i> ❌ Banned" in text
        assert "<i>Telegram ID:</i> <code>42</code>" in text
        assert text.endswith("<i>Profile link:</i> https://t.me/c/1/2/3")

    def test_field_status(self) -> None:
        assert format_field_status("x") == "✅"
        assert format_field_status("  ") == "❌"

    def test_profile_completeness(self) -> None:
        assert is_profile_complete(self.user, Profile(id=1, user_id=1, bio="Bio"))
        assert not is_profile_complete(self.user, Profile(id=1, user_id=1))


def test_help_message_admin_section() -> None:
    assert "Admin Commands" not in format_help_message(is_admin=False)
    admin = format_help_message(is_admin=True)
    assert "/eventSetup" in admin
    assert "/showTopics" in admin
