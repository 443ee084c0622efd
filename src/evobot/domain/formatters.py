"""HTML renderings of events, topics, profiles and the help text."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from html import escape

from ..commands import (
    EVENT_EDIT,
    EVENT_SETUP,
    EVENT_START,
    PROFILES_MANAGER,
    SHOW_TOPICS,
    TOPIC_ADD,
    TOPICS,
)
from .models import Event, Profile, Topic, User

NOT_SET = "not set"
NOT_SPECIFIED = "not specified"


def format_started_at(event: Event, *, with_zone: bool = True) -> str:
    if event.started_at is None:
        return NOT_SET
    started = event.started_at.astimezone(UTC)
    text = started.strftime("%d.%m.%Y at %H:%M")
    return f"{text} UTC" if with_zone else text


def format_time_until(started_at: datetime, now: datetime | None = None) -> str | None:
    """Relative hint for events within the next week, e.g. `in 3h 20min`."""
    now = now or datetime.now(UTC)
    delta = started_at - now
    if delta.total_seconds() <= 0:
        return None
    total_minutes = int(delta.total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)
    if delta.total_seconds() <= 24 * 3600:
        if hours > 0:
            return f"in {hours}h {minutes}min"
        return f"in {minutes}min"
    if delta.total_seconds() <= 7 * 24 * 3600:
        days, hours = divmod(hours, 24)
        return f"in {days}d {hours}h"
    return None


def format_event_list_for_admin(
    events: Sequence[Event], title: str, action: str
) -> str:
    lines = [f"<b>{escape(title)}</b>"]
    for event in events:
        lines.append("")
        lines.append(f"{event.type.emoji} ID /{event.id}: <b>{escape(event.name)}</b>")
        lines.append(
            f"└ {event.status.emoji} <i>when</i>: <b>{format_started_at(event)}</b>"
        )
    lines.append("")
    lines.append(f"Please send the event ID to {action}.")
    return "\n".join(lines)


def format_event_list_for_topics(events: Sequence[Event], title: str) -> str:
    lines = [f"{escape(title)}:"]
    for event in events:
        lines.append("")
        lines.append(
            f"{event.type.emoji} <i>{event.type.label}</i>: <b>{escape(event.name)}</b>"
        )
        lines.append(
            f"└   <i>ID</i> /{event.id}, <i>when</i>: "
            f"{format_started_at(event, with_zone=False)}"
        )
    return "\n".join(lines)


def format_event_list_for_events(
    events: Sequence[Event], title: str, now: datetime | None = None
) -> str:
    lines = [f"{escape(title)}:"]
    for event in events:
        when = format_started_at(event)
        if event.started_at is not None:
            hint = format_time_until(event.started_at, now)
            if hint is not None:
                when += f" <i>({hint})</i>"
        lines.append("")
        lines.append(
            f"{event.type.emoji} <i>{event.type.label}</i>: <b>{escape(event.name)}</b>"
        )
        lines.append(f"└   <i>when</i>: {when}")
    return "\n".join(lines)


def _event_heading(event: Event, *, emphasis: str) -> str:
    name = escape(event.name)
    if emphasis == "admin":
        return f"{event.type.emoji} <i>Event ({event.type.label}):</i> {name}"
    return f"{event.type.emoji} Event ({event.type.label}): <b>{name}</b>"


def format_topic_list_for_users(topics: Sequence[Topic], event: Event) -> str:
    parts = ["", _event_heading(event, emphasis="user")]
    if not topics:
        parts.append("")
        parts.append(
            "🔍 No topics or questions for this event yet.\n"
            f" Use /{TOPIC_ADD} to add one."
        )
        return "\n".join(parts)
    parts.append(f"📋 Topics and questions found: <b>{len(topics)}</b>")
    parts.append("")
    entries = [
        f"<i>{topic.created_at.strftime('%d.%m.%Y')}</i> "
        f"<blockquote expandable>{escape(topic.topic)}</blockquote>"
        for topic in topics
    ]
    parts.append("\n\n".join(entries))
    parts.append("")
    parts.append(
        f"Use /{TOPIC_ADD} to add new topics and questions, "
        f"or /{TOPICS} to view topics for another event."
    )
    return "\n".join(parts)


def format_topic_list_for_admin(topics: Sequence[Topic], event: Event) -> str:
    parts = ["", _event_heading(event, emphasis="admin"), ""]
    if not topics:
        parts.append("No topics or questions for this event yet.")
        return "\n".join(parts)
    for topic in topics:
        nickname = f"@{escape(topic.user_nickname)}" if topic.user_nickname else NOT_SPECIFIED
        parts.append(
            f"ID:<code>{topic.id}</code> / "
            f"<i>{topic.created_at.strftime('%d.%m.%Y')}</i> / {nickname}"
        )
        parts.append(f"<blockquote expandable>{escape(topic.topic)}</blockquote>")
    return "\n".join(parts)


def _profile_heading(user: User) -> str:
    name = escape(user.full_name)
    heading = f'🖐 <b><a href="tg://user?id={user.tg_id}">{name}</a></b>'
    if user.tg_username:
        heading += f" (@{escape(user.tg_username)})"
    return heading


def format_profile_view(
    user: User, profile: Profile | None, *, show_score: bool = False
) -> str:
    if profile is None:
        return (
            "Your profile was not found.\n\n"
            'Create a profile using the "Edit my profile" button.'
        )
    text = _profile_heading(user) + "\n"
    if profile.bio:
        text += f"\n<blockquote>About</blockquote>\n{escape(profile.bio)}\n"
    if show_score and user.score > 100:
        text += f"\n<b>{user.score}</b> <i>(what's this? hmm...)</i>\n"
    return text


def format_public_profile(user: User, profile: Profile) -> str:
    return format_profile_view(user, profile, show_score=False)


def format_profile_manager_view(
    user: User, profile: Profile, *, profile_link: str | None = None
) -> str:
    text = _profile_heading(user) + "\n"
    if profile.bio:
        text += (
            "\n<i>About:</i>"
            f"<blockquote expandable>{escape(profile.bio)}</blockquote>"
        )
    text += f"\n\n<i>Score:</i> <b>{user.score}</b>"
    coffee = "❌ Banned" if user.has_coffee_ban else "✅ Allowed"
    text += f"\n<i>Coffee meetings:</i> {coffee}"
    text += f"\n<i>Telegram ID:</i> <code>{user.tg_id}</code>"
    if profile_link is not None:
        text += f"\n<i>Profile link:</i> {profile_link}"
    return text


def format_field_status(value: str) -> str:
    return "✅" if value.strip() else "❌"


def format_help_message(*, is_admin: bool) -> str:
    text = (
        "<b>📋 Bot Features</b>\n\n"
        "<b>🏠 Basic Commands</b>\n"
        "└ /start - Welcome message\n"
        "└ /help - Show this command list\n"
        "└ /cancel - Force-cancel any active dialog\n\n"
        "<b>👤 Profile</b>\n"
        "└ /profile - Manage your profile, search members, "
        "publish your info in the Intro channel\n\n"
        "<b>📅 Events</b>\n"
        "└ /events - View upcoming events\n"
        f"└ /{TOPICS} - View topics and questions for upcoming events\n"
        f"└ /{TOPIC_ADD} - Suggest a topic or question for an event"
    )
    if is_admin:
        text += (
            "\n\n<b>🔐 Admin Commands</b>\n"
            f"└ /{EVENT_START} - Start an event\n"
            f"└ /{EVENT_SETUP} - Create a new event\n"
            f"└ /{EVENT_EDIT} - Edit an event\n"
            f"└ /{SHOW_TOPICS} - View topics with <b>delete option</b>\n"
            f"└ /{PROFILES_MANAGER} - Manage member profiles"
        )
    return text
