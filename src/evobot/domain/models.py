from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime


class EventType(str, enum.Enum):
    CLUB_CALL = "club-call"
    MEETUP = "meetup"
    WORKSHOP = "workshop"
    READING_CLUB = "reading-club"
    CONFERENCE = "conference"

    @property
    def emoji(self) -> str:
        return _TYPE_EMOJI[self]

    @property
    def label(self) -> str:
        return self.value.replace("-", " ")

    @classmethod
    def from_choice(cls, value: str) -> EventType | None:
        """Resolve a menu answer: a 1-based number (`/2` allowed) or a type name."""
        choice = value.strip().removeprefix("/").strip()
        members = list(cls)
        if choice.isdigit():
            index = int(choice)
            if 1 <= index <= len(members):
                return members[index - 1]
            return None
        for member in members:
            if member.value == choice:
                return member
        return None


_TYPE_EMOJI = {
    EventType.CLUB_CALL: "💬",
    EventType.MEETUP: "🎙",
    EventType.WORKSHOP: "⚙️",
    EventType.READING_CLUB: "📚",
    EventType.CONFERENCE: "👥",
}


class EventStatus(str, enum.Enum):
    ACTUAL = "actual"
    FINISHED = "finished"

    @property
    def emoji(self) -> str:
        return "✅" if self is EventStatus.FINISHED else "🔄"


@dataclass(frozen=True, slots=True)
class Event:
    id: int
    name: str
    type: EventType
    status: EventStatus
    started_at: datetime | None
    created_at: datetime


@dataclass(frozen=True, slots=True)
class Topic:
    id: int
    topic: str
    user_nickname: str | None
    event_id: int
    created_at: datetime


@dataclass(frozen=True, slots=True)
class User:
    id: int
    tg_id: int
    firstname: str = ""
    lastname: str = ""
    tg_username: str = ""
    score: int = 0
    has_coffee_ban: bool = False

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.firstname, self.lastname) if part)


@dataclass(frozen=True, slots=True)
class Profile:
    id: int
    user_id: int
    bio: str = ""
    published_message_id: int | None = None


def is_profile_complete(user: User, profile: Profile) -> bool:
    return bool(user.firstname and user.lastname and profile.bio)
