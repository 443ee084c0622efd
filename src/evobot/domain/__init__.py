from __future__ import annotations

from .models import (
    Event,
    EventStatus,
    EventType,
    Profile,
    Topic,
    User,
    is_profile_complete,
)
from .repositories import (
    EventRepository,
    NotFoundError,
    ProfileRepository,
    RepositoryError,
    TopicRepository,
    UserRepository,
)

__all__ = [
    "Event",
    "EventRepository",
    "EventStatus",
    "EventType",
    "NotFoundError",
    "Profile",
    "ProfileRepository",
    "RepositoryError",
    "Topic",
    "TopicRepository",
    "User",
    "UserRepository",
    "is_profile_complete",
]
