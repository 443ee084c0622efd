from __future__ import annotations

from datetime import datetime
from typing import Protocol

from .models import Event, EventStatus, EventType, Profile, Topic, User


class RepositoryError(RuntimeError):
    pass


class NotFoundError(RepositoryError):
    def __init__(self, entity: str, key: object) -> None:
        super().__init__(f"{entity} {key!r} not found")
        self.entity = entity
        self.key = key


class EventRepository(Protocol):
    async def create(self, name: str, type_: EventType) -> int: ...

    async def get_by_id(self, event_id: int) -> Event: ...

    async def get_last(self, limit: int) -> list[Event]: ...

    async def get_last_actual(self, limit: int) -> list[Event]: ...

    async def update_name(self, event_id: int, name: str) -> None: ...

    async def update_type(self, event_id: int, type_: EventType) -> None: ...

    async def update_started_at(self, event_id: int, started_at: datetime) -> None: ...

    async def update_status(self, event_id: int, status: EventStatus) -> None: ...


class TopicRepository(Protocol):
    async def create(self, topic: str, user_nickname: str | None, event_id: int) -> int: ...

    async def get_by_id(self, topic_id: int) -> Topic: ...

    async def get_by_event(self, event_id: int) -> list[Topic]: ...

    async def delete(self, topic_id: int) -> None: ...


class UserRepository(Protocol):
    async def create(
        self, tg_id: int, firstname: str = "", lastname: str = "", tg_username: str = ""
    ) -> int: ...

    async def get_by_id(self, user_id: int) -> User: ...

    async def get_by_tg_id(self, tg_id: int) -> User | None: ...

    async def get_by_username(self, username: str) -> User | None: ...

    async def search_by_name(self, firstname: str, lastname: str) -> User | None: ...

    async def get_or_create(
        self,
        tg_id: int,
        *,
        firstname: str | None = None,
        lastname: str | None = None,
        tg_username: str | None = None,
    ) -> User: ...

    async def update(self, user_id: int, **fields: str) -> None: ...

    async def set_coffee_ban(self, user_id: int, banned: bool) -> None: ...


class ProfileRepository(Protocol):
    async def get_by_id(self, profile_id: int) -> Profile: ...

    async def get_or_create(self, user_id: int) -> Profile: ...

    async def get_or_create_with_bio(self, user_id: int, bio: str) -> Profile: ...

    async def update_bio(self, profile_id: int, bio: str) -> None: ...

    async def update_published_message_id(
        self, profile_id: int, message_id: int
    ) -> None: ...
