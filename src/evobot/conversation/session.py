from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, TypeVar

import anyio

from .model import SessionDataError

T = TypeVar("T")

PREVIOUS_MESSAGE_ID_KEY = "_previous_message_id"
PREVIOUS_CHAT_ID_KEY = "_previous_chat_id"


@dataclass(slots=True)
class Session:
    user_id: int
    wizard: str | None = None
    state: str | None = None
    data: dict[str, Any] = field(default_factory=dict)


class SessionStore:
    """In-memory per-user conversation state.

    Sessions are created lazily by the first write and dropped by `clear`.
    Nothing survives a process restart.

    All access goes through the async methods below, which serialize on a
    single lock so concurrent dispatches for different users never observe
    a half-written session.
    """

    def __init__(self) -> None:
        self._sessions: dict[int, Session] = {}
        self._lock = anyio.Lock()

    async def get(self, user_id: int, key: str) -> tuple[Any, bool]:
        async with self._lock:
            session = self._sessions.get(user_id)
            if session is None or key not in session.data:
                return None, False
            return session.data[key], True

    async def set(self, user_id: int, key: str, value: Any) -> None:
        async with self._lock:
            self._ensure(user_id).data[key] = value

    async def clear(self, user_id: int) -> None:
        async with self._lock:
            self._sessions.pop(user_id, None)

    async def require(self, user_id: int, key: str, type_: type[T]) -> T:
        """Typed read of a value an earlier step must have stored.

        Raises:
            SessionDataError: The key is absent or holds another type.
        """
        value, found = await self.get(user_id, key)
        if not found or value is None:
            raise SessionDataError(key, type_)
        if not isinstance(value, type_) or (
            type_ is int and isinstance(value, bool)
        ):
            raise SessionDataError(key, type_, value)
        return value

    async def set_previous_message_info(
        self, user_id: int, message_id: int, chat_id: int
    ) -> None:
        async with self._lock:
            data = self._ensure(user_id).data
            data[PREVIOUS_MESSAGE_ID_KEY] = message_id
            data[PREVIOUS_CHAT_ID_KEY] = chat_id

    async def get_previous_message_info(self, user_id: int) -> tuple[int, int]:
        """Return `(message_id, chat_id)`, or zeros when nothing was recorded."""
        async with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                return 0, 0
            message_id = session.data.get(PREVIOUS_MESSAGE_ID_KEY)
            chat_id = session.data.get(PREVIOUS_CHAT_ID_KEY)
        if not isinstance(message_id, int) or not isinstance(chat_id, int):
            return 0, 0
        return message_id, chat_id

    async def has_session(self, user_id: int) -> bool:
        async with self._lock:
            return user_id in self._sessions

    async def position(self, user_id: int) -> tuple[str | None, str | None]:
        async with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                return None, None
            return session.wizard, session.state

    async def set_position(self, user_id: int, wizard: str, state: str) -> None:
        async with self._lock:
            session = self._ensure(user_id)
            session.wizard = wizard
            session.state = state

    async def snapshot(self, user_id: int) -> Session | None:
        async with self._lock:
            session = self._sessions.get(user_id)
            if session is None:
                return None
            return replace(session, data=dict(session.data))

    def _ensure(self, user_id: int) -> Session:
        session = self._sessions.get(user_id)
        if session is None:
            session = Session(user_id=user_id)
            self._sessions[user_id] = session
        return session
