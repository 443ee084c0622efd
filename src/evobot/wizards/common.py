from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime

import anyio

from ..conversation import HandlerContext, SelectionLost
from ..domain.models import Event
from ..domain.repositories import (
    EventRepository,
    NotFoundError,
    ProfileRepository,
    TopicRepository,
    UserRepository,
)
from ..permissions import PermissionGate, check_access
from ..settings import BotSettings
from ..transport import Transport
from .publishing import ProfilePublisher

DATE_INPUT_FORMAT = "%d.%m.%Y %H:%M"

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class Services:
    """Collaborators shared by every wizard."""

    settings: BotSettings
    gate: PermissionGate
    transport: Transport
    events: EventRepository
    topics: TopicRepository
    users: UserRepository
    profiles: ProfileRepository
    publisher: ProfilePublisher
    sleep: Sleep = field(default=anyio.sleep)


def parse_id(text: str) -> int | None:
    """Numeric id from `42` or `/42`; None for anything else."""
    value = text.strip().replace("/", "", 1).strip()
    if not value.isdigit():
        return None
    return int(value)


def parse_started_at(text: str) -> datetime | None:
    try:
        parsed = datetime.strptime(text.strip(), DATE_INPUT_FORMAT)
    except ValueError:
        return None
    return parsed.replace(tzinfo=UTC)


async def guard(ctx: HandlerContext, services: Services, command: str) -> bool:
    return await check_access(ctx, services.gate, command)


async def find_event(events: EventRepository, event_id: int) -> Event | None:
    try:
        return await events.get_by_id(event_id)
    except NotFoundError:
        return None


@contextmanager
def selected(entity: str, record_id: int) -> Iterator[None]:
    """Report a record chosen earlier in the dialog that has since disappeared.

    The dispatcher replies with the message and ends the dialog.
    """
    try:
        yield
    except NotFoundError:
        raise SelectionLost(f"Error retrieving {entity} with ID {record_id}.") from None


async def selected_event(events: EventRepository, event_id: int) -> Event:
    with selected("event", event_id):
        return await events.get_by_id(event_id)


def sender_nickname(ctx: HandlerContext) -> str | None:
    username = ctx.event.sender.username
    return username or None


async def read_event_choice(ctx: HandlerContext, events: EventRepository) -> Event | None:
    """Resolve the event id the user sent, replying with the problem if any."""
    event_id = parse_id(ctx.text)
    if event_id is None:
        await ctx.reply("Invalid ID. Please enter a numeric ID or use the cancel button.")
        return None
    event = await find_event(events, event_id)
    if event is None:
        await ctx.reply(
            f"Event with ID {event_id} not found. "
            "Please enter an existing ID or use the cancel button."
        )
    return event
