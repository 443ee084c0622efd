from __future__ import annotations

from html import escape

from ..commands import EVENT_EDIT, HELP
from ..conversation import (
    END,
    STAY,
    Advance,
    Cleanup,
    HandlerContext,
    Route,
    Transition,
    Wizard,
    any_message,
    state,
    text,
)
from ..domain.formatters import format_event_list_for_admin
from ..domain.models import EventType
from ..keyboards import cancel_keyboard
from ..logging import get_logger
from .common import (
    Services,
    guard,
    parse_started_at,
    read_event_choice,
    selected,
    selected_event,
)

logger = get_logger(__name__)

SELECT_EVENT = "select_event"
ASK_EDIT_TYPE = "ask_edit_type"
EDIT_NAME = "edit_name"
EDIT_STARTED_AT = "edit_started_at"
EDIT_TYPE = "edit_type"

KEY_EVENT_ID = "selectedEventId"

CANCEL_CALLBACK = "event_edit_cancel"

FIELD_MENU = (
    "What do you want to edit?\n/1. Name\n/2. Start date\n/3. Type\n\nEnter a number:"
)
FIELD_STATES = {"1": EDIT_NAME, "2": EDIT_STARTED_AT, "3": EDIT_TYPE}

FOLLOW_UP = (
    f"\n\nTo continue editing the event, use the /{EVENT_EDIT} command."
    f"\nTo view all commands, use /{HELP}"
)


class EventEditWizard:
    def __init__(self, services: Services) -> None:
        self._services = services

    def definition(self) -> Wizard:
        return Wizard(
            name="event_edit",
            entry_command=EVENT_EDIT,
            entry=self.start,
            states=(
                state(SELECT_EVENT, Route(text(), self.handle_select_event)),
                state(ASK_EDIT_TYPE, Route(text(), self.handle_edit_type)),
                state(EDIT_NAME, Route(any_message(), self.handle_name)),
                state(EDIT_STARTED_AT, Route(text(), self.handle_started_at)),
                state(EDIT_TYPE, Route(any_message(), self.handle_type)),
            ),
            cancel_text="Event editing operation canceled.",
            cancel_callback=CANCEL_CALLBACK,
            cleanup=Cleanup.STRIP,
        )

    async def start(self, ctx: HandlerContext) -> Transition:
        if not await guard(ctx, self._services, EVENT_EDIT):
            return END
        events = await self._services.events.get_last(
            self._services.settings.event_list_limit
        )
        if not events:
            await ctx.reply("No events available for editing.")
            return END
        await ctx.prompt(
            format_event_list_for_admin(
                events, f"Last {len(events)} events:", "that you want to edit"
            ),
            cancel_keyboard(CANCEL_CALLBACK),
        )
        return Advance(SELECT_EVENT)

    async def handle_select_event(self, ctx: HandlerContext) -> Transition:
        event = await read_event_choice(ctx, self._services.events)
        if event is None:
            return STAY
        await ctx.set(KEY_EVENT_ID, event.id)
        await ctx.prompt(FIELD_MENU, cancel_keyboard(CANCEL_CALLBACK))
        return Advance(ASK_EDIT_TYPE)

    async def handle_edit_type(self, ctx: HandlerContext) -> Transition:
        choice = ctx.text.replace("/", "", 1).strip()
        target = FIELD_STATES.get(choice)
        if target is None:
            await ctx.reply(
                "Invalid selection. Please enter a number from 1 to 3, "
                "or use the cancel button"
            )
            return STAY
        event_id = await ctx.require(KEY_EVENT_ID, int)
        event = await selected_event(self._services.events, event_id)
        if target == EDIT_NAME:
            message = f"Current name: <b>{escape(event.name)}</b>\n\nEnter a new name:"
        elif target == EDIT_STARTED_AT:
            current = (
                event.started_at.strftime("%d.%m.%Y %H:%M")
                if event.started_at is not None
                else "not set"
            )
            message = (
                f"Current start date: <code>{current}</code> (UTC)\n"
                "Enter a new date and time in DD.MM.YYYY HH:MM format (UTC):"
            )
        else:
            options = "".join(
                f"/{index}. {event_type.emoji} {event_type.value}\n"
                for index, event_type in enumerate(EventType, start=1)
            )
            message = (
                f"Current type: <b>{event.type.value}</b>\n\n"
                f"Available types:\n{options}\nEnter a new type or its number:"
            )
        await ctx.prompt(message, cancel_keyboard(CANCEL_CALLBACK))
        return Advance(target)

    async def handle_name(self, ctx: HandlerContext) -> Transition:
        name = ctx.text
        if not name:
            await ctx.reply(
                "Name cannot be empty. Please enter a new name or use the cancel button:"
            )
            return STAY
        event_id = await ctx.require(KEY_EVENT_ID, int)
        with selected("event", event_id):
            await self._services.events.update_name(event_id, name)
        logger.info("event.renamed", event_id=event_id)
        await ctx.reply(
            f"Event name with ID <code>{event_id}</code> successfully updated to "
            f'<b>"{escape(name)}"</b>' + FOLLOW_UP
        )
        return END

    async def handle_started_at(self, ctx: HandlerContext) -> Transition:
        started_at = parse_started_at(ctx.text)
        if started_at is None:
            await ctx.reply(
                "Invalid date format. Please enter date and time in "
                "<b>DD.MM.YYYY HH:MM</b> format (UTC) or use the cancel button."
            )
            return STAY
        event_id = await ctx.require(KEY_EVENT_ID, int)
        with selected("event", event_id):
            await self._services.events.update_started_at(event_id, started_at)
        logger.info("event.rescheduled", event_id=event_id)
        await ctx.reply(
            f"Event start date with ID {event_id} successfully updated to "
            f"<b>{started_at.strftime('%d.%m.%Y %H:%M')} UTC</b>" + FOLLOW_UP
        )
        return END

    async def handle_type(self, ctx: HandlerContext) -> Transition:
        choice = ctx.text.replace("/", "", 1).strip()
        if not choice:
            await ctx.reply(
                "Type cannot be empty. Please enter a new type or its number, "
                "or use the cancel button:"
            )
            return STAY
        event_type = EventType.from_choice(choice)
        if event_type is None:
            allowed = ", ".join(member.value for member in EventType)
            await ctx.reply(f"Invalid event type. Allowed types: {allowed}")
            return STAY
        event_id = await ctx.require(KEY_EVENT_ID, int)
        with selected("event", event_id):
            await self._services.events.update_type(event_id, event_type)
        logger.info("event.retyped", event_id=event_id, type=event_type.value)
        await ctx.reply(
            f"Event type with ID {event_id} successfully updated to "
            f"{event_type.emoji} <b>'{event_type.value}'</b>" + FOLLOW_UP
        )
        return END
