from __future__ import annotations

from html import escape

from ..commands import EVENT_EDIT, EVENT_SETUP, HELP
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
from ..domain.models import EventType
from ..keyboards import cancel_keyboard
from ..logging import get_logger
from .common import Services, guard, parse_started_at, selected

logger = get_logger(__name__)

ASK_NAME = "ask_name"
ASK_TYPE = "ask_type"
ASK_STARTED_AT = "ask_started_at"

KEY_EVENT_NAME = "eventName"
KEY_EVENT_ID = "eventId"

CANCEL_CALLBACK = "event_setup_cancel"


def type_menu() -> str:
    options = "\n".join(
        f"/{index}. {event_type.value}" for index, event_type in enumerate(EventType, start=1)
    )
    return f"Select event type (enter a number):\n{options}"


class EventSetupWizard:
    def __init__(self, services: Services) -> None:
        self._services = services

    def definition(self) -> Wizard:
        return Wizard(
            name="event_setup",
            entry_command=EVENT_SETUP,
            entry=self.start,
            states=(
                state(ASK_NAME, Route(any_message(), self.handle_name)),
                state(ASK_TYPE, Route(text(), self.handle_type)),
                state(ASK_STARTED_AT, Route(text(), self.handle_started_at)),
            ),
            cancel_text="Event creation operation canceled.",
            cancel_callback=CANCEL_CALLBACK,
            cleanup=Cleanup.STRIP,
        )

    async def start(self, ctx: HandlerContext) -> Transition:
        if not await guard(ctx, self._services, EVENT_SETUP):
            return END
        await ctx.prompt(
            "Please enter a name for the new event:", cancel_keyboard(CANCEL_CALLBACK)
        )
        return Advance(ASK_NAME)

    async def handle_name(self, ctx: HandlerContext) -> Transition:
        name = ctx.text
        if not name:
            await ctx.reply(
                "Name cannot be empty. Please enter a name for the event "
                "or use the cancel button."
            )
            return STAY
        await ctx.set(KEY_EVENT_NAME, name)
        await ctx.prompt(type_menu(), cancel_keyboard(CANCEL_CALLBACK))
        return Advance(ASK_TYPE)

    async def handle_type(self, ctx: HandlerContext) -> Transition:
        selection = ctx.text.replace("/", "", 1).strip()
        event_type = EventType.from_choice(selection) if selection.isdigit() else None
        if event_type is None:
            await ctx.reply(
                "Invalid selection. Please enter a number from 1 to "
                f"{len(EventType)}, or use the cancel button."
            )
            return STAY
        name = await ctx.require(KEY_EVENT_NAME, str)
        event_id = await self._services.events.create(name, event_type)
        await ctx.set(KEY_EVENT_ID, event_id)
        logger.info("event.created", event_id=event_id, type=event_type.value)
        await ctx.prompt(
            "When does the event start? Enter date and time in DD.MM.YYYY HH:MM format:",
            cancel_keyboard(CANCEL_CALLBACK),
        )
        return Advance(ASK_STARTED_AT)

    async def handle_started_at(self, ctx: HandlerContext) -> Transition:
        started_at = parse_started_at(ctx.text)
        if started_at is None:
            await ctx.reply(
                "Invalid date format. Please enter date and time in "
                "DD.MM.YYYY HH:MM format or use the cancel button."
            )
            return STAY
        event_id = await ctx.require(KEY_EVENT_ID, int)
        name = await ctx.require(KEY_EVENT_NAME, str)
        with selected("event", event_id):
            await self._services.events.update_started_at(event_id, started_at)
        await ctx.reply(
            f"Event record '<b>{escape(name)}</b>' successfully created with ID: "
            f"{event_id} and start date: <b>{started_at.strftime('%d.%m.%Y %H:%M')}</b>"
            f"\n\nTo edit the event, use the /{EVENT_EDIT} command."
            f"\nTo view all commands, use /{HELP}"
        )
        return END
