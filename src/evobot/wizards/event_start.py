from __future__ import annotations

from html import escape

from ..commands import CANCEL, EVENT_START
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
    callback,
    state,
    text,
)
from ..domain.formatters import format_event_list_for_admin
from ..domain.models import Event, EventStatus
from ..keyboards import cancel_keyboard, confirm_cancel_keyboard, link_keyboard
from ..logging import get_logger
from ..transport import MessageRef
from .common import Services, guard, read_event_choice, selected, selected_event

logger = get_logger(__name__)

SELECT_EVENT = "select_event"
ENTER_LINK = "enter_link"
CONFIRM = "confirm"

KEY_EVENT_ID = "selectedEventId"
KEY_EVENT_LINK = "eventLink"

CONFIRM_CALLBACK = "event_start_confirm_yes"
CANCEL_CALLBACK = "event_start_confirm_cancel"


def announcement_text(event: Event) -> str:
    return (
        "🔴 <b>EVENT STARTING!</b> 🔴\n\n"
        f"{event.type.emoji} <b>{escape(event.name)}</b>\n"
        "\nUse the button below to join ⬇️"
    )


class EventStartWizard:
    def __init__(self, services: Services) -> None:
        self._services = services

    def definition(self) -> Wizard:
        return Wizard(
            name="event_start",
            entry_command=EVENT_START,
            entry=self.start,
            states=(
                state(SELECT_EVENT, Route(text(), self.handle_select_event)),
                state(ENTER_LINK, Route(text(), self.handle_link)),
                state(
                    CONFIRM,
                    Route(callback(CONFIRM_CALLBACK), self.handle_confirm),
                    Route(any_message(), self.handle_text_during_confirm),
                ),
            ),
            cancel_text="Event start operation canceled.",
            cancel_callback=CANCEL_CALLBACK,
            cleanup=Cleanup.STRIP,
        )

    async def start(self, ctx: HandlerContext) -> Transition:
        if not await guard(ctx, self._services, EVENT_START):
            return END
        events = await self._services.events.get_last(
            self._services.settings.event_list_limit
        )
        if not events:
            await ctx.reply("No events available to start.")
            return END
        await ctx.prompt(
            format_event_list_for_admin(
                events, f"Last {len(events)} events:", "that you want to start"
            ),
            cancel_keyboard(CANCEL_CALLBACK),
        )
        return Advance(SELECT_EVENT)

    async def handle_select_event(self, ctx: HandlerContext) -> Transition:
        event = await read_event_choice(ctx, self._services.events)
        if event is None:
            return STAY
        await ctx.set(KEY_EVENT_ID, event.id)
        await ctx.prompt(
            f"🔗 Send me the link to the event '{escape(event.name)}' (ID: {event.id})\n"
            "This link will be sent to the announcements chat.",
            cancel_keyboard(CANCEL_CALLBACK),
        )
        return Advance(ENTER_LINK)

    async def handle_link(self, ctx: HandlerContext) -> Transition:
        link = ctx.text
        if not link.startswith(("http://", "https://")):
            await ctx.reply(
                "Please enter a valid link starting with http:// or https:// "
                f"(or use /{CANCEL} to cancel):"
            )
            return STAY
        event_id = await ctx.require(KEY_EVENT_ID, int)
        event = await selected_event(self._services.events, event_id)
        await ctx.set(KEY_EVENT_LINK, link)
        await ctx.prompt(
            "<b>Event launch confirmation</b>\n\n"
            f"🎯 <b>{escape(event.name)}</b> <i>(ID: {event.id})</i>\n\n"
            f"🔗 Link: <code>{escape(link)}</code>\n\n"
            "This link will be sent to the announcements chat.\n\n"
            "Click the button below to confirm or cancel",
            confirm_cancel_keyboard(CONFIRM_CALLBACK, CANCEL_CALLBACK),
        )
        return Advance(CONFIRM)

    async def handle_confirm(self, ctx: HandlerContext) -> Transition:
        await ctx.answer()
        event_id = await ctx.require(KEY_EVENT_ID, int)
        link = await ctx.require(KEY_EVENT_LINK, str)
        event = await selected_event(self._services.events, event_id)
        with selected("event", event_id):
            await self._services.events.update_status(event_id, EventStatus.FINISHED)

        settings = self._services.settings
        sent = await self._services.transport.send_prompt(
            settings.supergroup_chat_id,
            announcement_text(event),
            link_keyboard("🔗 Zoom Link", link),
            thread_id=settings.announcement_topic_id or None,
        )
        if sent is not None:
            await self._pin(sent)
        else:
            logger.warning("event.announcement_failed", event_id=event_id)

        logger.info("event.started", event_id=event_id)
        await ctx.reply(
            "✅ <b>Event successfully started!</b>\n\n"
            f"🎯 <b>{escape(event.name)}</b> <i>(ID: {event.id})</i>\n\n"
            "📢 Link sent to the announcements chat."
        )
        return END

    async def handle_text_during_confirm(self, ctx: HandlerContext) -> Transition:
        await ctx.reply(
            f"Please click one of the buttons above, or use /{CANCEL} to cancel."
        )
        return STAY

    async def _pin(self, ref: MessageRef) -> None:
        if not await self._services.transport.pin(ref, silent=False):
            logger.warning(
                "event.announcement_pin_failed",
                chat_id=ref.chat_id,
                message_id=ref.message_id,
            )
