from __future__ import annotations

from ..commands import CANCEL, SHOW_TOPICS
from ..conversation import (
    END,
    STAY,
    Advance,
    Cleanup,
    HandlerContext,
    Route,
    Transition,
    Wizard,
    state,
    text,
)
from ..domain.formatters import format_event_list_for_admin, format_topic_list_for_admin
from ..domain.repositories import NotFoundError
from ..keyboards import cancel_keyboard
from ..logging import get_logger
from .common import Services, guard, parse_id, read_event_choice, selected_event

logger = get_logger(__name__)

SELECT_EVENT = "select_event"
DELETE_TOPIC = "delete_topic"

KEY_EVENT_ID = "selectedEventId"

CANCEL_CALLBACK = "show_topics_cancel"


class ShowTopicsWizard:
    """Admin listing of an event's topics with deletion by id."""

    def __init__(self, services: Services) -> None:
        self._services = services

    def definition(self) -> Wizard:
        return Wizard(
            name="show_topics",
            entry_command=SHOW_TOPICS,
            entry=self.start,
            states=(
                state(SELECT_EVENT, Route(text(), self.handle_select_event)),
                state(DELETE_TOPIC, Route(text(), self.handle_delete_topic)),
            ),
            cancel_text="Topic viewing/deletion operation canceled.",
            cancel_callback=CANCEL_CALLBACK,
            cleanup=Cleanup.STRIP,
        )

    async def start(self, ctx: HandlerContext) -> Transition:
        if not await guard(ctx, self._services, SHOW_TOPICS):
            return END
        events = await self._services.events.get_last_actual(
            self._services.settings.event_list_limit
        )
        if not events:
            await ctx.reply("No events available for viewing topics and questions.")
            return END
        await ctx.prompt(
            format_event_list_for_admin(
                events,
                "List of events",
                "for which you want to see topics and questions",
            ),
            cancel_keyboard(CANCEL_CALLBACK),
        )
        return Advance(SELECT_EVENT)

    async def handle_select_event(self, ctx: HandlerContext) -> Transition:
        event = await read_event_choice(ctx, self._services.events)
        if event is None:
            return STAY
        await ctx.set(KEY_EVENT_ID, event.id)
        topics = await self._services.topics.get_by_event(event.id)
        await ctx.reply(format_topic_list_for_admin(topics, event))
        if not topics:
            return END
        await ctx.prompt(
            "To delete a topic, send the ID of the topic to delete:",
            cancel_keyboard(CANCEL_CALLBACK),
        )
        return Advance(DELETE_TOPIC)

    async def handle_delete_topic(self, ctx: HandlerContext) -> Transition:
        topic_id = parse_id(ctx.text)
        if topic_id is None:
            await ctx.reply(
                f"Please send a valid topic ID or use /{CANCEL} to cancel."
            )
            return STAY
        event_id = await ctx.require(KEY_EVENT_ID, int)
        try:
            topic = await self._services.topics.get_by_id(topic_id)
        except NotFoundError:
            await ctx.reply(f"Could not find topic with ID {topic_id}. Please check the ID.")
            return STAY
        if topic.event_id != event_id:
            await ctx.reply(
                f"Topic with ID {topic_id} belongs to a different event "
                f"(ID: {topic.event_id}), not the selected one (ID: {event_id}).\n"
                f"Please choose a valid topic ID or use /{CANCEL} to cancel."
            )
            return STAY

        await self._services.topics.delete(topic_id)
        logger.info("topic.deleted", topic_id=topic_id, event_id=event_id)
        await ctx.reply(f"✅ Topic with ID {topic_id} successfully deleted.")

        event = await selected_event(self._services.events, event_id)
        remaining = await self._services.topics.get_by_event(event_id)
        await ctx.reply(format_topic_list_for_admin(remaining, event))
        if remaining:
            await ctx.prompt(
                "To delete another topic, send the topic ID:",
                cancel_keyboard(CANCEL_CALLBACK),
            )
            return STAY
        await ctx.reply("All topics have been deleted.")
        return END
