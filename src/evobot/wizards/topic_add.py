from __future__ import annotations

from html import escape

from ..commands import TOPIC_ADD, TOPICS
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
from ..domain.formatters import NOT_SPECIFIED, format_event_list_for_topics
from ..keyboards import cancel_keyboard
from ..logging import get_logger
from .common import Services, guard, read_event_choice, selected_event, sender_nickname

logger = get_logger(__name__)

SELECT_EVENT = "select_event"
ENTER_TOPIC = "enter_topic"

KEY_EVENT_ID = "selectedEventId"
KEY_EVENT_NAME = "selectedEventName"

CANCEL_CALLBACK = "topic_add_cancel"


class TopicAddWizard:
    def __init__(self, services: Services) -> None:
        self._services = services

    def definition(self) -> Wizard:
        return Wizard(
            name="topic_add",
            entry_command=TOPIC_ADD,
            entry=self.start,
            states=(
                state(SELECT_EVENT, Route(text(), self.handle_select_event)),
                state(ENTER_TOPIC, Route(any_message(), self.handle_topic)),
            ),
            cancel_text="Topic addition operation cancelled.",
            cancel_callback=CANCEL_CALLBACK,
            cleanup=Cleanup.STRIP,
        )

    async def start(self, ctx: HandlerContext) -> Transition:
        if not await guard(ctx, self._services, TOPIC_ADD):
            return END
        events = await self._services.events.get_last_actual(
            self._services.settings.event_list_limit
        )
        if not events:
            await ctx.reply("No events available for adding topics and questions.")
            return END
        await ctx.prompt(
            format_event_list_for_topics(
                events, "Select the event ID you want to add topics or questions to"
            ),
            cancel_keyboard(CANCEL_CALLBACK),
        )
        return Advance(SELECT_EVENT)

    async def handle_select_event(self, ctx: HandlerContext) -> Transition:
        event = await read_event_choice(ctx, self._services.events)
        if event is None:
            return STAY
        await ctx.set(KEY_EVENT_ID, event.id)
        await ctx.set(KEY_EVENT_NAME, event.name)
        await ctx.prompt(
            f"Send me topics and questions for the event <b>{escape(event.name)}</b>:",
            cancel_keyboard(CANCEL_CALLBACK),
        )
        return Advance(ENTER_TOPIC)

    async def handle_topic(self, ctx: HandlerContext) -> Transition:
        topic = ctx.text
        if not topic:
            await ctx.reply(
                "Topic cannot be empty. Please enter the topic text or cancel the operation."
            )
            return STAY
        event_id = await ctx.require(KEY_EVENT_ID, int)
        event_name = await ctx.require(KEY_EVENT_NAME, str)
        await selected_event(self._services.events, event_id)
        nickname = sender_nickname(ctx)
        topic_id = await self._services.topics.create(topic, nickname, event_id)
        logger.info("topic.created", topic_id=topic_id, event_id=event_id)

        await self._services.transport.send_prompt(
            self._services.settings.admin_user_id,
            "🔔 <b>New topic added</b>\n\n"
            f"<i>Event:</i> {escape(event_name)}\n"
            f"<i>Author:</i> @{escape(nickname or NOT_SPECIFIED)}\n"
            f"<i>Topic:</i> {escape(topic)}",
        )
        await ctx.reply(
            f"Added! \nUse the /{TOPICS} command to view all topics and questions "
            f"for the event, or /{TOPIC_ADD} to add new topics and questions."
        )
        return END
