from __future__ import annotations

from ..commands import TOPICS
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
from ..domain.formatters import format_event_list_for_topics, format_topic_list_for_users
from ..keyboards import cancel_keyboard
from .common import Services, guard, read_event_choice

SELECT_EVENT = "select_event"

CANCEL_CALLBACK = "topics_cancel"


class TopicsWizard:
    """Member view of the topics suggested for one event."""

    def __init__(self, services: Services) -> None:
        self._services = services

    def definition(self) -> Wizard:
        return Wizard(
            name="topics",
            entry_command=TOPICS,
            entry=self.start,
            states=(state(SELECT_EVENT, Route(text(), self.handle_select_event)),),
            cancel_text="Topic viewing operation canceled.",
            cancel_callback=CANCEL_CALLBACK,
            cleanup=Cleanup.STRIP,
        )

    async def start(self, ctx: HandlerContext) -> Transition:
        if not await guard(ctx, self._services, TOPICS):
            return END
        events = await self._services.events.get_last_actual(
            self._services.settings.event_list_limit
        )
        if not events:
            await ctx.reply("No events available for viewing topics and questions.")
            return END
        await ctx.prompt(
            format_event_list_for_topics(
                events, "Select the event ID to view its topics and questions"
            ),
            cancel_keyboard(CANCEL_CALLBACK),
        )
        return Advance(SELECT_EVENT)

    async def handle_select_event(self, ctx: HandlerContext) -> Transition:
        event = await read_event_choice(ctx, self._services.events)
        if event is None:
            return STAY
        topics = await self._services.topics.get_by_event(event.id)
        await ctx.reply(format_topic_list_for_users(topics, event))
        return END
