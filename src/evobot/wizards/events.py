from __future__ import annotations

from ..commands import EVENTS, TOPIC_ADD, TOPICS
from ..conversation import END, HandlerContext, Transition, Wizard
from ..domain.formatters import format_event_list_for_events
from .common import Services, guard


class EventsWizard:
    def __init__(self, services: Services) -> None:
        self._services = services

    def definition(self) -> Wizard:
        return Wizard(name="events", entry_command=EVENTS, entry=self.start)

    async def start(self, ctx: HandlerContext) -> Transition:
        if not await guard(ctx, self._services, EVENTS):
            return END
        events = await self._services.events.get_last_actual(
            self._services.settings.event_list_limit
        )
        if not events:
            await ctx.reply("There are no upcoming events at the moment.")
            return END
        text = format_event_list_for_events(events, "📋 Upcoming Events")
        text += (
            f"\n\nAdd topics and questions /{TOPIC_ADD}. "
            f"View topics and questions /{TOPICS}. "
            "For more event information, check the group for updates."
        )
        await ctx.reply(text)
        return END
