from __future__ import annotations

from html import escape

from ..commands import HELP, START
from ..conversation import (
    END,
    Advance,
    Cleanup,
    HandlerContext,
    Route,
    Transition,
    Wizard,
    callback,
    state,
)
from ..domain.formatters import format_help_message
from ..permissions import PRIVATE_ONLY_TEXT
from ..transport import Button, keyboard
from .common import Services

PROCESS_CALLBACK = "process_callback"

HELP_CALLBACK = "start_show_help"


class StartWizard:
    """Greeting with a button that opens the command list."""

    def __init__(self, services: Services) -> None:
        self._services = services

    def definition(self) -> Wizard:
        return Wizard(
            name="start",
            entry_command=START,
            entry=self.start,
            states=(
                state(PROCESS_CALLBACK, Route(callback(HELP_CALLBACK), self.handle_help)),
            ),
            cleanup=Cleanup.STRIP,
        )

    async def start(self, ctx: HandlerContext) -> Transition:
        if not ctx.event.is_private:
            await ctx.reply(PRIVATE_ONLY_TEXT)
            return END
        first_name = ctx.event.sender.first_name
        greeting = "Welcome"
        if first_name:
            greeting += f", <b>{escape(first_name)}</b>"
        greeting += "! 🎓"
        if await self._services.gate.is_member(ctx.user_id):
            message = (
                f"{greeting}\n\n"
                "I'm the <b>community bot</b>: I keep track of club events, "
                "collect topics for them and manage member profiles. 🤖\n\n"
                f"Use /{HELP} to see what I can do for you!"
            )
        else:
            message = (
                f"{greeting}\n\n"
                "I'm the <b>community bot</b>. 🤖\n\n"
                "Join our community to access events, topics and member profiles!"
            )
        await ctx.prompt(
            message,
            keyboard(Button("📋 Show commands", callback_data=HELP_CALLBACK)),
        )
        return Advance(PROCESS_CALLBACK)

    async def handle_help(self, ctx: HandlerContext) -> Transition:
        await ctx.answer()
        is_admin = await self._services.gate.is_admin(ctx.user_id)
        await ctx.reply(format_help_message(is_admin=is_admin))
        return END


class HelpWizard:
    def __init__(self, services: Services) -> None:
        self._services = services

    def definition(self) -> Wizard:
        return Wizard(name="help", entry_command=HELP, entry=self.start)

    async def start(self, ctx: HandlerContext) -> Transition:
        is_admin = await self._services.gate.is_admin(ctx.user_id)
        await ctx.reply(format_help_message(is_admin=is_admin))
        return END
