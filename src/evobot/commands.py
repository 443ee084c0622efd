from __future__ import annotations

import enum
from dataclasses import dataclass


class Access(enum.Enum):
    PUBLIC = "public"
    MEMBER = "member"
    ADMIN = "admin"


@dataclass(frozen=True, slots=True)
class BotCommand:
    name: str
    description: str
    access: Access = Access.PUBLIC


START = "start"
HELP = "help"
CANCEL = "cancel"
PROFILE = "profile"
EVENTS = "events"
TOPICS = "topics"
TOPIC_ADD = "topicAdd"
EVENT_SETUP = "eventSetup"
EVENT_EDIT = "eventEdit"
EVENT_START = "eventStart"
SHOW_TOPICS = "showTopics"
PROFILES_MANAGER = "profilesManager"

COMMANDS: tuple[BotCommand, ...] = (
    BotCommand(START, "Welcome message"),
    BotCommand(HELP, "Show the command list"),
    BotCommand(CANCEL, "Cancel the active dialog"),
    BotCommand(PROFILE, "Manage your profile and search members", Access.MEMBER),
    BotCommand(EVENTS, "View upcoming events", Access.MEMBER),
    BotCommand(TOPICS, "View topics and questions for an event", Access.MEMBER),
    BotCommand(TOPIC_ADD, "Suggest a topic or question for an event", Access.MEMBER),
    BotCommand(EVENT_SETUP, "Create a new event", Access.ADMIN),
    BotCommand(EVENT_EDIT, "Edit an event", Access.ADMIN),
    BotCommand(EVENT_START, "Start an event", Access.ADMIN),
    BotCommand(SHOW_TOPICS, "View topics with delete option", Access.ADMIN),
    BotCommand(PROFILES_MANAGER, "Manage member profiles", Access.ADMIN),
)

COMMAND_NAMES = frozenset(cmd.name for cmd in COMMANDS)


def access_for(command: str) -> Access:
    for cmd in COMMANDS:
        if cmd.name == command:
            return cmd.access
    return Access.ADMIN


def public_commands() -> list[dict[str, str]]:
    """Command menu payload for non-admin users."""
    return [
        {"command": cmd.name, "description": cmd.description}
        for cmd in COMMANDS
        if cmd.access is not Access.ADMIN
    ]
