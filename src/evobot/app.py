from __future__ import annotations

from .commands import COMMAND_NAMES, public_commands
from .conversation import Dispatcher, Registry, SessionStore
from .domain.sqlite import (
    Database,
    SqliteEventRepository,
    SqliteProfileRepository,
    SqliteTopicRepository,
    SqliteUserRepository,
)
from .logging import get_logger
from .permissions import PermissionGate
from .settings import BotSettings
from .telegram import (
    TelegramClient,
    TelegramPermissionGate,
    TelegramTransport,
    poll_updates,
    run_polling,
)
from .telegram.loop import drain_backlog
from .transport import Transport
from .wizards import WIZARD_CLASSES, ProfilePublisher, Services

logger = get_logger(__name__)


def build_services(
    settings: BotSettings,
    db: Database,
    transport: Transport,
    gate: PermissionGate,
) -> Services:
    profiles = SqliteProfileRepository(db)
    return Services(
        settings=settings,
        gate=gate,
        transport=transport,
        events=SqliteEventRepository(db),
        topics=SqliteTopicRepository(db),
        users=SqliteUserRepository(db),
        profiles=profiles,
        publisher=ProfilePublisher(transport, profiles, settings),
    )


def build_registry(services: Services) -> Registry:
    registry = Registry(COMMAND_NAMES)
    for wizard_cls in WIZARD_CLASSES:
        registry.register(wizard_cls(services).definition())
    return registry


def build_dispatcher(services: Services) -> Dispatcher:
    return Dispatcher(build_registry(services), SessionStore(), services.transport)


async def run(settings: BotSettings) -> None:
    client = TelegramClient(settings.bot_token)
    db = Database(settings.database_path)
    db.open()
    try:
        transport = TelegramTransport(client)
        gate = TelegramPermissionGate(client, settings)
        services = build_services(settings, db, transport, gate)
        dispatcher = build_dispatcher(services)
        if not await client.set_my_commands(public_commands()):
            logger.warning("startup.set_commands_failed")
        offset = await drain_backlog(client, None)
        logger.info(
            "startup.ready",
            wizards=len(dispatcher.registry),
            database=str(settings.database_path),
        )
        await run_polling(
            dispatcher,
            transport,
            poll_updates(client, timeout_s=settings.poll_timeout_s, offset=offset),
        )
    finally:
        db.close()
        await client.close()
