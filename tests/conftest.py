from collections.abc import Iterator
from dataclasses import replace
from pathlib import Path

import pytest

from evobot.app import build_dispatcher, build_services
from evobot.conversation import Dispatcher
from evobot.domain.sqlite import Database
from evobot.permissions import StaticPermissionGate
from evobot.settings import BotSettings
from evobot.wizards import Services
from tests.fakes import FakeTransport

ADMIN_ID = 1
MEMBER_ID = 2
OUTSIDER_ID = 3
SUPERGROUP_ID = -1001234567890


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings(tmp_path: Path) -> BotSettings:
    return BotSettings(
        bot_token="123456:test-token",
        supergroup_chat_id=SUPERGROUP_ID,
        announcement_topic_id=7,
        intro_topic_id=9,
        admin_user_id=ADMIN_ID,
        database_path=tmp_path / "evobot.sqlite3",
        save_refresh_delay_s=0.5,
    )


@pytest.fixture
def db(settings: BotSettings) -> Iterator[Database]:
    database = Database(settings.database_path)
    database.open()
    yield database
    database.close()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def gate() -> StaticPermissionGate:
    return StaticPermissionGate([ADMIN_ID], [MEMBER_ID])


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def services(
    settings: BotSettings,
    db: Database,
    transport: FakeTransport,
    gate: StaticPermissionGate,
    sleeps: list[float],
) -> Services:
    async def fake_sleep(delay: float) -> None:
        sleeps.append(delay)

    return replace(build_services(settings, db, transport, gate), sleep=fake_sleep)


@pytest.fixture
def dispatcher(services: Services) -> Dispatcher:
    return build_dispatcher(services)
