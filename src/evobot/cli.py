from __future__ import annotations

from pathlib import Path

import anyio
import typer

from . import __version__
from .app import build_registry, build_services, run
from .config import ConfigError
from .domain.sqlite import Database
from .logging import get_logger, setup_logging
from .permissions import StaticPermissionGate
from .settings import BotSettings, load_settings
from .telegram import TelegramClient, TelegramTransport

logger = get_logger(__name__)

_CONFIG_PATH_OPTION = typer.Option(
    None,
    "--config",
    help="Path to evobot.toml (defaults to ./.evobot/evobot.toml, then ~/.evobot/).",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


def _load_settings_or_exit(config_path: Path | None) -> tuple[BotSettings, Path]:
    try:
        return load_settings(config_path)
    except ConfigError as exc:
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def app_main(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show the version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Community bot with guided dialogs for events, topics and profiles."""


def run_cmd(
    config_path: Path | None = _CONFIG_PATH_OPTION,
    debug: bool = typer.Option(
        False,
        "--debug/--no-debug",
        help="Log Telegram requests and dispatch decisions.",
    ),
) -> None:
    """Start long-polling and serve dialogs until interrupted."""
    settings, resolved = _load_settings_or_exit(config_path)
    setup_logging(debug=debug or settings.debug)
    logger.info("startup.config", path=str(resolved))
    try:
        anyio.run(run, settings)
    except KeyboardInterrupt:
        logger.info("shutdown.interrupted")


def wizards_cmd(config_path: Path | None = _CONFIG_PATH_OPTION) -> None:
    """Print every registered wizard with its entry command and states."""
    settings, _ = _load_settings_or_exit(config_path)
    client = TelegramClient(settings.bot_token)
    services = build_services(
        settings,
        Database(settings.database_path),
        TelegramTransport(client),
        StaticPermissionGate(settings.admin_user_ids),
    )
    try:
        for wizard in build_registry(services):
            states = ", ".join(wizard.state_names()) or "-"
            typer.echo(f"/{wizard.entry_command}\t{wizard.name}\t{states}")
    finally:
        anyio.run(client.close)


def create_app() -> typer.Typer:
    app = typer.Typer(
        add_completion=False,
        help="Telegram community bot.",
    )
    app.command(name="run")(run_cmd)
    app.command(name="wizards")(wizards_cmd)
    app.callback()(app_main)
    return app


def main() -> None:
    app = create_app()
    app()


if __name__ == "__main__":
    main()
