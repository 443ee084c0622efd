from __future__ import annotations

import os
import tomllib
from pathlib import Path

ENV_BOT_TOKEN = "EVOBOT_BOT_TOKEN"
ENV_CONFIG_PATH = "EVOBOT_CONFIG"

LOCAL_CONFIG_NAME = Path(".evobot") / "evobot.toml"
HOME_CONFIG_PATH = Path.home() / ".evobot" / "evobot.toml"


class ConfigError(RuntimeError):
    pass


def _env(name: str) -> str | None:
    return os.environ.get(name, "").strip() or None


def _read_config(cfg_path: Path) -> dict:
    try:
        with cfg_path.open("rb") as f:
            return tomllib.load(f)
    except FileNotFoundError:
        raise ConfigError(f"Missing config file {cfg_path}.") from None
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Malformed TOML in {cfg_path}: {e}") from None
    except OSError as e:
        raise ConfigError(f"Failed to read config file {cfg_path}: {e}") from e


def resolve_config_path(path: str | Path | None = None) -> Path:
    """Pick the config file: explicit path, then $EVOBOT_CONFIG, then
    `./.evobot/evobot.toml`, then `~/.evobot/evobot.toml`."""
    explicit = path or _env(ENV_CONFIG_PATH)
    if explicit:
        return Path(explicit).expanduser()
    # dict.fromkeys drops the duplicate when cwd is home
    for candidate in dict.fromkeys([Path.cwd() / LOCAL_CONFIG_NAME, HOME_CONFIG_PATH]):
        if candidate.is_file():
            return candidate
    raise ConfigError(
        f"Missing evobot config. Create {LOCAL_CONFIG_NAME} or {HOME_CONFIG_PATH}."
    )


def load_config(path: str | Path | None = None) -> tuple[dict, Path]:
    cfg_path = resolve_config_path(path)
    return _read_config(cfg_path), cfg_path


def get_bot_token(config: dict, config_path: Path) -> str:
    """Environment variable EVOBOT_BOT_TOKEN takes precedence over `bot_token`."""
    from_env = _env(ENV_BOT_TOKEN)
    if from_env is not None:
        return from_env
    if "bot_token" not in config:
        raise ConfigError(
            f"Missing bot token. Set {ENV_BOT_TOKEN} environment variable "
            f"or add `bot_token` to {config_path}."
        )
    token = config["bot_token"]
    if not isinstance(token, str) or not token.strip():
        raise ConfigError(
            f"Invalid `bot_token` in {config_path}; expected a non-empty string."
        )
    return token.strip()
