from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .config import ConfigError, get_bot_token, load_config


class BotSettings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    bot_token: str
    supergroup_chat_id: int
    announcement_topic_id: int = 0
    intro_topic_id: int = 0
    admin_user_id: int
    admin_user_ids: tuple[int, ...] = ()
    database_path: Path = Path("evobot.sqlite3")

    bio_length_limit: int = Field(default=2000, gt=0)
    name_length_limit: int = Field(default=30, gt=0)
    username_length_limit: int = Field(default=32, gt=0)
    event_list_limit: int = Field(default=10, gt=0)
    save_refresh_delay_s: float = Field(default=1.0, ge=0)
    poll_timeout_s: int = Field(default=50, ge=0)
    debug: bool = False

    @field_validator("bot_token")
    @classmethod
    def _token_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be a non-empty string")
        return value.strip()

    def is_configured_admin(self, user_id: int) -> bool:
        return user_id == self.admin_user_id or user_id in self.admin_user_ids

    @property
    def supergroup_link_id(self) -> str:
        """Chat id as it appears in t.me/c/ links (without the -100 prefix)."""
        raw = str(abs(self.supergroup_chat_id))
        return raw[3:] if raw.startswith("100") and len(raw) > 3 else raw

    def intro_topic_link(self) -> str:
        return f"https://t.me/c/{self.supergroup_link_id}/{self.intro_topic_id}"

    def intro_message_link(self, message_id: int) -> str:
        return f"{self.intro_topic_link()}/{message_id}"


def validate_settings_data(data: dict, *, config_path: Path) -> BotSettings:
    try:
        return BotSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config in {config_path}: {exc}") from exc


def load_settings(path: str | Path | None = None) -> tuple[BotSettings, Path]:
    config, config_path = load_config(path)
    data = dict(config)
    data["bot_token"] = get_bot_token(config, config_path)
    base_dir = config_path.parent
    db_path = data.get("database_path")
    if isinstance(db_path, str) and db_path and not Path(db_path).is_absolute():
        data["database_path"] = base_dir / Path(db_path).expanduser()
    return validate_settings_data(data, config_path=config_path), config_path
