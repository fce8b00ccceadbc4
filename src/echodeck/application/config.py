from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


def _config_files() -> list[Path]:
    return [
        Path.home() / ".config/echodeck/config.toml",
        Path.home() / ".echodeck.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for echodeck.
    Supports loading from:
    1. Environment variables (ECHODECK_*)
    2. Config file (~/.config/echodeck/config.toml or ~/.echodeck.toml)
    3. Manual overrides (CLI / API)
    """

    model_config = SettingsConfigDict(
        env_prefix="ECHODECK_",
        extra="ignore",
    )

    # Storage
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/echodeck")
    backend: Literal["json", "memory"] = "json"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    verbose: int = 1

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # First existing file wins
        toml_file = next((f for f in _config_files() if f.exists()), None)

        # Earlier sources take priority: overrides > env > file
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("data_dir", mode="before")
    @classmethod
    def resolve_data_dir(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/echodeck/config.toml (if exists)
    3. Environment variables (ECHODECK_*)
    4. cli_overrides (None values are ignored)
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
