from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from quizleitner.domain.constants import ALL_TOPICS, DEFAULT_MAX_RESPONSE_SECONDS

DEFAULT_DATA_FILE = "leitner_system.json"


def default_config_path() -> Path:
    return Path.home() / ".config/quizleitner/config.toml"


class LeitnerConfig(BaseSettings):
    """
    Configuration model for the Leitner scheduler.
    Supports loading from:
    1. Config file (~/.config/quizleitner/config.toml)
    2. Manual overrides (keyword arguments)

    There is no environment variable source.
    """

    model_config = SettingsConfigDict(extra="ignore")

    # Paths
    data_file: Path = Path(DEFAULT_DATA_FILE)

    # Queries
    all_topics_label: str = ALL_TOPICS

    # Scheduling
    max_response_time_seconds: float = Field(default=DEFAULT_MAX_RESPONSE_SECONDS, gt=0)
    random_seed: int | None = None

    # Persistence
    autosave: bool = True

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

        toml_file = default_config_path()
        if toml_file.exists():
            return (
                init_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings,)


def resolve_config(overrides: dict[str, Any] | None = None) -> LeitnerConfig:
    """
    Layered configuration resolution.
    1. Defaults in LeitnerConfig
    2. ~/.config/quizleitner/config.toml (if exists)
    3. overrides (None values are ignored)
    """
    overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
    config = LeitnerConfig(**overrides)

    # The data file lives in the working directory unless configured otherwise
    if not config.data_file.is_absolute():
        config.data_file = Path.cwd() / config.data_file

    return config
