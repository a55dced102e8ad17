from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from quizflow.domain.constants import DEBOUNCE_SECONDS, REQUEST_TIMEOUT


def config_files() -> list[Path]:
    return [
        Path.home() / ".config/quizflow/config.toml",
        Path.home() / ".quizflow.toml",
    ]


class AppConfig(BaseSettings):
    """
    Configuration model for quizflow.
    Supports loading from:
    1. Config file (~/.config/quizflow/config.toml or ~/.quizflow.toml)
    2. Environment variables (QUIZFLOW_*)
    3. Manual overrides
    """

    model_config = SettingsConfigDict(
        env_prefix="QUIZFLOW_",
        extra="ignore",
    )

    # Durable store
    backend: Literal["memory", "rest"] = "memory"
    rest_url: str | None = None
    rest_api_key: str | None = None
    request_timeout: float = REQUEST_TIMEOUT

    # Identity (durable I/O is skipped without one)
    learner_id: str | None = None

    # Local cache
    cache_backend: Literal["file", "memory"] = "file"
    cache_path: Path = Field(
        default_factory=lambda: Path.home() / ".config/quizflow/cache.json"
    )

    # Session sync
    debounce_seconds: float = Field(default=DEBOUNCE_SECONDS, ge=0)

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
        toml_file = next((f for f in config_files() if f.exists()), None)

        # Earlier sources take priority
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("cache_path", mode="before")
    @classmethod
    def resolve_cache_path(cls, v: Any) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("rest_url", mode="before")
    @classmethod
    def strip_trailing_slash(cls, v: Any) -> str | None:
        if not v:
            return None
        return str(v).rstrip("/")


def resolve_config(overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/quizflow/config.toml (if exists)
    3. Environment variables (QUIZFLOW_*)
    4. overrides (None values are dropped)
    """
    clean = {k: v for k, v in (overrides or {}).items() if v is not None}
    config = AppConfig(**clean)

    if config.backend == "rest" and not config.rest_url:
        raise ValueError("backend 'rest' requires rest_url")

    return config
