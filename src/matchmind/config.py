"""Runtime settings for matchmind."""

from pathlib import Path

from platformdirs import user_config_dir
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MatchmindSettings(BaseSettings):
    """Process-wide settings read from the environment or a ``.env`` file."""

    # Configuration files
    config_path: Path | None = Field(
        default=None,
        description="Base YAML configuration; config/matchmind.yaml when unset",
        alias="MATCHMIND_CONFIG",
    )

    user_config_dir: Path = Field(
        default_factory=lambda: Path(user_config_dir("matchmind")),
        description="Directory searched for a per-user matchmind.yaml override",
        alias="MATCHMIND_USER_CONFIG_DIR",
    )

    environment: str | None = Field(
        default=None,
        description="Environment name selecting config/matchmind.<env>.yaml",
        alias="MATCHMIND_ENV",
    )

    # Simulation defaults
    trials: int = Field(
        default=10_000,
        description="Default Monte Carlo trial count",
        alias="MATCHMIND_TRIALS",
    )

    seed: int | None = Field(
        default=None,
        description="Seed for reproducible simulations",
        alias="MATCHMIND_SEED",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Log level applied by configure_runtime_logging",
        alias="MATCHMIND_LOG_LEVEL",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def user_config_file(self) -> Path:
        return self.user_config_dir / "matchmind.yaml"


# Global settings instance
settings = MatchmindSettings()


def get_settings() -> MatchmindSettings:
    """Get the current settings."""
    return settings


def update_settings(**kwargs) -> None:
    """Update settings in place."""
    global settings
    for key, value in kwargs.items():
        if key in MatchmindSettings.model_fields:
            setattr(settings, key, value)
        else:
            raise ValueError(f"Unknown configuration option: {key}")


def reset_settings() -> None:
    """Reset settings to defaults."""
    global settings
    settings = MatchmindSettings()


def load_runtime_config():
    """Load the prediction configuration described by the current settings.

    The per-user ``matchmind.yaml`` is layered on top of the base file, and
    ``MATCHMIND_TRIALS`` / ``MATCHMIND_SEED`` override the simulation section
    when they are set.
    """
    from .prediction.configuration import load_prediction_config

    current = get_settings()
    extra = [current.user_config_file] if current.user_config_file.exists() else None
    config = load_prediction_config(
        base_path=current.config_path,
        environment=current.environment,
        extra_paths=extra,
    )
    overrides = {
        name: getattr(current, name)
        for name in ("trials", "seed")
        if name in current.model_fields_set
    }
    if not overrides:
        return config
    simulation = config.simulation.model_copy(update=overrides)
    return config.model_copy(update={"simulation": simulation})


def configure_runtime_logging(handlers=None) -> None:
    """Apply ``MATCHMIND_LOG_LEVEL`` through :func:`configure_logging`."""
    from .prediction import logging as prediction_logging

    prediction_logging.configure_logging(get_settings().log_level, handlers)
