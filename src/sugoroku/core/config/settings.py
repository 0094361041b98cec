from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Process-level configuration (environment, logging, where saves live).

    Game balance is not here; see core.config.balance.
    """

    model_config = SettingsConfigDict(
        env_prefix="SUGOROKU_",
        env_file=".env",
        extra="ignore",
    )

    # ---- Environment -------------------------------------------------

    env: Literal["local", "staging", "prod"] = "local"

    # ---- Logging -----------------------------------------------------

    log_level: str = "INFO"
    log_json: bool = Field(default=True, description="JSON log lines; false for console output")

    # ---- Sessions & Saves --------------------------------------------

    saves_dir: Path = Field(
        default=Path("saves"),
        description="Root directory for per-session save files and event logs",
    )

    # Used when a session is created without an explicit seed
    default_seed: int | None = Field(
        default=None,
        description="Board/RNG seed for new sessions; random when unset",
    )

    autosave_interval_ticks: int = Field(
        default=1800,
        ge=0,
        description="Ticks between automatic saves (1800 = 30s at 60 ticks/s); 0 disables",
    )

    event_log_enabled: bool = Field(
        default=False,
        description="Append every published event to the session's events.jsonl",
    )


# Singleton settings object
settings = AppSettings()
