"""Runtime configuration derived from parsed options, plus process settings."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV_VAR = "MULTITOOL_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "INFO"
PLUGINS_DISABLED_ENV_VAR = "MULTITOOL_PLUGINS_DISABLED"


class MutuallyExclusiveModesError(ValueError):
    """Raised when both save-exe and load-exe are requested."""


class RuntimeConfig(BaseModel):
    """Validated execution parameters handed to the tool and backend."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    device_count: int = Field(default=1, ge=1)
    image_path: str = ""
    use_simulator: bool = False
    persist: bool = False
    restore: bool = False
    compile_only: bool = False
    defer_attach: bool = False

    @model_validator(mode="after")
    def validate_modes(self) -> RuntimeConfig:
        """Validate persistence and attach invariants."""
        if self.persist and self.restore:
            raise ValueError("persist and restore cannot both be enabled")
        if (self.persist or self.restore) and not self.image_path:
            raise ValueError("image_path is required when persisting or restoring")
        if self.compile_only and not self.defer_attach:
            raise ValueError("compile_only requires defer_attach")
        return self


def resolve_runtime_config(options: Mapping[str, Any]) -> RuntimeConfig:
    """Derive the runtime configuration from the general options.

    Compile-only runs never need a device, so they always defer attach
    whatever ``--defer-attach`` says.
    """
    save_exe = options["save-exe"]
    load_exe = options["load-exe"]
    if save_exe and load_exe:
        raise MutuallyExclusiveModesError("You can not set both save-exe and load-exe.")

    compile_only = bool(options["compile-only"])
    if compile_only and not save_exe:
        logger.warning(
            "compile-only is set without save-exe: the compiled image will be discarded."
        )

    return RuntimeConfig(
        device_count=options["ipus"],
        image_path=save_exe or load_exe,
        use_simulator=bool(options["model"]),
        persist=bool(save_exe),
        restore=bool(load_exe),
        compile_only=compile_only,
        defer_attach=compile_only or bool(options["defer-attach"]),
    )


class SettingsError(ValueError):
    """Raised when an environment setting has an unusable value."""


@dataclass(frozen=True, slots=True)
class Settings:
    """Process-level settings read from the environment."""

    log_level: str = DEFAULT_LOG_LEVEL
    plugins_disabled: bool = False


def load_settings() -> Settings:
    """Read settings from the environment, loading ``.env`` without overriding it."""
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    log_level = (os.getenv(LOG_LEVEL_ENV_VAR) or DEFAULT_LOG_LEVEL).upper()
    if logging.getLevelName(log_level) == f"Level {log_level}":
        raise SettingsError(
            f"{LOG_LEVEL_ENV_VAR} must be a logging level name, got '{log_level}'."
        )
    return Settings(
        log_level=log_level,
        plugins_disabled=os.getenv(PLUGINS_DISABLED_ENV_VAR) == "1",
    )
