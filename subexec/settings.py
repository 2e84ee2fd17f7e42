from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, field_validator

ENV_PREFIX = "SUBEXEC_"


def _env_enabled(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() not in {"0", "false", "no", "off"}


class ExecutorSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    elevation_program: str = "sudo"
    log_commands: bool = False

    @field_validator("elevation_program")
    @classmethod
    def validate_elevation_program(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("elevation_program must not be empty")
        return value

    @classmethod
    def from_env(cls) -> ExecutorSettings:
        elevation = os.environ.get(f"{ENV_PREFIX}ELEVATION_PROGRAM", "").strip()
        return cls(
            elevation_program=elevation or "sudo",
            log_commands=_env_enabled(f"{ENV_PREFIX}LOG_COMMANDS", False),
        )
