"""Schema engine configuration loaded from environment variables.

The engine itself never reads the environment.  Callers load a
:class:`Settings` object once and derive option models from it with
``BuildOptions.from_settings`` / ``GenerateOptions.from_settings`` /
``ResolveOptions.from_settings``.
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class DefinitionsKey(str, Enum):
    """Key under which generated JSON Schema stores referenced schemas."""

    DEFINITIONS = "definitions"
    DEFS = "$defs"


class Settings(BaseSettings):
    """Engine settings loaded from environment variables with SCHEMA_ENGINE_ prefix."""

    model_config = SettingsConfigDict(
        env_prefix="SCHEMA_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    debug: bool = False

    # Builder
    strict_default: bool = False
    materialize_default: bool = False

    # Generator
    definitions_key: DefinitionsKey = DefinitionsKey.DEFINITIONS

    # Resolver
    resolve_max_depth: int = 10

    # Profiles
    default_profile: str = "generic"

    @field_validator("resolve_max_depth")
    @classmethod
    def non_negative_depth(cls, v: int) -> int:
        if v < 0:
            raise ValueError("resolve_max_depth must be >= 0")
        return v

    @field_validator("default_profile")
    @classmethod
    def normalise_profile(cls, v: str) -> str:
        return v.strip().lower()


def load_settings(**overrides: object) -> Settings:
    """Load settings from environment, with optional overrides for testing."""
    settings = Settings(**overrides)  # type: ignore[arg-type]

    if settings.debug:
        logger.info(
            "Loaded schema engine settings: strict_default=%s, definitions_key=%s, default_profile=%s",
            settings.strict_default,
            settings.definitions_key.value,
            settings.default_profile,
        )

    return settings
