"""Application settings sourced from environment variables."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field

PACKAGE_DIR = Path(__file__).resolve().parent
CONFIG_DIR = PACKAGE_DIR


def _env_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _env_int(value: str | None, default: int) -> int:
    if not value:
        return default
    return int(value)


class Settings(BaseModel):
    """Runtime configuration for the world registry."""

    project_name: str = Field(default="World Registry")
    version: str = Field(default="0.1.0")
    security_config_path: str = Field(
        default=str(CONFIG_DIR / "security.yaml"),
        description="Path to the caller identity and selector policy",
    )
    manifest_path: str = Field(
        default=str(CONFIG_DIR / "world.yaml"),
        description="Path to the declarative world manifest",
    )
    default_namespace: str = Field(
        default="dojo", description="Namespace used for tags without a namespace part"
    )
    log_level: str = Field(default="INFO", description="Application log level")
    prometheus_enabled: bool = Field(
        default=False, description="Mirror access decisions into Prometheus counters"
    )
    error_buffer_size: int = Field(
        default=200, gt=0, description="Number of recent denials kept in memory"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process."""

    return Settings(
        project_name=os.getenv("WORLD_PROJECT_NAME", "World Registry"),
        version=os.getenv("WORLD_VERSION", "0.1.0"),
        security_config_path=os.getenv(
            "WORLD_SECURITY_CONFIG", str(CONFIG_DIR / "security.yaml")
        ),
        manifest_path=os.getenv("WORLD_MANIFEST", str(CONFIG_DIR / "world.yaml")),
        default_namespace=os.getenv("WORLD_DEFAULT_NAMESPACE", "dojo"),
        log_level=os.getenv("WORLD_LOG_LEVEL", "INFO"),
        prometheus_enabled=_env_bool(os.getenv("WORLD_PROMETHEUS_ENABLED"), False),
        error_buffer_size=_env_int(os.getenv("WORLD_ERROR_BUFFER_SIZE"), 200),
    )
