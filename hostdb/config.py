"""hostdb: Configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. System config: /etc/hostdb/config.yaml
    3. User config:   ~/.hostdb/config.yaml
    4. An explicit file passed to ``Settings.load()`` (``--config`` on the CLI)
    5. Environment variables prefixed with HOSTDB_

Parameter values live under ``parameters`` and are looked up by parameter
name.  Parameter names usually contain dashes, which environment variable
names cannot carry, so set them in YAML::

    parameters:
      opengauss-password: "Secret@123"
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class ImageOverride(BaseModel):
    """Replace the registry, image or tag a builder extension would use."""

    registry: str | None = None
    image: str | None = None
    tag: str | None = None


class ImagesConfig(BaseModel):
    """Per-engine image overrides.  Unset fields keep the built-in tags."""

    opengauss: ImageOverride = Field(default_factory=ImageOverride)
    dmdb: ImageOverride = Field(default_factory=ImageOverride)
    kingbasees: ImageOverride = Field(default_factory=ImageOverride)
    mongodb: ImageOverride = Field(default_factory=ImageOverride)
    pgadmin: ImageOverride = Field(default_factory=ImageOverride)
    pgweb: ImageOverride = Field(default_factory=ImageOverride)


class HealthConfig(BaseModel):
    default_timeout_seconds: Annotated[float, Field(gt=0, le=300)] = Field(
        default=30.0,
        description="Timeout applied to health checks registered without their own.",
    )
    wait_interval_seconds: Annotated[float, Field(gt=0, le=60)] = Field(
        default=2.0,
        description="Delay between two health-check rounds while waiting for a resource.",
    )
    wait_timeout_seconds: Annotated[float, Field(gt=0, le=3600)] = Field(
        default=180.0,
        description="Default deadline for wait_for_resource_healthy().",
    )


class RuntimeConfig(BaseModel):
    docker_binary: str = "docker"
    network: str | None = Field(
        default=None,
        description="Docker network shared by all containers. Defaults to '<app_name>-network'.",
    )
    bind_host: str = Field(
        default="localhost",
        description="Host name written into allocated endpoints (connection strings).",
    )
    command_timeout_seconds: Annotated[int, Field(ge=5, le=3600)] = 600


class LoggingConfig(BaseModel):
    level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    format: Literal["json", "console"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="HOSTDB_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    images: ImagesConfig = Field(default_factory=ImagesConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    parameters: dict[str, str] = Field(
        default_factory=dict,
        description="Parameter values keyed by parameter name.",
    )

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from file + environment variables."""
        data: dict[str, object] = {}

        candidates = [
            Path("/etc/hostdb/config.yaml"),
            Path.home() / ".hostdb" / "config.yaml",
        ]
        if config_file:
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                import yaml  # lazy import, only needed when a file exists

                with path.open() as f:
                    loaded = yaml.safe_load(f) or {}
                    data.update(loaded)

        return cls(**data)

    def image_for(
        self, engine: str, registry: str, image: str, tag: str
    ) -> tuple[str, str, str]:
        """Apply the override configured for *engine* to the built-in image."""
        override: ImageOverride | None = getattr(self.images, engine, None)
        if override is None:
            return registry, image, tag
        return (
            override.registry or registry,
            override.image or image,
            override.tag or tag,
        )


# Module-level singleton, replaced by ``Settings.load()`` from the CLI.
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def override_settings(settings: Settings) -> None:
    """Replace the module-level singleton. Used in tests."""
    global _settings
    _settings = settings
