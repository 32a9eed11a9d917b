"""Project and runtime configuration models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from envdeck.config.defaults import (
    DEFAULT_ENVIRONMENT_DELAY,
    DEFAULT_INITIAL_DELAY,
    DEFAULT_PROGRESS_DELAY,
)
from envdeck.models.devcenter import DevCenterConfig


class InfraConfig(BaseModel):
    """Infrastructure section of the project file."""

    model_config = ConfigDict(extra="forbid")

    provider: str = Field(default="devcenter", description="Provisioning provider")
    path: str = Field(default="infra", description="IaC template directory")


class PlatformConfig(BaseModel):
    """Platform section of the project file."""

    model_config = ConfigDict(extra="forbid")

    type: str = Field(default="devcenter", description="Platform type")
    config: DevCenterConfig = Field(default_factory=DevCenterConfig)


class ProjectConfig(BaseModel):
    """Top-level ``envdeck.yaml`` project file."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Project name")
    infra: InfraConfig = Field(default_factory=InfraConfig)
    platform: PlatformConfig = Field(default_factory=PlatformConfig)


class WatchSettings(BaseModel):
    """Timing and debug switches for provisioning progress tracking.

    Attributes:
        progress_disabled: Skip all progress polling (debug escape hatch)
        initial_delay: Seconds before the first poll of either watch loop
        environment_delay: Seconds between environment/deployment polls
        progress_delay: Seconds between progress reports
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    progress_disabled: bool = Field(default=False)
    initial_delay: float = Field(default=DEFAULT_INITIAL_DELAY, ge=0)
    environment_delay: float = Field(default=DEFAULT_ENVIRONMENT_DELAY, ge=0)
    progress_delay: float = Field(default=DEFAULT_PROGRESS_DELAY, ge=0)
