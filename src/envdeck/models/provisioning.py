"""Pydantic models for provisioning requests and results."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ProvisioningOptions(BaseModel):
    """Options passed to a provisioning provider at initialization.

    Attributes:
        path: Directory that would hold IaC templates for the project
        provider: Provider kind selected in the project file
    """

    model_config = ConfigDict(extra="forbid")

    path: str = Field(default="infra", description="Infrastructure template path")
    provider: str = Field(default="devcenter", description="Provider kind")


class DestroyOptions(BaseModel):
    """Options controlling an environment destroy."""

    model_config = ConfigDict(extra="forbid")

    force: bool = Field(default=False, description="Skip the confirmation prompt")


class InputParameter(BaseModel):
    """A parameter value used for a deployment, with its declared type."""

    type: str
    default_value: Any = None
    value: Any = None


class OutputParameter(BaseModel):
    """A deployment output value."""

    type: str = "string"
    value: Any = None


class DeployResult(BaseModel):
    """Result of a successful deploy."""

    parameters: dict[str, InputParameter] = Field(default_factory=dict)
    outputs: dict[str, OutputParameter] = Field(default_factory=dict)


class DestroyResult(BaseModel):
    """Result of a successful destroy."""

    invalidated_env_keys: list[str] = Field(default_factory=list)


class StateResult(BaseModel):
    """Current outputs of a provisioned environment."""

    outputs: dict[str, OutputParameter] = Field(default_factory=dict)
