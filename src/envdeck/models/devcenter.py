"""Pydantic models for dev center configuration and remote resources.

This module defines the dev center settings an environment is provisioned
against, the environment definition pulled from the catalog, and the
point-in-time views of remote environments and infrastructure deployments
used while watching provisioning progress.
"""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

# /subscriptions/<id>/resourceGroups/<name>
RESOURCE_GROUP_ID_PATTERN = re.compile(
    r"^/subscriptions/(?P<subscription>[^/]+)/resourceGroups/(?P<name>[^/]+)/?$",
    re.IGNORECASE,
)

DEFAULT_USER = "me"


class EnvironmentProvisioningState(str, Enum):
    """Provisioning state reported for a dev center environment."""

    CREATING = "Creating"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    CANCELED = "Canceled"
    UPDATING = "Updating"
    DELETING = "Deleting"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: str | None) -> EnvironmentProvisioningState:
        """Map a raw state string onto the enum, case-insensitively."""
        if not value:
            return cls.UNKNOWN
        for member in cls:
            if member.value.lower() == value.lower():
                return member
        return cls.UNKNOWN


class DeploymentProvisioningState(str, Enum):
    """Provisioning state of an infrastructure deployment."""

    ACCEPTED = "Accepted"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    CANCELED = "Canceled"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: str | None) -> DeploymentProvisioningState:
        """Map a raw state string onto the enum, case-insensitively."""
        if not value:
            return cls.UNKNOWN
        for member in cls:
            if member.value.lower() == value.lower():
                return member
        return cls.UNKNOWN


class ParameterType(str, Enum):
    """Types an environment definition parameter can declare."""

    ARRAY = "array"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    NUMBER = "number"
    OBJECT = "object"
    STRING = "string"


class DevCenterConfig(BaseModel):
    """Dev center settings used to locate and provision an environment.

    Attributes:
        name: Dev center name
        project: Dev center project name
        catalog: Catalog holding the environment definition
        environment_type: Environment type (e.g., Dev, Test)
        environment_definition: Environment definition name in the catalog
        user: User the environment belongs to ("me" for the signed-in user)
        endpoint: Dev center data plane endpoint
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: str = Field(default="", description="Dev center name")
    project: str = Field(default="", description="Dev center project name")
    catalog: str = Field(default="", description="Catalog name")
    environment_type: str = Field(
        default="", alias="environmentType", description="Environment type"
    )
    environment_definition: str = Field(
        default="",
        alias="environmentDefinition",
        description="Environment definition name",
    )
    user: str = Field(default="", description="Environment owner")
    endpoint: str = Field(default="", description="Dev center endpoint URL")

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Require an https endpoint when one is configured."""
        if v and not v.startswith("https://"):
            raise ValueError(f"Invalid dev center endpoint: {v}. Must use https://")
        return v.rstrip("/")

    def missing_fields(self) -> list[str]:
        """Return the required fields that are still empty."""
        required = (
            "name",
            "project",
            "catalog",
            "environment_type",
            "environment_definition",
        )
        return [name for name in required if not getattr(self, name)]

    def ensure_valid(self) -> None:
        """Raise ValueError when a required field is empty."""
        missing = self.missing_fields()
        if missing:
            raise ValueError(f"missing required values: {', '.join(missing)}")

    def merged_with(self, override: DevCenterConfig) -> DevCenterConfig:
        """Return a copy where non-empty fields of ``override`` win."""
        updates = {
            key: value
            for key, value in override.model_dump().items()
            if value not in ("", None)
        }
        return self.model_copy(update=updates)


class EnvironmentDefinitionParameter(BaseModel):
    """A single input parameter declared by an environment definition."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(..., description="Parameter identifier")
    name: str = Field(default="", description="Display name")
    description: str = Field(default="", description="Parameter description")
    type: ParameterType = Field(default=ParameterType.STRING)
    default: Any = Field(default=None, description="Default value")
    read_only: bool = Field(default=False, alias="readOnly")
    required: bool = Field(default=False)
    allowed: list[Any] = Field(default_factory=list, description="Allowed values")

    @property
    def display_name(self) -> str:
        """Name shown when prompting for this parameter."""
        return self.name or self.id


class EnvironmentDefinition(BaseModel):
    """Catalog item describing how an environment is provisioned."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(default="")
    name: str = Field(...)
    catalog_name: str = Field(default="", alias="catalogName")
    description: str = Field(default="")
    parameters: list[EnvironmentDefinitionParameter] = Field(default_factory=list)


class EnvironmentType(BaseModel):
    """An environment type available to a project."""

    model_config = ConfigDict(extra="ignore")

    name: str
    status: str = "Enabled"


class EnvironmentSpec(BaseModel):
    """Request body used to create or update an environment."""

    model_config = ConfigDict(populate_by_name=True)

    catalog_name: str = Field(..., alias="catalogName")
    environment_type: str = Field(..., alias="environmentType")
    environment_definition_name: str = Field(..., alias="environmentDefinitionName")
    parameters: dict[str, Any] = Field(default_factory=dict)

    def to_body(self) -> dict[str, Any]:
        """Serialize to the wire body expected by the dev center API."""
        return self.model_dump(by_alias=True)


class EnvironmentSnapshot(BaseModel):
    """Point-in-time read of a remote dev center environment."""

    model_config = ConfigDict(frozen=True)

    name: str
    provisioning_state: EnvironmentProvisioningState = (
        EnvironmentProvisioningState.UNKNOWN
    )
    resource_group_id: str = ""
    environment_type: str = ""
    catalog_name: str = ""
    environment_definition_name: str = ""
    parameters: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_creating(self) -> bool:
        """True while the remote service is still creating the environment."""
        return self.provisioning_state == EnvironmentProvisioningState.CREATING

    @property
    def has_resource_group(self) -> bool:
        """True once the backing resource group exists."""
        return bool(self.resource_group_id)

    @property
    def subscription_id(self) -> str:
        """Subscription parsed from the resource group id."""
        return self._parse_resource_group_id()[0]

    @property
    def resource_group_name(self) -> str:
        """Resource group name parsed from the resource group id."""
        return self._parse_resource_group_id()[1]

    def _parse_resource_group_id(self) -> tuple[str, str]:
        match = RESOURCE_GROUP_ID_PATTERN.match(self.resource_group_id)
        if not match:
            raise ValueError(
                f"Invalid resource group id for environment '{self.name}': "
                f"'{self.resource_group_id}'"
            )
        return match.group("subscription"), match.group("name")


class DeploymentHandle(BaseModel):
    """An infrastructure deployment discovered inside a resource group."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    resource_group: str
    subscription_id: str = ""
    provisioning_state: DeploymentProvisioningState = (
        DeploymentProvisioningState.UNKNOWN
    )
    timestamp: datetime
    tags: dict[str, str] = Field(default_factory=dict)
    outputs: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_running(self) -> bool:
        """True while the deployment is in progress."""
        return self.provisioning_state == DeploymentProvisioningState.RUNNING
