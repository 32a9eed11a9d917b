"""Environment state models persisted between commands."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EnvironmentRecord(BaseModel):
    """Locally persisted configuration for a single environment.

    Values are stored in a nested dict and addressed with dotted paths such as
    ``platform.config.name`` or ``provision.parameters.location``.
    """

    model_config = ConfigDict(extra="forbid")

    version: str = Field(default="1.0", description="State file version")
    name: str = Field(..., description="Environment name")
    config: dict[str, Any] = Field(
        default_factory=dict, description="Nested environment configuration"
    )
    updated_at: datetime | None = Field(
        default=None, description="Last time the record was saved"
    )

    def get(self, path: str, default: Any = None) -> Any:
        """Return the value at a dotted path, or ``default`` when unset."""
        node: Any = self.config
        for part in path.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, path: str, value: Any) -> None:
        """Set the value at a dotted path, creating intermediate sections."""
        parts = path.split(".")
        if not all(parts):
            raise ValueError(f"Invalid config path: '{path}'")

        node = self.config
        for part in parts[:-1]:
            child = node.get(part)
            if child is None:
                child = {}
                node[part] = child
            elif not isinstance(child, dict):
                raise ValueError(
                    f"Cannot set '{path}': '{part}' already holds a value"
                )
            node = child
        node[parts[-1]] = value

    def unset(self, path: str) -> bool:
        """Remove the value at a dotted path. Returns True if it existed."""
        *parents, leaf = path.split(".")
        node = self.get(".".join(parents), None) if parents else self.config
        if not isinstance(node, dict) or leaf not in node:
            return False
        del node[leaf]
        return True
