"""Per-environment configuration persistence."""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from envdeck.config.defaults import STATE_DIR_NAME
from envdeck.lib.errors import ConfigError, DeploymentError
from envdeck.models.environment_state import EnvironmentRecord

STATE_VERSION = "1.0"
CONFIG_FILE_NAME = "config.json"

ENVIRONMENT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,62}$")


def get_state_dir(project_dir: Path) -> Path:
    """Return the envdeck state directory for a project."""
    return project_dir / STATE_DIR_NAME


class EnvironmentStore:
    """Reads and writes environment records under ``.envdeck/<env>/config.json``."""

    def __init__(self, project_dir: Path) -> None:
        """Initialize the store for a project directory."""
        self.root = get_state_dir(project_dir)

    def path_for(self, name: str) -> Path:
        """Return the config file path for environment ``name``.

        Raises:
            ConfigError: If the name is not a valid environment name
        """
        if not ENVIRONMENT_NAME_PATTERN.match(name):
            raise ConfigError(
                "environment",
                f"Invalid environment name '{name}'. Use letters, digits, '-' "
                "and '_' (max 63 characters), starting with a letter or digit.",
            )
        return self.root / name / CONFIG_FILE_NAME

    def names(self) -> list[str]:
        """Return the names of environments that have a saved config."""
        if not self.root.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.root.iterdir()
            if (entry / CONFIG_FILE_NAME).is_file()
        )

    def load(self, name: str) -> EnvironmentRecord:
        """Load an environment record, or a fresh one when none is saved."""
        path = self.path_for(name)
        if not path.exists():
            return EnvironmentRecord(name=name, version=STATE_VERSION)

        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise DeploymentError(
                operation="state",
                message=f"Failed to read environment config at {path}: {exc}",
            ) from exc

        if not content.strip():
            return EnvironmentRecord(name=name, version=STATE_VERSION)

        try:
            record = EnvironmentRecord.model_validate_json(content)
        except ValidationError as exc:
            raise DeploymentError(
                operation="state",
                message=f"Invalid environment config format in {path}: {exc}",
            ) from exc

        if record.name != name:
            record = record.model_copy(update={"name": name})
        return record

    def save(self, record: EnvironmentRecord) -> EnvironmentRecord:
        """Persist an environment record and return the saved copy."""
        path = self.path_for(record.name)
        saved = record.model_copy(
            update={
                "version": record.version or STATE_VERSION,
                "updated_at": datetime.now(timezone.utc),
            }
        )
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            payload = json.dumps(saved.model_dump(mode="json"), indent=2, sort_keys=True)
            path.write_text(payload, encoding="utf-8")
        except OSError as exc:
            raise DeploymentError(
                operation="state",
                message=f"Failed to write environment config to {path}: {exc}",
            ) from exc
        return saved
