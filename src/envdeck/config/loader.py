"""Configuration loader for envdeck projects.

This module provides the ConfigLoader class for loading the ``envdeck.yaml``
project file, resolving the dev center settings for an environment, and
reading the runtime switches that control provisioning progress tracking.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from envdeck.config.defaults import DEVCENTER_CONFIG_PATH, PROJECT_FILE_NAME
from envdeck.lib.errors import ConfigError
from envdeck.models.config import ProjectConfig, WatchSettings
from envdeck.models.devcenter import DevCenterConfig
from envdeck.models.environment_state import EnvironmentRecord

logger = logging.getLogger(__name__)

# Environment variable to WatchSettings field mapping
ENV_VAR_MAP = {
    "progress_disabled": "ENVDECK_DEBUG_PROVISION_PROGRESS_DISABLE",
    "initial_delay": "ENVDECK_PROVISION_INITIAL_DELAY",
    "environment_delay": "ENVDECK_PROVISION_ENVIRONMENT_DELAY",
    "progress_delay": "ENVDECK_PROVISION_PROGRESS_DELAY",
}

DEVCENTER_ENDPOINT_ENV_VAR = "ENVDECK_DEVCENTER_ENDPOINT"

_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


def _parse_env_value(field_name: str, value: str) -> Any:
    """Parse environment variable value to the type of a WatchSettings field.

    Raises:
        ValueError: If value cannot be parsed
    """
    if field_name == "progress_disabled":
        normalized = value.strip().lower()
        if normalized in ("true", "1", "yes", "on", "t"):
            return True
        if normalized in ("false", "0", "no", "off", "f", ""):
            return False
        raise ValueError(f"Not a boolean: {value!r}")
    return float(value)


def _get_env_value(field_name: str, env_vars: Mapping[str, str]) -> Any | None:
    """Get a parsed environment variable value for a field.

    Returns:
        Parsed value or None if not set or unparseable
    """
    env_var_name = ENV_VAR_MAP.get(field_name)
    if not env_var_name or env_var_name not in env_vars:
        return None

    try:
        return _parse_env_value(field_name, env_vars[env_var_name])
    except ValueError:
        logger.warning(
            f"Ignoring {env_var_name}={env_vars[env_var_name]!r}: invalid value"
        )
        return None


def substitute_env_vars(text: str, env_vars: Mapping[str, str] | None = None) -> str:
    """Replace ``${VAR}`` references with environment variable values.

    Raises:
        ConfigError: If a referenced variable is not set
    """
    source = os.environ if env_vars is None else env_vars

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in source:
            raise ConfigError(name, f"Environment variable '{name}' is not set")
        return source[name]

    return _ENV_VAR_PATTERN.sub(_replace, text)


def _format_validation_errors(exc: PydanticValidationError) -> str:
    lines = []
    for error in exc.errors():
        loc = ".".join(str(item) for item in error.get("loc", ())) or "unknown"
        lines.append(f"Field '{loc}': {error.get('msg', 'Unknown error')}")
    return "\n".join(lines) or "Validation failed with unknown error"


class ConfigLoader:
    """Loads project configuration and resolves per-environment settings.

    Configuration precedence for dev center settings (highest to lowest):
    1. Environment config (``platform.config`` in the environment record)
    2. Project file (``platform.config`` in envdeck.yaml)
    3. ENVDECK_DEVCENTER_ENDPOINT for the endpoint only
    """

    def __init__(self, env_vars: Mapping[str, str] | None = None) -> None:
        """Initialize the loader.

        Args:
            env_vars: Environment mapping to read from (defaults to os.environ)
        """
        self._env_vars = os.environ if env_vars is None else env_vars

    def find_project_file(self, start: Path) -> Path:
        """Locate envdeck.yaml in ``start`` or any parent directory.

        Raises:
            ConfigError: If no project file exists
        """
        start = start.resolve()
        for directory in (start, *start.parents):
            candidate = directory / PROJECT_FILE_NAME
            if candidate.is_file():
                return candidate
        raise ConfigError(
            "project",
            f"No {PROJECT_FILE_NAME} found in {start} or any parent directory.",
        )

    def load_project(self, path: Path) -> ProjectConfig:
        """Load and validate an envdeck.yaml project file.

        Raises:
            ConfigError: If the file cannot be read, parsed, or validated
        """
        try:
            raw_text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(
                "project", f"Failed to read project file {path}: {e}"
            ) from e

        try:
            content = yaml.safe_load(substitute_env_vars(raw_text, self._env_vars))
        except yaml.YAMLError as e:
            raise ConfigError(
                "yaml_parse", f"Failed to parse YAML file {path}: {e}"
            ) from e

        if not isinstance(content, dict):
            raise ConfigError(
                "project", f"Project file {path} must contain a mapping"
            )

        try:
            return ProjectConfig(**content)
        except PydanticValidationError as e:
            raise ConfigError(
                "project_validation",
                f"Invalid project configuration in {path}:\n"
                f"{_format_validation_errors(e)}",
            ) from e

    def resolve_devcenter_config(
        self, project: ProjectConfig, record: EnvironmentRecord
    ) -> DevCenterConfig:
        """Merge project and environment dev center settings.

        Raises:
            ConfigError: If the environment holds invalid dev center values
        """
        config = project.platform.config
        env_values = record.get(DEVCENTER_CONFIG_PATH, {}) or {}
        if env_values:
            try:
                config = config.merged_with(DevCenterConfig(**env_values))
            except PydanticValidationError as e:
                raise ConfigError(
                    DEVCENTER_CONFIG_PATH,
                    f"Invalid dev center settings for environment "
                    f"'{record.name}':\n{_format_validation_errors(e)}",
                ) from e

        endpoint = self._env_vars.get(DEVCENTER_ENDPOINT_ENV_VAR, "")
        if endpoint and not config.endpoint:
            try:
                config = config.merged_with(DevCenterConfig(endpoint=endpoint))
            except PydanticValidationError as e:
                raise ConfigError(
                    DEVCENTER_ENDPOINT_ENV_VAR, _format_validation_errors(e)
                ) from e

        return config

    def load_watch_settings(self) -> WatchSettings:
        """Build WatchSettings from ENVDECK_* environment variables.

        Read once per command and threaded into the progress watcher so the
        watch loops never consult the environment themselves.
        """
        values: dict[str, Any] = {}
        for field in WatchSettings.model_fields:
            env_value = _get_env_value(field, self._env_vars)
            if env_value is not None:
                values[field] = env_value

        try:
            return WatchSettings(**values)
        except PydanticValidationError as e:
            raise ConfigError(
                "watch_settings",
                f"Invalid progress tracking settings:\n{_format_validation_errors(e)}",
            ) from e

