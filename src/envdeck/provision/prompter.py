"""Interactive prompts for dev center settings and environment parameters."""

from __future__ import annotations

import json
from typing import Any

import click

from envdeck.config.defaults import PROVISION_PARAMETERS_CONFIG_PATH
from envdeck.lib.errors import ConfigError
from envdeck.models.devcenter import (
    DevCenterConfig,
    EnvironmentDefinition,
    EnvironmentDefinitionParameter,
    EnvironmentType,
    ParameterType,
)
from envdeck.models.environment_state import EnvironmentRecord
from envdeck.provision.protocols import DevCenterClient

_CONFIG_PROMPTS: tuple[tuple[str, str], ...] = (
    ("name", "Dev center name"),
    ("project", "Dev center project"),
    ("catalog", "Catalog"),
    ("environment_definition", "Environment definition"),
)


class ClickPrompter:
    """Prompts on the terminal with click.

    With ``interactive=False`` no prompt is ever shown: missing required values
    raise ConfigError and optional parameters fall back to their defaults.
    """

    def __init__(self, client: DevCenterClient, interactive: bool = True) -> None:
        self._client = client
        self._interactive = interactive

    async def prompt_for_config(self, config: DevCenterConfig) -> DevCenterConfig:
        """Ask for each required dev center setting that is still empty."""
        updates: dict[str, str] = {}
        for field, label in _CONFIG_PROMPTS:
            if getattr(config, field):
                continue
            if not self._interactive:
                raise ConfigError(
                    f"platform.config.{field}",
                    f"{label} is not configured and prompting is disabled",
                )
            updates[field] = click.prompt(label, type=str).strip()
        return config.model_copy(update=updates) if updates else config

    async def prompt_environment_type(self, config: DevCenterConfig) -> EnvironmentType:
        """Pick an environment type enabled for the project."""
        env_types = [
            env_type
            for env_type in await self._client.list_environment_types(config)
            if env_type.status.lower() == "enabled"
        ]
        if not env_types:
            raise ConfigError(
                "platform.config.environment_type",
                f"No enabled environment types found in project '{config.project}'",
            )
        if len(env_types) == 1:
            return env_types[0]
        if not self._interactive:
            raise ConfigError(
                "platform.config.environment_type",
                "Multiple environment types are available; set one explicitly",
            )

        names = [env_type.name for env_type in env_types]
        choice = click.prompt(
            "Select an environment type",
            type=click.Choice(names, case_sensitive=False),
            default=names[0],
        )
        return next(t for t in env_types if t.name.lower() == choice.lower())

    async def prompt_parameters(
        self, record: EnvironmentRecord, definition: EnvironmentDefinition
    ) -> dict[str, Any]:
        """Collect a value for every parameter of the environment definition.

        Values already stored in the environment config are reused, read-only
        parameters take their default, and everything else is prompted for.
        """
        values: dict[str, Any] = {}
        for param in definition.parameters:
            stored = record.get(f"{PROVISION_PARAMETERS_CONFIG_PATH}.{param.id}")
            if stored is not None:
                values[param.id] = stored
                continue
            if param.read_only:
                if param.default is not None:
                    values[param.id] = param.default
                continue
            value = self._prompt_parameter(param)
            if value is not None:
                values[param.id] = value
        return values

    def _prompt_parameter(self, param: EnvironmentDefinitionParameter) -> Any:
        if not self._interactive:
            if param.default is None and param.required:
                raise ConfigError(
                    f"{PROVISION_PARAMETERS_CONFIG_PATH}.{param.id}",
                    f"Parameter '{param.display_name}' has no value and "
                    "prompting is disabled",
                )
            return param.default

        label = param.display_name
        if param.description:
            label = f"{label} ({param.description})"

        if param.type == ParameterType.BOOLEAN:
            return click.confirm(label, default=bool(param.default))

        if param.allowed:
            choices = [str(item) for item in param.allowed]
            default = str(param.default) if param.default is not None else None
            selected = click.prompt(
                label, type=click.Choice(choices), default=default
            )
            return param.allowed[choices.index(selected)]

        if param.type == ParameterType.INTEGER:
            return click.prompt(label, type=int, default=param.default)

        if param.type == ParameterType.NUMBER:
            return click.prompt(label, type=float, default=param.default)

        if param.type in (ParameterType.ARRAY, ParameterType.OBJECT):
            default = json.dumps(param.default) if param.default is not None else None
            raw = click.prompt(f"{label} [JSON]", type=str, default=default)
            try:
                return json.loads(raw)
            except json.JSONDecodeError as e:
                raise ConfigError(
                    f"{PROVISION_PARAMETERS_CONFIG_PATH}.{param.id}",
                    f"Invalid JSON for parameter '{param.display_name}': {e}",
                ) from e

        if not param.required:
            value = click.prompt(
                label, type=str, default=param.default or "", show_default=False
            )
            return value or None
        return click.prompt(label, type=str, default=param.default)
