"""Azure Dev Center data plane client."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from envdeck.lib.errors import CloudSDKNotInstalledError, ConfigError
from envdeck.lib.logging_config import get_logger
from envdeck.models.devcenter import (
    DevCenterConfig,
    EnvironmentDefinition,
    EnvironmentDefinitionParameter,
    EnvironmentProvisioningState,
    EnvironmentSnapshot,
    EnvironmentSpec,
    EnvironmentType,
    ParameterType,
)

if TYPE_CHECKING:
    from azure.core.credentials import TokenCredential
    from azure.core.polling import LROPoller
    from azure.developer.devcenter import DevCenterClient as SDKDevCenterClient

logger = get_logger(__name__)


def read_field(obj: Any, attr: str, key: str | None = None, default: Any = None) -> Any:
    """Read a field from an SDK model or a raw JSON dict.

    SDK models expose snake_case attributes while raw payloads use the REST
    camelCase keys; both shapes are returned by different SDK versions.
    """
    if obj is None:
        return default
    value = getattr(obj, attr, None)
    if value is None and isinstance(obj, Mapping):
        value = obj.get(key or attr)
    return default if value is None else value


class AzureOperationPoller:
    """Awaitable wrapper around a synchronous azure-core LROPoller.

    LROPoller polls on its own background thread, so wait() only checks
    done() between sleeps and stays cancellable.
    """

    def __init__(self, poller: LROPoller[Any], interval: float = 1.0) -> None:
        self._poller = poller
        self._interval = interval

    async def wait(self) -> Any:
        """Wait until the long-running operation completes."""
        while not self._poller.done():
            await asyncio.sleep(self._interval)
        return self._poller.result()


class AzureDevCenterClient:
    """Dev center client backed by azure-developer-devcenter."""

    def __init__(
        self,
        config: DevCenterConfig,
        credential: TokenCredential | None = None,
    ) -> None:
        """Initialize the client for a dev center endpoint.

        Raises:
            ConfigError: If no endpoint is configured
            CloudSDKNotInstalledError: If the Azure SDK is missing
        """
        if not config.endpoint:
            raise ConfigError(
                "platform.config.endpoint",
                "A dev center endpoint is required. Set platform.config.endpoint "
                "or ENVDECK_DEVCENTER_ENDPOINT.",
            )

        try:
            from azure.core.exceptions import ResourceNotFoundError
            from azure.developer.devcenter import DevCenterClient
            from azure.identity import DefaultAzureCredential
        except ImportError as exc:
            raise CloudSDKNotInstalledError(
                provider="azure", sdk_name="azure-developer-devcenter azure-identity"
            ) from exc

        self._not_found: type[Exception] = ResourceNotFoundError
        self._client: SDKDevCenterClient = DevCenterClient(
            config.endpoint, credential or DefaultAzureCredential()
        )

    async def get_environment(
        self, config: DevCenterConfig, name: str
    ) -> EnvironmentSnapshot | None:
        """Return a snapshot of the environment, or None when it does not exist."""
        try:
            environment = await asyncio.to_thread(
                self._client.get_environment, config.project, config.user, name
            )
        except self._not_found:
            return None
        return self._to_snapshot(name, environment)

    async def get_environment_definition(
        self, config: DevCenterConfig
    ) -> EnvironmentDefinition:
        """Return the environment definition configured for the project."""
        definition = await asyncio.to_thread(
            self._client.get_environment_definition,
            config.project,
            config.catalog,
            config.environment_definition,
        )
        return EnvironmentDefinition(
            id=read_field(definition, "id", default=""),
            name=read_field(definition, "name", default=config.environment_definition),
            catalog_name=read_field(
                definition, "catalog_name", "catalogName", default=config.catalog
            ),
            description=read_field(definition, "description", default=""),
            parameters=[
                self._to_parameter(param)
                for param in read_field(definition, "parameters", default=[])
            ],
        )

    async def list_environment_types(
        self, config: DevCenterConfig
    ) -> list[EnvironmentType]:
        """Return the environment types of the project."""
        items = await asyncio.to_thread(
            lambda: list(self._client.list_environment_types(config.project))
        )
        return [
            EnvironmentType(
                name=read_field(item, "name", default=""),
                status=read_field(item, "status", default="Enabled"),
            )
            for item in items
        ]

    async def begin_put_environment(
        self, config: DevCenterConfig, name: str, spec: EnvironmentSpec
    ) -> AzureOperationPoller:
        """Start creating or updating an environment."""
        logger.debug(f"Creating or updating environment '{name}' in {config.project}")
        poller = await asyncio.to_thread(
            self._client.begin_create_or_update_environment,
            config.project,
            config.user,
            name,
            spec.to_body(),
        )
        return AzureOperationPoller(poller)

    async def begin_delete_environment(
        self, config: DevCenterConfig, name: str
    ) -> AzureOperationPoller:
        """Start deleting an environment."""
        logger.debug(f"Deleting environment '{name}' in {config.project}")
        poller = await asyncio.to_thread(
            self._client.begin_delete_environment, config.project, config.user, name
        )
        return AzureOperationPoller(poller)

    @staticmethod
    def _to_snapshot(name: str, environment: Any) -> EnvironmentSnapshot:
        return EnvironmentSnapshot(
            name=read_field(environment, "name", default=name),
            provisioning_state=EnvironmentProvisioningState.parse(
                read_field(environment, "provisioning_state", "provisioningState")
            ),
            resource_group_id=read_field(
                environment, "resource_group_id", "resourceGroupId", default=""
            ),
            environment_type=read_field(
                environment, "environment_type", "environmentType", default=""
            ),
            catalog_name=read_field(
                environment, "catalog_name", "catalogName", default=""
            ),
            environment_definition_name=read_field(
                environment,
                "environment_definition_name",
                "environmentDefinitionName",
                default="",
            ),
            parameters=dict(read_field(environment, "parameters", default={})),
        )

    @staticmethod
    def _to_parameter(param: Any) -> EnvironmentDefinitionParameter:
        raw_type = str(read_field(param, "type", default="string")).lower()
        try:
            param_type = ParameterType(raw_type)
        except ValueError:
            param_type = ParameterType.STRING
        return EnvironmentDefinitionParameter(
            id=read_field(param, "id"),
            name=read_field(param, "name", default=""),
            description=read_field(param, "description", default=""),
            type=param_type,
            default=read_field(param, "default"),
            read_only=bool(read_field(param, "read_only", "readOnly", default=False)),
            required=bool(read_field(param, "required", default=False)),
            allowed=list(read_field(param, "allowed", default=[])),
        )
