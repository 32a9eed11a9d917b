"""Resource group and ARM deployment access for dev center environments."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from envdeck.config.defaults import (
    DEPLOYMENT_TAG_DEVCENTER_NAME,
    DEPLOYMENT_TAG_DEVCENTER_PROJECT,
    DEPLOYMENT_TAG_ENVIRONMENT_NAME,
    DEPLOYMENT_TAG_ENVIRONMENT_TYPE,
)
from envdeck.lib.errors import CloudSDKNotInstalledError
from envdeck.lib.logging_config import get_logger
from envdeck.models.devcenter import (
    DeploymentHandle,
    DeploymentProvisioningState,
    DevCenterConfig,
    EnvironmentSnapshot,
)
from envdeck.models.provisioning import OutputParameter
from envdeck.provision.devcenter.client import read_field
from envdeck.provision.devcenter.progress import DeploymentProgressDisplay
from envdeck.provision.protocols import Console, DeploymentPredicate

if TYPE_CHECKING:
    from azure.core.credentials import TokenCredential
    from azure.mgmt.resource import ResourceManagementClient

logger = get_logger(__name__)


def environment_tags(
    config: DevCenterConfig, snapshot: EnvironmentSnapshot
) -> dict[str, str]:
    """Tags dev center stamps on the deployments of an environment."""
    return {
        DEPLOYMENT_TAG_DEVCENTER_NAME: config.name,
        DEPLOYMENT_TAG_DEVCENTER_PROJECT: config.project,
        DEPLOYMENT_TAG_ENVIRONMENT_TYPE: snapshot.environment_type
        or config.environment_type,
        DEPLOYMENT_TAG_ENVIRONMENT_NAME: snapshot.name,
    }


def tags_match(expected: dict[str, str], actual: dict[str, str]) -> bool:
    """True when every expected tag present on the deployment has the same value.

    Deployments carrying none of the tags are accepted.
    """
    for key, value in expected.items():
        if key in actual and actual[key].lower() != value.lower():
            return False
    return True


def _as_utc(value: Any) -> Any:
    if value is None:
        return datetime.min.replace(tzinfo=timezone.utc)
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    # ISO strings from raw payloads are parsed by the model
    return value


class AzureEnvironmentManager:
    """Reads ARM deployments inside an environment's resource group."""

    def __init__(
        self,
        console: Console,
        credential: TokenCredential | None = None,
    ) -> None:
        """Initialize the manager.

        Raises:
            CloudSDKNotInstalledError: If the Azure SDK is missing
        """
        try:
            from azure.identity import DefaultAzureCredential
            from azure.mgmt.resource import ResourceManagementClient
        except ImportError as exc:
            raise CloudSDKNotInstalledError(
                provider="azure", sdk_name="azure-mgmt-resource azure-identity"
            ) from exc

        self._console = console
        self._credential = credential or DefaultAzureCredential()
        self._client_type: type[ResourceManagementClient] = ResourceManagementClient
        self._clients: dict[str, ResourceManagementClient] = {}

    def resource_client(self, subscription_id: str) -> ResourceManagementClient:
        """Return a (cached) resource management client for a subscription."""
        client = self._clients.get(subscription_id)
        if client is None:
            client = self._client_type(self._credential, subscription_id)
            self._clients[subscription_id] = client
        return client

    async def list_deployments(
        self, config: DevCenterConfig, snapshot: EnvironmentSnapshot
    ) -> list[DeploymentHandle]:
        """List the environment's deployments, newest first."""
        subscription_id = snapshot.subscription_id
        resource_group = snapshot.resource_group_name
        client = self.resource_client(subscription_id)

        items = await asyncio.to_thread(
            lambda: list(client.deployments.list_by_resource_group(resource_group))
        )

        expected = environment_tags(config, snapshot)
        handles = [
            self._to_handle(item, subscription_id, resource_group) for item in items
        ]
        matching = [handle for handle in handles if tags_match(expected, handle.tags)]
        return sorted(matching, key=lambda handle: handle.timestamp, reverse=True)

    async def find_deployment(
        self,
        config: DevCenterConfig,
        snapshot: EnvironmentSnapshot,
        predicate: DeploymentPredicate,
    ) -> DeploymentHandle | None:
        """Return the newest deployment of the environment matching ``predicate``."""
        for handle in await self.list_deployments(config, snapshot):
            if predicate(handle):
                return handle
        return None

    async def outputs(
        self, config: DevCenterConfig, snapshot: EnvironmentSnapshot
    ) -> dict[str, OutputParameter]:
        """Return the outputs of the newest succeeded deployment."""
        if not snapshot.has_resource_group:
            return {}

        latest = await self.find_deployment(
            config,
            snapshot,
            lambda handle: handle.provisioning_state
            == DeploymentProvisioningState.SUCCEEDED,
        )
        if latest is None:
            logger.debug(f"No succeeded deployment found for '{snapshot.name}'")
            return {}

        outputs: dict[str, OutputParameter] = {}
        for key, output in latest.outputs.items():
            outputs[key.upper()] = OutputParameter(
                type=str(read_field(output, "type", default="string")).lower(),
                value=read_field(output, "value"),
            )
        return outputs

    def progress_display(self, deployment: DeploymentHandle) -> DeploymentProgressDisplay:
        """Return a progress display bound to ``deployment``."""
        return DeploymentProgressDisplay(
            console=self._console,
            client=self.resource_client(deployment.subscription_id),
            deployment=deployment,
        )

    @staticmethod
    def _to_handle(item: Any, subscription_id: str, resource_group: str) -> DeploymentHandle:
        properties = read_field(item, "properties")
        return DeploymentHandle(
            id=read_field(item, "id", default=""),
            name=read_field(item, "name", default=""),
            resource_group=resource_group,
            subscription_id=subscription_id,
            provisioning_state=DeploymentProvisioningState.parse(
                read_field(properties, "provisioning_state", "provisioningState")
            ),
            timestamp=_as_utc(read_field(properties, "timestamp")),
            tags=dict(read_field(item, "tags", default={})),
            outputs=dict(read_field(properties, "outputs", default={})),
        )
