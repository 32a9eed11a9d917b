"""Azure-backed collaborators for the dev center provision provider."""

from __future__ import annotations

from envdeck.lib.errors import CloudSDKNotInstalledError
from envdeck.models.devcenter import DevCenterConfig
from envdeck.provision.devcenter.client import AzureDevCenterClient
from envdeck.provision.devcenter.progress import DeploymentProgressDisplay
from envdeck.provision.devcenter.resources import AzureEnvironmentManager
from envdeck.provision.protocols import Console


def create_azure_collaborators(
    config: DevCenterConfig, console: Console
) -> tuple[AzureDevCenterClient, AzureEnvironmentManager]:
    """Create the dev center client and environment manager.

    Both share one DefaultAzureCredential so the user signs in once.

    Raises:
        CloudSDKNotInstalledError: If the Azure SDK is missing
        ConfigError: If no dev center endpoint is configured
    """
    try:
        from azure.identity import DefaultAzureCredential
    except ImportError as exc:
        raise CloudSDKNotInstalledError(
            provider="azure", sdk_name="azure-identity"
        ) from exc

    credential = DefaultAzureCredential()
    client = AzureDevCenterClient(config, credential=credential)
    manager = AzureEnvironmentManager(console, credential=credential)
    return client, manager


__all__ = [
    "AzureDevCenterClient",
    "AzureEnvironmentManager",
    "DeploymentProgressDisplay",
    "create_azure_collaborators",
]
