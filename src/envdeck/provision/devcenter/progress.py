"""Console reporting of ARM deployment operations."""

from __future__ import annotations

import asyncio
import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from envdeck.lib.logging_config import get_logger
from envdeck.lib.ui.colors import highlight, muted
from envdeck.lib.ui.spinner import STEP_MARKERS, StepResult
from envdeck.models.devcenter import DeploymentHandle
from envdeck.provision.devcenter.client import read_field
from envdeck.provision.protocols import Console

if TYPE_CHECKING:
    from azure.mgmt.resource import ResourceManagementClient

logger = get_logger(__name__)

NESTED_DEPLOYMENT_TYPE = "Microsoft.Resources/deployments"
MAX_NESTING_DEPTH = 5

RESOURCE_TYPE_NAMES: dict[str, str] = {
    "microsoft.resources/resourcegroups": "Resource group",
    "microsoft.storage/storageaccounts": "Storage account",
    "microsoft.keyvault/vaults": "Key vault",
    "microsoft.web/sites": "App Service",
    "microsoft.web/serverfarms": "App Service plan",
    "microsoft.app/containerapps": "Container App",
    "microsoft.app/managedenvironments": "Container Apps Environment",
    "microsoft.containerregistry/registries": "Container registry",
    "microsoft.operationalinsights/workspaces": "Log Analytics workspace",
    "microsoft.insights/components": "Application Insights",
    "microsoft.documentdb/databaseaccounts": "Azure Cosmos DB",
    "microsoft.sql/servers": "Azure SQL Server",
    "microsoft.cognitiveservices/accounts": "Azure AI Services",
    "microsoft.managedidentity/userassignedidentities": "Managed Identity",
}

_RESOURCE_GROUP_SEGMENT = re.compile(r"/resourceGroups/(?P<name>[^/]+)", re.IGNORECASE)
_DURATION_PATTERN = re.compile(
    r"^PT(?:(?P<hours>\d+(?:\.\d+)?)H)?(?:(?P<minutes>\d+(?:\.\d+)?)M)?"
    r"(?:(?P<seconds>\d+(?:\.\d+)?)S)?$"
)


def display_resource_type(resource_type: str) -> str:
    """Return a friendly name for an ARM resource type."""
    return RESOURCE_TYPE_NAMES.get(resource_type.lower(), resource_type)


def format_duration(value: str | None) -> str:
    """Render an ISO 8601 duration such as ``PT1M12.5S`` as ``1m12s``."""
    if not value:
        return ""
    match = _DURATION_PATTERN.match(value)
    if match is None:
        return ""
    total = (
        float(match.group("hours") or 0) * 3600
        + float(match.group("minutes") or 0) * 60
        + float(match.group("seconds") or 0)
    )
    minutes, seconds = divmod(int(total), 60)
    return f"{minutes}m{seconds}s" if minutes else f"{seconds}s"


def _as_utc(value: Any) -> datetime | None:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DeploymentProgressDisplay:
    """Prints one line per resource as a deployment creates it.

    The display is stateful: a resource is printed once when it starts
    creating and once more when it finishes, however many times it is polled.
    """

    def __init__(
        self,
        console: Console,
        client: ResourceManagementClient,
        deployment: DeploymentHandle,
    ) -> None:
        self._console = console
        self._client = client
        self._deployment = deployment
        self._displayed: dict[str, StepResult | None] = {}

    async def report_progress(self, since: datetime) -> datetime:
        """Print operations updated after ``since``; return the newest timestamp seen."""
        operations = await self._list_operations(
            self._deployment.resource_group, self._deployment.name, depth=0
        )

        watermark = _as_utc(since) or since
        for operation in sorted(operations, key=lambda op: op[0]):
            timestamp, resource_id, resource_type, resource_name, state, duration = (
                operation
            )
            if timestamp <= watermark and resource_id in self._displayed:
                continue
            watermark = max(watermark, timestamp)

            result = _step_result(state)
            if resource_id in self._displayed and self._displayed[resource_id] == result:
                continue
            self._displayed[resource_id] = result
            self._console.message(
                _format_line(resource_type, resource_name, result, duration)
            )

        return watermark

    async def _list_operations(
        self, resource_group: str, deployment_name: str, depth: int
    ) -> list[tuple[datetime, str, str, str, str, str]]:
        items = await asyncio.to_thread(
            lambda: list(
                self._client.deployment_operations.list(resource_group, deployment_name)
            )
        )

        rows: list[tuple[datetime, str, str, str, str, str]] = []
        for item in items:
            properties = read_field(item, "properties")
            target = read_field(properties, "target_resource", "targetResource")
            resource_id = read_field(target, "id", default="")
            resource_type = read_field(target, "resource_type", "resourceType", default="")
            resource_name = read_field(target, "resource_name", "resourceName", default="")
            if not resource_id or not resource_type:
                continue

            timestamp = _as_utc(read_field(properties, "timestamp"))
            if timestamp is None:
                continue

            if resource_type.lower() == NESTED_DEPLOYMENT_TYPE.lower():
                if depth >= MAX_NESTING_DEPTH:
                    logger.debug(f"Skipping nested deployment '{resource_name}': too deep")
                    continue
                nested_group = _resource_group_of(resource_id) or resource_group
                rows.extend(
                    await self._list_operations(nested_group, resource_name, depth + 1)
                )
                continue

            rows.append(
                (
                    timestamp,
                    resource_id,
                    resource_type,
                    resource_name,
                    read_field(
                        properties, "provisioning_state", "provisioningState", default=""
                    ),
                    read_field(properties, "duration", default=""),
                )
            )
        return rows


def _step_result(state: str) -> StepResult | None:
    state = state.lower()
    if state == "succeeded":
        return StepResult.DONE
    if state == "failed":
        return StepResult.FAILED
    if state == "canceled":
        return StepResult.SKIPPED
    return None


def _format_line(
    resource_type: str, resource_name: str, result: StepResult | None, duration: str
) -> str:
    label = f"{display_resource_type(resource_type)}: {highlight(resource_name)}"
    if result is None:
        return f"  Creating {label}"
    line = f"  {STEP_MARKERS[result]} {label}"
    elapsed = format_duration(duration)
    if result == StepResult.DONE and elapsed:
        line = f"{line} {muted(f'({elapsed})')}"
    return line


def _resource_group_of(resource_id: str) -> str | None:
    match = _RESOURCE_GROUP_SEGMENT.search(resource_id)
    return match.group("name") if match else None
