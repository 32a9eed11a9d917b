"""Collaborator contracts used by the dev center provision provider.

The provider and its progress watcher only talk to the outside world through
these protocols. envdeck.provision.devcenter provides the Azure-backed
implementations; tests substitute in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any, Protocol

from envdeck.lib.ui.spinner import StepResult
from envdeck.models.devcenter import (
    DeploymentHandle,
    DevCenterConfig,
    EnvironmentDefinition,
    EnvironmentSnapshot,
    EnvironmentSpec,
    EnvironmentType,
)
from envdeck.models.environment_state import EnvironmentRecord
from envdeck.models.provisioning import OutputParameter

DeploymentPredicate = Callable[[DeploymentHandle], bool]


class OperationPoller(Protocol):
    """Handle on a remote long-running operation."""

    async def wait(self) -> Any:
        """Block until the operation finishes; raise if it failed."""
        ...


class DevCenterClient(Protocol):
    """Dev center data plane operations."""

    async def get_environment(
        self, config: DevCenterConfig, name: str
    ) -> EnvironmentSnapshot | None:
        """Return the environment, or None when it does not exist."""
        ...

    async def get_environment_definition(
        self, config: DevCenterConfig
    ) -> EnvironmentDefinition:
        """Return the configured environment definition."""
        ...

    async def list_environment_types(
        self, config: DevCenterConfig
    ) -> list[EnvironmentType]:
        """Return the environment types available to the project."""
        ...

    async def begin_put_environment(
        self, config: DevCenterConfig, name: str, spec: EnvironmentSpec
    ) -> OperationPoller:
        """Start creating or updating an environment."""
        ...

    async def begin_delete_environment(
        self, config: DevCenterConfig, name: str
    ) -> OperationPoller:
        """Start deleting an environment."""
        ...


class ProgressReporter(Protocol):
    """Stateful reporter bound to a single deployment."""

    async def report_progress(self, since: datetime) -> datetime:
        """Report events newer than ``since``; return the new watermark."""
        ...


class EnvironmentManager(Protocol):
    """Reads the infrastructure side of an environment."""

    async def find_deployment(
        self,
        config: DevCenterConfig,
        snapshot: EnvironmentSnapshot,
        predicate: DeploymentPredicate,
    ) -> DeploymentHandle | None:
        """Return the newest deployment of the environment matching ``predicate``."""
        ...

    async def outputs(
        self, config: DevCenterConfig, snapshot: EnvironmentSnapshot
    ) -> dict[str, OutputParameter]:
        """Return the outputs of the environment's latest deployment."""
        ...

    def progress_display(self, deployment: DeploymentHandle) -> ProgressReporter:
        """Return a progress reporter bound to ``deployment``."""
        ...


class EnvironmentStatusSource(Protocol):
    """What the environment watch loop polls."""

    async def get_environment_snapshot(self, name: str) -> EnvironmentSnapshot | None:
        """Return the current snapshot of environment ``name``."""
        ...

    async def find_deployment(
        self, snapshot: EnvironmentSnapshot, predicate: DeploymentPredicate
    ) -> DeploymentHandle | None:
        """Return the first deployment in the snapshot's resource group matching."""
        ...


class ProgressSource(Protocol):
    """What the progress watch loop reports through."""

    def progress_display(self, deployment: DeploymentHandle) -> ProgressReporter:
        """Return a progress reporter bound to ``deployment``."""
        ...


class Console(Protocol):
    """Interactive output sink shared by the provider and the watch loops."""

    def message(self, text: str) -> None:
        """Write a line of output."""
        ...

    def show_spinner(self, text: str) -> None:
        """Start (or retitle) the step spinner."""
        ...

    def stop_spinner(self, text: str, result: StepResult) -> None:
        """Stop the spinner and print the step outcome."""
        ...

    def confirm(self, message: str, default: bool = False) -> bool:
        """Ask a yes/no question."""
        ...


class Prompter(Protocol):
    """Interactive prompts for missing configuration and parameters."""

    async def prompt_for_config(self, config: DevCenterConfig) -> DevCenterConfig:
        """Fill in missing dev center settings."""
        ...

    async def prompt_environment_type(
        self, config: DevCenterConfig
    ) -> EnvironmentType:
        """Pick one of the project's environment types."""
        ...

    async def prompt_parameters(
        self, record: EnvironmentRecord, definition: EnvironmentDefinition
    ) -> dict[str, Any]:
        """Collect values for the definition's parameters."""
        ...


class EnvironmentRepository(Protocol):
    """Persistence for per-environment configuration."""

    def save(self, record: EnvironmentRecord) -> EnvironmentRecord:
        """Persist the environment record."""
        ...
