"""In-memory collaborators shared by the provisioning tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

from envdeck.lib.ui.spinner import StepResult
from envdeck.models.devcenter import (
    DeploymentHandle,
    DeploymentProvisioningState,
    EnvironmentProvisioningState,
    EnvironmentSnapshot,
)

RESOURCE_GROUP_ID = "/subscriptions/sub-123/resourceGroups/rg1"


def make_snapshot(
    state: EnvironmentProvisioningState = EnvironmentProvisioningState.SUCCEEDED,
    resource_group_id: str = RESOURCE_GROUP_ID,
    name: str = "dev",
) -> EnvironmentSnapshot:
    return EnvironmentSnapshot(
        name=name,
        provisioning_state=state,
        resource_group_id=resource_group_id,
        environment_type="Dev",
    )


def creating_snapshot() -> EnvironmentSnapshot:
    return make_snapshot(EnvironmentProvisioningState.CREATING, resource_group_id="")


def make_deployment(
    timestamp: datetime | None = None,
    state: DeploymentProvisioningState = DeploymentProvisioningState.RUNNING,
    name: str = "deploy-1",
) -> DeploymentHandle:
    return DeploymentHandle(
        id=f"{RESOURCE_GROUP_ID}/providers/Microsoft.Resources/deployments/{name}",
        name=name,
        resource_group="rg1",
        subscription_id="sub-123",
        provisioning_state=state,
        timestamp=timestamp or datetime.now(timezone.utc) + timedelta(hours=1),
    )


async def wait_until(condition: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll ``condition`` until it holds or ``timeout`` expires."""

    async def _poll() -> None:
        while not condition():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout=timeout)


class FakeStatusSource:
    """Scripted environment and deployment queries.

    Each call consumes the next scripted entry; the last entry repeats. An
    entry that is an exception instance is raised instead of returned.
    """

    def __init__(
        self,
        snapshots: list[Any] | None = None,
        deployments: list[Any] | None = None,
    ) -> None:
        self.snapshots = snapshots or [make_snapshot()]
        self.deployments = deployments or [[make_deployment()]]
        self.environment_calls: list[str] = []
        self.search_calls: list[EnvironmentSnapshot] = []

    async def get_environment_snapshot(self, name: str) -> EnvironmentSnapshot | None:
        self.environment_calls.append(name)
        return self._next(self.snapshots, len(self.environment_calls))

    async def find_deployment(
        self, snapshot: EnvironmentSnapshot, predicate: Callable[[DeploymentHandle], bool]
    ) -> DeploymentHandle | None:
        self.search_calls.append(snapshot)
        candidates = self._next(self.deployments, len(self.search_calls))
        for deployment in candidates:
            if predicate(deployment):
                return deployment
        return None

    @staticmethod
    def _next(script: list[Any], call_number: int) -> Any:
        entry = script[min(call_number, len(script)) - 1]
        if isinstance(entry, Exception):
            raise entry
        return entry


class FakeReporter:
    """Progress reporter recording each ``since`` it is asked about."""

    def __init__(self, results: list[Any] | None = None) -> None:
        self.results = results or []
        self.calls: list[datetime] = []
        self.first_call = asyncio.Event()

    async def report_progress(self, since: datetime) -> datetime:
        self.calls.append(since)
        self.first_call.set()
        if len(self.calls) <= len(self.results):
            result = self.results[len(self.calls) - 1]
            if isinstance(result, Exception):
                raise result
            return result
        return since


class FakeProgressSource:
    """Hands out a single FakeReporter and counts how often it was asked."""

    def __init__(self, reporter: FakeReporter | None = None) -> None:
        self.reporter = reporter or FakeReporter()
        self.displays: list[DeploymentHandle] = []

    def progress_display(self, deployment: DeploymentHandle) -> FakeReporter:
        self.displays.append(deployment)
        return self.reporter


class RecordingConsole:
    """Console capturing messages, spinner steps and scripted confirmations."""

    def __init__(self, confirm_answer: bool | BaseException = True) -> None:
        self.confirm_answer = confirm_answer
        self.messages: list[str] = []
        self.spinners: list[str] = []
        self.steps: list[tuple[str, StepResult]] = []

    def message(self, text: str) -> None:
        self.messages.append(text)

    def show_spinner(self, text: str) -> None:
        self.spinners.append(text)

    def stop_spinner(self, text: str, result: StepResult) -> None:
        self.steps.append((text, result))

    def confirm(self, message: str, default: bool = False) -> bool:
        if isinstance(self.confirm_answer, BaseException):
            raise self.confirm_answer
        return self.confirm_answer

