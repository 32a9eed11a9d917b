"""Background tracking of dev center provisioning progress.

While an environment's create/update operation runs remotely, two chained
loops keep the operator informed:

1. EnvironmentWatchLoop polls the environment until its resource group exists,
   then searches that resource group for a deployment that started after
   watching began.
2. ProgressWatchLoop reports that deployment's sub-resource events until the
   watch scope is cancelled.

ProgressWatcher starts the chain as detached asyncio tasks bound to a
CancellationScope owned by the provisioning call. Nothing raised inside the
loops ever reaches that call: progress output is best-effort and must never
turn a successful provisioning into a failed one.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Coroutine
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from ulid import ULID

from envdeck.lib.errors import ScopeCancelledError
from envdeck.lib.logging_config import get_logger
from envdeck.models.config import WatchSettings
from envdeck.models.devcenter import DeploymentHandle, EnvironmentSnapshot
from envdeck.provision.cancellation import CancellationScope
from envdeck.provision.protocols import (
    DeploymentPredicate,
    EnvironmentStatusSource,
    ProgressSource,
)

logger = get_logger(__name__)

DISABLE_PROGRESS_MESSAGE = (
    "Disabling progress reporting since "
    "ENVDECK_DEBUG_PROVISION_PROGRESS_DISABLE was set"
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class WatchState(str, Enum):
    """Phases of a watch session."""

    WAITING_FOR_RESOURCE_GROUP = "waiting_for_resource_group"
    WAITING_FOR_DEPLOYMENT = "waiting_for_deployment"
    REPORTING_PROGRESS = "reporting_progress"
    STOPPED = "stopped"


_ALLOWED_TRANSITIONS: dict[WatchState, frozenset[WatchState]] = {
    WatchState.WAITING_FOR_RESOURCE_GROUP: frozenset(
        {WatchState.WAITING_FOR_DEPLOYMENT, WatchState.STOPPED}
    ),
    WatchState.WAITING_FOR_DEPLOYMENT: frozenset(
        {WatchState.REPORTING_PROGRESS, WatchState.STOPPED}
    ),
    WatchState.REPORTING_PROGRESS: frozenset({WatchState.STOPPED}),
    WatchState.STOPPED: frozenset(),
}


@dataclass
class WatchSession:
    """Progress-tracking context for one provisioning attempt.

    Attributes:
        environment_name: Environment being provisioned.
        scope: Cancellation scope shared by both watch loops.
        started_at: UTC time watching began; only deployments started strictly
            later are considered.
        session_id: Unique identifier in ULID format.
        state: Current phase. Transitions only move forward.
        deployment: Deployment handed to the progress loop, set at most once.
    """

    environment_name: str
    scope: CancellationScope
    started_at: datetime = field(default_factory=_utcnow)
    session_id: str = field(default_factory=lambda: str(ULID()))
    state: WatchState = WatchState.WAITING_FOR_RESOURCE_GROUP
    deployment: DeploymentHandle | None = None

    def advance(self, state: WatchState) -> None:
        """Move to ``state``.

        Raises:
            ValueError: If the transition would move backward or skip a phase
        """
        if state not in _ALLOWED_TRANSITIONS[self.state]:
            raise ValueError(
                f"Invalid watch transition: {self.state.value} -> {state.value}"
            )
        logger.debug(
            f"Watch session {self.session_id}: {self.state.value} -> {state.value}"
        )
        self.state = state

    def hand_off(self, deployment: DeploymentHandle) -> None:
        """Record the discovered deployment and enter the reporting phase."""
        if self.deployment is not None:
            raise ValueError(
                f"Watch session {self.session_id} already tracks "
                f"deployment '{self.deployment.name}'"
            )
        self.advance(WatchState.REPORTING_PROGRESS)
        self.deployment = deployment

    def stop(self) -> None:
        """Enter the terminal phase. Safe to call more than once."""
        if self.state != WatchState.STOPPED:
            self.advance(WatchState.STOPPED)


def deployment_started_after(since: datetime) -> DeploymentPredicate:
    """Match running deployments whose start time is strictly after ``since``."""
    cutoff = _as_utc(since)

    def _matches(deployment: DeploymentHandle) -> bool:
        return deployment.is_running and _as_utc(deployment.timestamp) > cutoff

    return _matches


class ProgressWatchLoop:
    """Periodically reports progress for a discovered deployment."""

    def __init__(self, source: ProgressSource, settings: WatchSettings) -> None:
        """Initialize the loop.

        Args:
            source: Factory for deployment-bound progress reporters
            settings: Cadence and debug switches
        """
        self._source = source
        self._settings = settings

    async def watch(self, session: WatchSession, deployment: DeploymentHandle) -> None:
        """Report progress until the session scope is cancelled."""
        if self._settings.progress_disabled:
            logger.info(DISABLE_PROGRESS_MESSAGE)
            session.stop()
            return

        try:
            reporter = self._source.progress_display(deployment)
        except Exception as e:
            logger.debug(f"Unable to create progress display for {deployment.name}: {e}")
            session.stop()
            return

        cursor = _utcnow()
        delay = self._settings.initial_delay

        while not await session.scope.sleep(delay):
            delay = self._settings.progress_delay
            try:
                reported = await session.scope.run(reporter.report_progress(cursor))
            except ScopeCancelledError:
                break
            except Exception as e:
                # A failed report must not fail the deployment
                logger.debug(f"error while reporting progress: {e}")
                continue

            if reported is not None:
                cursor = max(cursor, _as_utc(reported))

        session.stop()


class EnvironmentWatchLoop:
    """Waits for an environment's resource group and deployment to appear."""

    def __init__(
        self,
        source: EnvironmentStatusSource,
        settings: WatchSettings,
        on_deployment: Callable[[WatchSession, DeploymentHandle], None],
    ) -> None:
        """Initialize the loop.

        Args:
            source: Remote status queries
            settings: Cadence and debug switches
            on_deployment: Called once with the discovered deployment
        """
        self._source = source
        self._settings = settings
        self._on_deployment = on_deployment

    async def watch(self, session: WatchSession) -> None:
        """Poll until a deployment is found and handed off, or the scope ends."""
        if self._settings.progress_disabled:
            logger.info(DISABLE_PROGRESS_MESSAGE)
            session.stop()
            return

        predicate = deployment_started_after(session.started_at)
        snapshot: EnvironmentSnapshot | None = None
        delay = self._settings.initial_delay

        while not await session.scope.sleep(delay):
            delay = self._settings.environment_delay

            if session.state == WatchState.WAITING_FOR_RESOURCE_GROUP:
                try:
                    snapshot = await session.scope.run(
                        self._source.get_environment_snapshot(session.environment_name)
                    )
                except ScopeCancelledError:
                    break
                except Exception as e:
                    logger.debug(
                        f"Environment '{session.environment_name}' not readable yet: {e}"
                    )
                    continue

                # The resource group has to exist before a deployment can start
                if (
                    snapshot is None
                    or snapshot.is_creating
                    or not snapshot.has_resource_group
                ):
                    logger.debug(
                        f"Waiting for resource group of '{session.environment_name}'"
                    )
                    continue

                session.advance(WatchState.WAITING_FOR_DEPLOYMENT)

            if snapshot is None:
                continue

            try:
                deployment = await session.scope.run(
                    self._source.find_deployment(snapshot, predicate)
                )
            except ScopeCancelledError:
                break
            except Exception as e:
                logger.debug(
                    f"Deployment for '{session.environment_name}' not found yet: {e}"
                )
                continue

            if deployment is None:
                continue

            session.hand_off(deployment)
            logger.debug(
                f"Tracking deployment '{deployment.name}' in {deployment.resource_group}"
            )
            self._on_deployment(session, deployment)
            return

        session.stop()


class ProgressWatcher:
    """Starts and owns the background watch tasks for provisioning calls.

    start() is fire-and-forget: it never blocks and never raises into the
    provisioning call. Tasks hold no reference back to the caller; cancelling
    the scope passed to start() is the only way they are told to stop.
    """

    def __init__(
        self,
        status_source: EnvironmentStatusSource,
        progress_source: ProgressSource,
        settings: WatchSettings | None = None,
    ) -> None:
        """Initialize the watcher.

        Args:
            status_source: Environment and deployment queries
            progress_source: Deployment progress reporters
            settings: Cadence and debug switches; defaults keep reporting enabled
        """
        self.settings = settings or WatchSettings()
        self._tasks: set[asyncio.Task[None]] = set()
        self._progress_loop = ProgressWatchLoop(progress_source, self.settings)
        self._environment_loop = EnvironmentWatchLoop(
            status_source, self.settings, on_deployment=self._start_progress
        )

    @property
    def active_tasks(self) -> frozenset[asyncio.Task[None]]:
        """Watch tasks that have not finished yet."""
        return frozenset(self._tasks)

    def start(self, environment_name: str, scope: CancellationScope) -> WatchSession:
        """Begin watching ``environment_name`` in the background.

        Must be called from a running event loop.
        """
        session = WatchSession(environment_name=environment_name, scope=scope)
        self._spawn(
            self._environment_loop.watch(session),
            name=f"envdeck-watch-environment-{session.session_id}",
        )
        return session

    async def drain(self) -> None:
        """Wait until every watch task has finished."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _start_progress(self, session: WatchSession, deployment: DeploymentHandle) -> None:
        self._spawn(
            self._progress_loop.watch(session, deployment),
            name=f"envdeck-watch-progress-{session.session_id}",
        )

    def _spawn(self, coro: Coroutine[Any, Any, None], name: str) -> None:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug(f"Watch task {task.get_name()} ended with error: {exc!r}")
