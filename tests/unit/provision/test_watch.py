"""Unit tests for the provisioning progress watch loops."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

import pytest
from fakes import (
    FakeProgressSource,
    FakeReporter,
    FakeStatusSource,
    creating_snapshot,
    make_deployment,
    make_snapshot,
    wait_until,
)

from envdeck.models.config import WatchSettings
from envdeck.models.devcenter import DeploymentProvisioningState
from envdeck.provision.cancellation import CancellationScope
from envdeck.provision.watch import (
    DISABLE_PROGRESS_MESSAGE,
    ProgressWatcher,
    ProgressWatchLoop,
    WatchSession,
    WatchState,
    deployment_started_after,
)


def _watcher(
    status: FakeStatusSource, progress: FakeProgressSource, settings: WatchSettings
) -> ProgressWatcher:
    return ProgressWatcher(
        status_source=status, progress_source=progress, settings=settings
    )


@pytest.mark.unit
class TestDeploymentStartedAfter:
    """Tests for the deployment start-time predicate."""

    def test_matches_running_deployment_started_later(self) -> None:
        """A running deployment that started after the cutoff matches."""
        since = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        deployment = make_deployment(timestamp=since + timedelta(seconds=1))

        assert deployment_started_after(since)(deployment)

    def test_rejects_deployment_started_at_cutoff(self) -> None:
        """The start-time comparison is strict."""
        since = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

        assert not deployment_started_after(since)(make_deployment(timestamp=since))

    def test_rejects_earlier_deployment(self) -> None:
        """Deployments from before watching began are ignored."""
        since = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        deployment = make_deployment(timestamp=since - timedelta(minutes=5))

        assert not deployment_started_after(since)(deployment)

    def test_rejects_finished_deployment(self) -> None:
        """Only running deployments are tracked."""
        since = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        deployment = make_deployment(
            timestamp=since + timedelta(seconds=1),
            state=DeploymentProvisioningState.SUCCEEDED,
        )

        assert not deployment_started_after(since)(deployment)

    def test_naive_timestamps_are_treated_as_utc(self) -> None:
        """Naive datetimes compare as UTC."""
        since = datetime(2024, 5, 1, 12, 0)
        deployment = make_deployment(
            timestamp=datetime(2024, 5, 1, 12, 0, 1, tzinfo=timezone.utc)
        )

        assert deployment_started_after(since)(deployment)


@pytest.mark.unit
class TestWatchSession:
    """Tests for WatchSession state transitions."""

    def test_new_session_waits_for_resource_group(self) -> None:
        """Sessions start in the first phase with a ULID identifier."""
        session = WatchSession(environment_name="dev", scope=CancellationScope())

        assert session.state == WatchState.WAITING_FOR_RESOURCE_GROUP
        assert len(session.session_id) == 26
        assert session.started_at.tzinfo is not None

    def test_transitions_only_move_forward(self) -> None:
        """Moving back to an earlier phase is rejected."""
        session = WatchSession(environment_name="dev", scope=CancellationScope())
        session.advance(WatchState.WAITING_FOR_DEPLOYMENT)

        with pytest.raises(ValueError, match="Invalid watch transition"):
            session.advance(WatchState.WAITING_FOR_RESOURCE_GROUP)

    def test_hand_off_requires_waiting_for_deployment(self) -> None:
        """A deployment cannot be handed off before the resource group exists."""
        session = WatchSession(environment_name="dev", scope=CancellationScope())

        with pytest.raises(ValueError):
            session.hand_off(make_deployment())

    def test_hand_off_happens_once(self) -> None:
        """A second hand-off is rejected."""
        session = WatchSession(environment_name="dev", scope=CancellationScope())
        session.advance(WatchState.WAITING_FOR_DEPLOYMENT)
        session.hand_off(make_deployment())

        with pytest.raises(ValueError, match="already tracks"):
            session.hand_off(make_deployment(name="deploy-2"))

        assert session.state == WatchState.REPORTING_PROGRESS
        assert session.deployment is not None
        assert session.deployment.name == "deploy-1"

    def test_stop_is_idempotent(self) -> None:
        """Stopping twice is allowed."""
        session = WatchSession(environment_name="dev", scope=CancellationScope())

        session.stop()
        session.stop()

        assert session.state == WatchState.STOPPED


@pytest.mark.unit
class TestEnvironmentWatch:
    """Tests for the environment watch loop."""

    @pytest.mark.asyncio
    async def test_no_search_while_resource_group_missing(
        self, fast_settings: WatchSettings
    ) -> None:
        """No deployment search happens while the environment is still creating."""
        status = FakeStatusSource(snapshots=[creating_snapshot()])
        progress = FakeProgressSource()
        watcher = _watcher(status, progress, fast_settings)
        scope = CancellationScope()

        watcher.start("dev", scope)
        await wait_until(lambda: len(status.environment_calls) >= 5)
        scope.cancel()
        await watcher.drain()

        assert status.search_calls == []
        assert progress.displays == []

    @pytest.mark.asyncio
    async def test_no_search_while_resource_group_id_empty(
        self, fast_settings: WatchSettings
    ) -> None:
        """A succeeded environment without a resource group is not searched."""
        status = FakeStatusSource(snapshots=[make_snapshot(resource_group_id="")])
        watcher = _watcher(status, FakeProgressSource(), fast_settings)
        scope = CancellationScope()

        watcher.start("dev", scope)
        await wait_until(lambda: len(status.environment_calls) >= 3)
        scope.cancel()
        await watcher.drain()

        assert status.search_calls == []

    @pytest.mark.asyncio
    async def test_missing_environment_keeps_polling(
        self, fast_settings: WatchSettings
    ) -> None:
        """An environment that does not exist yet is polled again."""
        status = FakeStatusSource(snapshots=[None, None, make_snapshot()])
        progress = FakeProgressSource()
        watcher = _watcher(status, progress, fast_settings)
        scope = CancellationScope()

        watcher.start("dev", scope)
        await wait_until(lambda: len(progress.displays) == 1)
        scope.cancel()
        await watcher.drain()

        assert len(status.environment_calls) == 3

    @pytest.mark.asyncio
    async def test_deployment_from_before_watch_is_ignored(
        self, fast_settings: WatchSettings
    ) -> None:
        """A running deployment older than the session is never handed off."""
        old = make_deployment(timestamp=datetime(2020, 1, 1, tzinfo=timezone.utc))
        status = FakeStatusSource(deployments=[[old]])
        progress = FakeProgressSource()
        watcher = _watcher(status, progress, fast_settings)
        scope = CancellationScope()

        session = watcher.start("dev", scope)
        await wait_until(lambda: len(status.search_calls) >= 3)
        scope.cancel()
        await watcher.drain()

        assert progress.displays == []
        assert session.deployment is None
        assert session.state == WatchState.STOPPED

    @pytest.mark.asyncio
    async def test_failures_do_not_stop_the_loop(
        self, fast_settings: WatchSettings
    ) -> None:
        """Transient errors from either query are retried on the next tick."""
        status = FakeStatusSource(
            snapshots=[RuntimeError("throttled"), make_snapshot()],
            deployments=[RuntimeError("list failed"), [make_deployment()]],
        )
        progress = FakeProgressSource()
        watcher = _watcher(status, progress, fast_settings)
        scope = CancellationScope()

        watcher.start("dev", scope)
        await wait_until(lambda: len(progress.displays) == 1)
        scope.cancel()
        await watcher.drain()

        assert len(status.environment_calls) == 2
        assert len(status.search_calls) == 2

    @pytest.mark.asyncio
    async def test_scenario_resource_group_then_deployment(
        self, fast_settings: WatchSettings
    ) -> None:
        """Three environment polls and three searches precede progress reporting."""
        deployment = make_deployment()
        status = FakeStatusSource(
            snapshots=[creating_snapshot(), creating_snapshot(), make_snapshot()],
            deployments=[[], [], [deployment]],
        )
        progress = FakeProgressSource()
        watcher = _watcher(status, progress, fast_settings)
        scope = CancellationScope()

        session = watcher.start("dev", scope)
        await wait_until(lambda: len(progress.reporter.calls) >= 1)
        scope.cancel()
        await watcher.drain()

        assert len(status.environment_calls) == 3
        assert len(status.search_calls) == 3
        assert progress.displays == [deployment]
        assert session.deployment == deployment


@pytest.mark.unit
class TestProgressWatch:
    """Tests for the progress watch loop."""

    @pytest.mark.asyncio
    async def test_progress_loop_starts_once(self, fast_settings: WatchSettings) -> None:
        """Only one progress display is created per session."""
        status = FakeStatusSource()
        progress = FakeProgressSource()
        watcher = _watcher(status, progress, fast_settings)
        scope = CancellationScope()

        watcher.start("dev", scope)
        await wait_until(lambda: len(progress.reporter.calls) >= 5)
        scope.cancel()
        await watcher.drain()

        assert len(progress.displays) == 1
        assert len(status.search_calls) == 1

    @pytest.mark.asyncio
    async def test_disabled_progress_loop_stops_session(self) -> None:
        """A handed-off session is stopped when progress reporting is disabled."""
        progress = FakeProgressSource()
        loop = ProgressWatchLoop(progress, WatchSettings(progress_disabled=True))
        session = WatchSession(environment_name="dev", scope=CancellationScope())
        session.advance(WatchState.WAITING_FOR_DEPLOYMENT)
        deployment = make_deployment()
        session.hand_off(deployment)

        await loop.watch(session, deployment)

        assert session.state == WatchState.STOPPED
        assert progress.displays == []

    @pytest.mark.asyncio
    async def test_report_failures_keep_reporting(
        self, fast_settings: WatchSettings
    ) -> None:
        """A failing report is followed by further reports."""
        reporter = FakeReporter(results=[RuntimeError("boom"), RuntimeError("boom")])
        progress = FakeProgressSource(reporter)
        watcher = _watcher(FakeStatusSource(), progress, fast_settings)
        scope = CancellationScope()

        watcher.start("dev", scope)
        await wait_until(lambda: len(reporter.calls) >= 4)
        scope.cancel()
        await watcher.drain()

        assert len(reporter.calls) >= 4

    @pytest.mark.asyncio
    async def test_cursor_never_moves_backward(
        self, fast_settings: WatchSettings
    ) -> None:
        """An older timestamp returned by a report does not rewind the cursor."""
        future = datetime.now(timezone.utc) + timedelta(days=1)
        past = datetime(2020, 1, 1, tzinfo=timezone.utc)
        reporter = FakeReporter(results=[future, past, RuntimeError("boom"), past])
        progress = FakeProgressSource(reporter)
        watcher = _watcher(FakeStatusSource(), progress, fast_settings)
        scope = CancellationScope()

        watcher.start("dev", scope)
        await wait_until(lambda: len(reporter.calls) >= 6)
        scope.cancel()
        await watcher.drain()

        assert all(
            later >= earlier
            for earlier, later in zip(reporter.calls, reporter.calls[1:])
        )
        assert reporter.calls[1] == future
        assert reporter.calls[-1] == future

    @pytest.mark.asyncio
    async def test_cancel_between_ticks_stops_after_one_report(self) -> None:
        """Cancelling after the first progress tick leaves exactly one report."""
        settings = WatchSettings(
            initial_delay=0.01, environment_delay=0.01, progress_delay=0.5
        )
        reporter = FakeReporter()
        progress = FakeProgressSource(reporter)
        watcher = _watcher(FakeStatusSource(), progress, settings)
        scope = CancellationScope()

        session = watcher.start("dev", scope)
        await asyncio.wait_for(reporter.first_call.wait(), timeout=2)
        scope.cancel()
        await watcher.drain()

        assert len(reporter.calls) == 1
        assert session.state == WatchState.STOPPED


@pytest.mark.unit
class TestProgressWatcher:
    """Tests for the lifecycle controller."""

    @pytest.mark.asyncio
    async def test_calls_stop_after_cancel(self, fast_settings: WatchSettings) -> None:
        """No remote call is made once the scope is cancelled."""
        status = FakeStatusSource()
        progress = FakeProgressSource()
        watcher = _watcher(status, progress, fast_settings)
        scope = CancellationScope()

        watcher.start("dev", scope)
        await wait_until(lambda: len(progress.reporter.calls) >= 2)
        scope.cancel()
        await watcher.drain()
        counts = (
            len(status.environment_calls),
            len(status.search_calls),
            len(progress.reporter.calls),
        )

        await asyncio.sleep(0.1)

        assert counts == (
            len(status.environment_calls),
            len(status.search_calls),
            len(progress.reporter.calls),
        )
        assert watcher.active_tasks == frozenset()

    @pytest.mark.asyncio
    async def test_parent_cancel_stops_watch(self, fast_settings: WatchSettings) -> None:
        """Cancelling the owning scope reaches the watch scope derived from it."""
        status = FakeStatusSource(snapshots=[creating_snapshot()])
        watcher = _watcher(status, FakeProgressSource(), fast_settings)
        parent = CancellationScope()

        session = watcher.start("dev", parent.child())
        await wait_until(lambda: len(status.environment_calls) >= 2)
        parent.cancel()
        await watcher.drain()

        assert session.state == WatchState.STOPPED

    @pytest.mark.asyncio
    async def test_start_does_not_block(self, fast_settings: WatchSettings) -> None:
        """start() returns before any remote call is made."""
        status = FakeStatusSource()
        watcher = _watcher(status, FakeProgressSource(), fast_settings)
        scope = CancellationScope()

        session = watcher.start("dev", scope)

        assert status.environment_calls == []
        assert len(watcher.active_tasks) == 1
        assert session.environment_name == "dev"

        scope.cancel()
        await watcher.drain()

    @pytest.mark.asyncio
    async def test_disabled_progress_makes_no_calls(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """With progress disabled neither loop touches the remote service."""
        settings = WatchSettings(
            progress_disabled=True,
            initial_delay=0.01,
            environment_delay=0.01,
            progress_delay=0.01,
        )
        status = FakeStatusSource()
        progress = FakeProgressSource()
        watcher = _watcher(status, progress, settings)
        scope = CancellationScope()

        with caplog.at_level(logging.INFO, logger="envdeck"):
            session = watcher.start("dev", scope)
            await watcher.drain()
            await asyncio.sleep(0.05)

        assert status.environment_calls == []
        assert status.search_calls == []
        assert progress.displays == []
        assert DISABLE_PROGRESS_MESSAGE in caplog.text
        assert session.state == WatchState.STOPPED
        scope.cancel()

    @pytest.mark.asyncio
    async def test_display_creation_failure_is_contained(
        self, fast_settings: WatchSettings
    ) -> None:
        """A failing progress display ends the session without raising."""

        class BrokenProgressSource(FakeProgressSource):
            def progress_display(self, deployment):  # type: ignore[no-untyped-def]
                raise RuntimeError("no client")

        watcher = _watcher(FakeStatusSource(), BrokenProgressSource(), fast_settings)
        scope = CancellationScope()

        session = watcher.start("dev", scope)
        await wait_until(lambda: session.state == WatchState.STOPPED)
        await watcher.drain()

        assert watcher.active_tasks == frozenset()
        scope.cancel()
