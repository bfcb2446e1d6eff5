"""Tests for the sync scheduler state machine."""

import threading
from unittest.mock import Mock

import pytest
import requests

from safety_sync.core.remote import (
    BlobStoreGateway,
    PushOutcome,
    RemoteGateway,
    RemoteGatewayError,
)
from safety_sync.core.store import AppState, LocalStore
from safety_sync.core.sync import Snapshot
from safety_sync.core.sync.scheduler import SchedulerState, SyncScheduler
from safety_sync.models import Record


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    """Create a fake clock."""
    return FakeClock()


@pytest.fixture
def state():
    """Create an in-memory application state."""
    return AppState()


@pytest.fixture
def gateway():
    """Create a mock gateway for an empty workspace."""
    mock_gateway = Mock(spec=RemoteGateway)
    mock_gateway.pull.return_value = None
    mock_gateway.push.return_value = PushOutcome.CONFIRMED
    return mock_gateway


@pytest.fixture
def scheduler(state, gateway, clock):
    """Create a scheduler with short, deterministic timings."""
    sync_scheduler = SyncScheduler(
        state,
        gateway,
        "ws-1",
        pull_interval_s=20,
        push_debounce_s=2,
        settle_window_s=1,
        clock=clock,
        wall_clock=lambda: 555,
    )
    yield sync_scheduler
    sync_scheduler.close()


def remote_snapshot(version=100, timestamp=10):
    """Create a remote snapshot holding one record."""
    return Snapshot(
        records=[Record(id="r1", timestamp=timestamp, title="remote")],
        last_updated=version,
    )


class TestInitialPullGate:
    """Test that nothing is pushed before the first pull."""

    def test_first_poll_pulls(self, scheduler, gateway):
        """Test the first poll pulls immediately."""
        scheduler.poll()

        gateway.pull.assert_called_once_with("ws-1")
        assert scheduler.status.initial_pull_done

    def test_push_before_first_pull_is_deferred(self, scheduler, gateway, state):
        """Test a local change before the first pull does not push."""
        state.upsert("records", Record(id="local"))

        assert scheduler.push_now() is None
        gateway.push.assert_not_called()
        assert scheduler.push_pending

    def test_deferred_change_pushed_after_empty_pull(
        self, scheduler, gateway, state, clock
    ):
        """Test an empty workspace opens the gate and releases the change."""
        state.upsert("records", Record(id="local"))

        scheduler.poll()
        gateway.push.assert_not_called()

        clock.advance(2)
        scheduler.poll()

        gateway.push.assert_called_once()
        workspace_id, snapshot = gateway.push.call_args.args
        assert workspace_id == "ws-1"
        assert [r.id for r in snapshot.records] == ["local"]
        assert snapshot.last_updated == 555

    def test_failed_pull_keeps_gate_closed(self, scheduler, gateway, state, clock):
        """Test an unreachable remote never gets a push."""
        gateway.pull.side_effect = RemoteGatewayError("down")
        state.upsert("records", Record(id="local"))

        scheduler.poll()
        clock.advance(5)
        scheduler.poll()

        gateway.push.assert_not_called()
        assert not scheduler.status.initial_pull_done
        assert scheduler.status.failures == 1
        assert "down" in scheduler.status.last_error
        assert scheduler.state == SchedulerState.IDLE
        assert [r.id for r in state.get("records")] == ["local"]

    def test_blob_outage_keeps_gate_closed(self, state, clock):
        """Test a 503 from the blob store is not taken for an empty workspace."""
        session = Mock(spec=requests.Session)
        session.request.return_value = Mock(
            spec=requests.Response, status_code=503, ok=False, content=b""
        )
        blob_scheduler = SyncScheduler(
            state, BlobStoreGateway(session=session), "ws-1", clock=clock
        )
        state.upsert("records", Record(id="local"))

        blob_scheduler.poll()
        clock.advance(30)
        blob_scheduler.poll()

        methods = [c.args[0] for c in session.request.call_args_list]
        assert methods == ["GET", "GET"]
        assert not blob_scheduler.status.initial_pull_done
        assert "HTTP 503" in blob_scheduler.status.last_error
        blob_scheduler.close()

    def test_failed_pull_is_retried_next_interval(self, scheduler, gateway, clock):
        """Test failures wait for the next scheduled pull."""
        gateway.pull.side_effect = RemoteGatewayError("down")

        scheduler.poll()
        clock.advance(20)
        scheduler.poll()

        assert gateway.pull.call_count == 2
        assert scheduler.status.failures == 2


class TestMergeAndEcho:
    """Test merging and echo suppression."""

    def test_merge_does_not_trigger_push(self, scheduler, gateway, state, clock):
        """Test changes caused by a merge are not pushed back."""
        gateway.pull.return_value = remote_snapshot()

        scheduler.poll()
        assert scheduler.state == SchedulerState.SETTLING
        assert state.find("records", "r1").title == "remote"

        clock.advance(1)
        scheduler.poll()
        clock.advance(5)
        scheduler.poll()

        assert scheduler.state == SchedulerState.IDLE
        gateway.push.assert_not_called()
        assert not scheduler.push_pending
        assert scheduler.status.merges == 1
        assert scheduler.status.last_remote_version == 100

    def test_change_during_settle_window_is_deferred(
        self, scheduler, gateway, state, clock
    ):
        """Test a local change in the guard window is pushed after it."""
        gateway.pull.return_value = remote_snapshot()
        scheduler.poll()

        state.upsert("records", Record(id="local"))
        assert scheduler.state == SchedulerState.SETTLING

        clock.advance(1)
        scheduler.poll()
        gateway.push.assert_not_called()

        clock.advance(2)
        scheduler.poll()

        gateway.push.assert_called_once()
        pushed = gateway.push.call_args.args[1]
        assert {r.id for r in pushed.records} == {"r1", "local"}

    def test_not_newer_snapshot_is_not_merged(self, scheduler, gateway, state, clock):
        """Test a snapshot no newer than the last one seen is skipped."""
        gateway.pull.return_value = remote_snapshot(version=100, timestamp=10)
        scheduler.poll()
        clock.advance(1)
        scheduler.poll()

        state.replace_collection("records", [Record(id="r1", timestamp=5)])
        scheduler.trigger_pull()
        scheduler.poll()

        assert state.find("records", "r1").timestamp == 5
        assert scheduler.state == SchedulerState.IDLE

        gateway.pull.return_value = remote_snapshot(version=101, timestamp=10)
        scheduler.trigger_pull()
        scheduler.poll()

        assert state.find("records", "r1").timestamp == 10

    def test_pull_interval(self, scheduler, gateway, clock):
        """Test pulls repeat on the interval."""
        scheduler.poll()
        clock.advance(19)
        scheduler.poll()
        assert gateway.pull.call_count == 1

        clock.advance(1)
        scheduler.poll()
        assert gateway.pull.call_count == 2


class TestPush:
    """Test debounced pushes."""

    @pytest.fixture
    def ready(self, scheduler, clock):
        """Complete the initial pull against an empty workspace."""
        scheduler.poll()
        return scheduler

    def test_changes_are_debounced(self, ready, gateway, state, clock):
        """Test a burst of changes produces one push after the quiet period."""
        state.upsert("records", Record(id="a"))
        clock.advance(1.5)
        state.upsert("records", Record(id="b"))

        clock.advance(1)
        ready.poll()
        gateway.push.assert_not_called()

        clock.advance(1)
        ready.poll()
        gateway.push.assert_called_once()
        assert ready.status.pushes == 1
        assert ready.status.last_push_outcome == PushOutcome.CONFIRMED

    def test_push_failure_is_swallowed(self, ready, gateway, state, clock):
        """Test a failed push is logged and not retried."""
        gateway.push.side_effect = RemoteGatewayError("rejected")
        state.upsert("records", Record(id="a"))

        clock.advance(2)
        ready.poll()
        clock.advance(2)
        ready.poll()

        assert gateway.push.call_count == 1
        assert ready.status.failures == 1
        assert ready.status.pushes == 0
        assert ready.state == SchedulerState.IDLE
        assert not ready.push_pending

    def test_change_during_push_rearms(self, ready, gateway, state, clock):
        """Test a change made while pushing is pushed again later."""

        def push_with_concurrent_edit(workspace_id, snapshot):
            state.upsert("records", Record(id="late"))
            return PushOutcome.CONFIRMED

        gateway.push.side_effect = push_with_concurrent_edit
        state.upsert("records", Record(id="a"))

        clock.advance(2)
        ready.poll()

        assert ready.push_pending
        clock.advance(2)
        ready.poll()
        assert gateway.push.call_count == 2

    def test_unknown_outcome_is_recorded(self, ready, gateway, state, clock):
        """Test fire-and-forget pushes report an unknown outcome."""
        gateway.push.return_value = PushOutcome.UNKNOWN
        state.upsert("records", Record(id="a"))

        clock.advance(2)
        ready.poll()

        assert ready.status.last_push_outcome == PushOutcome.UNKNOWN

    def test_unexpected_error_resets_state(self, ready, gateway):
        """Test an unexpected gateway error does not leave the scheduler busy."""
        gateway.push.side_effect = RuntimeError("boom")

        with pytest.raises(RuntimeError):
            ready.push_now()

        assert ready.state == SchedulerState.IDLE

    def test_snapshot_error_resets_state(self, ready, gateway, monkeypatch):
        """Test a failure while building the snapshot does not leave it busy."""
        monkeypatch.setattr(
            "safety_sync.core.sync.scheduler.build_snapshot",
            Mock(side_effect=RuntimeError("broken state")),
        )

        with pytest.raises(RuntimeError, match="broken state"):
            ready.push_now()

        assert ready.state == SchedulerState.IDLE
        gateway.push.assert_not_called()


class TestPushVersion:
    """Test versions stamped on pushed snapshots."""

    def test_version_uses_wall_clock(self, scheduler, gateway):
        """Test a push is stamped with the wall clock when it is ahead."""
        scheduler.poll()

        scheduler.push_now()

        assert gateway.push.call_args.args[1].last_updated == 555

    def test_slow_clock_still_pushes_newer_version(
        self, scheduler, gateway, state, clock
    ):
        """Test a device behind the remote clock pushes above the seen version."""
        gateway.pull.return_value = remote_snapshot(version=2000)
        scheduler.poll()
        clock.advance(1)
        scheduler.poll()

        state.upsert("records", Record(id="local"))
        clock.advance(2)
        scheduler.poll()
        state.upsert("records", Record(id="later"))
        clock.advance(2)
        scheduler.poll()

        versions = [c.args[1].last_updated for c in gateway.push.call_args_list]
        assert versions == [2001, 2002]


class TestUnsyncedChanges:
    """Test local changes made outside the running scheduler are pushed."""

    @pytest.fixture
    def store(self, tmp_path):
        """Create a temporary local store."""
        local_store = LocalStore(tmp_path / "store.db")
        yield local_store
        local_store.close()

    def make_scheduler(self, state, gateway, clock):
        """Create a scheduler with the test timings."""
        return SyncScheduler(
            state,
            gateway,
            "ws-1",
            pull_interval_s=20,
            push_debounce_s=2,
            settle_window_s=1,
            clock=clock,
            wall_clock=lambda: 555,
        )

    def test_earlier_edit_is_pushed_after_first_pull(self, store, gateway, clock):
        """Test an edit saved by another process is pushed by the sync loop."""
        editor = AppState.load(store)
        editor.upsert("records", Record(id="r1", title="Kabel"))

        state = AppState.load(store)
        assert state.has_unsynced_changes
        sync_scheduler = self.make_scheduler(state, gateway, clock)

        for _ in range(3):
            sync_scheduler.poll()
            clock.advance(2)

        gateway.push.assert_called_once()
        pushed = gateway.push.call_args.args[1]
        assert [r.id for r in pushed.records] == ["r1"]
        assert not state.has_unsynced_changes
        assert not AppState.load(store).has_unsynced_changes
        sync_scheduler.close()

    def test_earlier_edit_is_pushed_after_merge(self, gateway, clock):
        """Test unsynced local data is pushed once the merge settled."""
        state = AppState(collections={"records": [Record(id="mine")]}, unsynced=True)
        gateway.pull.return_value = remote_snapshot()
        sync_scheduler = self.make_scheduler(state, gateway, clock)

        sync_scheduler.poll()
        clock.advance(1)
        sync_scheduler.poll()
        clock.advance(2)
        sync_scheduler.poll()

        pushed = gateway.push.call_args.args[1]
        assert {r.id for r in pushed.records} == {"mine", "r1"}
        sync_scheduler.close()

    def test_clean_state_is_not_pushed(self, gateway, clock):
        """Test a state without local edits only pulls."""
        state = AppState(collections={"records": [Record(id="mine")]})
        sync_scheduler = self.make_scheduler(state, gateway, clock)

        for _ in range(5):
            sync_scheduler.poll()
            clock.advance(30)

        gateway.push.assert_not_called()
        assert gateway.pull.call_count == 5
        sync_scheduler.close()

    def test_merge_does_not_mark_unsynced(self, scheduler, gateway, state):
        """Test data taken from the remote is not reported as a local edit."""
        gateway.pull.return_value = remote_snapshot()

        scheduler.poll()

        assert state.find("records", "r1") is not None
        assert not state.has_unsynced_changes

    def test_failed_push_keeps_marker(self, scheduler, gateway, state, clock):
        """Test a rejected push leaves the edit marked for the next session."""
        gateway.push.side_effect = RemoteGatewayError("rejected")
        scheduler.poll()
        state.upsert("records", Record(id="a"))

        clock.advance(2)
        scheduler.poll()

        assert gateway.push.call_count == 1
        assert state.has_unsynced_changes

    def test_edit_during_push_keeps_marker(self, scheduler, gateway, state, clock):
        """Test an edit that missed the pushed snapshot stays marked."""

        def push_with_concurrent_edit(workspace_id, snapshot):
            state.upsert("records", Record(id="late"))
            return PushOutcome.CONFIRMED

        gateway.push.side_effect = push_with_concurrent_edit
        scheduler.poll()
        state.upsert("records", Record(id="a"))

        clock.advance(2)
        scheduler.poll()

        assert state.has_unsynced_changes


class TestLifecycle:
    """Test workspace switching, closing and the run loop."""

    def test_stale_pull_result_is_discarded(self, scheduler, gateway, state):
        """Test a pull that returns after a workspace switch is ignored."""

        def pull_then_switch(workspace_id):
            scheduler.switch_workspace("ws-2")
            return remote_snapshot()

        gateway.pull.side_effect = pull_then_switch

        assert scheduler.pull_now() is None
        assert state.get("records") == []
        assert scheduler.workspace_id == "ws-2"
        assert not scheduler.status.initial_pull_done
        assert scheduler.state == SchedulerState.IDLE

    def test_switch_workspace_cancels_pending_push(
        self, scheduler, gateway, state, clock
    ):
        """Test a pending push is not sent to the new workspace."""
        scheduler.poll()
        state.upsert("records", Record(id="a"))

        scheduler.switch_workspace("ws-2")
        clock.advance(2)
        scheduler.poll()

        gateway.push.assert_not_called()
        assert gateway.pull.call_args.args == ("ws-2",)

    def test_no_workspace_means_no_network(self, state, gateway, clock):
        """Test a scheduler without workspace stays offline."""
        offline = SyncScheduler(state, gateway, None, clock=clock)

        offline.poll()
        state.upsert("records", Record(id="a"))
        clock.advance(60)
        offline.poll()

        gateway.pull.assert_not_called()
        gateway.push.assert_not_called()
        offline.close()

    def test_closed_scheduler_ignores_changes(self, scheduler, gateway, state, clock):
        """Test close() stops timers and listeners."""
        scheduler.poll()
        scheduler.close()

        state.upsert("records", Record(id="a"))
        clock.advance(30)
        scheduler.poll()

        assert gateway.pull.call_count == 1
        gateway.push.assert_not_called()

    def test_run_stops_on_event(self, scheduler, gateway):
        """Test the run loop polls until the stop event is set."""
        stop = threading.Event()
        stop.set()

        scheduler.run(stop, tick_s=0)

        gateway.pull.assert_called_once_with("ws-1")

    def test_run_survives_tick_errors(self, scheduler, gateway):
        """Test an unexpected error in a tick is logged, not raised."""
        gateway.pull.side_effect = RuntimeError("boom")
        stop = threading.Event()
        stop.set()

        scheduler.run(stop, tick_s=0)

        assert scheduler.state == SchedulerState.IDLE

    def test_status_summary(self, scheduler):
        """Test the status summary is serializable."""
        scheduler.poll()

        summary = scheduler.status.get_summary()

        assert summary["state"] == "idle"
        assert summary["workspace_id"] == "ws-1"
        assert summary["pulls"] == 1
        assert summary["last_pull_at"] is not None
