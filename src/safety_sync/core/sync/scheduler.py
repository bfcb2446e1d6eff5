"""Sync scheduler: periodic pulls, debounced pushes and echo suppression.

State machine per workspace::

    IDLE -> PULLING -> MERGING -> SETTLING -> IDLE
    IDLE -> PULLING -> IDLE                  (failure, empty or not newer)
    IDLE -> PUSHING -> IDLE                  (success, unknown or failure)

Changes seen while MERGING are the merge itself and are dropped. Changes seen
while PULLING or SETTLING, or before the first pull completed, are deferred and
re-armed as a debounced push once the scheduler is back in IDLE. No push is
sent before one pull attempt succeeded or confirmed the workspace empty, so a
fresh default dataset never overwrites an established workspace. Local changes
left unpushed by an earlier session are pushed once that first pull is done.

Pushed versions are kept above every version pulled or pushed before, so a
device with a slow clock cannot publish a snapshot its peers consider stale.

Everything runs on one thread; timers are deadlines checked by ``poll()``.
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ...models import now_ms
from ..remote.gateway import PushOutcome, RemoteGateway, RemoteGatewayError
from ..store.state import AppState
from .reconciler import ReconcileResult, apply_snapshot, build_snapshot

logger = logging.getLogger(__name__)

DEFAULT_PULL_INTERVAL_S = 20.0
DEFAULT_PUSH_DEBOUNCE_S = 2.0
DEFAULT_SETTLE_WINDOW_S = 1.0


class SchedulerState(str, Enum):
    """States of the sync scheduler."""

    IDLE = "idle"
    PULLING = "pulling"
    MERGING = "merging"
    SETTLING = "settling"
    PUSHING = "pushing"


@dataclass
class SyncStatus:
    """Observable status of a sync session."""

    state: SchedulerState = SchedulerState.IDLE
    workspace_id: Optional[str] = None
    initial_pull_done: bool = False
    push_pending: bool = False
    last_remote_version: Optional[int] = None
    last_pull_at: Optional[datetime] = None
    last_push_at: Optional[datetime] = None
    last_push_outcome: Optional[PushOutcome] = None
    last_error: Optional[str] = None
    pulls: int = 0
    merges: int = 0
    pushes: int = 0
    failures: int = 0

    def get_summary(self) -> Dict[str, Any]:
        """Get summary of sync status."""
        return {
            "state": self.state.value,
            "workspace_id": self.workspace_id,
            "initial_pull_done": self.initial_pull_done,
            "push_pending": self.push_pending,
            "last_remote_version": self.last_remote_version,
            "last_pull_at": (
                self.last_pull_at.isoformat() if self.last_pull_at else None
            ),
            "last_push_at": (
                self.last_push_at.isoformat() if self.last_push_at else None
            ),
            "last_push_outcome": (
                self.last_push_outcome.value if self.last_push_outcome else None
            ),
            "last_error": self.last_error,
            "pulls": self.pulls,
            "merges": self.merges,
            "pushes": self.pushes,
            "failures": self.failures,
        }


class SyncScheduler:
    """Drives pull/merge/push cycles for one workspace at a time."""

    def __init__(
        self,
        app_state: AppState,
        gateway: RemoteGateway,
        workspace_id: Optional[str],
        pull_interval_s: float = DEFAULT_PULL_INTERVAL_S,
        push_debounce_s: float = DEFAULT_PUSH_DEBOUNCE_S,
        settle_window_s: float = DEFAULT_SETTLE_WINDOW_S,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], int] = now_ms,
    ):
        """Initialize sync scheduler.

        Args:
            app_state: Application state to keep in sync
            gateway: Remote store client
            workspace_id: Workspace to sync; None disables network activity
            pull_interval_s: Seconds between scheduled pulls
            push_debounce_s: Quiet period after a local change before pushing
            settle_window_s: Guard window after a merge during which pushes wait
            clock: Monotonic time source in seconds
            wall_clock: Epoch-ms source used to version pushed snapshots
        """
        self.app_state = app_state
        self.gateway = gateway
        self.workspace_id = workspace_id
        self.pull_interval_s = pull_interval_s
        self.push_debounce_s = push_debounce_s
        self.settle_window_s = settle_window_s
        self._clock = clock
        self._wall_clock = wall_clock

        self._state = SchedulerState.IDLE
        self._generation = 0
        self._closed = False
        self._initial_pull_done = False
        self._last_remote_version: Optional[int] = None
        self._last_pushed_version: Optional[int] = None
        self._next_pull_at: Optional[float] = clock()
        self._push_due_at: Optional[float] = None
        self._settle_until: Optional[float] = None
        self._deferred_change = False
        self.status = SyncStatus(workspace_id=workspace_id)

        self._unsubscribe = app_state.subscribe(self.notify_local_change)

    @property
    def state(self) -> SchedulerState:
        """Current scheduler state."""
        return self._state

    @property
    def push_pending(self) -> bool:
        """Whether a push is armed or waiting to be armed."""
        return self._push_due_at is not None or self._deferred_change

    # =========================================================================
    # Local changes
    # =========================================================================

    def notify_local_change(self, collection: str = "*") -> None:
        """React to a change of the application state.

        Args:
            collection: Name of the changed collection
        """
        if self._closed:
            return
        if self._state == SchedulerState.MERGING:
            logger.debug("Ignoring %s change caused by merge", collection)
            return
        if self._state == SchedulerState.IDLE and self._initial_pull_done:
            self._arm_push()
            return
        logger.debug(
            "Deferring push for %s change (state=%s, initial pull done=%s)",
            collection,
            self._state.value,
            self._initial_pull_done,
        )
        self._deferred_change = True

    def _arm_push(self) -> None:
        self._deferred_change = False
        self._push_due_at = self._clock() + self.push_debounce_s
        self.status.push_pending = True

    def _release_deferred(self) -> None:
        if self._deferred_change and self._initial_pull_done:
            logger.debug("Re-arming deferred push")
            self._arm_push()

    # =========================================================================
    # Timers
    # =========================================================================

    def poll(self) -> None:
        """Fire whatever timers are due.

        Order: settle expiry, then a due pull, then a due push. At most one
        network operation runs per call.
        """
        if self._closed:
            return
        now = self._clock()

        if (
            self._state == SchedulerState.SETTLING
            and self._settle_until is not None
            and now >= self._settle_until
        ):
            self._settle_until = None
            self._set_state(SchedulerState.IDLE)
            self._release_deferred()

        if self._state != SchedulerState.IDLE or not self.workspace_id:
            return

        if self._next_pull_at is not None and now >= self._next_pull_at:
            self.pull_now()
            return

        if self._push_due_at is not None and now >= self._push_due_at:
            self.push_now()

    def trigger_pull(self) -> None:
        """Make the next ``poll()`` pull regardless of the interval."""
        self._next_pull_at = self._clock()

    def _set_state(self, state: SchedulerState) -> None:
        self._state = state
        self.status.state = state
        self.status.push_pending = self.push_pending

    def _record_failure(self, operation: str, error: Exception) -> None:
        self.status.failures += 1
        self.status.last_error = f"{operation}: {error}"
        logger.warning(
            "Sync %s failed, continuing with local data: %s", operation, error
        )

    # =========================================================================
    # Pull
    # =========================================================================

    def pull_now(self) -> Optional[ReconcileResult]:
        """Pull the workspace and merge it if the remote copy is newer.

        Returns:
            ReconcileResult when a merge happened, None otherwise
        """
        if self._closed or not self.workspace_id:
            return None
        if self._state != SchedulerState.IDLE:
            logger.debug("Pull skipped, scheduler is %s", self._state.value)
            return None

        generation = self._generation
        workspace_id = self.workspace_id
        self._next_pull_at = self._clock() + self.pull_interval_s
        self._set_state(SchedulerState.PULLING)

        try:
            snapshot = self.gateway.pull(workspace_id)
        except RemoteGatewayError as e:
            if generation != self._generation:
                return None
            self._record_failure("pull", e)
            self._set_state(SchedulerState.IDLE)
            return None
        except Exception:
            if generation == self._generation:
                self._set_state(SchedulerState.IDLE)
            raise

        if generation != self._generation:
            logger.info("Discarding pull result for stale workspace %s", workspace_id)
            return None

        self.status.pulls += 1
        self.status.last_pull_at = datetime.now()
        self.status.last_error = None
        if not self._initial_pull_done and self.app_state.has_unsynced_changes:
            logger.info("Local changes from an earlier session are not pushed yet")
            self._deferred_change = True
        self._initial_pull_done = True
        self.status.initial_pull_done = True

        if snapshot is None:
            logger.debug("Workspace %s holds no data yet", workspace_id)
            self._set_state(SchedulerState.IDLE)
            self._release_deferred()
            return None

        if (
            self._last_remote_version is not None
            and snapshot.last_updated <= self._last_remote_version
        ):
            logger.debug(
                "Remote version %d not newer than %d",
                snapshot.last_updated,
                self._last_remote_version,
            )
            self._set_state(SchedulerState.IDLE)
            self._release_deferred()
            return None

        self._set_state(SchedulerState.MERGING)
        try:
            result = apply_snapshot(self.app_state, snapshot)
        finally:
            self._last_remote_version = snapshot.last_updated
            self.status.last_remote_version = snapshot.last_updated
            self._settle_until = self._clock() + self.settle_window_s
            self._set_state(SchedulerState.SETTLING)
        self.status.merges += 1
        return result

    # =========================================================================
    # Push
    # =========================================================================

    def push_now(self) -> Optional[PushOutcome]:
        """Push the full local dataset.

        A push requested while busy, or before the first pull completed, is
        deferred instead. Failures are logged and never retried here.

        Returns:
            PushOutcome if a push was attempted and succeeded, None otherwise
        """
        if self._closed or not self.workspace_id:
            return None
        if self._state != SchedulerState.IDLE or not self._initial_pull_done:
            logger.debug(
                "Push deferred (state=%s, initial pull done=%s)",
                self._state.value,
                self._initial_pull_done,
            )
            self._deferred_change = True
            self.status.push_pending = True
            return None

        generation = self._generation
        workspace_id = self.workspace_id
        self._push_due_at = None
        self._set_state(SchedulerState.PUSHING)

        outcome: Optional[PushOutcome] = None
        try:
            version = self._next_version()
            snapshot = build_snapshot(self.app_state, last_updated=version)
            outcome = self.gateway.push(workspace_id, snapshot)
        except RemoteGatewayError as e:
            if generation != self._generation:
                return None
            self._record_failure("push", e)
        except Exception:
            if generation == self._generation:
                self._set_state(SchedulerState.IDLE)
            raise
        if generation != self._generation:
            logger.info("Discarding push result for stale workspace %s", workspace_id)
            return None

        if outcome is not None:
            self._last_pushed_version = version
            self.status.pushes += 1
            self.status.last_push_at = datetime.now()
            self.status.last_push_outcome = outcome
            logger.info("Pushed snapshot to %s (%s)", workspace_id, outcome.value)
            # a change made while pushing is not in the snapshot
            if not self._deferred_change:
                self.app_state.mark_synced()
        self._set_state(SchedulerState.IDLE)
        self._release_deferred()
        return outcome

    def _next_version(self) -> int:
        """Version for an outgoing snapshot, above every version seen or sent.

        A device whose clock runs behind still produces a version that peers
        treat as newer than the one they last pulled.
        """
        floor = max(self._last_remote_version or 0, self._last_pushed_version or 0)
        return max(self._wall_clock(), floor + 1)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def _cancel_timers(self) -> None:
        self._push_due_at = None
        self._settle_until = None
        self._deferred_change = False

    def switch_workspace(self, workspace_id: Optional[str]) -> None:
        """Start syncing another workspace.

        Pending timers are cancelled and results of calls still in flight for
        the previous workspace are discarded when they return.
        """
        logger.info("Switching workspace %s -> %s", self.workspace_id, workspace_id)
        self._generation += 1
        self._cancel_timers()
        self.workspace_id = workspace_id
        self._initial_pull_done = False
        self._last_remote_version = None
        self._last_pushed_version = None
        self._next_pull_at = self._clock()
        self.status = SyncStatus(workspace_id=workspace_id)
        self._set_state(SchedulerState.IDLE)

    def close(self) -> None:
        """Stop reacting to changes and cancel every pending timer."""
        self._generation += 1
        self._closed = True
        self._cancel_timers()
        self._next_pull_at = None
        self._unsubscribe()
        self._set_state(SchedulerState.IDLE)

    def run(
        self, stop_event: Optional[threading.Event] = None, tick_s: float = 0.25
    ) -> None:
        """Poll until ``stop_event`` is set.

        Args:
            stop_event: Event that ends the loop (a new one if None)
            tick_s: Seconds between polls
        """
        stop = stop_event or threading.Event()
        logger.info(
            "Sync loop started for %s (pull every %.0fs)",
            self.workspace_id,
            self.pull_interval_s,
        )
        try:
            while not self._closed:
                try:
                    self.poll()
                except Exception:
                    logger.exception("Sync tick failed")
                if stop.wait(tick_s):
                    break
        finally:
            logger.info("Sync loop stopped")
