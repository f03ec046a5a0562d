"""Run tracking: lifecycle state of review runs.

    PENDING -> RUNNING -> COMPLETED | FAILED | CANCELLED
    PENDING -> CANCELLED

All state changes go through one lock, so a run can be cancelled from
another thread (e.g. a web handler) while the pipeline is working on it.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from ..exceptions import DiffScoreError
from ..logging_config import get_logger
from ..providers.protocols import CancellationToken

logger = get_logger(__name__)


class RunState(Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    @property
    def terminal(self) -> bool:
        return self in (RunState.COMPLETED, RunState.FAILED, RunState.CANCELLED)


_TRANSITIONS = {
    RunState.PENDING: frozenset({RunState.RUNNING, RunState.CANCELLED}),
    RunState.RUNNING: frozenset({RunState.COMPLETED, RunState.FAILED, RunState.CANCELLED}),
    RunState.COMPLETED: frozenset(),
    RunState.FAILED: frozenset(),
    RunState.CANCELLED: frozenset(),
}


class InvalidTransitionError(DiffScoreError):
    """Raised for a state change the run lifecycle does not allow."""

    def __init__(self, run_id: str, current: RunState, target: RunState):
        super().__init__(
            f"Run {run_id} cannot go from {current.value} to {target.value}",
            details={"run_id": run_id, "from": current.value, "to": target.value},
        )
        self.run_id = run_id
        self.current = current
        self.target = target


@dataclass(frozen=True)
class TrackedRun:
    run_id: str
    state: RunState
    created_at: datetime
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error: Optional[str] = None
    cancellation: CancellationToken = field(default_factory=CancellationToken, compare=False)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class RunTracker:
    """Thread-safe store of run lifecycle records.

    Active runs are always kept. Finished runs are retained up to
    ``max_finished``; past that the oldest finished records are evicted.
    """

    def __init__(self, max_finished: int = 100) -> None:
        if max_finished < 0:
            raise ValueError("max_finished must be >= 0")
        self.max_finished = max_finished
        self._lock = threading.Lock()
        self._runs: dict[str, TrackedRun] = {}

    def create(self, run_id: str) -> TrackedRun:
        with self._lock:
            if run_id in self._runs:
                raise ValueError(f"Run {run_id} is already tracked")
            run = TrackedRun(run_id=run_id, state=RunState.PENDING, created_at=_now())
            self._runs[run_id] = run
            return run

    def get(self, run_id: str) -> Optional[TrackedRun]:
        with self._lock:
            return self._runs.get(run_id)

    def state(self, run_id: str) -> RunState:
        return self._require(run_id).state

    def start(self, run_id: str) -> TrackedRun:
        return self._transition(run_id, RunState.RUNNING)

    def complete(self, run_id: str) -> TrackedRun:
        return self._transition(run_id, RunState.COMPLETED)

    def fail(self, run_id: str, error: str) -> TrackedRun:
        return self._transition(run_id, RunState.FAILED, error=error)

    def cancel(self, run_id: str) -> TrackedRun:
        """Cancel a pending or running run and trip its cancellation token."""
        run = self._transition(run_id, RunState.CANCELLED)
        run.cancellation.cancel()
        return run

    def active(self) -> list[TrackedRun]:
        with self._lock:
            return [r for r in self._runs.values() if not r.state.terminal]

    def forget(self, run_id: str) -> bool:
        """Drop a finished run's record. Returns False if it was not tracked."""
        with self._lock:
            run = self._runs.get(run_id)
            if run is None:
                return False
            if not run.state.terminal:
                raise ValueError(f"Run {run_id} is still {run.state.value}")
            del self._runs[run_id]
            return True

    def prune_finished(self, older_than: timedelta) -> int:
        """Drop finished runs that ended more than ``older_than`` ago."""
        cutoff = _now() - older_than
        with self._lock:
            stale = [
                run_id
                for run_id, run in self._runs.items()
                if run.state.terminal and run.finished_at is not None and run.finished_at < cutoff
            ]
            for run_id in stale:
                del self._runs[run_id]
        if stale:
            logger.debug(f"Pruned {len(stale)} finished run(s)")
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._runs)

    def _evict_finished(self) -> None:
        """Keep at most ``max_finished`` finished runs, dropping the oldest. Caller holds the lock."""
        finished = [r for r in self._runs.values() if r.state.terminal]
        excess = len(finished) - self.max_finished
        if excess <= 0:
            return
        finished.sort(key=lambda r: r.finished_at or r.created_at)
        for run in finished[:excess]:
            del self._runs[run.run_id]

    def _require(self, run_id: str) -> TrackedRun:
        run = self.get(run_id)
        if run is None:
            raise KeyError(f"Unknown run {run_id}")
        return run

    def _transition(self, run_id: str, target: RunState, error: Optional[str] = None) -> TrackedRun:
        with self._lock:
            run = self._runs.get(run_id)
            if run is None:
                raise KeyError(f"Unknown run {run_id}")
            if target not in _TRANSITIONS[run.state]:
                raise InvalidTransitionError(run_id, run.state, target)

            now = _now()
            updated = replace(
                run,
                state=target,
                started_at=now if target is RunState.RUNNING else run.started_at,
                finished_at=now if target.terminal else run.finished_at,
                error=error if error is not None else run.error,
            )
            self._runs[run_id] = updated
            if target.terminal:
                self._evict_finished()

        logger.debug(f"Run {run_id}: {run.state.value} -> {target.value}")
        return updated
