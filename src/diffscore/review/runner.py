"""Concurrent analysis runner: fan providers out on a bounded thread pool.

Every provider gets exactly one ProviderOutcome. Failures, timeouts and
cancellations are captured per provider and never propagate, so one broken
provider cannot stop the others or the run.

Usage:
    runner = AnalysisRunner(max_workers=4, provider_timeout_seconds=60)
    outcomes = runner.run(providers, request_factory)
"""

from __future__ import annotations

import os
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from ..exceptions import ProviderCancelledError, ProviderTimeoutError
from ..logging_config import get_logger
from ..providers.protocols import CancellationToken, ProviderRequest, ReviewProvider

logger = get_logger(__name__)

# Default worker count: use CPU count, capped at 8
_DEFAULT_WORKERS = min(os.cpu_count() or 4, 8)

# Upper bound on one wait() so run cancellation is noticed promptly
_POLL_INTERVAL_SECONDS = 0.1


class OutcomeStatus(Enum):
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"
    CANCELLED = "CANCELLED"
    SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class ProviderOutcome:
    """What one provider produced during a run.

    ``findings`` holds the provider's raw results (Finding objects or
    mappings); the aggregator validates them.
    """

    provider_id: str
    status: OutcomeStatus
    findings: tuple[Any, ...] = ()
    error: Optional[str] = None
    duration_ms: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "findings", tuple(self.findings))

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.SUCCEEDED

    @property
    def warning(self) -> Optional[str]:
        """One-line description for RunStats.warnings, None for success/skip."""
        if self.status in (OutcomeStatus.SUCCEEDED, OutcomeStatus.SKIPPED):
            return None
        label = self.status.value.lower().replace("_", " ")
        if self.error:
            return f"{self.provider_id}: {label} ({self.error})"
        return f"{self.provider_id}: {label}"


RequestFactory = Callable[[ReviewProvider], Optional[ProviderRequest]]


class _Task:
    """Book-keeping for one scheduled provider."""

    def __init__(self, index: int, provider: ReviewProvider, request: ProviderRequest):
        self.index = index
        self.provider = provider
        self.request = request
        self.started_at: Optional[float] = None

    @property
    def provider_id(self) -> str:
        return self.provider.provider_id

    def elapsed_ms(self, now: float) -> int:
        if self.started_at is None:
            return 0
        return int((now - self.started_at) * 1000)


class AnalysisRunner:
    """Runs providers in parallel with per-provider and per-run deadlines.

    Attributes:
        max_workers: Thread pool size
        provider_timeout_seconds: Limit for one provider, measured from when
            its task starts running
        run_timeout_seconds: Limit for the whole fan-out; providers still
            pending at the deadline are reported as timed out
    """

    def __init__(
        self,
        max_workers: Optional[int] = None,
        provider_timeout_seconds: float = 300.0,
        run_timeout_seconds: float = 600.0,
    ):
        self.max_workers = max_workers or _DEFAULT_WORKERS
        self.provider_timeout_seconds = provider_timeout_seconds
        self.run_timeout_seconds = run_timeout_seconds
        self._lock = threading.Lock()

    def run(
        self,
        providers: Sequence[ReviewProvider],
        request_factory: RequestFactory,
        cancellation: Optional[CancellationToken] = None,
    ) -> list[ProviderOutcome]:
        """Run every applicable provider; one outcome per provider, in input order.

        ``request_factory`` builds the request for a provider; returning None
        or a request without segments marks the provider as skipped. The
        factory should give each request its own child cancellation token so
        a timed-out provider can be cancelled on its own.
        """
        outcomes: list[Optional[ProviderOutcome]] = [None] * len(providers)
        tasks: list[_Task] = []

        for index, provider in enumerate(providers):
            provider_id = getattr(provider, "provider_id", f"provider-{index}")
            if not provider.enabled:
                outcomes[index] = ProviderOutcome(provider_id, OutcomeStatus.SKIPPED, error="disabled")
                continue
            try:
                request = request_factory(provider)
            except Exception as e:
                logger.warning(f"Provider {provider_id} failed: {e}")
                outcomes[index] = ProviderOutcome(
                    provider_id, OutcomeStatus.FAILED, error=f"{type(e).__name__}: {e}"
                )
                continue
            if request is None or not request.segments:
                logger.debug(f"Provider {provider_id} skipped: no supported segments")
                outcomes[index] = ProviderOutcome(
                    provider_id, OutcomeStatus.SKIPPED, error="no supported segments"
                )
                continue
            tasks.append(_Task(index, provider, request))

        if tasks:
            for outcome_index, outcome in self._execute(tasks, cancellation):
                outcomes[outcome_index] = outcome

        return [outcome for outcome in outcomes if outcome is not None]

    def _execute(
        self, tasks: list[_Task], cancellation: Optional[CancellationToken]
    ) -> list[tuple[int, ProviderOutcome]]:
        resolved: list[tuple[int, ProviderOutcome]] = []
        run_started = time.monotonic()
        run_deadline = run_started + self.run_timeout_seconds

        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(tasks)), thread_name_prefix="diffscore-provider"
        )
        pending: dict[Future, _Task] = {}
        try:
            for task in tasks:
                pending[executor.submit(self._invoke, task)] = task

            while pending:
                done, _ = wait(
                    pending, timeout=self._next_wake(pending, run_deadline), return_when=FIRST_COMPLETED
                )
                now = time.monotonic()

                for future in done:
                    task = pending.pop(future)
                    resolved.append((task.index, self._resolve(task, future, now)))

                if cancellation is not None and cancellation.cancelled:
                    for future, task in list(pending.items()):
                        task.request.cancellation.cancel()
                        future.cancel()
                        logger.warning(f"Provider {task.provider_id} cancelled")
                        resolved.append(
                            (
                                task.index,
                                ProviderOutcome(
                                    task.provider_id,
                                    OutcomeStatus.CANCELLED,
                                    error="run cancelled",
                                    duration_ms=task.elapsed_ms(now),
                                ),
                            )
                        )
                    pending.clear()
                    break

                run_expired = now >= run_deadline
                for future, task in list(pending.items()):
                    timeout = self._expired(task, now, run_expired)
                    if timeout is None:
                        continue
                    del pending[future]
                    task.request.cancellation.cancel()
                    future.cancel()
                    error = ProviderTimeoutError(task.provider_id, timeout)
                    logger.warning(f"Provider {task.provider_id} failed: {error.reason}")
                    resolved.append(
                        (
                            task.index,
                            ProviderOutcome(
                                task.provider_id,
                                OutcomeStatus.TIMED_OUT,
                                error=error.reason,
                                duration_ms=task.elapsed_ms(now),
                            ),
                        )
                    )
        finally:
            # Never wait on abandoned threads
            executor.shutdown(wait=False, cancel_futures=True)

        return resolved

    def _invoke(self, task: _Task) -> list[Any]:
        with self._lock:
            task.started_at = time.monotonic()
        task.request.cancellation.raise_if_cancelled(task.provider_id)
        logger.debug(f"Provider {task.provider_id} started on {len(task.request.segments)} segments")
        return list(task.provider.review(task.request) or ())

    def _resolve(self, task: _Task, future: Future, now: float) -> ProviderOutcome:
        duration_ms = task.elapsed_ms(now)
        try:
            findings = future.result()
        except ProviderCancelledError:
            logger.warning(f"Provider {task.provider_id} cancelled")
            return ProviderOutcome(
                task.provider_id, OutcomeStatus.CANCELLED, error="run cancelled", duration_ms=duration_ms
            )
        except ProviderTimeoutError as e:
            logger.warning(f"Provider {task.provider_id} failed: {e.reason}")
            return ProviderOutcome(
                task.provider_id, OutcomeStatus.TIMED_OUT, error=e.reason, duration_ms=duration_ms
            )
        except Exception as e:
            logger.warning(f"Provider {task.provider_id} failed: {e}")
            return ProviderOutcome(
                task.provider_id,
                OutcomeStatus.FAILED,
                error=f"{type(e).__name__}: {e}",
                duration_ms=duration_ms,
            )

        logger.debug(f"Provider {task.provider_id} returned {len(findings)} findings in {duration_ms}ms")
        return ProviderOutcome(
            task.provider_id, OutcomeStatus.SUCCEEDED, findings=tuple(findings), duration_ms=duration_ms
        )

    def _expired(self, task: _Task, now: float, run_expired: bool) -> Optional[float]:
        """Timeout (seconds) the task has exceeded, or None if it may continue."""
        with self._lock:
            started_at = task.started_at
        if started_at is not None and now - started_at >= self.provider_timeout_seconds:
            return self.provider_timeout_seconds
        if run_expired:
            return self.run_timeout_seconds
        return None

    def _next_wake(self, pending: dict[Future, _Task], run_deadline: float) -> float:
        now = time.monotonic()
        wake = min(run_deadline - now, _POLL_INTERVAL_SECONDS)
        with self._lock:
            for task in pending.values():
                if task.started_at is not None:
                    wake = min(wake, task.started_at + self.provider_timeout_seconds - now)
        return max(wake, 0.0)
