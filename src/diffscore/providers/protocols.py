"""Provider gateway: the capability interface every review provider implements."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Protocol, Sequence, Union, runtime_checkable

from ..config import ReviewConfig
from ..costing import UsageLedger
from ..exceptions import ProviderCancelledError
from ..models import CodeSegment, DiffHunk, Finding, PullRef, RepoRef

_WAIT_SLICE_SECONDS = 0.05


class CancellationToken:
    """Thread-safe cancellation flag.

    A child token is cancelled when it or any ancestor is cancelled, so a run
    token can stop every provider while a single provider's token can be
    cancelled on its own (e.g. on timeout).
    """

    def __init__(self, parent: Optional[CancellationToken] = None):
        self._event = threading.Event()
        self._parent = parent

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    def raise_if_cancelled(self, provider_id: str = "unknown") -> None:
        if self.cancelled:
            raise ProviderCancelledError(provider_id)

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until cancelled or timeout elapses; returns ``cancelled``."""
        if self._parent is None:
            return self._event.wait(timeout)

        deadline = None if timeout is None else time.monotonic() + timeout
        while not self.cancelled:
            remaining = _WAIT_SLICE_SECONDS
            if deadline is not None:
                remaining = min(remaining, deadline - time.monotonic())
                if remaining <= 0:
                    break
            self._event.wait(remaining)
        return self.cancelled

    def child(self) -> CancellationToken:
        return CancellationToken(parent=self)


@dataclass(frozen=True)
class ProviderRequest:
    """Everything a provider gets for one run. Shared read-only across threads."""

    run_id: str
    repo: RepoRef
    pull: PullRef
    hunks: tuple[DiffHunk, ...] = ()
    segments: tuple[CodeSegment, ...] = ()
    config: ReviewConfig = field(default_factory=ReviewConfig.default)
    cancellation: CancellationToken = field(default_factory=CancellationToken)
    usage: UsageLedger = field(default_factory=UsageLedger)

    def __post_init__(self) -> None:
        object.__setattr__(self, "hunks", tuple(self.hunks))
        object.__setattr__(self, "segments", tuple(self.segments))


ProviderResult = Sequence[Union[Finding, Mapping[str, Any]]]


@runtime_checkable
class ReviewProvider(Protocol):
    """A pluggable analysis provider (static analyzer, AI reviewer, ...).

    ``review`` may return Finding objects or plain mappings accepted by
    ``Finding.from_dict``. Long-running providers should poll
    ``request.cancellation``.
    """

    provider_id: str
    name: str
    version: str
    enabled: bool

    def supports(self, file_path: str, language: str) -> bool: ...

    def review(self, request: ProviderRequest) -> ProviderResult: ...
