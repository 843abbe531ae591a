"""Convergence poller -- waits for an asynchronously provisioned deployment.

After a create (or, optionally, an update) the control plane usually answers
with a non-terminal status.  ``await_ready`` re-fetches the deployment until
its status is classified as ready or failed.

The wait is always bounded:

- ``PollPolicy.timeout`` is a wall-clock deadline (monotonic clock).  The
  wait before the final check is shortened to end at the deadline, and the
  wait only times out once that check has also come back pending.
- ``PollPolicy.max_attempts`` optionally caps the number of fetches.
- A ``threading.Event`` passed as ``cancel`` aborts the wait early.

The interval between fetches starts at ``interval`` and is multiplied by
``backoff`` after every fetch, capped at ``max_interval``.  ``backoff=1.0``
gives a fixed interval.

Fetch errors are never retried: the first ``RemoteClientError`` ends the wait.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from astrodeploy.controller.client.base import RemoteClientError
from astrodeploy.controller.models.enums import ConvergenceState, DeploymentStatus, FailureKind

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable

    from astrodeploy.controller.models.remote import RemoteDeployment

READY_STATUSES = frozenset({DeploymentStatus.HEALTHY})
FAILED_STATUSES = frozenset(
    {DeploymentStatus.ERROR, DeploymentStatus.FAILED, DeploymentStatus.UNHEALTHY, DeploymentStatus.DELETED}
)


def classify_status(status: str | None) -> ConvergenceState:
    """Default classifier: healthy is ready, explicit failures are failed, the rest pending."""
    parsed = DeploymentStatus.parse(status)
    if parsed in READY_STATUSES:
        return ConvergenceState.READY
    if parsed in FAILED_STATUSES:
        return ConvergenceState.FAILED
    return ConvergenceState.PENDING


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PollPolicy:
    interval: float = 1.0
    backoff: float = 1.0
    max_interval: float = 30.0
    timeout: float = 1800.0
    max_attempts: int | None = None

    def __post_init__(self) -> None:
        if self.interval < 0 or self.max_interval < 0 or self.timeout < 0:
            msg = "interval, max_interval and timeout must be non-negative"
            raise ValueError(msg)
        if self.backoff < 1.0:
            msg = f"backoff must be >= 1.0, got {self.backoff}"
            raise ValueError(msg)
        if self.max_attempts is not None and self.max_attempts < 1:
            msg = f"max_attempts must be >= 1, got {self.max_attempts}"
            raise ValueError(msg)

    def next_interval(self, current: float) -> float:
        return min(current * self.backoff, self.max_interval)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ConvergenceError(Exception):
    """Base class for a wait that ended without the deployment becoming ready."""

    kind: FailureKind = FailureKind.REMOTE_ERROR

    def __init__(self, identity: str, message: str, *, last_seen: RemoteDeployment | None, attempts: int) -> None:
        super().__init__(message)
        self.identity = identity
        self.last_seen = last_seen
        self.attempts = attempts


class PollTimeoutError(ConvergenceError):
    kind = FailureKind.TIMEOUT


class PollTerminalFailureError(ConvergenceError):
    kind = FailureKind.REMOTE_TERMINAL_FAILURE


class PollRemoteError(ConvergenceError):
    kind = FailureKind.REMOTE_ERROR


# ---------------------------------------------------------------------------
# Wait loop
# ---------------------------------------------------------------------------


def await_ready(
    identity: str,
    fetch: Callable[[str], RemoteDeployment],
    *,
    classify: Callable[[str | None], ConvergenceState] = classify_status,
    policy: PollPolicy | None = None,
    cancel: threading.Event | None = None,
    sleep: Callable[[float], None] | None = None,
    clock: Callable[[], float] = time.monotonic,
    last_seen: RemoteDeployment | None = None,
) -> RemoteDeployment:
    """Fetch ``identity`` until it is ready; return the ready record.

    Raises ``PollTerminalFailureError`` on a failed status,
    ``PollTimeoutError`` when the deadline, attempt cap or cancellation
    ends the wait, and ``PollRemoteError`` when a fetch fails.
    """
    policy = policy or PollPolicy()
    deadline = clock() + policy.timeout
    delay = policy.interval
    attempts = 0

    while True:
        if policy.max_attempts is not None and attempts >= policy.max_attempts:
            msg = f"deployment {identity} not ready after {attempts} status checks"
            raise PollTimeoutError(identity, msg, last_seen=last_seen, attempts=attempts)

        # The last wait is cut short at the deadline; there is always at least one check.
        remaining = max(deadline - clock(), 0.0)
        if attempts and remaining <= 0:
            msg = f"deployment {identity} not ready within {policy.timeout:g}s"
            raise PollTimeoutError(identity, msg, last_seen=last_seen, attempts=attempts)

        if _wait(min(delay, remaining), cancel, sleep):
            msg = f"wait for deployment {identity} cancelled after {attempts} status checks"
            raise PollTimeoutError(identity, msg, last_seen=last_seen, attempts=attempts)

        attempts += 1
        try:
            current = fetch(identity)
        except RemoteClientError as exc:
            msg = f"status check {attempts} for deployment {identity} failed: {exc}"
            raise PollRemoteError(identity, msg, last_seen=last_seen, attempts=attempts) from exc

        last_seen = current
        state = classify(current.status)
        logger.debug("Deployment {} status check {}: {} ({})", identity, attempts, current.status, state)

        if state is ConvergenceState.READY:
            return current
        if state is ConvergenceState.FAILED:
            reason = f": {current.status_reason}" if current.status_reason else ""
            msg = f"deployment {identity} entered status {current.status}{reason}"
            raise PollTerminalFailureError(identity, msg, last_seen=current, attempts=attempts)

        delay = policy.next_interval(delay)


def await_ready_from(
    initial: RemoteDeployment,
    fetch: Callable[[str], RemoteDeployment],
    *,
    classify: Callable[[str | None], ConvergenceState] = classify_status,
    policy: PollPolicy | None = None,
    cancel: threading.Event | None = None,
    sleep: Callable[[float], None] | None = None,
) -> RemoteDeployment:
    """Converge starting from a record just returned by the control plane.

    An ``initial`` record that is already ready is returned without any
    fetch; one that is already failed raises without any fetch.
    """
    state = classify(initial.status)
    if state is ConvergenceState.READY:
        return initial
    if state is ConvergenceState.FAILED:
        msg = f"deployment {initial.id} entered status {initial.status}"
        raise PollTerminalFailureError(initial.id, msg, last_seen=initial, attempts=0)
    return await_ready(
        initial.id,
        fetch,
        classify=classify,
        policy=policy,
        cancel=cancel,
        sleep=sleep,
        last_seen=initial,
    )


def _wait(delay: float, cancel: threading.Event | None, sleep: Callable[[float], None] | None) -> bool:
    """Wait ``delay`` seconds.  Returns True if cancelled."""
    if cancel is not None:
        if cancel.is_set():
            return True
        if sleep is None:
            return cancel.wait(delay)
    (sleep or time.sleep)(delay)
    return cancel is not None and cancel.is_set()
