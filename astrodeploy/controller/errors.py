"""Reconcile failure taxonomy.

Every failed lifecycle call raises exactly one ``ReconcileError`` subclass.
The error records the attempted verb, the identity (when known), the phase
reached and the underlying remote error text, plus the best-known partial
deployment so the caller can decide what to do with an orphaned remote object.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from astrodeploy.controller.models.enums import FailureKind, LifecycleVerb, ReconcilePhase

if TYPE_CHECKING:
    from astrodeploy.controller.models.deployment import DeclaredDeployment


class ReconcileError(Exception):
    kind: FailureKind = FailureKind.REMOTE_ERROR

    def __init__(
        self,
        verb: LifecycleVerb,
        detail: str,
        *,
        identity: str | None = None,
        phase: ReconcilePhase = ReconcilePhase.IN_FLIGHT,
        partial: DeclaredDeployment | None = None,
    ) -> None:
        self.verb = verb
        self.detail = detail
        self.identity = identity or None
        self.phase = phase
        self.partial = partial
        super().__init__(f"{verb} of deployment {self.identity or '<unassigned>'} failed ({self.kind}): {detail}")


class CreateRejectedError(ReconcileError):
    kind = FailureKind.CREATE_REJECTED


class UpdateRejectedError(ReconcileError):
    kind = FailureKind.UPDATE_REJECTED


class DeleteRejectedError(ReconcileError):
    kind = FailureKind.DELETE_REJECTED


class DeploymentNotFoundError(ReconcileError, LookupError):
    kind = FailureKind.NOT_FOUND


class RemoteCallError(ReconcileError):
    """Transport or protocol failure, as opposed to a rejected operation."""

    kind = FailureKind.REMOTE_ERROR


class ConvergenceTimeoutError(ReconcileError):
    kind = FailureKind.TIMEOUT


class RemoteTerminalFailureError(ReconcileError):
    """The control plane reported a failed state while we waited for readiness."""

    kind = FailureKind.REMOTE_TERMINAL_FAILURE


class InvalidDeclarationError(ReconcileError, ValueError):
    """The declared deployment cannot be sent as-is; nothing was sent."""

    kind = FailureKind.INVALID_DECLARATION


ERRORS_BY_KIND: dict[FailureKind, type[ReconcileError]] = {
    cls.kind: cls
    for cls in (
        CreateRejectedError,
        UpdateRejectedError,
        DeleteRejectedError,
        DeploymentNotFoundError,
        RemoteCallError,
        ConvergenceTimeoutError,
        RemoteTerminalFailureError,
        InvalidDeclarationError,
    )
}
