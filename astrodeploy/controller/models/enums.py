"""Shared enumerations used across the deployment controller."""

from __future__ import annotations

from enum import StrEnum

# -- Remote status -----------------------------------------------------------


class DeploymentStatus(StrEnum):
    """Deployment status as reported by the control plane.

    The control plane reports upper-case values (``HEALTHY``); ``parse``
    folds them into this enum.  Anything unrecognised becomes ``UNKNOWN``.
    """

    PROVISIONING = "provisioning"
    CREATING = "creating"
    DEPLOYING = "deploying"
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    ERROR = "error"
    FAILED = "failed"
    DELETED = "deleted"
    HIBERNATING = "hibernating"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> DeploymentStatus:
        if not value:
            return cls.UNKNOWN
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class ConvergenceState(StrEnum):
    """Classification of a status during a convergence wait."""

    READY = "ready"
    FAILED = "failed"
    PENDING = "pending"


# -- Lifecycle ---------------------------------------------------------------


class LifecycleVerb(StrEnum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    IMPORT = "import"


class ReconcilePhase(StrEnum):
    """Progress of a single lifecycle call."""

    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    CONVERGING = "converging"
    DONE = "done"
    FAILED = "failed"


class FailureKind(StrEnum):
    """Structured failure reported to the caller of a lifecycle call."""

    CREATE_REJECTED = "create_rejected"
    UPDATE_REJECTED = "update_rejected"
    DELETE_REJECTED = "delete_rejected"
    NOT_FOUND = "not_found"
    REMOTE_ERROR = "remote_error"
    TIMEOUT = "timeout"
    REMOTE_TERMINAL_FAILURE = "remote_terminal_failure"
    INVALID_DECLARATION = "invalid_declaration"

