"""Data models for the deployment controller."""

from astrodeploy.controller.models.deployment import (
    DeclaredDeployment,
    DeploymentObservation,
    EnvironmentVariableSpec,
    WorkerQueueSpec,
)
from astrodeploy.controller.models.enums import (
    ConvergenceState,
    DeploymentStatus,
    FailureKind,
    LifecycleVerb,
    ReconcilePhase,
)
from astrodeploy.controller.models.remote import (
    DeploymentCreateRequest,
    DeploymentUpdateRequest,
    EnvironmentVariableRequest,
    RemoteDeployment,
    WorkerQueueRequest,
)

__all__ = [
    "ConvergenceState",
    "DeclaredDeployment",
    "DeploymentCreateRequest",
    "DeploymentObservation",
    "DeploymentStatus",
    "DeploymentUpdateRequest",
    "EnvironmentVariableRequest",
    "EnvironmentVariableSpec",
    "FailureKind",
    "LifecycleVerb",
    "ReconcilePhase",
    "RemoteDeployment",
    "WorkerQueueRequest",
    "WorkerQueueSpec",
]
