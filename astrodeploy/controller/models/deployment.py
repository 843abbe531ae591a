"""Declared deployment data models.

A ``DeclaredDeployment`` is the caller's desired state for one managed
deployment.  It is a plain value: lifecycle calls take one in and hand a new
copy back, never keeping a reference.

Scalar fields default to ``None`` so that an imported value (identity only)
is representable, and so a later read can tell which fields the caller never
set.  What the control plane actually requires is enforced by
the request models in ``remote.py`` at mapping time.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class WorkerQueueSpec(BaseModel):
    """One worker queue of a deployment."""

    name: str
    astro_machine: str = Field(description="Machine class for the queue's workers, e.g. 'A5'")
    is_default: bool = False
    min_worker_count: int = Field(default=0, ge=0)
    max_worker_count: int = Field(default=10, ge=0)
    worker_concurrency: int = Field(default=5, ge=1)
    id: str | None = Field(default=None, description="Assigned by the control plane once created")

    @model_validator(mode="after")
    def _check_bounds(self) -> WorkerQueueSpec:
        if self.min_worker_count > self.max_worker_count:
            msg = (
                f"worker queue '{self.name}': min_worker_count ({self.min_worker_count}) "
                f"exceeds max_worker_count ({self.max_worker_count})"
            )
            raise ValueError(msg)
        return self


class EnvironmentVariableSpec(BaseModel):
    key: str
    value: str | None = None
    is_secret: bool = False


class DeclaredDeployment(BaseModel):
    """Desired state of a deployment."""

    id: str = Field(default="", description="Server-assigned identity; empty until created or imported")

    # -- Immutable once created ------------------------------------------------
    astro_runtime_version: str | None = None
    cloud_provider: str | None = None
    region: str | None = None
    organization_id: str | None = None
    workspace_id: str | None = None

    # -- Mutable ---------------------------------------------------------------
    name: str | None = None
    description: str | None = None
    type: str | None = Field(default=None, description="Deployment type, e.g. 'DEDICATED' or 'STANDARD'")
    executor: str | None = None
    scheduler_size: str | None = None
    default_task_pod_cpu: str | None = None
    default_task_pod_memory: str | None = None
    resource_quota_cpu: str | None = None
    resource_quota_memory: str | None = None
    is_cicd_enforced: bool | None = None
    is_dag_deploy_enforced: bool | None = None
    is_high_availability: bool | None = None
    worker_queues: list[WorkerQueueSpec] = Field(default_factory=list)
    environment_variables: list[EnvironmentVariableSpec] = Field(default_factory=list)

    @property
    def default_queues(self) -> list[WorkerQueueSpec]:
        return [q for q in self.worker_queues if q.is_default]


class DeploymentObservation(BaseModel):
    """Server-owned fields read back from the control plane.

    Produced by ``mapping.from_remote``; ``None`` means the control plane did
    not report the field, so the declared value is kept.
    """

    id: str
    name: str | None = None
    type: str | None = None
    region: str | None = None
    organization_id: str | None = None
    workspace_id: str | None = None
    cloud_provider: str | None = None
    status: str | None = None
    worker_queues: list[WorkerQueueSpec] = Field(default_factory=list)
