"""Control-plane wire shapes.

Attribute names are snake_case; the JSON keys are camelCase via the alias
generator.  Serialize with ``model_dump(by_alias=True, exclude_none=True)``.

Request models declare what the control plane requires, so building one from
an incomplete declaration raises ``pydantic.ValidationError``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class WorkerQueueRequest(WireModel):
    name: str
    astro_machine: str
    is_default: bool
    min_worker_count: int
    max_worker_count: int
    worker_concurrency: int
    id: str | None = None


class EnvironmentVariableRequest(WireModel):
    key: str
    value: str | None = None
    is_secret: bool = False


class DeploymentCreateRequest(WireModel):
    name: str
    workspace_id: str
    astro_runtime_version: str
    executor: str
    type: str
    cloud_provider: str | None = None
    region: str | None = None
    description: str | None = None
    scheduler_size: str | None = None
    default_task_pod_cpu: str | None = None
    default_task_pod_memory: str | None = None
    resource_quota_cpu: str | None = None
    resource_quota_memory: str | None = None
    is_cicd_enforced: bool = False
    is_dag_deploy_enabled: bool = False
    is_high_availability: bool = False
    worker_queues: list[WorkerQueueRequest] = Field(default_factory=list)
    environment_variables: list[EnvironmentVariableRequest] = Field(default_factory=list)


class DeploymentUpdateRequest(WireModel):
    """Update body.  Carries no immutable-on-create fields."""

    name: str
    executor: str
    type: str | None = None
    description: str | None = None
    scheduler_size: str | None = None
    default_task_pod_cpu: str | None = None
    default_task_pod_memory: str | None = None
    resource_quota_cpu: str | None = None
    resource_quota_memory: str | None = None
    is_cicd_enforced: bool = False
    is_dag_deploy_enabled: bool = False
    is_high_availability: bool = False
    worker_queues: list[WorkerQueueRequest] = Field(default_factory=list)
    environment_variables: list[EnvironmentVariableRequest] = Field(default_factory=list)


class RemoteDeployment(WireModel):
    """The control plane's record of a deployment."""

    id: str
    name: str | None = None
    description: str | None = None
    type: str | None = None
    region: str | None = None
    organization_id: str | None = None
    workspace_id: str | None = None
    cloud_provider: str | None = None
    astro_runtime_version: str | None = None
    executor: str | None = None
    scheduler_size: str | None = None
    default_task_pod_cpu: str | None = None
    default_task_pod_memory: str | None = None
    resource_quota_cpu: str | None = None
    resource_quota_memory: str | None = None
    is_cicd_enforced: bool | None = None
    is_dag_deploy_enabled: bool | None = None
    is_high_availability: bool | None = None
    worker_queues: list[WorkerQueueRequest] | None = None
    status: str | None = None
    status_reason: str | None = None
