"""Translation between declared deployments and control-plane shapes.

Field coverage is explicit.  Every ``DeclaredDeployment`` attribute is either
in ``CREATE_FIELD_MAP`` or in ``UNMAPPED_FIELDS``; ``UPDATE_FIELD_MAP`` is the
create table minus ``IMMUTABLE_FIELDS``.  A declared field with no entry in a
table is simply not sent.

Everything here is pure: no client calls, no mutation of inputs.
"""

from __future__ import annotations

from typing import Any

from astrodeploy.controller.models.deployment import (
    DeclaredDeployment,
    DeploymentObservation,
    WorkerQueueSpec,
)
from astrodeploy.controller.models.enums import DeploymentStatus
from astrodeploy.controller.models.remote import (
    DeploymentCreateRequest,
    DeploymentUpdateRequest,
    EnvironmentVariableRequest,
    RemoteDeployment,
    WorkerQueueRequest,
)

# ---------------------------------------------------------------------------
# Field tables
# ---------------------------------------------------------------------------

# declared attribute -> request attribute
CREATE_FIELD_MAP: dict[str, str] = {
    "astro_runtime_version": "astro_runtime_version",
    "cloud_provider": "cloud_provider",
    "region": "region",
    "workspace_id": "workspace_id",
    "name": "name",
    "description": "description",
    "type": "type",
    "executor": "executor",
    "scheduler_size": "scheduler_size",
    "default_task_pod_cpu": "default_task_pod_cpu",
    "default_task_pod_memory": "default_task_pod_memory",
    "resource_quota_cpu": "resource_quota_cpu",
    "resource_quota_memory": "resource_quota_memory",
    "is_cicd_enforced": "is_cicd_enforced",
    "is_dag_deploy_enforced": "is_dag_deploy_enabled",
    "is_high_availability": "is_high_availability",
    "worker_queues": "worker_queues",
    "environment_variables": "environment_variables",
}

# Never part of a request body: identity and organization travel in the URL.
UNMAPPED_FIELDS: frozenset[str] = frozenset({"id", "organization_id"})

IMMUTABLE_FIELDS: frozenset[str] = frozenset(
    {"astro_runtime_version", "cloud_provider", "region", "organization_id", "workspace_id"}
)

UPDATE_FIELD_MAP: dict[str, str] = {k: v for k, v in CREATE_FIELD_MAP.items() if k not in IMMUTABLE_FIELDS}

# Overwritten on the declared value whenever the control plane reports them.
SERVER_OWNED_FIELDS: tuple[str, ...] = (
    "id",
    "name",
    "type",
    "region",
    "organization_id",
    "workspace_id",
    "cloud_provider",
)

# Filled from the control plane only when the caller left them unset.
HYDRATED_FIELDS: dict[str, str] = {
    declared: remote
    for declared, remote in CREATE_FIELD_MAP.items()
    if declared not in {"worker_queues", "environment_variables"}
}


# ---------------------------------------------------------------------------
# Declared -> remote
# ---------------------------------------------------------------------------


def to_remote_create(declared: DeclaredDeployment) -> DeploymentCreateRequest:
    """Build a create request.  Raises ``ValidationError`` if required fields are unset."""
    return DeploymentCreateRequest(**_project(declared, CREATE_FIELD_MAP))


def to_remote_update(declared: DeclaredDeployment) -> DeploymentUpdateRequest:
    """Build an update request.  Immutable-on-create fields are left out."""
    return DeploymentUpdateRequest(**_project(declared, UPDATE_FIELD_MAP))


def _project(declared: DeclaredDeployment, field_map: dict[str, str]) -> dict[str, Any]:
    kwargs: dict[str, Any] = {}
    for source, target in field_map.items():
        value = getattr(declared, source)
        if value is None:
            continue
        if source == "worker_queues":
            value = [WorkerQueueRequest(**q.model_dump()) for q in value]
        elif source == "environment_variables":
            value = [EnvironmentVariableRequest(**v.model_dump()) for v in value]
        kwargs[target] = value
    return kwargs


# ---------------------------------------------------------------------------
# Remote -> declared
# ---------------------------------------------------------------------------


def normalize_cloud_provider(value: str | None) -> str | None:
    return value.upper() if value else value


def from_remote(remote: RemoteDeployment) -> DeploymentObservation:
    """Extract the server-owned view of a remote deployment."""
    return DeploymentObservation(
        id=remote.id,
        name=remote.name,
        type=remote.type,
        region=remote.region,
        organization_id=remote.organization_id,
        workspace_id=remote.workspace_id,
        cloud_provider=normalize_cloud_provider(remote.cloud_provider),
        status=DeploymentStatus.parse(remote.status) if remote.status is not None else None,
        worker_queues=[WorkerQueueSpec(**q.model_dump()) for q in remote.worker_queues or []],
    )


def merge_observation(declared: DeclaredDeployment, observation: DeploymentObservation) -> DeclaredDeployment:
    """Return a copy of ``declared`` with server-owned fields taken from ``observation``.

    Worker queues keep the caller's order and settings; only their ids are
    adopted, matched by queue name.
    """
    updates: dict[str, Any] = {}
    for field in SERVER_OWNED_FIELDS:
        value = getattr(observation, field)
        if value is not None:
            updates[field] = value

    remote_ids = {q.name: q.id for q in observation.worker_queues if q.id}
    if remote_ids:
        updates["worker_queues"] = [
            q.model_copy(update={"id": remote_ids[q.name]}) if q.name in remote_ids else q.model_copy()
            for q in declared.worker_queues
        ]

    return declared.model_copy(update=updates, deep=True)


def hydrate(declared: DeclaredDeployment, remote: RemoteDeployment) -> DeclaredDeployment:
    """Fill fields the caller never set from the remote record.

    Used on read so that an imported (identity-only) deployment picks up the
    rest of its configuration.  Fields the caller did set are left alone.
    """
    updates: dict[str, Any] = {}
    for declared_field, remote_field in HYDRATED_FIELDS.items():
        if getattr(declared, declared_field) is None:
            value = getattr(remote, remote_field)
            if value is not None:
                updates[declared_field] = value
    if "cloud_provider" in updates:
        updates["cloud_provider"] = normalize_cloud_provider(updates["cloud_provider"])
    if not declared.worker_queues and remote.worker_queues:
        updates["worker_queues"] = [WorkerQueueSpec(**q.model_dump()) for q in remote.worker_queues]
    return declared.model_copy(update=updates, deep=True)
