"""Unit tests for declared <-> remote mapping."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from astrodeploy.controller import mapping
from astrodeploy.controller.models.deployment import (
    DeclaredDeployment,
    DeploymentObservation,
    EnvironmentVariableSpec,
    WorkerQueueSpec,
)
from astrodeploy.controller.models.enums import DeploymentStatus
from astrodeploy.controller.models.remote import (
    DeploymentCreateRequest,
    DeploymentUpdateRequest,
    RemoteDeployment,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _echo(request: DeploymentCreateRequest, **overrides: object) -> RemoteDeployment:
    """What the control plane sends back for a create request."""
    data = request.model_dump(exclude={"environment_variables"})
    data.update(id="dep-1", organization_id="org-1", status="CREATING")
    data.update(overrides)
    return RemoteDeployment.model_validate(data)


# ---------------------------------------------------------------------------
# Field tables
# ---------------------------------------------------------------------------


def test_every_declared_field_is_classified() -> None:
    declared_fields = set(DeclaredDeployment.model_fields)
    mapped = set(mapping.CREATE_FIELD_MAP)

    assert mapped | mapping.UNMAPPED_FIELDS == declared_fields
    assert not mapped & mapping.UNMAPPED_FIELDS


def test_field_tables_target_real_request_fields() -> None:
    assert set(mapping.CREATE_FIELD_MAP.values()) <= set(DeploymentCreateRequest.model_fields)
    assert set(mapping.UPDATE_FIELD_MAP.values()) <= set(DeploymentUpdateRequest.model_fields)


def test_update_table_excludes_immutable_fields() -> None:
    assert not set(mapping.UPDATE_FIELD_MAP) & mapping.IMMUTABLE_FIELDS
    for field in ("region", "cloud_provider", "astro_runtime_version", "workspace_id"):
        assert field not in DeploymentUpdateRequest.model_fields


# ---------------------------------------------------------------------------
# Declared -> remote
# ---------------------------------------------------------------------------


def test_to_remote_create(declared: DeclaredDeployment) -> None:
    request = mapping.to_remote_create(declared)

    assert request.name == "prod"
    assert request.region == "us-east-1"
    assert request.workspace_id == "ws-1"
    assert request.is_dag_deploy_enabled is True

    body = request.model_dump(by_alias=True, exclude_none=True)
    assert body["astroRuntimeVersion"] == "9.1.0"
    assert body["isDagDeployEnabled"] is True
    assert "organizationId" not in body
    assert "id" not in body
    assert [q["name"] for q in body["workerQueues"]] == ["default", "extra"]
    assert "id" not in body["workerQueues"][0]


def test_to_remote_create_missing_required_fields() -> None:
    with pytest.raises(ValidationError):
        mapping.to_remote_create(DeclaredDeployment(name="half-done"))


def test_to_remote_create_unset_flags_default_to_false(declared: DeclaredDeployment) -> None:
    declared = declared.model_copy(update={"is_cicd_enforced": None, "is_high_availability": None})
    request = mapping.to_remote_create(declared)
    assert request.is_cicd_enforced is False
    assert request.is_high_availability is False


def test_to_remote_create_empty_queues(declared: DeclaredDeployment) -> None:
    request = mapping.to_remote_create(declared.model_copy(update={"worker_queues": []}))
    assert request.worker_queues == []
    assert request.model_dump(by_alias=True, exclude_none=True)["workerQueues"] == []


def test_to_remote_create_environment_variables(declared: DeclaredDeployment) -> None:
    declared = declared.model_copy(
        update={
            "environment_variables": [
                EnvironmentVariableSpec(key="AIRFLOW__CORE__PARALLELISM", value="64"),
                EnvironmentVariableSpec(key="API_KEY", value="s3cr3t", is_secret=True),
            ]
        }
    )
    body = mapping.to_remote_create(declared).model_dump(by_alias=True, exclude_none=True)
    assert body["environmentVariables"] == [
        {"key": "AIRFLOW__CORE__PARALLELISM", "value": "64", "isSecret": False},
        {"key": "API_KEY", "value": "s3cr3t", "isSecret": True},
    ]


def test_to_remote_update_omits_changed_immutable_field(declared: DeclaredDeployment) -> None:
    changed = declared.model_copy(update={"region": "eu-west-1", "cloud_provider": "GCP", "description": "new"})

    request = mapping.to_remote_update(changed)
    body = request.model_dump(by_alias=True, exclude_none=True)

    assert "region" not in body
    assert "cloudProvider" not in body
    assert "astroRuntimeVersion" not in body
    assert "workspaceId" not in body
    assert "eu-west-1" not in request.model_dump_json()
    assert body["description"] == "new"


def test_to_remote_update_keeps_queue_ids(declared: DeclaredDeployment) -> None:
    queues = [q.model_copy(update={"id": f"wq-{i}"}) for i, q in enumerate(declared.worker_queues)]
    request = mapping.to_remote_update(declared.model_copy(update={"worker_queues": queues}))
    assert [q.id for q in request.worker_queues] == ["wq-0", "wq-1"]


def test_mapping_does_not_mutate_input(declared: DeclaredDeployment) -> None:
    before = declared.model_dump()
    mapping.to_remote_create(declared)
    mapping.to_remote_update(declared)
    assert declared.model_dump() == before


# ---------------------------------------------------------------------------
# Remote -> declared
# ---------------------------------------------------------------------------


def test_round_trip_restores_covered_fields(declared: DeclaredDeployment) -> None:
    observation = mapping.from_remote(_echo(mapping.to_remote_create(declared)))

    for field in ("name", "type", "region", "organization_id", "workspace_id", "cloud_provider"):
        assert getattr(observation, field) == getattr(declared, field), field


def test_cloud_provider_upper_cased() -> None:
    observation = mapping.from_remote(RemoteDeployment(id="dep-1", cloud_provider="aws"))
    assert observation.cloud_provider == "AWS"


def test_status_normalized() -> None:
    assert mapping.from_remote(RemoteDeployment(id="d", status="HEALTHY")).status == DeploymentStatus.HEALTHY
    assert mapping.from_remote(RemoteDeployment(id="d", status="SOMETHING_NEW")).status == DeploymentStatus.UNKNOWN
    assert mapping.from_remote(RemoteDeployment(id="d")).status is None


def test_worker_queue_round_trip_preserves_order(declared: DeclaredDeployment) -> None:
    queues = [
        WorkerQueueSpec(
            name="c-queue", astro_machine="A20", min_worker_count=2, max_worker_count=4, worker_concurrency=8
        ),
        WorkerQueueSpec(name="a-queue", astro_machine="A5", is_default=True, min_worker_count=1, max_worker_count=1),
        WorkerQueueSpec(name="b-queue", astro_machine="A10", min_worker_count=0, max_worker_count=30),
    ]
    declared = declared.model_copy(update={"worker_queues": queues})

    observation = mapping.from_remote(_echo(mapping.to_remote_create(declared)))

    assert [q.model_dump() for q in observation.worker_queues] == [q.model_dump() for q in queues]


def test_from_remote_absent_queues_is_empty_list() -> None:
    observation = mapping.from_remote(RemoteDeployment(id="dep-1", worker_queues=None))
    assert observation.worker_queues == []


def test_merge_observation_overwrites_server_owned_only(declared: DeclaredDeployment) -> None:
    observation = DeploymentObservation(
        id="dep-9",
        name="prod",
        region="us-east-1",
        cloud_provider="AWS",
        type="DEDICATED",
        organization_id="org-1",
        workspace_id="ws-1",
        worker_queues=[
            WorkerQueueSpec(name="extra", astro_machine="A10", max_worker_count=3, id="wq-extra"),
            WorkerQueueSpec(name="default", astro_machine="A5", max_worker_count=5, id="wq-default"),
        ],
    )
    declared = declared.model_copy(update={"executor": "KUBERNETES"})

    merged = mapping.merge_observation(declared, observation)

    assert merged.id == "dep-9"
    assert merged.executor == "KUBERNETES"
    assert merged.description == "Production Airflow"
    assert [q.name for q in merged.worker_queues] == ["default", "extra"]
    assert [q.id for q in merged.worker_queues] == ["wq-default", "wq-extra"]
    assert merged.worker_queues[0].max_worker_count == 5
    # Input untouched.
    assert declared.id == ""
    assert declared.worker_queues[0].id is None


def test_merge_observation_keeps_declared_value_when_not_reported(declared: DeclaredDeployment) -> None:
    merged = mapping.merge_observation(declared, DeploymentObservation(id="dep-1"))
    assert merged.id == "dep-1"
    assert merged.region == "us-east-1"
    assert merged.name == "prod"


def test_hydrate_fills_unset_fields_only() -> None:
    imported = DeclaredDeployment(id="dep-1", description="mine")
    remote = RemoteDeployment(
        id="dep-1",
        name="prod",
        description="theirs",
        executor="CELERY",
        cloud_provider="gcp",
        is_high_availability=True,
        worker_queues=[
            {"name": "default", "astroMachine": "A5", "isDefault": True, "minWorkerCount": 1,
             "maxWorkerCount": 2, "workerConcurrency": 5, "id": "wq-1"},
        ],
    )

    hydrated = mapping.hydrate(imported, remote)

    assert hydrated.name == "prod"
    assert hydrated.description == "mine"
    assert hydrated.executor == "CELERY"
    assert hydrated.cloud_provider == "GCP"
    assert hydrated.is_high_availability is True
    assert [q.id for q in hydrated.worker_queues] == ["wq-1"]
