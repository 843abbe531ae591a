"""Shared test fixtures: an in-memory control plane and declared deployments.

``FakeControlPlane`` implements the ``ControlPlaneClient`` protocol, records
every call, and lets a test script the statuses returned by successive
``get`` calls.  No network access is needed anywhere in the suite.
"""

from __future__ import annotations

import os
from collections.abc import Iterator

import pytest

from astrodeploy.controller.client.base import RemoteNotFoundError
from astrodeploy.controller.models.deployment import DeclaredDeployment, WorkerQueueSpec
from astrodeploy.controller.models.remote import (
    DeploymentCreateRequest,
    DeploymentUpdateRequest,
    RemoteDeployment,
)
from astrodeploy.controller.settings import get_settings


class FakeControlPlane:
    """In-memory control plane.

    - ``create_status``: status of the record returned by ``create``.
    - ``poll_statuses``: statuses handed out, in order, by ``get`` (the last
      one repeats once the script is exhausted).
    - ``*_error``: exception raised by the corresponding call, if set.

    Created deployments echo the request, with ``cloud_provider`` lower-cased
    the way the real control plane reports it.
    """

    def __init__(
        self,
        *,
        create_status: str = "HEALTHY",
        poll_statuses: list[str] | None = None,
    ) -> None:
        self.create_status = create_status
        self.poll_statuses = list(poll_statuses or [])
        self.deployments: dict[str, RemoteDeployment] = {}
        self.calls: list[tuple] = []
        self.create_error: Exception | None = None
        self.get_error: Exception | None = None
        self.update_error: Exception | None = None
        self.delete_error: Exception | None = None

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    def last_request(self, method: str) -> object:
        return [call for call in self.calls if call[0] == method][-1][-1]

    # -- ControlPlaneClient ----------------------------------------------------

    def create(self, organization_id: str, request: DeploymentCreateRequest) -> RemoteDeployment:
        self.calls.append(("create", organization_id, request))
        if self.create_error is not None:
            raise self.create_error

        deployment_id = f"dep-{len(self.deployments) + 1}"
        data = request.model_dump(exclude={"environment_variables"})
        if data.get("cloud_provider"):
            data["cloud_provider"] = data["cloud_provider"].lower()
        data["worker_queues"] = [
            {**queue, "id": f"{deployment_id}-wq-{i}"} for i, queue in enumerate(data["worker_queues"], 1)
        ]
        remote = RemoteDeployment.model_validate(
            {**data, "id": deployment_id, "organization_id": organization_id, "status": self.create_status}
        )
        self.deployments[deployment_id] = remote
        return remote.model_copy(deep=True)

    def get(self, organization_id: str, deployment_id: str) -> RemoteDeployment:
        self.calls.append(("get", organization_id, deployment_id))
        if self.get_error is not None:
            raise self.get_error
        if deployment_id not in self.deployments:
            raise RemoteNotFoundError(f"deployment {deployment_id} not found")

        remote = self.deployments[deployment_id]
        if self.poll_statuses:
            status = self.poll_statuses.pop(0) if len(self.poll_statuses) > 1 else self.poll_statuses[0]
            remote = remote.model_copy(update={"status": status})
            self.deployments[deployment_id] = remote
        return remote.model_copy(deep=True)

    def update(
        self, organization_id: str, deployment_id: str, request: DeploymentUpdateRequest
    ) -> RemoteDeployment:
        self.calls.append(("update", organization_id, deployment_id, request))
        if self.update_error is not None:
            raise self.update_error
        if deployment_id not in self.deployments:
            raise RemoteNotFoundError(f"deployment {deployment_id} not found")

        changes = request.model_dump(exclude={"environment_variables", "worker_queues"}, exclude_none=True)
        remote = self.deployments[deployment_id].model_copy(update=changes)
        self.deployments[deployment_id] = remote
        return remote.model_copy(deep=True)

    def delete(self, organization_id: str, deployment_id: str) -> None:
        self.calls.append(("delete", organization_id, deployment_id))
        if self.delete_error is not None:
            raise self.delete_error
        if deployment_id not in self.deployments:
            raise RemoteNotFoundError(f"deployment {deployment_id} not found")
        del self.deployments[deployment_id]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def control_plane() -> FakeControlPlane:
    return FakeControlPlane()


@pytest.fixture
def declared() -> DeclaredDeployment:
    """The 'prod' deployment with a default and an extra worker queue."""
    return DeclaredDeployment(
        name="prod",
        description="Production Airflow",
        organization_id="org-1",
        workspace_id="ws-1",
        astro_runtime_version="9.1.0",
        cloud_provider="AWS",
        region="us-east-1",
        type="DEDICATED",
        executor="CELERY",
        scheduler_size="SMALL",
        default_task_pod_cpu="0.25",
        default_task_pod_memory="0.5Gi",
        resource_quota_cpu="10",
        resource_quota_memory="20Gi",
        is_cicd_enforced=False,
        is_dag_deploy_enforced=True,
        is_high_availability=False,
        worker_queues=[
            WorkerQueueSpec(
                name="default",
                astro_machine="A5",
                is_default=True,
                min_worker_count=1,
                max_worker_count=5,
                worker_concurrency=1,
            ),
            WorkerQueueSpec(
                name="extra",
                astro_machine="A10",
                is_default=False,
                min_worker_count=0,
                max_worker_count=3,
                worker_concurrency=2,
            ),
        ],
    )


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Drop ASTRO_* variables from the environment and reset the settings cache."""
    for key in list(os.environ):
        if key.startswith("ASTRO_"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("ASTRO_LOG_LEVEL", "WARNING")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
