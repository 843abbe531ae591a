"""Control-plane client interface.

The reconciler only talks to the control plane through this narrow,
synchronous protocol.  Implementations raise the ``RemoteClientError``
family below and nothing else, so the reconciler can tell a rejected
operation apart from a transport failure.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from astrodeploy.controller.models.remote import (
    DeploymentCreateRequest,
    DeploymentUpdateRequest,
    RemoteDeployment,
)

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class RemoteClientError(RuntimeError):
    """Base class for every failure raised by a control-plane client."""


class RemoteTransportError(RemoteClientError):
    """The request never produced a usable response (connection, timeout, bad body)."""


class RemoteRejectedError(RemoteClientError):
    """The control plane answered with a non-success status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class RemoteNotFoundError(RemoteRejectedError, LookupError):
    """The addressed deployment does not exist."""

    def __init__(self, message: str = "deployment not found") -> None:
        super().__init__(404, message)


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class ControlPlaneClient(Protocol):
    """Synchronous CRUD access to deployments of one organization at a time."""

    def create(self, organization_id: str, request: DeploymentCreateRequest) -> RemoteDeployment:
        """Create a deployment and return the control plane's initial record."""
        ...

    def get(self, organization_id: str, deployment_id: str) -> RemoteDeployment:
        """Fetch a deployment.  Raises ``RemoteNotFoundError`` if it does not exist."""
        ...

    def update(
        self, organization_id: str, deployment_id: str, request: DeploymentUpdateRequest
    ) -> RemoteDeployment:
        ...

    def delete(self, organization_id: str, deployment_id: str) -> None:
        """Delete a deployment.  Raises ``RemoteNotFoundError`` if it is already gone."""
        ...
