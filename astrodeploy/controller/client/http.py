"""httpx implementation of the control-plane client.

Endpoints (relative to ``base_url``)::

    POST   /organizations/{org}/deployments
    GET    /organizations/{org}/deployments/{id}
    POST   /organizations/{org}/deployments/{id}
    DELETE /organizations/{org}/deployments/{id}

HTTP failures are translated into the ``RemoteClientError`` family; no
request is ever retried here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
from loguru import logger
from pydantic import ValidationError

from astrodeploy.controller.client.base import (
    RemoteNotFoundError,
    RemoteRejectedError,
    RemoteTransportError,
)
from astrodeploy.controller.models.remote import (
    DeploymentCreateRequest,
    DeploymentUpdateRequest,
    RemoteDeployment,
)

if TYPE_CHECKING:
    from types import TracebackType

    from astrodeploy.controller.settings import AstroSettings

DEFAULT_BASE_URL = "https://api.astronomer.io/platform/v1beta1"


class HttpControlPlaneClient:
    """Control-plane client over HTTP.

    ``transport`` replaces the network transport of the underlying
    ``httpx.Client``; tests pass an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: str | None = None,
        *,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._http = httpx.Client(
            base_url=base_url.rstrip("/"), headers=headers, timeout=timeout, transport=transport
        )

    @classmethod
    def from_settings(cls, settings: AstroSettings) -> HttpControlPlaneClient:
        token = settings.api_token.get_secret_value() if settings.api_token else None
        return cls(settings.api_url, token, timeout=settings.request_timeout)

    # -- Lifecycle -------------------------------------------------------------

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> HttpControlPlaneClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -- Operations ------------------------------------------------------------

    def create(self, organization_id: str, request: DeploymentCreateRequest) -> RemoteDeployment:
        response = self._send("POST", f"/organizations/{organization_id}/deployments", _body(request))
        return _parse_deployment(response)

    def get(self, organization_id: str, deployment_id: str) -> RemoteDeployment:
        response = self._send("GET", _deployment_path(organization_id, deployment_id))
        return _parse_deployment(response)

    def update(
        self, organization_id: str, deployment_id: str, request: DeploymentUpdateRequest
    ) -> RemoteDeployment:
        response = self._send("POST", _deployment_path(organization_id, deployment_id), _body(request))
        return _parse_deployment(response)

    def delete(self, organization_id: str, deployment_id: str) -> None:
        self._send("DELETE", _deployment_path(organization_id, deployment_id))

    # -- Internals -------------------------------------------------------------

    def _send(self, method: str, path: str, body: dict[str, Any] | None = None) -> httpx.Response:
        logger.debug("{} {}", method, path)
        try:
            response = self._http.request(method, path, json=body)
        except httpx.HTTPError as exc:
            msg = f"{method} {path} failed: {exc}"
            raise RemoteTransportError(msg) from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            raise RemoteNotFoundError(_error_message(response))
        if response.is_error:
            raise RemoteRejectedError(response.status_code, _error_message(response))
        return response


def _deployment_path(organization_id: str, deployment_id: str) -> str:
    return f"/organizations/{organization_id}/deployments/{deployment_id}"


def _body(request: DeploymentCreateRequest | DeploymentUpdateRequest) -> dict[str, Any]:
    return request.model_dump(mode="json", by_alias=True, exclude_none=True)


def _parse_deployment(response: httpx.Response) -> RemoteDeployment:
    try:
        return RemoteDeployment.model_validate_json(response.content)
    except ValidationError as exc:
        msg = f"Unexpected deployment payload from control plane: {exc}"
        raise RemoteTransportError(msg) from None


def _error_message(response: httpx.Response) -> str:
    """Best-effort extraction of the control plane's error text."""
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.text
