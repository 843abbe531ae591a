"""Control-plane client interface and implementations."""

from astrodeploy.controller.client.base import (
    ControlPlaneClient,
    RemoteClientError,
    RemoteNotFoundError,
    RemoteRejectedError,
    RemoteTransportError,
)
from astrodeploy.controller.client.http import HttpControlPlaneClient

__all__ = [
    "ControlPlaneClient",
    "HttpControlPlaneClient",
    "RemoteClientError",
    "RemoteNotFoundError",
    "RemoteRejectedError",
    "RemoteTransportError",
]
