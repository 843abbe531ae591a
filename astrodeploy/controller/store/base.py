"""State store interface for tracked deployments.

The reconciler itself never persists anything; hosts that need to remember a
deployment between invocations (such as the CLI) keep the last reconciled
``DeclaredDeployment`` in a state store, keyed by a caller-chosen name.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from astrodeploy.controller.models.deployment import DeclaredDeployment


@runtime_checkable
class StateStore(Protocol):
    def write(self, key: str, deployment: DeclaredDeployment) -> None:
        """Persist the tracked state for ``key``, replacing any previous value."""
        ...

    def read(self, key: str) -> DeclaredDeployment:
        """Read tracked state.  Raises ``FileNotFoundError`` if not found."""
        ...

    def exists(self, key: str) -> bool:
        ...

    def delete(self, key: str) -> None:
        """Forget ``key``.  No-op if not found."""
        ...
