"""State store implementations for tracked deployments."""

from astrodeploy.controller.store.base import StateStore
from astrodeploy.controller.store.local import LocalStateStore

__all__ = ["LocalStateStore", "StateStore"]
