"""Local filesystem state store.

Layout::

    {state_dir}/deployments/{key}.json

Writes are atomic: data is written to a temporary file in the same directory,
then renamed over the target, so a crash mid-write never leaves a truncated
state file behind.

Only fields the caller (or a reconcile) actually set are written, so an
imported deployment stays identity-only on disk until it is read.
"""

from __future__ import annotations

import contextlib
import os
import re
import tempfile
from pathlib import Path

from astrodeploy.controller.models.deployment import DeclaredDeployment

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class InvalidStateKeyError(ValueError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Invalid state key '{key}': use letters, digits, '.', '_' or '-'")


def validate_state_key(key: str) -> str:
    """Return ``key`` unchanged, or raise ``InvalidStateKeyError`` if it cannot name a state file."""
    if not _KEY_PATTERN.fullmatch(key):
        raise InvalidStateKeyError(key)
    return key


class LocalStateStore:
    """Local filesystem implementation of the StateStore protocol."""

    def __init__(self, state_dir: str | Path) -> None:
        self._base = Path(state_dir) / "deployments"

    def _path(self, key: str) -> Path:
        return self._base / f"{validate_state_key(key)}.json"

    def write(self, key: str, deployment: DeclaredDeployment) -> None:
        data = deployment.model_dump_json(indent=2, exclude_unset=True)
        _atomic_write(self._path(key), data)

    def read(self, key: str) -> DeclaredDeployment:
        raw = self._path(key).read_text(encoding="utf-8")
        return DeclaredDeployment.model_validate_json(raw)

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def delete(self, key: str) -> None:
        with contextlib.suppress(FileNotFoundError):
            self._path(key).unlink()


def _atomic_write(path: Path, data: str) -> None:
    """Write data atomically: temp file + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise
