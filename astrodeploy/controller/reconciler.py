"""Deployment reconciler -- the create / read / update / delete / import verbs.

Each call is independent: a declared deployment goes in, a refreshed copy
comes out, and nothing is remembered between calls.  Per call the phases are::

    pending -> in_flight -> [converging ->] done
                         \\-> failed

Only create (and update, when ``await_update`` is on) enters ``converging``.
Remote failures are never retried here; they surface immediately as a
``ReconcileError``.  ``reconcile`` wraps the verbs for hosts that prefer an
outcome value over exceptions.

Callers must not run two operations on the same deployment concurrently;
there is no per-identity locking.
"""

from __future__ import annotations

import contextlib
from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger
from pydantic import ValidationError

from astrodeploy.controller import mapping
from astrodeploy.controller.client.base import (
    RemoteClientError,
    RemoteNotFoundError,
    RemoteRejectedError,
)
from astrodeploy.controller.errors import (
    ERRORS_BY_KIND,
    CreateRejectedError,
    DeleteRejectedError,
    DeploymentNotFoundError,
    InvalidDeclarationError,
    ReconcileError,
    RemoteCallError,
    UpdateRejectedError,
)
from astrodeploy.controller.models.deployment import DeclaredDeployment
from astrodeploy.controller.models.enums import LifecycleVerb, ReconcilePhase
from astrodeploy.controller.poller import ConvergenceError, PollPolicy, await_ready_from

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable

    from astrodeploy.controller.client.base import ControlPlaneClient
    from astrodeploy.controller.models.remote import RemoteDeployment
    from astrodeploy.controller.settings import AstroSettings


@dataclass
class ReconcileOutcome:
    """Result of one lifecycle call as seen by the host."""

    verb: LifecycleVerb
    phase: ReconcilePhase
    deployment: DeclaredDeployment | None
    error: ReconcileError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class DeploymentReconciler:
    """Drives one deployment through a lifecycle verb against the control plane."""

    def __init__(
        self,
        client: ControlPlaneClient,
        *,
        poll_policy: PollPolicy | None = None,
        default_organization_id: str | None = None,
        await_update: bool = False,
        enforce_single_default_queue: bool = True,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self._client = client
        self._poll_policy = poll_policy or PollPolicy()
        self._default_organization_id = default_organization_id
        self._await_update = await_update
        self._enforce_single_default_queue = enforce_single_default_queue
        self._sleep = sleep

    @classmethod
    def from_settings(cls, client: ControlPlaneClient, settings: AstroSettings) -> DeploymentReconciler:
        return cls(
            client,
            poll_policy=settings.poll_policy(),
            default_organization_id=settings.organization_id,
            await_update=settings.await_update,
            enforce_single_default_queue=settings.enforce_single_default_queue,
        )

    # -- Host entry point ------------------------------------------------------

    def reconcile(
        self,
        verb: LifecycleVerb,
        declared: DeclaredDeployment,
        *,
        cancel: threading.Event | None = None,
    ) -> ReconcileOutcome:
        """Run ``verb`` and report the result instead of raising."""
        with logger.contextualize(verb=str(verb), deployment=declared.id or declared.name or "-"):
            return self._dispatch(verb, declared, cancel)

    def _dispatch(
        self, verb: LifecycleVerb, declared: DeclaredDeployment, cancel: threading.Event | None
    ) -> ReconcileOutcome:
        try:
            if verb is LifecycleVerb.CREATE:
                result: DeclaredDeployment | None = self.create(declared, cancel=cancel)
            elif verb is LifecycleVerb.READ:
                result = self.read(declared)
            elif verb is LifecycleVerb.UPDATE:
                result = self.update(declared, cancel=cancel)
            elif verb is LifecycleVerb.DELETE:
                self.delete(declared)
                result = None
            else:
                result = self.import_state(declared.id)
        except ReconcileError as exc:
            return ReconcileOutcome(verb, ReconcilePhase.FAILED, exc.partial, exc)
        return ReconcileOutcome(verb, ReconcilePhase.DONE, result)

    # -- Create ----------------------------------------------------------------

    def create(self, declared: DeclaredDeployment, *, cancel: threading.Event | None = None) -> DeclaredDeployment:
        verb = LifecycleVerb.CREATE
        organization_id = self._organization(verb, declared)
        self._validate_queues(verb, declared)
        try:
            request = mapping.to_remote_create(declared)
        except ValidationError as exc:
            raise InvalidDeclarationError(verb, _validation_detail(exc), identity=declared.id) from None

        logger.info("Creating deployment '{}' in workspace {}", declared.name, declared.workspace_id)
        try:
            created = self._client.create(organization_id, request)
        except RemoteRejectedError as exc:
            logger.warning("Create of deployment '{}' rejected: {}", declared.name, exc)
            raise CreateRejectedError(verb, str(exc)) from exc
        except RemoteClientError as exc:
            raise RemoteCallError(verb, str(exc)) from exc

        logger.info("Deployment {} created (status={})", created.id, created.status)
        partial = self._observe(verb, declared, created)
        ready = self._converge(verb, created, partial, organization_id, cancel)
        return self._observe(verb, declared, ready, partial=partial)

    # -- Read ------------------------------------------------------------------

    def read(self, declared: DeclaredDeployment) -> DeclaredDeployment:
        verb = LifecycleVerb.READ
        if not declared.id:
            raise DeploymentNotFoundError(verb, "deployment has no identity yet")
        organization_id = self._organization(verb, declared)

        try:
            remote = self._client.get(organization_id, declared.id)
        except RemoteNotFoundError as exc:
            logger.info("Deployment {} no longer exists", declared.id)
            raise DeploymentNotFoundError(verb, str(exc), identity=declared.id) from exc
        except RemoteClientError as exc:
            raise RemoteCallError(verb, str(exc), identity=declared.id) from exc

        try:
            hydrated = mapping.hydrate(declared, remote)
        except ValidationError as exc:
            raise self._invalid_remote(verb, declared, remote, exc) from None
        return self._observe(verb, hydrated, remote)

    # -- Update ----------------------------------------------------------------

    def update(self, declared: DeclaredDeployment, *, cancel: threading.Event | None = None) -> DeclaredDeployment:
        verb = LifecycleVerb.UPDATE
        if not declared.id:
            raise DeploymentNotFoundError(verb, "deployment has no identity yet")
        organization_id = self._organization(verb, declared)
        self._validate_queues(verb, declared)
        try:
            request = mapping.to_remote_update(declared)
        except ValidationError as exc:
            raise InvalidDeclarationError(verb, _validation_detail(exc), identity=declared.id) from None

        logger.info("Updating deployment {}", declared.id)
        try:
            updated = self._client.update(organization_id, declared.id, request)
        except RemoteNotFoundError as exc:
            raise DeploymentNotFoundError(verb, str(exc), identity=declared.id) from exc
        except RemoteRejectedError as exc:
            logger.warning("Update of deployment {} rejected: {}", declared.id, exc)
            raise UpdateRejectedError(verb, str(exc), identity=declared.id) from exc
        except RemoteClientError as exc:
            raise RemoteCallError(verb, str(exc), identity=declared.id) from exc

        if self._await_update:
            partial = self._observe(verb, declared, updated)
            updated = self._converge(verb, updated, partial, organization_id, cancel)
        return self._observe(verb, declared, updated)

    # -- Delete ----------------------------------------------------------------

    def delete(self, declared: DeclaredDeployment) -> None:
        """Delete the deployment.  An already-absent deployment counts as deleted."""
        verb = LifecycleVerb.DELETE
        if not declared.id:
            logger.info("Deployment '{}' was never created; nothing to delete", declared.name)
            return
        organization_id = self._organization(verb, declared)

        logger.info("Deleting deployment {}", declared.id)
        try:
            self._client.delete(organization_id, declared.id)
        except RemoteNotFoundError:
            logger.info("Deployment {} already deleted", declared.id)
        except RemoteRejectedError as exc:
            logger.warning("Delete of deployment {} rejected: {}", declared.id, exc)
            raise DeleteRejectedError(verb, str(exc), identity=declared.id, partial=declared.model_copy()) from exc
        except RemoteClientError as exc:
            raise RemoteCallError(verb, str(exc), identity=declared.id, partial=declared.model_copy()) from exc

    # -- Import ----------------------------------------------------------------

    def import_state(self, identity: str) -> DeclaredDeployment:
        """Adopt an existing deployment by identity.  No remote call is made.

        The returned value carries only the identity; the next ``read``
        fills in the rest.
        """
        if not identity or not identity.strip():
            raise InvalidDeclarationError(LifecycleVerb.IMPORT, "import identity must not be empty")
        logger.info("Importing deployment {}", identity)
        return DeclaredDeployment(id=identity)

    # -- Helpers ---------------------------------------------------------------

    def _organization(self, verb: LifecycleVerb, declared: DeclaredDeployment) -> str:
        organization_id = declared.organization_id or self._default_organization_id
        if not organization_id:
            raise InvalidDeclarationError(
                verb, "organization_id is not set and no default organization is configured", identity=declared.id
            )
        return organization_id

    def _validate_queues(self, verb: LifecycleVerb, declared: DeclaredDeployment) -> None:
        if not self._enforce_single_default_queue:
            return
        defaults = declared.default_queues
        if len(defaults) > 1:
            names = ", ".join(q.name for q in defaults)
            raise InvalidDeclarationError(
                verb, f"at most one default worker queue is allowed, got {len(defaults)}: {names}", identity=declared.id
            )

    def _observe(
        self,
        verb: LifecycleVerb,
        declared: DeclaredDeployment,
        remote: RemoteDeployment,
        *,
        partial: DeclaredDeployment | None = None,
    ) -> DeclaredDeployment:
        """Merge what the control plane reported into ``declared``."""
        try:
            return mapping.merge_observation(declared, mapping.from_remote(remote))
        except ValidationError as exc:
            raise self._invalid_remote(verb, declared, remote, exc, partial=partial) from None

    def _invalid_remote(
        self,
        verb: LifecycleVerb,
        declared: DeclaredDeployment,
        remote: RemoteDeployment,
        exc: ValidationError,
        *,
        partial: DeclaredDeployment | None = None,
    ) -> RemoteCallError:
        detail = f"control plane reported an invalid deployment: {_validation_detail(exc)}"
        logger.warning("Deployment {}: {}", remote.id, detail)
        if partial is None:
            partial = declared.model_copy(update={"id": remote.id}, deep=True)
        return RemoteCallError(verb, detail, identity=remote.id, partial=partial)

    def _converge(
        self,
        verb: LifecycleVerb,
        initial: RemoteDeployment,
        partial: DeclaredDeployment,
        organization_id: str,
        cancel: threading.Event | None,
    ) -> RemoteDeployment:
        try:
            return await_ready_from(
                initial,
                lambda identity: self._client.get(organization_id, identity),
                policy=self._poll_policy,
                cancel=cancel,
                sleep=self._sleep,
            )
        except ConvergenceError as exc:
            logger.warning("Deployment {} did not converge after {} status checks: {}", initial.id, exc.attempts, exc)
            if exc.last_seen is not None:
                # Keep the previous partial if the last record cannot be read.
                with contextlib.suppress(ValidationError):
                    partial = mapping.merge_observation(partial, mapping.from_remote(exc.last_seen))
            raise ERRORS_BY_KIND[exc.kind](
                verb, str(exc), identity=initial.id, phase=ReconcilePhase.CONVERGING, partial=partial
            ) from exc


def _validation_detail(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error["loc"])
        parts.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(parts)
