import contextlib
import signal
import threading
from collections.abc import Iterator
from pathlib import Path

import click

from astrodeploy.controller.client.base import ControlPlaneClient
from astrodeploy.controller.models.deployment import DeclaredDeployment
from astrodeploy.controller.models.enums import FailureKind, LifecycleVerb
from astrodeploy.controller.reconciler import DeploymentReconciler, ReconcileOutcome
from astrodeploy.controller.settings import AstroSettings
from astrodeploy.controller.store.local import InvalidStateKeyError, LocalStateStore, validate_state_key


@click.group()
@click.option("--state-dir", default=None, help="Tracked state directory (default: from ASTRO_STATE_DIR).")
@click.pass_context
def main(ctx: click.Context, state_dir: str | None) -> None:
    """astrodeploy - reconcile declared deployments against the control plane."""
    from astrodeploy.controller.log import setup_logging

    settings = AstroSettings()
    if state_dir:
        settings = settings.model_copy(update={"state_dir": state_dir})
    setup_logging(settings.log_level, json=settings.log_json)

    ctx.obj = settings


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _open_client(settings: AstroSettings) -> contextlib.AbstractContextManager[ControlPlaneClient]:
    """Open the control-plane client for one command."""
    from astrodeploy.controller.client.http import HttpControlPlaneClient

    return HttpControlPlaneClient.from_settings(settings)


@contextlib.contextmanager
def _cancel_on_signals() -> Iterator[threading.Event]:
    """Turn SIGINT / SIGTERM into a cancellation of any convergence wait."""
    cancel = threading.Event()

    def _handler(signum: int, frame: object) -> None:
        click.echo(f"Received signal {signum}, cancelling wait...", err=True)
        cancel.set()

    previous = {sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield cancel
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


def _load_declared(path: Path) -> DeclaredDeployment:
    try:
        return DeclaredDeployment.model_validate_json(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        msg = f"Invalid deployment file {path}: {exc}"
        raise click.ClickException(msg) from None


def _load_tracked(store: LocalStateStore, key: str) -> DeclaredDeployment:
    try:
        return store.read(key)
    except FileNotFoundError:
        msg = f"No tracked deployment '{key}'"
        raise click.ClickException(msg) from None


def _run(settings: AstroSettings, verb: LifecycleVerb, declared: DeclaredDeployment) -> ReconcileOutcome:
    with _open_client(settings) as client, _cancel_on_signals() as cancel:
        reconciler = DeploymentReconciler.from_settings(client, settings)
        return reconciler.reconcile(verb, declared, cancel=cancel)


def _finish(store: LocalStateStore, key: str, outcome: ReconcileOutcome) -> None:
    """Persist what we know and report the outcome."""
    if outcome.deployment is not None and outcome.deployment.id:
        store.write(key, outcome.deployment)
        click.echo(outcome.deployment.model_dump_json(indent=2, exclude_unset=True))
    if outcome.error is not None:
        raise click.ClickException(str(outcome.error))


def _key_for(key: str | None, declared: DeclaredDeployment) -> str:
    if key:
        return key
    if not declared.name:
        msg = "Pass --key or give the deployment a name"
        raise click.ClickException(msg)
    try:
        return validate_state_key(declared.name)
    except InvalidStateKeyError as exc:
        msg = f"{exc}; pass --key to track deployment '{declared.name}' under another name"
        raise click.ClickException(msg) from None


def _check_key(ctx: click.Context, param: click.Parameter, value: str | None) -> str | None:
    """Click callback rejecting keys that cannot name a state file."""
    if value is None:
        return value
    try:
        return validate_state_key(value)
    except InvalidStateKeyError as exc:
        raise click.BadParameter(str(exc)) from None


# ---------------------------------------------------------------------------
# Lifecycle commands
# ---------------------------------------------------------------------------


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--key", default=None, callback=_check_key, help="Tracked state key (default: the deployment name).")
@click.pass_obj
def create(settings: AstroSettings, file: Path, key: str | None) -> None:
    """Create the deployment declared in FILE and wait until it is healthy."""
    declared = _load_declared(file)
    key = _key_for(key, declared)
    store = LocalStateStore(settings.state_dir)
    if store.exists(key):
        msg = f"Deployment '{key}' is already tracked; use 'update' or 'apply'"
        raise click.ClickException(msg)

    _finish(store, key, _run(settings, LifecycleVerb.CREATE, declared))


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--key", default=None, callback=_check_key, help="Tracked state key (default: the deployment name).")
@click.pass_obj
def update(settings: AstroSettings, file: Path, key: str | None) -> None:
    """Push the configuration in FILE to an already tracked deployment."""
    declared = _load_declared(file)
    key = _key_for(key, declared)
    store = LocalStateStore(settings.state_dir)
    tracked = _load_tracked(store, key)

    declared = declared.model_copy(update={"id": tracked.id})
    if declared.organization_id is None and tracked.organization_id:
        declared = declared.model_copy(update={"organization_id": tracked.organization_id})
    _finish(store, key, _run(settings, LifecycleVerb.UPDATE, declared))


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--key", default=None, callback=_check_key, help="Tracked state key (default: the deployment name).")
@click.pass_context
def apply(ctx: click.Context, file: Path, key: str | None) -> None:
    """Create the deployment in FILE, or update it if it is already tracked."""
    settings: AstroSettings = ctx.obj
    key = _key_for(key, _load_declared(file))
    if LocalStateStore(settings.state_dir).exists(key):
        ctx.invoke(update, file=file, key=key)
    else:
        ctx.invoke(create, file=file, key=key)


@main.command()
@click.argument("key", callback=_check_key)
@click.pass_obj
def read(settings: AstroSettings, key: str) -> None:
    """Refresh tracked deployment KEY from the control plane."""
    store = LocalStateStore(settings.state_dir)
    outcome = _run(settings, LifecycleVerb.READ, _load_tracked(store, key))
    if outcome.error is not None and outcome.error.kind is FailureKind.NOT_FOUND:
        store.delete(key)
        click.echo(f"Deployment '{key}' no longer exists; stopped tracking it.")
        return
    _finish(store, key, outcome)


@main.command()
@click.argument("key", callback=_check_key)
@click.pass_obj
def delete(settings: AstroSettings, key: str) -> None:
    """Delete tracked deployment KEY and stop tracking it."""
    store = LocalStateStore(settings.state_dir)
    outcome = _run(settings, LifecycleVerb.DELETE, _load_tracked(store, key))
    if outcome.error is not None:
        raise click.ClickException(str(outcome.error))
    store.delete(key)
    click.echo(f"Deployment '{key}' deleted.")


@main.command(name="import")
@click.argument("key", callback=_check_key)
@click.argument("identity")
@click.option("--organization-id", default=None, help="Organization owning the deployment.")
@click.pass_obj
def import_(settings: AstroSettings, key: str, identity: str, organization_id: str | None) -> None:
    """Start tracking existing deployment IDENTITY as KEY.  Run 'read' to hydrate it."""
    store = LocalStateStore(settings.state_dir)
    if store.exists(key):
        msg = f"Deployment '{key}' is already tracked"
        raise click.ClickException(msg)

    with _open_client(settings) as client:
        outcome = DeploymentReconciler.from_settings(client, settings).reconcile(
            LifecycleVerb.IMPORT, DeclaredDeployment(id=identity)
        )
    if outcome.error is not None or outcome.deployment is None:
        raise click.ClickException(str(outcome.error))

    deployment = outcome.deployment
    if organization_id:
        deployment = deployment.model_copy(update={"organization_id": organization_id})
    store.write(key, deployment)
    click.echo(f"Imported deployment {identity} as '{key}'.")


@main.command()
@click.argument("key", callback=_check_key)
@click.pass_obj
def show(settings: AstroSettings, key: str) -> None:
    """Print the tracked state of KEY without contacting the control plane."""
    tracked = _load_tracked(LocalStateStore(settings.state_dir), key)
    click.echo(tracked.model_dump_json(indent=2, exclude_unset=True))


if __name__ == "__main__":
    main()
