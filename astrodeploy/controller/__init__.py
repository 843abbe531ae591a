"""Reconciliation engine for declared deployments.

- **models**: Declared deployment, control-plane wire shapes, enums
- **mapping**: Declared <-> remote translation with explicit field tables
- **poller**: Bounded, cancellable wait for a deployment to become healthy
- **reconciler**: Create / read / update / delete / import orchestration
- **client**: Control-plane client protocol and its httpx implementation
- **store**: Tracked-state persistence used by hosts such as the CLI
"""
