"""Readiness check of the deployments in a manifest."""

from __future__ import annotations

from typing import Any

from .manifest import Manifest, NotFoundError, by_kind
from .models import Component

Resource = dict[str, Any]


def is_deployment_available(deployment: Resource) -> bool:
    """True if the deployment reports the Available condition as True."""
    conditions = (deployment.get("status") or {}).get("conditions") or []
    return any(c.get("type") == "Available" and c.get("status") == "True" for c in conditions)


def check_deployments(manifest: Manifest, component: Component) -> None:
    """Record in the component status whether every deployment in the manifest is available.

    A deployment missing from the cluster marks all as not ready; other
    client errors do the same and are raised.
    """
    if manifest.client is None:
        raise RuntimeError("manifest has no client")
    status = component.status
    not_ready: list[str] = []
    for resource in manifest.filter(by_kind("Deployment")):
        try:
            current = manifest.client.get(resource)
        except NotFoundError:
            status.mark_deployments_not_ready(["all"])
            return
        except Exception:
            status.mark_deployments_not_ready(["all"])
            raise
        if not is_deployment_available(current):
            not_ready.append((current.get("metadata") or {}).get("name", ""))

    if not_ready:
        status.mark_deployments_not_ready(not_ready)
        return
    status.mark_deployments_available()