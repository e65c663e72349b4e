"""Transformer that sets container resource requirements in deployments."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Mapping, Optional

from .models import Component, ResourceRequirementsOverride

Resource = dict[str, Any]


def merge_resources(source: Mapping[str, str], target: Mapping[str, str]) -> dict[str, str]:
    """Return target with source's entries laid over it; source alone if target is empty."""
    if target:
        merged = dict(target)
        merged.update(source)
        return merged
    return dict(source)


def find_resource_override(
    overrides: Iterable[ResourceRequirementsOverride], name: str
) -> Optional[ResourceRequirementsOverride]:
    """Return the first override for the named container, or None."""
    return next((o for o in overrides if o.container == name), None)


def _containers(resource: Resource) -> list[dict[str, Any]]:
    spec = resource.get("spec") or {}
    template = spec.get("template") or {}
    pod_spec = template.get("spec") or {}
    return pod_spec.get("containers") or []


def _apply_resource_override(container: dict[str, Any], override: ResourceRequirementsOverride) -> None:
    resources = dict(container.get("resources") or {})
    for key, source in (("limits", override.limits), ("requests", override.requests)):
        merged = merge_resources(source, resources.get(key) or {})
        if merged:
            resources[key] = merged
        else:
            resources.pop(key, None)
    if resources:
        container["resources"] = resources
    else:
        container.pop("resources", None)


def resource_requirements_transform(component: Component) -> Callable[[Resource], None]:
    """Return a transformer applying spec.resources to the containers of every deployment.

    Deployments with their own resource overrides in spec.deployments are left alone.
    """

    def transform(resource: Resource) -> None:
        if resource.get("kind") != "Deployment":
            return
        name = (resource.get("metadata") or {}).get("name", "")
        for override in component.spec.deployment_overrides or []:
            if override.name == name and override.resources:
                return
        for container in _containers(resource):
            override = find_resource_override(component.spec.resources, container.get("name", ""))
            if override is not None:
                _apply_resource_override(container, override)

    return transform