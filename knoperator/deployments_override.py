"""Transformer that applies spec.deployments overrides to deployments."""

from __future__ import annotations

import copy
from typing import Any, Callable, Iterable, Optional

from .models import Component, DeploymentOverride, EnvRequirementsOverride, ResourceRequirementsOverride
from .resources import find_resource_override, merge_resources

Resource = dict[str, Any]


def merge_env(source: Iterable[dict[str, Any]], target: Iterable[dict[str, Any]]) -> list[dict[str, Any]]:
    """Return target's variables with source's laid over them by name.

    Every variable in target with a matching name is replaced; variables with
    no match are appended. An empty target yields source unchanged.
    """
    merged = [copy.deepcopy(var) for var in target]
    if not merged:
        return [copy.deepcopy(var) for var in source]
    for var in source:
        matches = [i for i, existing in enumerate(merged) if existing.get("name") == var.get("name")]
        for i in matches:
            merged[i] = copy.deepcopy(var)
        if not matches:
            merged.append(copy.deepcopy(var))
    return merged


def find_env_override(
    overrides: Iterable[EnvRequirementsOverride], name: str
) -> Optional[EnvRequirementsOverride]:
    """Return the first environment override for the named container, or None."""
    return next((o for o in overrides if o.container == name), None)


def _ensure(resource: Resource, *path: str) -> dict[str, Any]:
    current = resource
    for key in path:
        child = current.get(key)
        if child is None:
            child = current[key] = {}
        elif not isinstance(child, dict):
            raise TypeError(f"{'.'.join(path)}: {key} is not a mapping")
        current = child
    return current


def _containers(resource: Resource) -> list[dict[str, Any]]:
    spec = resource.get("spec") or {}
    template = spec.get("template") or {}
    pod_spec = template.get("spec") or {}
    return pod_spec.get("containers") or []


def _apply_resources(container: dict[str, Any], override: ResourceRequirementsOverride) -> None:
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


def _apply_override(override: DeploymentOverride, resource: Resource) -> None:
    if override.labels:
        _ensure(resource, "metadata", "labels").update(override.labels)
        _ensure(resource, "spec", "template", "metadata", "labels").update(override.labels)
    if override.annotations:
        _ensure(resource, "metadata", "annotations").update(override.annotations)
        _ensure(resource, "spec", "template", "metadata", "annotations").update(override.annotations)
    if override.replicas is not None:
        _ensure(resource, "spec")["replicas"] = override.replicas
    if override.node_selector:
        _ensure(resource, "spec", "template", "spec")["nodeSelector"] = dict(override.node_selector)
    if override.tolerations:
        _ensure(resource, "spec", "template", "spec")["tolerations"] = copy.deepcopy(override.tolerations)
    if override.affinity is not None:
        _ensure(resource, "spec", "template", "spec")["affinity"] = copy.deepcopy(override.affinity)
    if override.resources:
        for container in _containers(resource):
            found = find_resource_override(override.resources, container.get("name", ""))
            if found is not None:
                _apply_resources(container, found)
    if override.env:
        for container in _containers(resource):
            found = find_env_override(override.env, container.get("name", ""))
            if found is not None:
                merged = merge_env(found.env_vars, container.get("env") or [])
                if merged:
                    container["env"] = merged
                else:
                    container.pop("env", None)


def deployments_transform(component: Component) -> Optional[Callable[[Resource], None]]:
    """Return a transformer applying spec.deployments, or None if none are set."""
    overrides = component.spec.deployment_overrides
    if overrides is None:
        return None

    def transform(resource: Resource) -> None:
        if resource.get("kind") != "Deployment":
            return
        name = (resource.get("metadata") or {}).get("name", "")
        for override in overrides:
            if override.name == name:
                _apply_override(override, resource)

    return transform