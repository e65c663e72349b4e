"""Transformer that scales the control plane for high availability."""

from __future__ import annotations

from typing import Any, Callable

from .models import Component

Resource = dict[str, Any]

_HA_UNSUPPORTED = frozenset({"pingsource-mt-adapter"})


def _nested(resource: Resource, *path: str) -> tuple[Any, bool]:
    current: Any = resource
    for key in path:
        if not isinstance(current, dict):
            raise TypeError(f"{'.'.join(path)}: {current!r} is not a mapping")
        if key not in current:
            return None, False
        current = current[key]
    return current, True


def _nested_int(resource: Resource, *path: str) -> tuple[int, bool]:
    value, found = _nested(resource, *path)
    if not found:
        return 0, False
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{'.'.join(path)}: {value!r} is of the type {type(value).__name__}, expected int")
    return value, True


def _set_nested(resource: Resource, value: Any, *path: str) -> None:
    current = resource
    for key in path[:-1]:
        child = current.get(key)
        if child is None:
            child = current[key] = {}
        elif not isinstance(child, dict):
            raise TypeError(f"{'.'.join(path)}: {key} is not a mapping")
        current = child
    current[path[-1]] = value


def high_availability_transform(component: Component) -> Callable[[Resource], None]:
    """Return a transformer raising replica counts of deployments and HPAs.

    Deployments whose replicas are set in spec.deployments are left alone.
    """

    def transform(resource: Resource) -> None:
        name = (resource.get("metadata") or {}).get("name", "")
        for override in component.spec.deployment_overrides or []:
            if override.replicas is not None and override.name == name:
                return

        ha = component.spec.high_availability
        if ha is None or ha.replicas is None:
            return
        replicas = int(ha.replicas)
        kind = resource.get("kind")

        if kind == "Deployment" and name not in _HA_UNSUPPORTED:
            _set_nested(resource, replicas, "spec", "replicas")

        if kind == "HorizontalPodAutoscaler":
            minimum, _ = _nested_int(resource, "spec", "minReplicas")
            if minimum >= replicas:
                return
            _set_nested(resource, replicas, "spec", "minReplicas")
            maximum, found = _nested_int(resource, "spec", "maxReplicas")
            if not found:
                return
            _set_nested(resource, maximum + (replicas - minimum), "spec", "maxReplicas")

    return transform