"""Transformer that gives Jobs version-specific names."""

from __future__ import annotations

from typing import Any, Callable

from .models import Component
from .releases import target_version

ISTIO_ANNOTATION_NAME = "sidecar.istio.io/inject"

Resource = dict[str, Any]


def _mapping(parent: dict[str, Any], key: str) -> dict[str, Any]:
    child = parent.get(key)
    if child is None:
        child = parent[key] = {}
    elif not isinstance(child, dict):
        raise TypeError(f"failed to read Job: {key} is not a mapping")
    return child


def _add_istio_ignore_annotation(job: Resource) -> None:
    template = _mapping(_mapping(job, "spec"), "template")
    annotations = _mapping(_mapping(template, "metadata"), "annotations")
    if not annotations.get(ISTIO_ANNOTATION_NAME):
        annotations[ISTIO_ANNOTATION_NAME] = "false"


def job_transform(component: Component) -> Callable[[Resource], None]:
    """Return a transformer that suffixes Job names with the component and target version.

    Jobs also get the Istio sidecar injection disabled unless it is already set.
    """

    def transform(resource: Resource) -> None:
        if resource.get("kind") != "Job":
            return
        metadata = _mapping(resource, "metadata")
        short_name = component.kind.short_name
        version = target_version(component)
        name = metadata.get("name", "") or ""
        if name == "":
            metadata["name"] = f"{metadata.get('generateName', '') or ''}{short_name}-{version}"
        else:
            metadata["name"] = f"{name}-{short_name}-{version}"
        _add_istio_ignore_annotation(resource)

    return transform