"""Transformer that rewrites container images and adds image pull secrets."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .models import Registry

logger = logging.getLogger(__name__)

CACHING_API_VERSION = "caching.internal.knative.dev/v1alpha1"

_CONTAINER_NAME_VARIABLE = "${NAME}"
_DELIMITER = "/"
_POD_SPEC_KINDS = frozenset({"Deployment", "DaemonSet", "Job"})

Resource = dict[str, Any]


def get_image_name(image_url: str) -> str:
    """Return the bare image name of a full image reference, or '' if it has no path."""
    if "/" not in image_url:
        return ""
    name_with_tag = image_url.split("/")[-1]
    if ":" not in name_with_tag:
        return name_with_tag
    image_name = name_with_tag.split(":")[0]
    if "@" not in image_name:
        return image_name
    return name_with_tag.split("@")[0]


def _name(resource: Resource) -> str:
    return (resource.get("metadata") or {}).get("name", "") or ""


def _mapping(parent: dict[str, Any], key: str, create: bool, where: str) -> Optional[dict[str, Any]]:
    child = parent.get(key)
    if child is None:
        if not create:
            return None
        child = parent[key] = {}
    elif not isinstance(child, dict):
        raise TypeError(f"failed to read {where}: {key} is not a mapping")
    return child


def _pod_spec(resource: Resource, create: bool) -> Optional[dict[str, Any]]:
    kind = resource.get("kind", "")
    current: Optional[dict[str, Any]] = resource
    for key in ("spec", "template", "spec"):
        current = _mapping(current, key, create, kind)
        if current is None:
            return None
    return current


def _default_image(registry: Registry, current_image: str, fallback_name: str) -> str:
    image_name = get_image_name(current_image) or fallback_name
    return registry.default.replace(_CONTAINER_NAME_VARIABLE, image_name)


def _update_container(registry: Registry, owner: str, container: dict[str, Any]) -> None:
    container_name = container.get("name", "") or ""
    overrides = registry.override
    qualified = owner + _DELIMITER + container_name
    if qualified in overrides:
        container["image"] = overrides[qualified]
    elif container_name in overrides:
        container["image"] = overrides[container_name]
    elif registry.default:
        container["image"] = _default_image(registry, container.get("image", "") or "", container_name)

    for env in container.get("env") or []:
        env_name = env.get("name", "")
        if env_name in overrides:
            env["value"] = overrides[env_name]


def _update_pod_spec_resource(registry: Registry, resource: Resource) -> None:
    owner = _name(resource)
    logger.debug("Updating name=%s registry=%s", owner, registry)
    pod_spec = _pod_spec(resource, create=bool(registry.image_pull_secrets))
    if pod_spec is None:
        return

    containers = pod_spec.get("containers") or []
    if not isinstance(containers, list):
        raise TypeError(f"failed to read {resource.get('kind', '')}: containers is not a list")
    for container in containers:
        _update_container(registry, owner, container)

    if registry.image_pull_secrets:
        logger.debug("Adding ImagePullSecrets: %s", registry.image_pull_secrets)
        existing = list(pod_spec.get("imagePullSecrets") or [])
        pod_spec["imagePullSecrets"] = existing + [dict(s) for s in registry.image_pull_secrets]

    logger.debug("Finished conversion name=%s", owner)


def _update_caching_image(registry: Registry, resource: Resource) -> None:
    name = _name(resource)
    logger.debug("Updating Image name=%s registry=%s", name, registry)
    spec = _mapping(resource, "spec", True, "Image")
    assert spec is not None

    if name in registry.override:
        spec["image"] = registry.override[name]
    elif registry.default:
        spec["image"] = _default_image(registry, spec.get("image", "") or "", name)

    if registry.image_pull_secrets:
        logger.debug("Adding ImagePullSecrets: %s", registry.image_pull_secrets)
        existing = list(spec.get("imagePullSecrets") or [])
        spec["imagePullSecrets"] = existing + [dict(s) for s in registry.image_pull_secrets]

    resource.pop("status", None)
    logger.debug("Finished conversion name=%s", name)


def image_transform(registry: Registry) -> Callable[[Resource], None]:
    """Return a transformer applying the registry settings to images.

    Deployments, DaemonSets and Jobs have their container images and
    image-valued environment variables rewritten; caching Images have their
    spec.image rewritten. Image pull secrets are appended in both cases.
    """

    def transform(resource: Resource) -> None:
        kind = resource.get("kind")
        if kind == "Image" and resource.get("apiVersion") == CACHING_API_VERSION:
            _update_caching_image(registry, resource)
        elif kind in _POD_SPEC_KINDS:
            _update_pod_spec_resource(registry, resource)

    return transform