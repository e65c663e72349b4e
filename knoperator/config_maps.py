"""Transformer that writes operator-supplied settings into ConfigMaps."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

logger = logging.getLogger(__name__)

_CONFIG_PREFIX = "config-"

Resource = dict[str, Any]


def _name(resource: Resource) -> str:
    return (resource.get("metadata") or {}).get("name", "") or ""


def config_map_transform(config: Mapping[str, Mapping[str, str]]) -> Callable[[Resource], None]:
    """Return a transformer overriding ConfigMap data with the given settings.

    Settings are looked up by the ConfigMap's full name first, then by its
    name without the leading "config-".
    """

    def transform(resource: Resource) -> None:
        if resource.get("kind") != "ConfigMap":
            return
        name = _name(resource)
        if name in config:
            update_config_map(resource, config[name])
            return
        short_name = name[len(_CONFIG_PREFIX):]
        if short_name in config:
            update_config_map(resource, config[short_name])

    return transform


def update_config_map(config_map: Resource, data: Mapping[str, str]) -> None:
    """Set the given keys in the ConfigMap's data, leaving equal values alone.

    Raises TypeError if the ConfigMap's data is not a mapping.
    """
    existing = config_map.get("data")
    if existing is not None and not isinstance(existing, dict):
        raise TypeError(
            f".data accessor error: {existing!r} is of the type "
            f"{type(existing).__name__}, expected a mapping"
        )
    current: dict[str, Any] = existing if existing is not None else {}
    changed = False
    name = _name(config_map)
    for key, value in data.items():
        if key in current:
            previous = current[key]
            if previous == value:
                continue
            logger.info("Setting map=%s %s=%s previous=%s", name, key, value, previous)
        else:
            logger.info("Setting map=%s %s=%s", name, key, value)
        current[key] = value
        changed = True
    if changed:
        config_map["data"] = current