"""Merge patch that removes a finalizer from a component."""

from __future__ import annotations

import json
from typing import Optional

from .models import Component


def finalizer_removal_patch(component: Component, to_remove: str) -> Optional[bytes]:
    """Return a JSON merge patch removing the finalizer, or None if it is absent."""
    finalizers = set(component.finalizers)
    if to_remove not in finalizers:
        return None
    finalizers.discard(to_remove)
    patch = {
        "metadata": {
            "finalizers": sorted(finalizers),
            "resourceVersion": component.resource_version,
        }
    }
    return json.dumps(patch, sort_keys=True, separators=(",", ":")).encode("utf-8")