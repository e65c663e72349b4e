"""Transformer that applies spec.podDisruptionBudgets overrides."""

from __future__ import annotations

from typing import Any, Callable, Optional

from .models import Component

Resource = dict[str, Any]


def pod_disruption_budgets_transform(component: Component) -> Optional[Callable[[Resource], None]]:
    """Return a transformer setting minAvailable on matching budgets, or None if none are set."""
    overrides = component.spec.pod_disruption_budget_overrides
    if overrides is None:
        return None

    def transform(resource: Resource) -> None:
        if resource.get("kind") != "PodDisruptionBudget":
            return
        name = (resource.get("metadata") or {}).get("name", "")
        for override in overrides:
            if override.name != name:
                continue
            if override.min_available is None:
                return
            spec = resource.get("spec")
            if spec is None:
                spec = resource["spec"] = {}
            elif not isinstance(spec, dict):
                raise TypeError(f"spec of PodDisruptionBudget {name!r} is not a mapping")
            spec["minAvailable"] = override.min_available

    return transform