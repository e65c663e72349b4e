"""Data model for operator custom resources and their status."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Optional, Union

STATUS_TRUE = "True"
STATUS_FALSE = "False"
STATUS_UNKNOWN = "Unknown"

INSTALL_SUCCEEDED = "InstallSucceeded"
DEPLOYMENTS_AVAILABLE = "DeploymentsAvailable"

_MANAGED_CONDITIONS = (DEPLOYMENTS_AVAILABLE, INSTALL_SUCCEEDED)


class ComponentKind(enum.Enum):
    """The kinds of component the operator manages."""

    SERVING = "KnativeServing"
    EVENTING = "KnativeEventing"

    @property
    def short_name(self) -> str:
        """Short component name used in generated resource names."""
        return "serving" if self is ComponentKind.SERVING else "eventing"

    @property
    def directory(self) -> str:
        """Directory holding the bundled manifests of this component."""
        return f"knative-{self.short_name}"

    @property
    def release_label(self) -> str:
        """Label that carries the release version on manifest resources."""
        return f"{self.short_name}.knative.dev/release"


@dataclass
class Condition:
    """A single status condition."""

    type: str
    status: str = STATUS_UNKNOWN
    reason: str = ""
    message: str = ""


@dataclass
class ManifestSource:
    """A location (file, directory or URL) holding manifests."""

    url: str


@dataclass
class Registry:
    """Image registry settings."""

    default: str = ""
    override: dict[str, str] = field(default_factory=dict)
    image_pull_secrets: list[dict[str, str]] = field(default_factory=list)


@dataclass
class HighAvailability:
    """High-availability settings for the control plane."""

    replicas: Optional[int] = None


@dataclass
class ResourceRequirementsOverride:
    """Resource limits and requests for one container."""

    container: str
    limits: dict[str, str] = field(default_factory=dict)
    requests: dict[str, str] = field(default_factory=dict)


@dataclass
class EnvRequirementsOverride:
    """Environment variables for one container."""

    container: str
    env_vars: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class DeploymentOverride:
    """Overrides applied to a single deployment."""

    name: str
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    replicas: Optional[int] = None
    node_selector: dict[str, str] = field(default_factory=dict)
    tolerations: list[dict[str, Any]] = field(default_factory=list)
    affinity: Optional[dict[str, Any]] = None
    resources: list[ResourceRequirementsOverride] = field(default_factory=list)
    env: list[EnvRequirementsOverride] = field(default_factory=list)


@dataclass
class PodDisruptionBudgetOverride:
    """Overrides applied to a single PodDisruptionBudget."""

    name: str
    min_available: Optional[Union[int, str]] = None


@dataclass
class ComponentSpec:
    """Desired state of a component."""

    version: str = ""
    manifests: list[ManifestSource] = field(default_factory=list)
    additional_manifests: list[ManifestSource] = field(default_factory=list)
    registry: Registry = field(default_factory=Registry)
    high_availability: Optional[HighAvailability] = None
    deployment_overrides: Optional[list[DeploymentOverride]] = None
    pod_disruption_budget_overrides: Optional[list[PodDisruptionBudgetOverride]] = None
    resources: list[ResourceRequirementsOverride] = field(default_factory=list)
    config: dict[str, dict[str, str]] = field(default_factory=dict)
    istio_ingress_enabled: bool = True


@dataclass
class ComponentStatus:
    """Observed state of a component."""

    version: str = ""
    manifests: list[str] = field(default_factory=list)
    conditions: list[Condition] = field(default_factory=list)

    def _set(self, condition: Condition) -> None:
        self.conditions = [c for c in self.conditions if c.type != condition.type]
        self.conditions.append(condition)

    def initialize_conditions(self) -> None:
        """Set every managed condition that is not yet present to Unknown."""
        for condition_type in _MANAGED_CONDITIONS:
            if self.get_condition(condition_type) is None:
                self._set(Condition(condition_type))

    def get_condition(self, condition_type: str) -> Optional[Condition]:
        """Return the condition of the given type, or None."""
        return next((c for c in self.conditions if c.type == condition_type), None)

    def mark_install_failed(self, message: str) -> None:
        self._set(
            Condition(
                INSTALL_SUCCEEDED,
                STATUS_FALSE,
                "Error",
                f"Install failed with message: {message}",
            )
        )

    def mark_install_succeeded(self) -> None:
        self._set(Condition(INSTALL_SUCCEEDED, STATUS_TRUE))

    def mark_deployments_available(self) -> None:
        self._set(Condition(DEPLOYMENTS_AVAILABLE, STATUS_TRUE))

    def mark_deployments_not_ready(self, names) -> None:
        self._set(
            Condition(
                DEPLOYMENTS_AVAILABLE,
                STATUS_FALSE,
                "NotReady",
                "Waiting on deployments: " + ", ".join(names),
            )
        )


@dataclass
class Component:
    """An operator custom resource: a Serving or Eventing installation."""

    kind: ComponentKind = ComponentKind.SERVING
    name: str = ""
    namespace: str = ""
    spec: ComponentSpec = field(default_factory=ComponentSpec)
    status: ComponentStatus = field(default_factory=ComponentStatus)
    finalizers: list[str] = field(default_factory=list)
    resource_version: str = ""