"""Platform-specific extensions to the reconciliation of a component."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Callable, Optional

from .manifest import Manifest
from .models import Component

Transformer = Callable[[dict], object]
Hook = Callable[[Optional[Component]], object]


class Extension(abc.ABC):
    """Hooks a platform can supply to add manifests, transformers and steps."""

    @abc.abstractmethod
    def manifests(self, component: Optional[Component]) -> list[Manifest]:
        """Extra manifests to install alongside the component."""

    @abc.abstractmethod
    def transformers(self, component: Optional[Component]) -> list[Transformer]:
        """Extra transformers to apply to the component's manifests."""

    @abc.abstractmethod
    def reconcile(self, component: Optional[Component]) -> None:
        """Platform-specific reconciliation; raises on failure."""

    @abc.abstractmethod
    def finalize(self, component: Optional[Component]) -> None:
        """Platform-specific cleanup; raises on failure."""


@dataclass(frozen=True)
class NilExtension(Extension):
    """An extension built from fixed parts; by default it adds nothing."""

    extra_manifests: tuple[Manifest, ...] = ()
    extra_transformers: tuple[Transformer, ...] = ()
    reconcile_hooks: tuple[Hook, ...] = ()
    finalize_hooks: tuple[Hook, ...] = ()

    def manifests(self, component: Optional[Component]) -> list[Manifest]:
        return list(self.extra_manifests)

    def transformers(self, component: Optional[Component]) -> list[Transformer]:
        return list(self.extra_transformers)

    def reconcile(self, component: Optional[Component]) -> None:
        for hook in self.reconcile_hooks:
            hook(component)

    def finalize(self, component: Optional[Component]) -> None:
        for hook in self.finalize_hooks:
            hook(component)


def no_extension(*args) -> Extension:
    """Generate an extension that adds nothing, whatever it is given."""
    return NilExtension()