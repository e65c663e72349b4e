"""Ordered installation and removal of a component's manifest."""

from __future__ import annotations

import logging

from .manifest import Manifest, any_of, by_kind, no_crds, not_
from .models import Component, ComponentKind
from .releases import target_manifest_path_array, target_version

logger = logging.getLogger(__name__)

_ROLE = any_of(by_kind("ClusterRole"), by_kind("Role"))
_ROLE_BINDING = any_of(by_kind("ClusterRoleBinding"), by_kind("RoleBinding"))
_WEBHOOK = any_of(
    by_kind("MutatingWebhookConfiguration"), by_kind("ValidatingWebhookConfiguration")
)
_GATEWAY_NOT_MATCH = 'no matches for kind "Gateway"'


class InstallError(Exception):
    """Raised when applying or deleting a manifest fails."""


def install(manifest: Manifest, component: Component) -> None:
    """Apply the manifest in RBAC-safe order and record the result in the status.

    Roles come first, then role bindings, then everything else, and webhooks last.
    """
    logger.debug("Installing manifest")
    status = component.status

    try:
        manifest.filter(_ROLE).apply()
    except Exception as err:
        status.mark_install_failed(str(err))
        raise InstallError(f"failed to apply (cluster)roles: {err}") from err

    try:
        manifest.filter(_ROLE_BINDING).apply()
    except Exception as err:
        status.mark_install_failed(str(err))
        raise InstallError(f"failed to apply (cluster)rolebindings: {err}") from err

    try:
        manifest.filter(not_(any_of(_ROLE, _ROLE_BINDING, _WEBHOOK))).apply()
    except Exception as err:
        status.mark_install_failed(str(err))
        if (
            component.kind is ComponentKind.SERVING
            and _GATEWAY_NOT_MATCH in str(err)
            and component.spec.istio_ingress_enabled
        ):
            message = f"please install istio or disable the istio ingress plugin: {err}"
            status.mark_install_failed(message)
            raise InstallError(message) from err
        raise InstallError(f"failed to apply non rbac manifest: {err}") from err

    try:
        manifest.filter(_WEBHOOK).apply()
    except Exception as err:
        status.mark_install_failed(str(err))
        raise InstallError(f"failed to apply webhooks: {err}") from err

    status.mark_install_succeeded()
    status.version = target_version(component)
    status.manifests = target_manifest_path_array(component)


def uninstall(manifest: Manifest) -> None:
    """Delete every resource except CRDs, removing RBAC resources last."""
    try:
        manifest.filter(no_crds, not_(any_of(_ROLE, _ROLE_BINDING))).delete()
    except Exception as err:
        raise InstallError(f"failed to remove non-crd/non-rbac resources: {err}") from err
    try:
        manifest.filter(any_of(_ROLE, _ROLE_BINDING)).delete()
    except Exception as err:
        raise InstallError(f"failed to remove rbac: {err}") from err