"""Release discovery, manifest selection and version checks for components."""

from __future__ import annotations

import os
import re
import stat
from functools import cmp_to_key
from typing import Callable

import yaml

from . import semver
from .manifest import Manifest, load_manifest
from .models import Component

KO_ENV_KEY = "KO_DATA_PATH"
VERSION_VARIABLE = "${VERSION}"
LATEST_VERSION = "latest"

_SEPARATOR = ","
_INTEGER = re.compile(r"[+-]?[0-9]+")
_LOAD_ERRORS = (OSError, ValueError, yaml.YAMLError)

_cache: dict[str, Manifest] = {}

ManifestFetcher = Callable[[str], Manifest]


class ReleaseError(Exception):
    """Raised when a release or its manifests are unsuitable or unavailable."""


def sanitize_semver(version: str) -> str:
    """Prefix the version with 'v' so it can be compared as a semantic version."""
    return f"v{version}"


def _is_latest(version: str) -> bool:
    return version.casefold() == LATEST_VERSION.casefold()


def _join(*parts: str) -> str:
    kept = [p for p in parts if p]
    return os.path.normpath(os.path.join(*kept)) if kept else ""


def _ko_data_dir() -> str:
    return os.environ.get(KO_ENV_KEY, "")


def _component_dir(component: Component) -> str:
    return _join(_ko_data_dir(), component.kind.directory)


def _ingress_dir() -> str:
    return _join(_ko_data_dir(), "ingress")


def target_version(component: Component) -> str:
    """Return the version to install, resolving 'latest', empty and major.minor versions."""
    spec = component.spec
    version = spec.version
    if _is_latest(version):
        return get_latest_release(component, version)
    if not spec.manifests:
        if version == "":
            return latest_release(component)
        sanitized = sanitize_semver(version)
        if sanitized == semver.major_minor(sanitized):
            return get_latest_release(component, version)
    return version


def _fetch_manifest_from_path(path: str) -> Manifest:
    result = load_manifest(path)
    _cache[path] = result
    return result


def fetch_manifest(path: str) -> Manifest:
    """Return the manifest at path, reading it once and caching it afterwards."""
    cached = _cache.get(path)
    if cached is not None:
        return cached
    return _fetch_manifest_from_path(path)


def clear_cache() -> None:
    """Forget every cached manifest."""
    _cache.clear()


def _manifest_with_version_validation(
    path: str, component: Component, fetch: ManifestFetcher
) -> Manifest:
    version = target_version(component)
    try:
        manifest = fetch(path)
    except _LOAD_ERRORS as err:
        if not component.spec.manifests:
            raise ReleaseError(
                f"the manifests of the target version {component.spec.version} "
                "are not available to this release"
            ) from err
        raise

    if len(manifest) == 0:
        raise ReleaseError(f"there is no resource available in the target manifests {path}")

    if version in ("", LATEST_VERSION):
        return manifest

    target = sanitize_semver(version)
    key = component.kind.release_label
    for resource in manifest.resources:
        metadata = resource.get("metadata") or {}
        manifest_version = (metadata.get("labels") or {}).get(key, "")
        if manifest_version and semver.major_minor(target) != semver.major_minor(manifest_version):
            raise ReleaseError(
                f"the version of the manifests {manifest_version} of the component "
                f"{metadata.get('name', '')} does not match the target version of the "
                f"operator CR {target}"
            )
    return manifest


def target_manifest_path(component: Component) -> str:
    """Comma-separated locations of the target manifests, or '' if none exist locally."""
    version = target_version(component)
    urls = [m.url.replace(VERSION_VARIABLE, version) for m in component.spec.manifests]
    path = _SEPARATOR.join(urls)
    if path == "":
        path = _join(_component_dir(component), version)
        if not os.path.exists(path):
            return ""
    return path


def _additional_manifest_path(component: Component) -> str:
    version = target_version(component)
    return _SEPARATOR.join(
        m.url.replace(VERSION_VARIABLE, version) for m in component.spec.additional_manifests
    )


def target_manifest_path_array(component: Component) -> list[str]:
    """The target manifest path, followed by the additional one if any are configured."""
    paths = [target_manifest_path(component)]
    if component.spec.additional_manifests:
        paths.append(_additional_manifest_path(component))
    return paths


def target_manifest(component: Component) -> Manifest:
    """Load the manifest for the target version, checking its release labels."""
    path = target_manifest_path(component)
    fetch = fetch_manifest if not component.spec.manifests else _fetch_manifest_from_path
    return _manifest_with_version_validation(path, component, fetch)


def target_additional_manifest(component: Component) -> Manifest:
    """Load the additional manifests for the target version; empty if none are set."""
    path = _additional_manifest_path(component)
    if path == "":
        return Manifest()
    return _manifest_with_version_validation(path, component, _fetch_manifest_from_path)


def _installed_manifest_paths(version: str, component: Component) -> list[str]:
    if component.status.manifests:
        return list(component.status.manifests)
    local = _join(_component_dir(component), version)
    if os.path.exists(local):
        return [local]
    return []


def installed_manifest(component: Component) -> Manifest:
    """Load the manifest currently installed, or the target one if nothing is recorded."""
    current = component.status.version
    if not component.status.manifests and current == "":
        return target_manifest(component)
    paths = _installed_manifest_paths(current, component)
    if not paths:
        return Manifest()
    manifest = fetch_manifest(paths[0])
    for path in paths[1:]:
        manifest = manifest.append(fetch_manifest(path))
    return manifest


def _minor(version: str, label: str) -> int:
    parts = version.split(".")
    if len(parts) < 2 or not _INTEGER.fullmatch(parts[1]):
        raise ReleaseError(f"minor number of the {label} version {version} should be an integer.")
    return int(parts[1])


def check_version_migration(component: Component) -> str:
    """Return the target version if it is valid and reachable from the installed one.

    Raises ReleaseError otherwise.
    """
    version = target_version(component)
    if version == LATEST_VERSION:
        return version
    target = sanitize_semver(version)
    if not semver.is_valid(target):
        raise ReleaseError(f"target version {target} is not in a valid semantic versioning format.")
    if len(target.split(".")) < 2:
        raise ReleaseError(
            f"target version {target} should at least include the major and minor numbers."
        )

    current = component.status.version
    if current in ("", LATEST_VERSION):
        return version

    current = sanitize_semver(current)
    current_minor = _minor(current, "current")
    target_minor = _minor(target, "target")

    if semver.major(current) != semver.major(target):
        current_mm, target_mm = semver.major_minor(current), semver.major_minor(target)
        if {current_mm, target_mm} == {"v0.26", "v1.0"}:
            return version
        raise ReleaseError(
            "not supported to upgrade or downgrade across the MAJOR version. The "
            f"installed KnativeServing version is {current}."
        )

    if abs(current_minor - target_minor) < 2:
        return version

    raise ReleaseError(
        "not supported to upgrade or downgrade across multiple MINOR versions. The "
        f"installed KnativeServing version is {current}."
    )


def _all_releases_under_path(pathname: str) -> list[str]:
    tags = [
        name
        for name in sorted(os.listdir(pathname))
        if stat.S_ISDIR(os.stat(os.path.join(pathname, name)).st_mode)
    ]
    if not tags:
        raise ReleaseError(f"unable to find any version number under the path {pathname}")
    newest_first = cmp_to_key(
        lambda a, b: semver.compare(sanitize_semver(b), sanitize_semver(a))
    )
    return sorted(tags, key=newest_first)


def all_releases(component: Component) -> list[str]:
    """Release directories bundled for the component, newest first."""
    return _all_releases_under_path(_component_dir(component))


def _latest_from_list(versions: list[str], version: str) -> str:
    if version == "":
        return versions[0]
    if _is_latest(version):
        return version if version in versions else versions[0]
    wanted = semver.major_minor(sanitize_semver(version))
    for candidate in versions:
        if candidate.startswith(version) and semver.major_minor(sanitize_semver(candidate)) == wanted:
            return candidate
    return version


def get_latest_release(component: Component, version: str) -> str:
    """Resolve version against the bundled releases of the component."""
    return _latest_from_list(all_releases(component), version)


def latest_release(component: Component) -> str:
    """The newest release bundled for the component."""
    return get_latest_release(component, "")


def get_latest_ingress_release(version: str) -> str:
    """Resolve version against the bundled ingress releases."""
    return _latest_from_list(_all_releases_under_path(_ingress_dir()), version)