"""Collections of resource documents and a simple in-memory cluster client."""

from __future__ import annotations

import copy
import urllib.request
from pathlib import Path
from typing import Any, Callable, Iterable, Iterator, Optional

import yaml

Resource = dict[str, Any]
Predicate = Callable[[Resource], bool]
Transformer = Callable[[Resource], Any]

_MANIFEST_SUFFIXES = {".yaml", ".yml", ".json"}


class NotFoundError(LookupError):
    """Raised when a resource does not exist in the cluster."""


def _kind(resource: Resource) -> str:
    return resource.get("kind", "") or ""


def _name(resource: Resource) -> str:
    return (resource.get("metadata") or {}).get("name", "") or ""


def _key(resource: Resource) -> tuple[str, str, str, str]:
    metadata = resource.get("metadata") or {}
    return (
        resource.get("apiVersion", "") or "",
        _kind(resource),
        metadata.get("namespace", "") or "",
        metadata.get("name", "") or "",
    )


class Client:
    """An in-memory store of cluster resources keyed by type, namespace and name."""

    def __init__(self, resources: Iterable[Resource] = ()):
        self._store: dict[tuple[str, str, str, str], Resource] = {}
        for resource in resources:
            self.create(resource)

    def get(self, resource: Resource) -> Resource:
        try:
            return copy.deepcopy(self._store[_key(resource)])
        except KeyError:
            raise NotFoundError(f"{_kind(resource)} {_name(resource)!r} not found") from None

    def create(self, resource: Resource) -> None:
        key = _key(resource)
        if key in self._store:
            raise ValueError(f"{_kind(resource)} {_name(resource)!r} already exists")
        self._store[key] = copy.deepcopy(resource)

    def update(self, resource: Resource) -> None:
        key = _key(resource)
        if key not in self._store:
            raise NotFoundError(f"{_kind(resource)} {_name(resource)!r} not found")
        self._store[key] = copy.deepcopy(resource)

    def delete(self, resource: Resource) -> None:
        try:
            del self._store[_key(resource)]
        except KeyError:
            raise NotFoundError(f"{_kind(resource)} {_name(resource)!r} not found") from None


class Manifest:
    """An ordered collection of resources, optionally bound to a client."""

    def __init__(self, resources: Iterable[Resource] = (), client: Optional[Client] = None):
        self._resources = [copy.deepcopy(r) for r in resources]
        self.client = client

    @property
    def resources(self) -> list[Resource]:
        """Copies of the resources in this manifest."""
        return [copy.deepcopy(r) for r in self._resources]

    def __len__(self) -> int:
        return len(self._resources)

    def __iter__(self) -> Iterator[Resource]:
        return iter(self.resources)

    def filter(self, *predicates: Predicate) -> Manifest:
        """Return the resources that satisfy every predicate."""
        kept = [r for r in self._resources if all(p(r) for p in predicates)]
        return Manifest(kept, self.client)

    def transform(self, *transformers: Optional[Transformer]) -> Manifest:
        """Return a copy of the manifest with each transformer applied to each resource.

        None entries are skipped; exceptions raised by a transformer propagate.
        """
        active = [t for t in transformers if t is not None]
        result = [copy.deepcopy(r) for r in self._resources]
        for resource in result:
            for transformer in active:
                transformer(resource)
        return Manifest(result, self.client)

    def append(self, other: Manifest) -> Manifest:
        return Manifest(self._resources + other._resources, self.client)

    def _require_client(self) -> Client:
        if self.client is None:
            raise RuntimeError("manifest has no client")
        return self.client

    def apply(self) -> None:
        """Create missing resources and update existing ones, in order."""
        client = self._require_client()
        for resource in self._resources:
            try:
                current = client.get(resource)
            except NotFoundError:
                current = None
            if current is None:
                client.create(copy.deepcopy(resource))
            else:
                client.update(copy.deepcopy(resource))

    def delete(self) -> None:
        """Delete existing resources in reverse order, ignoring missing ones."""
        client = self._require_client()
        for resource in reversed(self._resources):
            try:
                current = client.get(resource)
            except NotFoundError:
                continue
            if current is None:
                continue
            try:
                client.delete(copy.deepcopy(resource))
            except NotFoundError:
                continue


def _read_source(location: str) -> list[str]:
    if location.startswith(("http://", "https://")):
        with urllib.request.urlopen(location) as response:
            return [response.read().decode("utf-8")]
    path = Path(location)
    if path.is_dir():
        files = sorted(p for p in path.iterdir() if p.is_file() and p.suffix in _MANIFEST_SUFFIXES)
        return [p.read_text(encoding="utf-8") for p in files]
    return [path.read_text(encoding="utf-8")]


def load_manifest(path: str, client: Optional[Client] = None) -> Manifest:
    """Load resources from a comma-separated list of files, directories or URLs."""
    resources: list[Resource] = []
    for location in path.split(","):
        location = location.strip()
        if not location:
            raise FileNotFoundError(f"empty manifest path in {path!r}")
        for text in _read_source(location):
            resources.extend(doc for doc in yaml.safe_load_all(text) if isinstance(doc, dict) and doc)
    return Manifest(resources, client)


def by_kind(kind: str) -> Predicate:
    return lambda resource: _kind(resource) == kind


def by_name(name: str) -> Predicate:
    return lambda resource: _name(resource) == name


def any_of(*predicates: Predicate) -> Predicate:
    return lambda resource: any(p(resource) for p in predicates)


def not_(predicate: Predicate) -> Predicate:
    return lambda resource: not predicate(resource)


def no_crds(resource: Resource) -> bool:
    return _kind(resource) != "CustomResourceDefinition"