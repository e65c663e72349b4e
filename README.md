# knoperator

This package provides building blocks for an operator that installs Knative
Serving and Knative Eventing from Kubernetes manifests and keeps them managed.
Resources are plain dictionaries as loaded from YAML. Every transformer
changes the resource it is given in place.

## Modules

### Manifests: `knoperator.manifest`

- `load_manifest(path, client=None)` reads YAML documents into a `Manifest`.
  The path is a comma-separated list, and each entry is one of:
  - a file;
  - a directory, where its `.yaml`, `.yml` and `.json` files are read in
    sorted order;
  - an `http://` or `https://` URL.
- `Manifest` is an ordered collection of resources. It has `filter`,
  `transform` and `append`, each of which returns a new manifest. It also has
  `apply` and `delete`, which work through the manifest's `client`:
  - `apply` creates the resources that are missing and updates the ones that
    exist.
  - `delete` removes the resources in reverse order and skips the ones that
    are missing.
  - `transform` skips `None` transformers.
- `Client` is an in-memory store of resources, keyed by apiVersion, kind,
  namespace and name. It has `get`, `create`, `update` and `delete`. A
  missing resource raises `NotFoundError`.
- Predicates for selecting resources: `by_kind`, `by_name`, `any_of`, `not_`
  and `no_crds`.

### Component model: `knoperator.models`

- `Component` is the custom resource itself. It has a `ComponentKind` of
  `SERVING` or `EVENTING`, a `ComponentSpec` and a `ComponentStatus`.
- Override types: `DeploymentOverride`, `ResourceRequirementsOverride`,
  `EnvRequirementsOverride`, `PodDisruptionBudgetOverride`,
  `HighAvailability`, `Registry` and `ManifestSource`.
- `ComponentStatus` holds `Condition` entries and has these methods:
  `initialize_conditions`, `get_condition`, `mark_install_failed`,
  `mark_install_succeeded`, `mark_deployments_available` and
  `mark_deployments_not_ready`.

### Versions: `knoperator.semver`

Semantic version helpers for versions written with a leading `v`: `is_valid`,
`major`, `major_minor` and `compare`.

### Releases: `knoperator.releases`

Release directories are looked up under the path in the `KO_DATA_PATH`
environment variable: `knative-serving/<version>`,
`knative-eventing/<version>` and `ingress/<version>`.

- `target_version` resolves an empty version, `latest` or a `major.minor`
  version to a bundled release.
- `target_manifest`, `target_additional_manifest` and `installed_manifest`
  load the relevant manifests and check their release labels.
  - `${VERSION}` in a manifest URL is replaced with the target version.
- `fetch_manifest` caches loaded manifests, and `clear_cache` empties the
  cache.
- `all_releases`, `latest_release`, `get_latest_release` and
  `get_latest_ingress_release` list and pick the bundled releases.
- `target_manifest_path` and `target_manifest_path_array` return the
  locations of the target manifests.
- `check_version_migration` returns the target version if the component may
  move to it. Otherwise it raises `ReleaseError`. A move is refused in these
  cases:
  - it crosses a major version, except between 0.26 and 1.0;
  - it crosses more than one minor version.

### Transformers

Each factory below returns a callable that is passed to
`Manifest.transform`. The ones marked "or `None`" return `None` when no
overrides are configured.

- `knoperator.config_maps.config_map_transform(config)` sets ConfigMap data.
  The key may be the full ConfigMap name or the name without its `config-`
  prefix. `update_config_map` does the merge itself.
- `knoperator.deployments_override.deployments_transform(component)`, or
  `None`, applies `spec.deployment_overrides`: labels, annotations, replicas,
  node selector, tolerations, affinity, resources and environment. It also
  provides `merge_env` and `find_env_override`.
- `knoperator.ha.high_availability_transform(component)` sets the replicas of
  Deployments and raises `minReplicas`/`maxReplicas` of
  HorizontalPodAutoscalers.
- `knoperator.images.image_transform(registry)` rewrites container images,
  image-valued environment variables and caching `Image` resources, and
  appends image pull secrets. `get_image_name` extracts the bare image name.
- `knoperator.job.job_transform(component)` renames Jobs with the component
  name and target version, and disables Istio sidecar injection unless it is
  already set.
- `knoperator.resources.resource_requirements_transform(component)` merges
  `spec.resources` into container resources. It also provides
  `merge_resources` and `find_resource_override`.
- `knoperator.pdb.pod_disruption_budgets_transform(component)`, or `None`,
  sets `minAvailable` on matching PodDisruptionBudgets.

### Install and health

- `knoperator.install.install(manifest, component)` applies resources in this
  order: roles, role bindings, everything else, then webhooks. It then
  records the version and manifest paths in the status.
- `knoperator.install.uninstall(manifest)` deletes everything except CRDs and
  removes RBAC resources last.
- Failures in either raise `InstallError`.
- `knoperator.deployments.check_deployments(manifest, component)` marks the
  `DeploymentsAvailable` condition from what the client returns.
  `is_deployment_available` tests a single deployment.

### Extensions and finalizers

- `knoperator.extensions.Extension` is the interface for platform hooks.
- `NilExtension` assembles an extension from fixed parts.
- `no_extension()` returns an extension that adds nothing.
- `knoperator.finalizer.finalizer_removal_patch(component, name)` returns a
  JSON merge patch as bytes. It returns `None` if the finalizer is not
  present.

## Example

```python
from knoperator.manifest import load_manifest
from knoperator.models import Component, ComponentKind, ComponentSpec, HighAvailability
from knoperator.ha import high_availability_transform
from knoperator.deployments_override import deployments_transform

component = Component(
    kind=ComponentKind.SERVING,
    spec=ComponentSpec(high_availability=HighAvailability(replicas=3)),
)
manifest = load_manifest("manifests/serving-core.yaml")
manifest = manifest.transform(
    high_availability_transform(component),
    deployments_transform(component),
)
```

## What it does not do

- It does not talk to a real Kubernetes API server. `Client` is an in-memory
  store, and `apply`, `delete` and `check_deployments` act only on it.
- There is no controller loop that watches components.
- There is no command-line program.

## Tests

```
pip install -e .[test]
pytest
```