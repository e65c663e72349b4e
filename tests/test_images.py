import copy

import pytest

from knoperator.images import CACHING_API_VERSION, get_image_name, image_transform
from knoperator.models import Registry

QUEUE_SHA = (
    "gcr.io/knative-releases/github.com/knative/serving/cmd/queue"
    "@sha256:1e40c99ff5977daa2d69873fff604c6d09651af1f9ff15aadf8849b3ee77ab45"
)
EVENTING_QUEUE_SHA = (
    "gcr.io/knative-releases/github.com/knative/eventing/cmd/queue"
    "@sha256:1e40c99ff5977daa2d69873fff604c6d09651af1f9ff15aadf8849b3ee77ab45"
)

API_VERSIONS = {"Deployment": "apps/v1", "DaemonSet": "apps/v1", "Job": "batch/v1"}


def make_workload(kind, name, containers=None, pull_secrets=None):
    pod_spec = {}
    if containers is not None:
        pod_spec["containers"] = copy.deepcopy(containers)
    if pull_secrets is not None:
        pod_spec["imagePullSecrets"] = copy.deepcopy(pull_secrets)
    return {
        "apiVersion": API_VERSIONS[kind],
        "kind": kind,
        "metadata": {"name": name},
        "spec": {"template": {"spec": pod_spec}},
    }


def make_image(name, image):
    return {
        "apiVersion": CACHING_API_VERSION,
        "kind": "Image",
        "metadata": {"name": name},
        "spec": {"image": image},
    }


RESOURCE_CASES = [
    (
        "UsesNameFromDefault",
        [{"name": "queue", "image": QUEUE_SHA}],
        Registry(default="new-registry.io/test/path/${NAME}:new-tag"),
        [{"name": "queue", "image": "new-registry.io/test/path/queue:new-tag"}],
    ),
    (
        "UsesContainerNamePerContainer",
        [
            {"name": "container1", "image": "gcr.io/cmd/queue:test"},
            {"name": "container2", "image": "gcr.io/cmd/queue:test"},
        ],
        Registry(
            override={
                "container1": "new-registry.io/test/path/new-container-1:new-tag",
                "container2": "new-registry.io/test/path/new-container-2:new-tag",
            }
        ),
        [
            {"name": "container1", "image": "new-registry.io/test/path/new-container-1:new-tag"},
            {"name": "container2", "image": "new-registry.io/test/path/new-container-2:new-tag"},
        ],
    ),
    (
        "UsesOverrideFromDefault",
        [{"name": "queue", "image": QUEUE_SHA}],
        Registry(
            default="new-registry.io/test/path/${NAME}:new-tag",
            override={"queue": "new-registry.io/test/path/new-value:new-override-tag"},
        ),
        [{"name": "queue", "image": "new-registry.io/test/path/new-value:new-override-tag"}],
    ),
    (
        "NoChangeOverrideWithDifferentName",
        [{"name": "image", "image": "docker.io/name/image:tag2"}],
        Registry(override={"Unused": "new-registry.io/test/path"}),
        [{"name": "image", "image": "docker.io/name/image:tag2"}],
    ),
    (
        "NoChange",
        [{"name": "queue", "image": EVENTING_QUEUE_SHA}],
        Registry(),
        [{"name": "queue", "image": EVENTING_QUEUE_SHA}],
    ),
    (
        "OverrideEnvVarImage",
        [{"env": [{"name": "SOME_IMAGE", "value": "gcr.io/foo/bar"}]}],
        Registry(override={"SOME_IMAGE": "docker.io/my/overridden-image"}),
        [{"env": [{"name": "SOME_IMAGE", "value": "docker.io/my/overridden-image"}]}],
    ),
    (
        "NoOverrideEnvVarImage",
        [{"env": [{"name": "SOME_IMAGE", "value": "gcr.io/foo/bar"}]}],
        Registry(override={"OTHER_IMAGE": "docker.io/my/overridden-image"}),
        [{"env": [{"name": "SOME_IMAGE", "value": "gcr.io/foo/bar"}]}],
    ),
    (
        "NoOverrideEnvVarImageAndContainerImageBoth",
        [
            {
                "name": "queue",
                "image": EVENTING_QUEUE_SHA,
                "env": [{"name": "SOME_IMAGE", "value": "gcr.io/foo/bar"}],
            }
        ],
        Registry(
            override={
                "queue": "new-registry.io/test/path/new-value:new-override-tag",
                "SOME_IMAGE": "docker.io/my/overridden-image",
            }
        ),
        [
            {
                "name": "queue",
                "image": "new-registry.io/test/path/new-value:new-override-tag",
                "env": [{"name": "SOME_IMAGE", "value": "docker.io/my/overridden-image"}],
            }
        ],
    ),
    (
        "OverrideWithDeploymentContainer",
        [
            {"name": "container1", "image": "gcr.io/cmd/queue:test"},
            {"name": "container2", "image": "gcr.io/cmd/queue:test"},
        ],
        Registry(
            override={
                "container1": "new-registry.io/test/path/new-container-1:new-tag",
                "container2": "new-registry.io/test/path/new-container-2:new-tag",
                "OverrideWithDeploymentContainer/container1":
                    "new-registry.io/test/path/OverrideWithDeploymentContainer/container-1:new-tag",
                "OverrideWithDeploymentContainer/container2":
                    "new-registry.io/test/path/OverrideWithDeploymentContainer/container-2:new-tag",
            }
        ),
        [
            {
                "name": "container1",
                "image": "new-registry.io/test/path/OverrideWithDeploymentContainer/container-1:new-tag",
            },
            {
                "name": "container2",
                "image": "new-registry.io/test/path/OverrideWithDeploymentContainer/container-2:new-tag",
            },
        ],
    ),
    (
        "OverridePartialWithDeploymentContainer",
        [
            {"name": "container1", "image": "gcr.io/cmd/queue:test"},
            {"name": "container2", "image": "gcr.io/cmd/queue:test"},
        ],
        Registry(
            override={
                "container1": "new-registry.io/test/path/new-container-1:new-tag",
                "container2": "new-registry.io/test/path/new-container-2:new-tag",
                "OverridePartialWithDeploymentContainer/container1":
                    "new-registry.io/test/path/OverridePartialWithDeploymentContainer/container-1:new-tag",
            }
        ),
        [
            {
                "name": "container1",
                "image": "new-registry.io/test/path/OverridePartialWithDeploymentContainer/container-1:new-tag",
            },
            {"name": "container2", "image": "new-registry.io/test/path/new-container-2:new-tag"},
        ],
    ),
    (
        "OverrideWithDeploymentName",
        [
            {"name": "container1", "image": "gcr.io/cmd/queue:test"},
            {"name": "container2", "image": "gcr.io/cmd/queue:test"},
        ],
        Registry(
            override={
                "OverrideWithDeploymentName/container1":
                    "new-registry.io/test/path/OverrideWithDeploymentName/container-1:new-tag",
                "OverrideWithDeploymentName/container2":
                    "new-registry.io/test/path/OverrideWithDeploymentName/container-2:new-tag",
            }
        ),
        [
            {
                "name": "container1",
                "image": "new-registry.io/test/path/OverrideWithDeploymentName/container-1:new-tag",
            },
            {
                "name": "container2",
                "image": "new-registry.io/test/path/OverrideWithDeploymentName/container-2:new-tag",
            },
        ],
    ),
]


@pytest.mark.parametrize("kind", ["Deployment", "DaemonSet", "Job"])
@pytest.mark.parametrize(
    "name,containers,registry,expected", RESOURCE_CASES, ids=[c[0] for c in RESOURCE_CASES]
)
def test_resource_transform(kind, name, containers, registry, expected):
    resource = make_workload(kind, name, containers)
    image_transform(registry)(resource)
    assert resource["spec"]["template"]["spec"]["containers"] == expected


IMAGE_CASES = [
    (
        "OverrideImage",
        QUEUE_SHA,
        Registry(override={"OverrideImage": "new-registry.io/test/path/OverrideImage:new-tag"}),
        {"image": "new-registry.io/test/path/OverrideImage:new-tag"},
    ),
    (
        "UsesDefaultImageNameWithSha",
        QUEUE_SHA,
        Registry(default="new-registry.io/test/path/${NAME}:new-tag"),
        {"image": "new-registry.io/test/path/queue:new-tag"},
    ),
    (
        "UsesDefaultContainerName",
        "badLink",
        Registry(default="new-registry.io/test/path/${NAME}:new-tag"),
        {"image": "new-registry.io/test/path/UsesDefaultContainerName:new-tag"},
    ),
    (
        "UsesDefaultImageNameWithTag",
        "gcr.io/knative-releases/github.com/knative/serving/cmd/queue:v1.2.0",
        Registry(default="new-registry.io/test/path/${NAME}:new-tag"),
        {"image": "new-registry.io/test/path/queue:new-tag"},
    ),
    (
        "AddsImagePullSecrets",
        QUEUE_SHA,
        Registry(image_pull_secrets=[{"name": "new-secret"}]),
        {"image": QUEUE_SHA, "imagePullSecrets": [{"name": "new-secret"}]},
    ),
]


@pytest.mark.parametrize(
    "name,image,registry,expected", IMAGE_CASES, ids=[c[0] for c in IMAGE_CASES]
)
def test_caching_image_transform(name, image, registry, expected):
    resource = make_image(name, image)
    image_transform(registry)(resource)
    assert resource["spec"] == expected


def test_caching_image_status_is_dropped():
    resource = make_image("queue", QUEUE_SHA)
    resource["status"] = {"conditions": []}
    image_transform(Registry())(resource)
    assert "status" not in resource


def test_image_of_other_api_version_is_untouched():
    resource = make_image("queue", QUEUE_SHA)
    resource["apiVersion"] = "example.dev/v1"
    before = copy.deepcopy(resource)
    image_transform(Registry(default="new-registry.io/${NAME}:tag"))(resource)
    assert resource == before


def test_other_kinds_are_untouched():
    resource = {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": "config"},
        "data": {"image": "gcr.io/foo/bar"},
    }
    before = copy.deepcopy(resource)
    image_transform(Registry(default="new-registry.io/${NAME}:tag"))(resource)
    assert resource == before


PULL_SECRET_CASES = [
    ("LeavesSecretsEmptyByDefault", None, Registry(), None),
    (
        "AddsImagePullSecrets",
        None,
        Registry(image_pull_secrets=[{"name": "new-secret"}]),
        [{"name": "new-secret"}],
    ),
    (
        "SupportsMultipleImagePullSecrets",
        None,
        Registry(image_pull_secrets=[{"name": "new-secret-1"}, {"name": "new-secret-2"}]),
        [{"name": "new-secret-1"}, {"name": "new-secret-2"}],
    ),
    (
        "MergesAdditionalSecretsWithAnyPreexisting",
        [{"name": "existing-secret"}],
        Registry(image_pull_secrets=[{"name": "new-secret"}]),
        [{"name": "existing-secret"}, {"name": "new-secret"}],
    ),
]


@pytest.mark.parametrize("kind", ["Deployment", "DaemonSet"])
@pytest.mark.parametrize(
    "name,existing,registry,expected", PULL_SECRET_CASES, ids=[c[0] for c in PULL_SECRET_CASES]
)
def test_image_pull_secrets(kind, name, existing, registry, expected):
    resource = make_workload(kind, name, pull_secrets=existing)
    image_transform(registry)(resource)
    assert resource["spec"]["template"]["spec"].get("imagePullSecrets") == expected


def test_non_mapping_pod_spec_raises():
    resource = {"apiVersion": "apps/v1", "kind": "Deployment", "metadata": {"name": "d"}, "spec": "broken"}
    with pytest.raises(TypeError):
        image_transform(Registry(image_pull_secrets=[{"name": "s"}]))(resource)


@pytest.mark.parametrize(
    "url,expected",
    [
        (QUEUE_SHA, "queue"),
        ("gcr.io/cmd/queue:test", "queue"),
        ("docker.io/name/image", "image"),
        ("badLink", ""),
        ("", ""),
    ],
)
def test_get_image_name(url, expected):
    assert get_image_name(url) == expected