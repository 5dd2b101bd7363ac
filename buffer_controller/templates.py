"""
Desired state of the objects owned by the Autoscaling Buffer Controller.

The desired state is a pure function of the policy constants in ``config``
plus the namespace and the computed buffer size. It is held in frozen
dataclasses so that concurrent reconciliations never share mutable template
data; ``to_object()`` renders a fresh kubernetes model each time.

The ``patch_*`` functions take an object observed in the cluster, bring the
governed fields in line with the desired spec in place and report whether
anything changed. Fields not governed here are left untouched so that other
writers' changes survive an update.
"""

from dataclasses import dataclass
from typing import Optional

from kubernetes import client

from .config import (
    APP_LABEL,
    BUFFER_APP_NAME,
    BUFFER_IMAGE,
    BUFFER_PRIORITY_VALUE,
    BUFFER_REPLICAS,
    PRIORITY_CLASS_DESCRIPTION,
    PRIORITY_CLASS_NAME,
    PROVIDER_LABEL_KEY,
    PROVIDER_LABEL_VALUE,
    TERMINATION_GRACE_PERIOD_SECONDS,
)
from .utils import format_memory_gi, memory_matches, patch_labels, selector_matches


@dataclass(frozen=True)
class PriorityClassSpec:
    """Desired state of the buffer priority class."""
    name: str = PRIORITY_CLASS_NAME
    value: int = BUFFER_PRIORITY_VALUE
    global_default: bool = False
    description: str = PRIORITY_CLASS_DESCRIPTION
    provider_label_key: str = PROVIDER_LABEL_KEY
    provider_label_value: str = PROVIDER_LABEL_VALUE

    def to_object(self) -> client.V1PriorityClass:
        return client.V1PriorityClass(
            api_version="scheduling.k8s.io/v1",
            kind="PriorityClass",
            metadata=client.V1ObjectMeta(
                name=self.name,
                labels={self.provider_label_key: self.provider_label_value},
            ),
            value=self.value,
            global_default=self.global_default,
            description=self.description,
        )


@dataclass(frozen=True)
class BufferDeploymentSpec:
    """Desired state of the buffer deployment."""
    namespace: str
    memory: str
    name: str = BUFFER_APP_NAME
    app_label: str = BUFFER_APP_NAME
    replicas: int = BUFFER_REPLICAS
    priority_class_name: str = PRIORITY_CLASS_NAME
    image: str = BUFFER_IMAGE
    termination_grace_period_seconds: int = TERMINATION_GRACE_PERIOD_SECONDS
    provider_label_key: str = PROVIDER_LABEL_KEY
    provider_label_value: str = PROVIDER_LABEL_VALUE

    @property
    def container_name(self) -> str:
        return self.name

    def resources(self) -> client.V1ResourceRequirements:
        return client.V1ResourceRequirements(
            requests={"memory": self.memory},
            limits={"memory": self.memory},
        )

    def container(self) -> client.V1Container:
        return client.V1Container(
            name=self.container_name,
            image=self.image,
            resources=self.resources(),
        )

    def to_object(self) -> client.V1Deployment:
        return client.V1Deployment(
            api_version="apps/v1",
            kind="Deployment",
            metadata=client.V1ObjectMeta(
                name=self.name,
                namespace=self.namespace,
                labels={
                    APP_LABEL: self.app_label,
                    self.provider_label_key: self.provider_label_value,
                },
            ),
            spec=client.V1DeploymentSpec(
                replicas=self.replicas,
                selector=client.V1LabelSelector(match_labels={APP_LABEL: self.app_label}),
                template=client.V1PodTemplateSpec(
                    metadata=client.V1ObjectMeta(labels={APP_LABEL: self.app_label}),
                    spec=client.V1PodSpec(
                        priority_class_name=self.priority_class_name,
                        termination_grace_period_seconds=self.termination_grace_period_seconds,
                        containers=[self.container()],
                    ),
                ),
            ),
        )


def desired_priority_class() -> PriorityClassSpec:
    """Build the desired priority class spec."""
    return PriorityClassSpec()


def desired_buffer_deployment(namespace: str, buffer_size_gi: int) -> BufferDeploymentSpec:
    """
    Build the desired buffer deployment spec.

    Args:
        namespace: Namespace the deployment lives in
        buffer_size_gi: Memory request and limit of the buffer pod, in Gi
    """
    return BufferDeploymentSpec(namespace=namespace, memory=format_memory_gi(buffer_size_gi))


def patch_priority_class(pc: client.V1PriorityClass, spec: PriorityClassSpec) -> bool:
    """
    Bring an observed priority class in line with the desired spec.

    Returns:
        True if the object was changed and needs to be written
    """
    if pc.metadata is None:
        pc.metadata = client.V1ObjectMeta(name=spec.name)
    updated = patch_labels(pc.metadata, spec.provider_label_key, spec.provider_label_value)
    if pc.value != spec.value:
        pc.value = spec.value
        updated = True
    if bool(pc.global_default) != spec.global_default:
        pc.global_default = spec.global_default
        updated = True
    if pc.description != spec.description:
        pc.description = spec.description
        updated = True
    return updated


def _find_container(pod_spec: client.V1PodSpec, name: str) -> Optional[client.V1Container]:
    for container in pod_spec.containers or []:
        if container.name == name:
            return container
    return None


def _patch_container(pod_spec: client.V1PodSpec, spec: BufferDeploymentSpec) -> bool:
    container = _find_container(pod_spec, spec.container_name)
    if container is None:
        pod_spec.containers = [spec.container()]
        return True

    updated = False
    if container.image != spec.image:
        container.image = spec.image
        updated = True
    if container.resources is None:
        container.resources = client.V1ResourceRequirements()
    resources = container.resources
    for attr in ("requests", "limits"):
        current = getattr(resources, attr) or {}
        if memory_matches(current.get("memory"), spec.memory):
            continue
        # Assign a complete map; models may copy on assignment.
        quantities = dict(current)
        quantities["memory"] = spec.memory
        setattr(resources, attr, quantities)
        updated = True
    return updated


def patch_buffer_deployment(dt: client.V1Deployment, spec: BufferDeploymentSpec) -> bool:
    """
    Bring an observed deployment in line with the desired spec.

    The selector is only rewritten when it does not select exactly the buffer
    app label; a consistent selector is never touched.

    Returns:
        True if the object was changed and needs to be written
    """
    if dt.metadata is None:
        dt.metadata = client.V1ObjectMeta(name=spec.name, namespace=spec.namespace)
    updated = patch_labels(dt.metadata, spec.provider_label_key, spec.provider_label_value)
    updated = patch_labels(dt.metadata, APP_LABEL, spec.app_label) or updated

    if dt.spec is None:
        desired = spec.to_object()
        dt.spec = desired.spec
        return True

    if dt.spec.replicas != spec.replicas:
        dt.spec.replicas = spec.replicas
        updated = True

    selector = dt.spec.selector
    if selector is None or not selector_matches(selector.match_labels, APP_LABEL, spec.app_label):
        dt.spec.selector = client.V1LabelSelector(match_labels={APP_LABEL: spec.app_label})
        updated = True

    template = dt.spec.template
    if template is None:
        dt.spec.template = spec.to_object().spec.template
        return True
    if template.metadata is None:
        template.metadata = client.V1ObjectMeta()
    updated = patch_labels(template.metadata, APP_LABEL, spec.app_label) or updated

    pod_spec = template.spec
    if pod_spec is None:
        template.spec = spec.to_object().spec.template.spec
        return True
    if pod_spec.priority_class_name != spec.priority_class_name:
        pod_spec.priority_class_name = spec.priority_class_name
        updated = True
    if pod_spec.termination_grace_period_seconds != spec.termination_grace_period_seconds:
        pod_spec.termination_grace_period_seconds = spec.termination_grace_period_seconds
        updated = True
    updated = _patch_container(pod_spec, spec) or updated
    return updated
