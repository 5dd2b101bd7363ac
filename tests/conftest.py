"""Shared fixtures: an in-memory stand-in for the kubernetes API groups."""

import copy
from typing import Callable, Dict, List, Optional, Tuple

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

from buffer_controller.cluster_client import ClusterClient
from buffer_controller.config import LABEL_NODE_ROLE_INFRA, LABEL_NODE_ROLE_WORKER


def make_node(name, memory="100Gi", worker=True, infra=False, labels=None):
    """Return a V1Node with the given role labels and allocatable memory."""
    node_labels = dict(labels or {})
    if worker:
        node_labels[LABEL_NODE_ROLE_WORKER] = ""
    if infra:
        node_labels[LABEL_NODE_ROLE_INFRA] = ""
    allocatable = {"cpu": "4"}
    if memory is not None:
        allocatable["memory"] = memory
    return client.V1Node(
        metadata=client.V1ObjectMeta(name=name, labels=node_labels),
        status=client.V1NodeStatus(allocatable=allocatable),
    )


class FakeApi:
    """
    Implements the subset of CoreV1Api, SchedulingV1Api and AppsV1Api used by
    ClusterClient.

    Objects are deep-copied in and out, ``resourceVersion`` is bumped on every
    write, and a replace carrying a stale version fails with a 409.
    """

    def __init__(self, nodes=None):
        self.nodes: List[client.V1Node] = list(nodes or [])
        self.priority_classes: Dict[str, client.V1PriorityClass] = {}
        self.deployments: Dict[Tuple[str, str], client.V1Deployment] = {}
        self.writes: List[Tuple[str, str]] = []
        self.calls: List[Tuple[str, dict]] = []
        self._version = 0
        # Called before a replace is applied; may mutate the store and/or
        # return an ApiException to raise instead of applying the write.
        self.before_replace: Optional[Callable[[str, object], Optional[ApiException]]] = None
        self.errors: Dict[str, ApiException] = {}

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def _record(self, method, kwargs):
        self.calls.append((method, kwargs))
        if method in self.errors:
            raise self.errors[method]

    def _stored(self, obj):
        stored = copy.deepcopy(obj)
        stored.metadata.resource_version = self._next_version()
        return stored

    # CoreV1Api

    def list_node(self, **kwargs):
        self._record("list_node", kwargs)
        return client.V1NodeList(
            metadata=client.V1ListMeta(resource_version=str(self._version)),
            items=copy.deepcopy(self.nodes),
        )

    # SchedulingV1Api

    def read_priority_class(self, name, **kwargs):
        self._record("read_priority_class", kwargs)
        if name not in self.priority_classes:
            raise ApiException(status=404, reason="Not Found")
        return copy.deepcopy(self.priority_classes[name])

    def create_priority_class(self, body, **kwargs):
        self._record("create_priority_class", kwargs)
        name = body.metadata.name
        if name in self.priority_classes:
            raise ApiException(status=409, reason="AlreadyExists")
        self.priority_classes[name] = self._stored(body)
        self.writes.append(("create", "PriorityClass"))
        return copy.deepcopy(self.priority_classes[name])

    def replace_priority_class(self, name, body, **kwargs):
        self._record("replace_priority_class", kwargs)
        self.writes.append(("replace", "PriorityClass"))
        if self.before_replace is not None:
            error = self.before_replace("PriorityClass", body)
            if error is not None:
                raise error
        current = self.priority_classes.get(name)
        if current is None:
            raise ApiException(status=404, reason="Not Found")
        if body.metadata.resource_version != current.metadata.resource_version:
            raise ApiException(status=409, reason="Conflict")
        self.priority_classes[name] = self._stored(body)
        return copy.deepcopy(self.priority_classes[name])

    # AppsV1Api

    def read_namespaced_deployment(self, name, namespace, **kwargs):
        self._record("read_namespaced_deployment", kwargs)
        key = (namespace, name)
        if key not in self.deployments:
            raise ApiException(status=404, reason="Not Found")
        return copy.deepcopy(self.deployments[key])

    def create_namespaced_deployment(self, namespace, body, **kwargs):
        self._record("create_namespaced_deployment", kwargs)
        key = (namespace, body.metadata.name)
        if key in self.deployments:
            raise ApiException(status=409, reason="AlreadyExists")
        self.deployments[key] = self._stored(body)
        self.writes.append(("create", "Deployment"))
        return copy.deepcopy(self.deployments[key])

    def replace_namespaced_deployment(self, name, namespace, body, **kwargs):
        self._record("replace_namespaced_deployment", kwargs)
        self.writes.append(("replace", "Deployment"))
        if self.before_replace is not None:
            error = self.before_replace("Deployment", body)
            if error is not None:
                raise error
        key = (namespace, name)
        current = self.deployments.get(key)
        if current is None:
            raise ApiException(status=404, reason="Not Found")
        if body.metadata.resource_version != current.metadata.resource_version:
            raise ApiException(status=409, reason="Conflict")
        self.deployments[key] = self._stored(body)
        return copy.deepcopy(self.deployments[key])

    # Test helpers

    def put_priority_class(self, pc):
        self.priority_classes[pc.metadata.name] = self._stored(pc)

    def put_deployment(self, dt):
        self.deployments[(dt.metadata.namespace, dt.metadata.name)] = self._stored(dt)

    def touch_priority_class(self, name, mutate=None):
        """Simulate another writer changing a priority class."""
        pc = self.priority_classes[name]
        if mutate is not None:
            mutate(pc)
        pc.metadata.resource_version = self._next_version()

    def touch_deployment(self, namespace, name, mutate=None):
        """Simulate another writer changing a deployment."""
        dt = self.deployments[(namespace, name)]
        if mutate is not None:
            mutate(dt)
        dt.metadata.resource_version = self._next_version()


@pytest.fixture
def fake_api():
    return FakeApi(nodes=[make_node("worker-1", memory="100Gi")])


@pytest.fixture
def cluster(fake_api):
    return ClusterClient(core_api=fake_api, scheduling_api=fake_api, apps_api=fake_api)
