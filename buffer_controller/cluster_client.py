"""Client for the cluster objects read and written by the buffer controller."""

import logging
from typing import List, Optional

from kubernetes import client
from kubernetes.client.rest import ApiException

from .context import RequestContext
from .errors import is_not_found

logger = logging.getLogger(__name__)


class ClusterClient:
    """
    Thin wrapper over the kubernetes API groups used by the controller.

    Getters return None when the object does not exist; every other API error
    propagates to the caller. Updates go through ``replace_*``, which carries
    the ``resourceVersion`` observed at read time, so a stale write fails with
    a 409 conflict instead of overwriting another writer's change.
    """

    def __init__(self, core_api=None, scheduling_api=None, apps_api=None):
        """
        Initialize the client.

        Args:
            core_api: CoreV1Api (default: a new one)
            scheduling_api: SchedulingV1Api (default: a new one)
            apps_api: AppsV1Api (default: a new one)
        """
        self.core_api = core_api or client.CoreV1Api()
        self.scheduling_api = scheduling_api or client.SchedulingV1Api()
        self.apps_api = apps_api or client.AppsV1Api()

    def get_priority_class(self, name: str, ctx: RequestContext) -> Optional[client.V1PriorityClass]:
        """
        Get a priority class by name.

        Returns:
            The priority class or None if not found
        """
        ctx.check()
        try:
            return self.scheduling_api.read_priority_class(name, **ctx.request_kwargs())
        except ApiException as e:
            if is_not_found(e):
                logger.debug(f"PriorityClass {name} not found")
                return None
            raise

    def create_priority_class(self, body: client.V1PriorityClass, ctx: RequestContext) -> client.V1PriorityClass:
        ctx.check()
        return self.scheduling_api.create_priority_class(body, **ctx.request_kwargs())

    def update_priority_class(self, body: client.V1PriorityClass, ctx: RequestContext) -> client.V1PriorityClass:
        ctx.check()
        return self.scheduling_api.replace_priority_class(
            body.metadata.name, body, **ctx.request_kwargs()
        )

    def get_deployment(self, name: str, namespace: str, ctx: RequestContext) -> Optional[client.V1Deployment]:
        """
        Get a deployment by name and namespace.

        Returns:
            The deployment or None if not found
        """
        ctx.check()
        try:
            return self.apps_api.read_namespaced_deployment(name, namespace, **ctx.request_kwargs())
        except ApiException as e:
            if is_not_found(e):
                logger.debug(f"Deployment {namespace}/{name} not found")
                return None
            raise

    def create_deployment(self, body: client.V1Deployment, ctx: RequestContext) -> client.V1Deployment:
        ctx.check()
        return self.apps_api.create_namespaced_deployment(
            body.metadata.namespace, body, **ctx.request_kwargs()
        )

    def update_deployment(self, body: client.V1Deployment, ctx: RequestContext) -> client.V1Deployment:
        ctx.check()
        return self.apps_api.replace_namespaced_deployment(
            body.metadata.name, body.metadata.namespace, body, **ctx.request_kwargs()
        )

    def list_nodes(self, ctx: RequestContext) -> List[client.V1Node]:
        """List all nodes in inventory order."""
        ctx.check()
        response = self.core_api.list_node(**ctx.request_kwargs())
        return list(response.items or [])
