"""Reconciliation logic for the Autoscaling Buffer Controller."""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from kubernetes.client.rest import ApiException

from .cluster_client import ClusterClient
from .context import RequestContext, background
from .errors import is_already_exists
from .retry import update_with_conflict_retry
from .sizing import compute_buffer_size
from .templates import (
    desired_buffer_deployment,
    desired_priority_class,
    patch_buffer_deployment,
    patch_priority_class,
)

logger = logging.getLogger(__name__)


def _result(kind: str, name: str, namespace: str, status: str) -> Dict[str, Any]:
    return {
        "kind": kind,
        "name": name,
        "namespace": namespace,
        "status": status,
        "lastUpdated": datetime.now(timezone.utc).isoformat(),
    }


def _create_or_load(create: Callable[[], object], fetch: Callable[[], Any], description: str) -> Any:
    """
    Create an object, or load it if another writer created it first.

    Returns:
        None if this call created the object, otherwise the object as now
        stored in the cluster
    """
    try:
        create()
    except ApiException as e:
        if not is_already_exists(e):
            raise
        logger.info(f"{description} was created concurrently, re-loading")
        obj = fetch()
        if obj is None:
            raise
        return obj
    logger.info(f"Created {description}")
    return None


class BufferReconciler:
    """Reconciles the buffer priority class and deployment to their desired state."""

    def __init__(self, cluster_client: Optional[ClusterClient] = None, dry_run: bool = False):
        """
        Initialize the reconciler.

        Args:
            cluster_client: ClusterClient (default: one built from the loaded kube config)
            dry_run: If True, don't make actual changes
        """
        self.cluster = cluster_client or ClusterClient()
        self.dry_run = dry_run

    def ensure_priority_class(self, ctx: RequestContext) -> Dict[str, Any]:
        """
        Make sure the buffer priority class exists and matches its desired state.

        Args:
            ctx: RequestContext for every cluster call

        Returns:
            Result dict with status info
        """
        spec = desired_priority_class()
        name = spec.name

        pc = self.cluster.get_priority_class(name, ctx)
        if pc is None:
            if self.dry_run:
                logger.info(f"[DRY-RUN] Would create PriorityClass {name}")
                return _result("PriorityClass", name, "", "dry-run")
            pc = _create_or_load(
                lambda: self.cluster.create_priority_class(spec.to_object(), ctx),
                fetch=lambda: self.cluster.get_priority_class(name, ctx),
                description=f"PriorityClass {name}",
            )
            if pc is None:
                return _result("PriorityClass", name, "", "created")

        if self.dry_run:
            if patch_priority_class(pc, spec):
                logger.info(f"[DRY-RUN] Would update PriorityClass {name}")
                return _result("PriorityClass", name, "", "dry-run")
            return _result("PriorityClass", name, "", "unchanged")

        status = update_with_conflict_retry(
            pc,
            fetch=lambda: self.cluster.get_priority_class(name, ctx),
            patch=lambda obj: patch_priority_class(obj, spec),
            update=lambda obj: self.cluster.update_priority_class(obj, ctx),
            description=f"PriorityClass {name}",
        )
        return _result("PriorityClass", name, "", status)

    def ensure_buffer_deployment(self, namespace: str, ctx: RequestContext) -> Dict[str, Any]:
        """
        Make sure the buffer deployment exists and matches its desired state.

        The buffer size is computed from the node inventory on every call,
        before the deployment is read; if it cannot be computed nothing is
        written.

        Args:
            namespace: Namespace of the buffer deployment
            ctx: RequestContext for every cluster call

        Returns:
            Result dict with status info

        Raises:
            SizingUnavailableError: No usable worker node
        """
        size_gi = compute_buffer_size(self.cluster, ctx)
        spec = desired_buffer_deployment(namespace, size_gi)
        name = spec.name
        key = f"{namespace}/{name}"

        dt = self.cluster.get_deployment(name, namespace, ctx)
        if dt is None:
            if self.dry_run:
                logger.info(f"[DRY-RUN] Would create Deployment {key} with memory {spec.memory}")
                return _result("Deployment", name, namespace, "dry-run")
            dt = _create_or_load(
                lambda: self.cluster.create_deployment(spec.to_object(), ctx),
                fetch=lambda: self.cluster.get_deployment(name, namespace, ctx),
                description=f"Deployment {key} with memory {spec.memory}",
            )
            if dt is None:
                return _result("Deployment", name, namespace, "created")

        if self.dry_run:
            if patch_buffer_deployment(dt, spec):
                logger.info(f"[DRY-RUN] Would update Deployment {key} with memory {spec.memory}")
                return _result("Deployment", name, namespace, "dry-run")
            return _result("Deployment", name, namespace, "unchanged")

        status = update_with_conflict_retry(
            dt,
            fetch=lambda: self.cluster.get_deployment(name, namespace, ctx),
            patch=lambda obj: patch_buffer_deployment(obj, spec),
            update=lambda obj: self.cluster.update_deployment(obj, ctx),
            description=f"Deployment {key}",
        )
        return _result("Deployment", name, namespace, status)

    def ensure_buffer(self, namespace: str, ctx: Optional[RequestContext] = None) -> List[Dict[str, Any]]:
        """
        Reconcile the priority class, then the buffer deployment.

        An error from the priority class step propagates before the
        deployment is touched.

        Args:
            namespace: Namespace of the buffer deployment
            ctx: RequestContext (default: no timeout, never cancelled)

        Returns:
            Result dicts for the priority class and the deployment
        """
        ctx = ctx or background()
        results = [self.ensure_priority_class(ctx)]
        results.append(self.ensure_buffer_deployment(namespace, ctx))
        return results


def ensure_buffer(
    cluster_client: ClusterClient,
    namespace: str,
    ctx: Optional[RequestContext] = None,
) -> List[Dict[str, Any]]:
    """
    Ensure the autoscaling buffer exists in ``namespace``.

    Raises on failure; callers treat any exception as a failed cycle and
    retry on their next one.
    """
    return BufferReconciler(cluster_client).ensure_buffer(namespace, ctx)
