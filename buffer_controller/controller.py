"""Main controller logic for the Autoscaling Buffer Controller."""

import logging
import threading
from typing import Dict, Optional, Tuple

from kubernetes import watch
from kubernetes.client.rest import ApiException

from .cluster_client import ClusterClient
from .config import (
    ERROR_BACKOFF_SECONDS,
    RECONCILE_INTERVAL_SECONDS,
    REQUEST_TIMEOUT_SECONDS,
    WATCH_TIMEOUT_SECONDS,
)
from .context import RequestContext
from .errors import BufferControllerError, ReconcileCancelled
from .reconciler import BufferReconciler
from .sizing import node_sizing_inputs

logger = logging.getLogger(__name__)


class BufferController:
    """
    Keeps the autoscaling buffer reconciled.

    The buffer is reconciled on a fixed interval, and early whenever a node
    is added, removed, or changes role or allocatable memory, since the
    buffer size follows the node inventory.
    A failed pass is logged and the next pass starts from scratch.
    """

    def __init__(
        self,
        namespace: str,
        dry_run: bool = False,
        interval: float = RECONCILE_INTERVAL_SECONDS,
        request_timeout: Optional[float] = REQUEST_TIMEOUT_SECONDS,
        cluster_client: Optional[ClusterClient] = None,
    ):
        """
        Initialize the controller.

        Args:
            namespace: Namespace of the buffer deployment
            dry_run: If True, don't make actual changes
            interval: Seconds between periodic reconciliations
            request_timeout: Timeout for each API request in seconds
            cluster_client: ClusterClient (default: a new one)
        """
        self.namespace = namespace
        self.dry_run = dry_run
        self.interval = interval
        self.request_timeout = request_timeout
        self.cluster = cluster_client or ClusterClient()
        self.reconciler = BufferReconciler(self.cluster, dry_run=dry_run)

        self._stop_event = threading.Event()
        self._trigger = threading.Event()

    def _context(self) -> RequestContext:
        return RequestContext(timeout=self.request_timeout, stop_event=self._stop_event)

    def run_once(self) -> bool:
        """
        Run a single reconciliation pass.

        Returns:
            True if the pass succeeded, False otherwise
        """
        try:
            results = self.reconciler.ensure_buffer(self.namespace, self._context())
        except ReconcileCancelled:
            logger.info("Reconciliation cancelled")
            return False
        except BufferControllerError as e:
            logger.error(f"Reconciliation failed: {e}")
            return False
        except ApiException as e:
            logger.error(f"API error during reconciliation: {e.status} {e.reason}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error during reconciliation: {e}")
            return False

        for result in results:
            logger.debug(f"{result['kind']} {result['name']}: {result['status']}")
        return True

    def trigger(self) -> None:
        """Request a reconciliation ahead of the next interval."""
        self._trigger.set()

    def _list_nodes_for_watch(self) -> Tuple[Dict[str, tuple], Optional[str]]:
        """List nodes, returning their sizing inputs and the list's resourceVersion."""
        nodes = self.cluster.core_api.list_node(**self._context().request_kwargs())
        known = {node.metadata.name: node_sizing_inputs(node) for node in nodes.items or []}
        resource_version = nodes.metadata.resource_version if nodes.metadata else None
        return known, resource_version

    def handle_node_event(self, event_type: str, node, known: Dict[str, tuple]) -> bool:
        """
        Apply a node watch event to the known inventory.

        Args:
            event_type: ADDED, MODIFIED, DELETED (others are ignored)
            node: The node object from the event
            known: Node name -> sizing inputs, updated in place

        Returns:
            True if the event can change the buffer size
        """
        if event_type not in ("ADDED", "MODIFIED", "DELETED"):
            return False

        name = node.metadata.name
        if event_type == "DELETED":
            return known.pop(name, None) is not None

        inputs = node_sizing_inputs(node)
        previous = known.get(name)
        known[name] = inputs
        return previous != inputs

    def watch_nodes(self) -> None:
        """
        Watch for node events and trigger reconciliation when the inventory changes.

        Every (re)start lists the nodes first and watches from that list's
        resourceVersion, so existing nodes are not replayed as ADDED. Changes
        missed between two watches show up as a difference in the listing.
        """
        logger.info("Starting node watcher...")
        w = watch.Watch()
        known: Optional[Dict[str, tuple]] = None

        while not self._stop_event.is_set():
            try:
                listed, resource_version = self._list_nodes_for_watch()
                if known is not None and listed != known:
                    logger.debug("Node inventory changed between watches")
                    self.trigger()
                known = listed

                stream = w.stream(
                    self.cluster.core_api.list_node,
                    resource_version=resource_version,
                    timeout_seconds=WATCH_TIMEOUT_SECONDS
                )
                for event in stream:
                    if self._stop_event.is_set():
                        break

                    event_type = event["type"]
                    node = event["object"]
                    if self.handle_node_event(event_type, node, known):
                        logger.debug(f"Node {event_type}: {node.metadata.name}")
                        self.trigger()

            except ApiException as e:
                logger.error(f"Node watch error: {e}")
                self._stop_event.wait(ERROR_BACKOFF_SECONDS)
            except Exception as e:
                logger.error(f"Unexpected error in node watcher: {e}")
                self._stop_event.wait(ERROR_BACKOFF_SECONDS)

        w.stop()

    def reconcile_loop(self) -> None:
        """Reconcile now, then on every interval or trigger until stopped."""
        logger.info(f"Starting reconcile loop (interval: {self.interval}s)")

        while not self._stop_event.is_set():
            self._trigger.clear()
            self.run_once()
            self._trigger.wait(self.interval)

    def run(self) -> None:
        """Run the controller until stopped."""
        logger.info("=" * 60)
        logger.info("Starting Autoscaling Buffer Controller")
        logger.info("=" * 60)
        logger.info(f"Namespace: {self.namespace}")
        logger.info(f"Dry run: {self.dry_run}")

        node_thread = threading.Thread(
            target=self.watch_nodes,
            name="node-watcher",
            daemon=True
        )
        node_thread.start()

        logger.info("Controller is running. Press Ctrl+C to stop.")

        try:
            self.reconcile_loop()
        except KeyboardInterrupt:
            logger.info("Shutdown requested...")
            self.stop()

    def stop(self) -> None:
        """Stop the controller."""
        logger.info("Stopping controller...")
        self._stop_event.set()
        self._trigger.set()
