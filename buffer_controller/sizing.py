"""Buffer size calculation from the live node inventory."""

import logging
import math
from typing import Iterable

from .config import (
    BUFFER_SIZE_NODE_SIZE_RATIO,
    LABEL_NODE_ROLE_INFRA,
    LABEL_NODE_ROLE_WORKER,
)
from .errors import SizingUnavailableError
from .utils import bytes_to_gi, parse_memory

logger = logging.getLogger(__name__)


def is_worker(node) -> bool:
    """
    Check if a node runs general workloads.

    The infra role wins over the worker role: a node carrying both labels is
    not a worker.
    """
    labels = node.metadata.labels or {}
    if LABEL_NODE_ROLE_INFRA in labels:
        return False
    return LABEL_NODE_ROLE_WORKER in labels


def node_sizing_inputs(node) -> tuple:
    """The parts of a node that the buffer size depends on."""
    labels = node.metadata.labels or {}
    allocatable = (node.status.allocatable if node.status else None) or {}
    return (
        LABEL_NODE_ROLE_WORKER in labels,
        LABEL_NODE_ROLE_INFRA in labels,
        allocatable.get("memory"),
    )


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    return int(math.floor(value + 0.5))


def buffer_size_gi(nodes: Iterable, ratio: float = BUFFER_SIZE_NODE_SIZE_RATIO) -> int:
    """
    Derive the buffer memory size from a node inventory.

    The first worker node in inventory order is the representative node; the
    buffer is ``ratio`` of its allocatable memory, in whole Gi.

    Args:
        nodes: V1Node objects in inventory order
        ratio: Fraction of the node's allocatable memory to reserve

    Returns:
        Buffer size in Gi

    Raises:
        SizingUnavailableError: No worker node, or the worker node has no
            allocatable memory
    """
    for node in nodes:
        if not is_worker(node):
            continue

        node_name = node.metadata.name
        allocatable = node.status.allocatable if node.status else None
        memory = (allocatable or {}).get("memory")
        if not memory:
            raise SizingUnavailableError(
                f"worker node {node_name} does not report allocatable memory"
            )

        try:
            allocatable_gi = bytes_to_gi(parse_memory(memory))
        except ValueError:
            raise SizingUnavailableError(
                f"worker node {node_name} reports unparsable allocatable memory {memory!r}"
            )
        size_gi = round_half_up(ratio * allocatable_gi)
        logger.debug(
            f"Node {node_name} allocatable memory {memory} ({allocatable_gi:.2f}Gi), "
            f"buffer size {size_gi}Gi"
        )
        return size_gi

    raise SizingUnavailableError()


def compute_buffer_size(cluster_client, ctx) -> int:
    """
    List the nodes fresh from the cluster and compute the buffer size.

    Args:
        cluster_client: ClusterClient
        ctx: RequestContext for the list call

    Returns:
        Buffer size in Gi
    """
    nodes = cluster_client.list_nodes(ctx)
    size_gi = buffer_size_gi(nodes)
    logger.info(f"Computed buffer size: {size_gi}Gi")
    return size_gi
