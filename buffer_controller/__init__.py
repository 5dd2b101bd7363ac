"""Autoscaling Buffer Controller.

Keeps a low-priority placeholder deployment in the cluster so the cluster
autoscaler provisions a node ahead of real demand.
"""

from .cluster_client import ClusterClient
from .context import RequestContext
from .controller import BufferController
from .errors import SizingUnavailableError
from .reconciler import BufferReconciler, ensure_buffer

__version__ = "0.1.0"

__all__ = [
    "BufferController",
    "BufferReconciler",
    "ClusterClient",
    "RequestContext",
    "SizingUnavailableError",
    "ensure_buffer",
]
