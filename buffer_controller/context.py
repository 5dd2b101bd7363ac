"""Per-call execution context threaded through every cluster request."""

import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .errors import ReconcileCancelled


@dataclass
class RequestContext:
    """
    Timeout and cancellation for a single reconciliation pass.

    Attributes:
        timeout: Per-request timeout in seconds, forwarded to the kubernetes
            client as ``_request_timeout`` (None uses the client default)
        stop_event: When set, the next cluster call raises ReconcileCancelled
    """
    timeout: Optional[float] = None
    stop_event: Optional[threading.Event] = None

    @property
    def cancelled(self) -> bool:
        return self.stop_event is not None and self.stop_event.is_set()

    def check(self) -> None:
        """Raise ReconcileCancelled if the context was cancelled."""
        if self.cancelled:
            raise ReconcileCancelled("reconciliation cancelled")

    def request_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments to pass to a kubernetes API call."""
        if self.timeout is None:
            return {}
        return {"_request_timeout": self.timeout}


def background() -> RequestContext:
    """A context with no timeout that is never cancelled."""
    return RequestContext()
