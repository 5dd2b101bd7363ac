"""Exceptions raised by the Autoscaling Buffer Controller."""

import json
from typing import Optional

from kubernetes.client.rest import ApiException


class BufferControllerError(Exception):
    """Base class for controller errors."""


class SizingUnavailableError(BufferControllerError):
    """No worker node with allocatable memory could be found."""

    def __init__(self, message: str = "unable to obtain allocatable memory of a worker node"):
        super().__init__(message)


class ReconcileCancelled(BufferControllerError):
    """The reconciliation was cancelled before a cluster call."""


def status_reason(error: ApiException) -> Optional[str]:
    """
    Get the machine-readable reason of an API error.

    The API server puts it in the Status body (e.g. "Conflict",
    "AlreadyExists"); the HTTP reason phrase is used when the body has none.
    """
    body = getattr(error, "body", None)
    if body:
        try:
            reason = json.loads(body).get("reason")
        except (ValueError, TypeError, AttributeError):
            reason = None
        if reason:
            return reason
    return error.reason


def is_not_found(error: Exception) -> bool:
    """Check if an error is a 404 from the API server."""
    return isinstance(error, ApiException) and error.status == 404


def is_already_exists(error: Exception) -> bool:
    """Check if a create failed because the object already exists."""
    return (
        isinstance(error, ApiException)
        and error.status == 409
        and status_reason(error) == "AlreadyExists"
    )


def is_conflict(error: Exception) -> bool:
    """Check if an error is a 409 write conflict on a stale resourceVersion."""
    return (
        isinstance(error, ApiException)
        and error.status == 409
        and not is_already_exists(error)
    )
