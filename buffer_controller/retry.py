"""Bounded read-modify-write with re-fetch on optimistic-concurrency conflicts."""

import logging
from typing import Callable, Optional, TypeVar

from kubernetes.client.rest import ApiException

from .config import MAX_CONFLICT_RETRIES
from .errors import is_conflict

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNCHANGED = "unchanged"
UPDATED = "updated"
ABANDONED = "abandoned"
GONE = "gone"


def update_with_conflict_retry(
    obj: T,
    fetch: Callable[[], Optional[T]],
    patch: Callable[[T], bool],
    update: Callable[[T], object],
    description: str = "object",
    max_retries: int = MAX_CONFLICT_RETRIES,
) -> str:
    """
    Patch an observed object and write it back, retrying on conflicts.

    On a 409 the object is fetched again and the patch recomputed against the
    fresh data; the stale copy is never written twice. Once ``max_retries``
    conflicts have been seen the update is given up without raising, since
    the next reconciliation pass will converge it. Any other error propagates.

    Args:
        obj: Object as observed in the cluster
        fetch: Re-reads the same object, returning None if it no longer exists
        patch: Mutates an object into the desired state, True if it changed
        update: Writes an object back to the cluster
        description: Object identity used in log messages
        max_retries: Number of update attempts before giving up

    Returns:
        UNCHANGED, UPDATED, ABANDONED, or GONE
    """
    if not patch(obj):
        logger.debug(f"{description} already matches desired state, no action needed")
        return UNCHANGED

    for attempt in range(1, max_retries + 1):
        try:
            update(obj)
        except ApiException as e:
            if not is_conflict(e):
                raise
            logger.info(f"Conflict updating {description} (attempt {attempt}/{max_retries})")
            if attempt == max_retries:
                break
            obj = fetch()
            if obj is None:
                logger.info(f"{description} disappeared while retrying, leaving it for the next pass")
                return GONE
            if not patch(obj):
                logger.debug(f"{description} converged after re-loading, no action needed")
                return UNCHANGED
            continue

        logger.info(f"Updated {description}")
        return UPDATED

    logger.warning(f"Giving up updating {description} after {max_retries} conflicts")
    return ABANDONED
