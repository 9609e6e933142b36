"""Bounded retry for compare-and-set conflicts."""

import logging
from typing import Callable, TypeVar

from app.core.config import get_settings
from app.core.exceptions import ConcurrentModification

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_on_conflict(fn: Callable[[], T], attempts: int = None) -> T:
    """
    Call `fn` until it stops raising ConcurrentModification, at most
    `attempts` times (settings.conflict_retry_attempts by default).

    `fn` must re-read state on every call; the services already do since
    each call opens its own transaction. Any other error propagates
    immediately. The last conflict is re-raised when attempts run out.
    """
    if attempts is None:
        attempts = get_settings().conflict_retry_attempts
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except ConcurrentModification as e:
            if attempt == attempts:
                raise
            logger.warning(
                "Conflict on candidate %s (attempt %d/%d), retrying",
                e.candidate_id, attempt, attempts,
            )
