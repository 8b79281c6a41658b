"""
Retry configuration for reaching the graph store.

Centralized retry logic using tenacity for exponential backoff. Applied only
where the CLI opens a store (connectivity verification); the chain linker
itself never retries, so a WriteConflict or StorageUnavailable raised
while recording a migration reaches the caller unmodified.

Example:
    >>> from graph_migrator.storage.retry_config import create_retry_decorator
    >>> @create_retry_decorator()
    ... def connect():
    ...     store.verify_connectivity()
"""

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from graph_migrator.exceptions import StorageUnavailable

# ============================================================================
# RETRY CONSTANTS
# ============================================================================

# Total attempts = 1 initial + 4 retries
MAX_ATTEMPTS = 5

# Minimum wait time between retries (seconds)
MIN_WAIT_SECONDS = 1

# Cap on the exponential backoff (seconds)
# A database container that is still starting usually answers within ~30s
MAX_WAIT_SECONDS = 10


def create_retry_decorator(
    max_attempts: int = MAX_ATTEMPTS,
    min_wait: float = MIN_WAIT_SECONDS,
    max_wait: float = MAX_WAIT_SECONDS,
):
    """
    Create a tenacity retry decorator for store connectivity.

    Returns a configured retry decorator with:
    - Exponential backoff (min_wait to max_wait seconds)
    - max_attempts attempts in total
    - Retry on StorageUnavailable only; every other error fails fast

    Args:
        max_attempts: Total number of attempts
        min_wait: Minimum wait between attempts in seconds
        max_wait: Maximum wait between attempts in seconds

    Returns:
        Retry decorator that reraises the last StorageUnavailable
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(StorageUnavailable),
        reraise=True,
    )
