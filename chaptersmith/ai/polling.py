"""Blocking wait for asynchronous provider jobs."""

import logging
import time
from typing import Any, Callable, Optional

from ..core.errors import TransientProviderError

logger = logging.getLogger(__name__)

PENDING_STATES = frozenset({"queued", "in_progress", "cancelling"})
TERMINAL_STATES = frozenset({"completed", "failed", "cancelled", "expired"})


def wait_for_completion(
    fetch: Callable[[], Any],
    interval: float = 1.0,
    max_polls: Optional[int] = None,
    status_of: Callable[[Any], str] = lambda job: job.status,
    sleep: Callable[[float], None] = time.sleep,
    provider: Optional[str] = None,
) -> Any:
    """Poll ``fetch`` every ``interval`` seconds until a terminal state.

    Returns the job object in its terminal state; interpreting failed,
    cancelled or expired jobs is left to the caller. Raises
    ``TransientProviderError`` when ``max_polls`` is exceeded or the job
    reports a state this client cannot act on (e.g. ``requires_action``).
    """
    polls = 0
    while True:
        job = fetch()
        polls += 1
        status = status_of(job)

        if status in TERMINAL_STATES:
            logger.debug(f"Job reached terminal state '{status}' after {polls} poll(s)")
            return job

        if status not in PENDING_STATES:
            raise TransientProviderError(f"Unhandled job status: {status}", provider=provider)

        if max_polls is not None and polls >= max_polls:
            raise TransientProviderError(
                f"Job still '{status}' after {polls} polls", provider=provider
            )

        logger.debug(f"Processing... (status={status}, poll {polls})")
        sleep(interval)
