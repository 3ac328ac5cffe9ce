"""Timeout-bounded calls for registry loads and content fetches.

A fetch that overruns its timeout is abandoned, not interrupted: the worker
thread finishes on its own and its result is discarded.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Optional, TypeVar

from skill_disclosure.utils.errors import LoadTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Shared by all sessions; abandoned fetches keep a worker until they return
_executor = ThreadPoolExecutor(max_workers=16, thread_name_prefix="skill_fetch_")


def call_with_timeout(func: Callable[[], T], timeout: Optional[float], operation: str) -> T:
    """Run func, giving up after timeout seconds.

    Args:
        func: Zero-arg callable performing the fetch
        timeout: Seconds to wait, or None to call func inline with no bound
        operation: Description used in the LoadTimeout message

    Returns:
        Whatever func returns

    Raises:
        LoadTimeout: If func did not finish within timeout
    """
    if timeout is None:
        return func()

    future = _executor.submit(func)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        future.cancel()
        logger.warning(f"Timed out after {timeout:g}s loading {operation}")
        raise LoadTimeout(operation, timeout) from None
