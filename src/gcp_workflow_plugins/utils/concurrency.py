"""
All-or-nothing parallel map over a bounded thread pool.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Callable, List, Optional, Sequence, TypeVar

from ..errors import CycleTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def map_all_or_nothing(
    func: Callable[[T], R],
    items: Sequence[T],
    max_workers: int = 4,
    timeout: Optional[float] = None,
) -> List[R]:
    """
    Apply ``func`` to every item, concurrently.

    Results keep the order of ``items``. The first failure cancels work that
    has not started yet and is re-raised once the calls already running have
    returned, so nothing is left in flight when this function raises.

    Args:
        func: Callable applied to each item
        items: Items to process
        max_workers: Size of the worker pool
        timeout: Seconds to wait for all results (None = no limit)

    Returns:
        List of results, one per item

    Raises:
        CycleTimeoutError: If the results are not all available in time
        Exception: The first exception raised by ``func``
    """
    if not items:
        return []

    results: List[Optional[R]] = [None] * len(items)

    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(items)))) as executor:
        future_to_index = {executor.submit(func, item): i for i, item in enumerate(items)}
        try:
            for future in as_completed(future_to_index, timeout=timeout):
                results[future_to_index[future]] = future.result()
        except FuturesTimeoutError as e:
            _cancel_pending(future_to_index)
            raise CycleTimeoutError(f"Timed out after {timeout}s waiting for {len(items)} operations") from e
        except Exception:
            _cancel_pending(future_to_index)
            raise

    return results  # type: ignore[return-value]


def _cancel_pending(futures) -> None:
    cancelled = sum(1 for future in futures if future.cancel())
    if cancelled:
        logger.debug(f"Cancelled {cancelled} pending operations")
