"""
Bounded fan-out over a thread pool.

Both helpers return results in input order regardless of completion order.
Tasks must not share mutable state; results are merged after every task settles.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterable, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = int(os.getenv("NOTES_MAX_WORKERS", "8"))


def _workers(max_workers: Optional[int], count: int) -> int:
    bound = max_workers if max_workers else DEFAULT_MAX_WORKERS
    return max(1, min(int(bound), count))


def _settle(func: Callable[[Any], Any], items: List[Any], max_workers: Optional[int]):
    """Run func over items and return [(item, result, exc)] in input order."""
    with ThreadPoolExecutor(max_workers=_workers(max_workers, len(items))) as pool:
        futures = [pool.submit(func, item) for item in items]
    settled = []
    for item, fut in zip(items, futures):
        exc = fut.exception()
        settled.append((item, None if exc else fut.result(), exc))
    return settled


def run_all(func: Callable[[Any], Any], items: Iterable[Any], max_workers: Optional[int] = None) -> List[Any]:
    """All-succeed: return every result, or re-raise the first failure in input order."""
    items = list(items)
    if not items:
        return []
    settled = _settle(func, items, max_workers)
    for _, _, exc in settled:
        if exc is not None:
            raise exc
    return [result for _, result, _ in settled]


def run_best_effort(
    func: Callable[[Any], Any],
    items: Iterable[Any],
    max_workers: Optional[int] = None,
    on_error: Optional[Callable[[Any, BaseException], None]] = None,
) -> List[Any]:
    """Return the results of the items that succeeded; failures go to on_error."""
    items = list(items)
    if not items:
        return []
    results = []
    for item, result, exc in _settle(func, items, max_workers):
        if exc is None:
            results.append(result)
        elif on_error is not None:
            on_error(item, exc)
        else:
            logger.warning("Task for %r failed: %s", item, exc)
    return results
