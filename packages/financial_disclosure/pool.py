"""Ordered, bounded-concurrency map over a ``ThreadPoolExecutor``.

Only a sliding window of ``max_workers`` calls is in flight at a time, so a
large batch never submits all of its work up front. Results come back in
input order. Errors are not handled here: callers that must keep going past
a failing item wrap their function so it returns a value instead of raising.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TypeVar

InT = TypeVar("InT")
OutT = TypeVar("OutT")


def ordered_map(
    items: Iterable[InT],
    fn: Callable[[InT], OutT],
    *,
    max_workers: int,
) -> list[OutT]:
    """Apply ``fn`` to every item with at most ``max_workers`` concurrent calls.

    The first exception raised by ``fn`` cancels work that has not started and
    propagates to the caller.
    """

    if not isinstance(max_workers, int) or max_workers < 1:
        raise ValueError("max_workers must be a positive integer")

    pending = enumerate(items)
    results: dict[int, OutT] = {}
    index_of: dict[Future[OutT], int] = {}

    def _submit(pool: ThreadPoolExecutor) -> Future[OutT] | None:
        try:
            idx, item = next(pending)
        except StopIteration:
            return None
        fut = pool.submit(fn, item)
        index_of[fut] = idx
        return fut

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        active: set[Future[OutT]] = set()
        for _ in range(max_workers):
            fut = _submit(pool)
            if fut is None:
                break
            active.add(fut)

        while active:
            done, active = wait(active, return_when=FIRST_COMPLETED)
            for fut in done:
                idx = index_of.pop(fut)
                try:
                    results[idx] = fut.result()
                except Exception:
                    pool.shutdown(wait=False, cancel_futures=True)
                    raise
            for _ in range(len(done)):
                fut = _submit(pool)
                if fut is None:
                    break
                active.add(fut)

    return [results[i] for i in sorted(results)]


__all__ = ["ordered_map"]
