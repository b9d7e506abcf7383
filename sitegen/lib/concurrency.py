"""Bounded scatter/gather helpers for gateway internals."""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from sitegen.errors import BuildCancelled

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_MAX_WORKERS = 8


def check_cancelled(cancel: threading.Event | None, language: str | None = None) -> None:
    """Raise BuildCancelled when the caller has set the cancel event."""
    if cancel is not None and cancel.is_set():
        raise BuildCancelled(language)


def gather_ordered(
    func: Callable[[T], R],
    items: Iterable[T],
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
    cancel: threading.Event | None = None,
) -> list[R]:
    """Apply ``func`` to every item on a bounded thread pool.

    Results come back in input order regardless of completion order. The
    first exception raised by ``func`` propagates once the pool drains.
    """
    items = list(items)
    if not items:
        return []
    if max_workers <= 1 or len(items) == 1:
        results = []
        for item in items:
            check_cancelled(cancel)
            results.append(func(item))
        return results

    def _run(item: T) -> R:
        check_cancelled(cancel)
        return func(item)

    with ThreadPoolExecutor(max_workers=min(max_workers, len(items))) as pool:
        return list(pool.map(_run, items))


__all__ = ["gather_ordered", "check_cancelled", "DEFAULT_MAX_WORKERS"]
