#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, TypeVar

T = TypeVar("T")
R = TypeVar("R")


class ParallelErrors(Exception):
    def __init__(self, errors: list[tuple[Any, BaseException]]) -> None:
        super().__init__(f"{len(errors)} errors encountered")
        self.errors = errors  # [(input, exception), ...] in completion order


def parallel_map_collect_errors(
    fn: Callable[[T], R],
    items: Sequence[T],
    max_workers: int | None = None,
    thread_name_prefix: str = "modelprov",
    cancel_event: threading.Event | None = None,
) -> list[R]:
    """Runs `fn` for every item concurrently and waits for all of them, even after a failure.

    Args:
        fn: Function applied to every item.
        items: Inputs, one unit of work each.
        max_workers: Pool size. Defaults to one worker per item.
        thread_name_prefix: Prefix of the worker thread names (shows up in debug logs).
        cancel_event: Set when the caller is interrupted while waiting, so running units can stop at their next
            IO boundary. Queued units are dropped either way.

    Returns:
        - Results in the order of `items`.

    Raises:
        ParallelErrors: If any unit failed, with the failures in the order they were observed.
    """
    if not items:
        return []
    results: dict[int, R] = {}
    failures: list[tuple[T, BaseException]] = []
    executor = ThreadPoolExecutor(max_workers=max_workers or len(items), thread_name_prefix=thread_name_prefix)
    try:
        future_to_index = {executor.submit(fn, item): index for index, item in enumerate(items)}
        for _future in as_completed(future_to_index):
            index = future_to_index[_future]
            try:
                results[index] = _future.result()
            except Exception as exc:
                failures.append((items[index], exc))
    except BaseException:
        # interrupted while waiting: drop queued units, tell running ones to unwind
        if cancel_event is not None:
            cancel_event.set()
        executor.shutdown(wait=True, cancel_futures=True)
        raise
    executor.shutdown(wait=True)
    if failures:
        raise ParallelErrors(failures)
    return [results[index] for index in range(len(items))]
