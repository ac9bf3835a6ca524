#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import time
from types import TracebackType
from typing import Self


class Stopwatch:
    """Context manager measuring the wall-clock seconds a block took, including blocks that raise.

    Examples:
        >>> with Stopwatch() as sw:
        ...     fetch_everything()
        >>> sw.elapsed_seconds
    """

    def __init__(self) -> None:
        self._started_at: float | None = None
        self._elapsed: float | None = None

    def __enter__(self) -> Self:
        assert self._started_at is None, "stopwatch is already running"
        self._started_at = time.perf_counter()
        return self

    def __exit__(
        self, exc_type: type[BaseException] | None, exc_value: BaseException | None, traceback: TracebackType | None
    ) -> None:
        assert self._started_at is not None
        self._elapsed = time.perf_counter() - self._started_at
        self._started_at = None

    @property
    def elapsed_seconds(self) -> float:
        assert self._elapsed is not None, "elapsed_seconds is only known once the block finished"
        return self._elapsed
