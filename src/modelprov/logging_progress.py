#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import time

from loguru import logger

_UNITS = ("B", "KB", "MB", "GB", "TB")
_MIB = 1024 * 1024


def fmt_bytes(num: int) -> str:
    """Formats a byte count with binary units, e.g. ``fmt_bytes(1536) == "1.50 KB"``."""
    size = float(num)
    unit = 0
    while size >= 1024 and unit < len(_UNITS) - 1:
        size /= 1024
        unit += 1
    return f"{size:.2f} {_UNITS[unit]}"


class LogProgress:
    """Logs how far a single artifact download got.

    With a known size a line is logged every 20% (every 10% from 100 MiB on), otherwise every `mb_step` MiB.
    `close` logs the total and the elapsed time.

    Args:
        label: Artifact name used as log prefix.
        total_bytes: Expected size, None or 0 if the remote did not announce one.
        mb_step: MiB between two log lines when the size is unknown.
    """

    def __init__(self, *, label: str, total_bytes: int | None, mb_step: int = 32) -> None:
        self.label = label
        self.total = total_bytes or 0
        self.bytes_done = 0
        self._pct_step = 10 if self.total >= 100 * _MIB else 20
        self._next_pct = self._pct_step
        self._byte_step = mb_step * _MIB
        self._next_bytes = self._byte_step
        self._started = time.monotonic()

    def _of_total(self) -> str:
        if self.total:
            return f"{fmt_bytes(self.bytes_done)}/{fmt_bytes(self.total)}"
        return fmt_bytes(self.bytes_done)

    def update(self, delta: int) -> None:
        self.bytes_done += delta
        if not self.total:
            if self.bytes_done >= self._next_bytes:
                logger.info(f"[{self.label}] downloaded {self._of_total()}")
                self._next_bytes = (self.bytes_done // self._byte_step + 1) * self._byte_step
            return
        pct = self.bytes_done * 100 // self.total
        if pct >= self._next_pct and self._next_pct <= 100:
            shown = min(pct - pct % self._pct_step, 100)
            logger.info(f"[{self.label}] {shown}% ({self._of_total()})")
            self._next_pct = shown + self._pct_step

    def close(self) -> None:
        logger.info(f"[{self.label}] done ({self._of_total()}) in {time.monotonic() - self._started:.2f}s")
