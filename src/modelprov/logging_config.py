#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import sys
from typing import Any, TextIO

from loguru import logger

_TIME = "<green>{time:DD-MM-YYYY HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
# fetch and load phases run on worker threads named after the phase
_FORMATS = {
    False: _TIME + "{message}",
    True: (
        _TIME + "<magenta>{thread.name: <10}</magenta> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
    ),
}


def configure_logging(debug: bool = False, sink: TextIO | Any = None) -> int:
    """Route loguru output to a single sink.

    Args:
        debug: Log at DEBUG level with thread and caller details if True, INFO with a minimal format otherwise.
        sink: Where to write. Defaults to the current ``sys.stderr``.

    Returns:
        - The loguru handler id.
    """
    logger.remove()
    return logger.add(
        sink if sink is not None else sys.stderr,
        level="DEBUG" if debug else "INFO",
        format=_FORMATS[debug],
    )
