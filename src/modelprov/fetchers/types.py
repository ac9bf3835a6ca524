#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import threading
from pathlib import Path
from typing import Protocol

from modelprov.catalog import ArtifactSpec


class RemoteFetcher(Protocol):
    """
    Fetches one remote asset into a local path.

    Implementations must fully overwrite any prior content at `destination` and be safe to call
    repeatedly for the same destination. Failures are reported as `DownloadError` subclasses.

    Once `cancelled` is set, implementations stop at the next chunk boundary without touching `destination`.
    """

    def fetch(self, spec: ArtifactSpec, destination: Path, cancelled: threading.Event | None = None) -> None: ...
