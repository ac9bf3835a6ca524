#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import threading
from pathlib import Path

from loguru import logger

from modelprov.catalog import ArtifactSpec
from modelprov.errors import ArtifactNotFoundError, IncompleteWriteError, TransportError
from modelprov.iohash import DEFAULT_CHUNK, WriteIntegrityError, atomic_write_and_hash


class MirrorFetcher:
    """Copies artifacts from a local (or network mounted) mirror laid out as ``<root>/<source id>/<asset name>``."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser()

    def source_path(self, spec: ArtifactSpec) -> Path:
        return self.root / spec.remote_source_id / spec.remote_asset_name

    def fetch(self, spec: ArtifactSpec, destination: Path, cancelled: threading.Event | None = None) -> None:
        source = self.source_path(spec)
        if not source.is_file():
            raise ArtifactNotFoundError(f"{source} does not exist in mirror", artifacts=[spec.name])
        logger.info(f"[{spec.name}] copying {source}")

        try:
            with source.open("rb") as f:
                atomic_write_and_hash(
                    destination,
                    iter(lambda: f.read(DEFAULT_CHUNK), b""),
                    compute_hash=False,
                    expected_size=source.stat().st_size,
                    expected_sha256=spec.sha256,
                    cancelled=cancelled,
                )
        except WriteIntegrityError as exc:
            raise IncompleteWriteError(f"Incomplete copy of {source}: {exc}", artifacts=[spec.name]) from exc
        except OSError as exc:
            raise TransportError(f"Could not copy {source}: {exc}", artifacts=[spec.name]) from exc
