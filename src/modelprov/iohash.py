#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import threading
from collections.abc import Iterable
from hashlib import sha256
from pathlib import Path
from typing import Any

DEFAULT_CHUNK = 1024 * 1024  # 1 MiB


class WriteIntegrityError(OSError):
    """The streamed bytes do not match the announced size or digest."""


class WriteCancelled(Exception):
    """The write was abandoned because its `cancelled` event was set."""


def partial_path(destination_path: Path) -> Path:
    """Temp file used while `destination_path` is being written."""
    return destination_path.with_name(destination_path.name + ".part")


def atomic_write_and_hash(
    destination_path: Path,
    chunks: Iterable[bytes],
    *,
    compute_hash: bool = True,
    progress: Any = None,
    expected_size: int | None = None,
    expected_sha256: str | None = None,
    cancelled: threading.Event | None = None,
) -> tuple[int, str | None]:
    """Write bytes chunks to a temp file next to `destination_path`, then atomically replace `destination_path`.

    The temp file is removed if writing is interrupted or the integrity check fails, so `destination_path`
    either keeps its previous content or receives the complete new content.

    Args:
        destination_path: Destination path.
        chunks: Iterable of bytes to write.
        compute_hash: Compute the SHA-256 of the chunks while writing.
        progress: Progress object or None for no progress. Expected to have .update(int) and .close() methods.
        expected_size: If set, the number of bytes that must have been written.
        expected_sha256: If set, the digest the written bytes must have. Implies `compute_hash`.
        cancelled: Checked before every chunk; once set, writing stops and the temp file is removed.

    Returns:
        - tuple[int, str | None]: Number of bytes written and the hex digest (None if not computed).

    Raises:
        WriteIntegrityError: If `expected_size` or `expected_sha256` do not match.
        WriteCancelled: If `cancelled` was set before the destination was replaced.
    """
    destination_path.parent.mkdir(parents=True, exist_ok=True)
    tmp = partial_path(destination_path)
    hasher = sha256() if (compute_hash or expected_sha256) else None
    written = 0
    try:
        with tmp.open("wb") as f:
            for chunk in chunks:
                if cancelled is not None and cancelled.is_set():
                    raise WriteCancelled(f"write of {destination_path.name} cancelled after {written} bytes")
                if not chunk:
                    continue
                f.write(chunk)
                written += len(chunk)
                if hasher:
                    hasher.update(chunk)
                if progress:
                    progress.update(len(chunk))
        if expected_size is not None and written != expected_size:
            raise WriteIntegrityError(f"expected {expected_size} bytes for {destination_path.name}, got {written}")
        digest = hasher.hexdigest() if hasher else None
        if expected_sha256 and digest != expected_sha256.lower():
            raise WriteIntegrityError(f"SHA-256 mismatch for {destination_path.name}")
        if cancelled is not None and cancelled.is_set():
            raise WriteCancelled(f"write of {destination_path.name} cancelled")
        tmp.replace(destination_path)
        return written, digest
    finally:
        if progress:
            progress.close()
        tmp.unlink(missing_ok=True)


def hash_file(path: Path, chunk_size_mb: int = 1) -> str:
    """Reads file bytes as chunks and hashes them.

    Args:
        path: Input file path.
        chunk_size_mb: Chunk size in megabytes.

    Returns:
        - The SHA-256 hex digest of the file.
    """
    chunk_size = chunk_size_mb * 1024 * 1024

    hash_fn = sha256()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            hash_fn.update(chunk)
    return hash_fn.hexdigest()
