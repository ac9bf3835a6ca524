#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import hashlib
import threading
from collections.abc import Iterator
from pathlib import Path

import pytest

from modelprov.iohash import WriteCancelled, WriteIntegrityError, atomic_write_and_hash, hash_file, partial_path


def test_atomic_write_overwrites_and_hashes(tmp_path: Path):
    dest = tmp_path / "sub" / "model.pt"
    dest.parent.mkdir()
    dest.write_bytes(b"old content that is longer")

    written, sha = atomic_write_and_hash(dest, [b"new ", b"", b"bytes"])

    assert dest.read_bytes() == b"new bytes"
    assert written == 9
    assert sha == hashlib.sha256(b"new bytes").hexdigest()
    assert not partial_path(dest).exists()


def test_atomic_write_interrupted_keeps_previous_content(tmp_path: Path):
    dest = tmp_path / "model.pt"
    dest.write_bytes(b"previous")

    def _chunks() -> Iterator[bytes]:
        yield b"partial"
        raise ConnectionError("connection reset")

    with pytest.raises(ConnectionError):
        atomic_write_and_hash(dest, _chunks())
    assert dest.read_bytes() == b"previous"
    assert not partial_path(dest).exists()


def test_atomic_write_size_mismatch(tmp_path: Path):
    dest = tmp_path / "model.pt"
    with pytest.raises(WriteIntegrityError):
        atomic_write_and_hash(dest, [b"abc"], expected_size=10)
    assert not dest.exists()
    assert not partial_path(dest).exists()


def test_atomic_write_sha_mismatch(tmp_path: Path):
    dest = tmp_path / "model.pt"
    with pytest.raises(WriteIntegrityError):
        atomic_write_and_hash(dest, [b"abc"], compute_hash=False, expected_sha256="0" * 64)
    assert not dest.exists()

    atomic_write_and_hash(dest, [b"abc"], compute_hash=False, expected_sha256=hashlib.sha256(b"abc").hexdigest())
    assert dest.read_bytes() == b"abc"


def test_progress_is_updated_and_closed(tmp_path: Path):
    class _Progress:
        def __init__(self) -> None:
            self.updates: list[int] = []
            self.closed = False

        def update(self, n: int) -> None:
            self.updates.append(n)

        def close(self) -> None:
            self.closed = True

    progress = _Progress()
    atomic_write_and_hash(tmp_path / "f.bin", [b"ab", b"cde"], progress=progress)
    assert progress.updates == [2, 3]
    assert progress.closed


def test_hash_file(tmp_path: Path):
    path = tmp_path / "f.bin"
    path.write_bytes(b"x" * 3000)
    assert hash_file(path) == hashlib.sha256(b"x" * 3000).hexdigest()


def test_atomic_write_cancelled_between_chunks(tmp_path: Path):
    dest = tmp_path / "model.pt"
    dest.write_bytes(b"previous")
    cancelled = threading.Event()

    def _chunks() -> Iterator[bytes]:
        yield b"first"
        cancelled.set()
        yield b"second"
        raise AssertionError("kept reading after cancellation")

    with pytest.raises(WriteCancelled):
        atomic_write_and_hash(dest, _chunks(), cancelled=cancelled)

    assert dest.read_bytes() == b"previous"
    assert not partial_path(dest).exists()
