#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import shutil
from enum import Enum
from pathlib import Path

from loguru import logger

from modelprov.catalog import ArtifactCatalog, ArtifactSpec
from modelprov.iohash import hash_file, partial_path


class ArtifactState(str, Enum):
    MISSING = "missing"
    INVALID = "invalid"
    VALID = "valid"


class LocalStore:
    """Classifies and removes artifacts inside a models directory.

    Nothing is cached, every call inspects the filesystem again.
    """

    def path_for(self, spec: ArtifactSpec, directory: Path) -> Path:
        return Path(directory) / spec.local_file_name

    def classify(self, spec: ArtifactSpec, directory: Path) -> ArtifactState:
        """Returns the on-disk state of `spec` inside `directory`.

        Args:
            spec: Artifact to inspect.
            directory: Models directory.

        Returns:
            - MISSING: No entry at the artifact path (a dangling symlink still counts as an entry).
            - VALID: The entry passes the structural check of its format and, if set, the checksum.
            - INVALID: Anything else.
        """
        path = self.path_for(spec, directory)
        if not path.exists() and not path.is_symlink():
            return ArtifactState.MISSING
        if not spec.format.is_structurally_valid(path):
            return ArtifactState.INVALID
        if spec.sha256 is not None and hash_file(path) != spec.sha256.lower():
            logger.debug(f"[{spec.name}] checksum mismatch at {path}")
            return ArtifactState.INVALID
        return ArtifactState.VALID

    def scan(self, catalog: ArtifactCatalog, directory: Path) -> dict[str, ArtifactState]:
        return {spec.name: self.classify(spec, directory) for spec in catalog}

    def purge(self, spec: ArtifactSpec, directory: Path) -> None:
        """Removes the entry of `spec` (file, symlink or directory) and any leftover temp file. Idempotent."""
        path = self.path_for(spec, directory)
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
            logger.info(f"[{spec.name}] removed directory {path}")
        elif path.exists() or path.is_symlink():
            path.unlink()
            logger.info(f"[{spec.name}] removed {path}")
        partial_path(path).unlink(missing_ok=True)
