#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import PurePath

from modelprov.formats import ArtifactFormat

DIARIZATION_REPO = "bweng/speaker-diarization-coreml"


@dataclass(frozen=True)
class ArtifactSpec:
    """Static description of one required model artifact.

    Args:
        name: Logical name used as key in the result bundle, e.g. "segmentation".
        remote_source_id: Identifier of the remote source (Hugging Face repo id, S3 bucket[/prefix], mirror dir).
        remote_asset_name: Name of the asset inside the remote source.
        local_file_name: File name of the artifact inside the models directory.
        revision: Remote revision (branch, tag or commit). Only used by sources with revisions.
        sha256: Optional expected digest; when set, a local file with another digest is invalid.
    """

    name: str
    remote_source_id: str
    remote_asset_name: str
    local_file_name: str
    revision: str = "main"
    sha256: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("ArtifactSpec.name must not be empty")
        if not self.remote_source_id or not self.remote_asset_name:
            raise ValueError(f"ArtifactSpec {self.name!r} needs a remote source id and asset name")
        # every spec owns exactly one entry directly below the models directory
        if PurePath(self.local_file_name).name != self.local_file_name or self.local_file_name in ("", ".", ".."):
            raise ValueError(f"local_file_name of {self.name!r} must be a bare file name, got {self.local_file_name!r}")
        ArtifactFormat.from_path(self.local_file_name)

    @property
    def format(self) -> ArtifactFormat:
        return ArtifactFormat.from_path(self.local_file_name)


@dataclass(frozen=True)
class ArtifactCatalog:
    """The fixed set of artifacts a caller needs before inference can run."""

    specs: tuple[ArtifactSpec, ...]

    def __init__(self, specs: Iterable[ArtifactSpec]) -> None:
        specs = tuple(specs)
        if not specs:
            raise ValueError("ArtifactCatalog needs at least one ArtifactSpec")
        names = [spec.name for spec in specs]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate artifact names in catalog: {names}")
        files = [spec.local_file_name for spec in specs]
        if len(set(files)) != len(files):
            raise ValueError(f"Artifacts must not share a local file name: {files}")
        object.__setattr__(self, "specs", specs)

    def __iter__(self) -> Iterator[ArtifactSpec]:
        return iter(self.specs)

    def __len__(self) -> int:
        return len(self.specs)

    def __getitem__(self, name: str) -> ArtifactSpec:
        for spec in self.specs:
            if spec.name == name:
                return spec
        raise KeyError(name)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(spec.name for spec in self.specs)


def diarization_catalog(repo_id: str = DIARIZATION_REPO, revision: str = "main") -> ArtifactCatalog:
    """Segmentation + speaker embedding models used by the diarization pipeline."""
    return ArtifactCatalog(
        [
            ArtifactSpec(
                name="segmentation",
                remote_source_id=repo_id,
                remote_asset_name="pyannote_segmentation.onnx",
                local_file_name="pyannote_segmentation.onnx",
                revision=revision,
            ),
            ArtifactSpec(
                name="embedding",
                remote_source_id=repo_id,
                remote_asset_name="wespeaker.onnx",
                local_file_name="wespeaker.onnx",
                revision=revision,
            ),
        ]
    )
