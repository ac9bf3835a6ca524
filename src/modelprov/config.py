#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

from pathlib import Path
from typing import Literal

from omegaconf import OmegaConf
from pydantic import BaseModel, Field, model_validator

from modelprov.catalog import ArtifactCatalog, ArtifactSpec, diarization_catalog
from modelprov.loader import ComputeAffinity

SOURCE_TYPES = Literal["huggingface", "s3", "mirror"]


class ArtifactConfig(BaseModel):
    name: str
    """Logical name of the artifact, key of the loaded model in the bundle."""
    remote_source_id: str
    """Hugging Face repo id, S3 ``bucket[/prefix]`` or mirror sub directory."""
    remote_asset_name: str
    """Asset name inside the remote source."""
    local_file_name: str | None = None
    """File name inside the models directory. Defaults to the basename of `remote_asset_name`."""
    revision: str = "main"
    """Remote revision, only used by Hugging Face."""
    sha256: str | None = None
    """Expected SHA-256 of the artifact. If set, files with another digest are treated as corrupted."""
    model_config = {"extra": "forbid"}

    def to_spec(self) -> ArtifactSpec:
        return ArtifactSpec(
            name=self.name,
            remote_source_id=self.remote_source_id,
            remote_asset_name=self.remote_asset_name,
            local_file_name=self.local_file_name or Path(self.remote_asset_name).name,
            revision=self.revision,
            sha256=self.sha256,
        )


class ProvisioningConfig(BaseModel):
    """Configuration of a `Provisioner`."""

    directory: str | None = None
    """Models directory. If None, a per-user platform directory is used."""
    namespace: str = "diarization"
    """Sub directory of the platform models directory, ignored when `directory` is set."""
    max_retries: int = Field(2, ge=0)
    """Number of purge + re-fetch heals per artifact when loading fails."""
    compute_affinity: ComputeAffinity = ComputeAffinity.CPU_AND_ACCELERATOR
    """Hardware the loaded models may run on."""
    max_workers: int | None = Field(None, ge=1)
    """Thread pool size for the fetch and load phases. Defaults to one worker per artifact."""
    source: SOURCE_TYPES = "huggingface"
    """Remote store to fetch from."""
    mirror_root: str | None = None
    """Root directory of the mirror, required when `source` is "mirror"."""
    catalog: list[ArtifactConfig] | None = None
    """Required artifacts. Defaults to the diarization models."""
    model_config = {"extra": "forbid"}

    @model_validator(mode="after")
    def _check_mirror_root(self) -> ProvisioningConfig:
        if self.source == "mirror" and not self.mirror_root:
            raise ValueError("source='mirror' requires mirror_root")
        return self

    @staticmethod
    def from_uri(uri: str | Path) -> ProvisioningConfig:
        """Load the config from a YAML or JSON file; ``${oc.env:...}`` interpolations are resolved."""
        config_path = Path(uri).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Path '{config_path.as_posix()}' does not exist")
        raw_config = OmegaConf.load(config_path)
        resolved_config = OmegaConf.to_container(raw_config, resolve=True)
        return ProvisioningConfig(**resolved_config)  # type: ignore[arg-type]

    def to_catalog(self) -> ArtifactCatalog:
        if self.catalog is None:
            return diarization_catalog()
        return ArtifactCatalog(entry.to_spec() for entry in self.catalog)
