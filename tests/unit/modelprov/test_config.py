#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from modelprov.catalog import DIARIZATION_REPO
from modelprov.config import ArtifactConfig, ProvisioningConfig
from modelprov.directories import PlatformDirectoryResolver, StaticDirectoryResolver
from modelprov.fetchers import HuggingFaceFetcher, MirrorFetcher, S3Fetcher
from modelprov.loader import ComputeAffinity
from modelprov.provisioner import Provisioner, fetcher_from_config

YAML_CONFIG = """
directory: ${oc.env:MODELS_DIR}
max_retries: 1
compute_affinity: cpu-only
source: mirror
mirror_root: /srv/mirror
catalog:
  - name: seg
    remote_source_id: org/seg
    remote_asset_name: onnx/segmentation.onnx
  - name: emb
    remote_source_id: org/emb
    remote_asset_name: embedding.pt
    local_file_name: wespeaker.pt
    revision: v2
"""


def test_defaults():
    config = ProvisioningConfig()
    assert config.max_retries == 2
    assert config.compute_affinity is ComputeAffinity.CPU_AND_ACCELERATOR
    assert config.source == "huggingface"

    catalog = config.to_catalog()
    assert catalog.names == ("segmentation", "embedding")
    assert {spec.remote_source_id for spec in catalog} == {DIARIZATION_REPO}


def test_from_uri_resolves_env(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("MODELS_DIR", str(tmp_path / "models"))
    path = tmp_path / "provisioning.yaml"
    path.write_text(YAML_CONFIG)

    config = ProvisioningConfig.from_uri(path)

    assert config.directory == str(tmp_path / "models")
    assert config.compute_affinity is ComputeAffinity.CPU_ONLY
    catalog = config.to_catalog()
    assert catalog["seg"].local_file_name == "segmentation.onnx"
    assert catalog["emb"].local_file_name == "wespeaker.pt"
    assert catalog["emb"].revision == "v2"


def test_from_uri_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        ProvisioningConfig.from_uri(tmp_path / "nope.yaml")


def test_mirror_requires_root():
    with pytest.raises(ValidationError, match="mirror_root"):
        ProvisioningConfig(source="mirror")


def test_unknown_fields_are_rejected():
    with pytest.raises(ValidationError):
        ProvisioningConfig(max_retry=3)
    with pytest.raises(ValidationError):
        ArtifactConfig(name="a", remote_source_id="b", remote_asset_name="c.onnx", checksum="x")


@pytest.mark.parametrize("field,value", [("max_retries", -1), ("max_workers", 0), ("source", "ftp")])
def test_invalid_values(field: str, value):
    with pytest.raises(ValidationError):
        ProvisioningConfig(**{field: value})


@pytest.mark.parametrize(
    "kwargs,expected",
    [
        ({}, HuggingFaceFetcher),
        ({"source": "s3"}, S3Fetcher),
        ({"source": "mirror", "mirror_root": "/srv/mirror"}, MirrorFetcher),
    ],
)
def test_fetcher_from_config(kwargs: dict, expected: type):
    assert isinstance(fetcher_from_config(ProvisioningConfig(**kwargs)), expected)


def test_provisioner_directory_resolver_from_config(tmp_path: Path):
    static = Provisioner.from_config(ProvisioningConfig(directory=str(tmp_path)))
    assert isinstance(static.directory_resolver, StaticDirectoryResolver)
    assert static.resolve_directory() == tmp_path

    platform = Provisioner.from_config(ProvisioningConfig(namespace="asr"))
    assert isinstance(platform.directory_resolver, PlatformDirectoryResolver)
    assert platform.resolve_directory().name == "asr"
