#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

from pathlib import Path

import pytest

from modelprov.catalog import ArtifactCatalog, ArtifactSpec
from tests.unit.modelprov.fakes import EventLog, FakeFetcher, FakeLoader, RecordingStore


@pytest.fixture
def event_log() -> EventLog:
    return EventLog()


@pytest.fixture
def fake_fetcher(event_log: EventLog) -> FakeFetcher:
    return FakeFetcher(event_log)


@pytest.fixture
def fake_loader(event_log: EventLog) -> FakeLoader:
    return FakeLoader(event_log)


@pytest.fixture
def recording_store(event_log: EventLog) -> RecordingStore:
    return RecordingStore(event_log)


@pytest.fixture
def seg_spec() -> ArtifactSpec:
    return ArtifactSpec(name="seg", remote_source_id="repo/seg", remote_asset_name="seg.pt", local_file_name="seg.pt")


@pytest.fixture
def emb_spec() -> ArtifactSpec:
    return ArtifactSpec(name="emb", remote_source_id="repo/emb", remote_asset_name="emb.pt", local_file_name="emb.pt")


@pytest.fixture
def catalog(seg_spec: ArtifactSpec, emb_spec: ArtifactSpec) -> ArtifactCatalog:
    return ArtifactCatalog([seg_spec, emb_spec])


@pytest.fixture
def models_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "models"
    directory.mkdir()
    return directory
