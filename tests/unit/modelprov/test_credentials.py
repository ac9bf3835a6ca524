#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

import json
from pathlib import Path

import pytest

from modelprov.credentials import Provider, get_credentials

AWS_VARS = (
    "AWS_ACCESS_KEY_ID",
    "AWS_SECRET_ACCESS_KEY",
    "AWS_SESSION_TOKEN",
    "AWS_REGION",
    "AWS_DEFAULT_REGION",
    "AWS_ENDPOINT_URL",
)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch) -> Path:
    config_path = tmp_path / "config.json"
    monkeypatch.setattr("modelprov.credentials.CONFIG_PATH", config_path)
    monkeypatch.delenv("HF_TOKEN", raising=False)
    for name in AWS_VARS:
        monkeypatch.delenv(name, raising=False)
    return config_path


def test_get_credentials_from_env(monkeypatch) -> None:
    monkeypatch.setenv("HF_TOKEN", "dummy-token")
    creds = get_credentials(Provider.HUGGINGFACE)
    assert creds["HF_TOKEN"] == "dummy-token"


def test_get_credentials_from_config(isolated_config: Path) -> None:
    isolated_config.write_text(json.dumps({"huggingface": {"HF_TOKEN": "from-config"}}))
    creds = get_credentials(Provider.HUGGINGFACE)
    assert creds["HF_TOKEN"] == "from-config"


def test_env_wins_over_config(isolated_config: Path, monkeypatch) -> None:
    isolated_config.write_text(json.dumps({"huggingface": {"HF_TOKEN": "from-config"}}))
    monkeypatch.setenv("HF_TOKEN", "from-env")
    assert get_credentials(Provider.HUGGINGFACE)["HF_TOKEN"] == "from-env"


def test_public_access_needs_no_credentials() -> None:
    assert get_credentials(Provider.HUGGINGFACE) == {}
    assert get_credentials(Provider.AWS) == {}


def test_aws_default_region_is_normalized(monkeypatch) -> None:
    monkeypatch.setenv("AWS_DEFAULT_REGION", "eu-central-1")
    monkeypatch.setenv("AWS_ENDPOINT_URL", "http://localhost:9000")
    creds = get_credentials(Provider.AWS)
    assert creds == {"AWS_REGION": "eu-central-1", "AWS_ENDPOINT_URL": "http://localhost:9000"}


def test_invalid_config_json(isolated_config: Path) -> None:
    isolated_config.write_text("{not json")
    with pytest.raises(RuntimeError, match="Invalid JSON"):
        get_credentials(Provider.HUGGINGFACE)
