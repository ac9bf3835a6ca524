#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import json
import os
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger

CONFIG_PATH = Path().home() / ".config" / "modelprov" / "config.json"


class Provider(str, Enum):
    """Remote stores that can take credentials. The value is the section name in the config file."""

    HUGGINGFACE = "huggingface"
    AWS = "aws"


# Public repos and buckets work anonymously, so every variable is optional.
CREDENTIAL_VARS: dict[Provider, tuple[str, ...]] = {
    Provider.HUGGINGFACE: ("HF_TOKEN",),
    Provider.AWS: (
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
        "AWS_SESSION_TOKEN",
        "AWS_REGION",
        "AWS_DEFAULT_REGION",
        "AWS_ENDPOINT_URL",
    ),
}


def get_credentials(provider: Provider) -> dict[str, Any]:
    """Collects the credentials of a remote store.

    Every variable is looked up in the environment first and in the `provider` section of
    ``~/.config/modelprov/config.json`` second. Unset and empty values are left out, so an empty dict means
    anonymous access.

    For AWS, ``AWS_DEFAULT_REGION`` is accepted as an alias and reported as ``AWS_REGION``.
    """
    if provider not in CREDENTIAL_VARS:
        raise ValueError(f"Unsupported provider: {provider.value}")

    file_section = _config_section(provider)
    creds: dict[str, Any] = {}
    for name in CREDENTIAL_VARS[provider]:
        value = os.getenv(name) or file_section.get(name)
        if value not in (None, ""):
            creds[name] = value

    if provider is Provider.AWS and "AWS_DEFAULT_REGION" in creds:
        default_region = creds.pop("AWS_DEFAULT_REGION")
        creds.setdefault("AWS_REGION", default_region)

    # key names only, values are secrets
    logger.debug(f"Credentials for {provider.value}: {sorted(creds)}")
    return creds


def _config_section(provider: Provider) -> dict[str, Any]:
    if not CONFIG_PATH.exists():
        return {}
    try:
        config = json.loads(CONFIG_PATH.read_text())
    except json.JSONDecodeError:
        raise RuntimeError(f"Invalid JSON in config file: {CONFIG_PATH}") from None
    return config.get(provider.value, {})
