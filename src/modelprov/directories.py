#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Protocol

APP_NAME = "modelprov"
HOME_ENV_VAR = "MODELPROV_HOME"


class DirectoryResolver(Protocol):
    """Decides where the models directory lives when the caller does not pass one."""

    def resolve(self) -> Path: ...


class StaticDirectoryResolver:
    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory).expanduser()

    def resolve(self) -> Path:
        return self.directory


class PlatformDirectoryResolver:
    """Per-user models directory following the conventions of the host platform.

    - macOS: ``~/Library/Application Support/modelprov/models/<namespace>``
    - Windows: ``%LOCALAPPDATA%/modelprov/models/<namespace>``
    - others: ``$XDG_CACHE_HOME/modelprov/models/<namespace>`` (``~/.cache`` if unset)

    ``MODELPROV_HOME`` replaces the platform base on every platform.

    Args:
        namespace: Sub directory separating model families, e.g. "diarization".
        platform: Platform name as in `sys.platform`. Defaults to the running platform.
    """

    def __init__(self, namespace: str = "default", platform: str | None = None) -> None:
        self.namespace = namespace
        self.platform = platform or sys.platform

    def base_dir(self) -> Path:
        override = os.getenv(HOME_ENV_VAR)
        if override:
            return Path(override).expanduser()
        home = Path.home()
        if self.platform == "darwin":
            return home / "Library" / "Application Support" / APP_NAME
        if self.platform.startswith("win"):
            return Path(os.getenv("LOCALAPPDATA") or home / "AppData" / "Local") / APP_NAME
        return Path(os.getenv("XDG_CACHE_HOME") or home / ".cache") / APP_NAME

    def resolve(self) -> Path:
        return self.base_dir() / "models" / self.namespace
