#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import zipfile
from enum import Enum
from pathlib import Path

from loguru import logger

_SUFFIXES = {
    ".onnx": "onnx",
    ".pt": "torchscript",
    ".pth": "torchscript",
    ".ts": "torchscript",
    ".jit": "torchscript",
}


class ArtifactFormat(str, Enum):
    ONNX = "onnx"
    TORCHSCRIPT = "torchscript"

    @classmethod
    def from_path(cls, path: str | Path) -> ArtifactFormat:
        """Infers the artifact format from the file suffix.

        Raises:
            ValueError: If the suffix does not belong to a supported format.
        """
        suffix = Path(path).suffix.lower()
        if suffix not in _SUFFIXES:
            raise ValueError(f"Unsupported artifact suffix {suffix!r} for {Path(path).name!r}")
        return cls(_SUFFIXES[suffix])

    def is_structurally_valid(self, path: Path) -> bool:
        """Checks that `path` holds a complete, loadable artifact of this format without instantiating it."""
        if not path.is_file() or path.stat().st_size == 0:
            return False
        if self is ArtifactFormat.ONNX:
            return _is_valid_onnx(path)
        return _is_valid_torchscript(path)


def _is_valid_onnx(path: Path) -> bool:
    import onnx

    try:
        model = onnx.load(str(path), load_external_data=False)
        onnx.checker.check_model(model)
    except Exception as exc:
        logger.debug(f"{path.name} is not a valid ONNX model: {exc}")
        return False
    return True


def _is_valid_torchscript(path: Path) -> bool:
    # torch.jit.save writes a zip archive with `<archive>/data.pkl` and `<archive>/code/...` records
    try:
        with zipfile.ZipFile(path) as archive:
            names = archive.namelist()
            if archive.testzip() is not None:
                return False
    except (zipfile.BadZipFile, OSError) as exc:
        logger.debug(f"{path.name} is not a valid TorchScript archive: {exc}")
        return False
    has_data = any(name.endswith("/data.pkl") or name == "data.pkl" for name in names)
    has_code = any("/code/" in name or name.startswith("code/") for name in names)
    return has_data and has_code
