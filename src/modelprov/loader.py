#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from loguru import logger

from modelprov.errors import LoadError
from modelprov.formats import ArtifactFormat

CPU_PROVIDER = "CPUExecutionProvider"
# local hardware backends; remote invokers such as AzureExecutionProvider are never selected
ACCELERATOR_PROVIDERS = frozenset(
    {
        "TensorrtExecutionProvider",
        "CUDAExecutionProvider",
        "ROCMExecutionProvider",
        "MIGraphXExecutionProvider",
        "CoreMLExecutionProvider",
        "DmlExecutionProvider",
        "OpenVINOExecutionProvider",
    }
)


class ComputeAffinity(str, Enum):
    """Hardware units a loaded model may execute on."""

    CPU_ONLY = "cpu-only"
    CPU_AND_ACCELERATOR = "cpu-and-accelerator"


class Loader(Protocol):
    """Turns a local artifact into an in-memory model handle. Must never modify the file."""

    def load(self, path: Path, affinity: ComputeAffinity) -> Any: ...


def onnx_execution_providers(affinity: ComputeAffinity) -> list[str]:
    """ONNX Runtime providers for the given affinity: available hardware accelerators in runtime order, then CPU."""
    if affinity is ComputeAffinity.CPU_ONLY:
        return [CPU_PROVIDER]
    import onnxruntime as ort

    accelerators = [name for name in ort.get_available_providers() if name in ACCELERATOR_PROVIDERS]
    return [*accelerators, CPU_PROVIDER]


def torch_device(affinity: ComputeAffinity) -> str:
    """Best torch device for the given affinity. GPU > MPS > CPU."""
    if affinity is ComputeAffinity.CPU_ONLY:
        return "cpu"
    import torch

    if torch.cuda.is_available():
        return "cuda"
    if torch.backends.mps.is_available():
        return "mps"
    return "cpu"


class ModelLoader:
    """Loads ONNX models into ONNX Runtime sessions and TorchScript archives into `torch.jit.ScriptModule`s."""

    def load(self, path: Path, affinity: ComputeAffinity) -> Any:
        """Opens the artifact at `path` restricted to the hardware named by `affinity`.

        Args:
            path: Local artifact path.
            affinity: Compute affinity applied to the runtime handle.

        Returns:
            - An `onnxruntime.InferenceSession` or a `torch.jit.ScriptModule` in eval mode.

        Raises:
            LoadError: If the file is unreadable, malformed, or incompatible with the runtime.
        """
        path = Path(path)
        try:
            artifact_format = ArtifactFormat.from_path(path)
        except ValueError as exc:
            raise LoadError(str(exc), artifacts=[path.name]) from exc

        try:
            if artifact_format is ArtifactFormat.ONNX:
                handle = self._load_onnx(path, affinity)
            else:
                handle = self._load_torchscript(path, affinity)
        except Exception as exc:
            raise LoadError(f"Could not load {path}: {exc}", artifacts=[path.name]) from exc
        logger.debug(f"Loaded {path.name} ({artifact_format.value}, {affinity.value})")
        return handle

    @staticmethod
    def _load_onnx(path: Path, affinity: ComputeAffinity) -> Any:
        import onnxruntime as ort

        providers = onnx_execution_providers(affinity)
        logger.debug(f"Creating ONNX Runtime session for {path.name} with providers={providers}")
        return ort.InferenceSession(str(path), providers=providers)

    @staticmethod
    def _load_torchscript(path: Path, affinity: ComputeAffinity) -> Any:
        import torch

        module = torch.jit.load(str(path), map_location=torch_device(affinity))
        module.eval()
        return module
