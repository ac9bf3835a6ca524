#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import sys
import types
from pathlib import Path

import pytest

from modelprov.errors import LoadError
from modelprov.loader import CPU_PROVIDER, ComputeAffinity, ModelLoader, onnx_execution_providers, torch_device


def _fake_onnxruntime(monkeypatch, providers: list[str]) -> list[dict]:
    sessions: list[dict] = []

    class _Session:
        def __init__(self, path: str, providers: list[str]) -> None:
            sessions.append({"path": path, "providers": providers})

    module = types.SimpleNamespace(get_available_providers=lambda: providers, InferenceSession=_Session)
    monkeypatch.setitem(sys.modules, "onnxruntime", module)
    return sessions


def test_onnx_providers_cpu_only_never_queries_runtime(monkeypatch):
    monkeypatch.setitem(sys.modules, "onnxruntime", None)  # import would fail
    assert onnx_execution_providers(ComputeAffinity.CPU_ONLY) == [CPU_PROVIDER]


def test_onnx_providers_prefer_accelerators(monkeypatch):
    _fake_onnxruntime(monkeypatch, ["CUDAExecutionProvider", CPU_PROVIDER, "CoreMLExecutionProvider"])
    assert onnx_execution_providers(ComputeAffinity.CPU_AND_ACCELERATOR) == [
        "CUDAExecutionProvider",
        "CoreMLExecutionProvider",
        CPU_PROVIDER,
    ]


def test_onnx_providers_skip_remote_invokers(monkeypatch):
    _fake_onnxruntime(monkeypatch, ["AzureExecutionProvider", "DmlExecutionProvider", CPU_PROVIDER])
    assert onnx_execution_providers(ComputeAffinity.CPU_AND_ACCELERATOR) == ["DmlExecutionProvider", CPU_PROVIDER]


def test_onnx_providers_without_accelerator_is_cpu(monkeypatch):
    _fake_onnxruntime(monkeypatch, ["AzureExecutionProvider", CPU_PROVIDER])
    assert onnx_execution_providers(ComputeAffinity.CPU_AND_ACCELERATOR) == [CPU_PROVIDER]


def test_torch_device_cpu_only():
    assert torch_device(ComputeAffinity.CPU_ONLY) == "cpu"


def test_loader_creates_onnx_session_with_affinity(monkeypatch, tmp_path: Path):
    sessions = _fake_onnxruntime(monkeypatch, ["CUDAExecutionProvider", CPU_PROVIDER])
    path = tmp_path / "seg.onnx"
    path.write_bytes(b"model")

    ModelLoader().load(path, ComputeAffinity.CPU_ONLY)
    ModelLoader().load(path, ComputeAffinity.CPU_AND_ACCELERATOR)

    assert sessions == [
        {"path": str(path), "providers": [CPU_PROVIDER]},
        {"path": str(path), "providers": ["CUDAExecutionProvider", CPU_PROVIDER]},
    ]


def test_loader_wraps_backend_errors(monkeypatch, tmp_path: Path):
    def _raise(path: str, providers: list[str]) -> None:
        raise RuntimeError("INVALID_PROTOBUF")

    monkeypatch.setitem(
        sys.modules,
        "onnxruntime",
        types.SimpleNamespace(get_available_providers=lambda: [CPU_PROVIDER], InferenceSession=_raise),
    )
    path = tmp_path / "seg.onnx"
    path.write_bytes(b"broken")

    with pytest.raises(LoadError, match="INVALID_PROTOBUF"):
        ModelLoader().load(path, ComputeAffinity.CPU_ONLY)
    assert path.read_bytes() == b"broken"


def test_loader_rejects_unknown_format(tmp_path: Path):
    with pytest.raises(LoadError):
        ModelLoader().load(tmp_path / "model.bin", ComputeAffinity.CPU_ONLY)


def test_loader_onnx_roundtrip(tmp_path: Path):
    onnx = pytest.importorskip("onnx")
    pytest.importorskip("onnxruntime")
    from onnx import TensorProto, helper

    graph = helper.make_graph(
        [helper.make_node("Identity", ["x"], ["y"])],
        "identity",
        [helper.make_tensor_value_info("x", TensorProto.FLOAT, [1])],
        [helper.make_tensor_value_info("y", TensorProto.FLOAT, [1])],
    )
    model = helper.make_model(graph, opset_imports=[helper.make_opsetid("", 13)])
    model.ir_version = 8
    path = tmp_path / "identity.onnx"
    onnx.save(model, str(path))

    session = ModelLoader().load(path, ComputeAffinity.CPU_ONLY)
    assert [i.name for i in session.get_inputs()] == ["x"]
    assert session.get_providers() == [CPU_PROVIDER]


def test_loader_torchscript_roundtrip(tmp_path: Path):
    torch = pytest.importorskip("torch")

    class _Double(torch.nn.Module):
        def forward(self, x):
            return x * 2

    path = tmp_path / "double.pt"
    torch.jit.save(torch.jit.script(_Double()), str(path))

    module = ModelLoader().load(path, ComputeAffinity.CPU_ONLY)

    assert not module.training
    assert torch.equal(module(torch.ones(2)), torch.full((2,), 2.0))


def test_loader_torchscript_garbage_is_load_error(tmp_path: Path):
    pytest.importorskip("torch")
    path = tmp_path / "garbage.pt"
    path.write_bytes(b"not a torchscript archive")
    with pytest.raises(LoadError):
        ModelLoader().load(path, ComputeAffinity.CPU_ONLY)
