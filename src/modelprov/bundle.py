#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class LoadedModel:
    name: str
    path: Path
    handle: Any
    attempts: int = 1
    """Number of load attempts it took, 1 if the first attempt succeeded."""


@dataclass(frozen=True)
class ProvisioningBundle:
    """Every required model, loaded, plus how long fetching and loading took.

    Only ever constructed with one `LoadedModel` per catalog entry; there is no partially populated bundle.
    """

    models: Mapping[str, LoadedModel]
    download_duration: float
    """Wall-clock seconds of the parallel fetch phase, 0.0 if nothing was fetched."""
    load_duration: float
    """Wall-clock seconds of the parallel load phase, recovery included."""

    @classmethod
    def from_models(
        cls, models: Iterable[LoadedModel], *, download_duration: float, load_duration: float
    ) -> ProvisioningBundle:
        return cls(
            models=MappingProxyType({model.name: model for model in models}),
            download_duration=download_duration,
            load_duration=load_duration,
        )

    @property
    def paths(self) -> dict[str, Path]:
        return {name: model.path for name, model in self.models.items()}

    def __getitem__(self, name: str) -> Any:
        return self.models[name].handle

    def __contains__(self, name: object) -> bool:
        return name in self.models

    def __len__(self) -> int:
        return len(self.models)
