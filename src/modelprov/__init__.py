#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from .bundle import LoadedModel, ProvisioningBundle
from .catalog import ArtifactCatalog, ArtifactSpec, diarization_catalog
from .config import ArtifactConfig, ProvisioningConfig
from .errors import (
    ArtifactNotFoundError,
    DownloadError,
    FetchPhaseError,
    IncompleteWriteError,
    LoadError,
    ProvisioningError,
    RetryExhausted,
    TransportError,
    UsageError,
    ValidationFailure,
)
from .loader import ComputeAffinity, ModelLoader
from .provisioner import Provisioner
from .recovery import RecoveryCoordinator
from .store import ArtifactState, LocalStore

__all__ = [
    # --- from bundle:
    "LoadedModel",
    "ProvisioningBundle",
    # --- from catalog:
    "ArtifactCatalog",
    "ArtifactSpec",
    "diarization_catalog",
    # --- from config:
    "ArtifactConfig",
    "ProvisioningConfig",
    # --- from errors:
    "ArtifactNotFoundError",
    "DownloadError",
    "FetchPhaseError",
    "IncompleteWriteError",
    "LoadError",
    "ProvisioningError",
    "RetryExhausted",
    "TransportError",
    "UsageError",
    "ValidationFailure",
    # --- from loader:
    "ComputeAffinity",
    "ModelLoader",
    # --- from provisioner:
    "Provisioner",
    # --- from recovery:
    "RecoveryCoordinator",
    # --- from store:
    "ArtifactState",
    "LocalStore",
]
