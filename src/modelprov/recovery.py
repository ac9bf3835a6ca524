#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import threading
from pathlib import Path

from loguru import logger

from modelprov.bundle import LoadedModel
from modelprov.catalog import ArtifactSpec
from modelprov.errors import DownloadError, LoadError, ProvisioningError, RetryExhausted, ValidationFailure
from modelprov.fetchers.types import RemoteFetcher
from modelprov.loader import ComputeAffinity, Loader
from modelprov.store import ArtifactState, LocalStore


class RecoveryCoordinator:
    """Loads one artifact, healing it (purge, re-fetch, reload) when the bytes on disk turn out to be bad.

    A failed structural check and a failed load are the same symptom here and go through the same loop:

    1. attempt: classify the file, then load it. Success ends the loop.
    2. bound: after ``max_retries`` heals, the next failure raises `RetryExhausted`.
    3. heal: purge the file, fetch it again, go back to 1. A failed fetch ends the loop immediately.

    So an artifact gets at most ``max_retries + 1`` load attempts.

    Args:
        store: Local store used to classify and purge the artifact.
        fetcher: Remote fetcher used to heal.
        loader: Model loader.
        max_retries: Number of heals allowed per artifact.
    """

    def __init__(self, store: LocalStore, fetcher: RemoteFetcher, loader: Loader, max_retries: int = 2) -> None:
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self.store = store
        self.fetcher = fetcher
        self.loader = loader
        self.max_retries = max_retries

    def load(
        self,
        spec: ArtifactSpec,
        directory: Path,
        affinity: ComputeAffinity,
        cancelled: threading.Event | None = None,
    ) -> LoadedModel:
        """Loads `spec`, healing it when needed. Once `cancelled` is set, no further heal is started."""
        path = self.store.path_for(spec, directory)
        attempts = 0
        retries = 0
        while True:
            attempts += 1
            try:
                handle = self._attempt(spec, directory, path, affinity)
            except (ValidationFailure, LoadError) as exc:
                cause: ProvisioningError = exc
            else:
                if attempts > 1:
                    logger.info(f"[{spec.name}] recovered after {attempts} attempts")
                return LoadedModel(name=spec.name, path=path, handle=handle, attempts=attempts)

            if retries >= self.max_retries:
                logger.error(f"[{spec.name}] giving up after {attempts} attempts: {cause.message}")
                raise RetryExhausted(spec.name, attempts, cause) from cause
            if cancelled is not None and cancelled.is_set():
                raise cause
            retries += 1

            logger.warning(f"[{spec.name}] attempt {attempts} failed ({cause.message}); re-fetching")
            self.store.purge(spec, directory)
            try:
                self.fetcher.fetch(spec, path, cancelled=cancelled)
            except DownloadError as exc:
                exc.artifacts = exc.artifacts or (spec.name,)
                exc.attempts = attempts
                logger.error(f"[{spec.name}] re-fetch failed after {attempts} attempts: {exc.message}")
                raise

    def _attempt(self, spec: ArtifactSpec, directory: Path, path: Path, affinity: ComputeAffinity) -> object:
        state = self.store.classify(spec, directory)
        if state is not ArtifactState.VALID:
            raise ValidationFailure(f"{path} is {state.value}", artifacts=[spec.name])
        try:
            return self.loader.load(path, affinity)
        except LoadError as exc:
            exc.artifacts = (spec.name,)
            raise
        except Exception as exc:
            raise LoadError(f"Could not load {path}: {exc}", artifacts=[spec.name]) from exc
