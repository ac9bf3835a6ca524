#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import threading
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any, TypeVar
from urllib.parse import urlparse
from urllib.request import url2pathname

from loguru import logger

from modelprov.bundle import LoadedModel, ProvisioningBundle
from modelprov.catalog import ArtifactCatalog, ArtifactSpec
from modelprov.config import ProvisioningConfig
from modelprov.directories import DirectoryResolver, PlatformDirectoryResolver, StaticDirectoryResolver
from modelprov.errors import DownloadError, FetchPhaseError, LoadError, ProvisioningError, UsageError
from modelprov.fetchers import HuggingFaceFetcher, MirrorFetcher, RemoteFetcher, S3Fetcher
from modelprov.loader import ComputeAffinity, Loader, ModelLoader
from modelprov.parallel import ParallelErrors, parallel_map_collect_errors
from modelprov.recovery import RecoveryCoordinator
from modelprov.stopwatch import Stopwatch
from modelprov.store import ArtifactState, LocalStore

R = TypeVar("R")

LocalReference = str | Path


def fetcher_from_config(config: ProvisioningConfig) -> RemoteFetcher:
    if config.source == "s3":
        return S3Fetcher()
    if config.source == "mirror":
        return MirrorFetcher(config.mirror_root)  # type: ignore[arg-type]
    return HuggingFaceFetcher()


def as_local_path(reference: Any) -> Path:
    """Converts a local file reference (a `Path`, a plain path or a ``file://`` URI) to a `Path`.

    Purely syntactic: the filesystem is not touched.

    Raises:
        UsageError: If `reference` is not a local file reference.
    """
    if isinstance(reference, Path):
        return reference
    if not isinstance(reference, str) or not reference:
        raise UsageError(f"Expected a local file path or file:// URI, got {reference!r}")
    parsed = urlparse(reference)
    # single letter schemes are Windows drive letters
    if parsed.scheme == "" or len(parsed.scheme) == 1:
        return Path(reference)
    if parsed.scheme == "file" and parsed.netloc in ("", "localhost"):
        return Path(url2pathname(parsed.path))
    raise UsageError(f"{reference!r} is not a local file reference")


class Provisioner:
    """Makes sure every artifact of a catalog is on disk, valid and loaded.

    `acquire` runs ``scan -> fetch (parallel) -> load (parallel, with recovery)`` and returns a
    `ProvisioningBundle` or raises; `load_local` loads caller-owned files without fetching or recovery.

    Args:
        catalog: Artifacts to provision.
        fetcher: Remote store used for missing and corrupted artifacts.
        loader: Model loader. Defaults to `ModelLoader`.
        store: Local store. Defaults to `LocalStore`.
        max_retries: Heals per artifact when loading fails.
        compute_affinity: Hardware the loaded models may use.
        directory_resolver: Decides the models directory when `acquire` is called without one.
        max_workers: Thread pool size per phase. Defaults to one worker per artifact.
    """

    def __init__(
        self,
        catalog: ArtifactCatalog,
        fetcher: RemoteFetcher,
        *,
        loader: Loader | None = None,
        store: LocalStore | None = None,
        max_retries: int = 2,
        compute_affinity: ComputeAffinity = ComputeAffinity.CPU_AND_ACCELERATOR,
        directory_resolver: DirectoryResolver | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.catalog = catalog
        self.fetcher = fetcher
        self.loader = loader or ModelLoader()
        self.store = store or LocalStore()
        self.compute_affinity = compute_affinity
        self.directory_resolver = directory_resolver or PlatformDirectoryResolver()
        self.max_workers = max_workers
        self.recovery = RecoveryCoordinator(self.store, self.fetcher, self.loader, max_retries=max_retries)

    @classmethod
    def from_config(cls, config: ProvisioningConfig, fetcher: RemoteFetcher | None = None) -> Provisioner:
        resolver: DirectoryResolver = (
            StaticDirectoryResolver(config.directory)
            if config.directory
            else PlatformDirectoryResolver(namespace=config.namespace)
        )
        return cls(
            catalog=config.to_catalog(),
            fetcher=fetcher or fetcher_from_config(config),
            max_retries=config.max_retries,
            compute_affinity=config.compute_affinity,
            directory_resolver=resolver,
            max_workers=config.max_workers,
        )

    @property
    def max_retries(self) -> int:
        return self.recovery.max_retries

    def resolve_directory(self, directory: str | Path | None = None) -> Path:
        return Path(directory).expanduser() if directory is not None else self.directory_resolver.resolve()

    def status(self, directory: str | Path | None = None) -> dict[str, ArtifactState]:
        """Current state of every artifact, without modifying anything."""
        return self.store.scan(self.catalog, self.resolve_directory(directory))

    def acquire(self, directory: str | Path | None = None) -> ProvisioningBundle:
        """Fetches what is missing or corrupted, then loads every artifact.

        Args:
            directory: Models directory. Defaults to the directory resolver's choice. Created if needed.

        Returns:
            - A bundle holding every loaded model with the fetch and load phase durations.

        Raises:
            FetchPhaseError: If any fetch of the fetch phase failed (raised after all fetches settled).
            RetryExhausted: If an artifact kept failing to load after `max_retries` heals.
            DownloadError: If a re-fetch during a heal failed.
        """
        models_dir = self.resolve_directory(directory)
        models_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"Checking for existing models in {models_dir}")
        states = self.store.scan(self.catalog, models_dir)
        needs_fetch = [spec for spec in self.catalog if states[spec.name] is not ArtifactState.VALID]

        download_duration = 0.0
        if needs_fetch:
            for spec in needs_fetch:
                if states[spec.name] is ArtifactState.INVALID:
                    logger.info(f"[{spec.name}] removing invalid artifact")
                    self.store.purge(spec, models_dir)
            logger.info(f"Fetching missing or invalid models: {', '.join(spec.name for spec in needs_fetch)}")
            with Stopwatch() as download_watch:
                self._fetch_all(needs_fetch, models_dir)
            download_duration = download_watch.elapsed_seconds
            logger.info(f"Fetched {len(needs_fetch)} artifact(s) in {download_duration:.2f}s")
        else:
            logger.info("Valid models already exist, skipping download")

        cancelled = threading.Event()
        with Stopwatch() as load_watch:
            models = self._run_phase(
                lambda spec: self.recovery.load(spec, models_dir, self.compute_affinity, cancelled=cancelled),
                list(self.catalog),
                phase="load",
                cancel_event=cancelled,
            )
        logger.info(f"Loaded {len(models)} model(s) in {load_watch.elapsed_seconds:.2f}s")

        return ProvisioningBundle.from_models(
            models, download_duration=download_duration, load_duration=load_watch.elapsed_seconds
        )

    def load_local(self, paths_by_name: Mapping[str, LocalReference]) -> ProvisioningBundle:
        """Loads caller-supplied local files. Never fetches, never deletes, never retries.

        Args:
            paths_by_name: One local file reference per catalog entry, keyed by artifact name.

        Raises:
            UsageError: If the keys do not match the catalog or a value is not a local file reference.
                Raised before any filesystem access.
            LoadError: If a file cannot be loaded.
        """
        expected = set(self.catalog.names)
        given = set(paths_by_name)
        if given != expected:
            raise UsageError(
                f"load_local needs exactly one path per artifact; "
                f"missing={sorted(expected - given)} unexpected={sorted(given - expected)}",
                artifacts=sorted(expected ^ given),
            )
        paths: dict[str, Path] = {}
        for name, reference in paths_by_name.items():
            try:
                paths[name] = as_local_path(reference)
            except UsageError as exc:
                exc.artifacts = (name,)
                raise

        def _load(spec: ArtifactSpec) -> LoadedModel:
            path = paths[spec.name]
            try:
                handle = self.loader.load(path, self.compute_affinity)
            except LoadError as exc:
                exc.artifacts = (spec.name,)
                exc.attempts = 1
                raise
            except Exception as exc:
                raise LoadError(f"Could not load {path}: {exc}", artifacts=[spec.name], attempts=1) from exc
            return LoadedModel(name=spec.name, path=path, handle=handle, attempts=1)

        with Stopwatch() as load_watch:
            models = self._run_phase(_load, list(self.catalog), phase="load")
        return ProvisioningBundle.from_models(models, download_duration=0.0, load_duration=load_watch.elapsed_seconds)

    def _fetch_all(self, specs: Sequence[ArtifactSpec], directory: Path) -> None:
        cancelled = threading.Event()

        def _fetch(spec: ArtifactSpec) -> None:
            try:
                self.fetcher.fetch(spec, self.store.path_for(spec, directory), cancelled=cancelled)
            except DownloadError:
                raise
            except Exception as exc:
                raise DownloadError(f"Fetching failed: {exc}", artifacts=[spec.name]) from exc

        try:
            parallel_map_collect_errors(
                _fetch, specs, max_workers=self.max_workers, thread_name_prefix="fetch", cancel_event=cancelled
            )
        except ParallelErrors as errors:
            failures = [(spec.name, exc) for spec, exc in errors.errors]
            for name, exc in failures:
                logger.error(f"[{name}] fetch failed: {exc}")
            raise FetchPhaseError(failures, participants=[spec.name for spec in specs]) from failures[0][1]

    def _run_phase(
        self,
        fn: Callable[[ArtifactSpec], R],
        specs: list[ArtifactSpec],
        phase: str,
        cancel_event: threading.Event | None = None,
    ) -> list[R]:
        try:
            return parallel_map_collect_errors(
                fn, specs, max_workers=self.max_workers, thread_name_prefix=phase, cancel_event=cancel_event
            )
        except ParallelErrors as errors:
            failures = errors.errors
        first: BaseException = failures[0][1]
        for spec, exc in failures[1:]:
            first.add_note(f"{phase} also failed for {spec.name!r}: {exc}")
        if not isinstance(first, ProvisioningError):
            raise ProvisioningError(f"{phase} failed: {first}", artifacts=[failures[0][0].name]) from first
        raise first
