#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

from collections.abc import Iterable, Sequence


class ProvisioningError(Exception):
    """Base class for every failure surfaced by the provisioning layer.

    Args:
        message: Human readable description.
        artifacts: Names of the artifacts implicated in the failure.
        attempts: Number of load attempts made for the artifact, if known.
    """

    def __init__(self, message: str, *, artifacts: Iterable[str] = (), attempts: int | None = None) -> None:
        self.artifacts: tuple[str, ...] = tuple(artifacts)
        self.attempts = attempts
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.artifacts:
            parts.append(f"artifacts={', '.join(self.artifacts)}")
        if self.attempts is not None:
            parts.append(f"attempts={self.attempts}")
        return " | ".join(parts)


class DownloadError(ProvisioningError):
    """A remote fetch failed."""


class ArtifactNotFoundError(DownloadError):
    """The remote source or asset does not exist."""


class TransportError(DownloadError):
    """Network or IO failure while fetching."""


class IncompleteWriteError(DownloadError):
    """Fewer (or different) bytes were written than the remote store announced."""


class FetchPhaseError(DownloadError):
    """One or more fetches of the fetch phase failed, raised once all sibling fetches settled.

    Args:
        failures: ``(artifact name, error)`` pairs in the order the failures were observed.
        participants: Names of every artifact that was scheduled for fetching.
    """

    def __init__(self, failures: Sequence[tuple[str, DownloadError]], participants: Iterable[str]) -> None:
        self.failures = list(failures)
        self.participants: tuple[str, ...] = tuple(participants)
        first_name, first_error = self.failures[0]
        failed = ", ".join(name for name, _ in self.failures)
        super().__init__(
            f"Fetching failed for {failed} (fetched together: {', '.join(self.participants)}); "
            f"first failure [{first_name}]: {first_error.message}",
            artifacts=[name for name, _ in self.failures],
        )

    @property
    def first(self) -> DownloadError:
        return self.failures[0][1]


class ValidationFailure(ProvisioningError):
    """A local artifact exists but fails its structural check."""


class LoadError(ProvisioningError):
    """The model loader could not open a local artifact."""


class RetryExhausted(ProvisioningError):
    """Load or validation failures recurred past the retry budget."""

    def __init__(self, artifact: str, attempts: int, last_cause: ProvisioningError) -> None:
        self.last_cause = last_cause
        super().__init__(
            f"Giving up on {artifact!r} after {attempts} load attempts; last failure: {last_cause.message}",
            artifacts=[artifact],
            attempts=attempts,
        )


class UsageError(ProvisioningError, ValueError):
    """The caller violated a precondition, e.g. passed a non-local reference to ``load_local``."""
