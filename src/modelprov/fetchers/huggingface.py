#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import threading
from pathlib import Path

import requests  # type: ignore[import-untyped]
from huggingface_hub import hf_hub_url
from huggingface_hub.utils import build_hf_headers
from loguru import logger
from requests.exceptions import ChunkedEncodingError, HTTPError, RequestException  # type: ignore[import-untyped]

from modelprov.catalog import ArtifactSpec
from modelprov.credentials import Provider, get_credentials
from modelprov.errors import ArtifactNotFoundError, IncompleteWriteError, TransportError
from modelprov.iohash import DEFAULT_CHUNK, WriteIntegrityError, atomic_write_and_hash
from modelprov.logging_progress import LogProgress

# Hugging Face answers 401 for repos that do not exist when no token is sent.
_NOT_FOUND_STATUS = {401, 403, 404}


class HuggingFaceFetcher:
    """Streams a single file of a Hugging Face repository into the models directory.

    `remote_source_id` is the repo id (``org/name``), `remote_asset_name` the file path inside the repo and
    `revision` the branch, tag or commit.

    Args:
        timeout: Connect/read timeout in seconds for the HTTP request.
        chunk_size: Size of the streamed chunks in bytes.
    """

    def __init__(self, timeout: float = 60, chunk_size: int = DEFAULT_CHUNK) -> None:
        self.timeout = timeout
        self.chunk_size = chunk_size

    def fetch(self, spec: ArtifactSpec, destination: Path, cancelled: threading.Event | None = None) -> None:
        token = get_credentials(Provider.HUGGINGFACE).get("HF_TOKEN")
        url = hf_hub_url(repo_id=spec.remote_source_id, filename=spec.remote_asset_name, revision=spec.revision)
        headers = {**build_hf_headers(token=token), "Accept-Encoding": "identity"}
        logger.info(f"[{spec.name}] downloading {spec.remote_source_id}/{spec.remote_asset_name}@{spec.revision}")

        try:
            with requests.get(url, headers=headers, stream=True, timeout=self.timeout) as resp:
                if resp.status_code in _NOT_FOUND_STATUS:
                    raise ArtifactNotFoundError(
                        f"{spec.remote_source_id}/{spec.remote_asset_name} not found or not accessible "
                        f"(HTTP {resp.status_code})",
                        artifacts=[spec.name],
                    )
                resp.raise_for_status()
                total = int(resp.headers.get("Content-Length") or 0) or None
                # Content-Length counts encoded bytes, iter_content yields decoded ones
                if resp.headers.get("Content-Encoding", "identity").lower() != "identity":
                    total = None
                atomic_write_and_hash(
                    destination,
                    resp.iter_content(self.chunk_size),
                    compute_hash=False,
                    progress=LogProgress(label=spec.name, total_bytes=total),
                    expected_size=total,
                    expected_sha256=spec.sha256,
                    cancelled=cancelled,
                )
        except (ChunkedEncodingError, WriteIntegrityError) as exc:
            raise IncompleteWriteError(f"Incomplete download of {url}: {exc}", artifacts=[spec.name]) from exc
        except HTTPError as exc:
            raise TransportError(f"HTTP error for {url}: {exc}", artifacts=[spec.name]) from exc
        except (RequestException, OSError) as exc:
            raise TransportError(f"Transport failure for {url}: {exc}", artifacts=[spec.name]) from exc

        logger.info(f"[{spec.name}] saved to {destination}")
