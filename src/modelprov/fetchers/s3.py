#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from __future__ import annotations

import threading
from collections.abc import Iterator
from functools import lru_cache
from pathlib import Path

import boto3  # type: ignore[import-untyped]
from botocore import UNSIGNED  # type: ignore[import-untyped]
from botocore.client import BaseClient  # type: ignore[import-untyped]
from botocore.config import Config  # type: ignore[import-untyped]
from botocore.exceptions import BotoCoreError, ClientError  # type: ignore[import-untyped]
from loguru import logger

from modelprov.catalog import ArtifactSpec
from modelprov.credentials import Provider, get_credentials
from modelprov.errors import ArtifactNotFoundError, IncompleteWriteError, TransportError
from modelprov.iohash import DEFAULT_CHUNK, WriteIntegrityError, atomic_write_and_hash
from modelprov.logging_progress import LogProgress

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}


@lru_cache(maxsize=1)
def get_s3_client() -> BaseClient:
    """
    Construct an S3 client from managed credentials (env or config).
    Uses AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY / AWS_SESSION_TOKEN, AWS_REGION and
    AWS_ENDPOINT_URL (MinIO / on-prem) when present.

    Falls back to unsigned access for public buckets when no credentials are provided.
    """
    credentials = get_credentials(Provider.AWS)
    cfg = Config(retries={"max_attempts": 10, "mode": "standard"}, max_pool_connections=16)

    kwargs: dict[str, str] = {}
    for env_name, arg_name in (
        ("AWS_ACCESS_KEY_ID", "aws_access_key_id"),
        ("AWS_SECRET_ACCESS_KEY", "aws_secret_access_key"),
        ("AWS_SESSION_TOKEN", "aws_session_token"),
        ("AWS_REGION", "region_name"),
    ):
        value = str(credentials.get(env_name) or "").strip()
        if value:
            kwargs[arg_name] = value
    endpoint_url = str(credentials.get("AWS_ENDPOINT_URL") or "").strip() or None

    if "aws_access_key_id" not in kwargs:
        logger.info("Using unsigned S3 client (public bucket)")
        cfg = cfg.merge(Config(signature_version=UNSIGNED))
    else:
        logger.info("Using credentialed S3 client")
    return boto3.client("s3", endpoint_url=endpoint_url, config=cfg, **kwargs)


def split_source(remote_source_id: str, asset_name: str) -> tuple[str, str]:
    """Maps ``bucket[/prefix]`` and an asset name to ``(bucket, key)``."""
    bucket, _, prefix = remote_source_id.removeprefix("s3://").partition("/")
    if not bucket:
        raise ValueError(f"S3 source must be 'bucket[/prefix]', got {remote_source_id!r}")
    prefix = prefix.strip("/")
    key = f"{prefix}/{asset_name}" if prefix else asset_name
    return bucket, key


class S3Fetcher:
    """Downloads artifacts from an S3 (or S3 compatible) bucket.

    `remote_source_id` is ``bucket`` or ``bucket/prefix``; `remote_asset_name` is the key below the prefix.
    """

    def __init__(self, client: BaseClient | None = None) -> None:
        self._client = client

    @property
    def client(self) -> BaseClient:
        return self._client if self._client is not None else get_s3_client()

    def fetch(self, spec: ArtifactSpec, destination: Path, cancelled: threading.Event | None = None) -> None:
        bucket, key = split_source(spec.remote_source_id, spec.remote_asset_name)
        logger.info(f"[{spec.name}] downloading s3://{bucket}/{key}")
        try:
            obj = self.client.get_object(Bucket=bucket, Key=key)
            body = obj["Body"]

            def _chunks() -> Iterator[bytes]:
                for part in body.iter_chunks(DEFAULT_CHUNK):
                    if part:
                        yield part

            total = obj.get("ContentLength") or None
            try:
                atomic_write_and_hash(
                    destination,
                    _chunks(),
                    compute_hash=False,
                    progress=LogProgress(label=spec.name, total_bytes=total),
                    expected_size=total,
                    expected_sha256=spec.sha256,
                    cancelled=cancelled,
                )
            finally:
                body.close()
        except ClientError as exc:
            code = str(exc.response.get("Error", {}).get("Code", ""))
            if code in _NOT_FOUND_CODES:
                raise ArtifactNotFoundError(f"s3://{bucket}/{key} does not exist", artifacts=[spec.name]) from exc
            raise TransportError(f"S3 error for s3://{bucket}/{key}: {exc}", artifacts=[spec.name]) from exc
        except WriteIntegrityError as exc:
            raise IncompleteWriteError(
                f"Incomplete download of s3://{bucket}/{key}: {exc}", artifacts=[spec.name]
            ) from exc
        except (BotoCoreError, OSError) as exc:
            raise TransportError(f"Transport failure for s3://{bucket}/{key}: {exc}", artifacts=[spec.name]) from exc

        logger.info(f"[{spec.name}] saved to {destination}")
