#  Copyright © 2025 Emmi AI GmbH. All rights reserved.

from .huggingface import HuggingFaceFetcher
from .mirror import MirrorFetcher
from .s3 import S3Fetcher
from .types import RemoteFetcher

__all__ = [
    "HuggingFaceFetcher",
    "MirrorFetcher",
    "RemoteFetcher",
    "S3Fetcher",
]
