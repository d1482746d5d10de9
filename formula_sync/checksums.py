"""SHA-256 checksums for bottle archives."""

from __future__ import annotations

import hashlib
from typing import Callable, Dict, Mapping

from .console import log
from .github import Asset


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def resolve_checksums(
    platforms: Mapping[str, Asset],
    download: Callable[[str], bytes],
) -> Dict[str, str]:
    """Download each asset once and digest it, keeping platform order.

    Download errors propagate, so a run never continues with only some of
    its bottles.
    """
    checksums: Dict[str, str] = {}
    for platform, asset in platforms.items():
        digest = sha256_hex(download(asset.download_url))
        log(f"{platform}: {asset.name} sha256 {digest}")
        checksums[platform] = digest
    return checksums
