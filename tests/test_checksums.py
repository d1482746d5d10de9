import hashlib

import pytest

from formula_sync.checksums import resolve_checksums, sha256_hex
from formula_sync.errors import NetworkError
from formula_sync.github import Asset


def test_sha256_hex():
    assert sha256_hex(b"") == hashlib.sha256(b"").hexdigest()
    assert len(sha256_hex(b"bottle")) == 64


def test_resolve_checksums_downloads_each_asset_in_order():
    platforms = {
        "sonoma": Asset("a.tar.gz", "https://example.com/a"),
        "x86_64_linux": Asset("b.tar.gz", "https://example.com/b"),
    }
    downloaded = []

    def download(url):
        downloaded.append(url)
        return url.encode()

    checksums = resolve_checksums(platforms, download)
    assert downloaded == ["https://example.com/a", "https://example.com/b"]
    assert list(checksums) == ["sonoma", "x86_64_linux"]
    assert checksums["sonoma"] == hashlib.sha256(b"https://example.com/a").hexdigest()


def test_resolve_checksums_propagates_download_errors():
    def download(url):
        raise NetworkError(f"failed to download {url}")

    with pytest.raises(NetworkError):
        resolve_checksums({"sonoma": Asset("a", "https://example.com/a")}, download)


def test_resolve_checksums_with_no_platforms():
    assert resolve_checksums({}, lambda url: b"") == {}
