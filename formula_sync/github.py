"""Minimal GitHub REST client for releases, tags and repository contents."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

import httpx

from .console import log_debug
from .constants import DEFAULT_API_URL, MAX_TAG_PAGES, TAGS_PAGE_SIZE
from .errors import CommitConflictError, NetworkError
from .http import describe_http_error, next_page_url, request_headers, request_with_retries
from .utils import as_dict, pick, redact, safe_str


@dataclass(frozen=True)
class Repository:
    full_name: str
    name: str
    owner: str
    clone_url: str


@dataclass(frozen=True)
class Asset:
    name: str
    download_url: str


@dataclass(frozen=True)
class Release:
    tag_name: str
    assets: List[Asset] = field(default_factory=list)
    name: Optional[str] = None
    published_at: Optional[str] = None


@dataclass(frozen=True)
class Tag:
    name: str
    commit_sha: str


@dataclass(frozen=True)
class FormulaBlob:
    path: str
    sha: str
    content: str


def _parse_asset(record: Dict[str, Any]) -> Optional[Asset]:
    name = safe_str(pick(record, "name"))
    url = safe_str(pick(record, "browser_download_url", "url"))
    if not name or not url:
        return None
    return Asset(name=name, download_url=url)


def _parse_release(record: Dict[str, Any]) -> Optional[Release]:
    tag_name = safe_str(pick(record, "tag_name"))
    if not tag_name:
        return None
    assets = [
        asset
        for asset in (_parse_asset(as_dict(entry)) for entry in record.get("assets") or [])
        if asset is not None
    ]
    return Release(
        tag_name=tag_name,
        assets=assets,
        name=safe_str(pick(record, "name")),
        published_at=safe_str(pick(record, "published_at")),
    )


def _parse_tag(record: Dict[str, Any]) -> Optional[Tag]:
    name = safe_str(pick(record, "name"))
    sha = safe_str(pick(as_dict(record.get("commit")), "sha"))
    if not name or not sha:
        return None
    return Tag(name=name, commit_sha=sha)


class GitHubClient:
    """Wraps an ``httpx.Client`` with the handful of calls a sync run needs.

    Reads are retried on transient failures; the contents update is sent
    once. Every failure surfaces as :class:`NetworkError`.
    """

    def __init__(self, client: httpx.Client, token: str, *, api_url: str = DEFAULT_API_URL) -> None:
        self._client = client
        self._token = token
        self._api_url = api_url.rstrip("/")

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _url(self, path: str) -> str:
        return f"{self._api_url}/{path.lstrip('/')}"

    def _send(
        self,
        method: str,
        url: str,
        *,
        what: str,
        params: Any = None,
        json_body: Any = None,
        accept: str = "application/vnd.github+json",
    ) -> httpx.Response:
        headers = request_headers(self._token, accept=accept)
        try:
            response = request_with_retries(
                self._client,
                method,
                url,
                headers=headers,
                params=params,
                json=json_body,
            )
            log_debug(redact(f"{method} {url} -> {response.status_code}"))
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NetworkError(f"failed to {what}: {describe_http_error(exc)}") from exc
        return response

    def _json(self, response: httpx.Response, what: str) -> Any:
        try:
            return response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise NetworkError(f"{what} response was not valid JSON") from exc

    def fetch_repository(self, full_name: str) -> Repository:
        what = f"fetch repository {full_name}"
        payload = as_dict(self._json(self._send("GET", self._url(f"repos/{full_name}"), what=what), what))
        owner = safe_str(pick(as_dict(payload.get("owner")), "login"))
        name = safe_str(pick(payload, "name"))
        clone_url = safe_str(pick(payload, "clone_url"))
        if not owner or not name or not clone_url:
            raise NetworkError(f"unexpected repository payload for {full_name}")
        return Repository(
            full_name=safe_str(pick(payload, "full_name")) or full_name,
            name=name,
            owner=owner,
            clone_url=clone_url,
        )

    def list_releases(self, full_name: str) -> List[Release]:
        """Releases of ``full_name``, newest first (first page only)."""
        what = f"list releases of {full_name}"
        payload = self._json(self._send("GET", self._url(f"repos/{full_name}/releases"), what=what), what)
        if not isinstance(payload, list):
            raise NetworkError(f"unexpected release payload for {full_name}")
        releases = [_parse_release(as_dict(entry)) for entry in payload]
        return [release for release in releases if release is not None]

    def iter_tags(self, full_name: str) -> Iterator[Tag]:
        what = f"list tags of {full_name}"
        url: Optional[str] = self._url(f"repos/{full_name}/tags")
        params: Optional[Dict[str, Any]] = {"per_page": TAGS_PAGE_SIZE}
        pages = 0
        while url and pages < MAX_TAG_PAGES:
            response = self._send("GET", url, what=what, params=params)
            payload = self._json(response, what)
            if not isinstance(payload, list):
                raise NetworkError(f"unexpected tag payload for {full_name}")
            for entry in payload:
                tag = _parse_tag(as_dict(entry))
                if tag is not None:
                    yield tag
            url = next_page_url(response)
            # The next link already carries the query string.
            params = None
            pages += 1

    def list_tags(self, full_name: str) -> List[Tag]:
        return list(self.iter_tags(full_name))

    def find_tag(self, full_name: str, name: str) -> Optional[Tag]:
        for tag in self.iter_tags(full_name):
            if tag.name == name:
                return tag
        return None

    def fetch_contents(self, full_name: str, path: str) -> FormulaBlob:
        what = f"fetch {path} from {full_name}"
        response = self._send("GET", self._url(f"repos/{full_name}/contents/{path.lstrip('/')}"), what=what)
        payload = as_dict(self._json(response, what))
        sha = safe_str(payload.get("sha"))
        encoded = safe_str(payload.get("content"))
        if not sha or encoded is None:
            raise NetworkError(f"{path} in {full_name} is not a file")
        try:
            content = base64.b64decode(encoded).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise NetworkError(f"failed to decode {path} from {full_name}: {exc}") from exc
        return FormulaBlob(path=path, sha=sha, content=content)

    def download(self, url: str) -> bytes:
        response = self._send("GET", url, what=f"download {url}", accept="application/octet-stream")
        return response.content

    def update_contents(
        self,
        full_name: str,
        path: str,
        *,
        message: str,
        sha: str,
        content: str,
    ) -> Optional[str]:
        """Commit ``content`` to ``path``; returns the new commit sha."""
        url = self._url(f"repos/{full_name}/contents/{path.lstrip('/')}")
        body = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "sha": sha,
        }
        try:
            response = self._send("PUT", url, what=f"update {path} in {full_name}", json_body=body)
        except NetworkError as exc:
            cause = exc.__cause__
            if isinstance(cause, httpx.HTTPStatusError) and _is_stale_write(cause.response):
                raise CommitConflictError(
                    f"{path} in {full_name} changed since it was fetched: {describe_http_error(cause)}"
                ) from cause
            raise
        payload = as_dict(self._json(response, "contents update"))
        return safe_str(pick(as_dict(payload.get("commit")), "sha"))


def _is_stale_write(response: httpx.Response) -> bool:
    if response.status_code == 409:
        return True
    if response.status_code != 422:
        return False
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError):
        return False
    message = safe_str(as_dict(data).get("message")) or ""
    return "sha" in message.lower()
