"""GitHub-flavoured HTTP helpers for formula_sync."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

import httpx

from .constants import GITHUB_API_VERSION, HTTP_TIMEOUT_SECONDS
from .utils import safe_str
from .version import USER_AGENT

RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})
RETRY_METHODS = frozenset({"GET", "HEAD"})

_TRANSPORT_SUMMARIES = (
    (httpx.TimeoutException, "request timed out"),
    (httpx.ConnectError, "failed to connect"),
    (httpx.RequestError, "network error"),
)


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 3
    backoff_initial: float = 0.5
    backoff_max: float = 8.0

    def backoff(self, attempt: int) -> float:
        return min(self.backoff_initial * (2 ** (attempt - 1)), self.backoff_max)


DEFAULT_RETRY_POLICY = RetryPolicy()


def http_timeout(seconds: float = HTTP_TIMEOUT_SECONDS) -> httpx.Timeout:
    return httpx.Timeout(seconds, connect=seconds)


def request_headers(
    token: str = "",
    *,
    accept: str = "application/vnd.github+json",
) -> Dict[str, str]:
    headers = {
        "Accept": accept,
        "User-Agent": USER_AGENT,
        "X-GitHub-Api-Version": GITHUB_API_VERSION,
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def rate_limit_reset(response: httpx.Response) -> Optional[float]:
    """Epoch seconds at which an exhausted rate limit resets, if it is exhausted."""
    if (response.headers.get("X-RateLimit-Remaining") or "").strip() != "0":
        return None
    try:
        return float(response.headers.get("X-RateLimit-Reset") or "")
    except ValueError:
        return None


def _validation_errors(payload: Dict[str, Any]) -> List[str]:
    # 422 bodies carry {"errors": [{"resource", "field", "code"} | {"message"} | "text"]}.
    details: List[str] = []
    for entry in payload.get("errors") or []:
        if isinstance(entry, dict):
            text = safe_str(entry.get("message"))
            if not text:
                parts = (safe_str(entry.get(key)) for key in ("resource", "field", "code"))
                text = " ".join(part for part in parts if part)
        else:
            text = safe_str(entry)
        if text and text.strip():
            details.append(text.strip())
    return details


def describe_response(response: httpx.Response) -> str:
    """One line for a failed GitHub response: status, message, field errors, rate limit."""
    text = f"{response.status_code} {response.reason_phrase}".strip()
    try:
        payload = response.json()
    except (json.JSONDecodeError, ValueError):
        payload = None
    if isinstance(payload, dict):
        message = (safe_str(payload.get("message")) or "").strip()
        if message:
            text = f"{text}: {message}"
        errors = _validation_errors(payload)
        if errors:
            text = f"{text} ({'; '.join(errors)})"
    else:
        body = (getattr(response, "text", "") or "").strip()
        if body:
            text = f"{text}: {body.splitlines()[0].strip()}"
    reset = rate_limit_reset(response)
    if reset is not None:
        text = f"{text}; rate limit resets at {time.strftime('%H:%M:%S UTC', time.gmtime(reset))}"
    return text


def describe_http_error(exc: httpx.HTTPError) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return describe_response(exc.response)

    summary = next(
        (label for kind, label in _TRANSPORT_SUMMARIES if isinstance(exc, kind)),
        exc.__class__.__name__,
    )
    message = str(exc).strip()
    if message and message.lower() not in summary:
        summary = f"{summary}: {message}"
    try:
        request = exc.request
    except RuntimeError:
        request = None
    if request is not None:
        summary = f"{summary} ({request.method} {request.url})"
    return summary


def _parse_seconds(value: Optional[str]) -> float:
    try:
        return max(float(value or ""), 0.0)
    except ValueError:
        return 0.0


def _retry_delay(
    response: httpx.Response,
    attempt: int,
    policy: RetryPolicy,
    now: Callable[[], float],
) -> Optional[float]:
    """Seconds to wait before sending the request again, or None to give up."""
    if response.status_code in RETRYABLE_STATUSES:
        retry_after = _parse_seconds(response.headers.get("Retry-After"))
        if retry_after:
            return min(retry_after, policy.backoff_max)
        return policy.backoff(attempt)
    if response.status_code == 403:
        reset = rate_limit_reset(response)
        if reset is not None:
            wait = max(reset - now(), 0.0)
            if wait <= policy.backoff_max:
                return wait
    return None


def request_with_retries(
    client: httpx.Client,
    method: str,
    url: Union[str, httpx.URL],
    *,
    headers: Optional[Dict[str, str]] = None,
    params: Any = None,
    json: Any = None,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    sleep: Callable[[float], None] = time.sleep,
    now: Callable[[], float] = time.time,
) -> httpx.Response:
    """Send a request to GitHub, retrying reads that failed transiently.

    GET and HEAD are retried on 408, 429 and 5xx responses, on transport
    errors, and on a 403 from an exhausted rate limit that resets within
    ``policy.backoff_max`` seconds. Writes are sent once: a contents PUT
    that is replayed after landing fails the blob-sha check anyway.
    """
    method = (method or "GET").upper().strip() or "GET"
    retryable = method in RETRY_METHODS
    attempt = 0
    while True:
        attempt += 1
        final = not retryable or attempt >= policy.attempts
        try:
            response = client.request(method, url, headers=headers, params=params, json=json)
        except httpx.RequestError:
            if final:
                raise
            sleep(policy.backoff(attempt))
            continue
        delay = None if final else _retry_delay(response, attempt, policy, now)
        if delay is None:
            return response
        if delay > 0:
            sleep(delay)


def next_page_url(response: httpx.Response) -> Optional[str]:
    """Return the ``rel="next"`` target of a GitHub ``Link`` header."""
    link = response.headers.get("Link") or response.headers.get("link") or ""
    for part in link.split(","):
        section = part.strip()
        if not section.startswith("<") or ">" not in section:
            continue
        target, _, params = section[1:].partition(">")
        for param in params.split(";"):
            if param.strip().replace(" ", "") == 'rel="next"':
                return target
    return None
