"""Application context for injectable dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional

import httpx

from .config import Settings
from .http import http_timeout
from .normalizer import normalize

HttpClientFactory = Callable[[httpx.Timeout], httpx.Client]
Normalizer = Callable[[str, str], str]


def default_http_client_factory(timeout: httpx.Timeout) -> httpx.Client:
    return httpx.Client(timeout=timeout, follow_redirects=True)


@dataclass(frozen=True)
class AppContext:
    """Shared dependencies for a sync run (settings, HTTP, formatter)."""

    settings: Settings = field(default_factory=Settings)
    http_client_factory: HttpClientFactory = default_http_client_factory
    normalizer: Optional[Normalizer] = None
    environ: Optional[Mapping[str, str]] = None

    def new_http_client(self) -> httpx.Client:
        return self.http_client_factory(http_timeout(self.settings.http_timeout))

    def normalize(self, text: str, *, name: str) -> str:
        if self.normalizer is not None:
            return self.normalizer(text, name)
        return normalize(text, name=name, settings=self.settings)
