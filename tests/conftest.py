from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import httpx
import keyring
import pytest
from keyring.backend import KeyringBackend
from keyring.errors import PasswordDeleteError

import formula_sync.console as console


class MemoryKeyring(KeyringBackend):
    priority = 1

    def __init__(self) -> None:
        self._storage: Dict[tuple, str] = {}

    def get_password(self, service: str, username: str) -> Optional[str]:
        return self._storage.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        self._storage[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        try:
            del self._storage[(service, username)]
        except KeyError as exc:
            raise PasswordDeleteError(str(exc)) from exc


@pytest.fixture(autouse=True)
def memory_keyring() -> None:
    original = keyring.get_keyring()
    keyring.set_keyring(MemoryKeyring())
    try:
        yield
    finally:
        keyring.set_keyring(original)


@pytest.fixture(autouse=True)
def reset_console() -> None:
    console.configure_console()
    yield
    console.configure_console()


@pytest.fixture(autouse=True)
def clean_token_env(monkeypatch) -> None:
    monkeypatch.delenv("GH_PERSONAL_ACCESS_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_API_URL", raising=False)


class FakeResponse:
    def __init__(
        self,
        url: str,
        *,
        status_code: int = 200,
        content: bytes = b"",
        json_data: Any = None,
        reason: str = "OK",
        headers: Optional[Dict[str, str]] = None,
        method: str = "GET",
    ) -> None:
        self.url = url
        self.method = method
        self.status_code = status_code
        self.content = content
        self._json_data = json_data
        self.reason_phrase = reason
        self.headers: Dict[str, str] = dict(headers or {})
        self.text = (
            content.decode("utf-8", "replace") if isinstance(content, bytes) else str(content)
        )
        if json_data is not None and not content:
            self.text = json.dumps(json_data)

    def json(self) -> Any:
        if self._json_data is not None:
            return self._json_data
        return json.loads(self.content.decode("utf-8"))

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            request = httpx.Request(self.method, self.url)
            raise httpx.HTTPStatusError(
                "error",
                request=request,
                response=self,
            )


class FakeClient:
    def __init__(self, responses: List[FakeResponse], calls: Optional[list] = None) -> None:
        self._responses = list(responses)
        self.calls = [] if calls is None else calls
        self.closed = False

    def __enter__(self) -> FakeClient:
        return self

    def __exit__(self, *exc: Any) -> bool:
        return False

    def close(self) -> None:
        self.closed = True

    @property
    def pending(self) -> List[FakeResponse]:
        return list(self._responses)

    def request(
        self,
        method: str,
        url: Any,
        *,
        headers: Optional[Dict[str, str]] = None,
        params: Any = None,
        json: Any = None,
    ) -> FakeResponse:
        if not self._responses:
            raise AssertionError(f"unexpected request {method} {url}")
        response = self._responses.pop(0)
        assert response.url == str(url), f"expected {response.url}, got {url}"
        assert response.method == method, f"expected {response.method}, got {method}"
        self.calls.append((method, str(url), headers or {}, params, json))
        return response


@pytest.fixture
def fake_response() -> type[FakeResponse]:
    return FakeResponse


@pytest.fixture
def fake_client() -> type[FakeClient]:
    return FakeClient
