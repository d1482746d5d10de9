import keyring
import pytest

import formula_sync.auth as auth
from formula_sync.errors import ConfigurationError


def test_personal_access_token_takes_precedence():
    env = {"GH_PERSONAL_ACCESS_TOKEN": " pat ", "GITHUB_TOKEN": "gha"}
    assert auth.resolve_auth_token(env) == "pat"


def test_falls_back_to_github_token():
    assert auth.resolve_auth_token({"GH_PERSONAL_ACCESS_TOKEN": " ", "GITHUB_TOKEN": "gha"}) == "gha"


def test_falls_back_to_keyring():
    keyring.set_password("formula_sync", "access_token", "stored-token")
    assert auth.resolve_auth_token({}) == "stored-token"


def test_reads_process_environment(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "from-env")
    assert auth.resolve_auth_token() == "from-env"


def test_require_auth_token_raises_when_missing():
    with pytest.raises(ConfigurationError) as excinfo:
        auth.require_auth_token({})
    assert "GH_PERSONAL_ACCESS_TOKEN or GITHUB_TOKEN" in str(excinfo.value)


def test_keyring_errors_are_reported(monkeypatch, capsys):
    def broken(service, username):
        raise RuntimeError("locked")

    monkeypatch.setattr(auth.keyring, "get_password", broken)
    assert auth.resolve_auth_token({}) is None
    assert "locked" in capsys.readouterr().err


def test_mask_token():
    assert auth.mask_token("short") == "*****"
    assert auth.mask_token("ghp_1234567890") == "ghp_...7890"
