import pytest

from formula_sync import config
from formula_sync.constants import DEFAULT_API_URL, DEFAULT_RUBOCOP_CONFIG
from formula_sync.errors import ConfigurationError


def test_defaults_without_config_file(tmp_path):
    settings = config.load_settings(tmp_path / "missing.toml", environ={})
    assert settings == config.Settings()
    assert settings.api_url == DEFAULT_API_URL
    assert settings.rubocop_config == DEFAULT_RUBOCOP_CONFIG


def test_config_file_values(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(
        'api_url = "https://ghe.example.com/api/v3/"\n'
        'rubocop = "/opt/rubocop"\n'
        'rubocop_config = "~/.rubocop.yml"\n'
        "http_timeout = 5\n",
        encoding="utf-8",
    )
    settings = config.load_settings(path, environ={})
    assert settings.api_url == "https://ghe.example.com/api/v3"
    assert settings.rubocop == "/opt/rubocop"
    assert settings.rubocop_config == "~/.rubocop.yml"
    assert settings.http_timeout == 5.0


def test_environment_overrides_config_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text('rubocop = "/opt/rubocop"\n', encoding="utf-8")
    settings = config.load_settings(
        path,
        environ={
            "GITHUB_API_URL": "https://ghe.local/api/v3",
            "FORMULA_SYNC_RUBOCOP": "/env/rubocop",
        },
    )
    assert settings.api_url == "https://ghe.local/api/v3"
    assert settings.rubocop == "/env/rubocop"


def test_invalid_timeout_is_ignored(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("http_timeout = -1\n", encoding="utf-8")
    assert config.load_settings(path, environ={}).http_timeout == config.Settings().http_timeout


def test_invalid_toml_raises(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text("api_url = \n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        config.load_settings(path, environ={})


def test_resolve_config_path_honours_env(monkeypatch, tmp_path):
    target = tmp_path / "custom.toml"
    monkeypatch.setenv("FORMULA_SYNC_CONFIG", str(target))
    assert config.resolve_config_path() == target


def test_default_config_path_is_toml(monkeypatch):
    monkeypatch.delenv("FORMULA_SYNC_CONFIG", raising=False)
    path = config.resolve_config_path()
    assert path.name == "config.toml"
    assert "formula_sync" in str(path)
