"""Configuration file and environment support for formula_sync."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from platformdirs import PlatformDirs

from .constants import (
    API_URL_ENV_VAR,
    CONFIG_ENV_VAR,
    DEFAULT_API_URL,
    DEFAULT_RUBOCOP,
    DEFAULT_RUBOCOP_CONFIG,
    HTTP_TIMEOUT_SECONDS,
    PACKAGE_NAME,
    RUBOCOP_CONFIG_ENV_VAR,
    RUBOCOP_ENV_VAR,
)
from .errors import ConfigurationError

try:
    import tomllib  # py311+
except ModuleNotFoundError:  # pragma: no cover (py<311)
    import tomli as tomllib


@dataclass(frozen=True)
class Settings:
    """Tunables that are not part of a single run's arguments."""

    api_url: str = DEFAULT_API_URL
    rubocop: str = DEFAULT_RUBOCOP
    rubocop_config: str = DEFAULT_RUBOCOP_CONFIG
    http_timeout: float = HTTP_TIMEOUT_SECONDS


def default_config_path() -> Path:
    dirs = PlatformDirs(appname=PACKAGE_NAME, appauthor=False, roaming=True)
    return Path(dirs.user_config_path) / "config.toml"


def resolve_config_path() -> Path:
    env_value = (os.environ.get(CONFIG_ENV_VAR) or "").strip()
    if env_value:
        return Path(env_value).expanduser()
    return default_config_path()


def _safe_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _safe_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


def load_settings(
    path: Optional[Path] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build settings from defaults, the config file, then the environment."""
    env = os.environ if environ is None else environ
    settings = Settings()

    config_path = path or resolve_config_path()
    if config_path.exists():
        try:
            data = tomllib.loads(config_path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigurationError(f"failed to read config file {config_path}: {exc}") from exc
        except tomllib.TOMLDecodeError as exc:
            raise ConfigurationError(f"failed to parse config file {config_path}: {exc}") from exc
        settings = replace(
            settings,
            api_url=_safe_str(data.get("api_url")) or settings.api_url,
            rubocop=_safe_str(data.get("rubocop")) or settings.rubocop,
            rubocop_config=_safe_str(data.get("rubocop_config")) or settings.rubocop_config,
            http_timeout=_safe_float(data.get("http_timeout")) or settings.http_timeout,
        )

    return replace(
        settings,
        api_url=(_safe_str(env.get(API_URL_ENV_VAR)) or settings.api_url).rstrip("/"),
        rubocop=_safe_str(env.get(RUBOCOP_ENV_VAR)) or settings.rubocop,
        rubocop_config=_safe_str(env.get(RUBOCOP_CONFIG_ENV_VAR)) or settings.rubocop_config,
    )
