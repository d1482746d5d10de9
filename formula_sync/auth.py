"""Access token resolution for formula_sync."""

from __future__ import annotations

import os
from typing import Mapping, Optional

import keyring
from keyring.errors import NoKeyringError

from .console import log_debug, log_error
from .constants import KEYRING_SERVICE, KEYRING_USERNAME, TOKEN_ENV_VARS
from .errors import ConfigurationError


def mask_token(token: str) -> str:
    if len(token) <= 8:
        return "*" * len(token)
    return f"{token[:4]}...{token[-4:]}"


def _load_keyring_token() -> Optional[str]:
    try:
        secret = keyring.get_password(KEYRING_SERVICE, KEYRING_USERNAME)
    except NoKeyringError:
        return None
    except Exception as exc:
        log_error(f"failed to read stored credentials from keyring: {exc}")
        return None
    if not secret:
        return None
    return secret.strip() or None


def resolve_auth_token(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    env = os.environ if environ is None else environ
    for name in TOKEN_ENV_VARS:
        value = (env.get(name) or "").strip()
        if value:
            log_debug(f"using access token from {name} ({mask_token(value)})")
            return value
    token = _load_keyring_token()
    if token:
        log_debug(f"using access token from keyring ({mask_token(token)})")
    return token


def require_auth_token(environ: Optional[Mapping[str, str]] = None) -> str:
    token = resolve_auth_token(environ)
    if not token:
        names = " or ".join(TOKEN_ENV_VARS)
        raise ConfigurationError(
            f"{names} environment variable is not set "
            f"(or store a token with `keyring set {KEYRING_SERVICE} {KEYRING_USERNAME}`)"
        )
    return token
