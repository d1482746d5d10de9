"""Shared constants for formula_sync."""

from __future__ import annotations

PACKAGE_NAME = "formula_sync"

TOKEN_ENV_VARS = ("GH_PERSONAL_ACCESS_TOKEN", "GITHUB_TOKEN")
CONFIG_ENV_VAR = "FORMULA_SYNC_CONFIG"
API_URL_ENV_VAR = "GITHUB_API_URL"
RUBOCOP_ENV_VAR = "FORMULA_SYNC_RUBOCOP"
RUBOCOP_CONFIG_ENV_VAR = "FORMULA_SYNC_RUBOCOP_CONFIG"
VERBOSE_ENV_VAR = "FORMULA_SYNC_VERBOSE"

KEYRING_SERVICE = "formula_sync"
KEYRING_USERNAME = "access_token"

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_RUBOCOP = "rubocop"
# Homebrew's own style config, as shipped in the homebrew/brew image.
DEFAULT_RUBOCOP_CONFIG = "/Homebrew/Library/.rubocop.yml"
GITHUB_API_VERSION = "2022-11-28"
GITHUB_WEB_URL = "https://github.com"

HTTP_TIMEOUT_SECONDS = 30.0
TAGS_PAGE_SIZE = 100
MAX_TAG_PAGES = 50

EXIT_CODE_OK = 0
EXIT_CODE_FAILURE = 1
EXIT_CODE_INTERRUPT = 130

COMMIT_MESSAGE_TEMPLATE = "Update {name} to {tag}"
