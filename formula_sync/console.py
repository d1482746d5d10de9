"""Console helpers for formula_sync."""

from __future__ import annotations

import sys

from .constants import PACKAGE_NAME

_VERBOSE = False


def configure_console(*, verbose: bool = False) -> None:
    global _VERBOSE
    _VERBOSE = verbose


def log(message: str) -> None:
    print(f"[{PACKAGE_NAME}] {message}", file=sys.stdout)


def log_debug(message: str) -> None:
    if not _VERBOSE:
        return
    print(f"[{PACKAGE_NAME}] {message}", file=sys.stdout)


def log_warning(message: str) -> None:
    print(f"[{PACKAGE_NAME}] warning: {message}", file=sys.stderr)


def log_error(message: str) -> None:
    print(f"[{PACKAGE_NAME}] {message}", file=sys.stderr)


