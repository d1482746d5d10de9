"""Argument models shared across formula_sync modules."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class SyncArgs:
    """Arguments for a single `formula_sync` run."""

    repository: Optional[str] = None
    tap: Optional[str] = None
    formula: Optional[str] = None
    name: Optional[str] = None
    message: Optional[str] = None
    rubocop_config: Optional[str] = None
    verbose: bool = False
    dry_run: bool = False
    skip_normalize: bool = False
