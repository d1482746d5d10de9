"""Recognize bottle archives among a release's assets."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

from .console import log_debug, log_warning
from .github import Asset


def strip_version_prefix(tag: str) -> str:
    return tag[1:] if tag.startswith("v") else tag


def bottle_pattern(formula_name: str, tag: str) -> Pattern[str]:
    """``<formula>-<version>.<platform>.bottle.[<rebuild>.]tar.gz``"""
    return re.compile(
        re.escape(formula_name)
        + "-"
        + re.escape(strip_version_prefix(tag))
        + r"\.(?P<platform>[^.]+)\.bottle\.(?:(?P<rebuild>\d+)\.)?tar\.gz"
    )


@dataclass(frozen=True)
class RebuildConflict:
    platform: str
    declared: int
    kept: int


@dataclass(frozen=True)
class RebuildState:
    """Accumulator for the rebuild counter; the first declared value wins."""

    value: Optional[int] = None
    seen_conflict: bool = False

    def fold(self, platform: str, declared: Optional[int]) -> Tuple["RebuildState", Optional[RebuildConflict]]:
        if declared is None:
            return self, None
        if self.value is None:
            return RebuildState(declared, self.seen_conflict), None
        if declared != self.value:
            return RebuildState(self.value, True), RebuildConflict(platform, declared, self.value)
        return self, None


@dataclass(frozen=True)
class BottleMatch:
    platforms: Dict[str, Asset] = field(default_factory=dict)
    rebuild: Optional[int] = None
    conflicts: Tuple[RebuildConflict, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.platforms


def match_bottles(formula_name: str, tag: str, assets: Iterable[Asset]) -> BottleMatch:
    pattern = bottle_pattern(formula_name, tag)
    platforms: Dict[str, Asset] = {}
    conflicts: List[RebuildConflict] = []
    state = RebuildState()
    for asset in assets:
        match = pattern.fullmatch(asset.name)
        if match is None:
            continue
        platform = match.group("platform")
        if not platform:
            continue
        raw_rebuild = match.group("rebuild")
        declared = int(raw_rebuild) if raw_rebuild is not None else None
        state, conflict = state.fold(platform, declared)
        if conflict is not None:
            log_warning(
                f"rebuild number for {platform} ({conflict.declared}) doesn't match "
                f"previously declared value ({conflict.kept}), ignoring"
            )
            conflicts.append(conflict)
        elif declared is not None:
            log_debug(f"found rebuild number {declared} for {platform}")
        log_debug(f"matched bottle {asset.name} for {platform}")
        platforms[platform] = asset
    return BottleMatch(platforms=platforms, rebuild=state.value, conflicts=tuple(conflicts))
