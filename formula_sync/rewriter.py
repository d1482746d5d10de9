"""Rewrite a formula's version, url and bottle declarations in place."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .console import log_debug
from .constants import GITHUB_WEB_URL
from .document import ANCHOR_NAMES, FormulaDocument
from .errors import StructuralError

_BARE_LABEL_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


@dataclass(frozen=True)
class RewriteSpec:
    """New values for a formula, derived from the latest release."""

    tag: str
    clone_url: str
    revision: str
    owner: str
    repository: str
    checksums: Mapping[str, str] = field(default_factory=dict)
    rebuild: Optional[int] = None

    @property
    def root_url(self) -> str:
        return f"{GITHUB_WEB_URL}/{self.owner}/{self.repository}/releases/download/{self.tag}"


def ruby_string(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("#{", "\\#{")
    return f'"{escaped}"'


def _label(platform: str) -> str:
    if _BARE_LABEL_RE.fullmatch(platform):
        return f"{platform}:"
    return f"{ruby_string(platform)}:"


def render_version(tag: str) -> str:
    return f"version {ruby_string(tag)}"


def render_url(clone_url: str, tag: str, revision: str) -> str:
    return f"url {ruby_string(clone_url)}, tag: {ruby_string(tag)}, revision: {ruby_string(revision)}"


def render_bottle_block(root_url: str, checksums: Mapping[str, str], rebuild: Optional[int] = None) -> str:
    lines = ["bottle do", f"  root_url {ruby_string(root_url)}"]
    if rebuild is not None:
        lines.append(f"  rebuild {rebuild}")
    for platform, checksum in checksums.items():
        lines.append(f"  sha256 cellar: :any, {_label(platform)} {ruby_string(checksum)}")
    lines.append("end")
    return "\n".join(lines)


def indent_continuation(text: str, indent: str) -> str:
    """Indent every line but the first, which lands after existing text."""
    if not indent:
        return text
    return "\n".join(
        line if i == 0 or not line else f"{indent}{line}"
        for i, line in enumerate(text.split("\n"))
    )


def rewrite_formula(document: FormulaDocument, spec: RewriteSpec) -> str:
    rewriter = document.rewriter()
    with rewriter.transaction():
        version = document.version_call()
        if version is not None:
            rewriter.replace(version.span, render_version(spec.tag))
        else:
            log_debug("formula has no version declaration")

        url = document.url_call()
        if url is not None:
            rewriter.replace(url.span, render_url(spec.clone_url, spec.tag, spec.revision))

        block = render_bottle_block(spec.root_url, spec.checksums, spec.rebuild)
        bottle = document.bottle_block()
        if bottle is not None:
            if not spec.checksums:
                log_debug("no bottles in this release; removing bottle block")
                rewriter.remove(bottle.span)
            else:
                indent = document.line_indent(bottle.span.start)
                rewriter.replace(bottle.span, indent_continuation(block, indent))
        elif spec.checksums:
            anchor = document.anchor_call()
            if anchor is None:
                raise StructuralError(
                    "formula has no bottle block and no "
                    + " or ".join(ANCHOR_NAMES)
                    + " declaration to insert one after"
                )
            indent = document.line_indent(anchor.span.start)
            rewriter.insert_after(anchor.span, "\n\n" + indent + indent_continuation(block, indent))
    return rewriter.process()
