"""Non-overlapping text edits over an immutable source string."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Tuple

from .errors import EditConflictError


@dataclass(frozen=True)
class Span:
    """Half-open ``[start, end)`` range of offsets into the original text."""

    start: int
    end: int

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    def text(self, source: str) -> str:
        return source[self.start : self.end]


@dataclass(frozen=True)
class TextEdit:
    span: Span
    text: str
    sequence: int

    def overlaps(self, other: "TextEdit") -> bool:
        a, b = self.span, other.span
        if a.is_empty and b.is_empty:
            return False
        if a.is_empty:
            return b.start < a.start < b.end
        if b.is_empty:
            return a.start < b.start < a.end
        return a.start < b.end and b.start < a.end


class SourceRewriter:
    """Collects replacements and insertions, then stitches them in one pass.

    All spans refer to the original source. An edit that falls outside the
    source or overlaps an earlier edit raises :class:`EditConflictError`
    when it is recorded. Insertions at the same point are applied in the
    order they were recorded.
    """

    def __init__(self, source: str) -> None:
        self._source = source
        self._edits: List[TextEdit] = []

    @property
    def source(self) -> str:
        return self._source

    @property
    def edits(self) -> Tuple[TextEdit, ...]:
        return tuple(self._edits)

    def _record(self, span: Span, text: str) -> None:
        if not 0 <= span.start <= span.end <= len(self._source):
            raise EditConflictError(
                f"edit range {span.start}..{span.end} is outside the document "
                f"(length {len(self._source)})"
            )
        edit = TextEdit(span, text, len(self._edits))
        for existing in self._edits:
            if edit.overlaps(existing):
                raise EditConflictError(
                    f"edit range {span.start}..{span.end} overlaps "
                    f"{existing.span.start}..{existing.span.end}"
                )
        self._edits.append(edit)

    def replace(self, span: Span, text: str) -> None:
        self._record(span, text)

    def remove(self, span: Span) -> None:
        self._record(span, "")

    def insert_before(self, span: Span, text: str) -> None:
        self._record(Span(span.start, span.start), text)

    def insert_after(self, span: Span, text: str) -> None:
        self._record(Span(span.end, span.end), text)

    @contextmanager
    def transaction(self) -> Iterator["SourceRewriter"]:
        """Discard every edit recorded inside the block if it raises."""
        checkpoint = len(self._edits)
        try:
            yield self
        except BaseException:
            del self._edits[checkpoint:]
            raise

    def process(self) -> str:
        ordered = sorted(
            self._edits,
            key=lambda edit: (edit.span.start, not edit.span.is_empty, edit.sequence),
        )
        parts: List[str] = []
        position = 0
        for edit in ordered:
            parts.append(self._source[position : edit.span.start])
            parts.append(edit.text)
            position = edit.span.end
        parts.append(self._source[position:])
        return "".join(parts)
