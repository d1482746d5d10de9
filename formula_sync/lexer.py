"""Tokenizer for the subset of Ruby that Homebrew formulae are written in.

The tokenizer does not try to understand Ruby. It only has to split the
source into tokens accurately enough that the structural parser in
:mod:`formula_sync.document` can find declarations and their spans. String
contents (including interpolation), comments and heredoc bodies are
consumed as opaque units so brackets and keywords inside them never
confuse the parser.

Every token records its ``start``/``end`` offsets in the original text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .errors import FormulaSyntaxError

IDENT = "ident"
CONST = "const"
KEYWORD = "keyword"
VAR = "var"
LABEL = "label"
SYMBOL = "symbol"
STRING = "string"
NUMBER = "number"
OP = "op"
NEWLINE = "newline"

KEYWORDS = frozenset(
    {
        "BEGIN",
        "END",
        "__FILE__",
        "__LINE__",
        "__dir__",
        "alias",
        "and",
        "begin",
        "break",
        "case",
        "class",
        "def",
        "defined?",
        "do",
        "else",
        "elsif",
        "end",
        "ensure",
        "false",
        "for",
        "if",
        "in",
        "module",
        "next",
        "nil",
        "not",
        "or",
        "redo",
        "rescue",
        "retry",
        "return",
        "self",
        "super",
        "then",
        "true",
        "undef",
        "unless",
        "until",
        "when",
        "while",
        "yield",
    }
)

VALUE_KEYWORDS = frozenset(
    {"end", "self", "true", "false", "nil", "__FILE__", "__LINE__", "__dir__"}
)

OPERATORS = (
    "**=",
    "<=>",
    "===",
    "...",
    "<<=",
    ">>=",
    "&&=",
    "||=",
    "&.",
    "**",
    "==",
    "!=",
    ">=",
    "<=",
    "&&",
    "||",
    "<<",
    ">>",
    "=~",
    "!~",
    "..",
    "::",
    "->",
    "=>",
    "+=",
    "-=",
    "*=",
    "/=",
    "%=",
    "|=",
    "&=",
    "^=",
    "+",
    "-",
    "*",
    "/",
    "%",
    "=",
    "<",
    ">",
    "!",
    "&",
    "|",
    "^",
    "~",
    "?",
    ":",
    ",",
    ".",
    ";",
    "(",
    ")",
    "[",
    "]",
    "{",
    "}",
)

_IDENT_RE = re.compile(r"[^\W\d]\w*(?:[?!](?!=))?")
_VAR_RE = re.compile(r"(?:@@?|\$)[A-Za-z_][A-Za-z0-9_]*|\$[0-9!@&`'+~=/\\,;.<>_*$?:\"]")
_NUMBER_RE = re.compile(
    r"0[xX][0-9a-fA-F_]+|0[bB][01_]+|\d[\d_]*(?:\.\d[\d_]*)?(?:[eE][+-]?\d+)?[ri]?"
)
_SYMBOL_RE = re.compile(r":[A-Za-z_][A-Za-z0-9_]*[?!]?")
_HEREDOC_RE = re.compile(r"<<([~-]?)(?:([\"'`])([^\"'`\n]+)\2|([A-Za-z_][A-Za-z0-9_]*))")
_PERCENT_RE = re.compile(r"%([qQwWiIrsx]?)([^A-Za-z0-9\s])")
_REGEX_FLAGS_RE = re.compile(r"[imxounse]*")
_BLOCK_COMMENT_RE = re.compile(r"=begin\b")
_BLOCK_COMMENT_END_RE = re.compile(r"^=end\b.*$", re.M)
_END_MARKER_RE = re.compile(r"__END__[ \t\r]*(?:\n|$)")

_CLOSING = {"(": ")", "[": "]", "{": "}", "<": ">"}
_INTERPOLATING_PERCENT = frozenset({"", "Q", "W", "I", "r", "x"})


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    start: int
    end: int
    space_before: bool = False

    def is_op(self, *texts: str) -> bool:
        return self.kind == OP and self.text in texts

    def is_keyword(self, *texts: str) -> bool:
        return self.kind == KEYWORD and self.text in texts


def is_value(token: Optional[Token]) -> bool:
    """True when ``token`` can end an expression (operand position is over)."""
    if token is None:
        return False
    if token.kind in (IDENT, CONST, VAR, STRING, NUMBER, SYMBOL):
        return True
    if token.kind == KEYWORD:
        return token.text in VALUE_KEYWORDS
    if token.kind == OP:
        return token.text in (")", "]", "}")
    return False


class _Lexer:
    def __init__(self, source: str) -> None:
        self.source = source
        self.length = len(source)
        self.tokens: List[Token] = []
        self.heredocs: List[Tuple[str, bool]] = []

    def _prev(self) -> Optional[Token]:
        return self.tokens[-1] if self.tokens else None

    def _emit(self, kind: str, start: int, end: int, space: bool) -> None:
        self.tokens.append(Token(kind, self.source[start:end], start, end, space))

    def _literal_allowed(self, pos: int, space: bool) -> bool:
        # Decide whether `/`, `%`, `?` or `<<` at ``pos`` opens a literal.
        prev = self._prev()
        if not is_value(prev):
            return True
        if prev is not None and prev.kind == IDENT and space:
            following = self.source[pos + 1 : pos + 2]
            return following not in ("", " ", "\t", "\n", "=")
        return False

    def _at_line_start(self, pos: int) -> bool:
        return pos == 0 or self.source[pos - 1] == "\n"

    def scan_quoted(self, pos: int, opener: str, closer: str, interpolate: bool) -> int:
        """Return the offset just past the closing delimiter."""
        src = self.source
        start = pos
        depth = 0
        while pos < self.length:
            char = src[pos]
            if char == "\\":
                pos += 2
                continue
            if interpolate and char == "#" and src.startswith("{", pos + 1):
                pos = self._skip_interpolation(pos + 2)
                continue
            if opener != closer and char == opener:
                depth += 1
            elif char == closer:
                if depth == 0:
                    return pos + 1
                depth -= 1
            pos += 1
        raise FormulaSyntaxError("unterminated string literal", start - 1)

    def _skip_interpolation(self, pos: int) -> int:
        src = self.source
        start = pos
        depth = 1
        while pos < self.length:
            char = src[pos]
            if char in "\"'`":
                pos = self.scan_quoted(pos + 1, char, char, char != "'")
                continue
            if char == "\\":
                pos += 2
                continue
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return pos + 1
            pos += 1
        raise FormulaSyntaxError("unterminated interpolation", start - 2)

    def _skip_heredoc_bodies(self, pos: int) -> int:
        src = self.source
        for terminator, indented in self.heredocs:
            while True:
                if pos >= self.length:
                    raise FormulaSyntaxError(f"unterminated heredoc {terminator}", pos)
                line_end = src.find("\n", pos)
                if line_end == -1:
                    line_end = self.length
                line = src[pos:line_end].rstrip("\r")
                pos = line_end + 1
                candidate = line.strip() if indented else line
                if candidate == terminator:
                    break
        self.heredocs = []
        return min(pos, self.length)

    def _skip_block_comment(self, pos: int) -> int:
        match = _BLOCK_COMMENT_END_RE.search(self.source, pos)
        if match is None:
            raise FormulaSyntaxError("unterminated =begin comment", pos)
        return match.end()

    def run(self) -> List[Token]:
        src = self.source
        pos = 0
        space = False
        while pos < self.length:
            char = src[pos]

            if char in " \t\r\f\v":
                pos += 1
                space = True
                continue
            if char == "\\" and src.startswith("\n", pos + 1):
                pos += 2
                space = True
                continue
            if char == "#":
                newline = src.find("\n", pos)
                pos = self.length if newline == -1 else newline
                continue
            if char == "\n":
                self._emit(NEWLINE, pos, pos + 1, space)
                pos += 1
                if self.heredocs:
                    pos = self._skip_heredoc_bodies(pos)
                space = False
                continue
            if self._at_line_start(pos):
                if _BLOCK_COMMENT_RE.match(src, pos):
                    pos = self._skip_block_comment(pos)
                    continue
                if _END_MARKER_RE.match(src, pos):
                    break

            start = pos
            if char in "\"`":
                pos = self.scan_quoted(pos + 1, char, char, True)
                self._emit(STRING, start, pos, space)
            elif char == "'":
                pos = self.scan_quoted(pos + 1, char, char, False)
                self._emit(STRING, start, pos, space)
            elif char == ":" and src.startswith(":", pos + 1):
                pos += 2
                self._emit(OP, start, pos, space)
            elif char == ":" and src[pos + 1 : pos + 2] in ("\"", "'"):
                quote = src[pos + 1]
                pos = self.scan_quoted(pos + 2, quote, quote, quote == "\"")
                self._emit(SYMBOL, start, pos, space)
            elif char == ":" and _SYMBOL_RE.match(src, pos):
                match = _SYMBOL_RE.match(src, pos)
                pos = match.end()
                self._emit(SYMBOL, start, pos, space)
            elif char in "@$" and _VAR_RE.match(src, pos):
                pos = _VAR_RE.match(src, pos).end()
                self._emit(VAR, start, pos, space)
            elif char.isdigit():
                pos = _NUMBER_RE.match(src, pos).end()
                self._emit(NUMBER, start, pos, space)
            elif char.isalpha() or char == "_":
                pos = self._scan_identifier(pos, space)
            elif char == "<" and _HEREDOC_RE.match(src, pos) and self._heredoc_allowed(pos, space):
                match = _HEREDOC_RE.match(src, pos)
                terminator = match.group(3) or match.group(4)
                self.heredocs.append((terminator, bool(match.group(1))))
                pos = match.end()
                self._emit(STRING, start, pos, space)
            elif char == "%" and _PERCENT_RE.match(src, pos) and self._literal_allowed(pos, space):
                match = _PERCENT_RE.match(src, pos)
                kind, opener = match.group(1), match.group(2)
                closer = _CLOSING.get(opener, opener)
                pos = self.scan_quoted(match.end(), opener, closer, kind in _INTERPOLATING_PERCENT)
                if kind == "r":
                    pos = _REGEX_FLAGS_RE.match(src, pos).end()
                self._emit(STRING, start, pos, space)
            elif char == "/" and self._literal_allowed(pos, space):
                pos = self.scan_quoted(pos + 1, "/", "/", True)
                pos = _REGEX_FLAGS_RE.match(src, pos).end()
                self._emit(STRING, start, pos, space)
            elif char == "?" and self._char_literal_at(pos, space):
                pos += 3 if src[pos + 1] == "\\" else 2
                self._emit(STRING, start, pos, space)
            else:
                for operator in OPERATORS:
                    if src.startswith(operator, pos):
                        pos += len(operator)
                        break
                else:
                    raise FormulaSyntaxError(f"unexpected character {char!r}", pos)
                self._emit(OP, start, pos, space)
            space = False
        if self.heredocs:
            raise FormulaSyntaxError(f"unterminated heredoc {self.heredocs[0][0]}", self.length)
        return self.tokens

    def _scan_identifier(self, pos: int, space: bool) -> int:
        src = self.source
        start = pos
        match = _IDENT_RE.match(src, pos)
        pos = match.end()
        text = match.group(0)
        prev = self._prev()
        if src.startswith(":", pos) and not src.startswith("::", pos) and not (
            prev is not None and prev.is_op("?")
        ):
            self._emit(LABEL, start, pos + 1, space)
            return pos + 1
        # Keywords used as method names: `foo.class`, `def end?`.
        method_name = prev is not None and (
            prev.is_op(".", "&.", "::") or (prev.is_keyword("def") and text != "self")
        )
        if text in KEYWORDS and not method_name:
            kind = KEYWORD
        elif text[0].isupper():
            kind = CONST
        else:
            kind = IDENT
        self._emit(kind, start, pos, space)
        return pos

    def _heredoc_allowed(self, pos: int, space: bool) -> bool:
        match = _HEREDOC_RE.match(self.source, pos)
        if not match.group(1) and not match.group(2) and not match.group(4).isupper():
            return False
        return self._literal_allowed(pos, space)

    def _char_literal_at(self, pos: int, space: bool) -> bool:
        src = self.source
        if pos + 1 >= self.length or is_value(self._prev()):
            return False
        following = src[pos + 1]
        if following.isspace():
            return False
        if following == "\\":
            return pos + 2 < self.length
        after = src[pos + 2 : pos + 3]
        return not (after.isalnum() or after == "_")


def tokenize(source: str) -> List[Token]:
    """Split ``source`` into tokens; comments and heredoc bodies are dropped."""
    return _Lexer(source).run()
