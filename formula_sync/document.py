"""Structural view of formula source text.

``FormulaDocument.parse`` turns formula text into a flat list of
:class:`Declaration` objects. There are two kinds:

* a *call*: a method call at the start of a statement, such as
  ``version "1.0"`` or ``url "https://…", tag: "v1"``, spanning from the
  method name to the end of its last argument;
* a *block*: a call that owns a ``do … end`` or ``{ … }`` body, such as
  ``bottle do … end``, spanning from the method name through ``end``.

Declarations are found at any nesting depth and are reported in document
order, so "the first ``url``" means the same thing it would in a pre-order
walk of a real Ruby AST. Everything else in the file is left alone; the
source text is never modified by the document itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .edits import SourceRewriter, Span
from .errors import FormulaSyntaxError
from .lexer import (
    CONST,
    IDENT,
    KEYWORD,
    LABEL,
    NEWLINE,
    NUMBER,
    OP,
    STRING,
    SYMBOL,
    VAR,
    Token,
    is_value,
    tokenize,
)

CALL = "call"
BLOCK = "block"

ANCHOR_NAMES = ("license", "url")

_PAREN = "paren"
_BRACKET = "bracket"
_HASH = "hash"
_BRACE = "brace"
_DO = "do"
_KEYWORD = "keyword"

_OPENING_KEYWORDS = frozenset({"class", "module", "def", "case", "begin", "for"})
_CONDITIONAL_KEYWORDS = frozenset({"if", "unless", "while", "until"})
_MODIFIER_KEYWORDS = frozenset({"if", "unless", "while", "until", "rescue"})
_CLAUSE_KEYWORDS = frozenset({"then", "else", "ensure"})
_JUMP_KEYWORDS = ("return", "break", "next", "redo", "retry", "super", "yield")
_ARGUMENT_KEYWORDS = frozenset(
    {"nil", "true", "false", "self", "not", "defined?", "__dir__", "__FILE__"}
)
_CONTINUATION_OPS = frozenset(
    {
        ",",
        ".",
        "&.",
        "::",
        "=",
        "+",
        "-",
        "*",
        "/",
        "%",
        "**",
        "||",
        "&&",
        "=>",
        "?",
        ":",
        "<<",
        ">>",
        "==",
        "!=",
        "<",
        ">",
        "<=",
        ">=",
        "<=>",
        "===",
        "=~",
        "!~",
        "+=",
        "-=",
        "*=",
        "/=",
        "||=",
        "&&=",
        "|=",
        "&=",
        "<<=",
        "^",
        "&",
    }
)
_CLOSERS = {")": (_PAREN,), "]": (_BRACKET,), "}": (_HASH, _BRACE)}


@dataclass(frozen=True)
class Declaration:
    kind: str
    name: str
    span: Span
    has_args: bool = False

    @property
    def is_call(self) -> bool:
        return self.kind == CALL

    @property
    def is_block(self) -> bool:
        return self.kind == BLOCK


class _Frame:
    __slots__ = ("kind", "token", "owner")

    def __init__(self, kind: str, token: Token, owner: Optional[Token] = None) -> None:
        self.kind = kind
        self.token = token
        self.owner = owner


class _OpenCall:
    __slots__ = ("head", "depth", "end", "paren")

    def __init__(self, head: Token, depth: int, paren: bool) -> None:
        self.head = head
        self.depth = depth
        self.end = head.end
        self.paren = paren


class _StructureParser:
    def __init__(self, tokens: Sequence[Token]) -> None:
        self.tokens = tokens
        self.stack: List[_Frame] = []
        self.declarations: List[Declaration] = []
        self.open_call: Optional[_OpenCall] = None
        # Head of the current statement, while it can still own a block.
        self.owner: Optional[Tuple[Token, int]] = None
        self.statement_start = True
        self.loop_pending = False
        self.block_params = False
        self.expect_params = False
        self.prev: Optional[Token] = None

    def parse(self) -> List[Declaration]:
        for index, token in enumerate(self.tokens):
            if token.kind == NEWLINE:
                if self._newline_ends_statement(index):
                    self._end_statement()
                continue
            self._visit(index, token)
            self.prev = token
        if self.stack:
            frame = self.stack[-1]
            raise FormulaSyntaxError(f"unclosed {frame.token.text!r}", frame.token.start)
        self._close_call()
        return sorted(self.declarations, key=lambda decl: (decl.span.start, -decl.span.end))

    def _newline_ends_statement(self, index: int) -> bool:
        if self.stack and self.stack[-1].kind in (_PAREN, _BRACKET, _HASH):
            return False
        if self.block_params:
            return False
        prev = self.prev
        if prev is not None:
            if prev.kind == LABEL:
                return False
            if prev.kind == OP and prev.text in _CONTINUATION_OPS:
                return False
            if prev.is_keyword("and", "or", "not"):
                return False
        for following in self.tokens[index + 1 :]:
            if following.kind == NEWLINE:
                continue
            return not following.is_op(".", "&.")
        return True

    def _end_statement(self) -> None:
        if self.open_call is not None and self.open_call.depth == len(self.stack):
            self._close_call()
        self.statement_start = True
        self.loop_pending = False
        self.owner = None

    def _close_call(self) -> None:
        call = self.open_call
        if call is None:
            return
        self.open_call = None
        self.declarations.append(
            Declaration(CALL, call.head.text, Span(call.head.start, call.end), has_args=True)
        )

    def _is_block_brace(self, token: Token, at_start: bool) -> bool:
        prev = self.prev
        if not token.is_op("{") or prev is None or at_start:
            return False
        if prev.kind == IDENT:
            return True
        return prev.is_op(")", "->")

    def _ends_operand(self) -> bool:
        prev = self.prev
        if prev is None:
            return False
        return is_value(prev) or prev.is_keyword(*_JUMP_KEYWORDS)

    def _is_modifier(self, token: Token, at_start: bool) -> bool:
        return (
            token.kind == KEYWORD
            and token.text in _MODIFIER_KEYWORDS
            and not at_start
            and self._ends_operand()
        )

    def _starts_argument(self, index: int) -> bool:
        if index + 1 >= len(self.tokens):
            return False
        following = self.tokens[index + 1]
        if not following.space_before or following.kind == NEWLINE:
            return False
        if following.kind in (STRING, SYMBOL, NUMBER, IDENT, CONST, VAR, LABEL):
            return True
        if following.kind == KEYWORD:
            return following.text in _ARGUMENT_KEYWORDS
        if following.is_op("[", "->", "!", "::"):
            return True
        if following.is_op("-", "*", "**", "&") and index + 2 < len(self.tokens):
            return not self.tokens[index + 2].space_before
        return False

    def _open_body(self, kind: str, token: Token, *, owned: bool = True) -> None:
        owner = None
        if owned and self.owner is not None and self.owner[1] == len(self.stack):
            owner = self.owner[0]
        self.stack.append(_Frame(kind, token, owner))
        self.owner = None
        self.statement_start = True
        self.expect_params = True

    def _pop(self, token: Token, kinds: Tuple[str, ...]) -> None:
        if not self.stack or self.stack[-1].kind not in kinds:
            raise FormulaSyntaxError(f"unexpected {token.text!r}", token.start)
        frame = self.stack.pop()
        if frame.owner is not None:
            self.declarations.append(
                Declaration(BLOCK, frame.owner.text, Span(frame.owner.start, token.end))
            )

    def _visit(self, index: int, token: Token) -> None:
        depth = len(self.stack)
        at_start = self.statement_start
        self.statement_start = False

        if self.expect_params:
            self.expect_params = False
            if token.is_op("||"):
                self.statement_start = True
                return
            if token.is_op("|"):
                self.block_params = True
                return
        if self.block_params:
            if token.is_op("|"):
                self.block_params = False
                self.statement_start = True
            return

        call = self.open_call
        if call is not None and not call.paren and depth == call.depth:
            lambda_body = token.is_op("{") and self.prev is not None and self.prev.is_op("->")
            if (
                token.is_op(";", "}", ")", "]")
                or token.is_keyword("do", "end")
                or self._is_modifier(token, at_start)
                or (self._is_block_brace(token, at_start) and not lambda_body)
            ):
                self._close_call()

        # `foo.each do`, `x = foo do`: the block belongs to something else.
        if self.owner is not None and self.owner[1] == depth and self.open_call is None:
            if token.is_op(".", "&.", "::", "=", "["):
                self.owner = None

        if token.is_op(";"):
            self._end_statement()
        elif token.is_op("("):
            self.stack.append(_Frame(_PAREN, token))
        elif token.is_op("["):
            self.stack.append(_Frame(_BRACKET, token))
        elif token.is_op("{"):
            if self._is_block_brace(token, at_start):
                self._open_body(_BRACE, token, owned=not self.prev.is_op("->"))
            else:
                self.stack.append(_Frame(_HASH, token))
        elif token.kind == OP and token.text in _CLOSERS:
            self._pop(token, _CLOSERS[token.text])
        elif token.kind == KEYWORD:
            self._visit_keyword(token, at_start)

        if at_start and token.kind == IDENT and self.open_call is None:
            self.owner = (token, depth)
            following = self.tokens[index + 1] if index + 1 < len(self.tokens) else None
            if following is not None and following.is_op("(") and not following.space_before:
                self.open_call = _OpenCall(token, depth, paren=True)
            elif self._starts_argument(index):
                self.open_call = _OpenCall(token, depth, paren=False)
            else:
                self.declarations.append(Declaration(CALL, token.text, Span(token.start, token.end)))
            return

        call = self.open_call
        if call is None:
            return
        call.end = token.end
        if call.paren and token.is_op(")") and len(self.stack) == call.depth:
            self._close_call()

    def _visit_keyword(self, token: Token, at_start: bool) -> None:
        text = token.text
        if text in _OPENING_KEYWORDS:
            self.stack.append(_Frame(_KEYWORD, token))
            if text == "for":
                self.loop_pending = True
            elif text == "begin":
                self.statement_start = True
        elif text in _CONDITIONAL_KEYWORDS:
            if at_start or not self._ends_operand():
                self.stack.append(_Frame(_KEYWORD, token))
                if text in ("while", "until"):
                    self.loop_pending = True
        elif text == "do":
            if self.loop_pending:
                self.loop_pending = False
                self.statement_start = True
            else:
                self._open_body(_DO, token)
        elif text == "end":
            self._pop(token, (_KEYWORD, _DO))
        elif text in _CLAUSE_KEYWORDS:
            self.statement_start = True


class FormulaDocument:
    """Immutable parse of a formula's source text.

    Lookups return the first declaration of a given role in document order,
    or ``None`` when the formula has none. Edits are made through the
    overlay returned by :meth:`rewriter`, never on the document itself.
    """

    def __init__(self, source: str, declarations: Sequence[Declaration]) -> None:
        self._source = source
        self._declarations = tuple(declarations)

    @classmethod
    def parse(cls, source: str) -> "FormulaDocument":
        tokens = tokenize(source)
        return cls(source, _StructureParser(tokens).parse())

    @property
    def source(self) -> str:
        return self._source

    @property
    def declarations(self) -> Tuple[Declaration, ...]:
        return self._declarations

    def find_call(self, name: str, *, with_args: bool = True) -> Optional[Declaration]:
        for decl in self._declarations:
            if decl.is_call and decl.name == name and (decl.has_args or not with_args):
                return decl
        return None

    def find_block(self, name: str) -> Optional[Declaration]:
        for decl in self._declarations:
            if decl.is_block and decl.name == name:
                return decl
        return None

    def version_call(self) -> Optional[Declaration]:
        return self.find_call("version")

    def url_call(self) -> Optional[Declaration]:
        return self.find_call("url")

    def bottle_block(self) -> Optional[Declaration]:
        return self.find_block("bottle")

    def anchor_call(self, names: Sequence[str] = ANCHOR_NAMES) -> Optional[Declaration]:
        for name in names:
            decl = self.find_call(name)
            if decl is not None:
                return decl
        return None

    def text(self, span: Span) -> str:
        return span.text(self._source)

    def line_indent(self, offset: int) -> str:
        """Leading whitespace of the line containing ``offset``."""
        line_start = self._source.rfind("\n", 0, offset) + 1
        indent_end = line_start
        while indent_end < offset and self._source[indent_end] in " \t":
            indent_end += 1
        return self._source[line_start:indent_end]

    def rewriter(self) -> SourceRewriter:
        return SourceRewriter(self._source)
