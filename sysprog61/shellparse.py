"""Tokenizer and region parsers for shell command lines.

A command line is a list of conditionals separated by `;` or `&`; a
conditional is a chain of pipelines joined by `&&` or `||`; a pipeline is
a list of commands joined by `|`. Each parser covers one region of the
line and can hand out parsers for the smaller units inside it.
"""

from __future__ import annotations

import copy
import enum
from dataclasses import dataclass
from typing import Iterator, List, Optional

__all__ = [
    "TokenType",
    "Token",
    "ShellTokenizer",
    "ShellParser",
    "CommandLineParser",
    "ConditionalParser",
    "PipelineParser",
    "CommandParser",
    "tokenize",
]

_SPACE = frozenset(" \t\n\v\f\r")
_DIGITS = frozenset("0123456789")
_SPECIAL = frozenset("<>&|;()#")


class TokenType(enum.IntEnum):
    """Kinds of token found on a command line."""

    NORMAL = 0
    REDIRECT_OP = 1
    SEQUENCE = 2
    EOL = 3
    BACKGROUND = 4
    PIPE = 5
    AND = 6
    OR = 7
    LPAREN = 8
    RPAREN = 9
    OTHER = -1

    @property
    def type_name(self) -> str:
        return f"TYPE_{self.name}"


_MASK_CONDITIONAL = (
    (1 << TokenType.SEQUENCE) | (1 << TokenType.EOL) | (1 << TokenType.BACKGROUND)
)
_MASK_PIPELINE = _MASK_CONDITIONAL | (1 << TokenType.AND) | (1 << TokenType.OR)
_MASK_COMMAND = _MASK_PIPELINE | (1 << TokenType.PIPE)

_SINGLE_OPS = {
    ";": TokenType.SEQUENCE,
    "&": TokenType.BACKGROUND,
    "|": TokenType.PIPE,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
}


def _skip_space(text: str, s: int, end: int) -> int:
    """Skip whitespace; a comment runs to the end of the region."""
    while s != end and text[s] in _SPACE:
        s += 1
    if s != end and text[s] == "#":
        s = end
    return s


def _in_mask(token_type: TokenType, mask: int) -> bool:
    return token_type >= 0 and bool(mask & (1 << token_type))


@dataclass(frozen=True)
class Token:
    """One token: its type and its text with quotes and escapes removed."""

    type: TokenType
    value: str


class ShellTokenizer:
    """Walks the tokens of `text[first:last]`, positioned on the first one."""

    def __init__(self, text: str, first: int = 0, last: Optional[int] = None) -> None:
        self._text = text
        self._s = first
        self._end = len(text) if last is None else last
        self._len = 0
        self._type = TokenType.EOL
        self._quoted = False
        self.advance()

    def __repr__(self) -> str:
        return f"ShellTokenizer({self.type_name}, {self.value!r})"

    @property
    def type(self) -> TokenType:
        """The current token's type."""
        return self._type

    @property
    def type_name(self) -> str:
        """The current token's type as a `TYPE_...` name."""
        return self._type.type_name

    @property
    def value(self) -> str:
        """The current token's text, with quotes and escapes removed."""
        raw = self._text[self._s:self._s + self._len]
        if not self._quoted:
            return raw
        out = []
        curquote = ""
        pos = 0
        while pos < len(raw):
            ch = raw[pos]
            if ch in "\"'" and not curquote:
                curquote = ch
            elif curquote and ch == curquote:
                curquote = ""
            elif ch == "\\" and pos + 1 < len(raw) and curquote != "'":
                out.append(raw[pos + 1])
                pos += 1
            else:
                out.append(ch)
            pos += 1
        return "".join(out)

    @property
    def token(self) -> Token:
        """The current token as a `Token`."""
        return Token(self._type, self.value)

    def advance(self) -> None:
        """Move to the next token, or to end of line."""
        text, end = self._text, self._end
        self._s = _skip_space(text, self._s + self._len, end)
        self._len = 0
        self._quoted = False

        s = self._s
        if s == end:
            self._type = TokenType.EOL
            return

        p = s
        while p != end and text[p] in _DIGITS:
            p += 1

        if p != end and text[p] in "<>":
            p += 1
            if p != end and text[p] == ">":
                p += 1
            else:
                while p != end and text[p] in _DIGITS:
                    p += 1
            self._type = TokenType.REDIRECT_OP
        elif p == s and text[p] in "&|" and p + 1 != end and text[p + 1] == text[p]:
            self._type = TokenType.AND if text[p] == "&" else TokenType.OR
            p += 2
        elif p == s and text[p] in _SPECIAL:
            self._type = _SINGLE_OPS.get(text[p], TokenType.OTHER)
            p += 1
        else:
            self._type = TokenType.NORMAL
            curquote = ""
            while p != end and (
                curquote or (text[p] not in _SPACE and text[p] not in _SPECIAL)
            ):
                ch = text[p]
                if ch in "\"'" and not curquote:
                    curquote = ch
                    self._quoted = True
                elif curquote and ch == curquote:
                    curquote = ""
                elif ch == "\\" and p + 1 != end and curquote != "'":
                    self._quoted = True
                    p += 1
                p += 1
        self._len = p - s

    def __bool__(self) -> bool:
        return self._s != self._end

    def __iter__(self) -> Iterator[Token]:
        """Yield the tokens from the current one to the end of the region."""
        it = copy.copy(self)
        while it:
            yield it.token
            it.advance()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ShellTokenizer):
            return (
                self._text == other._text
                and self._s == other._s
                and self._end == other._end
            )
        if isinstance(other, ShellParser):
            return (
                self._text == other._text
                and self._s == other._s
                and self._end == other._stop
            )
        return NotImplemented


class ShellParser:
    """A region `text[first:stop]` of a command line that ends by `last`.

    `last` defaults to the end of `text`, and `stop` to `last`. Leading
    whitespace of the region is skipped.
    """

    def __init__(
        self,
        text: str,
        first: int = 0,
        stop: Optional[int] = None,
        last: Optional[int] = None,
    ) -> None:
        if last is None:
            last = len(text)
        if stop is None:
            stop = last
        self._text = text
        self._stop = stop
        self._end = last
        self._s = _skip_space(text, first, stop)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r})"

    def __bool__(self) -> bool:
        return self._s != self._stop

    def __str__(self) -> str:
        return self._text[self._s:self._stop]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ShellParser):
            return (
                self._text == other._text
                and self._s == other._s
                and self._stop == other._stop
            )
        if isinstance(other, ShellTokenizer):
            return (
                self._text == other._text
                and self._s == other._s
                and self._stop == other._end
            )
        return NotImplemented

    def next_op(self) -> TokenType:
        """Return the type of the operator just after this region."""
        return ShellTokenizer(self._text, self._stop, self._end).type

    def next_op_name(self) -> str:
        """Return the `TYPE_...` name of the operator after this region."""
        return ShellTokenizer(self._text, self._stop, self._end).type_name

    def token_begin(self) -> ShellTokenizer:
        """Return a tokenizer over this region."""
        return ShellTokenizer(self._text, self._s, self._stop)

    def end(self) -> "ShellParser":
        """Return an empty parser marking the end of this region."""
        return type(self)(self._text, self._stop, self._stop, self._end)

    def token_end(self) -> ShellTokenizer:
        """Return a tokenizer marking the end of this region."""
        return ShellTokenizer(self._text, self._stop, self._stop)

    def _first_delimited(self, cls, mask: int):
        it = ShellTokenizer(self._text, self._s, self._stop)
        while not (it.type < 0 or _in_mask(it.type, mask)):
            it.advance()
        stop = it._s
        while stop > self._s and self._text[stop - 1] in _SPACE:
            stop -= 1
        return cls(self._text, self._s, stop, self._stop)

    def _next_delimited(self, mask: int) -> None:
        it = ShellTokenizer(self._text, self._stop, self._end)
        if _in_mask(it.type, mask):
            it.advance()
        self._s = it._s
        while not (it.type < 0 or _in_mask(it.type, mask)):
            it.advance()
        stop = it._s
        while stop > self._s and self._text[stop - 1] in _SPACE:
            stop -= 1
        self._stop = stop


class _SequenceParser(ShellParser):
    """A parser that steps through sibling regions with `advance`."""

    def advance(self) -> None:
        raise NotImplementedError

    def __iter__(self):
        """Yield this region and each following one up to the enclosing end."""
        current = copy.copy(self)
        while current._s != current._end:
            yield copy.copy(current)
            current.advance()


class CommandParser(_SequenceParser):
    """A region holding one command."""

    def advance(self) -> None:
        """Move to the next command."""
        self._next_delimited(_MASK_COMMAND)


class PipelineParser(_SequenceParser):
    """A region holding one pipeline."""

    def command_begin(self) -> CommandParser:
        """Return a parser for the first command of this pipeline."""
        return self._first_delimited(CommandParser, _MASK_COMMAND)

    def advance(self) -> None:
        """Move to the next pipeline."""
        self._next_delimited(_MASK_PIPELINE)


class ConditionalParser(_SequenceParser):
    """A region holding one conditional chain."""

    def pipeline_begin(self) -> PipelineParser:
        """Return a parser for the first pipeline of this conditional."""
        return self._first_delimited(PipelineParser, _MASK_PIPELINE)

    def command_begin(self) -> CommandParser:
        """Return a parser for the first command of this conditional."""
        return self._first_delimited(CommandParser, _MASK_COMMAND)

    def advance(self) -> None:
        """Move to the next conditional."""
        self._next_delimited(_MASK_CONDITIONAL)


class CommandLineParser(ShellParser):
    """A region holding a whole command line."""

    def conditional_begin(self) -> ConditionalParser:
        """Return a parser for the first conditional of the line."""
        return self._first_delimited(ConditionalParser, _MASK_CONDITIONAL)

    def pipeline_begin(self) -> PipelineParser:
        """Return a parser for the first pipeline of the line."""
        return self._first_delimited(PipelineParser, _MASK_PIPELINE)

    def command_begin(self) -> CommandParser:
        """Return a parser for the first command of the line."""
        return self._first_delimited(CommandParser, _MASK_COMMAND)


def tokenize(text: str) -> List[Token]:
    """Return all tokens of `text`."""
    return list(ShellTokenizer(text))