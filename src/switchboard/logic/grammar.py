"""
Token expression grammar.

    expr       := primary (('&' | '|') primary)*
    primary    := identifier | '(' expr ')'
    identifier := [A-Za-z_][A-Za-z0-9_]*

`&` and `|` share a single precedence level and fold left to right.
Whitespace around identifiers, operators and parentheses is ignored.

A lone identifier parses to its (trimmed) name. Anything else parses to a
list whose first element is the leading operand, followed by one `Term` per
operator. A parenthesized operand is wrapped in a one-element list.

    >>> parse(" a ")
    'a'
    >>> parse("a & (b | c)")
    ['a', Term(operator='and', operand=[['b', Term(operator='or', operand='c')]])]
"""

import re
from dataclasses import dataclass
from typing import Any, List, Union

from ..core.errors import GrammarError

AND = "and"
OR = "or"

IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_WHITESPACE = re.compile(r"[ \t\r\n]*")
_OPERATORS = {"&": AND, "|": OR}


@dataclass(frozen=True)
class Term:
    """An operator applied to the expression folded so far."""

    operator: str
    operand: Any


Expression = Union[str, List[Any]]


class _Parser:
    def __init__(self, text: str):
        self.text = text
        self.pos = 0

    def _peek(self) -> str:
        self.pos = _WHITESPACE.match(self.text, self.pos).end()
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def parse(self) -> Expression:
        expression = self._expr()
        if self._peek():
            raise GrammarError(self.text, self.pos, '"&", "|" or end of input')
        return expression

    def _expr(self) -> Expression:
        first = self._primary()
        terms: List[Any] = []
        while self._peek() in _OPERATORS:
            operator = _OPERATORS[self.text[self.pos]]
            self.pos += 1
            terms.append(Term(operator, self._primary()))
        if not terms:
            return first
        return [first, *terms]

    def _primary(self) -> Expression:
        if self._peek() == "(":
            self.pos += 1
            inner = self._expr()
            if self._peek() != ")":
                raise GrammarError(self.text, self.pos, '")"')
            self.pos += 1
            return [inner]

        match = IDENTIFIER.match(self.text, self.pos)
        if match is None:
            raise GrammarError(self.text, self.pos, 'identifier or "("')
        self.pos = match.end()
        return match.group(0)


def parse(text: str) -> Expression:
    """Parse a token expression, raising GrammarError on malformed input."""
    return _Parser(text).parse()


def identifiers(text: str) -> List[str]:
    """Every identifier occurring in `text`, in order of first appearance."""
    seen: List[str] = []
    for name in IDENTIFIER.findall(text):
        if name not in seen:
            seen.append(name)
    return seen
