# query.py -- Scanner, parser and printer for Drive file queries
# Copyright (C) 2026 git-remote-drive contributors
#
# SPDX-License-Identifier: Apache-2.0 OR GPL-2.0-or-later
# git-remote-drive is dual-licensed under the Apache License, Version 2.0 and
# the GNU General Public License as published by the Free Software Foundation;
# version 2.0 or (at your option) any later version. You can redistribute it
# and/or modify it under the terms of either of these two licenses.
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#
# You should have received a copy of the licenses; if not, see
# <http://www.gnu.org/licenses/> for a copy of the GNU General Public License
# and <http://www.apache.org/licenses/LICENSE-2.0> for a copy of the Apache
# License, Version 2.0.
#

"""The subset of the Drive ``files.list`` query language that we use.

The grammar is::

    expr  := conj ( 'or'  conj )*
    conj  := test ( 'and' test )*
    test  := datum op datum
    op    := '=' | 'in' | 'contains'
    datum := IDENT | STRING | 'true' | 'false'

Expressions are built and printed by the Drive backend, and parsed and
evaluated against an in-memory inventory by the fake Drive service the
tests use.
"""

__all__ = [
    "And",
    "Datum",
    "Expr",
    "Parser",
    "QuerySyntaxError",
    "Scanner",
    "Test",
    "Token",
    "evaluate",
    "ident",
    "parse",
    "quote",
    "string",
]

import enum
import string as _string
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from .errors import DriveRemoteError


class QuerySyntaxError(DriveRemoteError, ValueError):
    """A query could not be parsed."""

    def __init__(self, expected: str, found: str) -> None:
        """Initialize a QuerySyntaxError.

        Args:
          expected: What the parser was looking for
          found: The literal (or token name) it found instead
        """
        self.expected = expected
        self.found = found
        super().__init__(f"Expected: {expected} Found: {found}")


class Token(enum.IntEnum):
    """Lexical token kinds."""

    ILLEGAL = 0
    EOF = 1
    WS = 2

    IDENT = 3
    STRING = 4
    TRUE = 5
    FALSE = 6

    EQUALS = 7
    IN = 8
    CONTAINS = 9

    AND = 10
    OR = 11
    NOT = 12


DATA_TOKENS = frozenset([Token.IDENT, Token.STRING, Token.TRUE, Token.FALSE])
OPERATOR_TOKENS = frozenset([Token.EQUALS, Token.IN, Token.CONTAINS])

_KEYWORDS = {
    "in": Token.IN,
    "contains": Token.CONTAINS,
    "and": Token.AND,
    "or": Token.OR,
    "not": Token.NOT,
    "true": Token.TRUE,
    "false": Token.FALSE,
}

_OPERATOR_TEXT = {
    Token.EQUALS: "=",
    Token.IN: "in",
    Token.CONTAINS: "contains",
}

_ESCAPES = {"n": "\n", "t": "\t", "'": "'", '"': '"', "\\": "\\"}

_WHITESPACE = " \t\n\r"
_IDENT_START = _string.ascii_letters
_IDENT_CHARS = _string.ascii_letters + _string.digits + "_"


class Scanner:
    """Split a query into (token, literal) pairs."""

    def __init__(self, text: str) -> None:
        self._text = text
        self._pos = 0

    def _read(self) -> str:
        if self._pos >= len(self._text):
            return ""
        ch = self._text[self._pos]
        self._pos += 1
        return ch

    def _read_while(self, chars: str) -> str:
        start = self._pos
        while self._pos < len(self._text) and self._text[self._pos] in chars:
            self._pos += 1
        return self._text[start : self._pos]

    def scan(self) -> tuple[Token, str]:
        """Return the next token and its literal text.

        Raises:
          QuerySyntaxError: on an unterminated string
        """
        if self._pos >= len(self._text):
            return Token.EOF, ""
        ch = self._text[self._pos]
        if ch in _WHITESPACE:
            return Token.WS, self._read_while(_WHITESPACE)
        if ch in _IDENT_START:
            lit = self._read_while(_IDENT_CHARS)
            return _KEYWORDS.get(lit.lower(), Token.IDENT), lit
        if ch == "'":
            return Token.STRING, self._scan_string()
        self._pos += 1
        if ch == "=":
            return Token.EQUALS, ch
        return Token.ILLEGAL, ch

    def _scan_string(self) -> str:
        quote_char = self._read()
        chars = []
        while True:
            ch = self._read()
            if not ch:
                raise QuerySyntaxError(quote_char, "EOF")
            if ch == quote_char:
                return "".join(chars)
            if ch == "\\":
                escaped = self._read()
                if escaped in _ESCAPES:
                    chars.append(_ESCAPES[escaped])
                else:
                    # unknown escapes are kept verbatim
                    chars.append(ch + escaped)
            else:
                chars.append(ch)

    def __iter__(self) -> Iterator[tuple[Token, str]]:
        while True:
            tok, lit = self.scan()
            yield tok, lit
            if tok == Token.EOF:
                return


def quote(value: str) -> str:
    """Quote a string literal, escaping backslashes and single quotes."""
    return "'" + value.replace("\\", "\\\\").replace("'", "\\'") + "'"


@dataclass(frozen=True)
class Datum:
    """An identifier, string or boolean operand."""

    type: Token
    lit: str

    def __str__(self) -> str:
        if self.type == Token.STRING:
            return quote(self.lit)
        return self.lit


@dataclass(frozen=True)
class Test:
    """A single comparison between two operands."""

    lhs: Datum
    op: Token
    rhs: Datum

    def __str__(self) -> str:
        return f"{self.lhs} {_OPERATOR_TEXT[self.op]} {self.rhs}"


@dataclass(frozen=True)
class And:
    """A conjunction of tests."""

    tests: tuple[Test, ...]

    def __str__(self) -> str:
        return " and ".join(str(test) for test in self.tests)


@dataclass(frozen=True)
class Expr:
    """A disjunction of conjunctions."""

    ands: tuple[And, ...]

    def __str__(self) -> str:
        return " or ".join(str(conj) for conj in self.ands)


def ident(name: str) -> Datum:
    """Build an identifier operand."""
    return Datum(Token.IDENT, name)


def string(value: str) -> Datum:
    """Build a string operand."""
    return Datum(Token.STRING, value)


class Parser:
    """Recursive descent parser with a single token of lookahead."""

    def __init__(self, text: str) -> None:
        self._scanner = Scanner(text)
        self._last: tuple[Token, str] = (Token.EOF, "")
        self._buffered = False

    def _scan(self) -> tuple[Token, str]:
        if self._buffered:
            self._buffered = False
            return self._last
        self._last = self._scanner.scan()
        return self._last

    def _unscan(self) -> None:
        self._buffered = True

    def _next(self) -> tuple[Token, str]:
        tok, lit = self._scan()
        if tok == Token.WS:
            tok, lit = self._scan()
        return tok, lit

    @staticmethod
    def _describe(tok: Token, lit: str) -> str:
        return lit if lit else tok.name

    def parse(self) -> Expr:
        """Parse the whole input.

        Raises:
          QuerySyntaxError: if the input does not match the grammar
        """
        ands = [self._parse_conjunction()]
        while True:
            tok, lit = self._next()
            if tok == Token.EOF:
                return Expr(tuple(ands))
            if tok != Token.OR:
                raise QuerySyntaxError("or", self._describe(tok, lit))
            ands.append(self._parse_conjunction())

    def _parse_conjunction(self) -> And:
        tests = [self._parse_test()]
        while True:
            tok, _ = self._next()
            if tok != Token.AND:
                self._unscan()
                return And(tuple(tests))
            tests.append(self._parse_test())

    def _parse_test(self) -> Test:
        lhs = self._parse_datum()
        tok, lit = self._next()
        if tok not in OPERATOR_TOKENS:
            raise QuerySyntaxError("operator", self._describe(tok, lit))
        rhs = self._parse_datum()
        return Test(lhs, tok, rhs)

    def _parse_datum(self) -> Datum:
        tok, lit = self._next()
        if tok not in DATA_TOKENS:
            raise QuerySyntaxError("datum", self._describe(tok, lit))
        return Datum(tok, lit)


def parse(text: str) -> Expr:
    """Parse a query string into an expression tree."""
    return Parser(text).parse()


def _value(datum: Datum, record: Mapping[str, Any]) -> Any:
    if datum.type == Token.IDENT:
        try:
            return record[datum.lit]
        except KeyError as exc:
            raise QuerySyntaxError("field name", datum.lit) from exc
    if datum.type == Token.TRUE:
        return True
    if datum.type == Token.FALSE:
        return False
    return datum.lit


def _evaluate_test(test: Test, record: Mapping[str, Any]) -> bool:
    lhs = _value(test.lhs, record)
    rhs = _value(test.rhs, record)
    if test.op == Token.EQUALS:
        return bool(lhs == rhs)
    if test.op == Token.IN:
        return lhs in rhs
    return str(rhs) in str(lhs)


def evaluate(expr: Expr, record: Mapping[str, Any]) -> bool:
    """Check whether a file record satisfies a query.

    Args:
      expr: Parsed query
      record: File metadata; identifiers in the query name its keys
    Returns: True if any conjunction has all of its tests satisfied
    """
    return any(
        all(_evaluate_test(test, record) for test in conj.tests) for conj in expr.ands
    )
