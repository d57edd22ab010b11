# test_query.py -- Tests for the Drive query language
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

"""Tests for the Drive query language."""

from driveremote.query import (
    And,
    Datum,
    Expr,
    QuerySyntaxError,
    Scanner,
    Test,
    Token,
    evaluate,
    ident,
    parse,
    quote,
    string,
)

from . import TestCase

CHILD_QUERY = "name = 'dan' and 'root' in parents and trashed = false"


class ScannerTests(TestCase):
    def test_tokens(self) -> None:
        self.assertEqual(
            [
                (Token.IDENT, "name"),
                (Token.WS, " "),
                (Token.EQUALS, "="),
                (Token.WS, "  \t"),
                (Token.STRING, "dan"),
                (Token.EOF, ""),
            ],
            list(Scanner("name =  \t'dan'")),
        )

    def test_keywords_case_insensitive(self) -> None:
        tokens = [tok for tok, _ in Scanner("In CONTAINS and OR not True fALSe")]
        self.assertEqual(
            [
                Token.IN,
                Token.WS,
                Token.CONTAINS,
                Token.WS,
                Token.AND,
                Token.WS,
                Token.OR,
                Token.WS,
                Token.NOT,
                Token.WS,
                Token.TRUE,
                Token.WS,
                Token.FALSE,
                Token.EOF,
            ],
            tokens,
        )

    def test_identifier_characters(self) -> None:
        self.assertEqual((Token.IDENT, "mime_Type2"), Scanner("mime_Type2!").scan())

    def test_escapes(self) -> None:
        scanner = Scanner(r"'it\'s \\ \n \t \" \q'")
        self.assertEqual((Token.STRING, "it's \\ \n \t \" \\q"), scanner.scan())

    def test_unterminated_string(self) -> None:
        with self.assertRaises(QuerySyntaxError) as cm:
            Scanner("'abc").scan()
        self.assertEqual("Expected: ' Found: EOF", str(cm.exception))

    def test_illegal(self) -> None:
        self.assertEqual((Token.ILLEGAL, "!"), Scanner("!=").scan())


class ParserTests(TestCase):
    def test_child_query(self) -> None:
        self.assertEqual(
            Expr(
                (
                    And(
                        (
                            Test(Datum(Token.IDENT, "name"), Token.EQUALS, Datum(Token.STRING, "dan")),
                            Test(Datum(Token.STRING, "root"), Token.IN, Datum(Token.IDENT, "parents")),
                            Test(Datum(Token.IDENT, "trashed"), Token.EQUALS, Datum(Token.FALSE, "false")),
                        )
                    ),
                )
            ),
            parse(CHILD_QUERY),
        )

    def test_or(self) -> None:
        expr = parse("name = 'a' or name = 'b' and trashed = true")
        self.assertEqual(2, len(expr.ands))
        self.assertEqual(1, len(expr.ands[0].tests))
        self.assertEqual(2, len(expr.ands[1].tests))
        self.assertEqual(Datum(Token.TRUE, "true"), expr.ands[1].tests[1].rhs)

    def test_contains(self) -> None:
        expr = parse("name contains 'refs'")
        self.assertEqual(Test(ident("name"), Token.CONTAINS, string("refs")), expr.ands[0].tests[0])

    def test_surrounding_whitespace(self) -> None:
        self.assertEqual(parse(CHILD_QUERY), parse("  " + CHILD_QUERY.replace(" ", "\n") + "\t"))

    def assertSyntaxError(self, message: str, text: str) -> None:
        with self.assertRaises(QuerySyntaxError) as cm:
            parse(text)
        self.assertEqual(message, str(cm.exception))

    def test_missing_operator(self) -> None:
        self.assertSyntaxError("Expected: operator Found: !", "name != 'x'")

    def test_missing_operand(self) -> None:
        self.assertSyntaxError("Expected: datum Found: EOF", "name =")

    def test_dangling_and(self) -> None:
        self.assertSyntaxError("Expected: datum Found: EOF", "a = b and")

    def test_trailing_garbage(self) -> None:
        self.assertSyntaxError("Expected: or Found: c", "a = b c")

    def test_empty(self) -> None:
        self.assertSyntaxError("Expected: datum Found: EOF", "")

    def test_not_is_unsupported(self) -> None:
        self.assertSyntaxError("Expected: datum Found: not", "not a = b")


class PrinterTests(TestCase):
    def test_print(self) -> None:
        self.assertEqual(CHILD_QUERY, str(parse(CHILD_QUERY)))

    def test_quote(self) -> None:
        self.assertEqual(r"'it\'s a \\ path'", quote("it's a \\ path"))

    def test_reparse(self) -> None:
        for text in [
            CHILD_QUERY,
            "a = b or c in d or e contains 'f'",
            "'x' in parents and mimeType = 'application/vnd.google-apps.folder'",
            "TRUE = False",
        ]:
            expr = parse(text)
            self.assertEqual(expr, parse(str(expr)))

    def test_reparse_awkward_strings(self) -> None:
        for value in ["it's", "back\\slash", "\\'", "new\nline", "'"]:
            expr = Expr((And((Test(ident("name"), Token.EQUALS, string(value)),)),))
            self.assertEqual(expr, parse(str(expr)))


class EvaluateTests(TestCase):
    def setUp(self) -> None:
        super().setUp()
        self.record = {"name": "dan", "parents": ["root"], "trashed": False}

    def test_match(self) -> None:
        self.assertTrue(evaluate(parse(CHILD_QUERY), self.record))

    def test_no_match(self) -> None:
        self.record["trashed"] = True
        self.assertFalse(evaluate(parse(CHILD_QUERY), self.record))
        self.assertFalse(evaluate(parse("'other' in parents"), self.record))

    def test_or(self) -> None:
        self.assertTrue(evaluate(parse("name = 'bob' or name = 'dan'"), self.record))

    def test_contains(self) -> None:
        self.assertTrue(evaluate(parse("name contains 'an'"), self.record))
        self.assertFalse(evaluate(parse("name contains 'bo'"), self.record))

    def test_unknown_field(self) -> None:
        self.assertRaises(QuerySyntaxError, evaluate, parse("size = 'x'"), self.record)
