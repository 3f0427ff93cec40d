"""
Тесты для первой фазы разбора (плоский список токенов).
"""

import pytest

from vtlite.directives import SetNode
from vtlite.errors import ParseError
from vtlite.expressions import (
    BinaryExpressionNode,
    ConstantExpressionNode,
    NotExpressionNode,
    Operator,
)
from vtlite.parser import Parser
from vtlite.references import (
    IndexReferenceNode,
    MemberReferenceNode,
    MethodReferenceNode,
    PlainReferenceNode,
)
from vtlite.tokens import (
    CommentToken,
    ElseIfToken,
    ElseToken,
    EndToken,
    EofToken,
    ForEachToken,
    IfToken,
    MacroCallToken,
    MacroDefinitionToken,
)

from tests.infrastructure.rendering_utils import tokens_of


def texts(tokens):
    """Значения константных токенов."""
    return [t.value for t in tokens if isinstance(t, ConstantExpressionNode)]


def set_expression(source: str):
    tokens = tokens_of(source)
    assert isinstance(tokens[0], SetNode)
    return tokens[0].expression


class TestPlainText:

    def test_plain_text_is_one_constant(self):
        tokens = tokens_of("hello world")
        assert isinstance(tokens[0], ConstantExpressionNode)
        assert tokens[0].value == "hello world"
        assert isinstance(tokens[-1], EofToken)
        assert len(tokens) == 2

    def test_empty_input_is_just_eof(self):
        tokens = tokens_of("")
        assert len(tokens) == 1
        assert isinstance(tokens[0], EofToken)

    def test_dollar_without_letter_is_text(self):
        assert texts(tokens_of("cost: $5")) == ["cost: ", "$5"]

    def test_dollar_brace_without_letter_is_text(self):
        assert texts(tokens_of("${1}")) == ["${1}"]

    def test_hash_without_directive_is_text(self):
        assert texts(tokens_of("# heading")) == ["# heading"]

    def test_hash_before_reference(self):
        tokens = tokens_of("#$x")
        assert texts(tokens) == ["#"]
        assert isinstance(tokens[1], PlainReferenceNode)

    def test_hash_square_without_second_bracket(self):
        assert texts(tokens_of("#[x]")) == ["#[x]"]


class TestComments:

    def test_line_comment_includes_newline(self):
        tokens = tokens_of("## comment\nX")
        assert isinstance(tokens[0], CommentToken)
        assert texts(tokens) == ["X"]

    def test_line_comment_at_eof(self):
        tokens = tokens_of("a## trailing")
        assert texts(tokens) == ["a"]
        assert isinstance(tokens[1], CommentToken)

    def test_block_comment(self):
        tokens = tokens_of("A#* multi\nline *#B")
        assert texts(tokens) == ["A", "B"]
        assert isinstance(tokens[1], CommentToken)
        assert tokens[1].line == 1

    def test_unterminated_block_comment(self):
        with pytest.raises(ParseError) as exc:
            tokens_of("x\n#* never closed\n\n")
        assert "Unterminated #*" in exc.value.message
        assert exc.value.line == 2

    def test_literal_block(self):
        assert texts(tokens_of("#[[$x #if ($y)]]#!")) == ["$x #if ($y)", "!"]

    def test_unterminated_literal_block(self):
        with pytest.raises(ParseError, match="Unterminated #\\[\\["):
            tokens_of("#[[ $x ]#")


class TestReferences:

    def test_plain_reference(self):
        tokens = tokens_of("$x")
        assert tokens[0] == PlainReferenceNode(1, "x")

    def test_braced_reference(self):
        tokens = tokens_of("${x}y")
        assert isinstance(tokens[0], PlainReferenceNode)
        assert texts(tokens) == ["y"]

    def test_identifier_characters(self):
        tokens = tokens_of("$a-b_c1")
        assert tokens[0].id == "a-b_c1"

    def test_member_chain(self):
        ref = tokens_of("$x.foo.bar")[0]
        assert isinstance(ref, MemberReferenceNode)
        assert ref.id == "bar"
        assert isinstance(ref.lhs, MemberReferenceNode)
        assert ref.lhs.id == "foo"
        assert ref.lhs.lhs == PlainReferenceNode(1, "x")

    def test_method_and_index(self):
        ref = tokens_of("$x[1].y(2, $z)")[0]
        assert isinstance(ref, MethodReferenceNode)
        assert ref.id == "y"
        assert len(ref.args) == 2
        assert isinstance(ref.lhs, IndexReferenceNode)
        assert ref.lhs.index.value == 1

    def test_method_without_arguments(self):
        ref = tokens_of("$x.size()")[0]
        assert isinstance(ref, MethodReferenceNode)
        assert ref.args == ()

    def test_trailing_dot_is_text(self):
        tokens = tokens_of("$x.")
        assert tokens[0] == PlainReferenceNode(1, "x")
        assert texts(tokens) == ["."]

    def test_dot_not_followed_by_letter_is_text(self):
        tokens = tokens_of("$name.!")
        assert isinstance(tokens[0], PlainReferenceNode)
        assert texts(tokens) == [".!"]

    def test_missing_close_bracket(self):
        with pytest.raises(ParseError, match="Expected \\]"):
            tokens_of("$x[1")

    def test_missing_close_brace(self):
        with pytest.raises(ParseError, match="Expected }"):
            tokens_of("${x")


class TestDirectives:

    def test_if_else_end_tokens(self):
        tokens = tokens_of("#if ($a)\nyes#elseif ($b)maybe#else\nno#end")
        kinds = [type(t) for t in tokens if not isinstance(t, ConstantExpressionNode)]
        assert kinds == [IfToken, ElseIfToken, ElseToken, EndToken, EofToken]
        # перевод строки после заголовка директивы съеден
        assert texts(tokens) == ["yes", "maybe", "no"]

    def test_braced_directive(self):
        tokens = tokens_of("#{if}($a)x#{else}y#{end}z")
        kinds = [type(t) for t in tokens if not isinstance(t, ConstantExpressionNode)]
        assert kinds == [IfToken, ElseToken, EndToken, EofToken]
        assert texts(tokens) == ["x", "y", "z"]

    def test_only_one_newline_consumed(self):
        tokens = tokens_of("#set ($x = 1)\n\nafter")
        assert texts(tokens) == ["\nafter"]

    def test_foreach(self):
        token = tokens_of("#foreach ($item in $items)")[0]
        assert isinstance(token, ForEachToken)
        assert token.var == "item"
        assert token.collection == PlainReferenceNode(1, "items")

    def test_foreach_requires_in(self):
        with pytest.raises(ParseError, match="Expected 'in' for #foreach"):
            tokens_of("#foreach ($item of $items)")

    def test_set(self):
        token = tokens_of("#set ($x = 3)")[0]
        assert isinstance(token, SetNode)
        assert token.var == "x"
        assert token.expression.value == 3

    def test_macro_definition(self):
        token = tokens_of("#macro (greet $who $how)")[0]
        assert isinstance(token, MacroDefinitionToken)
        assert token.macro_name == "greet"
        assert token.parameter_names == ("who", "how")

    def test_macro_parameter_without_dollar(self):
        with pytest.raises(ParseError, match="Macro parameters should look like \\$name"):
            tokens_of("#macro (greet who)")

    def test_macro_call_with_optional_commas(self):
        token = tokens_of('#greet($a, 1 "s" true)')[0]
        assert isinstance(token, MacroCallToken)
        assert token.macro_name == "greet"
        assert [type(a) for a in token.arguments] == [
            PlainReferenceNode, ConstantExpressionNode, ConstantExpressionNode, ConstantExpressionNode,
        ]
        assert [a.value for a in token.arguments[1:]] == [1, "s", True]

    def test_unrecognized_directive(self):
        with pytest.raises(ParseError, match="Unrecognized directive #foo"):
            tokens_of("#foo bar")

    def test_line_numbers(self):
        tokens = tokens_of("a\nb\n#if ($x)")
        if_token = [t for t in tokens if isinstance(t, IfToken)][0]
        assert if_token.line == 3


class TestExpressions:

    def test_precedence(self):
        expr = set_expression("#set ($x = 1 + 2 * 3)")
        assert isinstance(expr, BinaryExpressionNode)
        assert expr.op is Operator.PLUS
        assert expr.lhs.value == 1
        assert isinstance(expr.rhs, BinaryExpressionNode)
        assert expr.rhs.op is Operator.TIMES

    def test_left_associativity(self):
        expr = set_expression("#set ($x = 10 - 4 - 3)")
        assert expr.op is Operator.MINUS
        assert isinstance(expr.lhs, BinaryExpressionNode)
        assert expr.rhs.value == 3

    def test_logical_operators_bind_loosest(self):
        expr = set_expression("#set ($x = $a == 1 || $b < 2 && $c)")
        assert expr.op is Operator.OR
        assert expr.lhs.op is Operator.EQUAL
        assert expr.rhs.op is Operator.AND
        assert expr.rhs.lhs.op is Operator.LESS

    def test_two_char_operators(self):
        for symbol, op in [("<=", Operator.LESS_OR_EQUAL), (">=", Operator.GREATER_OR_EQUAL),
                           ("!=", Operator.NOT_EQUAL), ("<", Operator.LESS), (">", Operator.GREATER)]:
            expr = set_expression(f"#set ($x = 1 {symbol} 2)")
            assert expr.op is op

    def test_parentheses_and_not(self):
        expr = set_expression("#set ($x = !($a || $b))")
        assert isinstance(expr, NotExpressionNode)
        assert expr.expr.op is Operator.OR

    def test_negative_integer_literal(self):
        assert set_expression("#set ($x = -42)").value == -42

    def test_lone_minus_is_invalid_integer(self):
        with pytest.raises(ParseError, match="Invalid integer: -"):
            tokens_of("#set ($x = -)")

    def test_boolean_literals(self):
        assert set_expression("#set ($x = true)").value is True
        assert set_expression("#set ($x = false)").value is False

    def test_bare_identifier_rejected(self):
        with pytest.raises(ParseError, match="must be preceded by \\$ or be true or false"):
            tokens_of("#set ($x = maybe)")

    def test_single_equals_rejected(self):
        with pytest.raises(ParseError, match="Expected ==, not just ="):
            tokens_of("#if ($a = $b)#end")

    def test_single_pipe_rejected(self):
        with pytest.raises(ParseError, match="Expected \\|\\|, not just \\|"):
            tokens_of("#if ($a | $b)#end")

    def test_string_literal(self):
        assert set_expression('#set ($x = "a b")').value == "a b"

    def test_string_with_reference_rejected(self):
        with pytest.raises(ParseError, match="Escapes or references"):
            tokens_of('#set ($x = "a$b")')

    def test_string_with_backslash_rejected(self):
        with pytest.raises(ParseError, match="Escapes or references"):
            tokens_of('#set ($x = "a\\n")')

    def test_unterminated_string(self):
        with pytest.raises(ParseError, match="Unterminated string constant"):
            tokens_of('#set ($x = "abc\n")')


class TestParseErrorDetails:

    def test_context_snippet(self):
        with pytest.raises(ParseError) as exc:
            tokens_of("#foo bar")
        err = exc.value
        assert err.line == 1
        assert err.context == "bar"
        assert err.resource_name is None
        assert str(err) == "Unrecognized directive #foo, on line 1, at text starting: bar"

    def test_context_at_eof(self):
        with pytest.raises(ParseError) as exc:
            tokens_of("#if (")
        assert exc.value.message == "Expected an expression"
        assert exc.value.context == "EOF"

    def test_long_context_is_truncated(self):
        with pytest.raises(ParseError) as exc:
            tokens_of("#set (x = 0123456789abcdefghijklmnop)")
        assert exc.value.context == "x = 0123456789abcdef..."

    def test_resource_name_in_message(self):
        with pytest.raises(ParseError) as exc:
            Parser("\n#nope", resource_name="page.vm").parse_tokens()
        assert exc.value.resource_name == "page.vm"
        assert exc.value.line == 2
        assert "page.vm, line 2" in str(exc.value)
