"""
Первая фаза разбора: посимвольный парсер, выдающий плоский список токенов.

Токены включают целые ссылки (`${x.foo()[23]}`) и целые заголовки
директив (`#set ($x = $y + $z)`), но не охватывают составные
конструкции. Так, `#if ($x == $y) something #end` — это три токена:
заголовок `#if`, литеральный текст " something " и `#end`.

Такое разделение нужно потому, что у языка шаблонов два лексических
контекста. На верхнем уровне допустим произвольный текст, ссылки и
директивы; внутри скобок директивы допустимы только выражения. Вместо
классической пары лексер/парсер с переключением режимов первая фаза
разбирает всё сама, а вторая (reparser) строит дерево из токенов.
"""

from __future__ import annotations

import io
import logging
from typing import Callable, Dict, List, Optional, TextIO, Tuple, Union

from .directives import SetNode
from .errors import ParseError
from .expressions import (
    BinaryExpressionNode,
    ConstantExpressionNode,
    ExpressionNode,
    NotExpressionNode,
    Operator,
)
from .nodes import Node
from .reader import EOF, CharReader, is_ascii_digit, is_ascii_letter, is_id_char
from .references import (
    IndexReferenceNode,
    MemberReferenceNode,
    MethodReferenceNode,
    PlainReferenceNode,
    ReferenceNode,
)
from .tokens import (
    CommentToken,
    ElseIfToken,
    ElseToken,
    EndToken,
    EofToken,
    ForEachToken,
    IfToken,
    MacroCallToken,
    MacroDefinitionToken,
    NestedToken,
    TokenNode,
)

logger = logging.getLogger(__name__)

# Открывает ресурс по имени для #parse.
ResourceResolver = Callable[[str], TextIO]


def _operators_by_first_char() -> Dict[str, List[Operator]]:
    result: Dict[str, List[Operator]] = {}
    for op in Operator:
        if op is not Operator.STOP:
            result.setdefault(op.symbol[0], []).append(op)
    return result


_OPERATORS_BY_FIRST_CHAR = _operators_by_first_char()


class Parser:
    """
    Парсер первой фазы.

    Инвариант: ``self._r.c`` всегда содержит следующий интересующий
    символ. Чтение на два символа вперёд делается через pushback.
    """

    def __init__(
        self,
        source: Union[str, TextIO],
        resource_name: Optional[str] = None,
        resource_resolver: Optional[ResourceResolver] = None,
        parsing: Tuple[str, ...] = (),
    ):
        """
        Args:
            source: Текст шаблона или текстовый поток
            resource_name: Имя ресурса для сообщений об ошибках
            resource_resolver: Открывает ресурсы для #parse
            parsing: Имена ресурсов, разбираемых выше по цепочке #parse
        """
        stream = io.StringIO(source) if isinstance(source, str) else source
        self._r = CharReader(stream)
        self.resource_name = resource_name
        self.resource_resolver = resource_resolver
        self._parsing = parsing + ((resource_name,) if resource_name else ())

    # ---------------------------- Публичный API ---------------------------- #

    def parse_tokens(self) -> List[Node]:
        """
        Разбирает весь ввод в плоский список токенов.

        Returns:
            Список узлов, последний из которых EofToken
        """
        tokens: List[Node] = []
        while True:
            token = self._parse_node()
            tokens.append(token)
            if isinstance(token, EofToken):
                break
        logger.debug(f"Parsed {len(tokens)} tokens from {self.resource_name or '<string>'}")
        return tokens

    # --------------------------- Вспомогательные --------------------------- #

    @property
    def _line(self) -> int:
        return self._r.line

    def _error(self, message: str) -> ParseError:
        line = self._line
        return ParseError(message, line, self.resource_name, self._r.snippet())

    def _expect(self, expected: str) -> None:
        """Пропускает пробелы и требует символ expected, затем читает следующий."""
        self._r.skip_space()
        if self._r.c == expected:
            self._r.next()
        else:
            raise self._error(f"Expected {expected}")

    def _parse_id(self, what: str) -> str:
        r = self._r
        if not is_ascii_letter(r.c):
            raise self._error(f"{what} should start with an ASCII letter")
        chars = []
        while is_id_char(r.c):
            chars.append(r.c)
            r.next()
        return "".join(chars)

    # ------------------------------ Верхний уровень ------------------------------ #

    def _parse_node(self) -> Node:
        r = self._r
        if r.c == "#":
            r.next()
            if r.c == "#":
                return self._parse_line_comment()
            if r.c == "*":
                return self._parse_block_comment()
            if r.c == "[":
                return self._parse_hash_square()
            if r.c == "{" or is_ascii_letter(r.c):
                return self._parse_directive()
            # '#' без директивы — обычный символ; `#$x` это '#' и ссылка $x
            return self._parse_plain_text("#")
        if r.c is EOF:
            return EofToken(self._line, self.resource_name)
        return self._parse_non_directive()

    def _parse_non_directive(self) -> Node:
        r = self._r
        if r.c == "$":
            r.next()
            if is_ascii_letter(r.c) or r.c == "{":
                return self._parse_reference()
            return self._parse_plain_text("$")
        first = r.c
        r.next()
        return self._parse_plain_text(first)

    def _parse_plain_text(self, prefix: str) -> Node:
        r = self._r
        chars = [prefix]
        while r.c is not EOF and r.c != "$" and r.c != "#":
            chars.append(r.c)
            r.next()
        return ConstantExpressionNode(self._line, "".join(chars))

    def _parse_hash_square(self) -> Node:
        """`#[[literal]]#`; просто `#[` без второй скобки — обычный текст."""
        r = self._r
        r.next()
        if r.c != "[":
            return self._parse_plain_text("#[")
        start_line = self._line
        r.next()
        chars: List[str] = []
        while True:
            if r.c is EOF:
                raise ParseError(
                    "Unterminated #[[ - did not see matching ]]#", start_line, self.resource_name
                )
            if r.c == "#" and len(chars) > 1 and chars[-1] == "]" and chars[-2] == "]":
                r.next()
                break
            chars.append(r.c)
            r.next()
        return ConstantExpressionNode(self._line, "".join(chars[:-2]))

    def _parse_line_comment(self) -> Node:
        r = self._r
        line = self._line
        while r.c != "\n" and r.c is not EOF:
            r.next()
        r.next()
        return CommentToken(line, self.resource_name)

    def _parse_block_comment(self) -> Node:
        r = self._r
        start_line = self._line
        last = ""
        r.next()
        while not (last == "*" and r.c == "#"):
            if r.c is EOF:
                raise ParseError(
                    "Unterminated #* - did not see matching *#", start_line, self.resource_name
                )
            last = r.c
            r.next()
        r.next()
        return CommentToken(start_line, self.resource_name)

    # -------------------------------- Директивы -------------------------------- #

    def _parse_directive(self) -> Node:
        """Директива `#name` или `#{name}`; после заголовка съедается один перевод строки."""
        r = self._r
        line = self._line
        if r.c == "{":
            r.next()
            directive = self._parse_id("Directive inside #{...}")
            self._expect("}")
        else:
            directive = self._parse_id("Directive")

        node: Node
        if directive == "end":
            node = EndToken(line, self.resource_name)
        elif directive == "if":
            node = IfToken(line, self.resource_name, self._parse_condition())
        elif directive == "elseif":
            node = ElseIfToken(line, self.resource_name, self._parse_condition())
        elif directive == "else":
            node = ElseToken(line, self.resource_name)
        elif directive == "foreach":
            node = self._parse_foreach(line)
        elif directive == "set":
            node = self._parse_set(line)
        elif directive == "parse":
            node = self._parse_parse(line)
        elif directive == "macro":
            node = self._parse_macro_definition(line)
        else:
            node = self._parse_possible_macro_call(line, directive)

        if r.c == "\n":
            r.next()
        return node

    def _parse_condition(self) -> ExpressionNode:
        self._expect("(")
        condition = self._parse_expression()
        self._expect(")")
        return condition

    def _parse_foreach(self, line: int) -> Node:
        r = self._r
        self._expect("(")
        self._expect("$")
        var = self._parse_id("For-each variable")
        r.skip_space()
        if r.c != "i":
            raise self._error("Expected 'in' for #foreach")
        r.next()
        if r.c != "n":
            raise self._error("Expected 'in' for #foreach")
        r.next()
        collection = self._parse_expression()
        self._expect(")")
        return ForEachToken(line, self.resource_name, var, collection)

    def _parse_set(self, line: int) -> Node:
        self._expect("(")
        self._expect("$")
        var = self._parse_id("#set variable")
        self._expect("=")
        expression = self._parse_expression()
        self._expect(")")
        return SetNode(line, var, expression)

    def _parse_parse(self, line: int) -> Node:
        r = self._r
        self._expect("(")
        r.skip_space()
        if r.c != '"':
            raise self._error("#parse only supported with string literal argument")
        nested_name = self._read_string_literal()
        self._expect(")")

        if self.resource_resolver is None:
            raise ParseError(
                f'Cannot #parse("{nested_name}") without a resource resolver',
                line, self.resource_name,
            )
        if nested_name in self._parsing:
            raise ParseError(f'Recursive #parse("{nested_name}")', line, self.resource_name)

        logger.debug(f"Resolving #parse resource {nested_name!r}")
        try:
            stream = self.resource_resolver(nested_name)
        except (OSError, KeyError) as e:
            raise ParseError(
                f"Cannot open resource {nested_name}: {e}", line, self.resource_name
            ) from e
        with stream:
            nested = Parser(stream, nested_name, self.resource_resolver, self._parsing)
            nested_tokens = nested.parse_tokens()
        return NestedToken(line, self.resource_name, nested_name, tuple(nested_tokens))

    def _parse_macro_definition(self, line: int) -> Node:
        r = self._r
        self._expect("(")
        r.skip_space()
        name = self._parse_id("Macro name")
        parameter_names: List[str] = []
        while True:
            r.skip_space()
            if r.c == ")":
                r.next()
                break
            if r.c != "$":
                raise self._error("Macro parameters should look like $name")
            r.next()
            parameter_names.append(self._parse_id("Macro parameter name"))
        return MacroDefinitionToken(line, self.resource_name, name, tuple(parameter_names))

    def _parse_possible_macro_call(self, line: int, directive: str) -> TokenNode:
        r = self._r
        r.skip_space()
        if r.c != "(":
            raise self._error(f"Unrecognized directive #{directive}")
        r.next()
        arguments: List[ExpressionNode] = []
        while True:
            r.skip_space()
            if r.c == ")":
                r.next()
                break
            arguments.append(self._parse_primary())
            # Запятые между аргументами необязательны
            if r.c == ",":
                r.next()
        return MacroCallToken(line, self.resource_name, directive, tuple(arguments))

    # --------------------------------- Ссылки --------------------------------- #

    def _parse_reference(self) -> Node:
        r = self._r
        if r.c == "{":
            r.next()
            if not is_ascii_letter(r.c):
                return self._parse_plain_text("${")
            node = self._parse_reference_no_brace()
            self._expect("}")
            return node
        return self._parse_reference_no_brace()

    def _parse_required_reference(self) -> ReferenceNode:
        r = self._r
        if r.c == "{":
            r.next()
            node = self._parse_reference_no_brace()
            self._expect("}")
            return node
        return self._parse_reference_no_brace()

    def _parse_reference_no_brace(self) -> ReferenceNode:
        line = self._line
        id = self._parse_id("Reference")
        return self._parse_reference_suffix(PlainReferenceNode(line, id))

    def _parse_reference_suffix(self, lhs: ReferenceNode) -> ReferenceNode:
        if self._r.c == ".":
            return self._parse_reference_member(lhs)
        if self._r.c == "[":
            return self._parse_reference_index(lhs)
        return lhs

    def _parse_reference_member(self, lhs: ReferenceNode) -> ReferenceNode:
        r = self._r
        r.next()
        if not is_ascii_letter(r.c):
            # `$foo.!` — точка оказалась обычным текстом
            r.pushback(".")
            return lhs
        id = self._parse_id("Member")
        reference: ReferenceNode
        if r.c == "(":
            reference = self._parse_reference_method_params(lhs, id)
        else:
            reference = MemberReferenceNode(lhs.line, lhs, id)
        return self._parse_reference_suffix(reference)

    def _parse_reference_method_params(self, lhs: ReferenceNode, id: str) -> ReferenceNode:
        r = self._r
        r.next_non_space()
        args: List[ExpressionNode] = []
        if r.c != ")":
            args.append(self._parse_expression())
            while r.c == ",":
                r.next_non_space()
                args.append(self._parse_expression())
            if r.c != ")":
                raise self._error("Expected )")
        r.next()
        return MethodReferenceNode(lhs.line, lhs, id, tuple(args))

    def _parse_reference_index(self, lhs: ReferenceNode) -> ReferenceNode:
        r = self._r
        r.next()
        index = self._parse_expression()
        if r.c != "]":
            raise self._error("Expected ]")
        r.next()
        return self._parse_reference_suffix(IndexReferenceNode(lhs.line, lhs, index))

    # ------------------------------- Выражения ------------------------------- #

    def _parse_expression(self) -> ExpressionNode:
        lhs = self._parse_unary_expression()
        return _OperatorParser(self).parse(lhs, 1)

    def _parse_unary_expression(self) -> ExpressionNode:
        r = self._r
        r.skip_space()
        if r.c == "(":
            r.next_non_space()
            node = self._parse_expression()
            self._expect(")")
            r.skip_space()
            return node
        if r.c == "!":
            line = self._line
            r.next()
            node = NotExpressionNode(line, self._parse_unary_expression())
            r.skip_space()
            return node
        return self._parse_primary()

    def _parse_primary(self) -> ExpressionNode:
        r = self._r
        node: ExpressionNode
        if r.c == "$":
            r.next()
            node = self._parse_required_reference()
        elif r.c == '"':
            line = self._line
            node = ConstantExpressionNode(line, self._read_string_literal())
        elif r.c == "-":
            # Унарного минуса нет: '-' может начинать только отрицательное число
            r.next()
            node = self._parse_int_literal("-")
        elif is_ascii_digit(r.c):
            node = self._parse_int_literal("")
        elif is_ascii_letter(r.c):
            node = self._parse_boolean_literal()
        else:
            raise self._error("Expected an expression")
        r.skip_space()
        return node

    def _read_string_literal(self) -> str:
        r = self._r
        chars: List[str] = []
        r.next()
        while r.c != '"':
            if r.c == "\n" or r.c is EOF:
                raise self._error("Unterminated string constant")
            if r.c == "$" or r.c == "\\":
                raise self._error(
                    "Escapes or references in string constants are not currently supported"
                )
            chars.append(r.c)
            r.next()
        r.next()
        return "".join(chars)

    def _parse_int_literal(self, prefix: str) -> ExpressionNode:
        r = self._r
        digits = [prefix]
        while is_ascii_digit(r.c):
            digits.append(r.c)
            r.next()
        text = "".join(digits)
        if not text.lstrip("-"):
            raise self._error(f"Invalid integer: {text}")
        return ConstantExpressionNode(self._line, int(text))

    def _parse_boolean_literal(self) -> ExpressionNode:
        word = self._parse_id("Identifier without $")
        if word == "true":
            value = True
        elif word == "false":
            value = False
        else:
            raise self._error("Identifier in expression must be preceded by $ or be true or false")
        return ConstantExpressionNode(self._line, value)


class _OperatorParser:
    """
    Разбор бинарных операторов методом "precedence climbing".

    Текущий оператор уже прочитан из ввода; Operator.STOP означает,
    что операторов больше нет.
    """

    def __init__(self, parser: Parser):
        self._parser = parser
        self._current = Operator.STOP
        self._next_operator()

    def parse(self, lhs: ExpressionNode, min_precedence: int) -> ExpressionNode:
        while self._current.precedence >= min_precedence:
            op = self._current
            rhs = self._parser._parse_unary_expression()
            self._next_operator()
            while self._current.precedence > op.precedence:
                rhs = self.parse(rhs, self._current.precedence)
            lhs = BinaryExpressionNode(lhs.line, lhs, op, rhs)
        return lhs

    def _next_operator(self) -> None:
        r = self._parser._r
        r.skip_space()
        candidates = _OPERATORS_BY_FIRST_CHAR.get(r.c) if r.c is not EOF else None
        if not candidates:
            self._current = Operator.STOP
            return
        first = r.c
        r.next()
        found: Optional[Operator] = None
        for candidate in candidates:
            if len(candidate.symbol) == 1:
                found = candidate
            elif candidate.symbol[1] == r.c:
                r.next()
                found = candidate
        if found is None:
            raise self._parser._error(f"Expected {candidates[0]}, not just {first}")
        self._current = found


__all__ = ["Parser", "ResourceResolver"]
