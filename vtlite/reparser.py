"""
Вторая фаза разбора: построение дерева из плоского списка токенов.

Составные конструкции (`#if ... #elseif ... #else ... #end`,
`#foreach ... #end`, `#macro ... #end`) разбираются рекурсивным спуском
до множества "стоп-токенов". Все определения макросов собираются до
связывания вызовов, поэтому макрос можно вызвать раньше, чем он определён.
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple, Type

from .directives import ForEachNode, IfNode, MacroCallNode, SetNode
from .errors import ParseError
from .expressions import ConstantExpressionNode
from .macro import Macro
from .nodes import Node, SequenceNode, empty_node
from .references import ReferenceNode
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

StopSet = FrozenSet[Type[TokenNode]]

_END_SET: StopSet = frozenset({EndToken})
_EOF_SET: StopSet = frozenset({EofToken})
_ELSE_ELSE_IF_END_SET: StopSet = frozenset({ElseToken, ElseIfToken, EndToken})


def flatten_nested(tokens: Sequence[Node]) -> List[Node]:
    """Подставляет токены ресурсов из `#parse` на место NestedToken (без их EOF)."""
    result: List[Node] = []
    for token in tokens:
        if isinstance(token, NestedToken):
            result.extend(t for t in flatten_nested(token.tokens) if not isinstance(t, EofToken))
        else:
            result.append(token)
    return result


def _is_whitespace_literal(node: Node) -> bool:
    if isinstance(node, ConstantExpressionNode) and isinstance(node.value, str):
        return node.value.strip() == ""
    return False


def _deletes_space_before_set(node: Node) -> bool:
    return isinstance(node, (CommentToken, ReferenceNode, SetNode, MacroDefinitionToken))


def remove_space_before_set(tokens: Sequence[Node]) -> List[Node]:
    """
    Удаляет пробельный текст между `#set` и предшествующим комментарием,
    ссылкой, `#set` или определением макроса, как это делает Velocity.
    """
    result: List[Node] = []
    i = 0
    while i < len(tokens):
        node = tokens[i]
        result.append(node)
        if (
            _deletes_space_before_set(node)
            and i + 2 < len(tokens)
            and _is_whitespace_literal(tokens[i + 1])
            and isinstance(tokens[i + 2], SetNode)
        ):
            i += 1
        i += 1
    return result


class Reparser:
    """Строит дерево шаблона и таблицу макросов из токенов первой фазы."""

    def __init__(self, tokens: Sequence[Node]):
        if not tokens or not isinstance(tokens[-1], EofToken):
            raise ValueError("Token list must end with an EofToken")
        self._tokens = remove_space_before_set(flatten_nested(tokens))
        self._index = 0
        self._macros: Dict[str, Macro] = {}
        self._calls: List[MacroCallToken] = []

    def reparse(self) -> Tuple[SequenceNode, Dict[str, Macro]]:
        """
        Returns:
            (корневой узел-последовательность, таблица макросов)

        Raises:
            ParseError: Незакрытая конструкция, лишний #end/#else/#elseif
                или вызов неопределённого макроса
        """
        eof = self._tokens[-1]
        assert isinstance(eof, EofToken)
        root = self._parse_to(_EOF_SET, EofToken(1, eof.resource_name))
        self._link_macro_calls()
        return root, self._macros

    # ---------------------------------------------------------------------- #

    def _current(self) -> Node:
        return self._tokens[self._index]

    def _advance(self) -> None:
        if not isinstance(self._current(), EofToken):
            self._index += 1

    def _parse_to(self, stop_set: StopSet, for_what: TokenNode) -> SequenceNode:
        nodes: List[Node] = []
        while True:
            current = self._current()
            if type(current) in stop_set:
                break
            if isinstance(current, EofToken):
                raise ParseError(
                    f"Reached end of file while parsing {for_what.name}",
                    for_what.line,
                    for_what.resource_name,
                )
            if isinstance(current, TokenNode):
                nodes.append(self._parse_token())
            else:
                nodes.append(current)
                self._advance()
        return SequenceNode(for_what.line, tuple(nodes))

    def _parse_token(self) -> Node:
        token = self._current()
        assert isinstance(token, TokenNode)
        self._advance()
        if isinstance(token, CommentToken):
            return empty_node(token.line)
        if isinstance(token, IfToken):
            return self._parse_if_or_else_if(token)
        if isinstance(token, ForEachToken):
            return self._parse_foreach(token)
        if isinstance(token, MacroDefinitionToken):
            return self._parse_macro_definition(token)
        if isinstance(token, MacroCallToken):
            self._calls.append(token)
            return MacroCallNode(token.line, token.macro_name, token.arguments, self._macros)
        raise ParseError(f"Unexpected {token.name}", token.line, token.resource_name)

    def _parse_foreach(self, foreach: ForEachToken) -> Node:
        body = self._parse_to(_END_SET, foreach)
        self._advance()  # #end
        return ForEachNode(foreach.line, foreach.var, foreach.collection, body)

    def _parse_if_or_else_if(self, token: TokenNode, opening: Optional[IfToken] = None) -> Node:
        """
        `opening` — исходный #if цепочки; незакрытая цепочка #elseif
        сообщается по его строке.
        """
        assert isinstance(token, (IfToken, ElseIfToken))
        if opening is None:
            assert isinstance(token, IfToken)
            opening = token
        true_part = self._parse_to(_ELSE_ELSE_IF_END_SET, opening)
        stop = self._current()
        self._advance()  # #else, #elseif (cond) или #end
        false_part: Node
        if isinstance(stop, EndToken):
            false_part = empty_node(stop.line)
        elif isinstance(stop, ElseToken):
            false_part = self._parse_to(_END_SET, opening)
            self._advance()  # #end
        elif isinstance(stop, ElseIfToken):
            # #if (c1) ... #elseif (c2) ... разбирается как
            # #if (c1) ... #else #if (c2) ... #end #end
            false_part = self._parse_if_or_else_if(stop, opening)
        else:
            raise AssertionError(stop)
        return IfNode(token.line, token.condition, true_part, false_part)

    def _parse_macro_definition(self, definition: MacroDefinitionToken) -> Node:
        body = self._parse_to(_END_SET, definition)
        self._advance()  # #end
        name = definition.macro_name
        if name in self._macros:
            logger.debug(
                f"Ignoring duplicate definition of macro #{name} on line {definition.line}"
            )
        else:
            self._macros[name] = Macro(definition.line, name, definition.parameter_names, body)
            logger.debug(f"Registered macro #{name} with {len(definition.parameter_names)} parameter(s)")
        return empty_node(definition.line)

    def _link_macro_calls(self) -> None:
        for call in self._calls:
            if call.macro_name not in self._macros:
                raise ParseError(
                    f"#{call.macro_name} is neither a standard directive "
                    f"nor a macro that has been defined",
                    call.line,
                    call.resource_name,
                )


__all__ = ["Reparser", "flatten_nested", "remove_space_before_set"]
