"""
Токены первой фазы разбора.

Токены существуют только между фазами: вторая фаза (Reparser)
превращает их в структурные узлы и отбрасывает. Вычислять токен нельзя.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional, Tuple

from .expressions import ExpressionNode
from .nodes import Node

if TYPE_CHECKING:
    from .context import EvaluationContext


@dataclass(frozen=True)
class TokenNode(Node):
    """Базовый класс токенов; помнит ресурс, из которого прочитан."""
    resource_name: Optional[str]

    def evaluate(self, context: EvaluationContext) -> Any:
        raise NotImplementedError(f"Token {self.name} cannot be evaluated")

    @property
    @abstractmethod
    def name(self) -> str:
        """Имя токена для сообщений об ошибках."""


@dataclass(frozen=True)
class EofToken(TokenNode):
    @property
    def name(self) -> str:
        return "end of file"


@dataclass(frozen=True)
class EndToken(TokenNode):
    @property
    def name(self) -> str:
        return "#end"


@dataclass(frozen=True)
class CommentToken(TokenNode):
    """Строчный `##` или блочный `#* *#` комментарий."""

    @property
    def name(self) -> str:
        return "##"


@dataclass(frozen=True)
class IfToken(TokenNode):
    condition: ExpressionNode

    @property
    def name(self) -> str:
        return "#if"


@dataclass(frozen=True)
class ElseIfToken(TokenNode):
    condition: ExpressionNode

    @property
    def name(self) -> str:
        return "#elseif"


@dataclass(frozen=True)
class ElseToken(TokenNode):
    @property
    def name(self) -> str:
        return "#else"


@dataclass(frozen=True)
class ForEachToken(TokenNode):
    var: str
    collection: ExpressionNode

    @property
    def name(self) -> str:
        return "#foreach"


@dataclass(frozen=True)
class MacroDefinitionToken(TokenNode):
    macro_name: str
    parameter_names: Tuple[str, ...]

    @property
    def name(self) -> str:
        return f"#macro({self.macro_name})"


@dataclass(frozen=True)
class MacroCallToken(TokenNode):
    macro_name: str
    arguments: Tuple[ExpressionNode, ...]

    @property
    def name(self) -> str:
        return f"#{self.macro_name}"


@dataclass(frozen=True)
class NestedToken(TokenNode):
    """Токены ресурса, подключённого через `#parse`; последний из них EofToken."""
    nested_name: str
    tokens: Tuple[Node, ...]

    @property
    def name(self) -> str:
        return f'#parse("{self.nested_name}")'


__all__ = [
    "TokenNode",
    "EofToken",
    "EndToken",
    "CommentToken",
    "IfToken",
    "ElseIfToken",
    "ElseToken",
    "ForEachToken",
    "MacroDefinitionToken",
    "MacroCallToken",
    "NestedToken",
]
