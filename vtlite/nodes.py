"""
Базовые узлы дерева разбора.

Определяет корневой класс неизменяемых узлов и узел-последовательность,
который конкатенирует результаты дочерних узлов.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Tuple

from .errors import EvaluationError
from .values import render_value

if TYPE_CHECKING:
    from .context import EvaluationContext


@dataclass(frozen=True)
class Node(ABC):
    """Базовый класс для всех узлов шаблона; хранит номер исходной строки."""
    line: int

    @abstractmethod
    def evaluate(self, context: EvaluationContext) -> Any:
        """
        Вычисляет узел в заданном контексте.

        Результат может использоваться дальше (например, 2 + 3 для #set)
        или попасть прямо в вывод шаблона.
        """

    def evaluation_error(self, message: str) -> EvaluationError:
        return EvaluationError(f"In expression on line {self.line}: {message}", line=self.line)


@dataclass(frozen=True)
class SequenceNode(Node):
    """
    Конкатенация узлов.

    Вычисление даёт ту же строку, что и вычисление каждого узла
    по порядку со склейкой результатов.
    """
    nodes: Tuple[Node, ...] = ()

    def evaluate(self, context: EvaluationContext) -> str:
        return "".join(render_value(node.evaluate(context)) for node in self.nodes)


def empty_node(line: int) -> SequenceNode:
    """Пустой узел, например ветка else у #if без явного #else."""
    return SequenceNode(line, ())


__all__ = ["Node", "SequenceNode", "empty_node"]
