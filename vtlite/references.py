"""
Узлы ссылок: `$x`, `$x.y`, `$x.y(args)`, `$x[i]`.

Цепочка ссылки строится слева направо: каждый суффикс владеет узлом
своей левой части. Поиск членов делегируется модулю members.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Tuple

from .expressions import ExpressionNode
from .members import MemberResolutionError, get_index, get_property, invoke_method

if TYPE_CHECKING:
    from .context import EvaluationContext


@dataclass(frozen=True)
class ReferenceNode(ExpressionNode):
    """Базовый класс для узлов ссылок."""

    def _resolve(self, action, *args: Any) -> Any:
        try:
            return action(*args)
        except MemberResolutionError as e:
            raise self.evaluation_error(str(e)) from e


@dataclass(frozen=True)
class PlainReferenceNode(ReferenceNode):
    """Простая ссылка `$x` на переменную контекста."""
    id: str

    def evaluate(self, context: EvaluationContext) -> Any:
        if context.is_defined(self.id):
            return context.get_var(self.id)
        raise self.evaluation_error(f"Undefined reference ${self.id}")

    def is_defined_and_true(self, context: EvaluationContext) -> bool:
        if context.is_defined(self.id):
            return self.is_true(context)
        return False


@dataclass(frozen=True)
class MemberReferenceNode(ReferenceNode):
    """Обращение к свойству `$x.name`."""
    lhs: ReferenceNode
    id: str

    def evaluate(self, context: EvaluationContext) -> Any:
        target = self.lhs.evaluate(context)
        return self._resolve(get_property, target, self.id)


@dataclass(frozen=True)
class MethodReferenceNode(ReferenceNode):
    """Вызов метода `$x.name(arg, ...)`; аргументы вычисляются до поиска метода."""
    lhs: ReferenceNode
    id: str
    args: Tuple[ExpressionNode, ...] = ()

    def evaluate(self, context: EvaluationContext) -> Any:
        target = self.lhs.evaluate(context)
        arg_values = [arg.evaluate(context) for arg in self.args]
        return self._resolve(invoke_method, target, self.id, arg_values)


@dataclass(frozen=True)
class IndexReferenceNode(ReferenceNode):
    """Индексирование `$x[index]`."""
    lhs: ReferenceNode
    index: ExpressionNode

    def evaluate(self, context: EvaluationContext) -> Any:
        target = self.lhs.evaluate(context)
        if target is None:
            raise self.evaluation_error("Cannot index null value")
        index_value = self.index.evaluate(context)
        return self._resolve(get_index, target, index_value)


__all__ = [
    "ReferenceNode",
    "PlainReferenceNode",
    "MemberReferenceNode",
    "MethodReferenceNode",
    "IndexReferenceNode",
]
