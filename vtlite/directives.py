"""
Структурные узлы директив, которые строит вторая фаза разбора.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterator, Tuple

from .expressions import ExpressionNode
from .nodes import Node
from .values import render_value, show_value

if TYPE_CHECKING:
    from .context import EvaluationContext
    from .macro import Macro


@dataclass(frozen=True)
class SetNode(Node):
    """`#set ($var = expression)`; сам по себе ничего не выводит."""
    var: str
    expression: ExpressionNode

    def evaluate(self, context: EvaluationContext) -> str:
        context.set_var(self.var, self.expression.evaluate(context))
        return ""


@dataclass(frozen=True)
class IfNode(Node):
    """
    `#if (condition) ... #else ... #end`.

    Цепочка `#elseif` представлена вложенными IfNode в false_part.
    """
    condition: ExpressionNode
    true_part: Node
    false_part: Node

    def evaluate(self, context: EvaluationContext) -> Any:
        if self.condition.is_defined_and_true(context):
            return self.true_part.evaluate(context)
        return self.false_part.evaluate(context)


@dataclass(frozen=True)
class ForEachStatus:
    """
    Состояние цикла, доступное в теле как `$foreach`.

    Поля читаются как `$foreach.hasNext`, `$foreach.index` и т.д.
    """
    index: int
    has_next: bool

    @property
    def count(self) -> int:
        return self.index + 1

    @property
    def first(self) -> bool:
        return self.index == 0

    @property
    def last(self) -> bool:
        return not self.has_next


def _with_lookahead(values: Iterable[Any]) -> Iterator[Tuple[Any, bool]]:
    """Пары (элемент, есть ли следующий) без материализации коллекции."""
    iterator = iter(values)
    try:
        current = next(iterator)
    except StopIteration:
        return
    for following in iterator:
        yield current, True
        current = following
    yield current, False


@dataclass(frozen=True)
class ForEachNode(Node):
    """`#foreach ($var in collection) body #end`."""
    var: str
    collection: ExpressionNode
    body: Node

    def _iterable(self, value: Any) -> Iterable[Any]:
        if isinstance(value, Mapping):
            return value.values()
        if value is None or isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
            raise self.evaluation_error(f"Not iterable: {show_value(value)}")
        return value

    def evaluate(self, context: EvaluationContext) -> str:
        values = self._iterable(self.collection.evaluate(context))
        parts = []
        for index, (value, has_next) in enumerate(_with_lookahead(values)):
            with context.binding(self.var, value), \
                    context.binding("foreach", ForEachStatus(index, has_next)):
                parts.append(render_value(self.body.evaluate(context)))
        return "".join(parts)


@dataclass(frozen=True)
class MacroCallNode(Node):
    """
    Вызов макроса `#name(arg1 arg2)`.

    Таблица макросов общая для всего шаблона; связывание по имени
    происходит при вычислении, а наличие макроса проверяется на этапе
    разбора.
    """
    name: str
    arguments: Tuple[Node, ...]
    macros: Dict[str, Macro] = field(default_factory=dict, compare=False, repr=False)

    @property
    def macro(self) -> Macro:
        return self.macros[self.name]

    def evaluate(self, context: EvaluationContext) -> Any:
        macro = self.macro
        if len(self.arguments) != macro.parameter_count:
            raise self.evaluation_error(
                f"Wrong number of arguments to #{self.name}: "
                f"expected {macro.parameter_count}, got {len(self.arguments)}"
            )
        return macro.evaluate(context, self.arguments)


__all__ = ["SetNode", "IfNode", "ForEachStatus", "ForEachNode", "MacroCallNode"]
