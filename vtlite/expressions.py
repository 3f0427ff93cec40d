"""
Узлы выражений.

Выражения встречаются внутри директив #set, #if, #foreach, в аргументах
макросов, а также в индексах и аргументах методов внутри ссылок.
"""

from __future__ import annotations

import enum
import operator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict

from .nodes import Node
from .values import is_integer, is_true, loose_equals, show_value

if TYPE_CHECKING:
    from .context import EvaluationContext


class Operator(enum.Enum):
    """Бинарные операторы с приоритетами (больше = связывает сильнее)."""

    # Фиктивный оператор с минимальным приоритетом: возвращается, когда
    # оператор не найден, и останавливает разбор подвыражения.
    STOP = ("", 0)

    # Односимвольный оператор, являющийся префиксом двухсимвольного
    # (< и <=), должен идти раньше.
    OR = ("||", 1)
    AND = ("&&", 2)
    EQUAL = ("==", 3)
    NOT_EQUAL = ("!=", 3)
    LESS = ("<", 4)
    LESS_OR_EQUAL = ("<=", 4)
    GREATER = (">", 4)
    GREATER_OR_EQUAL = (">=", 4)
    PLUS = ("+", 5)
    MINUS = ("-", 5)
    TIMES = ("*", 6)
    DIVIDE = ("/", 6)
    REMAINDER = ("%", 6)

    def __init__(self, symbol: str, precedence: int):
        self.symbol = symbol
        self.precedence = precedence

    def __str__(self) -> str:
        return self.symbol


def _divide(lhs: int, rhs: int) -> int:
    # Деление с отбрасыванием дробной части (к нулю), а не floor.
    quotient = abs(lhs) // abs(rhs)
    return quotient if (lhs < 0) == (rhs < 0) else -quotient


def _remainder(lhs: int, rhs: int) -> int:
    return lhs - rhs * _divide(lhs, rhs)


_INTEGER_OPERATIONS: Dict[Operator, Callable[[int, int], Any]] = {
    Operator.LESS: operator.lt,
    Operator.LESS_OR_EQUAL: operator.le,
    Operator.GREATER: operator.gt,
    Operator.GREATER_OR_EQUAL: operator.ge,
    Operator.PLUS: operator.add,
    Operator.MINUS: operator.sub,
    Operator.TIMES: operator.mul,
    Operator.DIVIDE: _divide,
    Operator.REMAINDER: _remainder,
}


@dataclass(frozen=True)
class ExpressionNode(Node):
    """Базовый класс выражений."""

    def is_true(self, context: EvaluationContext) -> bool:
        """Истинно, если значение не None и не False."""
        return is_true(self.evaluate(context))

    def is_defined_and_true(self, context: EvaluationContext) -> bool:
        """
        То же, что is_true, но неопределённая переменная даёт False.

        Переопределяется для простых ссылок, чтобы поддержать идиому
        #if ($var) без ошибки для неопределённой $var.
        """
        return self.is_true(context)

    def int_value(self, context: EvaluationContext) -> int:
        value = self.evaluate(context)
        if not is_integer(value):
            raise self.evaluation_error(
                f"Arithmetic is only available on integers, not {show_value(value)}"
            )
        return value


@dataclass(frozen=True)
class ConstantExpressionNode(ExpressionNode):
    """
    Константа: литерал выражения (строка, целое, логическое)
    или фрагмент обычного текста шаблона.
    """
    value: Any

    def evaluate(self, context: EvaluationContext) -> Any:
        return self.value


@dataclass(frozen=True)
class BinaryExpressionNode(ExpressionNode):
    """Бинарное выражение, например `$b + $c` в `#set ($a = $b + $c)`."""
    lhs: ExpressionNode
    op: Operator
    rhs: ExpressionNode

    def evaluate(self, context: EvaluationContext) -> Any:
        op = self.op
        if op is Operator.OR:
            return self.lhs.is_true(context) or self.rhs.is_true(context)
        if op is Operator.AND:
            return self.lhs.is_true(context) and self.rhs.is_true(context)
        if op is Operator.EQUAL:
            return loose_equals(self.lhs.evaluate(context), self.rhs.evaluate(context))
        if op is Operator.NOT_EQUAL:
            return not loose_equals(self.lhs.evaluate(context), self.rhs.evaluate(context))

        lhs_int = self.lhs.int_value(context)
        rhs_int = self.rhs.int_value(context)
        if op in (Operator.DIVIDE, Operator.REMAINDER) and rhs_int == 0:
            raise self.evaluation_error(f"Division by zero: {lhs_int} {op} {rhs_int}")
        operation = _INTEGER_OPERATIONS.get(op)
        if operation is None:
            raise AssertionError(op)
        return operation(lhs_int, rhs_int)


@dataclass(frozen=True)
class NotExpressionNode(ExpressionNode):
    """Отрицание `!$a`."""
    expr: ExpressionNode

    def evaluate(self, context: EvaluationContext) -> bool:
        return not self.expr.is_true(context)


__all__ = [
    "Operator",
    "ExpressionNode",
    "ConstantExpressionNode",
    "BinaryExpressionNode",
    "NotExpressionNode",
]
