"""
Макросы шаблона и контекст вычисления тела макроса.

Аргументы макроса передаются "по имени": каждый аргумент остаётся
невычисленным узлом, привязанным к контексту вызова, и вычисляется
заново при каждом обращении к параметру в теле.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from .context import EvaluationContext, Thunk, Undo
from .errors import EvaluationError
from .nodes import Node

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Macro:
    """
    Определение макроса `#macro (name $p1 $p2) ... #end`.

    Attributes:
        line: Строка определения
        name: Имя макроса
        parameter_names: Имена параметров без `$`
        body: Тело макроса
    """
    line: int
    name: str
    parameter_names: Tuple[str, ...]
    body: Node

    @property
    def parameter_count(self) -> int:
        return len(self.parameter_names)

    def evaluate(self, context: EvaluationContext, arguments: Sequence[Node]) -> Any:
        """
        Вычисляет тело макроса для вызова с заданными узлами-аргументами.

        Ошибка вычисления в теле перевыбрасывается с указанием макроса,
        исходная ошибка доступна как __cause__.
        """
        # число аргументов проверяет MacroCallNode в месте вызова
        assert len(arguments) == self.parameter_count, (self.name, len(arguments))
        thunks = {
            name: Thunk(argument, context)
            for name, argument in zip(self.parameter_names, arguments)
        }
        macro_context = MacroEvaluationContext(thunks, context)
        try:
            return self.body.evaluate(macro_context)
        except EvaluationError as e:
            raise EvaluationError(
                f"In macro #{self.name} defined on line {self.line}: {e.message}",
                line=e.line,
                macro_name=self.name,
                macro_line=self.line,
            ) from e
        finally:
            macro_context.restore()


class MacroEvaluationContext(EvaluationContext):
    """
    Контекст тела макроса поверх контекста вызова.

    Параметры читаются через свои thunk-и, которые вычисляются в исходном
    контексте, а не в этом. Иначе вызов `#m($x)` для параметра `$x`
    зациклился бы, а `#m($y 23)` для `#macro(m $x $y)` дал бы в `$x`
    значение параметра `$y`, а не переменной `$y` места вызова.
    """

    def __init__(self, parameter_thunks: Dict[str, Thunk], original: EvaluationContext):
        self._thunks = dict(parameter_thunks)
        self._original = original
        self._undo_stack: List[Undo] = []

    def get_var(self, name: str) -> Any:
        thunk = self._thunks.get(name)
        if thunk is None:
            return self._original.get_var(name)
        return thunk.force()

    def is_defined(self, name: str) -> bool:
        return name in self._thunks or self._original.is_defined(name)

    def set_var(self, name: str, value: Any) -> Undo:
        thunk = self._thunks.get(name)
        if thunk is None:
            return self._original.set_var(name, value)

        # #set на параметре затеняет его до конца вызова
        del self._thunks[name]
        original_undo = self._original.set_var(name, value)
        done = False

        def undo() -> None:
            nonlocal done
            if done:
                return
            done = True
            original_undo()
            self._thunks[name] = thunk

        self._undo_stack.append(undo)
        return undo

    def restore(self) -> None:
        """Отменяет все затенения параметров, сделанные во время вызова."""
        while self._undo_stack:
            self._undo_stack.pop()()


__all__ = ["Macro", "MacroEvaluationContext"]
