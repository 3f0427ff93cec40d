"""
Контексты вычисления шаблона.

Контекст отображает имена переменных на значения. Каждая запись
возвращает действие отмены (undo), которое восстанавливает предыдущее
состояние точно, включая "переменная не определена".
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterator, Mapping, Optional

if TYPE_CHECKING:
    from .nodes import Node

# Действие отмены одной записи в контекст.
Undo = Callable[[], None]

_UNSET = object()


class EvaluationContext(ABC):
    """Абстрактный контекст вычисления."""

    @abstractmethod
    def get_var(self, name: str) -> Any:
        """Значение переменной; для неопределённой переменной — None."""

    @abstractmethod
    def is_defined(self, name: str) -> bool:
        """Определена ли переменная (в том числе со значением None)."""

    @abstractmethod
    def set_var(self, name: str, value: Any) -> Undo:
        """Устанавливает переменную и возвращает действие отмены."""

    @contextmanager
    def binding(self, name: str, value: Any) -> Iterator[None]:
        """
        Временно связывает переменную на время блока with.

        Отмена выполняется и при выходе по исключению.
        """
        undo = self.set_var(name, value)
        try:
            yield
        finally:
            undo()


class PlainEvaluationContext(EvaluationContext):
    """Контекст поверх копии переданного словаря переменных."""

    def __init__(self, variables: Optional[Mapping[str, Any]] = None):
        self._vars: Dict[str, Any] = dict(variables or {})

    def get_var(self, name: str) -> Any:
        return self._vars.get(name)

    def is_defined(self, name: str) -> bool:
        return name in self._vars

    def set_var(self, name: str, value: Any) -> Undo:
        previous = self._vars.get(name, _UNSET)
        self._vars[name] = value

        def undo() -> None:
            if previous is _UNSET:
                self._vars.pop(name, None)
            else:
                self._vars[name] = previous

        return undo


@dataclass(frozen=True)
class Thunk:
    """
    Отложенное вычисление аргумента макроса.

    Узел вычисляется в контексте места вызова заново при каждом `force()`.
    """
    node: Node
    context: EvaluationContext

    def force(self) -> Any:
        return self.node.evaluate(self.context)


__all__ = ["Undo", "EvaluationContext", "PlainEvaluationContext", "Thunk"]
