"""
Шаблон: результат разбора, который можно вычислять многократно.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, TextIO, Union

from .context import PlainEvaluationContext
from .macro import Macro
from .nodes import SequenceNode
from .parser import Parser, ResourceResolver
from .reparser import Reparser
from .values import render_value

logger = logging.getLogger(__name__)


class Template:
    """
    Разобранный шаблон.

    Корневой узел и таблица макросов не меняются после разбора, поэтому
    один шаблон можно вычислять с разными наборами переменных.
    """

    def __init__(self, root: SequenceNode, macros: Dict[str, Macro], resource_name: Optional[str] = None):
        self._root = root
        self._macros = macros
        self.resource_name = resource_name

    @classmethod
    def parse_from(
        cls,
        reader: Union[str, TextIO],
        resource_name: Optional[str] = None,
        resource_resolver: Optional[ResourceResolver] = None,
    ) -> "Template":
        """
        Разбирает шаблон из потока (или строки).

        Разбор идёт в две фазы: сначала плоский список токенов, затем
        структурирование директив и сбор макросов.

        Raises:
            ParseError: При синтаксической ошибке
        """
        tokens = Parser(reader, resource_name, resource_resolver).parse_tokens()
        root, macros = Reparser(tokens).reparse()
        return cls(root, macros, resource_name)

    @property
    def root(self) -> SequenceNode:
        return self._root

    @property
    def macros(self) -> Mapping[str, Macro]:
        """Таблица макросов только для чтения."""
        return MappingProxyType(self._macros)

    def evaluate(self, variables: Optional[Mapping[str, Any]] = None) -> str:
        """
        Вычисляет шаблон с заданными переменными.

        Переданное отображение не изменяется: #set пишет в собственную копию.

        Raises:
            EvaluationError: При ошибке вычисления
        """
        variables = variables or {}
        logger.debug(
            f"Evaluating {self.resource_name or '<string>'} with {len(variables)} variable(s)"
        )
        context = PlainEvaluationContext(variables)
        return render_value(self._root.evaluate(context))


def parse(
    source: Union[str, TextIO],
    resource_name: Optional[str] = None,
    resource_resolver: Optional[ResourceResolver] = None,
) -> Template:
    """Разбирает шаблон из строки или текстового потока."""
    return Template.parse_from(source, resource_name, resource_resolver)


class FileResourceResolver:
    """
    Открывает ресурсы `#parse` как файлы относительно корневого каталога.

    Пути, выходящие за пределы корня, запрещены.
    """

    def __init__(self, root: Union[str, Path], encoding: str = "utf-8"):
        self.root = Path(root).resolve()
        self.encoding = encoding

    def resolve_path(self, name: str) -> Path:
        path = (self.root / name).resolve()
        if not path.is_relative_to(self.root):
            raise PermissionError(f"Resource {name!r} is outside of {self.root}")
        return path

    def __call__(self, name: str) -> TextIO:
        return self.resolve_path(name).open("r", encoding=self.encoding)


class MappingResourceResolver:
    """Ресурсы из словаря имя → текст; неизвестное имя даёт KeyError."""

    def __init__(self, resources: Mapping[str, str]):
        self.resources = dict(resources)

    def __call__(self, name: str) -> TextIO:
        return io.StringIO(self.resources[name])


__all__ = [
    "Template",
    "parse",
    "ResourceResolver",
    "FileResourceResolver",
    "MappingResourceResolver",
]
