"""
Base exceptions for user-facing template errors.

All expected errors that should be displayed to the user
as clean messages (without stack traces) must inherit from TemplateUserError.

Programming errors and bugs should NOT inherit from TemplateUserError —
they will propagate with full tracebacks.
"""

from __future__ import annotations

from typing import Optional


class TemplateUserError(Exception):
    """
    Base class for all user-facing errors in vtlite.

    These errors indicate problems that the user can fix:
    malformed templates, undefined variables, bad configuration, etc.
    """
    pass


class ParseError(TemplateUserError):
    """
    Ошибка разбора текста шаблона.

    Attributes:
        message: Краткое описание проблемы
        resource_name: Имя ресурса (файла), в котором найдена ошибка, или None
        line: Номер строки (начиная с 1)
        context: Фрагмент ещё не прочитанного ввода (до 20 символов, "..." или "EOF")
    """

    def __init__(
        self,
        message: str,
        line: int,
        resource_name: Optional[str] = None,
        context: Optional[str] = None,
    ):
        self.message = message
        self.line = line
        self.resource_name = resource_name
        self.context = context
        super().__init__(self._format())

    def _format(self) -> str:
        where = f"line {self.line}"
        if self.resource_name:
            where = f"{self.resource_name}, {where}"
        text = f"{self.message}, on {where}"
        if self.context is not None:
            text += f", at text starting: {self.context}"
        return text


class EvaluationError(TemplateUserError):
    """
    Ошибка вычисления шаблона.

    Для ошибок внутри тела макроса исходная ошибка оборачивается:
    сообщение дополняется именем макроса и строкой его определения,
    а исходное исключение доступно через __cause__.
    """

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        macro_name: Optional[str] = None,
        macro_line: Optional[int] = None,
    ):
        self.message = message
        self.line = line
        self.macro_name = macro_name
        self.macro_line = macro_line
        super().__init__(message)


class ConfigLoadError(TemplateUserError, ValueError):
    """Ошибка загрузки конфигурации или файла переменных."""
    pass


__all__ = ["TemplateUserError", "ParseError", "EvaluationError", "ConfigLoadError"]
