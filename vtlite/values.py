"""
Правила работы со значениями во время вычисления шаблона.

Здесь собраны истинность, "свободное" равенство, проверка целых чисел
и строковое представление значений в выводе.
"""

from __future__ import annotations

from typing import Any


def render_value(value: Any) -> str:
    """
    Строковое представление значения в выводе шаблона.

    None выводится как "null", логические значения как "true"/"false",
    всё остальное через str().
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def type_name(value: Any) -> str:
    """Полное имя типа значения для сообщений об ошибках."""
    tp = type(value)
    if tp.__module__ == "builtins":
        return tp.__qualname__
    return f"{tp.__module__}.{tp.__qualname__}"


def show_value(value: Any) -> str:
    """Значение вместе с его типом, например `abc (a str)` или `null (a NoneType)`."""
    return f"{render_value(value)} (a {type_name(value)})"


def is_true(value: Any) -> bool:
    """
    Истинность значения.

    Ложны только None и False. Пустые коллекции, пустая строка
    и ноль считаются истинными.
    """
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return True


def is_integer(value: Any) -> bool:
    """Целое число для арифметики; bool целым числом не считается."""
    return isinstance(value, int) and not isinstance(value, bool)


def loose_equals(lhs: Any, rhs: Any) -> bool:
    """
    Равенство для операторов == и !=.

    Значения одного класса сравниваются обычным ==. Значения разных
    классов считаются равными, если совпадают их строковые
    представления: целое 123 равно строке "123". Такое равенство
    не транзитивно и не согласовано с хешированием.
    """
    if lhs is rhs:
        return True
    if lhs is None or rhs is None:
        return False
    if type(lhs) is type(rhs):
        return bool(lhs == rhs)
    return render_value(lhs) == render_value(rhs)


__all__ = [
    "render_value",
    "type_name",
    "show_value",
    "is_true",
    "is_integer",
    "loose_equals",
]
