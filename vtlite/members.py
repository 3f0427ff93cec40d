"""
Разрешение свойств, методов и индексов у значений шаблона.

Каждое значение описывается таблицей возможностей: для имени члена
это список кандидатов-перегрузок (`Accessor`). Таблица строится
интроспекцией Python-объекта (включая перегрузки, объявленные через
`typing.overload`), либо берётся явно из атрибута класса
`__vtl_members__`.

Вызов метода требует ровно одного кандидата, совместимого
с переданными аргументами по арности и типам. Для числовых типов
допускается расширяющее преобразование по цепочке int → float → complex,
односимвольная строка (char) расширяется до int и далее.
"""

from __future__ import annotations

import functools
import inspect
import logging
import re
import types
import typing
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Union, get_args, get_origin

from .values import is_integer, render_value, show_value, type_name

logger = logging.getLogger(__name__)

_MISSING = object()

# Числовые типы в порядке расширения.
NUMERIC_WIDENING: Tuple[type, ...] = (int, float, complex)

# Вид "символ" для односимвольных строк.
CHAR = "char"


class MemberResolutionError(Exception):
    """Член не найден, неоднозначен или его вызов завершился ошибкой."""
    pass


# ---------------------------------------------------------------------------
# Совместимость типов
# ---------------------------------------------------------------------------

def primitive_kind(value: Any) -> Union[type, str, None]:
    """Примитивный вид значения: bool, int, float, complex, CHAR или None."""
    tp = type(value)
    if tp in (bool, int, float, complex):
        return tp
    if isinstance(value, str) and len(value) == 1:
        return CHAR
    return None


def primitive_type_is_assignable(to: Union[type, str], from_: Union[type, str]) -> bool:
    """
    Можно ли значение вида `from_` передать в параметр типа `to`.

    Правила расширения: одинаковые виды совместимы; char совместим
    с любым числовым типом; числовой тип совместим с любым числовым
    типом не уже себя; bool совместим только с bool.
    """
    if to == from_:
        return True
    if to not in NUMERIC_WIDENING:
        return False
    if from_ == CHAR:
        return True
    if from_ not in NUMERIC_WIDENING:
        return False
    return NUMERIC_WIDENING.index(to) >= NUMERIC_WIDENING.index(from_)


def _widen(to: type, value: Any) -> Any:
    if to in NUMERIC_WIDENING and type(value) is not to:
        if primitive_kind(value) == CHAR:
            value = ord(value)
        return to(value)
    return value


def coerce_argument(expected: Any, value: Any) -> Any:
    """
    Проверяет, совместимо ли значение с аннотацией параметра.

    Returns:
        Значение (возможно, расширенное) или _MISSING при несовместимости
    """
    if expected is inspect.Parameter.empty or expected is Any or expected is object:
        return value
    if isinstance(expected, (str, typing.ForwardRef, typing.TypeVar)):
        # Неразрешённая аннотация: тип не проверяем
        return value
    if expected is None or expected is type(None):
        return value if value is None else _MISSING

    origin = get_origin(expected)
    if origin is Union or origin is types.UnionType:
        for variant in get_args(expected):
            coerced = coerce_argument(variant, value)
            if coerced is not _MISSING:
                return coerced
        return _MISSING
    if origin is typing.Literal:
        return value if value in get_args(expected) else _MISSING
    if origin is typing.Annotated:
        return coerce_argument(get_args(expected)[0], value)
    if origin is not None:
        expected = origin

    if not isinstance(expected, type):
        return value
    if value is None:
        return _MISSING
    if expected in NUMERIC_WIDENING or expected is bool:
        kind = primitive_kind(value)
        if kind is None or not primitive_type_is_assignable(expected, kind):
            if isinstance(value, expected) and not isinstance(value, bool):
                return value
            return _MISSING
        return _widen(expected, value)
    return value if isinstance(value, expected) else _MISSING


# ---------------------------------------------------------------------------
# Таблица возможностей
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Accessor:
    """
    Один кандидат (перегрузка) члена значения.

    Attributes:
        name: Имя члена
        func: Вызываемый объект; для явных таблиц получает цель первым аргументом
        param_types: Явные типы параметров (для таблиц `__vtl_members__`)
        signature: Сигнатура, полученная интроспекцией
        hints: Разрешённые аннотации параметров сигнатуры
        bound_target: Передавать ли цель первым аргументом при вызове
    """
    name: str
    func: Callable[..., Any]
    param_types: Optional[Tuple[Any, ...]] = None
    signature: Optional[inspect.Signature] = None
    hints: Optional[Dict[str, Any]] = None
    bound_target: bool = False

    def match(self, args: Sequence[Any]) -> Optional[Tuple[Tuple[Any, ...], Dict[str, Any]]]:
        """
        Сопоставляет аргументы с кандидатом.

        Returns:
            (позиционные, именованные) аргументы после расширения типов
            или None, если кандидат несовместим
        """
        if self.param_types is not None:
            if len(self.param_types) != len(args):
                return None
            coerced = []
            for expected, value in zip(self.param_types, args):
                converted = coerce_argument(expected, value)
                if converted is _MISSING:
                    return None
                coerced.append(converted)
            return tuple(coerced), {}

        if self.signature is None:
            return tuple(args), {}

        try:
            bound = self.signature.bind(*args)
        except TypeError:
            return None
        hints = self.hints or {}
        for name, value in list(bound.arguments.items()):
            expected = hints.get(name, inspect.Parameter.empty)
            kind = self.signature.parameters[name].kind
            if kind is inspect.Parameter.VAR_POSITIONAL:
                converted_items = []
                for item in value:
                    converted = coerce_argument(expected, item)
                    if converted is _MISSING:
                        return None
                    converted_items.append(converted)
                bound.arguments[name] = tuple(converted_items)
            else:
                converted = coerce_argument(expected, value)
                if converted is _MISSING:
                    return None
                bound.arguments[name] = converted
        return tuple(bound.args), dict(bound.kwargs)

    def returns(self) -> Any:
        """Аннотация возвращаемого значения или inspect.Parameter.empty."""
        if self.hints and "return" in self.hints:
            return self.hints["return"]
        return inspect.Parameter.empty

    def invoke(self, target: Any, args: Tuple[Any, ...], kwargs: Dict[str, Any]) -> Any:
        if self.bound_target:
            return self.func(target, *args, **kwargs)
        return self.func(*args, **kwargs)

    def describe(self) -> str:
        if self.param_types is not None:
            params = ", ".join(getattr(tp, "__name__", str(tp)) for tp in self.param_types)
            return f"{self.name}({params})"
        if self.signature is not None:
            return f"{self.name}{self.signature}"
        return f"{self.name}(...)"


def _resolve_hints(func: Callable[..., Any]) -> Dict[str, Any]:
    try:
        return typing.get_type_hints(func)
    except (NameError, TypeError, AttributeError) as e:
        logger.debug(f"Cannot resolve annotations of {func!r}: {e}")
        return {}


def _signature(func: Callable[..., Any]) -> Optional[inspect.Signature]:
    try:
        return inspect.signature(func)
    except (TypeError, ValueError):
        # Встроенные функции без текстовой сигнатуры
        return None


@functools.lru_cache(maxsize=512)
def _function_overloads(func: Callable[..., Any]) -> Tuple[Tuple[inspect.Signature, Dict[str, Any]], ...]:
    """Сигнатуры перегрузок обычной функции (включая self для методов)."""
    overloads = typing.get_overloads(func)
    if not overloads:
        overloads = [func]
    result = []
    for candidate in overloads:
        sig = _signature(candidate)
        if sig is not None:
            result.append((sig, _resolve_hints(candidate)))
    return tuple(result)


def _drop_first_parameter(sig: inspect.Signature) -> inspect.Signature:
    params = list(sig.parameters.values())
    return sig.replace(parameters=params[1:])


def _explicit_table(value: Any) -> Optional[Mapping[str, Any]]:
    table = getattr(type(value), "__vtl_members__", None)
    if isinstance(table, Mapping):
        return table
    return None


def member_candidates(value: Any, name: str) -> List[Accessor]:
    """
    Возвращает кандидатов-перегрузки члена `name` у значения.

    Явная таблица `__vtl_members__` класса имеет приоритет: её записи —
    это пары (типы параметров, функция), где функция получает цель
    первым аргументом. Иначе используется интроспекция атрибута.
    """
    table = _explicit_table(value)
    if table is not None:
        return [
            Accessor(name=name, func=func, param_types=tuple(param_types), bound_target=True)
            for param_types, func in table.get(name, ())
        ]

    if name.startswith("_"):
        return []
    attr = getattr(value, name, _MISSING)
    if attr is _MISSING or not callable(attr):
        return []

    underlying = getattr(attr, "__func__", None)
    if isinstance(attr, types.MethodType) and isinstance(underlying, types.FunctionType):
        return [
            Accessor(name=name, func=attr, signature=_drop_first_parameter(sig), hints=hints)
            for sig, hints in _function_overloads(underlying)
        ]
    if isinstance(attr, types.FunctionType):
        return [
            Accessor(name=name, func=attr, signature=sig, hints=hints)
            for sig, hints in _function_overloads(attr)
        ]
    return [Accessor(name=name, func=attr, signature=_signature(attr))]


def _call(accessor: Accessor, target: Any, args: Tuple[Any, ...], kwargs: Dict[str, Any]) -> Any:
    try:
        return accessor.invoke(target, args, kwargs)
    except MemberResolutionError:
        raise
    except Exception as e:
        raise MemberResolutionError(f"{type(e).__name__} in {accessor.describe()}: {e}") from e


# ---------------------------------------------------------------------------
# Публичные операции
# ---------------------------------------------------------------------------

def invoke_method(target: Any, name: str, args: Sequence[Any]) -> Any:
    """
    Вызывает метод `name` у `target` с уже вычисленными аргументами.

    Raises:
        MemberResolutionError: Нет метода, нет совместимой перегрузки
            или их больше одной
    """
    if target is None:
        raise MemberResolutionError(f"Cannot invoke method {name} on null value")
    candidates = member_candidates(target, name)
    if not candidates:
        raise MemberResolutionError(f"No method {name} in {type_name(target)}")

    compatible = []
    for candidate in candidates:
        matched = candidate.match(args)
        if matched is not None:
            compatible.append((candidate, matched))

    if not compatible:
        shown = ", ".join(show_value(arg) for arg in args)
        raise MemberResolutionError(f"Parameters for method {name} have wrong types: [{shown}]")
    if len(compatible) > 1:
        options = "\n".join(candidate.describe() for candidate, _ in compatible)
        raise MemberResolutionError(f"Ambiguous method invocation, could be one of:\n{options}")

    candidate, (call_args, call_kwargs) = compatible[0]
    return _call(candidate, target, call_args, call_kwargs)


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def snake_case(name: str) -> str:
    """`hasNext` → `has_next`; имена со знаком `-` переводятся в `_`."""
    return _CAMEL_BOUNDARY.sub("_", name).replace("-", "_").lower()


def _change_initial_case(name: str) -> str:
    initial = name[0]
    if initial.isupper():
        initial = initial.lower()
    elif initial.islower():
        initial = initial.upper()
    return initial + name[1:]


def _getter_names(name: str) -> List[Tuple[str, bool]]:
    """Имена геттеров для свойства и флаг `is`-геттера, в порядке поиска."""
    snake = snake_case(name)
    names = []
    for prefix in ("get", "is"):
        is_getter = prefix == "is"
        names.append((f"{prefix}_{snake}", is_getter))
        names.append((f"{prefix}{_change_initial_case(name)}", is_getter))
        names.append((f"{prefix}{name}", is_getter))
    seen = set()
    unique = []
    for getter, is_getter in names:
        if getter not in seen:
            seen.add(getter)
            unique.append((getter, is_getter))
    return unique


def get_property(target: Any, name: str) -> Any:
    """
    Читает свойство `$x.name`.

    Порядок поиска:
    1. ключ `name` у отображения;
    2. невызываемый атрибут `name` или его snake_case-вариант;
    3. геттер без аргументов: get_name, getName, getname, is_name, isName, isname.
       `is`-геттер с аннотацией возврата, отличной от bool, не подходит.

    Raises:
        MemberResolutionError: Если ни один вариант не подошёл
    """
    if target is None:
        raise MemberResolutionError(f"Cannot get member {name} of null value")

    if isinstance(target, Mapping) and _explicit_table(target) is None:
        try:
            if name in target:
                return target[name]
        except TypeError:
            pass

    if _explicit_table(target) is None:
        for attr_name in dict.fromkeys((name, snake_case(name))):
            if attr_name.startswith("_"):
                continue
            attr = getattr(target, attr_name, _MISSING)
            if attr is not _MISSING and not callable(attr):
                return attr

    for getter, is_getter in _getter_names(name):
        for candidate in member_candidates(target, getter):
            matched = candidate.match(())
            if matched is None:
                continue
            returns = candidate.returns()
            if is_getter and returns is not inspect.Parameter.empty and returns is not bool:
                continue
            call_args, call_kwargs = matched
            return _call(candidate, target, call_args, call_kwargs)

    raise MemberResolutionError(
        f"Member {name} does not correspond to a public getter of "
        f"{render_value(target)}, a {type_name(target)}"
    )


def get_index(target: Any, index: Any) -> Any:
    """
    Вычисляет `$x[index]`.

    Последовательности (кроме строк) требуют целого индекса в пределах
    длины; отображения возвращают значение по ключу или None; для прочих
    значений это эквивалент `$x.get(index)`.
    """
    if target is None:
        raise MemberResolutionError("Cannot index null value")
    if isinstance(target, Sequence) and not isinstance(target, (str, bytes)):
        if not is_integer(index):
            raise MemberResolutionError(f"List index is not an integer: {show_value(index)}")
        if index < 0 or index >= len(target):
            raise MemberResolutionError(
                f"List index {index} is not valid for list of size {len(target)}"
            )
        return target[index]
    if isinstance(target, Mapping):
        try:
            return target.get(index)
        except TypeError as e:
            raise MemberResolutionError(f"Invalid map key {show_value(index)}: {e}") from e
    return invoke_method(target, "get", [index])


__all__ = [
    "NUMERIC_WIDENING",
    "CHAR",
    "MemberResolutionError",
    "Accessor",
    "primitive_kind",
    "primitive_type_is_assignable",
    "coerce_argument",
    "member_candidates",
    "invoke_method",
    "get_property",
    "get_index",
    "snake_case",
]
