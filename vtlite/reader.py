"""
Посимвольный курсор для первой фазы разбора шаблона.

Держит ровно один символ предпросмотра (``c``) и не более одного символа
отката (pushback). Номер строки считается по прочитанным переводам строк,
поэтому совпадает с тем, что видит парсер в момент создания узла.
"""

from __future__ import annotations

from typing import Optional, TextIO

# Конец ввода. Сравнивать только через `is`.
EOF: Optional[str] = None

_NO_PUSHBACK = object()

_CONTEXT_LIMIT = 20


def is_ascii_letter(c: Optional[str]) -> bool:
    return c is not None and ("a" <= c <= "z" or "A" <= c <= "Z")


def is_ascii_digit(c: Optional[str]) -> bool:
    return c is not None and "0" <= c <= "9"


def is_id_char(c: Optional[str]) -> bool:
    return is_ascii_letter(c) or is_ascii_digit(c) or c == "-" or c == "_"


def is_space(c: Optional[str]) -> bool:
    return c is not None and c.isspace()


class CharReader:
    """
    Курсор по символьному потоку.

    Инвариант: ``c`` всегда содержит следующий интересующий символ
    (или EOF). Благодаря этому парсеру почти никогда не нужно
    "возвращать" прочитанный символ: после разбора числа ``c`` уже
    указывает на первый символ после него.
    """

    def __init__(self, stream: TextIO):
        self._stream = stream
        self._pushback: object = _NO_PUSHBACK
        self._exhausted = False
        self._line = 1
        self.c: Optional[str] = EOF
        self.next()

    @property
    def line(self) -> int:
        """Текущий номер строки (начиная с 1)."""
        return self._line

    def next(self) -> None:
        """Читает следующий символ в ``c``; в конце ввода ``c`` становится EOF."""
        if self._pushback is not _NO_PUSHBACK:
            self.c = self._pushback  # type: ignore[assignment]
            self._pushback = _NO_PUSHBACK
            return
        if self._exhausted:
            self.c = EOF
            return
        ch = self._stream.read(1)
        if not ch:
            self._exhausted = True
            self.c = EOF
            return
        if ch == "\n":
            self._line += 1
        self.c = ch

    def pushback(self, c1: str) -> None:
        """
        Сохраняет текущий ``c`` для повторного чтения и делает ``c1`` текущим.

        Если в тексте ``xy`` и только что прочитан ``y``, то после
        ``pushback('x')`` будет ``c == 'x'``, а следующий ``next()``
        вернёт ``y``.
        """
        self._pushback = self.c
        self.c = c1

    def skip_space(self) -> None:
        while is_space(self.c):
            self.next()

    def next_non_space(self) -> None:
        self.next()
        self.skip_space()

    def snippet(self) -> str:
        """
        Потребляет до 20 символов ввода и возвращает их для сообщений об ошибках.

        Если после них остался ввод, добавляется "...". В конце ввода
        возвращается "EOF".
        """
        if self.c is EOF:
            return "EOF"
        chars = []
        while self.c is not EOF and len(chars) < _CONTEXT_LIMIT:
            chars.append(self.c)
            self.next()
        if self.c is not EOF:
            chars.append("...")
        return "".join(chars)


__all__ = [
    "EOF",
    "CharReader",
    "is_ascii_letter",
    "is_ascii_digit",
    "is_id_char",
    "is_space",
]
