"""
Тесты для посимвольного курсора первой фазы.
"""

import io

from vtlite.reader import EOF, CharReader, is_ascii_letter, is_id_char


def reader(text: str) -> CharReader:
    return CharReader(io.StringIO(text))


class TestCharReader:

    def test_lookahead_and_eof(self):
        r = reader("ab")
        assert r.c == "a"
        r.next()
        assert r.c == "b"
        r.next()
        assert r.c is EOF
        r.next()
        assert r.c is EOF

    def test_empty_input(self):
        assert reader("").c is EOF

    def test_pushback_restores_current_char(self):
        r = reader("xy")
        r.next()
        assert r.c == "y"
        r.pushback("x")
        assert r.c == "x"
        r.next()
        assert r.c == "y"
        r.next()
        assert r.c is EOF

    def test_pushback_at_eof(self):
        r = reader("x")
        r.next()
        assert r.c is EOF
        r.pushback(".")
        assert r.c == "."
        r.next()
        assert r.c is EOF

    def test_line_counting(self):
        r = reader("a\nb\n")
        assert r.line == 1
        r.next()  # '\n'
        assert r.line == 2
        r.next()  # 'b'
        r.next()  # '\n'
        assert r.line == 3

    def test_skip_space(self):
        r = reader("   \t\nz")
        r.skip_space()
        assert r.c == "z"

    def test_next_non_space(self):
        r = reader("(  q")
        r.next_non_space()
        assert r.c == "q"


class TestSnippet:

    def test_short_remainder(self):
        r = reader("short")
        assert r.snippet() == "short"

    def test_long_remainder_is_truncated(self):
        r = reader("0123456789abcdefghijXYZ")
        assert r.snippet() == "0123456789abcdefghij..."

    def test_exactly_twenty_chars(self):
        r = reader("0123456789abcdefghij")
        assert r.snippet() == "0123456789abcdefghij"

    def test_at_eof(self):
        r = reader("")
        assert r.snippet() == "EOF"


def test_character_classes():
    assert is_ascii_letter("a") and is_ascii_letter("Z")
    assert not is_ascii_letter("é")
    assert not is_ascii_letter(EOF)
    assert is_id_char("-") and is_id_char("_") and is_id_char("7")
    assert not is_id_char(".")
