"""
Тесты для контекстов вычисления и действий отмены.
"""

import pytest

from vtlite.context import PlainEvaluationContext, Thunk
from vtlite.expressions import ConstantExpressionNode
from vtlite.macro import MacroEvaluationContext
from vtlite.references import PlainReferenceNode


class TestPlainEvaluationContext:

    def setup_method(self):
        self.source = {"a": 1}
        self.context = PlainEvaluationContext(self.source)

    def test_lookup(self):
        assert self.context.get_var("a") == 1
        assert self.context.is_defined("a")
        assert not self.context.is_defined("b")

    def test_none_value_is_defined(self):
        context = PlainEvaluationContext({"n": None})
        assert context.is_defined("n")
        assert context.get_var("n") is None

    def test_set_does_not_touch_source_mapping(self):
        self.context.set_var("a", 2)
        self.context.set_var("b", 3)
        assert self.source == {"a": 1}

    def test_undo_restores_previous_value(self):
        undo = self.context.set_var("a", 2)
        assert self.context.get_var("a") == 2
        undo()
        assert self.context.get_var("a") == 1

    def test_undo_restores_undefined(self):
        undo = self.context.set_var("b", None)
        assert self.context.is_defined("b")
        undo()
        assert not self.context.is_defined("b")

    def test_binding_restores_on_exit(self):
        with self.context.binding("a", 10):
            assert self.context.get_var("a") == 10
        assert self.context.get_var("a") == 1

    def test_binding_restores_on_error(self):
        with pytest.raises(RuntimeError):
            with self.context.binding("b", 10):
                raise RuntimeError("stop")
        assert not self.context.is_defined("b")


class TestMacroEvaluationContext:

    def setup_method(self):
        self.outer = PlainEvaluationContext({"x": "outer x", "y": "outer y"})
        # #m($y) для #macro(m $x)
        thunk = Thunk(PlainReferenceNode(1, "y"), self.outer)
        self.context = MacroEvaluationContext({"x": thunk}, self.outer)

    def test_parameter_is_forced_in_caller_context(self):
        assert self.context.get_var("x") == "outer y"

    def test_non_parameter_falls_through(self):
        assert self.context.get_var("y") == "outer y"
        assert self.context.is_defined("x")
        assert not self.context.is_defined("z")

    def test_set_on_parameter_shadows_and_undo_restores(self):
        undo = self.context.set_var("x", "new")
        assert self.context.get_var("x") == "new"
        assert self.outer.get_var("x") == "new"
        undo()
        assert self.context.get_var("x") == "outer y"
        assert self.outer.get_var("x") == "outer x"

    def test_undo_is_idempotent(self):
        undo = self.context.set_var("x", "new")
        undo()
        self.outer.set_var("x", "changed later")
        undo()
        assert self.outer.get_var("x") == "changed later"

    def test_restore_undoes_parameter_shadowing(self):
        self.context.set_var("x", "first")
        self.context.set_var("y", "global")
        self.context.restore()
        assert self.outer.get_var("x") == "outer x"
        # запись в переменную, не являющуюся параметром, сохраняется
        assert self.outer.get_var("y") == "global"
        # параметр снова читается через thunk
        assert self.context.get_var("x") == "global"


def test_thunk_evaluates_every_time():
    calls = []

    class Counting(ConstantExpressionNode):
        def evaluate(self, context):
            calls.append(1)
            return self.value

    thunk = Thunk(Counting(1, "v"), PlainEvaluationContext())
    assert thunk.force() == "v"
    assert thunk.force() == "v"
    assert len(calls) == 2
