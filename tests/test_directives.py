"""Tests for interpreting JSON directives."""

import json

import pytest

from sequencer.actions import JsonAction
from sequencer.context import RunContext
from sequencer.directives import (
    JsonDirectiveInterpreter,
    create_click_json,
    create_sequence_json,
    create_wait_json,
)
from sequencer.errors import MalformedDirective, SequenceNotFound

from conftest import FakeInjector, FakeLookup, RecordingSleep


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def ctx(sleeper):
    return RunContext(sleep_hook=sleeper)


@pytest.fixture
def lookup():
    return FakeLookup(known=("Login", "Report"))


@pytest.fixture
def interpreter(lookup):
    return JsonDirectiveInterpreter(FakeInjector(), lookup)


class TestSequenceDirective:
    def test_runs_named_sequence(self, interpreter, lookup, ctx):
        interpreter.apply({"sequenceName": "Login"}, JsonAction(), ctx)
        assert lookup.calls == [("Login", {})]

    def test_variables_are_stringified(self, interpreter, lookup, ctx):
        document = {"sequenceName": "Report", "variables": {"user": "bob", "count": 3, "flag": True}}
        interpreter.apply(document, JsonAction(), ctx)
        assert lookup.calls == [("Report", {"user": "bob", "count": "3", "flag": "true"})]

    def test_unknown_sequence_raises(self, interpreter, ctx):
        with pytest.raises(SequenceNotFound) as excinfo:
            interpreter.apply({"sequenceName": "Nope"}, JsonAction(), ctx)
        assert excinfo.value.sequence_name == "Nope"

    def test_unknown_sequence_tolerated(self, interpreter, ctx):
        interpreter.apply({"sequenceName": "Nope"}, JsonAction(continue_on_error=True), ctx)

    def test_sequence_then_click(self, interpreter, lookup, ctx):
        document = {"sequenceName": "Login", "clickAction": {"x": 1, "y": 2}}
        interpreter.apply(document, JsonAction(), ctx)
        assert lookup.calls == [("Login", {})]
        assert interpreter.injector.calls == [("click", 1, 2, "left")]

    def test_without_lookup_counts_as_missing(self, ctx):
        interpreter = JsonDirectiveInterpreter(FakeInjector())
        with pytest.raises(SequenceNotFound):
            interpreter.apply({"sequenceName": "Login"}, JsonAction(), ctx)


class TestClickDirective:
    def test_click_with_offset(self, interpreter, ctx):
        action = JsonAction(offset_x=10, offset_y=-5)
        interpreter.apply({"clickAction": {"x": 100, "y": 200, "type": "rightClick"}}, action, ctx)
        assert interpreter.injector.calls == [("click", 110, 195, "right")]

    def test_double_click(self, interpreter, ctx):
        interpreter.apply({"clickAction": {"x": 3, "y": 4, "type": "doubleClick"}}, JsonAction(), ctx)
        assert interpreter.injector.calls == [("double_click", 3, 4)]

    def test_click_ends_processing(self, interpreter, sleeper, ctx):
        interpreter.apply({"clickAction": {"x": 3, "y": 4}, "waitTime": 500}, JsonAction(), ctx)
        assert sleeper.slices == []

    def test_malformed_click(self, interpreter, ctx):
        with pytest.raises(MalformedDirective):
            interpreter.apply({"clickAction": {"x": "1", "y": 2}}, JsonAction(), ctx)
        with pytest.raises(MalformedDirective):
            interpreter.apply({"clickAction": {"x": 1, "y": 2, "type": "tripleClick"}}, JsonAction(), ctx)


class TestWaitDirective:
    def test_wait_in_slices(self, interpreter, sleeper, ctx):
        interpreter.apply({"waitTime": 250}, JsonAction(), ctx)
        assert sleeper.total_ms == 250
        assert max(sleeper.slices) <= 0.1

    def test_negative_wait_is_malformed(self, interpreter, ctx):
        with pytest.raises(MalformedDirective):
            interpreter.apply({"waitTime": -1}, JsonAction(), ctx)

    def test_malformed_tolerated(self, interpreter, sleeper, ctx):
        interpreter.apply({"waitTime": "soon"}, JsonAction(continue_on_error=True), ctx)
        assert sleeper.slices == []


class TestRootValidation:
    def test_array_root_is_malformed(self, interpreter, ctx):
        with pytest.raises(MalformedDirective):
            interpreter.apply([1, 2], JsonAction(), ctx)

    def test_empty_object_only_warns(self, interpreter, lookup, ctx):
        interpreter.apply({"other": 1}, JsonAction(), ctx)
        assert lookup.calls == []
        assert interpreter.injector.calls == []


class TestBuilders:
    def test_sequence_json(self):
        assert json.loads(create_sequence_json("Login", {"user": "a"})) == {
            "sequenceName": "Login", "variables": {"user": "a"}}
        assert json.loads(create_sequence_json("Login")) == {"sequenceName": "Login"}

    def test_click_and_wait_json(self):
        assert json.loads(create_click_json(1, 2)) == {"clickAction": {"x": 1, "y": 2, "type": "leftClick"}}
        assert json.loads(create_wait_json(500)) == {"waitTime": 500}
