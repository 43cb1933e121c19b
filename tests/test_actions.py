"""Tests for the action model: descriptions, cloning, serialization and display names."""

import pytest

from sequencer.actions import (
    Action,
    ActionKind,
    ClipboardAction,
    ComparisonOperator,
    Condition,
    ConditionSource,
    FileAction,
    IfAction,
    JsonAction,
    KeyboardAction,
    KeyboardActionType,
    LoopAction,
    MouseAction,
    MouseActionType,
    VariableAction,
    VariableOperation,
    WaitAction,
    apply_display,
    recompute_display,
)
from sequencer.errors import ActionError


class TestDescribe:
    def test_mouse(self):
        assert MouseAction(x=10, y=20).describe() == "LeftClick (10, 20)"
        wheel = MouseAction(x=1, y=2, wheel_delta=-120, click_kind=MouseActionType.MOUSE_WHEEL)
        assert wheel.describe() == "Mouse wheel (1, 2) Delta: -120"
        assert MouseAction(click_kind=MouseActionType.MIDDLE_CLICK).describe() == "Middle click (0, 0)"

    def test_keyboard(self):
        assert KeyboardAction(text="hello").describe() == 'Text: "hello"'
        long_text = KeyboardAction(text="abcdefghijklmnopqrstuvwxyz")
        assert long_text.describe() == 'Text: "abcdefghijklmnopq..."'
        combo = KeyboardAction(action_kind=KeyboardActionType.KEY_COMBINATION, keys=["LeftCtrl", "C"])
        assert combo.describe() == "Combination: Ctrl (Left) + C"
        assert KeyboardAction(use_clipboard=True).describe() == 'Text: "" (from clipboard)'

    def test_wait_and_variable(self):
        assert WaitAction(wait_time=250).describe() == "Wait: 250 ms"
        action = VariableAction(variable_name="x", value="v")
        assert action.describe() == "Variable: Set 'x' to 'v'"
        action.operation = VariableOperation.INCREMENT
        assert action.describe() == "Variable: Increase 'x' by 1"

    def test_loop_and_if(self):
        loop = LoopAction(max_iterations=3, actions=[WaitAction()])
        assert loop.describe() == "Loop: 1 actions, Max: 3"
        condition = Condition(operator=ComparisonOperator.CONTAINS)
        assert condition.describe() == "Variable Contains Text"
        branch = IfAction(condition=condition, use_else_branch=True)
        assert branch.describe() == "If: Variable Contains Text, Then: 0 actions, Else: 0 actions"

    def test_file(self):
        action = FileAction(file_path="/tmp/data/input.txt", destination_variable="content")
        assert action.describe() == "Read File: input.txt into Variable: content"

    def test_describe_is_deterministic(self):
        action = JsonAction(check_clipboard=False)
        assert action.describe() == action.describe() == "JSON action: From template"


class TestCondition:
    @pytest.mark.parametrize("operator,left,right,expected", [
        (ComparisonOperator.EQUALS, "abc", "abc", True),
        (ComparisonOperator.EQUALS, "abc", "ABC", False),
        (ComparisonOperator.CONTAINS, "abcdef", "cd", True),
        (ComparisonOperator.STARTS_WITH, "abcdef", "ab", True),
        (ComparisonOperator.ENDS_WITH, "abcdef", "ab", False),
        (ComparisonOperator.NOT_EQUALS, "a", "b", True),
    ])
    def test_compare(self, operator, left, right, expected):
        assert Condition(operator=operator).compare(left, right) is expected

    def test_from_dict_accepts_legacy_names(self):
        condition = Condition.from_dict({
            "LeftSourceType": "Clipboard",
            "Operator": "StartsWith",
            "RightCustomText": "Hello",
        })
        assert condition.left_source == ConditionSource.CLIPBOARD
        assert condition.operator == ComparisonOperator.STARTS_WITH
        assert condition.right_text == "Hello"


class TestClone:
    def test_clone_gets_fresh_ids(self):
        child = WaitAction(wait_time=5)
        loop = LoopAction(actions=[child])
        duplicate = loop.clone()
        assert duplicate.id != loop.id
        assert duplicate.actions[0].id != child.id
        assert duplicate.actions[0].wait_time == 5

    def test_clone_shares_no_state(self):
        original = KeyboardAction(action_kind=KeyboardActionType.HOTKEY, keys=["LeftAlt", "F4"])
        duplicate = original.clone()
        duplicate.keys.append("X")
        assert original.keys == ["LeftAlt", "F4"]

    def test_clone_of_condition_is_independent(self):
        original = IfAction(condition=Condition(left_variable="a"))
        duplicate = original.clone()
        duplicate.condition.left_variable = "b"
        assert original.condition.left_variable == "a"


class TestSerialization:
    def test_round_trip_nested(self):
        branch = IfAction(
            condition=Condition(left_variable="status", right_text="ok"),
            then_actions=[MouseAction(x=5, y=6, click_kind=MouseActionType.DOUBLE_CLICK)],
            else_actions=[KeyboardAction(text="fallback")],
            use_else_branch=True,
        )
        data = branch.to_dict()
        assert data["type"] == "if"
        restored = Action.from_dict(data)
        assert isinstance(restored, IfAction)
        assert restored.id == branch.id
        assert restored.condition.left_variable == "status"
        assert restored.then_actions[0].click_kind == MouseActionType.DOUBLE_CLICK
        assert restored.else_actions[0].text == "fallback"

    def test_legacy_pascal_case_fields(self):
        restored = Action.from_dict({
            "Type": "KeyboardAction",
            "ActionType": "KeyCombination",
            "Keys": ["LeftCtrl", "S"],
            "DelayBetweenChars": 25,
            "DelayBefore": 100,
        })
        assert isinstance(restored, KeyboardAction)
        assert restored.action_kind == KeyboardActionType.KEY_COMBINATION
        assert restored.keys == ["LeftCtrl", "S"]
        assert restored.char_delay == 25
        assert restored.delay_before == 100

    def test_missing_type_is_guessed(self):
        assert isinstance(Action.from_dict({"wait_time": 300}), WaitAction)
        assert isinstance(Action.from_dict({"x": 1, "y": 2}), MouseAction)
        assert isinstance(Action.from_dict({"json_template": "{}"}), JsonAction)
        assert isinstance(Action.from_dict({"use_variable": True}), ClipboardAction)

    def test_unknown_fields_ignored_and_defaults_applied(self):
        restored = Action.from_dict({"type": "wait", "colour": "blue"})
        assert restored.wait_time == 1000
        assert restored.enabled is True

    def test_unknown_type_raises(self):
        with pytest.raises(ActionError):
            Action.from_dict({"type": "teleport"})

    def test_keys_from_string(self):
        restored = Action.from_dict({"type": "keyboard", "action_kind": "hotkey", "keys": "ctrl+shift+esc"})
        assert restored.keys == ["LeftCtrl", "LeftShift", "Escape"]

    def test_negative_delay_is_clamped(self):
        assert Action.from_dict({"type": "wait", "delay_before": -50}).delay_before == 0
        assert WaitAction(delay_before=-1).delay_before == 0

    def test_flat_legacy_loop_condition(self):
        restored = Action.from_dict({
            "type": "loop",
            "use_condition": True,
            "left_variable_name": "done",
            "right_custom_text": "yes",
            "loop_actions": [{"type": "wait", "wait_time": 10}],
        })
        assert restored.kind == ActionKind.LOOP
        assert restored.condition.left_variable == "done"
        assert restored.condition.right_text == "yes"
        assert restored.actions[0].wait_time == 10


class TestDisplay:
    def test_keyboard_name_follows_fields(self):
        action = KeyboardAction(name="custom", text="hi")
        apply_display(action)
        assert action.name == 'Text: "hi"'
        assert action.description == 'Keyboard input: Text: "hi"'
        action.use_clipboard = True
        assert recompute_display(action).name == "Text from Clipboard"

    def test_keyboard_without_keys(self):
        assert KeyboardAction(action_kind=KeyboardActionType.KEY_PRESS).derived_name() == "Single Key"
        assert KeyboardAction().derived_name() == "Text Input"

    def test_other_kinds_keep_user_name(self):
        action = WaitAction(name="pause", wait_time=10)
        assert apply_display(action).name == "pause"
        unnamed = WaitAction(wait_time=10)
        assert apply_display(unnamed).name == "Wait: 10 ms"
