"""Tests for the editor contract."""

import pytest

from sequencer.actions import (
    ComparisonOperator,
    IfAction,
    KeyboardAction,
    KeyboardActionType,
    WaitAction,
)
from sequencer.errors import ActionError
from sequencer.presentation import FieldMapEditor, editable_fields


class TestEditableFields:
    def test_id_and_children_are_excluded(self):
        names = editable_fields(IfAction())
        assert "id" not in names
        assert "then_actions" not in names
        assert "else_actions" not in names
        assert "condition" in names


class TestFieldMapEditor:
    def test_initialize_shows_plain_values(self):
        editor = FieldMapEditor()
        editor.initialize(KeyboardAction(text="abc", keys=["A"]))
        assert editor.values["action_kind"] == "type_text"
        assert editor.values["text"] == "abc"
        assert editor.values["keys"] == ["A"]

    def test_commit_converts_and_recomputes_name(self):
        action = KeyboardAction(text="abc")
        editor = FieldMapEditor()
        editor.initialize(action)
        editor.set("action_kind", "key_combination")
        editor.set("keys", "ctrl+s")
        editor.set("delay_before", "-20")
        editor.commit_view_into(action)
        assert action.action_kind == KeyboardActionType.KEY_COMBINATION
        assert action.keys == ["LeftCtrl", "S"]
        assert action.delay_before == 0
        assert action.name == "Combination: Ctrl (Left) + S"
        assert editor.values["name"] == action.name

    def test_bad_value_leaves_action_untouched(self):
        action = WaitAction(wait_time=100)
        editor = FieldMapEditor()
        editor.initialize(action)
        editor.set("name", "renamed")
        editor.set("wait_time", "later")
        with pytest.raises(ActionError):
            editor.commit_view_into(action)
        assert action.wait_time == 100
        assert action.name == ""

    def test_condition_edited_as_dict(self):
        action = IfAction()
        editor = FieldMapEditor()
        editor.initialize(action)
        condition = dict(editor.values["condition"], operator="ends_with", right_text="!")
        editor.set("condition", condition)
        editor.commit_view_into(action)
        assert action.condition.operator == ComparisonOperator.ENDS_WITH
        assert action.condition.right_text == "!"

    def test_unknown_field(self):
        editor = FieldMapEditor()
        editor.initialize(WaitAction())
        with pytest.raises(KeyError):
            editor.set("colour", "red")

    def test_refresh_reflects_external_changes(self):
        action = WaitAction(wait_time=1)
        editor = FieldMapEditor()
        editor.initialize(action)
        action.wait_time = 99
        editor.refresh_view_from(action)
        assert editor.values["wait_time"] == 99
