"""Tests for sequences, the sequence library and nested runs."""

import json

import pytest

from sequencer.actions import ClipboardAction, JsonAction, KeyboardAction, MouseAction, WaitAction
from sequencer.engine import SequenceExecutor
from sequencer.errors import RetriesExhausted, SequenceNotFound
from sequencer.script_model import Sequence, SequenceLibrary

from conftest import FakeClipboard, FakeInjector, RecordingSleep


def directive(payload):
    return JsonAction(check_clipboard=False, json_template=json.dumps(payload), retry_count=0)


class TestSequence:
    def test_round_trip(self):
        sequence = Sequence(name="Login", description="sign in", actions=[MouseAction(x=1, y=2), WaitAction()])
        sequence.variables.set("user", "ann")
        restored = Sequence.from_dict(sequence.to_dict())
        assert restored.name == "Login"
        assert restored.id == sequence.id
        assert [a.describe() for a in restored.actions] == ["LeftClick (1, 2)", "Wait: 1000 ms"]
        assert restored.variables.get_string("user") == "ann"

    def test_clone_is_independent(self):
        sequence = Sequence(name="s", actions=[KeyboardAction(text="a")])
        sequence.variables.set("v", "1")
        duplicate = sequence.clone()
        duplicate.actions[0].text = "changed"
        duplicate.variables.set("v", "2")
        assert sequence.actions[0].text == "a"
        assert sequence.variables.get_string("v") == "1"
        assert duplicate.id != sequence.id


class TestSequenceLibrary:
    def test_names_are_unique_case_insensitive(self):
        library = SequenceLibrary([Sequence(name="Login")])
        with pytest.raises(ValueError):
            library.add(Sequence(name="login"))
        assert library.find("LOGIN").name == "Login"

    def test_remove(self):
        library = SequenceLibrary([Sequence(name="a"), Sequence(name="b")])
        assert library.remove("A") is True
        assert library.remove("missing") is False
        assert library.names() == ["b"]

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "library.json"
        library = SequenceLibrary([Sequence(name="one", actions=[WaitAction(wait_time=5)]), Sequence(name="two")])
        library.save(path)
        assert not (tmp_path / "library.json.tmp").exists()
        loaded = SequenceLibrary.load(path)
        assert loaded.names() == ["one", "two"]
        assert loaded.find("one").actions[0].wait_time == 5

    def test_from_dict_accepts_list_and_single_object(self):
        assert SequenceLibrary.from_dict([{"name": "a"}, {"name": "b"}]).names() == ["a", "b"]
        assert SequenceLibrary.from_dict({"name": "solo", "actions": []}).names() == ["solo"]

    def test_duplicates_in_file_skipped(self):
        library = SequenceLibrary.from_dict({"sequences": [{"name": "x"}, {"name": "X"}]})
        assert len(library) == 1

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError):
            SequenceLibrary.load(path)


@pytest.fixture
def clipboard():
    return FakeClipboard()


@pytest.fixture
def executor(clipboard):
    return SequenceExecutor(FakeInjector(), clipboard, sleep=RecordingSleep())


class TestNestedRuns:
    def test_directive_runs_library_sequence_with_variables(self, executor, clipboard):
        child = Sequence(name="Child", actions=[ClipboardAction(use_variable=True, variable_name="who")])
        main = Sequence(name="Main", actions=[directive({"sequenceName": "child", "variables": {"who": "ann"}})])
        library = SequenceLibrary([main, child])
        library.bind(executor)
        executor.run_sequence(main)
        assert clipboard.writes == ["ann"]
        assert child.variables.get_string("who") == "ann"
        assert executor.call_stack == []

    def test_recursion_is_refused(self, executor):
        looping = Sequence(name="Loop", actions=[directive({"sequenceName": "Loop"})])
        library = SequenceLibrary([looping])
        lookup = library.bind(executor)
        assert executor.lookup is lookup
        with pytest.raises(RetriesExhausted) as excinfo:
            executor.run_sequence(looping)
        assert isinstance(excinfo.value.last_error, SequenceNotFound)

    def test_missing_sequence_returns_false(self, executor):
        lookup = SequenceLibrary().bind(executor)
        assert lookup.run_by_name("ghost") is False

    def test_failing_child_reports_false(self, clipboard):
        executor = SequenceExecutor(FakeInjector(fail_on="click"), clipboard, sleep=RecordingSleep())
        library = SequenceLibrary([Sequence(name="Clicker", actions=[MouseAction()])])
        lookup = library.bind(executor)
        assert lookup.run_by_name("Clicker") is False
