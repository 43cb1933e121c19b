"""Tests for the recording session wiring."""

import time

from key_hook import KeyHookService, MouseHookService
from main import RecordingSession, hotkey_keys
from models import ApplicationSettings
from sequencer import KeyEvent, MouseEvent, SequenceLibrary
from sequencer.actions import MouseAction


class TestRecordingSession:
    def test_hooks_follow_settings(self, tmp_path):
        both = RecordingSession(ApplicationSettings(), SequenceLibrary(), tmp_path / "lib.json", "rec")
        assert [type(hook) for hook in both.hooks] == [KeyHookService, MouseHookService]
        keys_only = RecordingSession(ApplicationSettings(record_mouse=False), SequenceLibrary(),
                                     tmp_path / "lib.json", "rec")
        assert [type(hook) for hook in keys_only.hooks] == [KeyHookService]

    def test_recorded_clicks_and_keys_are_saved(self, tmp_path):
        path = tmp_path / "lib.json"
        session = RecordingSession(ApplicationSettings(), SequenceLibrary(), path, "rec")
        session.recorder.start()
        now = time.monotonic()
        session._push(KeyEvent("F9", True, now))
        session._push(KeyEvent("Enter", True, now + 0.01))
        session.recorder.push(MouseEvent(7, 8, "left", now + 0.02))
        actions = session.stop()
        assert len(actions) == 2
        assert isinstance(actions[1], MouseAction)
        assert session.finished.is_set()
        saved = SequenceLibrary.load(path).find("rec")
        assert [action.describe() for action in saved.actions] == ["Key: Enter", "LeftClick (7, 8)"]


class TestHotkeyKeys:
    def test_single_key_hotkeys_only(self):
        settings = ApplicationSettings(start_recording_hotkey="F9", stop_recording_hotkey="ctrl+F10")
        assert hotkey_keys(settings) == {"F9"}
