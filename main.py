"""
Main entry point for the Macro Sequencer recorder.

Usage:
    python main.py [library.json] [sequence name]

Press the start-recording hotkey to begin capturing keystrokes and mouse
clicks and the stop-recording hotkey to finish. Which inputs are recorded
follows the record_keyboard and record_mouse settings. The recorded actions
are appended to the named sequence (created if missing) and the library is
saved.
"""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path
from typing import List, Optional, Set, Union

from hotkey_manager import HotkeyManager
from logger import StatusLogger, attach_to_logging
from models import ApplicationSettings
from settings_manager import SettingsManager
from key_hook import KeyHookService, MouseHookService
from sequencer import (
    ActionError,
    KeyCaptureAggregator,
    KeyEvent,
    KeyboardRecorder,
    Sequence,
    SequenceLibrary,
)
from sequencer.keys import normalize_key

DEFAULT_SEQUENCE_NAME = "Recorded Sequence"

logger = logging.getLogger("sequencer.recording")


def hotkey_keys(settings: ApplicationSettings) -> Set[str]:
    """Key names of single-key hotkeys, which must not end up in a recording."""
    keys: Set[str] = set()
    for definition in (settings.start_recording_hotkey, settings.stop_recording_hotkey):
        tokens = [token for token in definition.replace("+", " ").split() if token]
        if len(tokens) == 1:
            keys.add(normalize_key(tokens[0]))
    return keys


class RecordingSession:
    """Wires the input hooks, the recorder and the hotkeys for one recording."""

    def __init__(self, settings: ApplicationSettings, library: SequenceLibrary,
                 library_path: Path, sequence_name: str) -> None:
        self._settings = settings
        self._library = library
        self._library_path = library_path
        self._sequence_name = sequence_name
        self._ignored = hotkey_keys(settings)
        self._lock = threading.Lock()
        self.finished = threading.Event()

        aggregator = KeyCaptureAggregator(
            on_action=lambda action: logger.info("Recorded: %s", action.describe()),
            quiet_interval_ms=settings.text_quiet_interval_ms,
            layout=settings.keyboard_layout.value,
            char_delay=settings.default_char_delay,
        )
        self.recorder = KeyboardRecorder(aggregator, maxsize=settings.event_queue_size)
        self.hooks: List[Union[KeyHookService, MouseHookService]] = []
        if settings.record_keyboard:
            self.hooks.append(KeyHookService(self._push, layout=settings.keyboard_layout.value))
        if settings.record_mouse:
            self.hooks.append(MouseHookService(self.recorder.push))

    def _push(self, event: KeyEvent) -> None:
        if event.key in self._ignored:
            return
        self.recorder.push(event)

    def start(self) -> None:
        with self._lock:
            if self.recorder.is_running():
                return
            self.recorder.start()
            started = [hook for hook in self.hooks
                       if hook.start(on_error=lambda exc: logger.error("Input hook failed: %s", exc))]
            if not started:
                logger.error("No input hook could be started; nothing to record")
                self.recorder.stop()
                self.finished.set()
                return
            logger.info("Recording into '%s' (stop with %s)",
                        self._sequence_name, self._settings.stop_recording_hotkey)

    def stop(self) -> List:
        with self._lock:
            if not self.recorder.is_running():
                return []
            for hook in self.hooks:
                hook.stop()
            actions = self.recorder.stop()
            self._store(actions)
            self.finished.set()
            return actions

    def _store(self, actions: List) -> None:
        sequence = self._library.find(self._sequence_name)
        if sequence is None:
            sequence = self._library.add(Sequence(name=self._sequence_name))
        sequence.actions.extend(actions)
        try:
            self._library.save(self._library_path)
            logger.info("Saved %d actions to '%s' in %s", len(actions), sequence.name, self._library_path)
        except OSError as exc:
            logger.error("Could not save %s: %s", self._library_path, exc)


def main(argv: Optional[List[str]] = None) -> int:
    """Application entry point."""
    args = sys.argv[1:] if argv is None else argv

    settings_manager = SettingsManager()
    settings = settings_manager.load()
    status = StatusLogger(
        log_dir=settings_manager.resolve(settings.log_dir),
        verbose=settings.verbose_logging,
    )
    status.add_listener(lambda entry: print(entry))
    attach_to_logging(status)

    library_path = Path(args[0]) if args else settings_manager.resolve(settings.library_path)
    sequence_name = args[1] if len(args) > 1 else DEFAULT_SEQUENCE_NAME

    library = SequenceLibrary()
    if library_path.exists():
        try:
            library = SequenceLibrary.load(library_path)
        except (OSError, ValueError, ActionError) as exc:
            print(f"Could not load {library_path}: {exc}")
            return 2

    session = RecordingSession(settings, library, library_path, sequence_name)
    hotkeys = HotkeyManager(
        settings.start_recording_hotkey,
        settings.stop_recording_hotkey,
        settings.cancel_hotkey,
    )
    hotkeys.register_start_callback(session.start)
    hotkeys.register_stop_callback(session.stop)
    if not hotkeys.enable_hotkeys():
        print("Global hotkeys unavailable; cannot record.")
        return 1

    status.update_status(
        f"Press {settings.start_recording_hotkey} to record, {settings.stop_recording_hotkey} to stop"
    )
    try:
        while not session.finished.wait(0.2):
            pass
    except KeyboardInterrupt:
        session.stop()
    finally:
        hotkeys.disable_hotkeys()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
