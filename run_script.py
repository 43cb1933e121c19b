"""
Small CLI to replay a sequence from a library JSON file without a GUI.

Usage (PowerShell):
    python run_script.py .\\sequences.json "Login"

Without a sequence name the first sequence of the library runs. The cancel
hotkey from the settings aborts the run.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional

from hotkey_manager import HotkeyManager
from logger import StatusLogger, attach_to_logging
from settings_manager import SettingsManager
from sequencer import (
    ActionError,
    AutomationEngine,
    PynputInputInjector,
    PyperclipClipboard,
    RunOutcome,
    SequenceExecutor,
    SequenceLibrary,
)


def _enable_high_dpi_awareness() -> None:
    # Recorded click coordinates are physical pixels.
    if not sys.platform.startswith("win"):
        return

    try:
        import ctypes

        try:
            ctypes.windll.shcore.SetProcessDpiAwareness(2)
            return
        except AttributeError:
            pass

        ctypes.windll.user32.SetProcessDPIAware()
    except (AttributeError, OSError):
        pass


def main(argv: Optional[List[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("Provide path to a sequence library JSON file.")
        return 2
    path = Path(args[0])
    if not path.exists():
        print(f"File not found: {path}")
        return 2

    settings_manager = SettingsManager()
    settings = settings_manager.load()
    status = StatusLogger(
        log_dir=settings_manager.resolve(settings.log_dir),
        verbose=settings.verbose_logging,
    )
    status.add_listener(lambda entry: print(entry))
    attach_to_logging(status)

    try:
        library = SequenceLibrary.load(path)
    except (OSError, ValueError, ActionError) as exc:
        print(f"Could not load {path}: {exc}")
        return 2

    if len(library) == 0:
        print(f"No sequences in {path}")
        return 2
    if len(args) > 1:
        sequence = library.find(args[1])
        if sequence is None:
            print(f"Sequence '{args[1]}' not found. Available: {', '.join(library.names())}")
            return 2
    else:
        sequence = next(iter(library))

    _enable_high_dpi_awareness()
    executor = SequenceExecutor(PynputInputInjector(), PyperclipClipboard())
    library.bind(executor)

    engine = AutomationEngine(sequence, executor)
    engine.on_done(lambda ok, msg: status.update_status(f"DONE: {ok} - {msg}"))

    hotkeys = HotkeyManager(
        settings.start_recording_hotkey,
        settings.stop_recording_hotkey,
        settings.cancel_hotkey,
    )
    hotkeys.register_cancel_callback(engine.request_cancel)
    hotkeys.enable_hotkeys()

    status.update_status(f"Running '{sequence.name}' (cancel with {settings.cancel_hotkey})")
    engine.start()
    try:
        # Wait until thread finishes
        while not engine.join(0.2):
            pass
    except KeyboardInterrupt:
        engine.cancel()
        engine.join()
    finally:
        hotkeys.disable_hotkeys()

    if engine.outcome == RunOutcome.FAILED:
        if engine.failed_action is not None:
            print(f"Failed action: {engine.failed_action.describe()}")
        print(f"Last error: {engine.last_error}")
        return 1
    if engine.outcome == RunOutcome.CANCELLED:
        return 130
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
