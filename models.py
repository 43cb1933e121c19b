"""
Application-level models for the Macro Sequencer.
The automation data model itself lives in the ``sequencer`` package.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Dict, Any


class KeyboardLayout(Enum):
    """Layouts the recorder can translate printable keys with."""
    DE = "de"
    US = "us"


def _int(value: Any, default: int, minimum: int = 0) -> int:
    try:
        result = int(value)
    except (TypeError, ValueError):
        return default
    return max(minimum, result)


@dataclass
class ApplicationSettings:
    """Persisted application preferences."""

    start_recording_hotkey: str = "F9"
    stop_recording_hotkey: str = "F10"
    cancel_hotkey: str = "Escape"
    text_quiet_interval_ms: int = 750
    keyboard_layout: KeyboardLayout = KeyboardLayout.DE
    default_char_delay: int = 10
    event_queue_size: int = 1024
    record_keyboard: bool = True
    record_mouse: bool = True
    library_path: str = "sequences.json"
    log_dir: str = "logs"
    verbose_logging: bool = False

    def __post_init__(self):
        """Validate configuration parameters."""
        if self.text_quiet_interval_ms < 0:
            raise ValueError("Text quiet interval cannot be negative")

        if self.default_char_delay < 0:
            raise ValueError("Character delay cannot be negative")

        if self.event_queue_size <= 0:
            raise ValueError("Event queue size must be positive")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize settings to primitive types for JSON storage."""
        return {
            "start_recording_hotkey": self.start_recording_hotkey,
            "stop_recording_hotkey": self.stop_recording_hotkey,
            "cancel_hotkey": self.cancel_hotkey,
            "text_quiet_interval_ms": self.text_quiet_interval_ms,
            "keyboard_layout": self.keyboard_layout.value,
            "default_char_delay": self.default_char_delay,
            "event_queue_size": self.event_queue_size,
            "record_keyboard": self.record_keyboard,
            "record_mouse": self.record_mouse,
            "library_path": self.library_path,
            "log_dir": self.log_dir,
            "verbose_logging": self.verbose_logging,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "ApplicationSettings":
        """Create settings instance from JSON dictionary."""
        defaults = ApplicationSettings()
        layout_raw = str(data.get("keyboard_layout", defaults.keyboard_layout.value) or "").lower()
        try:
            layout = KeyboardLayout(layout_raw)
        except ValueError:
            layout = defaults.keyboard_layout

        return ApplicationSettings(
            start_recording_hotkey=str(data.get("start_recording_hotkey") or defaults.start_recording_hotkey),
            stop_recording_hotkey=str(data.get("stop_recording_hotkey") or defaults.stop_recording_hotkey),
            cancel_hotkey=str(data.get("cancel_hotkey") or defaults.cancel_hotkey),
            text_quiet_interval_ms=_int(data.get("text_quiet_interval_ms"), defaults.text_quiet_interval_ms),
            keyboard_layout=layout,
            default_char_delay=_int(data.get("default_char_delay"), defaults.default_char_delay),
            event_queue_size=_int(data.get("event_queue_size"), defaults.event_queue_size, minimum=1),
            record_keyboard=bool(data.get("record_keyboard", defaults.record_keyboard)),
            record_mouse=bool(data.get("record_mouse", defaults.record_mouse)),
            library_path=str(data.get("library_path") or defaults.library_path),
            log_dir=str(data.get("log_dir") or defaults.log_dir),
            verbose_logging=bool(data.get("verbose_logging", False)),
        )
