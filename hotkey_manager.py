"""Platform-agnostic hotkey manager built on top of pynput."""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

try:
    from pynput import keyboard  # type: ignore
except Exception as _e:  # pragma: no cover - environment dependent
    keyboard = None  # type: ignore

logger = logging.getLogger(__name__)


class HotkeyManager:
    """Manages the recording and cancel hotkeys across Windows, macOS, and Linux."""

    _SPECIAL_KEY_ALIASES: Dict[str, str] = {
        "ctrl": "ctrl",
        "control": "ctrl",
        "alt": "alt",
        "shift": "shift",
        "win": "cmd",
        "cmd": "cmd",
        "command": "cmd",
        "option": "alt",
        "super": "cmd",
        "escape": "esc",
        "esc": "esc",
        "enter": "enter",
        "return": "enter",
        "space": "space",
        "tab": "tab",
        "pause": "pause",
        "insert": "insert",
        "delete": "delete",
        "home": "home",
        "end": "end",
        "pageup": "page_up",
        "pagedown": "page_down",
    }

    def __init__(
        self,
        start_hotkey: str = "F9",
        stop_hotkey: str = "F10",
        cancel_hotkey: str = "Escape",
    ) -> None:
        self._start_hotkey = start_hotkey
        self._stop_hotkey = stop_hotkey
        self._cancel_hotkey = cancel_hotkey
        self._start_callback: Optional[Callable[[], None]] = None
        self._stop_callback: Optional[Callable[[], None]] = None
        self._cancel_callback: Optional[Callable[[], None]] = None
        self._listener: Optional[object] = None
        self._is_registered = False

    def register_start_callback(self, callback: Callable[[], None]) -> None:
        """Called when the start-recording hotkey is pressed."""
        self._start_callback = callback

    def register_stop_callback(self, callback: Callable[[], None]) -> None:
        """Called when the stop-recording hotkey is pressed."""
        self._stop_callback = callback

    def register_cancel_callback(self, callback: Callable[[], None]) -> None:
        """Called when the cancel hotkey is pressed during a run."""
        self._cancel_callback = callback

    @property
    def is_registered(self) -> bool:
        return self._is_registered

    def build_hotkey_map(self) -> Dict[str, Callable[[], None]]:
        """Translate every registered callback into pynput's hotkey syntax.

        Raises:
            ValueError: a hotkey definition is empty or two callbacks share one.
        """
        hotkey_map: Dict[str, Callable[[], None]] = {}
        for definition, callback in (
            (self._start_hotkey, self._start_callback),
            (self._stop_hotkey, self._stop_callback),
            (self._cancel_hotkey, self._cancel_callback),
        ):
            if callback is None:
                continue
            hotkey = self._to_pynput_hotkey(definition)
            if hotkey in hotkey_map:
                raise ValueError(f"Hotkey '{definition}' is assigned twice")
            hotkey_map[hotkey] = callback
        return hotkey_map

    def enable_hotkeys(self) -> bool:
        if self._is_registered:
            return True

        try:
            hotkey_map = self.build_hotkey_map()
        except ValueError as exc:
            logger.error("Invalid hotkey definition: %s", exc)
            return False

        if not hotkey_map:
            return False

        if keyboard is None:
            logger.warning("pynput/keyboard backend not available; global hotkeys disabled")
            self._listener = None
            self._is_registered = False
            return False
        try:
            self._listener = keyboard.GlobalHotKeys(hotkey_map)
            self._listener.start()
            self._is_registered = True
            logger.info("Hotkeys active: %s", ", ".join(hotkey_map))
            return True
        except Exception as exc:  # pragma: no cover - system specific
            logger.error("Failed to register hotkeys: %s", exc)
            self._listener = None
            self._is_registered = False
            return False

    def disable_hotkeys(self) -> None:
        if not self._is_registered:
            return

        if self._listener is not None:
            try:
                self._listener.stop()  # type: ignore[attr-defined]
            except Exception as exc:  # pragma: no cover - system specific
                logger.debug("Stopping hotkey listener failed: %s", exc)
            self._listener = None

        self._is_registered = False

    def _to_pynput_hotkey(self, hotkey: str) -> str:
        if not hotkey:
            raise ValueError("Empty hotkey string")

        tokens = [token.strip() for token in hotkey.replace("+", " ").split() if token.strip()]
        if not tokens:
            raise ValueError("Hotkey contains no tokens")

        parsed: list[str] = []
        for token in tokens:
            lower_token = token.lower()

            if lower_token in self._SPECIAL_KEY_ALIASES:
                parsed.append(f"<{self._SPECIAL_KEY_ALIASES[lower_token]}>")
                continue

            if lower_token.startswith("f") and lower_token[1:].isdigit():
                parsed.append(f"<{lower_token}>")
                continue

            if len(lower_token) == 1:
                parsed.append(lower_token)
                continue

            raise ValueError(f"Unknown key '{token}' in hotkey '{hotkey}'")

        return "+".join(parsed)
