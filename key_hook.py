"""Global keyboard and mouse hooks feeding the input recorder."""

from __future__ import annotations

import sys
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

try:
    from pynput import keyboard, mouse  # type: ignore
except Exception:  # pragma: no cover - environment dependent
    keyboard = None  # type: ignore
    mouse = None  # type: ignore

from sequencer.keys import char_to_key
from sequencer.recorder import KeyEvent, MouseEvent

ErrorCallback = Callable[[Exception], None]

# Windows wheel units per notch; pynput reports notches.
WHEEL_DELTA = 120

_MOUSE_BUTTONS = ("left", "right", "middle")

# pynput ``Key`` member names -> sequencer key names.
_SPECIAL_KEYS: Dict[str, str] = {
    "ctrl": "LeftCtrl",
    "ctrl_l": "LeftCtrl",
    "ctrl_r": "RightCtrl",
    "alt": "LeftAlt",
    "alt_l": "LeftAlt",
    "alt_r": "RightAlt",
    "alt_gr": "RightAlt",
    "shift": "LeftShift",
    "shift_l": "LeftShift",
    "shift_r": "RightShift",
    "cmd": "LWin",
    "cmd_l": "LWin",
    "cmd_r": "RWin",
    "space": "Space",
    "enter": "Enter",
    "tab": "Tab",
    "esc": "Escape",
    "backspace": "Back",
    "delete": "Delete",
    "insert": "Insert",
    "home": "Home",
    "end": "End",
    "page_up": "PageUp",
    "page_down": "PageDown",
    "left": "Left",
    "right": "Right",
    "up": "Up",
    "down": "Down",
    "caps_lock": "CapsLock",
    "print_screen": "PrintScreen",
    "pause": "Pause",
    "menu": "Apps",
    "num_lock": "NumLock",
    "scroll_lock": "Scroll",
}

# Windows virtual-key codes; with Ctrl held pynput reports control characters instead of letters.
_VK_KEYS: Dict[int, str] = {
    0xBA: "Oem1", 0xBB: "OemPlus", 0xBC: "OemComma", 0xBD: "OemMinus",
    0xBE: "OemPeriod", 0xBF: "Oem2", 0xC0: "Oem3", 0xDB: "Oem4",
    0xDC: "Oem5", 0xDD: "Oem6", 0xDE: "Oem7", 0xDF: "Oem8", 0xE2: "Oem102",
}
_VK_KEYS.update({0x41 + i: chr(0x41 + i) for i in range(26)})
_VK_KEYS.update({0x30 + i: f"D{i}" for i in range(10)})
_VK_KEYS.update({0x60 + i: f"NumPad{i}" for i in range(10)})


def translate_key(key: Any, layout: str = "de", use_vk: Optional[bool] = None) -> Optional[str]:
    """Map a pynput ``Key``/``KeyCode`` to a sequencer key name, or None if unknown."""
    if use_vk is None:
        use_vk = sys.platform.startswith("win")

    name = getattr(key, "name", None)
    if name:
        if name in _SPECIAL_KEYS:
            return _SPECIAL_KEYS[name]
        if name.startswith("f") and name[1:].isdigit():
            return name.upper()
        return None

    vk = getattr(key, "vk", None)
    if use_vk and vk in _VK_KEYS:
        return _VK_KEYS[vk]

    char = getattr(key, "char", None)
    if char:
        found = char_to_key(char, layout)
        if found is not None:
            return found[0]
    return None


class KeyHookService:
    """Listens to global key events and forwards them as ``KeyEvent`` items."""

    def __init__(
        self,
        sink: Callable[[KeyEvent], Any],
        layout: str = "de",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sink = sink
        self._layout = layout
        self._clock = clock
        self._listener: Optional[object] = None
        self._lock = threading.Lock()

    def start(self, on_error: Optional[ErrorCallback] = None) -> bool:
        """Install the hook. Returns False if it is already running or unavailable."""
        with self._lock:
            if self._listener is not None:
                return False
            try:
                if keyboard is None:
                    raise RuntimeError("pynput/keyboard backend not available; recording is disabled")
                self._listener = keyboard.Listener(on_press=self._on_press, on_release=self._on_release)
                self._listener.start()
                return True
            except Exception as exc:  # pragma: no cover - hardware dependent
                self._listener = None
                if on_error:
                    on_error(exc)
                return False

    def stop(self) -> None:
        with self._lock:
            listener = self._listener
            self._listener = None
        if listener is not None:
            listener.stop()  # type: ignore[attr-defined]

    def is_running(self) -> bool:
        return self._listener is not None

    def _on_press(self, key: Any) -> None:
        self._forward(key, True)

    def _on_release(self, key: Any) -> None:
        self._forward(key, False)

    def _forward(self, key: Any, down: bool) -> None:
        name = translate_key(key, self._layout)
        if name is None:
            return
        self._sink(KeyEvent(key=name, down=down, timestamp=self._clock()))


class MouseHookService:
    """Listens to global clicks and wheel steps and forwards them as ``MouseEvent`` items."""

    def __init__(
        self,
        sink: Callable[[MouseEvent], Any],
        clock: Callable[[], float] = time.monotonic,
        position: Optional[Callable[[float, float], Tuple[int, int]]] = None,
    ) -> None:
        self._sink = sink
        self._clock = clock
        self._position = position or _screen_position
        self._listener: Optional[object] = None
        self._lock = threading.Lock()

    def start(self, on_error: Optional[ErrorCallback] = None) -> bool:
        """Install the hook. Returns False if it is already running or unavailable."""
        with self._lock:
            if self._listener is not None:
                return False
            try:
                if mouse is None:
                    raise RuntimeError("pynput/mouse backend not available; mouse recording is disabled")
                self._listener = mouse.Listener(on_click=self._on_click, on_scroll=self._on_scroll)
                self._listener.start()
                return True
            except Exception as exc:  # pragma: no cover - hardware dependent
                self._listener = None
                if on_error:
                    on_error(exc)
                return False

    def stop(self) -> None:
        with self._lock:
            listener = self._listener
            self._listener = None
        if listener is not None:
            listener.stop()  # type: ignore[attr-defined]

    def is_running(self) -> bool:
        return self._listener is not None

    def _on_click(self, x: float, y: float, button: Any, pressed: bool) -> None:
        name = getattr(button, "name", None)
        if not pressed or name not in _MOUSE_BUTTONS:
            return
        nx, ny = self._position(x, y)
        self._sink(MouseEvent(x=nx, y=ny, button=name, timestamp=self._clock()))

    def _on_scroll(self, x: float, y: float, _dx: float, dy: float) -> None:
        delta = int(round(dy * WHEEL_DELTA))
        if delta == 0:
            return
        nx, ny = self._position(x, y)
        self._sink(MouseEvent(x=nx, y=ny, button="", timestamp=self._clock(), wheel_delta=delta))


def _screen_position(x: float, y: float) -> Tuple[int, int]:
    """Prefer pyautogui's cursor position so recorded points match the replay coordinate system."""
    try:
        import pyautogui  # type: ignore
        cx, cy = pyautogui.position()
        return int(cx), int(cy)
    except Exception:
        return int(x), int(y)
