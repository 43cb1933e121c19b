"""
External collaborators used by the executor, plus the concrete OS adapters.

Notes
-----
- On Windows, text is sent with pywinauto ``send_keys`` when available; key
  presses, combinations and the mouse use pynput controllers, with pyautogui
  as fallback.
- All OS libraries are imported lazily so the core imports (and its tests run)
  on machines without a display.
"""

from __future__ import annotations

import logging
import sys
import time
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from .errors import InjectionFailed

logger = logging.getLogger(__name__)

BUTTONS = ("left", "right", "middle")


class InputInjector(Protocol):
    def click(self, x: int, y: int, button: str = "left") -> None: ...

    def double_click(self, x: int, y: int) -> None: ...

    def mouse_down(self, x: int, y: int, button: str = "left") -> None: ...

    def mouse_up(self, x: int, y: int, button: str = "left") -> None: ...

    def move_to(self, x: int, y: int) -> None: ...

    def scroll(self, x: int, y: int, delta: int) -> None: ...

    def press_key(self, key: str) -> None: ...

    def press_combination(self, keys: Sequence[str]) -> None: ...

    def type_text(self, text: str, inter_char_delay_ms: int = 10) -> None: ...


class ClipboardAccess(Protocol):
    def read_text(self) -> Optional[str]: ...

    def write_text(self, text: str) -> None: ...


class SequenceLookup(Protocol):
    def run_by_name(self, name: str) -> bool: ...

    def run_with_variables(self, name: str, variables: Dict[str, str]) -> bool: ...


class BrowserBridge(Protocol):
    def evaluate(self, script: str) -> Any: ...


def _get_pynput() -> Tuple[Optional[Any], Optional[Any]]:
    """Import pynput lazily and return (KeyboardControllerClass, KeyModule)."""
    try:
        from pynput.keyboard import Controller as KeyboardController, Key as KeyModule  # type: ignore
        return KeyboardController, KeyModule
    except Exception:
        return None, None


def _get_pynput_mouse() -> Tuple[Optional[Any], Optional[Any]]:
    """Import pynput.mouse lazily and return (MouseControllerClass, ButtonModule)."""
    try:
        from pynput.mouse import Controller as MouseController, Button as MouseButton  # type: ignore
        return MouseController, MouseButton
    except Exception:
        return None, None


def _try_pywinauto_send_keys(text: str, *, pause: float = 0.0) -> bool:
    """Try to send literal text via pywinauto on Windows; return True on success."""
    if not sys.platform.startswith("win"):
        return False
    try:
        from pywinauto.keyboard import send_keys as pw_send_keys  # type: ignore
        escaped = "".join("{%s}" % ch if ch in "+^%~(){}[]" else ch for ch in text)
        pw_send_keys(escaped, with_spaces=True, with_tabs=True, with_newlines=True,
                     pause=max(0.0, float(pause)))
        return True
    except Exception as e:  # pragma: no cover
        logger.warning("pywinauto send_keys failed: %s", e)
        return False


# Key names (see sequencer.keys) -> pynput.keyboard.Key attribute names.
_PYNPUT_KEYS: Dict[str, str] = {
    "LeftCtrl": "ctrl_l", "RightCtrl": "ctrl_r",
    "LeftAlt": "alt_l", "RightAlt": "alt_gr",
    "LeftShift": "shift_l", "RightShift": "shift_r",
    "LWin": "cmd_l", "RWin": "cmd_r",
    "Enter": "enter", "Tab": "tab", "Escape": "esc", "Back": "backspace",
    "Delete": "delete", "Insert": "insert", "Home": "home", "End": "end",
    "PageUp": "page_up", "PageDown": "page_down", "Left": "left", "Right": "right",
    "Up": "up", "Down": "down", "CapsLock": "caps_lock", "Space": "space",
    "PrintScreen": "print_screen", "Pause": "pause", "Apps": "menu",
    "NumLock": "num_lock", "Scroll": "scroll_lock",
}

# Key names -> pyautogui key names for the fallback path.
_PYAUTOGUI_KEYS: Dict[str, str] = {
    "LeftCtrl": "ctrlleft", "RightCtrl": "ctrlright",
    "LeftAlt": "altleft", "RightAlt": "altright",
    "LeftShift": "shiftleft", "RightShift": "shiftright",
    "LWin": "winleft", "RWin": "winright",
    "Enter": "enter", "Tab": "tab", "Escape": "esc", "Back": "backspace",
    "Delete": "delete", "Insert": "insert", "Home": "home", "End": "end",
    "PageUp": "pageup", "PageDown": "pagedown", "Left": "left", "Right": "right",
    "Up": "up", "Down": "down", "CapsLock": "capslock", "Space": "space",
    "PrintScreen": "printscreen", "Pause": "pause", "Apps": "apps",
    "NumLock": "numlock", "Scroll": "scrolllock",
}

# Unshifted characters of the US layout, enough to address a physical key.
_OEM_CHARS: Dict[str, str] = {
    "OemPeriod": ".", "OemComma": ",", "OemMinus": "-", "OemPlus": "=",
    "Oem1": ";", "Oem2": "/", "Oem3": "`", "Oem4": "[", "Oem5": "\\",
    "Oem6": "]", "Oem7": "'", "Oem102": "\\",
}


def _char_for_key(key: str) -> Optional[str]:
    if len(key) == 1 and key.isalpha():
        return key.lower()
    if len(key) == 2 and key[0] == "D" and key[1].isdigit():
        return key[1]
    if key.startswith("NumPad") and key[-1].isdigit():
        return key[-1]
    return _OEM_CHARS.get(key)


def pynput_key(key: str, key_module: Any) -> Any:
    """Translate a key name into something a pynput keyboard controller can press."""
    attr = _PYNPUT_KEYS.get(key)
    if attr is None and key.startswith("F") and key[1:].isdigit():
        attr = key.lower()
    if attr is not None and hasattr(key_module, attr):
        return getattr(key_module, attr)
    char = _char_for_key(key)
    if char is None:
        raise InjectionFailed(f"Key '{key}' cannot be sent")
    return char


def pyautogui_key(key: str) -> str:
    if key in _PYAUTOGUI_KEYS:
        return _PYAUTOGUI_KEYS[key]
    if key.startswith("F") and key[1:].isdigit():
        return key.lower()
    char = _char_for_key(key)
    if char is None:
        raise InjectionFailed(f"Key '{key}' cannot be sent")
    return char


class PynputInputInjector:
    """Synthesizes mouse and keyboard input on the local desktop."""

    def __init__(self) -> None:
        self._keyboard = None
        self._key_module = None
        self._mouse = None
        self._button_module = None

    # -- backends --------------------------------------------------------

    def _kb(self) -> Tuple[Optional[Any], Optional[Any]]:
        if self._keyboard is None:
            kb_cls, key_mod = _get_pynput()
            if kb_cls is not None:
                self._keyboard, self._key_module = kb_cls(), key_mod
        return self._keyboard, self._key_module

    def _ms(self) -> Tuple[Optional[Any], Optional[Any]]:
        if self._mouse is None:
            m_cls, btn_mod = _get_pynput_mouse()
            if m_cls is not None:
                self._mouse, self._button_module = m_cls(), btn_mod
        return self._mouse, self._button_module

    @staticmethod
    def _pyautogui() -> Any:
        try:
            import pyautogui  # local import to avoid hard dep at import time
        except Exception as e:
            raise InjectionFailed(f"No input backend available (install pynput or pyautogui): {e}")
        return pyautogui

    # -- mouse -----------------------------------------------------------

    def _press_mouse(self, x: int, y: int, button: str, *, down: bool, up: bool, clicks: int = 1) -> None:
        btn_name = button if button in BUTTONS else "left"
        controller, buttons = self._ms()
        if controller is not None and buttons is not None:
            try:
                controller.position = (int(x), int(y))
                btn = getattr(buttons, btn_name)
                if down and up:
                    controller.click(btn, clicks)
                elif down:
                    controller.press(btn)
                else:
                    controller.release(btn)
                return
            except Exception as e:  # pragma: no cover
                logger.warning("pynput mouse failed, fallback to pyautogui: %s", e)
        gui = self._pyautogui()
        try:
            if down and up:
                gui.click(x=int(x), y=int(y), clicks=clicks, button=btn_name)
            elif down:
                gui.mouseDown(x=int(x), y=int(y), button=btn_name)
            else:
                gui.mouseUp(x=int(x), y=int(y), button=btn_name)
        except Exception as e:  # pragma: no cover
            raise InjectionFailed(f"mouse input failed: {e}")

    def click(self, x: int, y: int, button: str = "left") -> None:
        self._press_mouse(x, y, button, down=True, up=True)

    def double_click(self, x: int, y: int) -> None:
        self._press_mouse(x, y, "left", down=True, up=True, clicks=2)

    def mouse_down(self, x: int, y: int, button: str = "left") -> None:
        self._press_mouse(x, y, button, down=True, up=False)

    def mouse_up(self, x: int, y: int, button: str = "left") -> None:
        self._press_mouse(x, y, button, down=False, up=True)

    def move_to(self, x: int, y: int) -> None:
        controller, _buttons = self._ms()
        if controller is not None:
            try:
                controller.position = (int(x), int(y))
                return
            except Exception as e:  # pragma: no cover
                logger.warning("pynput move failed, fallback to pyautogui: %s", e)
        try:
            self._pyautogui().moveTo(int(x), int(y))
        except InjectionFailed:
            raise
        except Exception as e:  # pragma: no cover
            raise InjectionFailed(f"mouse move failed: {e}")

    def scroll(self, x: int, y: int, delta: int) -> None:
        # Windows reports 120 per notch; pynput and pyautogui count notches.
        notches = int(delta / 120) if abs(delta) >= 120 else int(delta)
        controller, _buttons = self._ms()
        if controller is not None:
            try:
                controller.position = (int(x), int(y))
                controller.scroll(0, notches)
                return
            except Exception as e:  # pragma: no cover
                logger.warning("pynput scroll failed, fallback to pyautogui: %s", e)
        try:
            self._pyautogui().scroll(notches, x=int(x), y=int(y))
        except InjectionFailed:
            raise
        except Exception as e:  # pragma: no cover
            raise InjectionFailed(f"scroll failed: {e}")

    # -- keyboard --------------------------------------------------------

    def press_key(self, key: str) -> None:
        kb, key_mod = self._kb()
        if kb is not None:
            kb.tap(pynput_key(key, key_mod))
            return
        try:
            self._pyautogui().press(pyautogui_key(key))
        except InjectionFailed:
            raise
        except Exception as e:  # pragma: no cover
            raise InjectionFailed(f"key press failed: {e}")

    def press_combination(self, keys: Sequence[str]) -> None:
        if not keys:
            return
        kb, key_mod = self._kb()
        if kb is not None:
            resolved: List[Any] = [pynput_key(key, key_mod) for key in keys]
            pressed: List[Any] = []
            try:
                for item in resolved:
                    kb.press(item)
                    pressed.append(item)
                    time.sleep(0.01)
            finally:
                for item in reversed(pressed):
                    kb.release(item)
            return
        try:
            self._pyautogui().hotkey(*[pyautogui_key(key) for key in keys])
        except InjectionFailed:
            raise
        except Exception as e:  # pragma: no cover
            raise InjectionFailed(f"key combination failed: {e}")

    def type_text(self, text: str, inter_char_delay_ms: int = 10) -> None:
        if not text:
            return
        pause = max(0, int(inter_char_delay_ms)) / 1000.0
        if sys.platform.startswith("win") and _try_pywinauto_send_keys(text, pause=pause):
            return
        kb, _key_mod = self._kb()
        if kb is not None:
            for ch in text:
                kb.type(ch)
                if pause:
                    time.sleep(pause)
            return
        try:
            self._pyautogui().write(text, interval=pause)
        except InjectionFailed:
            raise
        except Exception as e:  # pragma: no cover
            raise InjectionFailed(f"typing failed: {e}")


class PyperclipClipboard:
    """Clipboard access through pyperclip."""

    def read_text(self) -> Optional[str]:
        import pyperclip  # type: ignore

        try:
            text = pyperclip.paste()
        except pyperclip.PyperclipException as e:
            raise InjectionFailed(f"Clipboard could not be read: {e}")
        return text if text else None

    def write_text(self, text: str) -> None:
        import pyperclip  # type: ignore

        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as e:
            raise InjectionFailed(f"Clipboard could not be written: {e}")
