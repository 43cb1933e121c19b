"""
Key names shared by the recorder, the action model and the input backends.

Keys are plain strings (``"A"``, ``"D1"``, ``"LeftCtrl"``, ``"Enter"``...), so
recorded sequences stay readable in JSON and independent of the hook library.
"""

from __future__ import annotations

import string
from typing import Dict, Iterable, List, Optional, Tuple

LETTER_KEYS = tuple(string.ascii_uppercase)
DIGIT_KEYS = tuple(f"D{i}" for i in range(10))
NUMPAD_KEYS = tuple(f"NumPad{i}" for i in range(10))
FUNCTION_KEYS = tuple(f"F{i}" for i in range(1, 25))
OEM_KEYS = (
    "OemPeriod", "OemComma", "OemMinus", "OemPlus",
    "Oem1", "Oem2", "Oem3", "Oem4", "Oem5", "Oem6", "Oem7", "Oem8", "Oem102",
)

CTRL_KEYS = ("LeftCtrl", "RightCtrl")
ALT_KEYS = ("LeftAlt", "RightAlt")
SHIFT_KEYS = ("LeftShift", "RightShift")
WIN_KEYS = ("LWin", "RWin")
MODIFIER_KEYS = CTRL_KEYS + ALT_KEYS + SHIFT_KEYS

NAVIGATION_KEYS = (
    "Enter", "Tab", "Escape", "Back", "Delete", "Insert", "Home", "End",
    "PageUp", "PageDown", "Left", "Right", "Up", "Down", "CapsLock",
    "PrintScreen", "Pause", "Apps", "NumLock", "Scroll",
)

ALL_KEYS: Tuple[str, ...] = (
    MODIFIER_KEYS + WIN_KEYS + LETTER_KEYS + DIGIT_KEYS + NUMPAD_KEYS + ("Space",)
    + OEM_KEYS + NAVIGATION_KEYS + FUNCTION_KEYS
)

_ALIASES: Dict[str, str] = {
    "ctrl": "LeftCtrl",
    "control": "LeftCtrl",
    "lctrl": "LeftCtrl",
    "rctrl": "RightCtrl",
    "alt": "LeftAlt",
    "lalt": "LeftAlt",
    "ralt": "RightAlt",
    "altgr": "RightAlt",
    "shift": "LeftShift",
    "lshift": "LeftShift",
    "rshift": "RightShift",
    "win": "LWin",
    "cmd": "LWin",
    "super": "LWin",
    "return": "Enter",
    "esc": "Escape",
    "backspace": "Back",
    "del": "Delete",
    "ins": "Insert",
    "pgup": "PageUp",
    "pgdn": "PageDown",
    "oemquestion": "Oem2",
    "oemsemicolon": "Oem1",
    "oemtilde": "Oem3",
    "oemopenbrackets": "Oem4",
    "oempipe": "Oem5",
    "oemclosebrackets": "Oem6",
    "oemquotes": "Oem7",
    "space": "Space",
    " ": "Space",
}

_CANONICAL: Dict[str, str] = {name.lower(): name for name in ALL_KEYS}

_DISPLAY_NAMES: Dict[str, str] = {
    "Enter": "Enter",
    "Escape": "Esc",
    "OemPlus": "+ (Plus)",
    "OemMinus": "- (Minus)",
    "Oem2": "? (Question Mark)",
    "OemPeriod": ". (Period)",
    "OemComma": ", (Comma)",
    "Oem7": "' (Quote)",
    "LeftCtrl": "Ctrl (Left)",
    "RightCtrl": "Ctrl (Right)",
    "LeftAlt": "Alt (Left)",
    "RightAlt": "Alt (Right)",
    "LeftShift": "Shift (Left)",
    "RightShift": "Shift (Right)",
}

# (unshifted, shifted) characters per layout for the non-letter printable keys.
_LAYOUTS: Dict[str, Dict[str, Tuple[str, str]]] = {
    "de": {
        "D0": ("0", "="), "D1": ("1", "!"), "D2": ("2", '"'), "D3": ("3", "§"),
        "D4": ("4", "$"), "D5": ("5", "%"), "D6": ("6", "&"), "D7": ("7", "/"),
        "D8": ("8", "("), "D9": ("9", ")"),
        "OemPeriod": (".", ":"), "OemComma": (",", ";"), "OemMinus": ("-", "_"),
        "OemPlus": ("+", "*"), "Oem1": ("ü", "Ü"), "Oem2": ("#", "'"),
        "Oem3": ("ö", "Ö"), "Oem4": ("ß", "?"), "Oem5": ("^", "°"),
        "Oem6": ("´", "`"), "Oem7": ("ä", "Ä"), "Oem102": ("<", ">"),
    },
    "us": {
        "D0": ("0", ")"), "D1": ("1", "!"), "D2": ("2", "@"), "D3": ("3", "#"),
        "D4": ("4", "$"), "D5": ("5", "%"), "D6": ("6", "^"), "D7": ("7", "&"),
        "D8": ("8", "*"), "D9": ("9", "("),
        "OemPeriod": (".", ">"), "OemComma": (",", "<"), "OemMinus": ("-", "_"),
        "OemPlus": ("=", "+"), "Oem1": (";", ":"), "Oem2": ("/", "?"),
        "Oem3": ("`", "~"), "Oem4": ("[", "{"), "Oem5": ("\\", "|"),
        "Oem6": ("]", "}"), "Oem7": ("'", '"'), "Oem102": ("\\", "|"),
    },
}

SUPPORTED_LAYOUTS = tuple(_LAYOUTS)


def normalize_key(name: str) -> str:
    """Return the canonical spelling of a key name (unknown names pass through)."""
    if name is None:
        return ""
    raw = str(name)
    if raw == " ":
        return "Space"
    token = raw.strip()
    lowered = token.lower()
    if lowered in _ALIASES:
        return _ALIASES[lowered]
    if lowered in _CANONICAL:
        return _CANONICAL[lowered]
    if len(token) == 1 and token.isdigit():
        return f"D{token}"
    if len(token) == 1 and token.isalpha() and token.isascii():
        return token.upper()
    return token


def is_modifier(key: str) -> bool:
    return key in MODIFIER_KEYS


def is_ctrl(key: str) -> bool:
    return key in CTRL_KEYS


def is_alt(key: str) -> bool:
    return key in ALT_KEYS


def is_shift(key: str) -> bool:
    return key in SHIFT_KEYS


def is_printable(key: str) -> bool:
    return (
        key in LETTER_KEYS
        or key in DIGIT_KEYS
        or key in NUMPAD_KEYS
        or key == "Space"
        or key in OEM_KEYS
    )


def key_to_char(key: str, shift: bool = False, layout: str = "de") -> Optional[str]:
    """Translate a printable key into the character it types.

    Returns ``"?"`` for printable keys the layout does not cover and ``None``
    for keys that do not produce text at all.
    """
    if key in LETTER_KEYS:
        return key if shift else key.lower()
    if key in NUMPAD_KEYS:
        return key[-1]
    if key == "Space":
        return " "
    if not is_printable(key):
        return None
    mapping = _LAYOUTS.get(layout, _LAYOUTS["de"]).get(key)
    if mapping is None:
        return "?"
    return mapping[1] if shift else mapping[0]


def char_to_key(char: str, layout: str = "de") -> Optional[Tuple[str, bool]]:
    """Reverse lookup used by hook adapters that only report a character."""
    if not char:
        return None
    if char == " ":
        return "Space", False
    if char.isascii() and char.isalpha():
        return char.upper(), char.isupper()
    for key, (plain, shifted) in _LAYOUTS.get(layout, _LAYOUTS["de"]).items():
        if char == plain:
            return key, False
        if char == shifted:
            return key, True
    return None


def display_name(key: str) -> str:
    if key in _DISPLAY_NAMES:
        return _DISPLAY_NAMES[key]
    if key in DIGIT_KEYS:
        return key[1:]
    if not key:
        return "[No Key]"
    return key


def format_keys(keys: Iterable[str], separator: str = " + ") -> str:
    names = [display_name(key) for key in keys]
    return separator.join(names) if names else "(none)"


def create_combination(ctrl: bool, alt: bool, shift: bool, main_key: Optional[str]) -> List[str]:
    keys: List[str] = []
    if ctrl:
        keys.append("LeftCtrl")
    if alt:
        keys.append("LeftAlt")
    if shift:
        keys.append("LeftShift")
    if main_key:
        keys.append(main_key)
    return keys
