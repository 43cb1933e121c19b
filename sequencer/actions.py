"""
Sequence actions: small, composable building blocks.

Supported actions (``type`` field in JSON):
- mouse: click, press, release, move or scroll at (x, y)
- keyboard: type text, press keys, send a key combination or hotkey
- wait: sleep for milliseconds
- variable: mutate a sequence variable
- clipboard: write text or a variable into the clipboard
- json: read a JSON payload (clipboard or template) and follow its directives
- browser: run a script through the browser bridge
- loop / if: control flow over child actions
- file: read a file into a variable or the clipboard

Actions only carry data. Running them is the job of
:class:`sequencer.engine.SequenceExecutor`, which dispatches on ``kind``.
"""

from __future__ import annotations

import copy
import os
import re
import uuid
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Dict, List, NamedTuple, Optional, Type

from .errors import ActionError
from .keys import format_keys, normalize_key


class ActionKind(Enum):
    MOUSE = "mouse"
    KEYBOARD = "keyboard"
    WAIT = "wait"
    VARIABLE = "variable"
    CLIPBOARD = "clipboard"
    JSON = "json"
    BROWSER = "browser"
    LOOP = "loop"
    IF = "if"
    FILE = "file"


class MouseActionType(Enum):
    LEFT_CLICK = "left_click"
    RIGHT_CLICK = "right_click"
    MIDDLE_CLICK = "middle_click"
    DOUBLE_CLICK = "double_click"
    MOUSE_DOWN = "mouse_down"
    MOUSE_UP = "mouse_up"
    MOUSE_MOVE = "mouse_move"
    MOUSE_WHEEL = "mouse_wheel"


class KeyboardActionType(Enum):
    TYPE_TEXT = "type_text"
    KEY_PRESS = "key_press"
    KEY_COMBINATION = "key_combination"
    HOTKEY = "hotkey"


class VariableOperation(Enum):
    SET_VALUE = "set_value"
    INCREMENT = "increment"
    DECREMENT = "decrement"
    APPEND_TEXT = "append_text"
    CLEAR_VALUE = "clear_value"
    ADD_LIST_ITEM = "add_list_item"
    REMOVE_LIST_ITEM = "remove_list_item"
    CLEAR_LIST = "clear_list"
    ADD_TABLE_ROW = "add_table_row"
    TOGGLE = "toggle"


class BrowserOperation(Enum):
    FIND_ELEMENT_AND_CLICK = "find_element_and_click"
    EXECUTE_JAVASCRIPT = "execute_javascript"
    GET_COORDINATES = "get_coordinates"


class ConditionSource(Enum):
    VARIABLE = "variable"
    CLIPBOARD = "clipboard"
    TEXT = "text"


class ComparisonOperator(Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    NOT_EQUALS = "not_equals"


class FileSource(Enum):
    TEXT = "text"
    CLIPBOARD = "clipboard"
    VARIABLE = "variable"


class FileDestination(Enum):
    VARIABLE = "variable"
    CLIPBOARD = "clipboard"


class FileEncoding(Enum):
    UTF8 = "utf8"
    ASCII = "ascii"
    UTF16 = "utf16"
    UTF32 = "utf32"
    DEFAULT = "default"

    @property
    def codec(self) -> Optional[str]:
        return {
            FileEncoding.UTF8: "utf-8",
            FileEncoding.ASCII: "ascii",
            FileEncoding.UTF16: "utf-16",
            FileEncoding.UTF32: "utf-32",
        }.get(self)


# Browser script that locates the first "copy" button and reports its centre.
DEFAULT_COPY_BUTTON_SCRIPT = """(() => {
  const buttons = Array.from(document.querySelectorAll('button'));
  const target = buttons.find(b => /copy|kopieren/i.test(b.textContent || b.getAttribute('aria-label') || ''));
  if (!target) { return null; }
  const rect = target.getBoundingClientRect();
  return { x: Math.round(window.screenX + rect.left + rect.width / 2),
           y: Math.round(window.screenY + rect.top + rect.height / 2) };
})()"""


def _new_id() -> str:
    return str(uuid.uuid4())


def _preview(text: Optional[str], limit: int = 20) -> str:
    text = text or ""
    return text[:limit - 3] + "..." if len(text) > limit else text


def _pascal(member: Enum) -> str:
    return "".join(part.capitalize() for part in member.value.split("_"))


def _snake(name: str) -> str:
    """``DelayBefore`` / ``delayBefore`` / ``delay_before`` -> ``delay_before``."""
    name = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name).lower()


def _as_bool(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() in ("true", "1", "yes", "y", "on")
    return bool(raw)


def _as_enum(enum_cls: Type[Enum], raw: Any) -> Enum:
    if isinstance(raw, enum_cls):
        return raw
    token = re.sub(r"[^a-z0-9]", "", str(raw).lower())
    for member in enum_cls:
        if token in (member.value.replace("_", ""), member.name.lower().replace("_", "")):
            return member
    raise ActionError(f"Unknown {enum_cls.__name__} value: {raw!r}")


@dataclass
class Condition:
    left_source: ConditionSource = ConditionSource.VARIABLE
    left_variable: str = ""
    left_text: str = ""
    operator: ComparisonOperator = ComparisonOperator.EQUALS
    right_source: ConditionSource = ConditionSource.TEXT
    right_variable: str = ""
    right_text: str = ""

    def compare(self, left: str, right: str) -> bool:
        """Apply the operator to already resolved operands (ordinal, case-sensitive)."""
        if self.operator == ComparisonOperator.EQUALS:
            return left == right
        if self.operator == ComparisonOperator.CONTAINS:
            return right in left
        if self.operator == ComparisonOperator.STARTS_WITH:
            return left.startswith(right)
        if self.operator == ComparisonOperator.ENDS_WITH:
            return left.endswith(right)
        return left != right

    def describe(self) -> str:
        return f"{_pascal(self.left_source)} {_pascal(self.operator)} {_pascal(self.right_source)}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "left_source": self.left_source.value,
            "left_variable": self.left_variable,
            "left_text": self.left_text,
            "operator": self.operator.value,
            "right_source": self.right_source.value,
            "right_variable": self.right_variable,
            "right_text": self.right_text,
        }

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]]) -> "Condition":
        cond = Condition()
        for key, raw in (data or {}).items():
            key = _snake(key)
            # legacy field names
            key = {"left_source_type": "left_source", "right_source_type": "right_source",
                   "left_variable_name": "left_variable", "right_variable_name": "right_variable",
                   "left_custom_text": "left_text", "right_custom_text": "right_text"}.get(key, key)
            if key in ("left_source", "right_source"):
                setattr(cond, key, _as_enum(ConditionSource, raw))
            elif key == "operator":
                cond.operator = _as_enum(ComparisonOperator, raw)
            elif key in ("left_variable", "left_text", "right_variable", "right_text"):
                setattr(cond, key, "" if raw is None else str(raw))
        return cond


@dataclass
class Action:
    """Fields shared by every action kind."""

    name: str = ""
    description: str = ""
    delay_before: int = 0
    enabled: bool = True
    continue_on_error: bool = False
    id: str = field(default_factory=_new_id)

    kind: ClassVar[ActionKind]
    _child_fields: ClassVar[tuple] = ()

    def __post_init__(self) -> None:
        self.delay_before = max(0, int(self.delay_before or 0))

    def describe(self) -> str:  # pragma: no cover - overridden per kind
        return self.kind.value

    def children(self) -> List["Action"]:
        out: List[Action] = []
        for name in self._child_fields:
            out.extend(getattr(self, name))
        return out

    def clone(self) -> "Action":
        """Deep value copy; the clone and every cloned child get fresh ids."""
        duplicate = copy.deepcopy(self)
        _refresh_ids(duplicate)
        return duplicate

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.kind.value}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, Condition):
                value = value.to_dict()
            elif f.name in self._child_fields:
                value = [child.to_dict() for child in value]
            elif isinstance(value, list):
                value = list(value)
            data[f.name] = value
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Action":
        """Build an action from its JSON form.

        Legacy input is tolerated: camelCase/PascalCase field names, a missing
        ``type`` (guessed from the fields present) and unknown fields.

        Raises:
            ActionError: the data is not an object or names an unknown type.
        """
        if not isinstance(data, dict):
            raise ActionError(f"Action data must be an object, got {type(data).__name__}")
        normalized = {_snake(str(k)): v for k, v in data.items()}
        raw_type = normalized.pop("type", None)
        if raw_type:
            token = re.sub(r"(action)$", "", re.sub(r"[^a-z]", "", str(raw_type).lower()))
            try:
                kind = ActionKind(token)
            except ValueError:
                raise ActionError(f"Unknown action type: {raw_type}")
        else:
            kind = guess_kind(normalized)
        cls = ACTION_TYPES[kind]
        action = cls()
        for legacy, current in _LEGACY_FIELDS.get(kind, {}).items():
            if legacy in normalized and current not in normalized:
                normalized[current] = normalized[legacy]
        if kind in (ActionKind.LOOP, ActionKind.IF) and "condition" not in normalized:
            # older files keep the condition fields flat on the action
            if any(key.startswith(("left_", "right_")) or key == "operator" for key in normalized):
                normalized["condition"] = dict(normalized)
        for f in fields(action):
            if f.name not in normalized or normalized[f.name] is None:
                continue
            setattr(action, f.name, coerce_field(action, f.name, normalized[f.name]))
        action.delay_before = max(0, action.delay_before)
        return action


def _refresh_ids(action: Action) -> None:
    action.id = _new_id()
    for child in action.children():
        _refresh_ids(child)


def coerce_field(action: Action, name: str, raw: Any) -> Any:
    """Convert ``raw`` to the type of the field's current value."""
    current = getattr(action, name)
    if name in action._child_fields:
        if not isinstance(raw, list):
            raise ActionError(f"Field '{name}' must be a list of actions")
        return [Action.from_dict(item) for item in raw]
    if name == "keys":
        if isinstance(raw, str):
            raw = [part for part in re.split(r"[+,]", raw) if part.strip()]
        if not isinstance(raw, list):
            raise ActionError(f"Field 'keys' must be a list of key names, got {raw!r}")
        return [normalize_key(str(key)) for key in raw]
    if isinstance(current, Condition):
        if isinstance(raw, Condition):
            return copy.deepcopy(raw)
        if not isinstance(raw, dict):
            raise ActionError(f"Field '{name}' must be an object, got {raw!r}")
        return Condition.from_dict(raw)
    if isinstance(current, Enum):
        return _as_enum(type(current), raw)
    if isinstance(current, bool):
        return _as_bool(raw)
    if isinstance(current, int):
        try:
            return int(raw)
        except (TypeError, ValueError):
            raise ActionError(f"Field '{name}' must be an integer, got {raw!r}")
    if isinstance(current, str):
        return str(raw)
    return raw


# Field names used by older saved libraries.
_LEGACY_FIELDS: Dict[ActionKind, Dict[str, str]] = {
    ActionKind.MOUSE: {"action_type": "click_kind"},
    ActionKind.KEYBOARD: {"action_type": "action_kind", "delay_between_chars": "char_delay"},
    ActionKind.VARIABLE: {"action_type": "operation"},
    ActionKind.CLIPBOARD: {"append_to_clipboard": "append"},
    ActionKind.BROWSER: {"action_type": "operation", "java_script": "javascript"},
    ActionKind.LOOP: {"loop_actions": "actions"},
    ActionKind.FILE: {"source_type": "source", "destination_type": "destination",
                      "destination_variable_name": "destination_variable",
                      "file_encoding": "encoding", "handle_io_exception": "handle_io_errors"},
}


def guess_kind(data: Dict[str, Any]) -> ActionKind:
    """Guess the kind of an untyped legacy action from the fields it carries."""
    has = data.__contains__
    if has("then_actions") or has("else_actions") or has("use_else_branch"):
        return ActionKind.IF
    if has("max_iterations") or has("loop_actions") or has("actions"):
        return ActionKind.LOOP
    if has("json_template") or has("check_clipboard") or has("offset_x"):
        return ActionKind.JSON
    if has("selector") or has("javascript") or has("java_script") or has("use_last_results"):
        return ActionKind.BROWSER
    if has("file_path") or has("destination_type") or has("destination"):
        return ActionKind.FILE
    if has("increment_value") or (has("variable_name") and has("operation")):
        return ActionKind.VARIABLE
    if has("use_variable") or has("append") or has("append_to_clipboard"):
        return ActionKind.CLIPBOARD
    if has("keys") or has("char_delay") or has("delay_between_chars") or has("use_clipboard") or has("text"):
        return ActionKind.KEYBOARD
    if has("click_kind") or has("wheel_delta") or (has("x") and has("y")):
        return ActionKind.MOUSE
    if has("wait_time"):
        return ActionKind.WAIT
    raise ActionError("Cannot determine action type from fields: " + ", ".join(sorted(data)))


@dataclass
class MouseAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.MOUSE

    x: int = 0
    y: int = 0
    wheel_delta: int = 0
    click_kind: MouseActionType = MouseActionType.LEFT_CLICK

    def describe(self) -> str:
        if self.click_kind == MouseActionType.MOUSE_WHEEL:
            return f"Mouse wheel ({self.x}, {self.y}) Delta: {self.wheel_delta}"
        if self.click_kind == MouseActionType.MIDDLE_CLICK:
            return f"Middle click ({self.x}, {self.y})"
        return f"{_pascal(self.click_kind)} ({self.x}, {self.y})"


@dataclass
class KeyboardAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.KEYBOARD

    action_kind: KeyboardActionType = KeyboardActionType.TYPE_TEXT
    text: str = ""
    keys: List[str] = field(default_factory=list)
    char_delay: int = 10
    use_clipboard: bool = False

    def describe(self) -> str:
        if self.action_kind == KeyboardActionType.TYPE_TEXT:
            suffix = " (from clipboard)" if self.use_clipboard else ""
            return f'Text: "{_preview(self.text)}"{suffix}'
        if self.action_kind == KeyboardActionType.KEY_PRESS:
            return f"Key: {format_keys(self.keys)}"
        if self.action_kind == KeyboardActionType.KEY_COMBINATION:
            return f"Combination: {format_keys(self.keys)}"
        return f"Hotkey: {format_keys(self.keys)}"

    def derived_name(self) -> str:
        if self.action_kind == KeyboardActionType.TYPE_TEXT:
            if self.use_clipboard:
                return "Text from Clipboard"
            return f'Text: "{_preview(self.text)}"' if self.text else "Text Input"
        if not self.keys:
            return {
                KeyboardActionType.KEY_PRESS: "Single Key",
                KeyboardActionType.KEY_COMBINATION: "Key Combination",
                KeyboardActionType.HOTKEY: "Hotkey",
            }[self.action_kind]
        return self.describe()


@dataclass
class WaitAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.WAIT

    wait_time: int = 1000

    def describe(self) -> str:
        return f"Wait: {self.wait_time} ms"


@dataclass
class VariableAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.VARIABLE

    variable_name: str = ""
    value: str = ""
    increment_value: int = 1
    list_index: int = 0
    operation: VariableOperation = VariableOperation.SET_VALUE

    def describe(self) -> str:
        name, op = self.variable_name, self.operation
        if op == VariableOperation.SET_VALUE:
            return f"Variable: Set '{name}' to '{self.value}'"
        if op == VariableOperation.INCREMENT:
            return f"Variable: Increase '{name}' by {self.increment_value}"
        if op == VariableOperation.DECREMENT:
            return f"Variable: Decrease '{name}' by {self.increment_value}"
        if op == VariableOperation.APPEND_TEXT:
            return f"Variable: Append '{self.value}' to '{name}'"
        if op == VariableOperation.CLEAR_VALUE:
            return f"Variable: Clear '{name}'"
        if op == VariableOperation.ADD_LIST_ITEM:
            return f"Variable: Add '{self.value}' to list '{name}'"
        if op == VariableOperation.REMOVE_LIST_ITEM:
            return f"Variable: Remove item {self.list_index} from '{name}'"
        if op == VariableOperation.CLEAR_LIST:
            return f"Variable: Clear list '{name}'"
        if op == VariableOperation.ADD_TABLE_ROW:
            return f"Variable: Add row '{self.value}' to '{name}'"
        return f"Variable: Toggle '{name}'"


@dataclass
class ClipboardAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.CLIPBOARD

    text: str = ""
    append: bool = False
    use_variable: bool = False
    variable_name: str = ""
    retry_count: int = 3
    retry_wait_time: int = 100

    def describe(self) -> str:
        suffix = " (append)" if self.append else ""
        if self.use_variable and self.variable_name:
            return f'Clipboard: Variable "{self.variable_name}"{suffix}'
        return f'Clipboard: "{_preview(self.text)}"{suffix}'


@dataclass
class JsonAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.JSON

    check_clipboard: bool = True
    json_template: str = ""
    offset_x: int = 0
    offset_y: int = 0
    retry_count: int = 3
    retry_wait_time: int = 1000

    def describe(self) -> str:
        return "JSON action: " + ("From clipboard" if self.check_clipboard else "From template")


@dataclass
class BrowserAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.BROWSER

    operation: BrowserOperation = BrowserOperation.FIND_ELEMENT_AND_CLICK
    selector: str = ""
    javascript: str = ""
    x_result: int = 0
    y_result: int = 0
    use_last_results: bool = False

    def describe(self) -> str:
        if self.operation == BrowserOperation.FIND_ELEMENT_AND_CLICK:
            return f"Find & Click: {self.selector}"
        if self.operation == BrowserOperation.EXECUTE_JAVASCRIPT:
            return "Execute JS"
        return f"Coordinates: ({self.x_result}, {self.y_result})"


@dataclass
class LoopAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.LOOP
    _child_fields: ClassVar[tuple] = ("actions",)

    max_iterations: int = 10
    use_condition: bool = False
    condition: Condition = field(default_factory=Condition)
    actions: List[Action] = field(default_factory=list)
    list_variable_name: str = ""
    item_variable_name: str = ""

    def describe(self) -> str:
        text = f"Loop: {len(self.actions)} actions, Max: {self.max_iterations}"
        if self.list_variable_name:
            text += f", over '{self.list_variable_name}'"
        if self.use_condition:
            text += ", with condition"
        return text


@dataclass
class IfAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.IF
    _child_fields: ClassVar[tuple] = ("then_actions", "else_actions")

    condition: Condition = field(default_factory=Condition)
    then_actions: List[Action] = field(default_factory=list)
    else_actions: List[Action] = field(default_factory=list)
    use_else_branch: bool = False

    def describe(self) -> str:
        text = f"If: {self.condition.describe()}, Then: {len(self.then_actions)} actions"
        if self.use_else_branch:
            text += f", Else: {len(self.else_actions)} actions"
        return text


@dataclass
class FileAction(Action):
    kind: ClassVar[ActionKind] = ActionKind.FILE

    source: FileSource = FileSource.TEXT
    file_path: str = ""
    variable_name: str = ""
    destination: FileDestination = FileDestination.VARIABLE
    destination_variable: str = ""
    encoding: FileEncoding = FileEncoding.UTF8
    handle_io_errors: bool = True

    def describe(self) -> str:
        if self.source == FileSource.TEXT:
            source = "File: " + (os.path.basename(self.file_path) if self.file_path else "not specified")
        elif self.source == FileSource.CLIPBOARD:
            source = "File from clipboard"
        else:
            source = f"File from variable: {self.variable_name}"
        if self.destination == FileDestination.VARIABLE:
            destination = f"Variable: {self.destination_variable}"
        else:
            destination = "Clipboard"
        return f"Read {source} into {destination}"


ACTION_TYPES: Dict[ActionKind, Type[Action]] = {
    cls.kind: cls
    for cls in (MouseAction, KeyboardAction, WaitAction, VariableAction, ClipboardAction,
                JsonAction, BrowserAction, LoopAction, IfAction, FileAction)
}


class Display(NamedTuple):
    name: str
    description: str


def recompute_display(action: Action) -> Display:
    """Derive the display name/description from the action's current fields.

    Keyboard actions always take their derived name; every other kind keeps a
    user-given name and only fills an empty one.
    """
    if isinstance(action, KeyboardAction):
        return Display(action.derived_name(), f"Keyboard input: {action.describe()}")
    return Display(action.name or action.describe(), action.description)


def apply_display(action: Action) -> Action:
    display = recompute_display(action)
    action.name, action.description = display.name, display.description
    return action
