"""
Typed variables scoped to a single sequence.

A variable holds exactly one active type at a time. Changing the type resets
the value to that type's zero value; stale text is never reinterpreted as a
number or boolean.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional

logger = logging.getLogger(__name__)

LIST_SEPARATOR = ";"

_TRUE_WORDS = ("1", "yes", "y", "on")


class VariableType(Enum):
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    LIST = "list"


_ZERO_VALUES: Dict[VariableType, Any] = {
    VariableType.TEXT: "",
    VariableType.NUMBER: 0,
    VariableType.BOOLEAN: False,
    VariableType.LIST: "",
}


def _parse_int(text: str) -> Optional[int]:
    try:
        return int(text.strip())
    except (ValueError, AttributeError):
        return None


def infer_type(value: str) -> VariableType:
    """Guess the variable type for a raw string value."""
    stripped = value.strip()
    if stripped.lower() in ("true", "false"):
        return VariableType.BOOLEAN
    if _parse_int(stripped) is not None:
        return VariableType.NUMBER
    if LIST_SEPARATOR in value:
        return VariableType.LIST
    return VariableType.TEXT


@dataclass
class Variable:
    name: str
    type: VariableType = VariableType.TEXT
    value: Any = ""
    description: str = ""

    def as_string(self) -> str:
        if self.type == VariableType.NUMBER:
            return str(int(self.value))
        if self.type == VariableType.BOOLEAN:
            return "True" if self.value else "False"
        return str(self.value)

    def convert_to(self, new_type: VariableType) -> None:
        """Switch to ``new_type`` and reset to its zero value."""
        if new_type != self.type:
            logger.debug("Variable %s converted from %s to %s", self.name, self.type.value, new_type.value)
        self.type = new_type
        self.value = _ZERO_VALUES[new_type]

    def set_from_string(self, raw: Optional[str]) -> None:
        """Interpret ``raw`` according to the current type."""
        text = raw if raw is not None else ""
        if self.type in (VariableType.TEXT, VariableType.LIST):
            self.value = text
        elif self.type == VariableType.NUMBER:
            number = _parse_int(text)
            if number is not None:
                self.value = number
            elif text:
                logger.warning("Text '%s' could not be converted to a number, setting to 0", text)
                self.value = 0
        elif self.type == VariableType.BOOLEAN:
            if not text:
                return
            lowered = text.strip().lower()
            if lowered in ("true", "false"):
                self.value = lowered == "true"
            else:
                self.value = lowered in _TRUE_WORDS

    # List helpers -----------------------------------------------------

    def items(self) -> List[str]:
        if self.type != VariableType.LIST:
            return []
        return [item for item in str(self.value).split(LIST_SEPARATOR) if item]

    def table(self) -> List[List[str]]:
        if self.type != VariableType.LIST:
            return []
        rows = [row for row in str(self.value).splitlines() if row]
        return [row.split(LIST_SEPARATOR) for row in rows]

    def append_item(self, item: Optional[str]) -> bool:
        if self.type != VariableType.LIST:
            return False
        if self.value:
            self.value += LIST_SEPARATOR
        self.value += item or ""
        return True

    def remove_at(self, index: int) -> bool:
        items = self.items()
        if self.type != VariableType.LIST or index < 0 or index >= len(items):
            return False
        del items[index]
        self.value = LIST_SEPARATOR.join(items)
        return True

    def clear_list(self) -> bool:
        if self.type != VariableType.LIST:
            return False
        self.value = ""
        return True

    def append_table_row(self, row: Optional[str]) -> bool:
        if self.type != VariableType.LIST:
            return False
        if self.value:
            self.value += "\n"
        self.value += row or ""
        return True

    def toggle(self) -> bool:
        if self.type != VariableType.BOOLEAN:
            return False
        self.value = not self.value
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "value": self.value,
            "description": self.description,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Variable":
        try:
            var_type = VariableType(str(data.get("type", VariableType.TEXT.value)).lower())
        except ValueError:
            var_type = VariableType.TEXT
        variable = Variable(name=str(data.get("name", "")), type=var_type,
                            value=_ZERO_VALUES[var_type],
                            description=str(data.get("description", "") or ""))
        raw = data.get("value")
        if isinstance(raw, bool) and var_type == VariableType.BOOLEAN:
            variable.value = raw
        elif isinstance(raw, int) and not isinstance(raw, bool) and var_type == VariableType.NUMBER:
            variable.value = raw
        elif raw is not None:
            variable.set_from_string(str(raw))
        return variable


class VariableStore:
    """Name → variable mapping owned by exactly one sequence.

    Mutated only from the executor thread; readers that need a stable view
    should use :meth:`snapshot`.
    """

    def __init__(self, variables: Optional[List[Variable]] = None) -> None:
        self._vars: Dict[str, Variable] = {}
        for variable in variables or []:
            self._vars[variable.name] = variable

    def __len__(self) -> int:
        return len(self._vars)

    def __iter__(self) -> Iterator[Variable]:
        return iter(list(self._vars.values()))

    def __contains__(self, name: object) -> bool:
        return name in self._vars

    def find(self, name: str) -> Optional[Variable]:
        return self._vars.get(name)

    def get_string(self, name: str, default: str = "") -> str:
        variable = self.find(name)
        return variable.as_string() if variable else default

    def set(self, name: str, value: Optional[str], type_hint: Optional[VariableType] = None) -> Variable:
        """Create or overwrite ``name``.

        Without ``type_hint`` the type is inferred from ``value``.
        """
        text = value if value is not None else ""
        target_type = type_hint or infer_type(text)
        variable = self._vars.get(name)
        if variable is None:
            variable = Variable(name=name, type=target_type, value=_ZERO_VALUES[target_type])
            self._vars[name] = variable
        elif variable.type != target_type:
            variable.convert_to(target_type)
        variable.set_from_string(text)
        return variable

    def increment(self, name: str, delta: int) -> bool:
        variable = self._vars.get(name)
        if variable is None or variable.type != VariableType.NUMBER:
            return False
        variable.value += delta
        return True

    def increment_or_create(self, name: str, delta: int) -> Variable:
        """Increment, or fall back to creating/converting a number variable."""
        if self.increment(name, delta):
            return self._vars[name]
        variable = self._vars.get(name)
        if variable is None:
            variable = Variable(name=name, type=VariableType.NUMBER, value=delta)
            self._vars[name] = variable
            logger.info("New number variable %s created with value %s", name, delta)
        else:
            variable.convert_to(VariableType.NUMBER)
            variable.value = delta
            logger.info("Variable %s converted to number variable and set to %s", name, delta)
        return variable

    def append_text(self, name: str, text: Optional[str]) -> Variable:
        suffix = text or ""
        variable = self._vars.get(name)
        if variable is None:
            return self.set(name, suffix, VariableType.TEXT)
        if variable.type != VariableType.TEXT:
            current = variable.as_string()
            variable.convert_to(VariableType.TEXT)
            variable.value = current
        variable.value += suffix
        return variable

    def clear_value(self, name: str) -> Variable:
        variable = self._vars.get(name)
        if variable is None:
            return self.set(name, "", VariableType.TEXT)
        variable.value = _ZERO_VALUES[variable.type]
        return variable

    def _list_variable(self, name: str) -> Variable:
        variable = self._vars.get(name)
        if variable is None:
            variable = Variable(name=name, type=VariableType.LIST, value="")
            self._vars[name] = variable
        elif variable.type != VariableType.LIST:
            variable.convert_to(VariableType.LIST)
        return variable

    def append_item(self, name: str, item: Optional[str]) -> Variable:
        variable = self._list_variable(name)
        variable.append_item(item)
        return variable

    def append_table_row(self, name: str, row: Optional[str]) -> Variable:
        variable = self._list_variable(name)
        variable.append_table_row(row)
        return variable

    def remove_at(self, name: str, index: int) -> bool:
        variable = self._vars.get(name)
        return bool(variable and variable.remove_at(index))

    def clear_list(self, name: str) -> Variable:
        variable = self._list_variable(name)
        variable.clear_list()
        return variable

    def toggle(self, name: str) -> Variable:
        variable = self._vars.get(name)
        if variable is None:
            variable = self.set(name, "false", VariableType.BOOLEAN)
        elif variable.type != VariableType.BOOLEAN:
            variable.convert_to(VariableType.BOOLEAN)
        variable.toggle()
        return variable

    def remove(self, name: str) -> bool:
        return self._vars.pop(name, None) is not None

    def snapshot(self) -> Dict[str, str]:
        return {name: variable.as_string() for name, variable in self._vars.items()}

    def copy(self) -> "VariableStore":
        return VariableStore([copy.deepcopy(variable) for variable in self._vars.values()])

    def to_list(self) -> List[Dict[str, Any]]:
        return [variable.to_dict() for variable in self._vars.values()]

    @staticmethod
    def from_list(data: Any) -> "VariableStore":
        variables: List[Variable] = []
        if isinstance(data, list):
            for raw in data:
                if isinstance(raw, dict) and raw.get("name"):
                    variables.append(Variable.from_dict(raw))
        return VariableStore(variables)

    def __repr__(self) -> str:
        return f"VariableStore({self.snapshot()!r})"
