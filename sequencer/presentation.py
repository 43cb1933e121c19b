"""
Contract between editor surfaces and the action model.

An editor never reaches into the executor; it only moves values between its
own widgets and an action through three verbs. ``FieldMapEditor`` implements
them over a plain ``dict`` so front ends (and tests) need no UI toolkit.
"""

from __future__ import annotations

import logging
from dataclasses import fields
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from .actions import Action, Condition, apply_display, coerce_field

logger = logging.getLogger(__name__)

# Managed by the model itself, never edited directly.
READ_ONLY_FIELDS = ("id",)


class ActionEditor(Protocol):
    def initialize(self, action: Action) -> None: ...

    def refresh_view_from(self, action: Action) -> None: ...

    def commit_view_into(self, action: Action) -> None: ...


def editable_fields(action: Action) -> List[str]:
    return [
        f.name for f in fields(action)
        if f.name not in READ_ONLY_FIELDS and f.name not in action._child_fields
    ]


def _view_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Condition):
        return value.to_dict()
    if isinstance(value, list):
        return list(value)
    return value


class FieldMapEditor:
    """Editor surface backed by ``self.values`` (field name -> display value)."""

    def __init__(self) -> None:
        self.action: Optional[Action] = None
        self.values: Dict[str, Any] = {}

    def initialize(self, action: Action) -> None:
        self.action = action
        self.refresh_view_from(action)

    def refresh_view_from(self, action: Action) -> None:
        self.values = {name: _view_value(getattr(action, name)) for name in editable_fields(action)}

    def commit_view_into(self, action: Action) -> None:
        """Write every edited value back, then recompute the display name.

        All values are converted before any is assigned, so a bad value leaves
        the action untouched.

        Raises:
            ActionError: a value cannot be converted to its field's type.
        """
        allowed = set(editable_fields(action))
        converted = {
            name: coerce_field(action, name, value)
            for name, value in self.values.items()
            if name in allowed
        }
        for name, value in converted.items():
            setattr(action, name, value)
        action.delay_before = max(0, action.delay_before)
        apply_display(action)
        self.refresh_view_from(action)
        logger.debug("Committed %d fields into '%s'", len(converted), action.name)

    def set(self, name: str, value: Any) -> None:
        if name not in self.values:
            raise KeyError(f"Unknown field '{name}'")
        self.values[name] = value
