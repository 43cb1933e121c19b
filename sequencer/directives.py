"""
Interpretation of a parsed JSON payload.

Recognised keys, checked in this order:
- ``sequenceName`` (+ optional flat ``variables`` map): run another sequence,
  then keep checking the same document
- ``clickAction`` ``{"x": int, "y": int, "type": "leftClick"}``: click at
  the point shifted by the action's offset, then stop
- ``waitTime`` (int, ms): cancellable wait, then stop
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from .actions import JsonAction
from .backends import InputInjector, SequenceLookup
from .context import RunContext
from .errors import ActionError, Cancelled, InjectionFailed, MalformedDirective, SequenceNotFound

logger = logging.getLogger(__name__)

CLICK_TYPES = ("leftClick", "rightClick", "middleClick", "doubleClick")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


class JsonDirectiveInterpreter:
    def __init__(self, injector: InputInjector, lookup: Optional[SequenceLookup] = None):
        self.injector = injector
        self.lookup = lookup

    def apply(self, document: Any, action: JsonAction, ctx: RunContext) -> None:
        """Run every directive found in ``document``.

        Raises:
            SequenceNotFound: the named sequence did not run and the action is not tolerant.
            MalformedDirective: a directive carries invalid data and the action is not tolerant.
            InjectionFailed: the input backend failed.
        """
        if not isinstance(document, dict):
            self._malformed(action, ctx, f"JSON root must be an object, got {type(document).__name__}")
            return

        found = False
        if "sequenceName" in document:
            found = True
            self._run_sequence(document, action, ctx)

        if "clickAction" in document:
            found = True
            if self._click(document["clickAction"], action, ctx):
                return

        if "waitTime" in document:
            found = True
            wait_time = document["waitTime"]
            if _is_int(wait_time) and wait_time >= 0:
                ctx.log(f"Waiting {wait_time} ms")
                ctx.sleep_ms(wait_time)
                return
            self._malformed(action, ctx, f"waitTime must be a non-negative integer, got {wait_time!r}")

        if not found:
            ctx.log("No valid actions found in JSON", logging.WARNING)

    def _malformed(self, action: JsonAction, ctx: RunContext, message: str) -> None:
        if action.continue_on_error:
            ctx.log(f"Ignoring malformed JSON directive: {message}", logging.WARNING)
            return
        raise MalformedDirective(message, action)

    def _run_sequence(self, document: Dict[str, Any], action: JsonAction, ctx: RunContext) -> None:
        name = document["sequenceName"]
        if not isinstance(name, str) or not name.strip():
            self._malformed(action, ctx, f"sequenceName must be a non-empty string, got {name!r}")
            return
        raw_vars = document.get("variables")
        if raw_vars is not None and not isinstance(raw_vars, dict):
            self._malformed(action, ctx, "variables must be a flat object")
            return
        variables = {str(k): _stringify(v) for k, v in (raw_vars or {}).items()}

        ok = False
        if self.lookup is None:
            ctx.log("No sequence lookup available", logging.WARNING)
        else:
            try:
                if variables:
                    ctx.log(f"Running sequence '{name}' with {len(variables)} variables")
                    ok = self.lookup.run_with_variables(name, variables)
                else:
                    ctx.log(f"Running sequence '{name}'")
                    ok = self.lookup.run_by_name(name)
            except (ActionError, Cancelled):
                raise
            except Exception as e:
                raise InjectionFailed(f"Sequence '{name}' failed: {e}", action) from e
        if ok:
            return
        if action.continue_on_error:
            ctx.log(f"Sequence '{name}' could not be found or executed", logging.WARNING)
            return
        raise SequenceNotFound(name, action)

    def _click(self, click: Any, action: JsonAction, ctx: RunContext) -> bool:
        if not isinstance(click, dict) or not _is_int(click.get("x")) or not _is_int(click.get("y")):
            self._malformed(action, ctx, f"clickAction needs integer x and y, got {click!r}")
            return False
        click_type = click.get("type", "leftClick")
        if click_type not in CLICK_TYPES:
            self._malformed(action, ctx, f"Unknown click type {click_type!r}")
            return False
        x = click["x"] + action.offset_x
        y = click["y"] + action.offset_y
        ctx.log(f"JSON click at ({x}, {y}) [{click_type}]")
        try:
            if click_type == "doubleClick":
                self.injector.double_click(x, y)
            else:
                self.injector.click(x, y, click_type[:-len("Click")])
        except ActionError:
            raise
        except Exception as e:
            raise InjectionFailed(f"Click at ({x}, {y}) failed: {e}", action) from e
        return True


def create_sequence_json(sequence_name: str, variables: Optional[Dict[str, str]] = None) -> str:
    payload: Dict[str, Any] = {"sequenceName": sequence_name}
    if variables:
        payload["variables"] = dict(variables)
    return json.dumps(payload, indent=2)


def create_click_json(x: int, y: int, click_type: str = "leftClick") -> str:
    return json.dumps({"clickAction": {"x": x, "y": y, "type": click_type}}, indent=2)


def create_wait_json(milliseconds: int) -> str:
    return json.dumps({"waitTime": milliseconds}, indent=2)
