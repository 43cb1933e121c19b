"""
Sequence executor and the worker-thread engine that runs it.

The executor interprets a list of actions in order: it applies each action's
``delay_before``, dispatches on ``kind`` and enforces the failure policy.
``AutomationEngine`` runs one sequence on a daemon thread with cancel support.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple

from .actions import (
    DEFAULT_COPY_BUTTON_SCRIPT,
    Action,
    ActionKind,
    BrowserAction,
    BrowserOperation,
    ClipboardAction,
    Condition,
    ConditionSource,
    FileAction,
    FileDestination,
    FileSource,
    IfAction,
    JsonAction,
    KeyboardAction,
    KeyboardActionType,
    LoopAction,
    MouseAction,
    MouseActionType,
    VariableAction,
    VariableOperation,
    WaitAction,
    apply_display,
)
from .backends import BrowserBridge, ClipboardAccess, InputInjector, SequenceLookup
from .context import CancellationToken, RunContext
from .directives import JsonDirectiveInterpreter
from .errors import ActionError, Cancelled, InjectionFailed, NoJsonFound, RetriesExhausted
from .json_extractor import JsonTextExtractor
from .variables import VariableStore, VariableType

if TYPE_CHECKING:  # pragma: no cover
    from .script_model import Sequence

logger = logging.getLogger(__name__)

KEY_PRESS_GAP_MS = 30

# Script template for FIND_ELEMENT_AND_CLICK; the selector is inserted as a JSON string.
_FIND_ELEMENT_SCRIPT = """(() => {
  const el = document.querySelector(%s);
  if (!el) { return null; }
  const rect = el.getBoundingClientRect();
  return { x: Math.round(window.screenX + rect.left + rect.width / 2),
           y: Math.round(window.screenY + rect.top + rect.height / 2) };
})()"""


def _coordinates(result: Any) -> Optional[Tuple[int, int]]:
    if isinstance(result, dict) and "x" in result and "y" in result:
        try:
            return int(result["x"]), int(result["y"])
        except (TypeError, ValueError):
            return None
    if isinstance(result, (list, tuple)) and len(result) == 2:
        try:
            return int(result[0]), int(result[1])
        except (TypeError, ValueError):
            return None
    return None


class SequenceExecutor:
    """Runs actions against the injected collaborators.

    Args:
        injector: mouse/keyboard backend.
        clipboard: clipboard backend.
        lookup: resolves ``sequenceName`` directives; usually set by
            :meth:`sequencer.script_model.SequenceLibrary.bind`.
        browser: optional bridge for browser actions.
        extractor: JSON extractor (default :class:`JsonTextExtractor`).
        sleep: optional sleep hook used for every slice instead of waiting on
            the cancellation token (tests).
    """

    def __init__(
        self,
        injector: InputInjector,
        clipboard: ClipboardAccess,
        lookup: Optional[SequenceLookup] = None,
        browser: Optional[BrowserBridge] = None,
        extractor: Optional[JsonTextExtractor] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.injector = injector
        self.clipboard = clipboard
        self.browser = browser
        self.extractor = extractor or JsonTextExtractor()
        self.directives = JsonDirectiveInterpreter(injector, lookup)
        self._sleep = sleep
        self._frames: List[Tuple[str, RunContext]] = []
        self._handlers: Dict[ActionKind, Callable[[Any, RunContext], None]] = {
            ActionKind.MOUSE: self._run_mouse,
            ActionKind.KEYBOARD: self._run_keyboard,
            ActionKind.WAIT: self._run_wait,
            ActionKind.VARIABLE: self._run_variable,
            ActionKind.CLIPBOARD: self._run_clipboard,
            ActionKind.JSON: self._run_json,
            ActionKind.BROWSER: self._run_browser,
            ActionKind.LOOP: self._run_loop,
            ActionKind.IF: self._run_if,
            ActionKind.FILE: self._run_file,
        }

    @property
    def lookup(self) -> Optional[SequenceLookup]:
        return self.directives.lookup

    @lookup.setter
    def lookup(self, value: Optional[SequenceLookup]) -> None:
        self.directives.lookup = value

    @property
    def call_stack(self) -> List[str]:
        """Names of the sequences currently running, outermost first."""
        return [name for name, _ctx in self._frames]

    def make_context(
        self,
        variables: Optional[VariableStore] = None,
        token: Optional[CancellationToken] = None,
        log: Optional[Callable[[str], None]] = None,
    ) -> RunContext:
        return RunContext(variables, token, log, self._sleep)

    # -- sequences -------------------------------------------------------

    def run_sequence(
        self,
        sequence: "Sequence",
        token: Optional[CancellationToken] = None,
        log: Optional[Callable[[str], None]] = None,
    ) -> RunContext:
        """Run ``sequence`` with its own variables.

        Raises:
            Cancelled: the token was cancelled.
            ActionError: an action failed and did not tolerate errors.
        """
        ctx = self.make_context(sequence.variables, token, log)
        ctx.log(f"Starting sequence '{sequence.name}' ({len(sequence.actions)} actions)")
        self._frames.append((sequence.name, ctx))
        try:
            self.run_actions(sequence.actions, ctx)
        finally:
            self._frames.pop()
        ctx.log(f"Sequence '{sequence.name}' completed")
        return ctx

    def run_nested(self, sequence: "Sequence") -> None:
        """Run ``sequence`` from inside a running one (same token and log sink)."""
        if self._frames:
            ctx = self._frames[-1][1].child(sequence.variables)
        else:
            ctx = self.make_context(sequence.variables)
        self._frames.append((sequence.name, ctx))
        try:
            ctx.log(f"Running nested sequence '{sequence.name}'")
            self.run_actions(sequence.actions, ctx)
        finally:
            self._frames.pop()

    def run_actions(self, actions: List[Action], ctx: RunContext) -> None:
        for action in actions:
            ctx.check_cancelled()
            if not action.enabled:
                logger.debug("Skipping disabled action '%s'", action.name)
                continue
            if action.delay_before > 0:
                ctx.sleep_ms(action.delay_before)
            try:
                self.execute(action, ctx)
            except ActionError as e:
                if e.action is None:
                    e.action = action
                if action.continue_on_error:
                    ctx.log(f"Error in '{action.name or action.describe()}' ignored: {e}", logging.WARNING)
                    continue
                ctx.log(f"Error in '{action.name or action.describe()}': {e}", logging.ERROR)
                raise

    def execute(self, action: Action, ctx: RunContext) -> None:
        """Dispatch one action; collaborator exceptions surface as ``InjectionFailed``."""
        handler = self._handlers.get(action.kind)
        if handler is None:
            raise ActionError(f"No handler for action kind {action.kind}", action)
        logger.debug("Executing %s", action.describe())
        try:
            handler(action, ctx)
        except (ActionError, Cancelled):
            raise
        except Exception as e:
            raise InjectionFailed(f"{action.describe()}: {e}", action) from e

    # -- retry sub-protocol ---------------------------------------------

    def run_with_retries(self, action: Any, ctx: RunContext, label: str, attempt: Callable[[], None]) -> bool:
        """Call ``attempt`` up to ``retry_count + 1`` times.

        Returns False when every attempt failed and the action tolerates
        errors.

        Raises:
            Cancelled: cancellation observed at any point, including backoff.
            RetriesExhausted: every attempt failed and the action is not tolerant.
        """
        attempts = max(0, int(action.retry_count)) + 1
        last_error: Optional[BaseException] = None
        for number in range(1, attempts + 1):
            ctx.check_cancelled()
            try:
                attempt()
                return True
            except Cancelled:
                raise
            except Exception as e:
                ctx.check_cancelled()
                last_error = e
                ctx.log(f"{label} attempt {number}/{attempts} failed: {e}", logging.WARNING)
                if number < attempts:
                    ctx.sleep_ms(action.retry_wait_time)
        if action.continue_on_error:
            ctx.log(f"{label} failed after {attempts} attempts, continuing: {last_error}", logging.WARNING)
            return False
        raise RetriesExhausted(label, attempts, last_error, action) from last_error

    # -- handlers --------------------------------------------------------

    def _run_mouse(self, action: MouseAction, ctx: RunContext) -> None:
        kind, x, y = action.click_kind, action.x, action.y
        ctx.log(f"Mouse: {action.describe()}")
        if kind == MouseActionType.LEFT_CLICK:
            self.injector.click(x, y, "left")
        elif kind == MouseActionType.RIGHT_CLICK:
            self.injector.click(x, y, "right")
        elif kind == MouseActionType.MIDDLE_CLICK:
            self.injector.click(x, y, "middle")
        elif kind == MouseActionType.DOUBLE_CLICK:
            self.injector.double_click(x, y)
        elif kind == MouseActionType.MOUSE_DOWN:
            self.injector.mouse_down(x, y)
        elif kind == MouseActionType.MOUSE_UP:
            self.injector.mouse_up(x, y)
        elif kind == MouseActionType.MOUSE_MOVE:
            self.injector.move_to(x, y)
        else:
            self.injector.scroll(x, y, action.wheel_delta)

    def _run_keyboard(self, action: KeyboardAction, ctx: RunContext) -> None:
        ctx.log(f"Keyboard: {action.describe()}")
        if action.action_kind == KeyboardActionType.TYPE_TEXT:
            if action.use_clipboard:
                self.injector.press_combination(["LeftCtrl", "V"])
            elif action.text:
                self.injector.type_text(action.text, action.char_delay)
            else:
                ctx.log("No text defined to type", logging.WARNING)
            return
        if not action.keys:
            ctx.log("No keys defined", logging.WARNING)
            return
        if action.action_kind == KeyboardActionType.KEY_PRESS:
            for index, key in enumerate(action.keys):
                if index:
                    ctx.sleep_ms(KEY_PRESS_GAP_MS)
                self.injector.press_key(key)
        else:
            self.injector.press_combination(list(action.keys))

    def _run_wait(self, action: WaitAction, ctx: RunContext) -> None:
        ctx.log(f"Waiting {action.wait_time} ms")
        ctx.sleep_ms(action.wait_time)

    def _run_variable(self, action: VariableAction, ctx: RunContext) -> None:
        if not action.variable_name:
            action.variable_name = "var" + _uuid_digits()
            apply_display(action)
            ctx.log(f"Variable name was empty, using '{action.variable_name}'")
        store, name, op = ctx.variables, action.variable_name, action.operation
        if op == VariableOperation.SET_VALUE:
            store.set(name, action.value or "")
        elif op == VariableOperation.INCREMENT:
            store.increment_or_create(name, action.increment_value)
        elif op == VariableOperation.DECREMENT:
            store.increment_or_create(name, -action.increment_value)
        elif op == VariableOperation.APPEND_TEXT:
            store.append_text(name, action.value)
        elif op == VariableOperation.CLEAR_VALUE:
            store.clear_value(name)
        elif op == VariableOperation.ADD_LIST_ITEM:
            store.append_item(name, action.value)
        elif op == VariableOperation.REMOVE_LIST_ITEM:
            if not store.remove_at(name, action.list_index):
                ctx.log(f"Cannot remove item {action.list_index} from '{name}'", logging.WARNING)
        elif op == VariableOperation.CLEAR_LIST:
            store.clear_list(name)
        elif op == VariableOperation.ADD_TABLE_ROW:
            store.append_table_row(name, action.value)
        else:
            store.toggle(name)
        ctx.log(f"Variable '{name}' is now '{store.get_string(name)}'")

    def _run_clipboard(self, action: ClipboardAction, ctx: RunContext) -> None:
        def attempt() -> None:
            text = action.text or ""
            if action.use_variable and action.variable_name:
                variable = ctx.variables.find(action.variable_name)
                if variable is None:
                    ctx.log(f"Variable '{action.variable_name}' not found", logging.WARNING)
                text = variable.as_string() if variable else ""
            if action.append:
                text = (self.clipboard.read_text() or "") + text
            # an empty clipboard write is rejected by some platforms
            self.clipboard.write_text(text or " ")

        self.run_with_retries(action, ctx, "Clipboard action", attempt)

    def _run_json(self, action: JsonAction, ctx: RunContext) -> None:
        def attempt() -> None:
            source = self.clipboard.read_text() if action.check_clipboard else action.json_template
            if not source:
                where = "Clipboard" if action.check_clipboard else "JSON template"
                raise NoJsonFound(f"{where} is empty", action)
            extracted = self.extractor.extract(source)
            self.directives.apply(extracted.document, action, ctx)

        self.run_with_retries(action, ctx, "JSON action", attempt)

    def _run_browser(self, action: BrowserAction, ctx: RunContext) -> None:
        op = action.operation
        if op == BrowserOperation.GET_COORDINATES and action.use_last_results:
            ctx.log(f"Clicking stored coordinates ({action.x_result}, {action.y_result})")
            self.injector.click(action.x_result, action.y_result, "left")
            return
        if self.browser is None:
            ctx.log(f"No browser bridge configured, skipping '{action.describe()}'", logging.WARNING)
            return
        if op == BrowserOperation.FIND_ELEMENT_AND_CLICK:
            if not action.selector:
                raise ActionError("Browser action needs a selector", action)
            point = _coordinates(self.browser.evaluate(_FIND_ELEMENT_SCRIPT % json.dumps(action.selector)))
            if point is None:
                raise ActionError(f"Element not found: {action.selector}", action)
            self._store_coordinates(action, point)
            self.injector.click(point[0], point[1], "left")
            return
        result = self.browser.evaluate(action.javascript or DEFAULT_COPY_BUTTON_SCRIPT)
        point = _coordinates(result)
        if point is not None:
            self._store_coordinates(action, point)
        elif op == BrowserOperation.GET_COORDINATES:
            raise ActionError(f"Script returned no coordinates: {result!r}", action)
        else:
            ctx.log(f"Script result: {result!r}")

    @staticmethod
    def _store_coordinates(action: BrowserAction, point: Tuple[int, int]) -> None:
        action.x_result, action.y_result = point
        apply_display(action)

    def evaluate(self, condition: Condition, ctx: RunContext) -> bool:
        left = self._resolve(condition.left_source, condition.left_variable, condition.left_text, ctx)
        right = self._resolve(condition.right_source, condition.right_variable, condition.right_text, ctx)
        result = condition.compare(left, right)
        ctx.log(f"Comparing '{left}' {condition.operator.value} '{right}': {result}")
        return result

    def _resolve(self, source: ConditionSource, variable: str, text: str, ctx: RunContext) -> str:
        if source == ConditionSource.VARIABLE:
            found = ctx.variables.find(variable)
            if found is None:
                ctx.log(f"Variable '{variable}' not found, comparing as empty", logging.WARNING)
                return ""
            return found.as_string()
        if source == ConditionSource.CLIPBOARD:
            return self.clipboard.read_text() or ""
        return text or ""

    def _run_loop(self, action: LoopAction, ctx: RunContext) -> None:
        items: Optional[List[str]] = None
        if action.list_variable_name:
            variable = ctx.variables.find(action.list_variable_name)
            items = variable.items() if variable is not None else []
        item_name = action.item_variable_name or "item"
        iteration = 0
        while iteration < action.max_iterations:
            ctx.check_cancelled()
            if items is not None:
                if iteration >= len(items):
                    break
                ctx.variables.set(item_name, items[iteration])
            if action.use_condition and self.evaluate(action.condition, ctx):
                ctx.log("Loop condition met, ending loop")
                break
            ctx.log(f"Loop iteration {iteration + 1}/{action.max_iterations}")
            self.run_actions(action.actions, ctx)
            iteration += 1

    def _run_if(self, action: IfAction, ctx: RunContext) -> None:
        if self.evaluate(action.condition, ctx):
            ctx.log(f"Condition true, running THEN branch ({len(action.then_actions)} actions)")
            self.run_actions(action.then_actions, ctx)
        elif action.use_else_branch:
            ctx.log(f"Condition false, running ELSE branch ({len(action.else_actions)} actions)")
            self.run_actions(action.else_actions, ctx)

    def _run_file(self, action: FileAction, ctx: RunContext) -> None:
        if action.source == FileSource.TEXT:
            path = action.file_path
        elif action.source == FileSource.CLIPBOARD:
            path = (self.clipboard.read_text() or "").strip()
        else:
            path = ctx.variables.get_string(action.variable_name).strip()
        if not path:
            ctx.log(f"File action: empty file path from {action.source.value}", logging.ERROR)
            return
        try:
            with open(path, "r", encoding=action.encoding.codec) as fh:
                content = fh.read()
        except (OSError, UnicodeDecodeError) as e:
            if action.handle_io_errors:
                ctx.log(f"File action error (handled): {e}", logging.ERROR)
                return
            raise ActionError(f"Could not read '{path}': {e}", action) from e
        if action.destination == FileDestination.VARIABLE:
            ctx.variables.set(action.destination_variable, content, VariableType.TEXT)
        else:
            self.clipboard.write_text(content)
        ctx.log(f"File action completed: read '{os.path.basename(path)}'")


def _uuid_digits() -> str:
    return str(uuid.uuid4().int)[-8:]


class RunOutcome(Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class AutomationEngine:
    """Executes one sequence in a worker thread."""

    def __init__(self, sequence: "Sequence", executor: SequenceExecutor):
        self._sequence = sequence
        self._executor = executor
        self._thread: Optional[threading.Thread] = None
        self._token = CancellationToken()
        self._on_log: Optional[Callable[[str], None]] = None
        self._on_done: Optional[Callable[[bool, str], None]] = None
        self.outcome: Optional[RunOutcome] = None
        self.last_error: Optional[BaseException] = None
        self.failed_action: Optional[Action] = None

    def on_log(self, cb: Callable[[str], None]) -> None:
        self._on_log = cb

    def on_done(self, cb: Callable[[bool, str], None]) -> None:
        self._on_done = cb

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._token = CancellationToken()
        self.outcome, self.last_error, self.failed_action = None, None, None
        self._thread = threading.Thread(target=self._worker, daemon=True)
        self._thread.start()

    def request_cancel(self) -> None:
        """Signal the worker to stop without waiting; safe from listener threads."""
        self._token.cancel()

    def cancel(self) -> None:
        self.request_cancel()
        if self._thread and self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)

    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker; True when it has finished."""
        if self._thread:
            self._thread.join(timeout)
        return not self.is_running()

    def _log(self, msg: str) -> None:
        if self._on_log:
            try:
                self._on_log(msg)
            except Exception:  # pragma: no cover
                logger.debug("on_log callback failed", exc_info=True)

    def _worker(self) -> None:
        try:
            self._executor.run_sequence(self._sequence, self._token, self._log)
            self.outcome = RunOutcome.COMPLETED
            self._finish(True, "Completed")
        except Cancelled:
            self.outcome = RunOutcome.CANCELLED
            self._finish(False, "Cancelled")
        except ActionError as e:
            self.outcome = RunOutcome.FAILED
            self.last_error, self.failed_action = e, e.action
            name = (e.action.name or e.action.describe()) if e.action is not None else "?"
            self._finish(False, f"Error in '{name}': {e}")
        except Exception as e:  # pragma: no cover - runtime path
            logger.exception("Unexpected error while running '%s'", self._sequence.name)
            self.outcome = RunOutcome.FAILED
            self.last_error = e
            self._finish(False, f"Error: {e}")

    def _finish(self, ok: bool, msg: str) -> None:
        if self._on_done:
            try:
                self._on_done(ok, msg)
            except Exception:  # pragma: no cover
                logger.debug("on_done callback failed", exc_info=True)
