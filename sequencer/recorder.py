"""
Input recording: turns raw key and mouse events into actions.

The OS hooks (see ``key_hook.py``) only push :class:`KeyEvent` and
:class:`MouseEvent` items into a bounded queue. :class:`KeyboardRecorder`
consumes that queue on a single thread and feeds :class:`KeyCaptureAggregator`,
which

- buffers runs of printable keys into one ``TYPE_TEXT`` action, flushed after
  a quiet interval, before any other emission, and on stop
- emits a ``KEY_COMBINATION`` as soon as a key goes down while Ctrl or Alt is
  held (Shift alone only changes the case of buffered text)
- emits a ``KEY_PRESS`` for any other non-modifier key
- emits a ``MouseAction`` for every button press or wheel step

Key-up events only release modifiers; they never emit. A buffer whose quiet
interval ran out is flushed by the worker's idle poll or by the next key-down
or mouse event, stamped at its deadline.

Each emitted action's ``delay_before`` is the gap since the previous emission.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Union

from .actions import (
    Action,
    KeyboardAction,
    KeyboardActionType,
    MouseAction,
    MouseActionType,
    apply_display,
)
from .keys import (
    create_combination,
    is_alt,
    is_ctrl,
    is_modifier,
    is_printable,
    is_shift,
    key_to_char,
    normalize_key,
)

logger = logging.getLogger(__name__)

DEFAULT_QUIET_INTERVAL_MS = 750


@dataclass(frozen=True)
class KeyEvent:
    key: str
    down: bool
    timestamp: float  # seconds on the aggregator's clock


@dataclass(frozen=True)
class MouseEvent:
    """A button press (``wheel_delta == 0``) or a wheel step at screen position x, y."""

    x: int
    y: int
    button: str  # left, right or middle; ignored for wheel steps
    timestamp: float
    wheel_delta: int = 0  # 120 per notch, positive is away from the user


_MOUSE_BUTTONS = {
    "left": MouseActionType.LEFT_CLICK,
    "right": MouseActionType.RIGHT_CLICK,
    "middle": MouseActionType.MIDDLE_CLICK,
}


class CaptureState(Enum):
    IDLE = "idle"
    BUFFERING_TEXT = "buffering_text"
    AWAITING_COMBO_RELEASE = "awaiting_combo_release"


class KeyCaptureAggregator:
    def __init__(
        self,
        on_action: Optional[Callable[[Action], None]] = None,
        quiet_interval_ms: int = DEFAULT_QUIET_INTERVAL_MS,
        layout: str = "de",
        clock: Callable[[], float] = time.monotonic,
        char_delay: int = 10,
    ):
        self.on_action = on_action
        self.quiet_interval = max(0, quiet_interval_ms) / 1000.0
        self.layout = layout
        self.char_delay = char_delay
        self._clock = clock
        self.recorded: List[Action] = []
        self._recording = False
        self._reset(0.0)

    def _reset(self, now: float) -> None:
        self._ctrl = False
        self._alt = False
        self._shift = False
        self._buffer: List[str] = []
        self._last_key_time = now
        self._last_action_time = now

    @property
    def recording(self) -> bool:
        return self._recording

    @property
    def state(self) -> CaptureState:
        if self._buffer:
            return CaptureState.BUFFERING_TEXT
        if self._ctrl or self._alt:
            return CaptureState.AWAITING_COMBO_RELEASE
        return CaptureState.IDLE

    @property
    def pending_text(self) -> str:
        return "".join(self._buffer)

    def start_recording(self, now: Optional[float] = None) -> None:
        """Reset the whole capture state and begin accepting events."""
        self._reset(self._clock() if now is None else now)
        self.recorded = []
        self._recording = True
        logger.info("Recording started")

    def stop_recording(self, now: Optional[float] = None) -> List[Action]:
        """Force-flush pending text and stop accepting events."""
        if not self._recording:
            return []
        emitted = self.flush_text(self._clock() if now is None else now)
        self._recording = False
        self._ctrl = self._alt = self._shift = False
        logger.info("Recording stopped (%d actions)", len(self.recorded))
        return emitted

    def handle(self, event: KeyEvent) -> List[Action]:
        """Process one key event and return the actions it produced."""
        if not self._recording:
            return []
        key = normalize_key(event.key)
        now = event.timestamp
        if not event.down:
            self._set_modifier(key, False)
            return []

        # A buffer whose quiet interval already ran out belongs to the timer, not to this key.
        emitted = self.poll(now)
        if is_modifier(key):
            self._set_modifier(key, True)
            return emitted

        if self._ctrl or self._alt:
            emitted.extend(self.flush_text(now))
            keys = create_combination(self._ctrl, self._alt, self._shift, key)
            emitted.append(self._emit(KeyboardAction(action_kind=KeyboardActionType.KEY_COMBINATION, keys=keys), now))
        elif is_printable(key):
            char = key_to_char(key, self._shift, self.layout)
            self._buffer.append(char or "?")
            self._last_key_time = now
        else:
            emitted.extend(self.flush_text(now))
            emitted.append(self._emit(KeyboardAction(action_kind=KeyboardActionType.KEY_PRESS, keys=[key]), now))
        return emitted

    def handle_mouse(self, event: MouseEvent) -> List[Action]:
        """Record a click or wheel step, after any text typed before it."""
        if not self._recording:
            return []
        now = event.timestamp
        emitted = self.poll(now)
        emitted.extend(self.flush_text(now))
        where = f"({event.x}, {event.y})"
        if event.wheel_delta:
            direction = "up" if event.wheel_delta > 0 else "down"
            action = MouseAction(
                x=event.x, y=event.y, wheel_delta=event.wheel_delta, click_kind=MouseActionType.MOUSE_WHEEL,
                name=f"Mouse wheel at {where}",
                description=f"Mouse wheel {direction} at position {where}, Delta: {event.wheel_delta}",
            )
        else:
            click_kind = _MOUSE_BUTTONS.get(event.button, MouseActionType.LEFT_CLICK)
            action = MouseAction(
                x=event.x, y=event.y, click_kind=click_kind,
                name=f"Click at {where}", description=f"{event.button.capitalize()} click at position {where}",
            )
        emitted.append(self._emit(action, now))
        return emitted

    def poll(self, now: Optional[float] = None) -> List[Action]:
        """Flush the text buffer if no key went down for the quiet interval."""
        if not self._buffer:
            return []
        now = self._clock() if now is None else now
        deadline = self._last_key_time + self.quiet_interval
        if now < deadline:
            return []
        return self.flush_text(deadline)

    def flush_text(self, now: Optional[float] = None) -> List[Action]:
        if not self._buffer:
            return []
        text = "".join(self._buffer)
        self._buffer = []
        action = KeyboardAction(action_kind=KeyboardActionType.TYPE_TEXT, text=text, char_delay=self.char_delay)
        return [self._emit(action, self._clock() if now is None else now)]

    def _set_modifier(self, key: str, pressed: bool) -> None:
        if is_ctrl(key):
            self._ctrl = pressed
        elif is_alt(key):
            self._alt = pressed
        elif is_shift(key):
            self._shift = pressed

    def _emit(self, action: Action, now: float) -> Action:
        action.delay_before = max(0, int(round((now - self._last_action_time) * 1000)))
        self._last_action_time = now
        apply_display(action)
        self.recorded.append(action)
        logger.debug("Recorded %s (delay %d ms)", action.describe(), action.delay_before)
        if self.on_action:
            self.on_action(action)
        return action


_STOP = object()


class KeyboardRecorder:
    """Single consumer of the input event queue."""

    def __init__(
        self,
        aggregator: KeyCaptureAggregator,
        events: "Optional[queue.Queue]" = None,
        maxsize: int = 1024,
        poll_interval: float = 0.05,
    ):
        self.aggregator = aggregator
        self.events: queue.Queue = events if events is not None else queue.Queue(maxsize=maxsize)
        self._poll_interval = poll_interval
        self._thread: Optional[threading.Thread] = None

    def push(self, event: Union[KeyEvent, MouseEvent]) -> bool:
        """Producer side, safe to call from the hook thread; drops events when full."""
        try:
            self.events.put_nowait(event)
            return True
        except queue.Full:
            logger.warning("Key event queue full, dropping %s", event)
            return False

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self.aggregator.start_recording()
        self._thread = threading.Thread(target=self._worker, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> List[Action]:
        """Drain queued events, force-flush the buffer and return everything recorded."""
        if self._thread and self._thread.is_alive():
            self.events.put(_STOP, timeout=timeout)
            self._thread.join(timeout)
        self.aggregator.stop_recording()
        return list(self.aggregator.recorded)

    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def _worker(self) -> None:
        while True:
            try:
                item = self.events.get(timeout=self._poll_interval)
            except queue.Empty:
                self.aggregator.poll()
                continue
            if item is _STOP:
                break
            try:
                if isinstance(item, MouseEvent):
                    self.aggregator.handle_mouse(item)
                else:
                    self.aggregator.handle(item)
            except Exception:  # pragma: no cover - keep recording after a bad event
                logger.exception("Failed to process input event %s", item)
        self.aggregator.stop_recording()
