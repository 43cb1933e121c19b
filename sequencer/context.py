"""
Runtime context passed through the executor while a sequence runs.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from .errors import Cancelled
from .variables import VariableStore

logger = logging.getLogger(__name__)

# Upper bound for a single sleep slice; cancellation latency never exceeds it.
SLEEP_SLICE_MS = 100


class CancellationToken:
    """Cooperative cancel flag shared between the caller and the worker."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled("Execution was cancelled")

    def wait(self, seconds: float) -> bool:
        """Block up to ``seconds``; True when cancellation arrived meanwhile."""
        return self._event.wait(seconds)


class RunContext:
    """Small helper object passed to actions at runtime."""

    def __init__(
        self,
        variables: Optional[VariableStore] = None,
        token: Optional[CancellationToken] = None,
        log: Optional[Callable[[str], None]] = None,
        sleep_hook: Optional[Callable[[float], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.variables = variables if variables is not None else VariableStore()
        self.token = token or CancellationToken()
        self._log = log
        self._sleep = sleep_hook
        self._clock = clock

    def log(self, msg: str, level: int = logging.INFO) -> None:
        logger.log(level, msg)
        if self._log:
            try:
                self._log(msg)
            except Exception:  # pragma: no cover - listener failures must not stop a run
                logger.debug("Log listener failed", exc_info=True)

    def check_cancelled(self) -> None:
        self.token.raise_if_cancelled()

    def sleep_ms(self, ms: int) -> None:
        """Sleep in slices of at most 100 ms, raising ``Cancelled`` as soon as it is observed."""
        self.check_cancelled()
        remaining = max(int(ms or 0), 0) / 1000.0
        deadline = self._clock() + remaining
        while remaining > 0:
            chunk = min(remaining, SLEEP_SLICE_MS / 1000.0)
            if self._sleep:
                self._sleep(chunk)
            elif self.token.wait(chunk):
                break
            self.check_cancelled()
            remaining = deadline - self._clock() if not self._sleep else remaining - chunk
        self.check_cancelled()

    def sleep(self, seconds: float) -> None:
        self.sleep_ms(int(seconds * 1000))

    def child(self, variables: VariableStore) -> "RunContext":
        """Context for a nested sequence: same token and log sink, other variables."""
        return RunContext(variables, self.token, self._log, self._sleep, self._clock)
