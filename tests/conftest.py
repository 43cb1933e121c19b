"""In-memory collaborators shared by the test modules."""

from typing import Any, Dict, List, Optional

import pytest

from sequencer.context import CancellationToken
from sequencer.engine import SequenceExecutor


class FakeInjector:
    """Records every input call instead of touching the OS."""

    def __init__(self, fail_on: Optional[str] = None):
        self.calls: List[tuple] = []
        self.fail_on = fail_on

    def _record(self, *call):
        if self.fail_on == call[0]:
            raise RuntimeError(f"{call[0]} failed")
        self.calls.append(call)

    def click(self, x, y, button="left"):
        self._record("click", x, y, button)

    def double_click(self, x, y):
        self._record("double_click", x, y)

    def mouse_down(self, x, y, button="left"):
        self._record("mouse_down", x, y, button)

    def mouse_up(self, x, y, button="left"):
        self._record("mouse_up", x, y, button)

    def move_to(self, x, y):
        self._record("move_to", x, y)

    def scroll(self, x, y, delta):
        self._record("scroll", x, y, delta)

    def press_key(self, key):
        self._record("press_key", key)

    def press_combination(self, keys):
        self._record("press_combination", list(keys))

    def type_text(self, text, inter_char_delay_ms=10):
        self._record("type_text", text, inter_char_delay_ms)


class FakeClipboard:
    def __init__(self, text: Optional[str] = ""):
        self.text = text
        self.reads = 0
        self.writes: List[str] = []

    def read_text(self) -> Optional[str]:
        self.reads += 1
        return self.text

    def write_text(self, text: str) -> None:
        self.writes.append(text)
        self.text = text


class FailingClipboard(FakeClipboard):
    """Fails the first ``failures`` writes."""

    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures

    def write_text(self, text: str) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise RuntimeError("clipboard busy")
        super().write_text(text)


class FakeLookup:
    def __init__(self, known=("Login",)):
        self.known = set(known)
        self.calls: List[tuple] = []

    def run_by_name(self, name: str) -> bool:
        self.calls.append((name, {}))
        return name in self.known

    def run_with_variables(self, name: str, variables: Dict[str, str]) -> bool:
        self.calls.append((name, dict(variables)))
        return name in self.known


class FakeBrowser:
    def __init__(self, result: Any = None):
        self.result = result
        self.scripts: List[str] = []

    def evaluate(self, script: str) -> Any:
        self.scripts.append(script)
        return self.result


class RecordingSleep:
    """Sleep hook that only records the requested slices."""

    def __init__(self, token: Optional[CancellationToken] = None, cancel_after: Optional[int] = None):
        self.slices: List[float] = []
        self.token = token
        self.cancel_after = cancel_after

    def __call__(self, seconds: float) -> None:
        self.slices.append(seconds)
        if self.token is not None and self.cancel_after is not None and len(self.slices) >= self.cancel_after:
            self.token.cancel()

    @property
    def total_ms(self) -> int:
        return int(round(sum(self.slices) * 1000))


@pytest.fixture
def injector():
    return FakeInjector()


@pytest.fixture
def clipboard():
    return FakeClipboard()


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def executor(injector, clipboard, sleeper):
    return SequenceExecutor(injector, clipboard, sleep=sleeper)
