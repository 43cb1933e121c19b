"""
Error taxonomy for sequence execution.

``Cancelled`` is deliberately not an ``ActionError``: code that tolerates
ordinary action failures must never swallow a cancellation.
"""

from __future__ import annotations

from typing import Any, Optional


class ActionError(Exception):
    """Base class for failures raised while running an action."""

    def __init__(self, message: str = "", action: Optional[Any] = None):
        super().__init__(message)
        self.action = action


class ParseFailure(ActionError):
    pass


class NoJsonFound(ParseFailure):
    pass


class JsonRepairFailed(ParseFailure):
    pass


class DirectiveFailure(ActionError):
    pass


class SequenceNotFound(DirectiveFailure):
    def __init__(self, sequence_name: str, action: Optional[Any] = None):
        super().__init__(f"Sequence '{sequence_name}' could not be found or executed", action)
        self.sequence_name = sequence_name


class MalformedDirective(DirectiveFailure):
    pass


class InjectionFailed(ActionError):
    pass


class RetriesExhausted(ActionError):
    def __init__(self, label: str, attempts: int, last_error: Optional[BaseException] = None,
                 action: Optional[Any] = None):
        message = f"{label} failed after {attempts} attempts"
        if last_error is not None:
            message += f": {last_error}"
        super().__init__(message, action)
        self.attempts = attempts
        self.last_error = last_error


class Cancelled(Exception):
    """Cooperative cancellation was observed."""
