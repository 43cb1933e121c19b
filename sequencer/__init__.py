"""
Sequencer package: named, editable sequences of input-automation actions.

Key parts
---------
- variables:      Per-sequence typed variable store (text, number, boolean, list)
- actions, keys:  Action dataclasses, conditions, key names and display texts
- json_extractor: Finds and repairs JSON embedded in free text
- directives:     Interprets extracted JSON (run sequence, click, wait)
- engine:         Executor with cancellation, retries and the worker thread
- script_model:   Sequences, the sequence library and its JSON file
- recorder:       Turns raw key and mouse events into actions
- backends:       Input, clipboard, lookup and browser collaborators
- presentation:   Editor contract between a UI and the action model
"""

from .actions import (
    Action,
    ActionKind,
    BrowserAction,
    ClipboardAction,
    Condition,
    FileAction,
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
from .backends import PynputInputInjector, PyperclipClipboard
from .context import CancellationToken, RunContext
from .engine import AutomationEngine, RunOutcome, SequenceExecutor
from .errors import (
    ActionError,
    Cancelled,
    InjectionFailed,
    JsonRepairFailed,
    MalformedDirective,
    NoJsonFound,
    RetriesExhausted,
    SequenceNotFound,
)
from .json_extractor import JsonTextExtractor
from .recorder import KeyboardRecorder, KeyCaptureAggregator, KeyEvent, MouseEvent
from .script_model import Sequence, SequenceLibrary
from .variables import VariableStore, VariableType

__all__ = [
    "Action",
    "ActionError",
    "ActionKind",
    "AutomationEngine",
    "BrowserAction",
    "Cancelled",
    "CancellationToken",
    "ClipboardAction",
    "Condition",
    "FileAction",
    "IfAction",
    "InjectionFailed",
    "JsonAction",
    "JsonRepairFailed",
    "JsonTextExtractor",
    "KeyCaptureAggregator",
    "KeyEvent",
    "KeyboardAction",
    "KeyboardActionType",
    "KeyboardRecorder",
    "LoopAction",
    "MalformedDirective",
    "MouseAction",
    "MouseActionType",
    "MouseEvent",
    "NoJsonFound",
    "PynputInputInjector",
    "PyperclipClipboard",
    "RetriesExhausted",
    "RunContext",
    "RunOutcome",
    "Sequence",
    "SequenceExecutor",
    "SequenceLibrary",
    "SequenceNotFound",
    "VariableAction",
    "VariableOperation",
    "VariableStore",
    "VariableType",
    "WaitAction",
    "apply_display",
]
