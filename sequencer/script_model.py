"""
Sequence data model, the sequence library and its JSON persistence.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from .actions import Action
from .errors import ActionError, Cancelled
from .variables import VariableStore

logger = logging.getLogger(__name__)


@dataclass
class Sequence:
    name: str
    description: str = ""
    actions: List[Action] = field(default_factory=list)
    variables: VariableStore = field(default_factory=VariableStore)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def clone(self) -> "Sequence":
        return Sequence(
            name=self.name,
            description=self.description,
            actions=[action.clone() for action in self.actions],
            variables=self.variables.copy(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "actions": [action.to_dict() for action in self.actions],
            "variables": self.variables.to_list(),
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Sequence":
        name = str(data.get("name", "Unnamed Sequence") or "Unnamed Sequence")
        actions_data = data.get("actions", []) or []
        actions: List[Action] = []
        if isinstance(actions_data, list):
            for raw in actions_data:
                if isinstance(raw, dict):
                    actions.append(Action.from_dict(raw))
        sequence = Sequence(
            name=name,
            description=str(data.get("description", "") or ""),
            actions=actions,
            variables=VariableStore.from_list(data.get("variables")),
        )
        if data.get("id"):
            sequence.id = str(data["id"])
        return sequence


class SequenceLibrary:
    """Ordered, name-unique collection of sequences."""

    def __init__(self, sequences: Optional[List[Sequence]] = None) -> None:
        self._sequences: List[Sequence] = []
        for sequence in sequences or []:
            self.add(sequence)

    def __len__(self) -> int:
        return len(self._sequences)

    def __iter__(self) -> Iterator[Sequence]:
        return iter(list(self._sequences))

    def names(self) -> List[str]:
        return [sequence.name for sequence in self._sequences]

    def find(self, name: str) -> Optional[Sequence]:
        """Case-insensitive lookup by name."""
        wanted = (name or "").strip().casefold()
        for sequence in self._sequences:
            if sequence.name.casefold() == wanted:
                return sequence
        return None

    def add(self, sequence: Sequence) -> Sequence:
        if self.find(sequence.name) is not None:
            raise ValueError(f"A sequence named '{sequence.name}' already exists")
        self._sequences.append(sequence)
        return sequence

    def remove(self, name: str) -> bool:
        sequence = self.find(name)
        if sequence is None:
            return False
        self._sequences.remove(sequence)
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {"sequences": [sequence.to_dict() for sequence in self._sequences]}

    @staticmethod
    def from_dict(data: Any) -> "SequenceLibrary":
        """Accepts ``{"sequences": [...]}``, a bare list, or a single sequence object."""
        if isinstance(data, dict) and "sequences" in data:
            raw_sequences = data.get("sequences") or []
        elif isinstance(data, dict):
            raw_sequences = [data]
        else:
            raw_sequences = data if isinstance(data, list) else []
        library = SequenceLibrary()
        for raw in raw_sequences:
            if not isinstance(raw, dict):
                continue
            sequence = Sequence.from_dict(raw)
            if library.find(sequence.name) is not None:
                logger.warning("Duplicate sequence name '%s' skipped", sequence.name)
                continue
            library.add(sequence)
        return library

    @staticmethod
    def load(path: Union[str, Path]) -> "SequenceLibrary":
        """Load a library file.

        Raises:
            OSError: the file cannot be read.
            ValueError: the file is not valid JSON.
            ActionError: an action in the file cannot be understood.
        """
        content = Path(path).read_text(encoding="utf-8")
        return SequenceLibrary.from_dict(json.loads(content))

    def save(self, path: Union[str, Path]) -> None:
        """Persist the library atomically to disk."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        payload = json.dumps(self.to_dict(), indent=2, ensure_ascii=False)
        tmp_path.write_text(payload, encoding="utf-8")
        tmp_path.replace(path)

    def bind(self, executor: Any) -> "LibraryLookup":
        """Make this library the executor's sequence lookup for JSON directives."""
        lookup = LibraryLookup(self, executor)
        executor.lookup = lookup
        return lookup


class LibraryLookup:
    """Runs library sequences by name from inside a running sequence.

    A sequence that is already on the executor's call stack is refused, so a
    directive can never recurse into itself.
    """

    def __init__(self, library: SequenceLibrary, executor: Any) -> None:
        self.library = library
        self.executor = executor

    def run_by_name(self, name: str) -> bool:
        return self.run_with_variables(name, {})

    def run_with_variables(self, name: str, variables: Dict[str, str]) -> bool:
        sequence = self.library.find(name)
        if sequence is None:
            logger.warning("Sequence '%s' not found", name)
            return False
        running = [item.casefold() for item in self.executor.call_stack]
        if sequence.name.casefold() in running:
            logger.warning("Recursive call of sequence '%s' refused (call stack: %s)",
                           sequence.name, " > ".join(self.executor.call_stack))
            return False
        for key, value in variables.items():
            sequence.variables.set(key, value)
            logger.debug("Variable '%s' set to '%s' in sequence '%s'", key, value, sequence.name)
        try:
            self.executor.run_nested(sequence)
            return True
        except Cancelled:
            raise
        except ActionError as e:
            logger.error("Sequence '%s' failed: %s", sequence.name, e)
            return False
