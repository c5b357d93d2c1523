# trackreg/sequencer.py
"""
Call context and sequence counter.

Every registry call runs with a CallContext: the invoking identity and the
current sequence value (the registry's stand-in for a block height). When
the registry is driven through the engine, a Sequencer hands out those
values, advancing once per mutating call.
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import StateError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallContext:
    """Who is calling, and at which sequence value."""
    caller: str
    height: int = 0


class Sequencer:
    """
    Monotonic sequence counter.

    Persisted to store_dir/sequencer.json when a store directory is given.
    """

    def __init__(self, store_dir: Optional[Path | str] = None, start: int = 0):
        self.store_dir = Path(store_dir) if store_dir is not None else None
        self._height = start
        if self.store_dir is not None:
            self.store_dir.mkdir(parents=True, exist_ok=True)
            self._load()

    def _state_path(self) -> Path:
        return self.store_dir / "sequencer.json"

    def _load(self):
        """
        Load the last height from disk.

        Raises:
            StateError: If sequencer.json exists but cannot be read back
        """
        state_path = self._state_path()
        if state_path.exists():
            try:
                with open(state_path) as f:
                    data = json.load(f)
                self._height = int(data["height"])
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                raise StateError(f"Corrupt sequencer state in {state_path}: {e}") from e
            logger.debug(f"Loaded sequencer at height {self._height}")

    def _save(self):
        if self.store_dir is None:
            return
        tmp_path = self._state_path().with_suffix(".tmp")
        with open(tmp_path, "w") as f:
            json.dump({"height": self._height}, f)
        os.replace(tmp_path, self._state_path())

    @property
    def height(self) -> int:
        """The most recently issued sequence value."""
        return self._height

    def peek(self) -> int:
        """The value the next advance() will issue."""
        return self._height + 1

    def advance(self) -> int:
        """Issue the next sequence value."""
        self._height += 1
        self._save()
        return self._height
