# trackreg/journal/entry.py
"""
Journal entries.

Every mutating call the engine applies is recorded as an entry:
- operation: Call name (mint, transfer, grant-license, ...)
- caller: Invoking identity
- height: Sequence value the call ran at
- args / result: What was asked and what came back
"""

import json
import logging
import os
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import StateError

logger = logging.getLogger(__name__)


def _generate_id() -> str:
    """Generate unique entry ID."""
    return str(uuid.uuid4())


@dataclass
class JournalEntry:
    """
    One applied registry call.

    Attributes:
        entry_id: Unique identifier
        operation: Call name
        caller: Identity that made the call
        height: Sequence value the call ran at
        args: Call arguments
        result: Value the call returned
        asset_id: Track the call touched, if any
        recorded: ISO timestamp
        signature: Signature block (added after signing)
    """
    entry_id: str
    operation: str
    caller: str
    height: int
    args: Dict[str, Any]
    result: Any = None
    asset_id: Optional[int] = None
    recorded: str = field(default_factory=lambda: time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()))
    signature: Optional[Dict[str, Any]] = None

    @classmethod
    def for_call(
        cls,
        operation: str,
        caller: str,
        height: int,
        args: Dict[str, Any],
        result: Any = None,
    ) -> "JournalEntry":
        """
        Build an entry for an applied call.

        The touched asset is taken from the args, or from the result of a
        mint.
        """
        asset_id = args.get("asset_id")
        if asset_id is None and operation == "mint":
            asset_id = result
        return cls(
            entry_id=_generate_id(),
            operation=operation,
            caller=caller,
            height=height,
            args=dict(args),
            result=result,
            asset_id=asset_id,
        )

    def signable(self) -> Dict[str, Any]:
        """The entry content covered by a signature."""
        data = self.to_dict()
        data.pop("signature", None)
        return data

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "operation": self.operation,
            "caller": self.caller,
            "height": self.height,
            "args": self.args,
            "result": self.result,
            "asset_id": self.asset_id,
            "recorded": self.recorded,
            "signature": self.signature,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalEntry":
        return cls(
            entry_id=data["entry_id"],
            operation=data["operation"],
            caller=data["caller"],
            height=data["height"],
            args=data.get("args", {}),
            result=data.get("result"),
            asset_id=data.get("asset_id"),
            recorded=data.get("recorded", ""),
            signature=data.get("signature"),
        )


class Journal:
    """
    Append-only journal of applied calls.

    Persisted to store_dir/journal.json when a store directory is given,
    otherwise kept in memory.
    """

    def __init__(self, store_dir: Path | str = None):
        self.store_dir = Path(store_dir) if store_dir is not None else None
        self._entries: List[JournalEntry] = []
        if self.store_dir is not None:
            self.store_dir.mkdir(parents=True, exist_ok=True)
            self._load()

    def _log_path(self) -> Path:
        return self.store_dir / "journal.json"

    def _load(self):
        """
        Load entries from disk.

        Raises:
            StateError: If journal.json exists but cannot be read back
        """
        log_path = self._log_path()
        if log_path.exists():
            try:
                with open(log_path) as f:
                    data = json.load(f)
                self._entries = [
                    JournalEntry.from_dict(e) for e in data.get("entries", [])
                ]
            except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
                raise StateError(f"Corrupt journal in {log_path}: {e}") from e
            logger.debug(f"Loaded {len(self._entries)} journal entries")

    def _save(self):
        if self.store_dir is None:
            return
        data = {
            "version": "1.0",
            "entries": [e.to_dict() for e in self._entries],
        }
        tmp_path = self._log_path().with_suffix(".tmp")
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self._log_path())

    def append(self, entry: JournalEntry) -> None:
        """Add an entry to the end of the journal."""
        self._entries.append(entry)
        self._save()

    def get(self, entry_id: str) -> Optional[JournalEntry]:
        for e in self._entries:
            if e.entry_id == entry_id:
                return e
        return None

    def list(self) -> List[JournalEntry]:
        """All entries, oldest first."""
        return list(self._entries)

    def find_by_asset(self, asset_id: int) -> List[JournalEntry]:
        return [e for e in self._entries if e.asset_id == asset_id]

    def find_by_caller(self, caller: str) -> List[JournalEntry]:
        return [e for e in self._entries if e.caller == caller]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))
