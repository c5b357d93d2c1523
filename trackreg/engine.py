# trackreg/engine.py
"""
Call engine for the track registry.

Serves the registry's call interface:
1. Look up the named operation
2. Build the call context (caller + sequence value) for mutating calls
3. Run the operation against the registry
4. Return a tagged CallResult; on success advance the sequencer and
   journal the call
"""

import inspect
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, NamedTuple, Optional

from .config import RegistryConfig
from .errors import ErrorCode, RegistryError, UnknownOperationError
from .journal import Journal, JournalEntry, sign_entry
from .registry import TrackRegistry
from .sequencer import CallContext, Sequencer

logger = logging.getLogger(__name__)


class Operation(NamedTuple):
    """How a call name maps onto the registry."""
    method: str
    mutating: bool
    takes_height: bool = False


OPERATIONS: Dict[str, Operation] = {
    # Lifecycle and ownership
    "mint": Operation("mint", True),
    "transfer": Operation("transfer", True),
    "get-owner": Operation("get_owner", False),
    "get-token-uri": Operation("get_token_uri", False),
    "get-last-id": Operation("get_last_id", False),
    "get-track": Operation("get_track", False),
    # Side-tables
    "register-version": Operation("register_version", True),
    "grant-license": Operation("grant_license", True),
    "add-work-category": Operation("add_work_category", True),
    "add-collaborator": Operation("add_collaborator", True),
    "update-work-status": Operation("update_work_status", True),
    "set-revenue-share": Operation("set_revenue_share", True),
    "get-version": Operation("get_version", False),
    "get-license": Operation("get_license", False),
    "is-license-active": Operation("is_license_active", False, takes_height=True),
    "get-category": Operation("get_category", False),
    "get-collaborator": Operation("get_collaborator", False),
    "get-status": Operation("get_status", False),
    "get-revenue-share": Operation("get_revenue_share", False),
    "get-share-total": Operation("total_share_percentage", False),
    # Administration
    "pause": Operation("pause", True),
    "unpause": Operation("unpause", True),
    "set-admin": Operation("set_admin", True),
    "is-paused": Operation("is_paused", False),
    "get-admin": Operation("get_admin", False),
}


def _to_json(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


@dataclass
class Call:
    """A request to run one registry operation."""
    operation: str
    caller: str
    args: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "caller": self.caller,
            "args": self.args,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Call":
        args = data.get("args") or {}
        if not isinstance(args, dict):
            raise TypeError("args must be a mapping of argument names to values")
        return cls(
            operation=data["operation"],
            caller=data["caller"],
            args=args,
        )


@dataclass
class CallResult:
    """Tagged outcome of a call: a value, or a numeric failure reason."""
    ok: bool
    value: Any = None
    error_code: Optional[int] = None
    error: Optional[str] = None
    height: int = 0

    @property
    def reason(self) -> Optional[ErrorCode]:
        """The failure reason as an ErrorCode (None on success)."""
        return ErrorCode(self.error_code) if self.error_code is not None else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "value": self.value,
            "error_code": self.error_code,
            "error": self.error,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CallResult":
        return cls(
            ok=data["ok"],
            value=data.get("value"),
            error_code=data.get("error_code"),
            error=data.get("error"),
            height=data.get("height", 0),
        )


class RegistryEngine:
    """
    Sequential call engine.

    Calls are applied one at a time under a lock. Rejected calls leave the
    registry, the sequencer and the journal unchanged.
    """

    def __init__(
        self,
        registry: TrackRegistry,
        sequencer: Sequencer = None,
        journal: Journal = None,
        signing_key: bytes = None,
    ):
        """
        Args:
            registry: The registry to serve
            sequencer: Source of sequence values (in-memory if omitted)
            journal: Where applied calls are recorded (none if omitted)
            signing_key: PEM private key used to sign journal entries
        """
        self.registry = registry
        self.sequencer = sequencer or Sequencer()
        self.journal = journal
        self.signing_key = signing_key
        self._lock = threading.RLock()

    @classmethod
    def from_store(
        cls,
        store_dir: Path | str,
        config: RegistryConfig = None,
        deployer: str = None,
        signing_key: bytes = None,
    ) -> "RegistryEngine":
        """
        Open (or create) a persisted registry.

        Structure:
            store_dir/
                registry.json
                sequencer.json
                journal/
                    journal.json
        """
        store_dir = Path(store_dir)
        return cls(
            registry=TrackRegistry(deployer=deployer, store_dir=store_dir, config=config),
            sequencer=Sequencer(store_dir),
            journal=Journal(store_dir / "journal"),
            signing_key=signing_key,
        )

    def execute(self, call: Call) -> CallResult:
        """
        Run a call and return its result.

        Raises:
            UnknownOperationError: If the operation name is not served
        """
        op = OPERATIONS.get(call.operation)
        if op is None:
            raise UnknownOperationError(f"Unknown operation: {call.operation}")

        with self._lock:
            method = getattr(self.registry, op.method)
            args = dict(call.args)

            if op.mutating:
                height = self.sequencer.peek()
            else:
                height = self.sequencer.height
                if op.takes_height:
                    args.setdefault("height", height)

            try:
                if op.mutating:
                    bound = inspect.signature(method).bind(
                        CallContext(caller=call.caller, height=height), **args
                    )
                else:
                    bound = inspect.signature(method).bind(**args)
            except TypeError as e:
                return CallResult(
                    ok=False,
                    error_code=int(ErrorCode.INVALID_PARAM),
                    error=f"Bad arguments for {call.operation}: {e}",
                    height=self.sequencer.height,
                )

            try:
                value = method(*bound.args, **bound.kwargs)
            except RegistryError as e:
                logger.debug(f"{call.operation} by {call.caller} rejected: {e.code.name}")
                return CallResult(
                    ok=False,
                    error_code=int(e.code),
                    error=e.message,
                    height=self.sequencer.height,
                )

            value = _to_json(value)
            if op.mutating:
                self.sequencer.advance()
                self._record(call, height, value)

            return CallResult(ok=True, value=value, height=height)

    def call(self, operation: str, caller: str, **args) -> CallResult:
        """Convenience wrapper around execute()."""
        return self.execute(Call(operation=operation, caller=caller, args=args))

    def _record(self, call: Call, height: int, value: Any):
        if self.journal is None:
            return
        entry = JournalEntry.for_call(
            operation=call.operation,
            caller=call.caller,
            height=height,
            args=call.args,
            result=value,
        )
        if self.signing_key is not None:
            sign_entry(entry, self.signing_key)
        self.journal.append(entry)

    def state(self) -> Dict[str, Any]:
        """Control state summary."""
        with self._lock:
            return {
                "paused": self.registry.is_paused(),
                "admin": self.registry.get_admin(),
                "last_id": self.registry.get_last_id(),
                "tracks": len(self.registry),
                "height": self.sequencer.height,
            }
