# trackreg - Registry for creative works: ownership, licensing and revenue shares
#
# A single registry that owns every track and the records attached to it,
# and decides who may change them.
#
# Core concepts:
# - Track: A uniquely numbered creative work with an owner
# - Side-table: Versions, licenses, category, collaborators, status and
#   revenue shares, keyed off a track's asset_id
# - Registry: Applies calls, checking pause state and ownership first
# - Engine: Call interface returning tagged results, with a signed journal

from .config import RegistryConfig
from .errors import (
    ErrorCode,
    RegistryError,
    NotAuthorizedError,
    AlreadyRegisteredError,
    InvalidParamError,
    NotOwnerError,
    NotFoundError,
    PausedError,
    MetadataTooLongError,
    InvalidShareError,
    ConfigError,
    StateError,
    UnknownOperationError,
)
from .records import (
    Track,
    VersionRecord,
    LicenseRecord,
    CategoryRecord,
    CollaboratorRecord,
    StatusRecord,
    RevenueShare,
)
from .sequencer import CallContext, Sequencer
from .registry import TrackRegistry
from .journal import Journal, JournalEntry, sign_entry, verify_entry
from .engine import Call, CallResult, RegistryEngine, OPERATIONS

__all__ = [
    # Core
    "TrackRegistry",
    "RegistryConfig",
    "CallContext",
    "Sequencer",
    # Records
    "Track",
    "VersionRecord",
    "LicenseRecord",
    "CategoryRecord",
    "CollaboratorRecord",
    "StatusRecord",
    "RevenueShare",
    # Errors
    "ErrorCode",
    "RegistryError",
    "NotAuthorizedError",
    "AlreadyRegisteredError",
    "InvalidParamError",
    "NotOwnerError",
    "NotFoundError",
    "PausedError",
    "MetadataTooLongError",
    "InvalidShareError",
    "ConfigError",
    "StateError",
    "UnknownOperationError",
    # Call interface
    "Call",
    "CallResult",
    "RegistryEngine",
    "OPERATIONS",
    "Journal",
    "JournalEntry",
    "sign_entry",
    "verify_entry",
]

__version__ = "0.1.0"
