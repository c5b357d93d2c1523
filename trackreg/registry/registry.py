# trackreg/registry/registry.py
"""
Track registry.

Owns every track and every side-table keyed off a track:
- Version history, licenses, category, collaborators, status, revenue shares
- Pause flag and administrator identity

Each mutating call checks all of its preconditions before writing anything,
so a rejected call leaves every table, counter and control flag untouched.
Writes run inside a transaction: if persisting the new state fails, the
in-memory state is rolled back before the error propagates.
Ownership is looked up from the track table on every call; side-tables
never hold a copy of it.
"""

import copy
import json
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Sequence, Tuple

from ..config import RegistryConfig
from ..errors import (
    InvalidParamError,
    InvalidShareError,
    MetadataTooLongError,
    NotAuthorizedError,
    NotFoundError,
    NotOwnerError,
    PausedError,
    StateError,
)
from ..records import (
    CategoryRecord,
    CollaboratorRecord,
    LicenseRecord,
    RevenueShare,
    StatusRecord,
    Track,
    VersionRecord,
)
from ..sequencer import CallContext

logger = logging.getLogger(__name__)

STATE_VERSION = "1.0"

# Attributes captured by a write transaction
_STATE_ATTRS = (
    "_tracks",
    "_versions",
    "_licenses",
    "_categories",
    "_collaborators",
    "_statuses",
    "_shares",
    "_last_id",
    "_paused",
    "_admin",
)


class TrackRegistry:
    """
    The asset registry for tracks.

    Structure (when store_dir is given):
        store_dir/
            registry.json     # Tracks, side-tables and control state
    """

    def __init__(
        self,
        deployer: str = None,
        store_dir: Path | str = None,
        config: RegistryConfig = None,
    ):
        """
        Initialize the registry.

        Args:
            deployer: Initial administrator (defaults to config.deployer)
            store_dir: Directory to persist state in; in-memory if omitted
            config: Bounds and flags
        """
        self.config = config or RegistryConfig()
        self.store_dir = Path(store_dir) if store_dir is not None else None

        self._tracks: Dict[int, Track] = {}
        self._versions: Dict[Tuple[int, int], VersionRecord] = {}
        self._licenses: Dict[Tuple[int, str], LicenseRecord] = {}
        self._categories: Dict[int, CategoryRecord] = {}
        self._collaborators: Dict[Tuple[int, str], CollaboratorRecord] = {}
        self._statuses: Dict[int, StatusRecord] = {}
        self._shares: Dict[Tuple[int, str], RevenueShare] = {}
        self._last_id = 0
        self._paused = False
        self._admin = deployer or self.config.deployer

        if self.store_dir is not None:
            self.store_dir.mkdir(parents=True, exist_ok=True)
            self._load()

    # -- persistence ---------------------------------------------------

    def _state_path(self) -> Path:
        return self.store_dir / "registry.json"

    def _load(self):
        """
        Load registry state from disk.

        Raises:
            StateError: If registry.json exists but cannot be read back
        """
        state_path = self._state_path()
        if not state_path.exists():
            return

        try:
            with open(state_path) as f:
                data = json.load(f)
            self._restore_from(data)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            raise StateError(f"Corrupt registry state in {state_path}: {e}") from e
        logger.debug(f"Loaded registry: {len(self._tracks)} tracks, last id {self._last_id}")

    def _restore_from(self, data: Dict[str, Any]):
        self._last_id = data.get("last_id", 0)
        self._paused = data.get("paused", False)
        self._admin = data.get("admin", self._admin)
        self._tracks = {
            t["asset_id"]: Track.from_dict(t) for t in data.get("tracks", [])
        }
        self._versions = {
            (v["asset_id"], v["version"]): VersionRecord.from_dict(v["record"])
            for v in data.get("versions", [])
        }
        self._licenses = {
            (l["asset_id"], l["licensee"]): LicenseRecord.from_dict(l["record"])
            for l in data.get("licenses", [])
        }
        self._categories = {
            c["asset_id"]: CategoryRecord.from_dict(c["record"])
            for c in data.get("categories", [])
        }
        self._collaborators = {
            (c["asset_id"], c["collaborator"]): CollaboratorRecord.from_dict(c["record"])
            for c in data.get("collaborators", [])
        }
        self._statuses = {
            s["asset_id"]: StatusRecord.from_dict(s["record"])
            for s in data.get("statuses", [])
        }
        self._shares = {
            (s["asset_id"], s["participant"]): RevenueShare.from_dict(s["record"])
            for s in data.get("revenue_shares", [])
        }

    def _save(self):
        """Save registry state to disk (no-op when in-memory)."""
        if self.store_dir is None:
            return

        data = {
            "version": STATE_VERSION,
            "last_id": self._last_id,
            "paused": self._paused,
            "admin": self._admin,
            "tracks": [t.to_dict() for t in self._tracks.values()],
            "versions": [
                {"asset_id": a, "version": v, "record": r.to_dict()}
                for (a, v), r in self._versions.items()
            ],
            "licenses": [
                {"asset_id": a, "licensee": who, "record": r.to_dict()}
                for (a, who), r in self._licenses.items()
            ],
            "categories": [
                {"asset_id": a, "record": r.to_dict()}
                for a, r in self._categories.items()
            ],
            "collaborators": [
                {"asset_id": a, "collaborator": who, "record": r.to_dict()}
                for (a, who), r in self._collaborators.items()
            ],
            "statuses": [
                {"asset_id": a, "record": r.to_dict()}
                for a, r in self._statuses.items()
            ],
            "revenue_shares": [
                {"asset_id": a, "participant": who, "record": r.to_dict()}
                for (a, who), r in self._shares.items()
            ],
        }
        tmp_path = self._state_path().with_suffix(".tmp")
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self._state_path())

    @contextmanager
    def _transaction(self):
        """Apply the writes in the block, then persist; roll back on failure."""
        snapshot = {name: copy.deepcopy(getattr(self, name)) for name in _STATE_ATTRS}
        try:
            yield
            self._save()
        except Exception:
            for name, value in snapshot.items():
                setattr(self, name, value)
            raise

    # -- guards --------------------------------------------------------

    def _require_active(self):
        if self._paused:
            raise PausedError("Registry is paused")

    def _require_admin(self, ctx: CallContext):
        if ctx.caller != self._admin:
            raise NotAuthorizedError(f"{ctx.caller} is not the administrator")

    def _require_track(self, asset_id: int) -> Track:
        self._check_asset_id(asset_id)
        track = self._tracks.get(asset_id)
        if track is None:
            raise NotFoundError(f"Track {asset_id} not found")
        return track

    def _require_owner(self, ctx: CallContext, asset_id: int) -> Track:
        """Common guard for owner-only mutations: active, exists, owned."""
        self._require_active()
        track = self._require_track(asset_id)
        if track.owner != ctx.caller:
            raise NotOwnerError(f"{ctx.caller} does not own track {asset_id}")
        return track

    @staticmethod
    def _check_asset_id(asset_id: int):
        if isinstance(asset_id, bool) or not isinstance(asset_id, int):
            raise InvalidParamError("asset_id must be an integer")

    @staticmethod
    def _check_text(label: str, value: str, limit: int = None):
        if not isinstance(value, str):
            raise InvalidParamError(f"{label} must be a string")
        if limit is not None and len(value) > limit:
            raise MetadataTooLongError(f"{label} exceeds {limit} characters")

    @staticmethod
    def _check_strings(label: str, values: Sequence[str], limit: int):
        """An ordered collection of strings, at most limit long."""
        if not isinstance(values, (list, tuple)) \
                or not all(isinstance(v, str) for v in values):
            raise InvalidParamError(f"{label} must be a list of strings")
        if len(values) > limit:
            raise InvalidParamError(f"At most {limit} {label} allowed")

    @staticmethod
    def _check_non_negative(label: str, value: int):
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidParamError(f"{label} must be a non-negative integer")

    # -- lifecycle and ownership -----------------------------------------

    def mint(self, ctx: CallContext, content_ref: str, title: str, description: str) -> int:
        """
        Register a new track owned by the caller.

        Any caller may mint while the registry is active.

        Returns:
            The new asset_id
        """
        self._require_active()
        self._check_text("content_ref", content_ref, self.config.max_content_ref_len)
        self._check_text("title", title, self.config.max_title_len)
        self._check_text("description", description, self.config.max_description_len)

        asset_id = self._last_id + 1
        with self._transaction():
            self._tracks[asset_id] = Track(
                asset_id=asset_id,
                owner=ctx.caller,
                content_ref=content_ref,
                created_at=ctx.height,
                title=title,
                description=description,
            )
            self._last_id = asset_id
        logger.debug(f"Minted track {asset_id} for {ctx.caller}")
        return asset_id

    def transfer(self, ctx: CallContext, asset_id: int, sender: str, recipient: str) -> bool:
        """
        Move a track to a new owner.

        Only the sender can initiate its own transfer. Side-tables are left
        as they are.
        """
        self._require_active()
        if ctx.caller != sender:
            raise NotAuthorizedError(f"{ctx.caller} cannot transfer on behalf of {sender}")
        track = self._require_track(asset_id)
        if track.owner != sender:
            raise NotOwnerError(f"{sender} does not own track {asset_id}")
        self._check_text("recipient", recipient)

        with self._transaction():
            self._tracks[asset_id].owner = recipient
        logger.debug(f"Transferred track {asset_id}: {sender} -> {recipient}")
        return True

    def get_owner(self, asset_id: int) -> str:
        return self._require_track(asset_id).owner

    def get_token_uri(self, asset_id: int) -> str:
        """Content reference of a track."""
        return self._require_track(asset_id).content_ref

    def get_track(self, asset_id: int) -> Track:
        """A copy of the track; changing it does not touch the registry."""
        return copy.deepcopy(self._require_track(asset_id))

    def get_last_id(self) -> int:
        """Last allocated asset_id (0 before the first mint)."""
        return self._last_id

    # -- side-tables -----------------------------------------------------

    def register_version(
        self,
        ctx: CallContext,
        asset_id: int,
        new_content_ref: str,
        version: int,
        notes: str,
    ) -> bool:
        """Record a content revision. Reusing a version number replaces it."""
        self._require_owner(ctx, asset_id)
        self._check_text("new_content_ref", new_content_ref, self.config.max_content_ref_len)
        self._check_non_negative("version", version)
        self._check_text("notes", notes)

        with self._transaction():
            self._versions[(asset_id, version)] = VersionRecord(
                updated_content_ref=new_content_ref,
                notes=notes,
                created_at=ctx.height,
            )
        logger.debug(f"Track {asset_id}: version {version} registered")
        return True

    def grant_license(
        self,
        ctx: CallContext,
        asset_id: int,
        licensee: str,
        duration: int,
        terms: str,
    ) -> bool:
        """
        Grant (or re-grant) a license to a licensee.

        The license expires `duration` sequence steps after the grant. Any
        previous license for the same licensee is replaced.
        """
        self._require_owner(ctx, asset_id)
        self._check_text("licensee", licensee)
        self._check_non_negative("duration", duration)
        self._check_text("terms", terms)

        with self._transaction():
            self._licenses[(asset_id, licensee)] = LicenseRecord(
                expiry=ctx.height + duration,
                terms=terms,
                active=True,
            )
        logger.debug(f"Track {asset_id}: license granted to {licensee}")
        return True

    def add_work_category(
        self,
        ctx: CallContext,
        asset_id: int,
        category: str,
        tags: Sequence[str],
    ) -> bool:
        """Set the track's category and tags, replacing any previous ones."""
        self._require_owner(ctx, asset_id)
        self._check_text("category", category)
        self._check_strings("tags", tags, self.config.max_tags)

        with self._transaction():
            self._categories[asset_id] = CategoryRecord(category=category, tags=list(tags))
        return True

    def add_collaborator(
        self,
        ctx: CallContext,
        asset_id: int,
        collaborator: str,
        role: str,
        permissions: Sequence[str],
    ) -> bool:
        self._require_owner(ctx, asset_id)
        self._check_text("collaborator", collaborator)
        self._check_text("role", role)
        self._check_strings("permissions", permissions, self.config.max_permissions)

        with self._transaction():
            self._collaborators[(asset_id, collaborator)] = CollaboratorRecord(
                role=role,
                permissions=list(permissions),
                added_at=ctx.height,
            )
        logger.debug(f"Track {asset_id}: collaborator {collaborator} as {role}")
        return True

    def update_work_status(
        self,
        ctx: CallContext,
        asset_id: int,
        status: str,
        visibility: bool,
    ) -> bool:
        self._require_owner(ctx, asset_id)
        self._check_text("status", status)
        if not isinstance(visibility, bool):
            raise InvalidParamError("visibility must be true or false")

        with self._transaction():
            self._statuses[asset_id] = StatusRecord(
                status=status,
                visibility=visibility,
                last_updated=ctx.height,
            )
        return True

    def set_revenue_share(
        self,
        ctx: CallContext,
        asset_id: int,
        participant: str,
        percentage: int,
    ) -> bool:
        """
        Set a participant's revenue share, resetting total_received to 0.

        With enforce_share_total, the asset's shares may not add up to more
        than 100; the participant's own previous share does not count.
        """
        self._require_owner(ctx, asset_id)
        self._check_text("participant", participant)
        if isinstance(percentage, bool) or not isinstance(percentage, int) \
                or not 0 <= percentage <= 100:
            raise InvalidShareError("Share percentage must be between 0 and 100")
        if self.config.enforce_share_total:
            others = sum(
                share.percentage
                for (a, who), share in self._shares.items()
                if a == asset_id and who != participant
            )
            if others + percentage > 100:
                raise InvalidShareError(
                    f"Shares for track {asset_id} would total {others + percentage}%"
                )

        with self._transaction():
            self._shares[(asset_id, participant)] = RevenueShare(
                percentage=percentage,
                total_received=0,
            )
        logger.debug(f"Track {asset_id}: {participant} share set to {percentage}%")
        return True

    # -- side-table reads --------------------------------------------------

    def _lookup(self, table: Dict[Any, Any], key: Any, label: str):
        """A copy of the record under key."""
        try:
            record = table.get(key)
        except TypeError:
            raise InvalidParamError(f"Malformed {label.lower()} key: {key!r}")
        if record is None:
            raise NotFoundError(f"{label} not found for {key}")
        return copy.deepcopy(record)

    def get_version(self, asset_id: int, version: int) -> VersionRecord:
        return self._lookup(self._versions, (asset_id, version), "Version")

    def get_license(self, asset_id: int, licensee: str) -> LicenseRecord:
        return self._lookup(self._licenses, (asset_id, licensee), "License")

    def is_license_active(self, asset_id: int, licensee: str, height: int) -> bool:
        """Whether the licensee's license is in force at a sequence value."""
        self._check_non_negative("height", height)
        return self.get_license(asset_id, licensee).is_valid_at(height)

    def get_category(self, asset_id: int) -> CategoryRecord:
        return self._lookup(self._categories, asset_id, "Category")

    def get_collaborator(self, asset_id: int, collaborator: str) -> CollaboratorRecord:
        return self._lookup(self._collaborators, (asset_id, collaborator), "Collaborator")

    def get_status(self, asset_id: int) -> StatusRecord:
        return self._lookup(self._statuses, asset_id, "Status")

    def get_revenue_share(self, asset_id: int, participant: str) -> RevenueShare:
        return self._lookup(self._shares, (asset_id, participant), "Revenue share")

    def total_share_percentage(self, asset_id: int) -> int:
        """Sum of all participants' percentages for one track."""
        self._require_track(asset_id)
        return sum(
            share.percentage
            for (a, _), share in self._shares.items()
            if a == asset_id
        )

    # -- administration ----------------------------------------------------

    def pause(self, ctx: CallContext) -> bool:
        """Block all record mutations. Admin only."""
        self._require_admin(ctx)
        with self._transaction():
            self._paused = True
        logger.info(f"Registry paused by {ctx.caller}")
        return True

    def unpause(self, ctx: CallContext) -> bool:
        self._require_admin(ctx)
        with self._transaction():
            self._paused = False
        logger.info(f"Registry unpaused by {ctx.caller}")
        return True

    def set_admin(self, ctx: CallContext, new_admin: str) -> bool:
        """
        Hand administration to a new identity.

        Takes effect immediately; the previous administrator loses all
        admin rights with this call.
        """
        self._require_admin(ctx)
        self._check_text("new_admin", new_admin)
        with self._transaction():
            self._admin = new_admin
        logger.info(f"Administrator changed: {ctx.caller} -> {new_admin}")
        return True

    def is_paused(self) -> bool:
        return self._paused

    def get_admin(self) -> str:
        return self._admin

    def __contains__(self, asset_id: int) -> bool:
        return asset_id in self._tracks

    def __len__(self) -> int:
        return len(self._tracks)

    def __iter__(self):
        return iter(copy.deepcopy(list(self._tracks.values())))
