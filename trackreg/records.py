# trackreg/records.py
"""
Record types held by the track registry.

A Track is the asset itself. The remaining records are side-tables keyed
off the track's asset_id; they are stored independently of the track and
are replaced wholesale on every write.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class Track:
    """
    A registered creative work.

    Attributes:
        asset_id: Sequential identifier, starting at 1
        owner: Identity allowed to mutate the track and its side-tables
        content_ref: Opaque content reference (e.g. an ipfs:// URI)
        created_at: Sequence value when minted
        title: Short title
        description: Free-text description
    """
    asset_id: int
    owner: str
    content_ref: str
    created_at: int
    title: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "owner": self.owner,
            "content_ref": self.content_ref,
            "created_at": self.created_at,
            "title": self.title,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Track":
        return cls(
            asset_id=data["asset_id"],
            owner=data["owner"],
            content_ref=data["content_ref"],
            created_at=data["created_at"],
            title=data.get("title", ""),
            description=data.get("description", ""),
        )


@dataclass
class VersionRecord:
    """A registered revision of a track's content."""
    updated_content_ref: str
    notes: str
    created_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "updated_content_ref": self.updated_content_ref,
            "notes": self.notes,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VersionRecord":
        return cls(
            updated_content_ref=data["updated_content_ref"],
            notes=data.get("notes", ""),
            created_at=data["created_at"],
        )


@dataclass
class LicenseRecord:
    """
    A license granted on a track to one licensee.

    expiry is the sequence value after which the license lapses.
    """
    expiry: int
    terms: str
    active: bool = True

    def is_valid_at(self, height: int) -> bool:
        """Check whether the license is in force at a sequence value."""
        return self.active and height <= self.expiry

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expiry": self.expiry,
            "terms": self.terms,
            "active": self.active,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LicenseRecord":
        return cls(
            expiry=data["expiry"],
            terms=data.get("terms", ""),
            active=data.get("active", True),
        )


@dataclass
class CategoryRecord:
    """Category label and ordered tags for a track."""
    category: str
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CategoryRecord":
        return cls(
            category=data["category"],
            tags=list(data.get("tags", [])),
        )


@dataclass
class CollaboratorRecord:
    """A collaborator's role and permissions on a track."""
    role: str
    permissions: List[str] = field(default_factory=list)
    added_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "permissions": list(self.permissions),
            "added_at": self.added_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CollaboratorRecord":
        return cls(
            role=data["role"],
            permissions=list(data.get("permissions", [])),
            added_at=data.get("added_at", 0),
        )


@dataclass
class StatusRecord:
    """Publication status of a track."""
    status: str
    visibility: bool
    last_updated: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "visibility": self.visibility,
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StatusRecord":
        return cls(
            status=data["status"],
            visibility=data.get("visibility", False),
            last_updated=data["last_updated"],
        )


@dataclass
class RevenueShare:
    """A participant's percentage of a track's revenue."""
    percentage: int
    total_received: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "percentage": self.percentage,
            "total_received": self.total_received,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RevenueShare":
        return cls(
            percentage=data["percentage"],
            total_received=data.get("total_received", 0),
        )
