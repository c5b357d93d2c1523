# trackreg/config.py
"""
Registry configuration.

Bounds and flags for a TrackRegistry, loadable from YAML:

    deployer: label-admin
    enforce_share_total: true
    limits:
      max_content_ref_len: 1024
      max_title_len: 256
      max_description_len: 1024
      max_tags: 10
      max_permissions: 5
"""

from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError

DEFAULT_DEPLOYER = "deployer"

_LIMIT_FIELDS = (
    "max_content_ref_len",
    "max_title_len",
    "max_description_len",
    "max_tags",
    "max_permissions",
)


@dataclass
class RegistryConfig:
    """
    Registry bounds and behavior flags.

    Attributes:
        deployer: Initial administrator when no persisted state exists
        max_content_ref_len: Longest accepted content reference
        max_title_len: Longest accepted track title
        max_description_len: Longest accepted track description
        max_tags: Most tags a category record may carry
        max_permissions: Most permissions a collaborator record may carry
        enforce_share_total: Reject shares that push an asset's total over 100
    """
    deployer: str = DEFAULT_DEPLOYER
    max_content_ref_len: int = 1024
    max_title_len: int = 256
    max_description_len: int = 1024
    max_tags: int = 10
    max_permissions: int = 5
    enforce_share_total: bool = True

    def __post_init__(self):
        if not self.deployer or not isinstance(self.deployer, str):
            raise ConfigError("deployer must be a non-empty string")
        for name in _LIMIT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigError(f"{name} must be a non-negative integer, got {value!r}")
        if not isinstance(self.enforce_share_total, bool):
            raise ConfigError("enforce_share_total must be a boolean")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in the same nested shape from_dict reads."""
        data = asdict(self)
        return {
            "deployer": data.pop("deployer"),
            "enforce_share_total": data.pop("enforce_share_total"),
            "limits": data,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RegistryConfig":
        """Build a config from a parsed mapping. Unknown keys are ignored."""
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError("Registry config must be a mapping")

        limits = data.get("limits", {}) or {}
        if not isinstance(limits, dict):
            raise ConfigError("limits must be a mapping")

        kwargs: Dict[str, Any] = {}
        if "deployer" in data:
            kwargs["deployer"] = data["deployer"]
        if "enforce_share_total" in data:
            kwargs["enforce_share_total"] = data["enforce_share_total"]
        for name in _LIMIT_FIELDS:
            if name in limits:
                kwargs[name] = limits[name]
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "RegistryConfig":
        """Parse config from a YAML string."""
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid config YAML: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: Path | str) -> "RegistryConfig":
        """Load config from a YAML file."""
        with open(path, "r") as f:
            return cls.from_yaml(f.read())
