# trackreg/registry/__init__.py
"""
Track registry.

The registry owns every track and the side-tables keyed off it, and
enforces who may change them.

Example:
    registry = TrackRegistry(deployer="label-admin")
    ctx = CallContext(caller="artist", height=1)
    asset_id = registry.mint(ctx, "ipfs://track", "Title", "Description")
    registry.grant_license(ctx, asset_id, "radio", duration=100, terms="Broadcast")
"""

from .registry import TrackRegistry

__all__ = ["TrackRegistry"]
