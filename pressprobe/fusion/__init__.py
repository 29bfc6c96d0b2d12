"""Fusion module - identity resolution, confidence and scoring."""

from pressprobe.fusion.registry import IdentityRegistry, is_valid_identity, slugify
from pressprobe.fusion.scorer import Entity, EvidenceFuser, fuse

__all__ = ["Entity", "EvidenceFuser", "IdentityRegistry", "fuse", "is_valid_identity", "slugify"]
