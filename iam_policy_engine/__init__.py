"""
IAM Policy Engine

Reads and safely updates the IAM policies attached to organizations,
projects and groups, and resolves the principals bound in those policies
to human-readable identities.

Updates are read-modify-write sequences guarded by the policy etag: a
concurrent change makes the write fail instead of being overwritten.
"""

__version__ = "1.0.0"
__author__ = "IAM Policy Engine Team"
__email__ = "team@example.com"

from .engine.displayer import PolicyDisplayer
from .engine.setter import PolicySetter
from .engine.updater import ResourceUpdater
from .models import MemberType, Policy, PolicyBinding, PolicyMember

__all__ = [
    "MemberType",
    "Policy",
    "PolicyBinding",
    "PolicyDisplayer",
    "PolicyMember",
    "PolicySetter",
    "ResourceUpdater",
]
