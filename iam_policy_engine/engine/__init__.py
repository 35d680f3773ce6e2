"""
Policy Engine Package.

This package provides the core components for safely updating IAM policies
and resolving the principals bound in them.
"""

from .codec import from_map, load_policy_file, normalize_role_id, to_map
from .displayer import PolicyDisplayer
from .principals import MAX_BATCH_GET_PRINCIPALS_SIZE, PrincipalClient, batch_get_principals
from .setter import PolicySetter
from .updater import ResourceUpdater

__all__ = [
    "MAX_BATCH_GET_PRINCIPALS_SIZE",
    "PolicyDisplayer",
    "PolicySetter",
    "PrincipalClient",
    "ResourceUpdater",
    "batch_get_principals",
    "from_map",
    "load_policy_file",
    "normalize_role_id",
    "to_map",
]
