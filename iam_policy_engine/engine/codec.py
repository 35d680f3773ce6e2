"""
Policy Codec for the IAM Policy Engine.

Converts IAM policies between their wire form (a list of bindings) and a
normalized map keyed by role ID and then principal ID.
"""

from pathlib import Path
from typing import Union

from pydantic import ValidationError

from ..models import BindingMap, Policy, PolicyBinding, PolicyMember

ROLE_PREFIX = "roles/"


def normalize_role_id(role: str) -> str:
    """Prefix a role ID with "roles/" unless it already carries it."""
    if role.startswith(ROLE_PREFIX):
        return role
    return f"{ROLE_PREFIX}{role}"


def to_map(policy: Policy) -> BindingMap:
    """
    Convert a policy to a map of role ID -> principal ID -> member type.

    A role appearing in several bindings is merged, and a principal listed
    twice under the same role keeps the type it was last listed with.

    Args:
        policy: Policy to convert

    Returns:
        Normalized binding map
    """
    bindings: BindingMap = {}
    for binding in policy.bindings:
        members = bindings.setdefault(binding.role_id, {})
        for member in binding.members:
            members[member.member_id] = member.member_type
    return bindings


def from_map(etag: str, bindings: BindingMap) -> Policy:
    """
    Convert a map produced by to_map back into a policy.

    Bindings are sorted by role ID and members by principal ID.

    Args:
        etag: Version token to attach to the policy
        bindings: Normalized binding map

    Returns:
        Policy with the given etag
    """
    policy = Policy(etag=etag)
    for role_id in sorted(bindings):
        members = bindings[role_id]
        policy.bindings.append(PolicyBinding(
            role_id=role_id,
            members=[
                PolicyMember(member_id=member_id, member_type=members[member_id])
                for member_id in sorted(members)
            ],
        ))
    return policy


def load_policy_file(path: Union[str, Path]) -> Policy:
    """
    Load a policy from a JSON file.

    The file holds an object with "bindings" and an optional "etag". Unknown
    fields anywhere in the document are rejected.

    Args:
        path: Path of the JSON policy file

    Returns:
        The decoded Policy

    Raises:
        ValueError: If the file cannot be read or is not a valid policy
    """
    try:
        with open(path, encoding='utf-8') as f:
            content = f.read()
    except OSError as e:
        raise ValueError(f"failed to open policy file: {e}") from e

    try:
        return Policy.model_validate_json(content)
    except ValidationError as e:
        raise ValueError(f"failed to unmarshal policy file: {e}") from e
