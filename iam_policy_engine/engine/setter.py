"""
Policy Setter for the IAM Policy Engine.

Performs read-modify-write updates of a resource's IAM policy through a
ResourceUpdater. Concurrent writers are detected by the backend through the
policy etag; conflicts are surfaced to the caller and never retried here.
"""

import logging
from typing import Optional

from ..errors import (
    AlreadyBoundError,
    NilPolicyError,
    NotBoundError,
    PrincipalResolutionError,
    wrap_backend_error,
)
from ..models import MemberType, Policy, PrincipalView
from .codec import from_map, normalize_role_id, to_map
from .principals import PrincipalClient, batch_get_principals
from .updater import ResourceUpdater

logger = logging.getLogger(__name__)


class PolicySetter:
    """
    Safely mutates the IAM policy of a single resource.

    Each operation fetches what it needs, applies its change in memory and
    stores the result with the etag it read, so a concurrent modification
    makes the final write fail rather than silently overwriting it.
    """

    def __init__(self, organization_id: str, updater: ResourceUpdater, principals: PrincipalClient):
        """
        Initialize the policy setter.

        Args:
            organization_id: Organization used to look up principals
            updater: Storage for the resource's policy
            principals: IAM service client used to classify principals
        """
        self.organization_id = organization_id
        self.updater = updater
        self.principals = principals

    def set_policy(self, policy: Optional[Policy]) -> Policy:
        """
        Replace the resource's policy.

        If the policy has no etag, the existing policy is fetched first and
        its etag is used. Anything written between that fetch and the write
        is overwritten.

        Args:
            policy: Complete policy to store

        Returns:
            The stored policy
        """
        if policy is None:
            raise NilPolicyError("nil policy passed")

        if not policy.etag:
            logger.debug("Fetching existing policy in order to populate etag")
            existing = self._get_existing_policy()
            logger.debug(f"Existing policy fetched, etag={existing.etag}")
            policy = policy.model_copy(update={"etag": existing.etag})

        return self.updater.set_iam_policy(policy)

    def add_binding(self, principal_id: str, role_id: str) -> Policy:
        """
        Bind a principal to a role.

        Args:
            principal_id: ID of the principal to bind
            role_id: Role to grant, with or without the "roles/" prefix

        Returns:
            The stored policy

        Raises:
            PrincipalResolutionError: If the principal's type cannot be determined
            AlreadyBoundError: If the principal already holds the role
        """
        role = normalize_role_id(role_id)
        member_type = self._lookup_principal_type(principal_id)

        logger.debug("Fetching existing policy")
        existing = self._get_existing_policy()
        bindings = to_map(existing)

        if principal_id in bindings.get(role, {}):
            raise AlreadyBoundError(principal_id, role)

        bindings.setdefault(role, {})[principal_id] = member_type
        logger.debug(f"Adding principal {principal_id} ({member_type.value}) to role {role}")
        return self.updater.set_iam_policy(from_map(existing.etag, bindings))

    def delete_binding(self, principal_id: str, role_id: str) -> Policy:
        """
        Remove a principal's binding to a role.

        A role left with no members is removed from the policy.

        Args:
            principal_id: ID of the bound principal
            role_id: Role to revoke, with or without the "roles/" prefix

        Returns:
            The stored policy

        Raises:
            NotBoundError: If the principal does not hold the role
        """
        role = normalize_role_id(role_id)

        logger.debug("Fetching existing policy")
        existing = self._get_existing_policy()
        bindings = to_map(existing)

        members = bindings.get(role)
        if members is None or principal_id not in members:
            logger.debug(f"Principal {principal_id} not found in policy for role {role}")
            raise NotBoundError(principal_id, role)

        del members[principal_id]
        if not members:
            del bindings[role]

        logger.debug(f"Deleting principal {principal_id} from role {role}")
        return self.updater.set_iam_policy(from_map(existing.etag, bindings))

    def _get_existing_policy(self) -> Policy:
        try:
            return self.updater.get_iam_policy()
        except Exception as e:
            raise wrap_backend_error(e, "failed to retrieve existing policy") from e

    def _lookup_principal_type(self, principal_id: str) -> MemberType:
        logger.debug(f"Looking up principal {principal_id}")
        try:
            found = batch_get_principals(
                self.principals, self.organization_id, [principal_id], PrincipalView.BASIC
            )
        except PrincipalResolutionError:
            raise
        except Exception as e:
            raise wrap_backend_error(e, f"failed to look up principal \"{principal_id}\"") from e

        if len(found) != 1:
            raise PrincipalResolutionError(f"failed to look up principal \"{principal_id}\"")

        try:
            member_type = found[0].member_type
        except PrincipalResolutionError as e:
            raise PrincipalResolutionError(f"failed to determine principal type: {e}") from e

        logger.debug(f"Discovered principal type for {principal_id}: {member_type.value}")
        return member_type
