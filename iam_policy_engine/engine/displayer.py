"""
Policy Presenter for the IAM Policy Engine.

Labels the principals of a policy with their display names and flattens the
policy into one row per (role, member) pair for tabular output.
"""

import logging
from typing import Dict, List, Tuple

from ..errors import PrincipalResolutionError, wrap_backend_error
from ..models import FlattenedBinding, Policy, PrincipalView, UnrecognizedPrincipal, UnspecifiedPrincipal
from .principals import PrincipalClient, batch_get_principals

logger = logging.getLogger(__name__)

# Column headings and the FlattenedBinding field shown under each.
FIELD_TEMPLATES: List[Tuple[str, str]] = [
    ("Role ID", "role_id"),
    ("Principal Name", "principal_name"),
    ("Principal ID", "principal_id"),
    ("Principal Type", "principal_type"),
]


class PolicyDisplayer:
    """Resolves and flattens an IAM policy for display."""

    def __init__(self, organization_id: str, policy: Policy, principals: PrincipalClient):
        self.organization_id = organization_id
        self.policy = policy
        self.principals = principals
        self.principal_names: Dict[str, str] = {}

    def resolve(self) -> "PolicyDisplayer":
        """
        Look up the display name of every principal in the policy.

        Returns:
            self, so construction and resolution can be chained

        Raises:
            PrincipalResolutionError: If a principal has no known type
            BackendError: If the IAM service request fails
        """
        principal_ids = list(dict.fromkeys(
            member.member_id
            for binding in self.policy.bindings
            for member in binding.members
        ))
        if not principal_ids:
            return self

        try:
            principals = batch_get_principals(
                self.principals, self.organization_id, principal_ids, PrincipalView.FULL
            )
        except PrincipalResolutionError:
            raise
        except Exception as e:
            raise wrap_backend_error(e, "failed to resolve principals in IAM policy") from e

        names: Dict[str, str] = {}
        for principal in principals:
            if isinstance(principal, UnspecifiedPrincipal):
                raise PrincipalResolutionError(
                    f"invalid principal type for principal \"{principal.id}\": {principal.type}"
                )
            if isinstance(principal, UnrecognizedPrincipal):
                logger.warning(
                    f"Principal {principal.id} has unknown type {principal.type}, leaving its name empty"
                )
                continue
            names[principal.id] = principal.display_name

        logger.debug(f"Resolved {len(names)} of {len(principal_ids)} principals in policy")
        self.principal_names = names
        return self

    def flatten(self) -> List[FlattenedBinding]:
        """
        Flatten the policy into one row per bound member.

        Rows are sorted by role ID and then principal ID. Principals that were
        not resolved have an empty name.
        """
        rows = [
            FlattenedBinding(
                role_id=binding.role_id,
                principal_name=self.principal_names.get(member.member_id, ""),
                principal_id=member.member_id,
                principal_type=member.member_type.value,
            )
            for binding in self.policy.bindings
            for member in binding.members
        ]
        rows.sort(key=lambda row: (row.role_id, row.principal_id))
        return rows

    @staticmethod
    def field_templates() -> List[Tuple[str, str]]:
        """Get the column headings used when rendering flattened rows."""
        return list(FIELD_TEMPLATES)
