"""
Principal Resolver for the IAM Policy Engine.

Looks up principal records in the IAM service, splitting large requests
into batches the service accepts.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Sequence

from ..models import Principal, PrincipalView

logger = logging.getLogger(__name__)

# Maximum number of principals the IAM service returns for one request.
MAX_BATCH_GET_PRINCIPALS_SIZE = 1000


class PrincipalClient(ABC):
    """Abstract client for the IAM service's batch principal lookup."""

    @abstractmethod
    def batch_get_principals(self, organization_id: str, principal_ids: Sequence[str],
                             view: PrincipalView) -> List[Principal]:
        """
        Look up at most MAX_BATCH_GET_PRINCIPALS_SIZE principals in one request.

        Args:
            organization_id: Organization the principals belong to
            principal_ids: Principal IDs to look up
            view: Level of detail to return

        Returns:
            Principal records found by the service
        """
        pass


def batch_get_principals(client: PrincipalClient, organization_id: str,
                         principal_ids: Sequence[str], view: PrincipalView) -> List[Principal]:
    """
    Retrieve the requested principals, issuing one request per batch.

    Batches are requested in order and their results concatenated. If any
    batch fails the error is raised and nothing is returned.

    Args:
        client: IAM service client
        organization_id: Organization the principals belong to
        principal_ids: Principal IDs to look up
        view: Level of detail to return

    Returns:
        All principal records, in request order
    """
    principal_ids = list(principal_ids)
    all_principals: List[Principal] = []

    for start in range(0, len(principal_ids), MAX_BATCH_GET_PRINCIPALS_SIZE):
        batch = principal_ids[start:start + MAX_BATCH_GET_PRINCIPALS_SIZE]
        logger.debug(f"Requesting {len(batch)} principals from organization {organization_id}")
        all_principals.extend(client.batch_get_principals(organization_id, batch, view))

    return all_principals
