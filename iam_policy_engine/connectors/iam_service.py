"""
IAM Service Connector for the IAM Policy Engine.

Looks up principals (users, groups and service principals) by ID.
"""

import logging
from typing import List, Sequence

from ..engine.principals import PrincipalClient
from ..models import Principal, PrincipalView, parse_principal
from .base_connector import ApiClient

logger = logging.getLogger(__name__)

API_PREFIX = "iam/2019-12-10"


class IamServiceClient(PrincipalClient):
    """PrincipalClient backed by the IAM service's batch lookup endpoint."""

    def __init__(self, client: ApiClient):
        self.client = client

    def batch_get_principals(self, organization_id: str, principal_ids: Sequence[str],
                             view: PrincipalView) -> List[Principal]:
        payload = self.client.get(
            f"{API_PREFIX}/organizations/{organization_id}/principals:batchGet",
            params={"principal_ids": list(principal_ids), "view": view.value},
        )
        principals = [parse_principal(p) for p in payload.get("principals") or []]
        logger.debug(f"IAM service returned {len(principals)} of {len(principal_ids)} principals")
        return principals
