"""
Resource Manager Connector for the IAM Policy Engine.

Provides ResourceUpdater implementations for organizations, projects and
groups, and the organization role listing used for role discovery.
"""

import logging
import re
from typing import Any, Dict, List

from pydantic import ValidationError

from ..engine.updater import ResourceUpdater
from ..errors import BackendError, wrap_backend_error
from ..models import IGNORE_EXTRA, Policy, Role
from .base_connector import ApiClient

logger = logging.getLogger(__name__)

API_PREFIX = "resource-manager/2019-12-10"

GROUP_RESOURCE_NAME = re.compile(r"^iam/organization/.+/group/.+$")


def group_resource_name(group_name: str, organization_id: str) -> str:
    """
    Get the resource name of a group.

    Args:
        group_name: Full resource name or just the group's name
        organization_id: Organization owning the group

    Returns:
        The resource name, iam/organization/ORG_ID/group/GROUP_NAME
    """
    if GROUP_RESOURCE_NAME.match(group_name):
        return group_name
    return f"iam/organization/{organization_id}/group/{group_name}"


def decode_policy(payload: Dict[str, Any], resource_kind: str) -> Policy:
    """
    Decode the policy carried by a resource manager reply.

    Fields the models do not know are ignored, so newer API versions can add
    to the policy without breaking reads.

    Raises:
        BackendError: If the reply does not hold a valid policy
    """
    try:
        return Policy.model_validate(payload.get("policy") or {}, context={IGNORE_EXTRA: True})
    except ValidationError as e:
        raise BackendError(f"failed to decode {resource_kind} IAM policy: {e}") from e


class _PathPolicyUpdater(ResourceUpdater):
    """Updater for resources addressed by a path segment and ID."""

    resource_kind = ""
    collection = ""

    def __init__(self, client: ApiClient, resource_id: str):
        self.client = client
        self.resource_id = resource_id

    def get_iam_policy(self) -> Policy:
        path = f"{API_PREFIX}/{self.collection}/{self.resource_id}:getIamPolicy"
        try:
            payload = self.client.get(path)
        except Exception as e:
            raise wrap_backend_error(e, f"failed to retrieve {self.resource_kind} IAM policy") from e
        return decode_policy(payload, self.resource_kind)

    def set_iam_policy(self, policy: Policy) -> Policy:
        path = f"{API_PREFIX}/{self.collection}/{self.resource_id}:setIamPolicy"
        try:
            payload = self.client.put(path, {"policy": policy.model_dump(mode="json")})
        except Exception as e:
            raise wrap_backend_error(e, f"failed to set {self.resource_kind} IAM policy") from e

        logger.info(f"Set IAM policy for {self.resource_kind} {self.resource_id}")
        return decode_policy(payload, self.resource_kind)


class OrganizationPolicyUpdater(_PathPolicyUpdater):
    """Reads and writes the IAM policy of an organization."""
    resource_kind = "organization"
    collection = "organizations"


class ProjectPolicyUpdater(_PathPolicyUpdater):
    """Reads and writes the IAM policy of a project."""
    resource_kind = "project"
    collection = "projects"


class GroupPolicyUpdater(ResourceUpdater):
    """Reads and writes the IAM policy of a group, addressed by resource name."""

    def __init__(self, client: ApiClient, resource_name: str):
        self.client = client
        self.resource_name = resource_name

    def get_iam_policy(self) -> Policy:
        try:
            payload = self.client.get(
                f"{API_PREFIX}/resource:getIamPolicy",
                params={"resource_name": self.resource_name},
            )
        except Exception as e:
            raise wrap_backend_error(e, "failed to retrieve group IAM policy") from e
        return decode_policy(payload, "group")

    def set_iam_policy(self, policy: Policy) -> Policy:
        body = {
            "resource_name": self.resource_name,
            "policy": policy.model_dump(mode="json"),
        }
        try:
            payload = self.client.put(f"{API_PREFIX}/resource:setIamPolicy", body)
        except Exception as e:
            raise wrap_backend_error(e, "failed to set group IAM policy") from e

        logger.info(f"Set IAM policy for group {self.resource_name}")
        return decode_policy(payload, "group")


def list_roles(client: ApiClient, organization_id: str) -> List[Role]:
    """
    List the roles available in an organization, following pagination.

    Args:
        client: API client
        organization_id: Organization to list roles for

    Returns:
        All roles of the organization
    """
    path = f"{API_PREFIX}/organizations/{organization_id}/roles"
    params = {}
    roles: List[Role] = []

    while True:
        try:
            payload = client.get(path, params=params or None)
        except Exception as e:
            raise wrap_backend_error(e, "failed to list organization roles") from e

        try:
            roles.extend(Role.model_validate(r) for r in payload.get("roles") or [])
        except ValidationError as e:
            raise BackendError(f"failed to decode organization roles: {e}") from e

        next_token = (payload.get("pagination") or {}).get("next_page_token")
        if not next_token:
            break
        params = {"pagination.next_page_token": next_token}

    return roles
