"""
Mock Connectors for the IAM Policy Engine.

Provides in-memory policy storage and principal lookup for testing and
development without requiring real API access. State can optionally be
persisted to a JSON file so it survives across CLI invocations.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from ..engine.principals import PrincipalClient
from ..engine.updater import ResourceUpdater
from ..errors import BackendError, PolicyConflictError
from ..models import Policy, Principal, PrincipalView, Role, parse_principal

logger = logging.getLogger(__name__)


def _read_state(storage_path: Optional[Path]) -> Dict[str, Any]:
    if storage_path is None or not storage_path.exists():
        return {}
    with open(storage_path, encoding='utf-8') as f:
        return json.load(f)


def _write_state(storage_path: Optional[Path], state: Dict[str, Any]):
    if storage_path is None:
        return
    storage_path.parent.mkdir(parents=True, exist_ok=True)
    with open(storage_path, "w", encoding='utf-8') as f:
        json.dump(state, f, indent=2)


class MockResourceUpdater(ResourceUpdater):
    """
    In-memory ResourceUpdater with etag checking.

    Every successful write stores the policy under a new etag. A write whose
    etag differs from the stored one is rejected with PolicyConflictError,
    as the real resource manager does.
    """

    def __init__(self, policy: Optional[Policy] = None, resource_key: str = "default",
                 storage_path: Optional[Union[str, Path]] = None):
        """
        Initialize the mock updater.

        Args:
            policy: Initial policy. Its etag is kept if set.
            resource_key: Key of this resource in the state file
            storage_path: JSON file holding mock state, None for memory only
        """
        self.resource_key = resource_key
        self.storage_path = Path(storage_path) if storage_path else None
        self.get_calls = 0
        self.set_requests: List[Policy] = []

        stored = _read_state(self.storage_path).get("policies", {}).get(resource_key)
        if policy is not None:
            self.policy = policy.model_copy(deep=True)
        elif stored is not None:
            self.policy = Policy.model_validate(stored)
        else:
            self.policy = Policy()

        if not self.policy.etag:
            self.policy.etag = "1"

    def get_iam_policy(self) -> Policy:
        self.get_calls += 1
        return self.policy.model_copy(deep=True)

    def set_iam_policy(self, policy: Policy) -> Policy:
        self.set_requests.append(policy.model_copy(deep=True))

        if policy.etag != self.policy.etag:
            raise PolicyConflictError(
                f"etag \"{policy.etag}\" does not match current policy etag \"{self.policy.etag}\"",
                status_code=409,
            )

        stored = policy.model_copy(deep=True)
        stored.etag = self._next_etag()
        self.policy = stored
        self._save_state()

        logger.info(f"Mock stored IAM policy for {self.resource_key} (etag={stored.etag})")
        return stored.model_copy(deep=True)

    @property
    def set_calls(self) -> int:
        return len(self.set_requests)

    def _next_etag(self) -> str:
        try:
            return str(int(self.policy.etag) + 1)
        except ValueError:
            return "1"

    def _save_state(self):
        if self.storage_path is None:
            return
        state = _read_state(self.storage_path)
        state.setdefault("policies", {})[self.resource_key] = self.policy.model_dump(mode="json")
        _write_state(self.storage_path, state)


class MockPrincipalDirectory(PrincipalClient):
    """In-memory PrincipalClient that records every lookup it receives."""

    def __init__(self, principals: Optional[Sequence[Principal]] = None,
                 storage_path: Optional[Union[str, Path]] = None):
        """
        Initialize the mock directory.

        Args:
            principals: Known principals. If None, they are read from storage_path.
            storage_path: JSON file holding mock state under "principals"
        """
        self.requests: List[List[str]] = []
        self.fail_on_request: Optional[int] = None

        if principals is None:
            records = _read_state(Path(storage_path) if storage_path else None).get("principals", [])
            principals = [parse_principal(r) for r in records]
        self.principals: Dict[str, Principal] = {p.id: p for p in principals}

    def add(self, principal: Principal):
        self.principals[principal.id] = principal

    def batch_get_principals(self, organization_id: str, principal_ids: Sequence[str],
                             view: PrincipalView) -> List[Principal]:
        self.requests.append(list(principal_ids))
        if self.fail_on_request is not None and len(self.requests) == self.fail_on_request:
            raise BackendError(f"mock failure on request {self.fail_on_request}", status_code=500)

        found = []
        for principal_id in principal_ids:
            principal = self.principals.get(principal_id)
            if principal is None:
                continue
            if view == PrincipalView.BASIC:
                principal = principal.__class__(id=principal.id, type=principal.type)
            found.append(principal)
        return found


def mock_list_roles(storage_path: Optional[Union[str, Path]] = None) -> List[Role]:
    """List the roles recorded under "roles" in a mock state file."""
    records = _read_state(Path(storage_path) if storage_path else None).get("roles", [])
    return [Role.model_validate(r) for r in records]
