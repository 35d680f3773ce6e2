"""
Tests for the Policy Presenter.
"""

from unittest.mock import Mock

import pytest

from iam_policy_engine.connectors import MockPrincipalDirectory
from iam_policy_engine.engine import PolicyDisplayer
from iam_policy_engine.errors import BackendError, PrincipalResolutionError
from iam_policy_engine.models import (
    FlattenedBinding,
    GroupDetails,
    GroupPrincipal,
    MemberType,
    Policy,
    PolicyBinding,
    PolicyMember,
    PrincipalView,
    ServiceDetails,
    ServicePrincipal,
    UnrecognizedPrincipal,
    UnspecifiedPrincipal,
    UserDetails,
    UserPrincipal,
)


class TestPolicyDisplayer:
    """Test cases for PolicyDisplayer."""

    @pytest.fixture
    def policy(self):
        return Policy(etag="v1", bindings=[
            PolicyBinding(role_id="roles/viewer", members=[
                PolicyMember(member_id="u2", member_type=MemberType.GROUP),
                PolicyMember(member_id="u1", member_type=MemberType.USER),
            ]),
            PolicyBinding(role_id="roles/admin", members=[
                PolicyMember(member_id="u1", member_type=MemberType.USER),
                PolicyMember(member_id="sp1", member_type=MemberType.SERVICE_PRINCIPAL),
            ]),
        ])

    @pytest.fixture
    def directory(self):
        return MockPrincipalDirectory([
            UserPrincipal(id="u1", user=UserDetails(full_name="Ada Lovelace")),
            GroupPrincipal(id="u2", group=GroupDetails(display_name="Platform")),
            ServicePrincipal(id="sp1", service=ServiceDetails(name="ci-bot")),
        ])

    def test_resolve_deduplicates_ids(self, policy, directory):
        PolicyDisplayer("org-123", policy, directory).resolve()

        assert len(directory.requests) == 1
        assert sorted(directory.requests[0]) == ["sp1", "u1", "u2"]

    def test_resolve_uses_full_view(self, policy):
        principals = Mock()
        principals.batch_get_principals.return_value = []

        PolicyDisplayer("org-123", policy, principals).resolve()

        _, _, view = principals.batch_get_principals.call_args[0]
        assert view == PrincipalView.FULL

    def test_flatten(self, policy, directory):
        rows = PolicyDisplayer("org-123", policy, directory).resolve().flatten()

        assert rows == [
            FlattenedBinding(role_id="roles/admin", principal_name="ci-bot",
                             principal_id="sp1", principal_type="SERVICE_PRINCIPAL"),
            FlattenedBinding(role_id="roles/admin", principal_name="Ada Lovelace",
                             principal_id="u1", principal_type="USER"),
            FlattenedBinding(role_id="roles/viewer", principal_name="Ada Lovelace",
                             principal_id="u1", principal_type="USER"),
            FlattenedBinding(role_id="roles/viewer", principal_name="Platform",
                             principal_id="u2", principal_type="GROUP"),
        ]

    def test_unresolved_principal_has_empty_name(self, policy):
        directory = MockPrincipalDirectory([UserPrincipal(id="u1", user=UserDetails(full_name="Ada"))])

        rows = PolicyDisplayer("org-123", policy, directory).resolve().flatten()

        names = {row.principal_id: row.principal_name for row in rows}
        assert names == {"u1": "Ada", "u2": "", "sp1": ""}

    def test_unspecified_principal_fails(self, policy):
        directory = MockPrincipalDirectory([UnspecifiedPrincipal(id="u2")])

        with pytest.raises(PrincipalResolutionError, match="invalid principal type for principal \"u2\""):
            PolicyDisplayer("org-123", policy, directory).resolve()

    def test_unrecognized_principal_has_empty_name(self, policy, directory):
        directory.add(UnrecognizedPrincipal(id="u2", type="PRINCIPAL_TYPE_ROBOT"))

        rows = PolicyDisplayer("org-123", policy, directory).resolve().flatten()

        names = {row.principal_id: row.principal_name for row in rows}
        assert names == {"u1": "Ada Lovelace", "u2": "", "sp1": "ci-bot"}

    def test_backend_failure(self, policy):
        principals = Mock()
        principals.batch_get_principals.side_effect = BackendError("[500] boom", status_code=500)

        with pytest.raises(BackendError, match="failed to resolve principals in IAM policy"):
            PolicyDisplayer("org-123", policy, principals).resolve()

    def test_empty_policy_makes_no_request(self, directory):
        displayer = PolicyDisplayer("org-123", Policy(etag="v1"), directory).resolve()

        assert directory.requests == []
        assert displayer.flatten() == []

    def test_field_templates(self):
        assert [heading for heading, _ in PolicyDisplayer.field_templates()] == [
            "Role ID", "Principal Name", "Principal ID", "Principal Type",
        ]
