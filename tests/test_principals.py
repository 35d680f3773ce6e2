"""
Tests for the Principal Resolver and principal models.
"""

from unittest.mock import Mock

import pytest

from iam_policy_engine.connectors import MockPrincipalDirectory
from iam_policy_engine.engine.principals import MAX_BATCH_GET_PRINCIPALS_SIZE, batch_get_principals
from iam_policy_engine.errors import BackendError, PrincipalResolutionError
from iam_policy_engine.models import (
    GroupPrincipal,
    MemberType,
    PrincipalType,
    PrincipalView,
    ServicePrincipal,
    UnrecognizedPrincipal,
    UnspecifiedPrincipal,
    UserPrincipal,
    parse_principal,
)


class TestBatchGetPrincipals:
    """Test cases for batch_get_principals."""

    @pytest.fixture
    def ids(self):
        return [f"p{i}" for i in range(2500)]

    @pytest.fixture
    def directory(self, ids):
        return MockPrincipalDirectory([UserPrincipal(id=i) for i in ids])

    def test_batch_limit(self):
        assert MAX_BATCH_GET_PRINCIPALS_SIZE == 1000

    def test_chunks_requests(self, directory, ids):
        principals = batch_get_principals(directory, "org-123", ids, PrincipalView.FULL)

        assert [len(r) for r in directory.requests] == [1000, 1000, 500]
        assert [p.id for p in principals] == ids

    def test_exact_multiple(self, directory, ids):
        batch_get_principals(directory, "org-123", ids[:2000], PrincipalView.FULL)
        assert [len(r) for r in directory.requests] == [1000, 1000]

    def test_failure_discards_partial_results(self, directory, ids):
        directory.fail_on_request = 2

        with pytest.raises(BackendError):
            batch_get_principals(directory, "org-123", ids, PrincipalView.FULL)

        assert len(directory.requests) == 2

    def test_no_ids_makes_no_request(self, directory):
        assert batch_get_principals(directory, "org-123", [], PrincipalView.FULL) == []
        assert directory.requests == []

    def test_passes_scope_and_view(self):
        client = Mock()
        client.batch_get_principals.return_value = []

        batch_get_principals(client, "org-9", ("a", "b"), PrincipalView.BASIC)

        client.batch_get_principals.assert_called_once_with("org-9", ["a", "b"], PrincipalView.BASIC)

    def test_missing_principals_are_skipped(self, directory):
        principals = batch_get_principals(directory, "org-123", ["p1", "ghost"], PrincipalView.FULL)
        assert [p.id for p in principals] == ["p1"]


class TestPrincipalModels:
    """Test cases for parsing principal records."""

    def test_parse_user(self):
        p = parse_principal({
            "id": "u1",
            "type": "PRINCIPAL_TYPE_USER",
            "user": {"full_name": "Ada Lovelace", "email": "ada@example.com"},
        })
        assert isinstance(p, UserPrincipal)
        assert p.display_name == "Ada Lovelace"
        assert p.member_type == MemberType.USER
        assert p.principal_type == PrincipalType.USER

    def test_parse_group(self):
        p = parse_principal({"id": "g1", "type": "PRINCIPAL_TYPE_GROUP", "group": {"display_name": "Platform"}})
        assert isinstance(p, GroupPrincipal)
        assert p.display_name == "Platform"
        assert p.member_type == MemberType.GROUP

    def test_parse_service(self):
        p = parse_principal({"id": "s1", "type": "PRINCIPAL_TYPE_SERVICE", "service": {"name": "ci-bot"}})
        assert isinstance(p, ServicePrincipal)
        assert p.display_name == "ci-bot"
        assert p.member_type == MemberType.SERVICE_PRINCIPAL

    def test_basic_view_has_no_name(self):
        p = parse_principal({"id": "u1", "type": "PRINCIPAL_TYPE_USER"})
        assert p.display_name == ""

    def test_unspecified_never_defaults(self):
        p = parse_principal({"id": "x", "type": "PRINCIPAL_TYPE_UNSPECIFIED"})
        assert isinstance(p, UnspecifiedPrincipal)
        with pytest.raises(PrincipalResolutionError):
            p.member_type
        with pytest.raises(PrincipalResolutionError):
            p.display_name

    def test_unknown_type_is_kept(self):
        p = parse_principal({"id": "x", "type": "PRINCIPAL_TYPE_ROBOT", "robot": {"name": "r2"}})
        assert isinstance(p, UnrecognizedPrincipal)
        assert p.type == "PRINCIPAL_TYPE_ROBOT"
        assert p.display_name == ""
        with pytest.raises(PrincipalResolutionError, match="unsupported principal type"):
            p.member_type

    @pytest.mark.parametrize("record", [{"id": "x"}, {"type": "PRINCIPAL_TYPE_USER"}, {"id": "x", "type": 7}])
    def test_malformed_record(self, record):
        with pytest.raises(PrincipalResolutionError, match="failed to parse principal record"):
            parse_principal(record)
