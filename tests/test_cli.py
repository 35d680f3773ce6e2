"""
Tests for the iampolicyctl command line interface, run against the mock backend.
"""

import json

import pytest
from click.testing import CliRunner

from iam_policy_engine.cli.iampolicyctl import cli
from iam_policy_engine.config import ENV_OVERRIDES

MOCK_STATE = {
    "principals": [
        {"id": "u1", "type": "PRINCIPAL_TYPE_USER", "user": {"full_name": "Ada Lovelace"}},
        {"id": "g1", "type": "PRINCIPAL_TYPE_GROUP", "group": {"display_name": "Platform"}},
    ],
    "roles": [
        {"id": "roles/admin", "name": "Admin"},
        {"id": "roles/viewer", "name": "Viewer"},
    ],
    "policies": {
        "organization/org-123": {
            "bindings": [{
                "role_id": "roles/viewer",
                "members": [{"member_id": "u1", "member_type": "USER"}],
            }],
            "etag": "3",
        },
    },
}


class TestIamPolicyCtl:
    """Test cases for iampolicyctl commands."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for env_var in ENV_OVERRIDES:
            monkeypatch.delenv(env_var, raising=False)

    @pytest.fixture
    def state_file(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text(json.dumps(MOCK_STATE))
        return path

    @pytest.fixture
    def config_file(self, tmp_path, state_file):
        path = tmp_path / "profile.yaml"
        path.write_text(
            "organization_id: org-123\n"
            "project_id: proj-1\n"
            f"mock_state_file: {state_file}\n"
        )
        return path

    @pytest.fixture
    def run(self, config_file):
        runner = CliRunner()

        def invoke(*args, config=config_file):
            return runner.invoke(cli, ["--config", str(config), "--mock", *args])

        return invoke

    def stored_policy(self, state_file, key="organization/org-123"):
        return json.loads(state_file.read_text())["policies"][key]

    def test_read_policy_table(self, run):
        result = run("organizations", "read-policy")

        assert result.exit_code == 0
        assert "roles/viewer" in result.output
        assert "Ada Lovelace" in result.output

    def test_read_policy_json(self, run):
        result = run("organizations", "read-policy", "--format", "json")

        assert result.exit_code == 0
        assert '"etag": "3"' in result.output

    def test_read_empty_policy(self, run):
        result = run("projects", "read-policy")

        assert result.exit_code == 0
        assert "No bindings found" in result.output

    def test_add_binding(self, run, state_file):
        result = run("organizations", "add-binding", "--member", "g1", "--role", "viewer")

        assert result.exit_code == 0
        assert 'Principal "g1" bound to role "viewer".' in result.output

        stored = self.stored_policy(state_file)
        assert stored["etag"] == "4"
        assert stored["bindings"][0]["members"] == [
            {"member_id": "g1", "member_type": "GROUP"},
            {"member_id": "u1", "member_type": "USER"},
        ]

    def test_add_existing_binding(self, run, state_file):
        result = run("organizations", "add-binding", "--member", "u1", "--role", "roles/viewer")

        assert result.exit_code == 1
        assert "Error:" in result.output
        assert self.stored_policy(state_file)["etag"] == "3"

    def test_add_unknown_principal(self, run):
        result = run("organizations", "add-binding", "--member", "ghost", "--role", "viewer")

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_delete_binding(self, run, state_file):
        result = run("organizations", "delete-binding", "--member", "u1", "--role", "roles/viewer")

        assert result.exit_code == 0
        assert 'Principal "u1" unbound from role "roles/viewer".' in result.output
        assert self.stored_policy(state_file)["bindings"] == []

    def test_delete_missing_binding(self, run):
        result = run("organizations", "delete-binding", "--member", "g1", "--role", "viewer")

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_set_policy(self, run, state_file, tmp_path):
        policy_file = tmp_path / "policy.json"
        policy_file.write_text(json.dumps({"bindings": [{
            "role_id": "roles/admin",
            "members": [{"member_id": "g1", "member_type": "GROUP"}],
        }]}))

        result = run("projects", "set-policy", "--policy-file", str(policy_file))

        assert result.exit_code == 0
        assert "IAM Policy successfully set." in result.output
        assert self.stored_policy(state_file, "project/proj-1")["bindings"][0]["role_id"] == "roles/admin"

    def test_set_policy_stale_etag(self, run, tmp_path):
        policy_file = tmp_path / "policy.json"
        policy_file.write_text(json.dumps({"bindings": [], "etag": "1"}))

        result = run("organizations", "set-policy", "--policy-file", str(policy_file))

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_set_policy_bad_file(self, run, tmp_path):
        result = run("organizations", "set-policy", "--policy-file", str(tmp_path / "missing.json"))

        assert result.exit_code == 1
        assert "failed to open policy file" in result.output

    def test_group_policy(self, run, state_file):
        result = run("groups", "add-binding", "-g", "platform", "--member", "u1", "--role", "admin")

        assert result.exit_code == 0
        stored = self.stored_policy(state_file, "group/iam/organization/org-123/group/platform")
        assert stored["bindings"][0]["role_id"] == "roles/admin"

    def test_group_requires_name(self, run):
        result = run("groups", "read-policy")
        assert result.exit_code != 0

    def test_missing_organization(self, run, tmp_path):
        config = tmp_path / "empty.yaml"
        config.write_text("")

        result = run("projects", "read-policy", config=config)

        assert result.exit_code == 1
        assert "Organization ID must be configured" in result.output

    def test_roles_list(self, run):
        result = run("roles", "list")

        assert result.exit_code == 0
        assert "roles/admin" in result.output
        assert "roles/viewer" in result.output
