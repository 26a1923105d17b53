"""Unit tests for baselinectl.py - the command-line interface."""

import json
import os
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from baseline.base import AuthError
from baseline.documents import BranchProtection, encode
from baselinectl import cli

WORKFLOW = ".github/workflows/dependabot-auto-merge.yml"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def env():
    """Isolated environment for config loading."""
    env_vars = {
        "GITHUB_TOKEN": "ghp_test",
        "GITHUB_ORG": "acme",
        "LOG_LEVEL": "CRITICAL",
    }
    with patch.dict(os.environ, env_vars, clear=True):
        yield env_vars


@pytest.fixture
def github(fake_client, sample_repository):
    """Patch the GitHub client with an in-memory fresh repository."""
    client = fake_client(
        properties={"repository": sample_repository, "allow_auto_merge": False}
    )
    with patch("baselinectl.GitHubClient") as client_class:
        client_class.from_config.return_value = client
        yield client


@pytest.fixture
def aws(fake_client):
    """Patch the AWS client with an in-memory account without a DNS zone."""
    client = fake_client()
    with patch("baselinectl.AWSClient") as client_class:
        client_class.from_config.return_value = client
        client.client_class = client_class
        yield client


class TestRepoCommand:
    """Tests for `baselinectl repo`."""

    def test_fresh_repository(self, runner, env, github):
        result = runner.invoke(cli, ["repo", "widget"])

        assert result.exit_code == 0, result.output
        assert "auto-merge: applied" in result.output
        assert github.written == ["allow_auto_merge", "branch_protection"]

    def test_strict_with_missing_workflow(self, runner, env, github):
        result = runner.invoke(cli, ["repo", "widget", "--strict"])
        assert result.exit_code == 5

    def test_extra_workflows_and_template(self, runner, env, github):
        github.properties[f"contents/{WORKFLOW}"] = {"sha": "abc"}
        result = runner.invoke(
            cli,
            [
                "repo",
                "widget",
                "develop",
                "--workflow",
                "ci.yml",
                "--template-repo",
                "blueprint",
            ],
        )

        assert result.exit_code == 0, result.output
        assert "Copy from blueprint: ci.yml" in result.output

    def test_owner_option_overrides_env(self, runner, env, github):
        result = runner.invoke(
            cli, ["--output", "json", "repo", "widget", "--owner", "other"]
        )
        data = json.loads(result.stdout)
        assert data["target"] == "other/widget@main"

    def test_dry_run(self, runner, env, github):
        result = runner.invoke(cli, ["repo", "widget", "--dry-run"])

        assert result.exit_code == 0
        assert github.writes == []
        assert "would change" in result.output

    def test_invalid_repository_name(self, runner, env, github):
        result = runner.invoke(cli, ["repo", "bad name"])
        assert result.exit_code == 2
        assert "Invalid repository name" in result.output

    def test_missing_repository(self, runner, env, github):
        github.exists = False
        result = runner.invoke(cli, ["repo", "widget"])
        assert result.exit_code == 4

    def test_rejected_credentials(self, runner, env, github):
        github.auth_error = AuthError("Bad credentials")
        result = runner.invoke(cli, ["repo", "widget"])
        assert result.exit_code == 3
        assert "Bad credentials" in result.output

    def test_protection_file(self, runner, env, github, tmp_path):
        path = tmp_path / "protection.yaml"
        path.write_text(
            "required_status_checks:\n"
            "  strict: true\n"
            "  contexts: [test]\n"
        )

        result = runner.invoke(
            cli, ["repo", "widget", "--protection-file", str(path)]
        )

        assert result.exit_code == 0, result.output
        checks = {"strict": True, "contexts": ["test"]}
        expected = encode(BranchProtection(required_status_checks=checks))
        assert github.properties["branch_protection"] == expected

    def test_protection_file_with_unknown_field(self, runner, env, github, tmp_path):
        path = tmp_path / "protection.json"
        path.write_text(json.dumps({"allow_force_push": False}))

        result = runner.invoke(
            cli, ["repo", "widget", "--protection-file", str(path)]
        )

        assert result.exit_code == 2
        assert github.writes == []


class TestRedirectsCommand:
    """Tests for `baselinectl redirects`."""

    def test_missing_hosted_zone_still_succeeds(self, runner, env, aws):
        result = runner.invoke(cli, ["redirects", "--domain", "example.com"])

        assert result.exit_code == 0, result.output
        assert "dns-alias: not found" in result.output
        assert "Select hosted zone: example.com" in result.output
        assert "alias_record" not in aws.written

    def test_strict_missing_hosted_zone(self, runner, env, aws):
        result = runner.invoke(
            cli, ["redirects", "--domain", "example.com", "--strict"]
        )
        assert result.exit_code == 5

    def test_defaults(self, runner, env, aws):
        result = runner.invoke(cli, ["--output", "json", "redirects"])
        data = json.loads(result.stdout)
        assert data["target"] == "get.hiveforge.sh (us-east-1)"
        aws.client_class.from_config.assert_called_once()
        assert aws.client_class.from_config.call_args.kwargs["region"] == "us-east-1"

    def test_profile_option(self, runner, env, aws):
        runner.invoke(cli, ["redirects", "--profile", "forge"])
        aws_config = aws.client_class.from_config.call_args.args[0]
        assert aws_config.profile == "forge"

    def test_rules_file(self, runner, env, aws, tmp_path):
        path = tmp_path / "rules.yml"
        path.write_text(
            "rules:\n"
            "  - prefix: docs\n"
            "    host: example.org\n"
            "    target: handbook/\n"
        )

        result = runner.invoke(
            cli, ["redirects", "get", "eu-central-1", "--rules-file", str(path)]
        )

        assert result.exit_code == 0, result.output
        rules = aws.properties["website"]["RoutingRules"]
        assert rules[0]["Condition"] == {"KeyPrefixEquals": "docs"}

    def test_empty_rules_file(self, runner, env, aws, tmp_path):
        path = tmp_path / "rules.json"
        path.write_text("[]")
        result = runner.invoke(cli, ["redirects", "--rules-file", str(path)])
        assert result.exit_code == 2

    def test_invalid_region(self, runner, env, aws):
        result = runner.invoke(cli, ["redirects", "get", "moon"])
        assert result.exit_code == 2
        assert "Invalid AWS region" in result.output
        aws.client_class.from_config.assert_not_called()

    def test_unknown_profile(self, runner, env, aws):
        aws.client_class.from_config.side_effect = AuthError("AWS profile not found")
        result = runner.invoke(cli, ["redirects", "--profile", "missing"])
        assert result.exit_code == 3


class TestListCommand:
    """Tests for `baselinectl list`."""

    def test_lists_builtin_reconcilers(self, runner, env):
        result = runner.invoke(cli, ["list"])
        assert result.exit_code == 0
        assert "repo-standards" in result.output
        assert "redirects" in result.output

    def test_json_output(self, runner, env):
        result = runner.invoke(cli, ["-o", "json", "list"])
        names = [info["name"] for info in json.loads(result.stdout)]
        assert names == ["repo-standards", "redirects"]
