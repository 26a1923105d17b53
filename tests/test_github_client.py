"""Unit tests for the GitHub resource client."""

from unittest.mock import MagicMock

import pytest
import requests

from baseline.base import AuthError, ProviderError, RepositoryRef
from baseline.clients.base import ResourceClient
from baseline.clients.github import GitHubClient
from baseline.clients.github.client import normalize_protection
from config import GitHubConfig

API = "https://api.github.com"


def make_response(status_code=200, json_data=None, headers=None, text=""):
    """Build a mock requests.Response."""
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    response.text = text
    response.content = b"{}" if json_data is not None else b""
    if json_data is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def session():
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def client(session):
    return GitHubClient(token="ghp_test", session=session)


@pytest.fixture
def ref():
    return RepositoryRef(owner="acme", name="widget", branch="main")


class TestGitHubClientInit:
    """Tests for client construction."""

    def test_session_headers(self, client, session):
        assert session.headers["Authorization"] == "Bearer ghp_test"
        assert session.headers["Accept"] == "application/vnd.github+json"
        assert session.headers["X-GitHub-Api-Version"] == "2022-11-28"
        assert client.name == "github"

    def test_no_token_no_authorization_header(self, session):
        GitHubClient(token="", session=session)
        assert "Authorization" not in session.headers

    def test_from_config(self):
        cfg = GitHubConfig(
            token="ghp_cfg", api_base_url="https://ghe.example.com/api/v3/", timeout=5
        )
        client = GitHubClient.from_config(cfg)
        assert client.api_base_url == "https://ghe.example.com/api/v3"
        assert client.timeout == 5
        assert client.session.headers["Authorization"] == "Bearer ghp_cfg"


class TestResourceClientInterface:
    """Tests for the abstract client interface."""

    def test_abstract_methods(self):
        assert ResourceClient.__abstractmethods__ == {
            "name",
            "verify_credentials",
            "resource_exists",
            "read_property",
            "write_property",
        }

    def test_construction_is_left_to_each_client(self):
        assert not hasattr(ResourceClient, "from_config")
        assert hasattr(GitHubClient, "from_config")


class TestVerifyCredentials:
    """Tests for verify_credentials()."""

    def test_returns_login(self, client, session):
        session.request.return_value = make_response(200, {"login": "octocat"})
        assert client.verify_credentials() == "octocat"
        session.request.assert_called_once_with(
            "GET", f"{API}/user", params=None, json=None, timeout=10
        )

    def test_missing_token(self, session):
        client = GitHubClient(token="", session=session)
        with pytest.raises(AuthError) as exc_info:
            client.verify_credentials()
        assert "GITHUB_TOKEN" in str(exc_info.value)
        session.request.assert_not_called()

    def test_rejected_token(self, client, session):
        session.request.return_value = make_response(
            401, {"message": "Bad credentials"}
        )
        with pytest.raises(AuthError) as exc_info:
            client.verify_credentials()
        assert "Bad credentials" in str(exc_info.value)


class TestErrorTranslation:
    """Tests for HTTP error translation."""

    def test_forbidden_credential_check_is_auth_error(self, client, session):
        session.request.return_value = make_response(
            403, {"message": "Resource not accessible by integration"}
        )
        with pytest.raises(AuthError):
            client.verify_credentials()

    def test_forbidden_repository_lookup_is_auth_error(self, client, session, ref):
        session.request.return_value = make_response(
            403, {"message": "Resource not accessible by integration"}
        )
        with pytest.raises(AuthError):
            client.resource_exists(ref)

    def test_forbidden_property_write_is_provider_error(self, client, session, ref):
        """Test that a plan-restricted feature fails only that property."""
        session.request.return_value = make_response(
            403,
            {
                "message": "Upgrade to GitHub Pro or make this repository "
                "public to enable this feature."
            },
        )
        with pytest.raises(ProviderError) as exc_info:
            client.write_property(ref, "branch_protection", {})
        assert exc_info.value.status_code == 403
        assert "Upgrade to GitHub Pro" in str(exc_info.value)

    def test_forbidden_property_read_is_provider_error(self, client, session, ref):
        session.request.return_value = make_response(
            403, {"message": "Resource not accessible by integration"}
        )
        with pytest.raises(ProviderError):
            client.read_property(ref, "branch_protection")

    def test_rate_limit_is_provider_error(self, client, session, ref):
        session.request.return_value = make_response(
            403,
            {"message": "API rate limit exceeded"},
            headers={"X-RateLimit-Remaining": "0"},
        )
        with pytest.raises(ProviderError) as exc_info:
            client.read_property(ref, "allow_auto_merge")
        assert exc_info.value.status_code == 403

    def test_server_error(self, client, session, ref):
        session.request.return_value = make_response(502, text="Bad Gateway")
        with pytest.raises(ProviderError) as exc_info:
            client.read_property(ref, "branch_protection")
        assert exc_info.value.status_code == 502
        assert "Bad Gateway" in str(exc_info.value)

    def test_validation_error(self, client, session, ref):
        session.request.return_value = make_response(
            422, {"message": "Validation Failed"}
        )
        with pytest.raises(ProviderError) as exc_info:
            client.write_property(ref, "branch_protection", {})
        assert exc_info.value.status_code == 422

    def test_timeout(self, client, session, ref):
        session.request.side_effect = requests.exceptions.Timeout()
        with pytest.raises(ProviderError) as exc_info:
            client.resource_exists(ref)
        assert "Timeout" in str(exc_info.value)

    def test_connection_error(self, client, session, ref):
        session.request.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(ProviderError):
            client.resource_exists(ref)


class TestReadProperty:
    """Tests for read_property()."""

    def test_resource_exists(self, client, session, ref):
        session.request.return_value = make_response(200, {"name": "widget"})
        assert client.resource_exists(ref) is True

    def test_resource_missing(self, client, session, ref):
        session.request.return_value = make_response(404, {"message": "Not Found"})
        assert client.resource_exists(ref) is False

    def test_allow_auto_merge(self, client, session, ref):
        session.request.return_value = make_response(200, {"allow_auto_merge": True})
        state = client.read_property(ref, "allow_auto_merge")
        assert state.exists is True
        assert state.value is True

    def test_unprotected_branch(self, client, session, ref):
        session.request.return_value = make_response(
            404, {"message": "Branch not protected"}
        )
        state = client.read_property(ref, "branch_protection")
        assert state.exists is False
        session.request.assert_called_once_with(
            "GET",
            f"{API}/repos/acme/widget/branches/main/protection",
            params=None,
            json=None,
            timeout=10,
        )

    def test_branch_protection_is_normalized(self, client, session, ref):
        session.request.return_value = make_response(
            200,
            {
                "url": "https://api.github.com/...",
                "enforce_admins": {"enabled": False},
                "allow_force_pushes": {"enabled": False},
                "allow_deletions": {"enabled": True},
            },
        )
        state = client.read_property(ref, "branch_protection")
        assert state.value["allow_deletions"] is True
        assert state.value["required_status_checks"] is None
        assert "url" not in state.value

    def test_contents_reads_target_branch(self, client, session):
        ref = RepositoryRef(owner="acme", name="widget", branch="develop")
        session.request.return_value = make_response(200, {"sha": "abc"})

        state = client.read_property(ref, "contents/.github/workflows/ci.yml")

        assert state.exists is True
        session.request.assert_called_once_with(
            "GET",
            f"{API}/repos/acme/widget/contents/.github/workflows/ci.yml",
            params={"ref": "develop"},
            json=None,
            timeout=10,
        )

    def test_unknown_property(self, client, ref):
        with pytest.raises(ValueError):
            client.read_property(ref, "topics")


class TestWriteProperty:
    """Tests for write_property()."""

    def test_enable_auto_merge(self, client, session, ref):
        session.request.return_value = make_response(200, {"allow_auto_merge": True})
        client.write_property(ref, "allow_auto_merge", True)
        session.request.assert_called_once_with(
            "PATCH",
            f"{API}/repos/acme/widget",
            params=None,
            json={"allow_auto_merge": True},
            timeout=10,
        )

    def test_put_protection_quotes_branch(self, client, session):
        ref = RepositoryRef(owner="acme", name="widget", branch="release/1.0")
        session.request.return_value = make_response(200, {})

        client.write_property(ref, "branch_protection", {"enforce_admins": False})

        method, url = session.request.call_args[0]
        assert method == "PUT"
        assert url == f"{API}/repos/acme/widget/branches/release%2F1.0/protection"

    def test_read_only_property(self, client, ref):
        with pytest.raises(ValueError):
            client.write_property(ref, "repository", {})


class TestNormalizeProtection:
    """Tests for normalize_protection()."""

    def test_full_response(self):
        data = {
            "required_status_checks": {
                "url": "...",
                "strict": True,
                "contexts": ["test"],
                "checks": [{"context": "test", "app_id": None}],
            },
            "enforce_admins": {"url": "...", "enabled": True},
            "required_pull_request_reviews": {
                "dismiss_stale_reviews": True,
                "required_approving_review_count": 2,
            },
            "restrictions": {
                "users": [{"login": "octocat"}],
                "teams": [{"slug": "core"}],
                "apps": [],
            },
            "required_linear_history": {"enabled": True},
            "allow_force_pushes": {"enabled": False},
            "allow_deletions": {"enabled": False},
            "required_conversation_resolution": {"enabled": False},
        }
        assert normalize_protection(data) == {
            "required_status_checks": {"strict": True, "contexts": ["test"]},
            "enforce_admins": True,
            "required_pull_request_reviews": {
                "dismiss_stale_reviews": True,
                "required_approving_review_count": 2,
            },
            "restrictions": {"users": ["octocat"], "teams": ["core"], "apps": []},
            "allow_force_pushes": False,
            "allow_deletions": False,
            "required_linear_history": True,
            "required_conversation_resolution": False,
        }

    def test_review_settings_are_kept(self):
        data = {
            "required_pull_request_reviews": {
                "url": "...",
                "dismissal_restrictions": {"users": [], "teams": []},
                "dismiss_stale_reviews": False,
                "require_code_owner_reviews": False,
                "require_last_push_approval": True,
                "required_approving_review_count": 1,
            }
        }
        assert normalize_protection(data)["required_pull_request_reviews"] == {
            "dismiss_stale_reviews": False,
            "require_code_owner_reviews": False,
            "require_last_push_approval": True,
            "required_approving_review_count": 1,
        }

    def test_absent_sub_rules_are_none(self):
        normalized = normalize_protection({"allow_force_pushes": {"enabled": True}})
        assert normalized["required_pull_request_reviews"] is None
        assert normalized["restrictions"] is None
        assert normalized["allow_force_pushes"] is True
