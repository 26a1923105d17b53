"""
GitHub Resource Client - Implements ResourceClient over the GitHub REST API.

Properties:
    repository          GET  repos/{owner}/{repo} (read-only)
    allow_auto_merge    GET / PATCH repos/{owner}/{repo}
    branch_protection   GET / PUT repos/{owner}/{repo}/branches/{branch}/protection
    contents/<path>     GET  repos/{owner}/{repo}/contents/<path> (read-only)
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from baseline.base import AuthError, PropertyState, ProviderError, RepositoryRef
from baseline.clients.base import ResourceClient

logger = logging.getLogger(__name__)

CONTENTS_PREFIX = "contents/"


def _enabled(section: Any) -> bool:
    """Flatten the ``{"enabled": bool}`` wrappers used in protection responses."""
    if isinstance(section, dict):
        return bool(section.get("enabled"))
    return bool(section)


def normalize_protection(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a branch protection GET response into the PUT document shape.

    Sub-rules absent from the response are returned as None.
    """
    status_checks = data.get("required_status_checks")
    if status_checks is not None:
        status_checks = {
            "strict": bool(status_checks.get("strict", False)),
            "contexts": list(status_checks.get("contexts", [])),
        }

    reviews = data.get("required_pull_request_reviews")
    if reviews is not None:
        # Scalar settings only; the url and nested allowance objects are dropped
        reviews = {
            key: value
            for key, value in reviews.items()
            if isinstance(value, (bool, int))
        }

    restrictions = data.get("restrictions")
    if restrictions is not None:
        restrictions = {
            "users": [u.get("login") for u in restrictions.get("users", [])],
            "teams": [t.get("slug") for t in restrictions.get("teams", [])],
            "apps": [a.get("slug") for a in restrictions.get("apps", [])],
        }

    return {
        "required_status_checks": status_checks,
        "enforce_admins": _enabled(data.get("enforce_admins")),
        "required_pull_request_reviews": reviews,
        "restrictions": restrictions,
        "allow_force_pushes": _enabled(data.get("allow_force_pushes")),
        "allow_deletions": _enabled(data.get("allow_deletions")),
        "required_linear_history": _enabled(data.get("required_linear_history")),
        "required_conversation_resolution": _enabled(
            data.get("required_conversation_resolution")
        ),
    }


class GitHubClient(ResourceClient):
    """
    Resource client for GitHub repositories.

    One requests.Session is used for the whole run; the token is attached
    to it once.
    """

    def __init__(
        self,
        token: str = "",
        api_base_url: str = "https://api.github.com",
        api_version: str = "2022-11-28",
        timeout: int = 10,
        session: Optional[requests.Session] = None,
    ):
        self.token = token
        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": api_version,
            }
        )
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

        logger.debug(
            f"GitHub client initialized: api_base_url={self.api_base_url}, "
            f"timeout={self.timeout}s"
        )

    @property
    def name(self) -> str:
        return "github"

    @classmethod
    def from_config(cls, config) -> "GitHubClient":
        return cls(
            token=config.token,
            api_base_url=config.api_base_url,
            api_version=config.api_version,
            timeout=config.timeout,
        )

    # ResourceClient interface

    def verify_credentials(self) -> str:
        if not self.token:
            raise AuthError(
                "GitHub token not configured. Set GITHUB_TOKEN or GH_TOKEN."
            )
        data = self._request("GET", "user", forbidden_is_auth=True)
        login = data.get("login", "unknown") if isinstance(data, dict) else "unknown"
        logger.info(f"Authenticated to GitHub as {login}")
        return login

    def resource_exists(self, ref: RepositoryRef) -> bool:
        data = self._request(
            "GET", self._repo_path(ref), allow_missing=True, forbidden_is_auth=True
        )
        return data is not None

    def read_property(self, ref: RepositoryRef, name: str) -> PropertyState:
        if name == "repository":
            data = self._request("GET", self._repo_path(ref), allow_missing=True)
            return self._state(data)

        if name == "allow_auto_merge":
            data = self._request("GET", self._repo_path(ref), allow_missing=True)
            if data is None:
                return PropertyState.absent()
            return PropertyState(value=bool(data.get("allow_auto_merge")))

        if name == "branch_protection":
            data = self._request(
                "GET", self._protection_path(ref), allow_missing=True
            )
            if data is None:
                return PropertyState.absent()
            return PropertyState(value=normalize_protection(data))

        if name.startswith(CONTENTS_PREFIX):
            path = name[len(CONTENTS_PREFIX):]
            return self._state(
                self._request(
                    "GET",
                    f"{self._repo_path(ref)}/contents/{quote(path)}",
                    params={"ref": ref.branch},
                    allow_missing=True,
                )
            )

        raise ValueError(f"Unknown GitHub property: {name}")

    def write_property(self, ref: RepositoryRef, name: str, value: Any) -> None:
        if name == "allow_auto_merge":
            self._request(
                "PATCH", self._repo_path(ref), json={"allow_auto_merge": bool(value)}
            )
        elif name == "branch_protection":
            self._request("PUT", self._protection_path(ref), json=value)
        else:
            raise ValueError(f"GitHub property is read-only or unknown: {name}")
        logger.info(f"Updated {name} on {ref}")

    # Private helper methods

    @staticmethod
    def _repo_path(ref: RepositoryRef) -> str:
        return f"repos/{ref.owner}/{ref.name}"

    def _protection_path(self, ref: RepositoryRef) -> str:
        branch = quote(ref.branch, safe="")
        return f"{self._repo_path(ref)}/branches/{branch}/protection"

    @staticmethod
    def _state(data: Optional[Any]) -> PropertyState:
        if data is None:
            return PropertyState.absent()
        return PropertyState(value=data)

    def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        allow_missing: bool = False,
        forbidden_is_auth: bool = False,
    ) -> Optional[Any]:
        """
        Make an HTTP request to the GitHub API.

        Args:
            method: HTTP method
            endpoint: Path relative to the API base URL
            params: Query parameters
            json: JSON body
            allow_missing: Return None on 404 instead of raising
            forbidden_is_auth: Raise AuthError on 403 instead of ProviderError

        Returns:
            Decoded JSON body (or {} for empty bodies), or None for a
            tolerated 404.

        Raises:
            AuthError: On 401, or 403 with forbidden_is_auth.
            ProviderError: On any other failure.
        """
        url = f"{self.api_base_url}/{endpoint.lstrip('/')}"
        logger.debug(f"{method} {url}")

        try:
            response = self.session.request(
                method, url, params=params, json=json, timeout=self.timeout
            )
        except requests.exceptions.Timeout:
            raise ProviderError(f"Timeout calling GitHub: {method} {endpoint}")
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"Error calling GitHub: {e}")

        if response.status_code == 404 and allow_missing:
            return None

        if 200 <= response.status_code < 300:
            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError:
                return {}

        message = self._error_message(response)
        if response.status_code == 401:
            raise AuthError(f"GitHub rejected the token: {message}")
        if response.status_code == 403:
            if (
                response.headers.get("X-RateLimit-Remaining") == "0"
                or "rate limit" in message.lower()
            ):
                raise ProviderError(f"GitHub rate limit exceeded: {message}", 403)
            if forbidden_is_auth:
                raise AuthError(f"Insufficient permissions for {endpoint}: {message}")
            raise ProviderError(f"GitHub refused {method} {endpoint}: {message}", 403)

        raise ProviderError(
            f"GitHub API error {response.status_code} on {method} {endpoint}: "
            f"{message}",
            response.status_code,
        )

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(data, dict) and data.get("message"):
            return str(data["message"])
        return response.text[:200]
