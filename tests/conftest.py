"""Pytest configuration and fixtures."""

from typing import Any, Dict, List, Optional, Tuple

import pytest

import config
from baseline.base import BucketRef, PropertyState, RepositoryRef
from baseline.clients.base import ResourceClient
from baseline.registry import reset_registry


class FakeClient(ResourceClient):
    """
    In-memory resource client.

    Properties are stored by name; writes are recorded in order and applied
    to the store so a second run sees the converged state.
    """

    def __init__(
        self,
        properties: Optional[Dict[str, Any]] = None,
        exists: bool = True,
        identity: str = "tester",
        read_errors: Optional[Dict[str, Exception]] = None,
        write_errors: Optional[Dict[str, Exception]] = None,
        auth_error: Optional[Exception] = None,
    ):
        self.properties = dict(properties or {})
        self.exists = exists
        self.identity = identity
        self.read_errors = dict(read_errors or {})
        self.write_errors = dict(write_errors or {})
        self.auth_error = auth_error
        self.reads: List[str] = []
        self.writes: List[Tuple[str, Any]] = []

    @property
    def name(self) -> str:
        return "fake"

    def verify_credentials(self) -> str:
        if self.auth_error is not None:
            raise self.auth_error
        return self.identity

    def resource_exists(self, ref: Any) -> bool:
        return self.exists

    def read_property(self, ref: Any, name: str) -> PropertyState:
        self.reads.append(name)
        if name in self.read_errors:
            raise self.read_errors[name]
        if name not in self.properties:
            return PropertyState.absent()
        return PropertyState(value=self.properties[name])

    def write_property(self, ref: Any, name: str, value: Any) -> None:
        if name in self.write_errors:
            raise self.write_errors[name]
        self.writes.append((name, value))
        self.properties[name] = value

    @property
    def written(self) -> List[str]:
        return [name for name, _ in self.writes]


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset the global config and registry around every test."""
    config.reset_config()
    reset_registry()
    yield
    config.reset_config()
    reset_registry()


@pytest.fixture
def repo_ref():
    """Sample repository reference."""
    return RepositoryRef(owner="hiveforge-sh", name="widget", branch="main")


@pytest.fixture
def bucket_ref():
    """Sample redirect bucket reference."""
    return BucketRef(subdomain="get", domain="example.com", region="us-east-1")


@pytest.fixture
def sample_repository():
    """Repository GET response as returned by GitHub."""
    return {
        "name": "widget",
        "full_name": "hiveforge-sh/widget",
        "html_url": "https://github.com/hiveforge-sh/widget",
        "allow_auto_merge": False,
    }


@pytest.fixture
def fake_client():
    """Factory for in-memory resource clients."""

    def _make(**kwargs):
        return FakeClient(**kwargs)

    return _make
