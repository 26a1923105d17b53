"""
Configuration module for forge-baseline.

Loads configuration from environment variables. Command-line options
override individual values at the call site.
"""

import os
from dataclasses import dataclass, field
from typing import List, Optional

DEFAULT_WORKFLOW_PATHS = [".github/workflows/dependabot-auto-merge.yml"]


@dataclass
class GitHubConfig:
    """GitHub REST API configuration."""

    token: str = field(default="", repr=False)  # Never log token
    api_base_url: str = "https://api.github.com"
    api_version: str = "2022-11-28"
    owner: str = "hiveforge-sh"
    timeout: int = 10  # seconds

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            token=os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN", ""),
            api_base_url=os.getenv("GITHUB_API_URL", "https://api.github.com"),
            owner=os.getenv("GITHUB_ORG", "hiveforge-sh"),
            timeout=int(os.getenv("GITHUB_TIMEOUT", "10")),
        )


@dataclass
class AWSConfig:
    """AWS session configuration. Credentials come from the boto3 chain."""

    profile: Optional[str] = None

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(profile=os.getenv("AWS_PROFILE") or None)


@dataclass
class RepoStandardsConfig:
    """Defaults for the repository governance command."""

    default_branch: str = "main"
    template_repo: str = "hivemind"
    workflow_paths: List[str] = field(
        default_factory=lambda: list(DEFAULT_WORKFLOW_PATHS)
    )


@dataclass
class RedirectsConfig:
    """Defaults for the redirect service command."""

    domain: str = "hiveforge.sh"
    default_subdomain: str = "get"
    default_region: str = "us-east-1"
    scripts_owner: str = "hiveforge-sh"
    scripts_repo: str = "scripts"
    scripts_ref: str = "master"

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            domain=os.getenv("DOMAIN", "hiveforge.sh"),
            scripts_owner=os.getenv("GITHUB_ORG", "hiveforge-sh"),
        )


@dataclass
class Config:
    """Main configuration object."""

    github: GitHubConfig
    aws: AWSConfig
    repo_standards: RepoStandardsConfig
    redirects: RedirectsConfig
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls):
        """Load all configuration from environment variables."""
        return cls(
            github=GitHubConfig.from_env(),
            aws=AWSConfig.from_env(),
            repo_standards=RepoStandardsConfig(),
            redirects=RedirectsConfig.from_env(),
            log_level=os.getenv("LOG_LEVEL", "WARNING").upper(),
        )

    @classmethod
    def default(cls):
        """Return default configuration."""
        return cls(
            github=GitHubConfig(),
            aws=AWSConfig(),
            repo_standards=RepoStandardsConfig(),
            redirects=RedirectsConfig(),
        )


# Global config instance
config: Optional[Config] = None


def load_config() -> Config:
    """Load configuration (singleton pattern)."""
    global config
    if config is None:
        config = Config.from_env()
    return config


def get_config() -> Config:
    """Get the current configuration."""
    if config is None:
        return load_config()
    return config


def reset_config() -> None:
    """Reset configuration (mainly for testing)."""
    global config
    config = None
