from baseline.clients.github.client import GitHubClient

__all__ = ["GitHubClient"]
