"""GitHub API access."""

from lexis.github.client import GitHubAPIError, GitHubClient

__all__ = ["GitHubAPIError", "GitHubClient"]
