"""GitHub integration for MCP GitFS Server"""

from .client import GitHubClient
from .models import GitHubActions, GitHubIssues, GitHubPullRequests

__all__ = [
    "GitHubClient",
    "GitHubActions",
    "GitHubIssues",
    "GitHubPullRequests",
]
