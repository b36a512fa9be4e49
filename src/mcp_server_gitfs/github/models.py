"""Pydantic models for GitHub API tools"""

from typing import Literal

from pydantic import Field, field_validator

from ..core.params import OperationParams


class GitHubRepositoryParams(OperationParams):
    repository: str = Field(description="Repository in 'owner/repo' form")
    token: str = Field(description="GitHub access token")


class GitHubIssues(GitHubRepositoryParams):
    state: Literal["open", "closed", "all"] = Field(
        default="open", description="Issue state filter"
    )

    @field_validator("state", mode="before")
    @classmethod
    def _lower_state(cls, value):
        return value.lower() if isinstance(value, str) else value


class GitHubPullRequests(GitHubIssues):
    pass


class GitHubActions(GitHubRepositoryParams):
    pass
