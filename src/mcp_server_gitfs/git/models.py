"""Pydantic models for Git operations"""

from typing import Optional

from pydantic import AliasChoices, Field

from ..core.params import OperationParams

# `repository` is accepted as well for calls through the flat tool namespace
def _repository_path():
    return Field(
        validation_alias=AliasChoices("repository_path", "repository"),
        description="Path to a local Git working tree",
    )


class GitClone(OperationParams):
    repository: str = Field(description="Repository URL to clone")
    branch: str = Field(default="main", description="Branch to check out")
    target_path: Optional[str] = Field(
        default=None,
        description="Directory to clone into (defaults to <clone dir>/<repository name>)",
    )


class GitPull(OperationParams):
    repository_path: str = _repository_path()
    branch: str = "main"


class GitPush(OperationParams):
    repository_path: str = _repository_path()
    remote: str = "origin"
    branch: str = "main"


class GitStatus(OperationParams):
    repository_path: str = _repository_path()
