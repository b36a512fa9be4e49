"""Git operations for MCP GitFS Server"""

from .models import GitClone, GitPull, GitPush, GitStatus
from .operations import git_clone, git_pull, git_push, git_status

__all__ = [
    "git_clone",
    "git_pull",
    "git_push",
    "git_status",
    "GitClone",
    "GitPull",
    "GitPush",
    "GitStatus",
]
