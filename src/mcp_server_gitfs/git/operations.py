"""Git working tree operations for MCP GitFS Server.

Each handler opens its repository handle for the duration of one call and
closes it on every exit path. Failures detectable before touching Git
(bad paths, unknown remotes, occupied clone targets) come back as
`Failure` values; errors raised by Git itself are left to the router,
which reports them as upstream errors.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Set, Union

from git import GitCommandError, PushInfo, Repo

from ..core.notifications import EventType, publish_event
from ..core.results import Failure, OperationResult, Success
from ..core.tools import OperationContext
from .models import GitClone, GitPull, GitPush, GitStatus

logger = logging.getLogger(__name__)

STATUS_BUCKETS = ("added", "changed", "removed", "modified", "untracked", "conflicting")

UNMERGED_CODES = {"DD", "AU", "UD", "UA", "DU", "AA", "UU"}


class MergeResult:
    """Outcome classes reported by pull"""
    ALREADY_UP_TO_DATE = "ALREADY_UP_TO_DATE"
    FAST_FORWARD = "FAST_FORWARD"
    MERGED = "MERGED"
    CONFLICTING = "CONFLICTING"
    FAILED = "FAILED"


SUCCESSFUL_MERGES = {MergeResult.ALREADY_UP_TO_DATE, MergeResult.FAST_FORWARD, MergeResult.MERGED}

# Checked in order; the first flag present names the ref's status
_PUSH_FAILURE_FLAGS = (
    (PushInfo.REJECTED, "REJECTED"),
    (PushInfo.REMOTE_REJECTED, "REMOTE_REJECTED"),
    (PushInfo.REMOTE_FAILURE, "REMOTE_FAILURE"),
    (PushInfo.NO_MATCH, "NO_MATCH"),
    (PushInfo.ERROR, "ERROR"),
)


def repository_name(url: str) -> str:
    """Last path segment of a repository URL, without a `.git` suffix."""
    segment = re.split(r"[/:]", url.rstrip("/"))[-1]
    if segment.endswith(".git"):
        segment = segment[: -len(".git")]
    return segment


def _validate_repository(repository_path: str) -> Union[Path, Failure]:
    path = Path(repository_path)
    if not path.exists() or not (path / ".git").exists():
        return Failure.not_found(f"Not a valid git repository: {repository_path}")
    return path


def git_clone(params: GitClone, context: OperationContext) -> OperationResult:
    """Clone a repository, refusing to overwrite a populated target"""
    if params.target_path:
        target = Path(params.target_path)
    else:
        name = repository_name(params.repository)
        if not name:
            return Failure.invalid_params(
                f"Cannot derive a target directory from repository: {params.repository}"
            )
        target = context.config.clone_dir / name

    logger.info(f"Target directory: {target}")

    if target.exists():
        if not target.is_dir():
            return Failure.conflict(f"Target path exists and is not a directory: {target}")
        if any(target.iterdir()):
            return Failure.conflict(f"Target directory exists and is not empty: {target}")
        # git refuses some pre-existing directories; start from a missing path
        target.rmdir()

    with Repo.clone_from(params.repository, str(target), branch=params.branch):
        pass

    logger.info(f"✅ Cloned {params.repository} ({params.branch}) to {target}")
    publish_event(
        context.events,
        EventType.REPOSITORY_CLONED,
        {"repository": params.repository, "branch": params.branch, "target_path": str(target)},
    )
    return Success(
        {
            "repository": params.repository,
            "branch": params.branch,
            "target_path": str(target),
        }
    )


def _fetch_summary(fetch_infos) -> str:
    lines = []
    for info in fetch_infos:
        if info.flags & info.HEAD_UPTODATE:
            state = "up to date"
        elif info.flags & info.NEW_HEAD:
            state = "new branch"
        elif info.flags & info.FAST_FORWARD:
            state = "fast-forward"
        elif info.flags & info.FORCED_UPDATE:
            state = "forced update"
        elif info.flags & info.REJECTED:
            state = "rejected"
        else:
            state = "fetched"
        lines.append(f"{info.name}: {state}")
    return "; ".join(lines)


def _merge(repo: Repo, commit) -> str:
    """Merge a fetched commit into HEAD and classify the outcome"""
    if not repo.head.is_valid():
        # Unborn branch: adopt the fetched history
        repo.git.merge("--ff-only", commit.hexsha)
        return MergeResult.FAST_FORWARD

    head = repo.head.commit
    if head == commit or repo.is_ancestor(commit, head):
        return MergeResult.ALREADY_UP_TO_DATE

    if repo.is_ancestor(head, commit):
        try:
            repo.git.merge("--ff-only", commit.hexsha)
        except GitCommandError as e:
            logger.warning(f"Fast-forward failed: {e}")
            return MergeResult.FAILED
        return MergeResult.FAST_FORWARD

    try:
        repo.git.merge("--no-edit", commit.hexsha)
    except GitCommandError as e:
        if repo.index.unmerged_blobs():
            logger.warning(f"Merge left conflicts in {repo.working_tree_dir}")
            return MergeResult.CONFLICTING
        logger.warning(f"Merge failed: {e}")
        return MergeResult.FAILED
    return MergeResult.MERGED


def git_pull(params: GitPull, context: OperationContext) -> OperationResult:
    """Fetch a branch from origin and merge it into the current branch"""
    path = _validate_repository(params.repository_path)
    if isinstance(path, Failure):
        return path

    with Repo(path) as repo:
        if "origin" not in [remote.name for remote in repo.remotes]:
            return Failure.not_found(f"Remote not found: origin in {params.repository_path}")

        fetch_infos = repo.remote("origin").fetch(params.branch)
        fetch_result = _fetch_summary(fetch_infos)
        merge_result = _merge(repo, repo.commit("FETCH_HEAD"))

    logger.info(f"Pulled origin/{params.branch} into {params.repository_path}: {merge_result}")
    return Success(
        {
            "repository_path": params.repository_path,
            "updated": merge_result in SUCCESSFUL_MERGES,
            "fetch_result": fetch_result,
            "merge_result": merge_result,
        }
    )


def push_status(info: PushInfo) -> str:
    """Status name of one remote ref update"""
    for flag, name in _PUSH_FAILURE_FLAGS:
        if info.flags & flag:
            return name
    if info.flags & PushInfo.UP_TO_DATE:
        return "UP_TO_DATE"
    return "OK"


def git_push(params: GitPush, context: OperationContext) -> OperationResult:
    """Push a branch; rejected refs are reported in the result, not raised"""
    path = _validate_repository(params.repository_path)
    if isinstance(path, Failure):
        return path

    with Repo(path) as repo:
        if params.remote not in [remote.name for remote in repo.remotes]:
            return Failure.not_found(f"Remote not found: {params.remote}")

        push_infos = repo.remote(params.remote).push(params.branch)
        if not push_infos:
            error = getattr(push_infos, "error", None)
            if error is not None:
                raise error
            return Failure.upstream(f"Push to {params.remote} reported no ref updates")

        pushed = True
        messages = ""
        for info in push_infos:
            status = push_status(info)
            if status not in ("OK", "UP_TO_DATE"):
                pushed = False
                messages += f"{info.remote_ref_string}: {status}; "

    fields = {
        "status": "success" if pushed else "error",
        "repository_path": params.repository_path,
        "pushed": pushed,
        "remote": params.remote,
        "branch": params.branch,
    }
    if not pushed:
        fields["messages"] = messages
        logger.warning(f"❌ Push to {params.remote} rejected: {messages}")
    else:
        logger.info(f"✅ Pushed {params.branch} to {params.remote}")
    return Success(fields)


def classify_status_entries(output: str) -> Dict[str, List[str]]:
    """
    Sort `git status --porcelain=v1 -z` output into change buckets.

    Args:
        output: NUL separated porcelain entries

    Returns:
        Mapping of bucket name to sorted repository-relative paths
    """
    buckets: Dict[str, Set[str]] = {name: set() for name in STATUS_BUCKETS}
    tokens = output.split("\0")
    index = 0
    while index < len(tokens):
        entry = tokens[index]
        index += 1
        if len(entry) < 4:
            continue
        x, y, file_path = entry[0], entry[1], entry[3:]
        if x in "RC":
            # Renames and copies are followed by their source path
            index += 1

        if x + y in UNMERGED_CODES:
            buckets["conflicting"].add(file_path)
            continue
        if x + y == "??":
            buckets["untracked"].add(file_path)
            continue
        if x == "!":
            continue

        if x == "A":
            buckets["added"].add(file_path)
        elif x in "MRCT":
            buckets["changed"].add(file_path)
        elif x == "D":
            buckets["removed"].add(file_path)

        if y in "MT":
            buckets["modified"].add(file_path)
        elif y == "D":
            buckets["removed"].add(file_path)

    return {name: sorted(paths) for name, paths in buckets.items()}


def git_status(params: GitStatus, context: OperationContext) -> OperationResult:
    path = _validate_repository(params.repository_path)
    if isinstance(path, Failure):
        return path

    with Repo(path) as repo:
        output = repo.git.status("--porcelain=v1", "-z", "--untracked-files=all")

    changes = classify_status_entries(output)
    return Success(
        {
            "repository_path": params.repository_path,
            "clean": not any(changes.values()),
            "changes": changes,
        }
    )
