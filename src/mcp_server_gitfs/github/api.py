"""GitHub API operations for MCP GitFS Server"""

import asyncio
import logging
from typing import Any, Dict, Optional, Tuple, Union

import aiohttp

from ..core.notifications import EventType, publish_event
from ..core.results import Failure, OperationResult, Success
from ..core.tools import OperationContext
from .models import GitHubActions, GitHubIssues, GitHubPullRequests

logger = logging.getLogger(__name__)


def split_repository(repository: str) -> Union[Tuple[str, str], Failure]:
    """Split 'owner/repo' into its two non-empty segments."""
    parts = repository.split("/")
    if len(parts) != 2 or not all(part.strip() for part in parts):
        return Failure.invalid_params("Invalid repository format. Expected 'owner/repo'")
    return parts[0], parts[1]


async def _fetch(
    context: OperationContext,
    token: str,
    owner: str,
    repo: str,
    endpoint: str,
    params: Optional[Dict[str, str]] = None,
) -> Union[Any, Failure]:
    client = context.github_client(token)
    try:
        status, payload = await client.get_json(owner, repo, endpoint, params=params)
    except asyncio.TimeoutError:
        logger.error(f"❌ GitHub request timed out: {owner}/{repo}/{endpoint}")
        return Failure.upstream(f"GitHub request timed out after {client.timeout}s")
    except aiohttp.ClientError as e:
        logger.error(f"❌ GitHub request failed: {owner}/{repo}/{endpoint}: {e}")
        return Failure.upstream(f"GitHub request failed: {e}")

    if not 200 <= status < 300:
        logger.warning(f"GitHub API error {status} for {owner}/{repo}/{endpoint}")
        return Failure.upstream(f"GitHub API error: {status}")
    return payload


async def github_list_issues(params: GitHubIssues, context: OperationContext) -> OperationResult:
    """List issues for a repository"""
    parts = split_repository(params.repository)
    if isinstance(parts, Failure):
        return parts
    owner, repo = parts

    payload = await _fetch(context, params.token, owner, repo, "issues", {"state": params.state})
    if isinstance(payload, Failure):
        return payload
    if not isinstance(payload, list):
        return Failure.upstream("Unexpected GitHub response: expected a list of issues")

    logger.info(f"Fetched {len(payload)} issues for {params.repository}")
    publish_event(
        context.events,
        EventType.ISSUES_FETCHED,
        {"repository": params.repository, "state": params.state, "count": len(payload)},
    )
    return Success({"repository": params.repository, "total": len(payload), "issues": payload})


async def github_list_pull_requests(
    params: GitHubPullRequests, context: OperationContext
) -> OperationResult:
    """List pull requests for a repository"""
    parts = split_repository(params.repository)
    if isinstance(parts, Failure):
        return parts
    owner, repo = parts

    payload = await _fetch(context, params.token, owner, repo, "pulls", {"state": params.state})
    if isinstance(payload, Failure):
        return payload
    if not isinstance(payload, list):
        return Failure.upstream("Unexpected GitHub response: expected a list of pull requests")

    logger.info(f"Fetched {len(payload)} pull requests for {params.repository}")
    return Success(
        {"repository": params.repository, "total": len(payload), "pull_requests": payload}
    )


async def github_list_workflows(params: GitHubActions, context: OperationContext) -> OperationResult:
    """List GitHub Actions workflows for a repository"""
    parts = split_repository(params.repository)
    if isinstance(parts, Failure):
        return parts
    owner, repo = parts

    payload = await _fetch(context, params.token, owner, repo, "actions/workflows")
    if isinstance(payload, Failure):
        return payload
    # The endpoint answers {"total_count": n, "workflows": [...]}
    if isinstance(payload, dict) and isinstance(payload.get("workflows"), list):
        payload = payload["workflows"]
    if not isinstance(payload, list):
        return Failure.upstream("Unexpected GitHub response: expected a list of workflows")

    logger.info(f"Fetched {len(payload)} workflows for {params.repository}")
    return Success({"repository": params.repository, "total": len(payload), "workflows": payload})
