"""GitHub API client and authentication"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import aiohttp

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "MCP-GitFS-Server"


@dataclass
class GitHubClient:
    """GitHub REST client; every request opens and closes its own session."""

    token: str
    base_url: str = "https://api.github.com"
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float = 30.0

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"token {self.token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": self.user_agent,
        }

    def repo_url(self, owner: str, repo: str, endpoint: str) -> str:
        return f"{self.base_url.rstrip('/')}/repos/{owner}/{repo}/{endpoint.lstrip('/')}"

    async def get_json(
        self,
        owner: str,
        repo: str,
        endpoint: str,
        params: Optional[Dict[str, str]] = None,
    ) -> Tuple[int, Any]:
        """
        GET a repository-scoped endpoint.

        Returns:
            (HTTP status, decoded JSON body or None when the body is not JSON)

        Raises:
            aiohttp.ClientError: on connection failures
            asyncio.TimeoutError: when the request exceeds the timeout
        """
        url = self.repo_url(owner, repo, endpoint)
        logger.debug(f"GET {url} params={params}")
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url, headers=self.headers, params=params) as response:
                try:
                    payload = await response.json(content_type=None)
                except ValueError:
                    payload = None
                logger.debug(f"GitHub responded {response.status} for {url}")
                return response.status, payload
