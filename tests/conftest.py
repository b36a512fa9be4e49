"""
Shared pytest fixtures.

Git fixtures build real repositories with GitPython under `tmp_path`: a bare
`remote.git` seeded with one commit on `main`, and working clones of it.
Nothing here touches the network.
"""

from pathlib import Path
from typing import Callable

import git
import pytest

from mcp_server_gitfs.configuration import ServerConfig
from mcp_server_gitfs.core.handlers import CallToolHandler
from mcp_server_gitfs.core.notifications import RecordingEventSink
from mcp_server_gitfs.core.tools import OperationContext
from mcp_server_gitfs.metrics import MetricsCollector


def configure_user(repo: git.Repo) -> git.Repo:
    with repo.config_writer() as writer:
        writer.set_value("user", "name", "Test User")
        writer.set_value("user", "email", "test@example.com")
    return repo


def _commit_file(repo: git.Repo, name: str, content: str, message: str = None) -> git.Commit:
    path = Path(repo.working_tree_dir) / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    repo.index.add([name])
    return repo.index.commit(message or f"Update {name}")


@pytest.fixture
def commit_file() -> Callable[..., git.Commit]:
    """Writes, stages and commits one file."""
    return _commit_file


@pytest.fixture
def config(tmp_path: Path) -> ServerConfig:
    return ServerConfig(clone_dir=tmp_path / "clones")


@pytest.fixture
def events() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture
def context(config: ServerConfig, events: RecordingEventSink) -> OperationContext:
    return OperationContext(config=config, events=events)


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def handler(config: ServerConfig, events: RecordingEventSink, metrics: MetricsCollector) -> CallToolHandler:
    return CallToolHandler(config, events=events, metrics=metrics)


@pytest.fixture
def remote_repo(tmp_path: Path) -> Path:
    """Bare repository with a README committed on main."""
    remote_path = tmp_path / "remote.git"
    git.Repo.init(remote_path, bare=True, initial_branch="main")

    seed = configure_user(git.Repo.init(tmp_path / "seed", initial_branch="main"))
    _commit_file(seed, "README.md", "# Test Repository\n", "Initial commit")
    seed.create_remote("origin", str(remote_path))
    seed.remote("origin").push("main")
    seed.close()
    return remote_path


@pytest.fixture
def clone_factory(tmp_path: Path, remote_repo: Path) -> Callable[[str], git.Repo]:
    """Creates named working clones of the bare remote."""
    repos = []

    def make(name: str) -> git.Repo:
        repo = configure_user(git.Repo.clone_from(str(remote_repo), str(tmp_path / name)))
        repos.append(repo)
        return repo

    yield make

    for repo in repos:
        repo.close()


@pytest.fixture
def cloned_repo(clone_factory) -> git.Repo:
    return clone_factory("work")
