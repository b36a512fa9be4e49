"""Tool registry and routing system for MCP GitFS Server"""

import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Union

from mcp.types import Tool

from ..configuration import ServerConfig
from ..error_handling import OperationError, classify_error, describe_error
from ..github.client import GitHubClient
from .notifications import EventSink
from .params import OperationParams, OperationSpec, ParameterBag, apply_contract
from .results import Failure, OperationResult

logger = logging.getLogger(__name__)


class ToolName(str, Enum):
    """MCP tools hosted by the server"""
    GITHUB = "github"
    FILESYSTEM = "filesystem"


@dataclass
class OperationContext:
    """Collaborators handed to every operation handler"""
    config: ServerConfig
    events: Optional[EventSink] = None
    github_client_factory: Optional[Callable[[str], GitHubClient]] = None

    def github_client(self, token: str) -> GitHubClient:
        if self.github_client_factory is not None:
            return self.github_client_factory(token)
        return GitHubClient(
            token=token,
            base_url=self.config.github_api_url,
            user_agent=self.config.user_agent,
            timeout=self.config.github_timeout_seconds,
        )


Handler = Callable[
    [OperationParams, OperationContext],
    Union[OperationResult, Awaitable[OperationResult]],
]


@dataclass(frozen=True)
class OperationDefinition:
    """One row of a tool's operation table"""
    tool: str
    name: str
    method: str
    description: str
    spec: OperationSpec
    handler: Handler

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self.handler)


@dataclass
class OperationTable:
    """Operations of one tool, indexed by flat name and by JSON-RPC method.

    Both indexes are filled from the same row on registration.
    """
    tool: str
    description: str
    _by_name: Dict[str, OperationDefinition] = field(default_factory=dict)
    _by_method: Dict[str, OperationDefinition] = field(default_factory=dict)

    def register(self, definition: OperationDefinition):
        if definition.name in self._by_name or definition.method in self._by_method:
            raise ValueError(
                f"Duplicate operation {definition.name!r} / {definition.method!r} in {self.tool}"
            )
        self._by_name[definition.name] = definition
        self._by_method[definition.method] = definition

    def get(self, name: str) -> Optional[OperationDefinition]:
        return self._by_name.get(name)

    def get_by_method(self, method: str) -> Optional[OperationDefinition]:
        return self._by_method.get(method)

    @property
    def operations(self) -> List[OperationDefinition]:
        return list(self._by_name.values())

    def input_schema(self) -> Dict[str, Any]:
        """Umbrella schema: the operation selector plus every operation's fields"""
        properties: Dict[str, Any] = {
            "operation": {
                "type": "string",
                "enum": [d.name for d in self.operations],
                "description": "Operation to perform",
            }
        }
        for definition in self.operations:
            model_schema = definition.spec.model.model_json_schema()
            for prop_name, prop in model_schema.get("properties", {}).items():
                properties.setdefault(prop_name, prop)
        return {"type": "object", "properties": properties, "required": ["operation"]}


class ToolRegistry:
    """Central registry for all MCP GitFS Server tools"""

    def __init__(self):
        self.tables: Dict[str, OperationTable] = {}
        self._initialized = False

    def add_tool(self, tool: str, description: str) -> OperationTable:
        table = self.tables.get(tool)
        if table is None:
            table = OperationTable(tool=tool, description=description)
            self.tables[tool] = table
        return table

    def register(self, definition: OperationDefinition):
        """Register an operation in its tool's table"""
        table = self.tables.get(definition.tool)
        if table is None:
            raise KeyError(f"Unknown tool: {definition.tool}")
        table.register(definition)
        logger.debug(f"Registered operation: {definition.tool}.{definition.name} ({definition.method})")

    def get_table(self, tool: str) -> Optional[OperationTable]:
        return self.tables.get(tool)

    def find_method(self, method: str) -> Optional[OperationDefinition]:
        for table in self.tables.values():
            definition = table.get_by_method(method)
            if definition is not None:
                return definition
        return None

    def list_tools(self) -> List[Tool]:
        """Get all tools as MCP Tool objects"""
        return [
            Tool(name=table.tool, description=table.description, inputSchema=table.input_schema())
            for table in self.tables.values()
        ]

    def initialize_default_tools(self, enabled_tools: Optional[Iterable[str]] = None):
        """Initialize registry with the github and filesystem tools"""
        if self._initialized:
            return

        from ..filesystem import operations as fs_ops
        from ..filesystem.models import (
            FsCopy, FsDelete, FsExists, FsInfo, FsList, FsMkdir, FsMove, FsRead, FsSize, FsWrite
        )
        from ..git import operations as git_ops
        from ..git.models import GitClone, GitPull, GitPush, GitStatus
        from ..github import api as github_api
        from ..github.models import GitHubActions, GitHubIssues, GitHubPullRequests

        enabled = set(enabled_tools) if enabled_tools is not None else {t.value for t in ToolName}

        rows = {
            ToolName.GITHUB: (
                "Git working tree operations and GitHub repository listings",
                [
                    ("clone", "git.clone", "Clone a repository into a local directory", GitClone, git_ops.git_clone),
                    ("pull", "git.pull", "Fetch a branch from origin and merge it", GitPull, git_ops.git_pull),
                    ("push", "git.push", "Push a branch to a remote", GitPush, git_ops.git_push),
                    ("status", "git.status", "Show the working tree status", GitStatus, git_ops.git_status),
                    ("issues", "github.issues", "List issues for a repository", GitHubIssues, github_api.github_list_issues),
                    ("prs", "github.prs", "List pull requests for a repository", GitHubPullRequests, github_api.github_list_pull_requests),
                    ("actions", "github.actions", "List GitHub Actions workflows", GitHubActions, github_api.github_list_workflows),
                ],
            ),
            ToolName.FILESYSTEM: (
                "Local file and directory operations",
                [
                    ("info", "fs.info", "Show metadata of a file or directory", FsInfo, fs_ops.fs_info),
                    ("exists", "fs.exists", "Check whether a path exists", FsExists, fs_ops.fs_exists),
                    ("size", "fs.size", "Size of a file or directory in bytes", FsSize, fs_ops.fs_size),
                    ("list", "fs.list", "List directory entries", FsList, fs_ops.fs_list),
                    ("read", "fs.read", "Read a file as UTF-8 text or Base64", FsRead, fs_ops.fs_read),
                    ("write", "fs.write", "Write or append to a file", FsWrite, fs_ops.fs_write),
                    ("copy", "fs.copy", "Copy a file or directory", FsCopy, fs_ops.fs_copy),
                    ("move", "fs.move", "Move a file or directory", FsMove, fs_ops.fs_move),
                    ("delete", "fs.delete", "Delete a file or directory", FsDelete, fs_ops.fs_delete),
                    ("mkdir", "fs.mkdir", "Create a directory and its parents", FsMkdir, fs_ops.fs_mkdir),
                ],
            ),
        }

        for tool, (description, operations) in rows.items():
            if tool.value not in enabled:
                logger.info(f"Tool '{tool.value}' disabled by configuration")
                continue
            self.add_tool(tool.value, description)
            for name, method, op_description, model, handler in operations:
                self.register(
                    OperationDefinition(
                        tool=tool.value,
                        name=name,
                        method=method,
                        description=op_description,
                        spec=OperationSpec.from_model(name, model),
                        handler=handler,
                    )
                )

        self._initialized = True
        total = sum(len(t.operations) for t in self.tables.values())
        logger.info(f"Initialized tool registry with {len(self.tables)} tools, {total} operations")


class OperationRouter:
    """Resolves operation identifiers and runs handlers behind the parameter contract"""

    def __init__(self, registry: ToolRegistry, context: OperationContext):
        self.registry = registry
        self.context = context

    def resolve(self, tool: str, operation: str) -> Union[OperationDefinition, Failure]:
        table = self.registry.get_table(tool)
        if table is None:
            return Failure.unsupported(f"Unknown tool: {tool}")
        definition = table.get(operation)
        if definition is None:
            return Failure.unsupported(f"Unsupported operation: {operation}")
        return definition

    def resolve_method(self, method: str) -> Union[OperationDefinition, Failure]:
        definition = self.registry.find_method(method)
        if definition is None:
            return Failure.unsupported(f"Method not found: {method}")
        return definition

    async def dispatch(self, definition: OperationDefinition, bag: Mapping[str, Any]) -> OperationResult:
        """Validate parameters and run the handler; exceptions become failures"""
        params = apply_contract(definition.spec, bag)
        if isinstance(params, Failure):
            return params

        try:
            if definition.is_async:
                return await definition.handler(params, self.context)
            return definition.handler(params, self.context)
        except Exception as e:
            kind = classify_error(e, definition.method)
            logger.error(f"Operation {definition.method} failed ({kind.value}): {e}", exc_info=True)
            return Failure(kind, describe_error(e))

    async def call(self, tool: str, arguments: Mapping[str, Any]) -> OperationResult:
        """Flat namespace entry: the tool receives an `operation` field"""
        bag = ParameterBag(arguments)
        if not bag.present("operation"):
            return Failure.invalid_params("Missing required parameter: operation")
        try:
            operation = bag.get_str("operation")
        except OperationError as e:
            return Failure(e.kind, e.message)

        definition = self.resolve(tool, operation)
        if isinstance(definition, Failure):
            return definition
        return await self.dispatch(definition, bag.without("operation"))

    async def call_method(self, method: str, params: Mapping[str, Any]) -> OperationResult:
        """Method namespace entry, e.g. `git.clone` or `fs.read`"""
        definition = self.resolve_method(method)
        if isinstance(definition, Failure):
            return definition
        return await self.dispatch(definition, ParameterBag(params))
