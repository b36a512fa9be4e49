"""Configuration for MCP GitFS Server.

Settings come from `MCP_GITFS_*` environment variables, optionally seeded
from a `.env` file, and are validated once at startup:

    >>> from mcp_server_gitfs.configuration import load_config
    >>> config = load_config()
    >>> config.clone_dir
    PosixPath('cloned-repos')

The resulting `ServerConfig` is frozen; handlers only ever read it.
"""

import logging
import os
from pathlib import Path
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

__version__ = "0.3.0"

ENV_PREFIX = "MCP_GITFS_"

KNOWN_TOOLS = ("github", "filesystem")

# field name -> environment variable
ENV_VARS = {
    "clone_dir": "MCP_GITFS_CLONE_DIR",
    "github_api_url": "MCP_GITFS_GITHUB_API_URL",
    "github_timeout_seconds": "MCP_GITFS_GITHUB_TIMEOUT",
    "user_agent": "MCP_GITFS_USER_AGENT",
    "log_level": "MCP_GITFS_LOG_LEVEL",
    "enabled_tools": "MCP_GITFS_TOOLS",
}


class ServerConfig(BaseModel):
    """Validated server settings"""

    model_config = ConfigDict(frozen=True)

    clone_dir: Path = Field(
        default=Path("cloned-repos"),
        description="Directory that receives clones without an explicit target_path",
    )
    github_api_url: str = Field(default="https://api.github.com")
    github_timeout_seconds: float = Field(default=30.0, gt=0)
    user_agent: str = Field(default=f"MCP-GitFS-Server/{__version__}")
    log_level: str = Field(default="WARNING")
    enabled_tools: Tuple[str, ...] = Field(default=KNOWN_TOOLS)

    @field_validator("github_api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return value.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {value}")
        return level

    @field_validator("enabled_tools", mode="before")
    @classmethod
    def _split_tools(cls, value):
        if isinstance(value, str):
            value = [part.strip() for part in value.split(",")]
        tools = tuple(part.lower() for part in value if part)
        unknown = [t for t in tools if t not in KNOWN_TOOLS]
        if unknown:
            raise ValueError(f"unknown tools: {', '.join(unknown)}")
        if not tools:
            raise ValueError("at least one tool must be enabled")
        return tools


def load_config(
    env_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides,
) -> ServerConfig:
    """
    Build the server configuration.

    Args:
        env_file: Optional .env file loaded before reading the environment;
            variables already set in the process environment win
        environ: Environment mapping to read instead of os.environ
        **overrides: Explicit values (e.g. from CLI options) that win over
            the environment; None values are ignored

    Returns:
        A frozen ServerConfig

    Raises:
        pydantic.ValidationError: when a value is invalid
    """
    if env_file is not None:
        if env_file.exists():
            load_dotenv(env_file)
            logger.info(f"Loaded environment variables from {env_file}")
        else:
            logger.warning(f"⚠️ Environment file not found: {env_file}")

    source = os.environ if environ is None else environ
    values = {}
    for field_name, env_var in ENV_VARS.items():
        raw = source.get(env_var)
        if raw is not None and raw.strip() != "":
            values[field_name] = raw.strip()
    values.update({k: v for k, v in overrides.items() if v is not None})

    config = ServerConfig.model_validate(values)
    logger.debug(f"Configuration: {config.model_dump(mode='json')}")
    return config


__all__ = ["ServerConfig", "load_config", "ENV_VARS", "KNOWN_TOOLS", "__version__"]
