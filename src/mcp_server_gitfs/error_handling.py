"""Error classification for MCP GitFS Server operations."""

import binascii
import logging
from enum import Enum
from typing import Dict

import git
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class FailureKind(str, Enum):
    """Closed set of reasons an operation can fail."""

    INVALID_PARAMS = "invalid_params"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"  # e.g. target already exists
    UPSTREAM_ERROR = "upstream_error"  # Git, GitHub or filesystem failure
    UNSUPPORTED = "unsupported"  # unknown tool, operation or method


class JsonRpcErrorCode:
    """JSON-RPC 2.0 error codes used by the envelope."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    # Implementation-defined server errors (-32000 to -32099)
    NOT_FOUND = -32004
    CONFLICT = -32009


ERROR_CODES: Dict[FailureKind, int] = {
    FailureKind.INVALID_PARAMS: JsonRpcErrorCode.INVALID_PARAMS,
    FailureKind.UNSUPPORTED: JsonRpcErrorCode.METHOD_NOT_FOUND,
    FailureKind.NOT_FOUND: JsonRpcErrorCode.NOT_FOUND,
    FailureKind.CONFLICT: JsonRpcErrorCode.CONFLICT,
    FailureKind.UPSTREAM_ERROR: JsonRpcErrorCode.INTERNAL_ERROR,
}


class OperationError(Exception):
    """Raised to direct callers when an operation fails.

    The message names the offending parameter or path so it can be shown to
    an end user or an agent as-is.
    """

    def __init__(self, kind: FailureKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def code(self) -> int:
        return ERROR_CODES[self.kind]

    def __repr__(self) -> str:
        return f"OperationError({self.kind.value!r}, {self.message!r})"


def classify_error(error: BaseException, operation: str = "") -> FailureKind:
    """
    Classify an exception raised by a collaborator into a failure kind.

    Args:
        error: The exception that escaped an external call
        operation: The operation during which the error occurred

    Returns:
        The FailureKind the envelope should report
    """
    if isinstance(error, OperationError):
        return error.kind

    if isinstance(error, FileNotFoundError):
        kind = FailureKind.NOT_FOUND
    elif isinstance(error, FileExistsError):
        kind = FailureKind.CONFLICT
    elif isinstance(
        error, (NotADirectoryError, IsADirectoryError, ValidationError, binascii.Error)
    ):
        kind = FailureKind.INVALID_PARAMS
    else:
        # Git, HTTP, timeouts, permissions and anything unexpected
        kind = FailureKind.UPSTREAM_ERROR

    logger.debug(
        f"Classified {type(error).__name__} in '{operation or 'unknown'}' as {kind.value}"
    )
    return kind


def describe_error(error: BaseException) -> str:
    """Best human-readable text for an exception, keeping the original message."""
    if isinstance(error, OperationError):
        return error.message
    if isinstance(error, git.GitCommandError):
        stderr = (error.stderr or "").strip()
        if stderr.startswith("stderr:"):
            stderr = stderr[len("stderr:"):].strip()
        return stderr.strip("'\" \n") or str(error)
    text = str(error)
    return text if text else type(error).__name__
