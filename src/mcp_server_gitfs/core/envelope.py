"""Uniform response shapes for JSON-RPC, MCP and direct callers"""

import json
from typing import Any, Dict, Optional, Union

from ..error_handling import ERROR_CODES, OperationError
from .results import Failure, OperationResult, Success

JSONRPC_VERSION = "2.0"

RequestId = Optional[Union[str, int]]


def success_fields(result: Success) -> Dict[str, Any]:
    """Success fields with a `status` entry, unless the handler already set one."""
    fields = dict(result.fields)
    fields.setdefault("status", "success")
    return fields


def to_jsonrpc_response(request_id: RequestId, result: OperationResult) -> Dict[str, Any]:
    """Wrap a result as a JSON-RPC 2.0 response object."""
    if isinstance(result, Success):
        return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": success_fields(result)}
    return jsonrpc_error(
        request_id,
        ERROR_CODES[result.kind],
        result.message,
        data={"kind": result.kind.value},
    )


def jsonrpc_error(
    request_id: RequestId, code: int, message: str, data: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    error: Dict[str, Any] = {"code": code, "message": message}
    if data:
        error["data"] = data
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error}


def to_tool_payload(result: OperationResult) -> Dict[str, Any]:
    """Payload returned to MCP tool callers."""
    if isinstance(result, Success):
        return success_fields(result)
    return {"status": "error", "kind": result.kind.value, "message": result.message}


def to_tool_text(result: OperationResult) -> str:
    return json.dumps(to_tool_payload(result), indent=2, ensure_ascii=False, default=str)


def unwrap(result: OperationResult) -> Dict[str, Any]:
    """Return success fields or raise the failure as an OperationError."""
    if isinstance(result, Failure):
        raise OperationError(result.kind, result.message)
    return success_fields(result)
