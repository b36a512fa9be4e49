"""MCP GitFS Server core components"""

from .envelope import to_jsonrpc_response, to_tool_payload, unwrap
from .params import OperationParams, OperationSpec, ParameterBag, apply_contract
from .results import Failure, OperationResult, Success

__all__ = [
    "Failure",
    "OperationParams",
    "OperationResult",
    "OperationSpec",
    "ParameterBag",
    "Success",
    "apply_contract",
    "to_jsonrpc_response",
    "to_tool_payload",
    "unwrap",
]
