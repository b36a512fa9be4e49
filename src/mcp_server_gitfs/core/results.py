"""Operation result types shared by every handler"""

from dataclasses import dataclass, field
from typing import Any, Dict, Union

from ..error_handling import FailureKind


@dataclass(frozen=True)
class Success:
    """Successful outcome carrying the operation's domain fields."""

    fields: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    """Failed outcome with a closed failure kind and a displayable message."""

    kind: FailureKind
    message: str

    @property
    def ok(self) -> bool:
        return False

    @classmethod
    def invalid_params(cls, message: str) -> "Failure":
        return cls(FailureKind.INVALID_PARAMS, message)

    @classmethod
    def not_found(cls, message: str) -> "Failure":
        return cls(FailureKind.NOT_FOUND, message)

    @classmethod
    def conflict(cls, message: str) -> "Failure":
        return cls(FailureKind.CONFLICT, message)

    @classmethod
    def upstream(cls, message: str) -> "Failure":
        return cls(FailureKind.UPSTREAM_ERROR, message)

    @classmethod
    def unsupported(cls, message: str) -> "Failure":
        return cls(FailureKind.UNSUPPORTED, message)


OperationResult = Union[Success, Failure]
