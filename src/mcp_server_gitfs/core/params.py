"""Parameter bags and the per-operation parameter contract.

Transports hand the core an untyped key/value mapping. Before a handler
runs, the mapping is checked against the operation's `OperationSpec`:

* required parameters are checked in declaration order and the first
  missing one is reported,
* optional parameters fall back to the model default,
* boolean parameters are parsed (`True` or the string "true", any case),
* string parameters accept scalars through their plain string form and
  reject mappings and lists.

Specs are derived from frozen pydantic models, so the same declaration
drives validation, defaults and the JSON schema advertised to clients.
"""

import types
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import (
    Any,
    Dict,
    Iterator,
    Literal,
    Mapping,
    Optional,
    Tuple,
    Type,
    Union,
    get_args,
    get_origin,
)

from pydantic import AliasChoices, BaseModel, ConfigDict, ValidationError

from ..error_handling import FailureKind, OperationError
from .results import Failure


class OperationParams(BaseModel):
    """Base class for validated, read-only handler parameters."""

    model_config = ConfigDict(frozen=True, extra="ignore")


class ParameterBag(Mapping[str, Any]):
    """Immutable mapping of raw parameters with typed accessors.

    The accessors fail loudly with INVALID_PARAMS instead of coercing values
    of the wrong type.
    """

    def __init__(self, values: Optional[Mapping[str, Any]] = None):
        self._values = MappingProxyType(dict(values or {}))

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ParameterBag({dict(self._values)!r})"

    def present(self, key: str) -> bool:
        """True when the key is set to a non-null value."""
        return self._values.get(key) is not None

    def get_str(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._values.get(key)
        if value is None:
            return default
        if not isinstance(value, str):
            raise OperationError(
                FailureKind.INVALID_PARAMS, f"Parameter '{key}' must be a string"
            )
        return value

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self._values.get(key)
        if value is None:
            return default
        if not isinstance(value, bool):
            raise OperationError(
                FailureKind.INVALID_PARAMS, f"Parameter '{key}' must be a boolean"
            )
        return value

    def get_mapping(self, key: str) -> "ParameterBag":
        value = self._values.get(key)
        if value is None:
            return ParameterBag()
        if not isinstance(value, Mapping):
            raise OperationError(
                FailureKind.INVALID_PARAMS, f"Parameter '{key}' must be an object"
            )
        return ParameterBag(value)

    def without(self, *keys: str) -> "ParameterBag":
        """Derived bag with the given keys removed."""
        return ParameterBag({k: v for k, v in self._values.items() if k not in keys})


class ParamKind(str, Enum):
    STRING = "string"
    BOOLEAN = "boolean"
    ANY = "any"


@dataclass(frozen=True)
class ParamSpec:
    """One declared parameter of an operation."""

    name: str
    kind: ParamKind
    required: bool
    default: Any = None
    aliases: Tuple[str, ...] = ()

    @property
    def keys(self) -> Tuple[str, ...]:
        return (self.name,) + tuple(a for a in self.aliases if a != self.name)

    def lookup(self, bag: Mapping[str, Any]) -> Optional[str]:
        """First accepted key holding a non-null value, if any."""
        for key in self.keys:
            if bag.get(key) is not None:
                return key
        return None


@dataclass(frozen=True)
class OperationSpec:
    """Static parameter metadata for one operation."""

    name: str
    model: Type[OperationParams]
    params: Tuple[ParamSpec, ...]

    @classmethod
    def from_model(cls, name: str, model: Type[OperationParams]) -> "OperationSpec":
        params = []
        for field_name, info in model.model_fields.items():
            aliases: Tuple[str, ...] = ()
            if isinstance(info.validation_alias, AliasChoices):
                aliases = tuple(
                    choice for choice in info.validation_alias.choices if isinstance(choice, str)
                )
            params.append(
                ParamSpec(
                    name=field_name,
                    kind=_param_kind(info.annotation),
                    required=info.is_required(),
                    default=None if info.is_required() else info.default,
                    aliases=aliases,
                )
            )
        return cls(name=name, model=model, params=tuple(params))

    @property
    def required_keys(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.params if p.required)

    @property
    def optional_defaults(self) -> Dict[str, Any]:
        return {p.name: p.default for p in self.params if not p.required}


def _param_kind(annotation: Any) -> ParamKind:
    """Map a field annotation to the coercion rule the contract applies."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        members = [a for a in get_args(annotation) if a is not type(None)]
        if len(members) == 1:
            return _param_kind(members[0])
        return ParamKind.ANY
    if annotation is bool:
        return ParamKind.BOOLEAN
    if annotation is str:
        return ParamKind.STRING
    if origin is Literal and all(isinstance(a, str) for a in get_args(annotation)):
        return ParamKind.STRING
    return ParamKind.ANY


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return isinstance(value, str) and value.lower() == "true"


def _coerce(param: ParamSpec, value: Any) -> Union[Any, Failure]:
    if param.kind is ParamKind.BOOLEAN:
        return parse_bool(value)
    if param.kind is ParamKind.STRING:
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        return Failure.invalid_params(
            f"Invalid type for parameter '{param.name}': expected string, "
            f"got {type(value).__name__}"
        )
    return value


def apply_contract(spec: OperationSpec, bag: Mapping[str, Any]) -> Union[OperationParams, Failure]:
    """
    Validate a raw parameter mapping against an operation spec.

    Args:
        spec: The operation's parameter spec
        bag: Raw parameters from the transport; never modified

    Returns:
        A frozen params model ready for the handler, or a Failure
    """
    values: Dict[str, Any] = {}
    for param in spec.params:
        key = param.lookup(bag)
        if key is None:
            if param.required:
                return Failure.invalid_params(f"Missing required parameter: {param.name}")
            continue
        coerced = _coerce(param, bag[key])
        if isinstance(coerced, Failure):
            return coerced
        values[param.name] = coerced

    try:
        return spec.model.model_validate(values)
    except ValidationError as e:
        return Failure.invalid_params(_describe_validation_error(e))


def _describe_validation_error(error: ValidationError) -> str:
    details = error.errors()
    if not details:
        return str(error)
    first = details[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "parameters"
    return f"Invalid value for parameter '{location}': {first.get('msg', 'invalid value')}"
