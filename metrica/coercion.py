"""
Parameter coercion - typed access to the raw request bag.

``get_request_var`` is the single way request values reach API methods and
generic filters: it looks the name up, applies the default when the value
is absent and converts the raw string to the requested type.

Defaults are an explicit sum type so that ``None`` (or any other value)
can be a legitimate default::

    get_request_var("idSite", REQUIRED, ParamType.INTEGER, request)
    get_request_var("period", Default("day"), ParamType.STRING, request)
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Mapping, Optional, Union

from .faults import (
    Fault,
    InvalidParameterTypeFault,
    MissingRequiredParameterFault,
)

__all__ = [
    "ParamType",
    "Default",
    "REQUIRED",
    "DefaultSpec",
    "BindingResult",
    "get_request_var",
    "bind_request_var",
    "infer_type",
]


class ParamType(str, Enum):
    """Target types a raw request value can be converted to."""
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    ARRAY = "array"


@dataclass(frozen=True)
class Default:
    """A default value, returned unchanged when the parameter is absent."""
    value: Any


class _Required:
    """Marker for parameters the caller must supply."""

    _instance: Optional["_Required"] = None

    def __new__(cls) -> "_Required":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "REQUIRED"

    def __reduce__(self):
        return (_Required, ())


REQUIRED = _Required()

DefaultSpec = Union[Default, _Required]


# ═══════════════════════════════════════════════════════════════════════════
#  Value coercion helpers
# ═══════════════════════════════════════════════════════════════════════════

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")

_INTEGER_RE = re.compile(r"[+-]?\d+", re.ASCII)
_FLOAT_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)


def _is_absent(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and raw == "")


def _coerce(name: str, raw: Any, type_: Optional[ParamType]) -> Any:
    """Convert *raw* to *type_*; raise ``InvalidParameterTypeFault`` if it can't."""
    if type_ is None:
        return raw

    if type_ is ParamType.ARRAY:
        if isinstance(raw, list):
            return list(raw)
        return [raw]

    if isinstance(raw, list):
        raise InvalidParameterTypeFault(name, type_.value, raw)

    if type_ is ParamType.STRING:
        return raw

    value = raw.strip()
    if type_ is ParamType.INTEGER:
        if not _INTEGER_RE.fullmatch(value):
            raise InvalidParameterTypeFault(name, type_.value, raw)
        return int(value)

    if type_ is ParamType.FLOAT:
        if not _FLOAT_RE.fullmatch(value):
            raise InvalidParameterTypeFault(name, type_.value, raw)
        result = float(value)
        if not math.isfinite(result):
            raise InvalidParameterTypeFault(name, type_.value, raw)
        return result

    if type_ is ParamType.BOOLEAN:
        lowered = value.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise InvalidParameterTypeFault(name, type_.value, raw)

    raise InvalidParameterTypeFault(name, str(type_), raw)


def infer_type(default: DefaultSpec, annotation: Any = None) -> Optional[ParamType]:
    """
    Pick the coercion type for a method parameter.

    The annotation wins when it is one of the plain builtins; otherwise the
    type of the default value decides. Required, unannotated parameters
    are passed through as raw strings.
    """
    for candidate in (annotation, type(default.value) if isinstance(default, Default) else None):
        if candidate is bool or candidate == "bool":
            return ParamType.BOOLEAN
        if candidate is int or candidate == "int":
            return ParamType.INTEGER
        if candidate is float or candidate == "float":
            return ParamType.FLOAT
        if candidate is str or candidate == "str":
            return ParamType.STRING
        if candidate in (list, tuple, List, "list"):
            return ParamType.ARRAY
    return None


# ═══════════════════════════════════════════════════════════════════════════
#  Public API
# ═══════════════════════════════════════════════════════════════════════════

def get_request_var(
    name: str,
    default: DefaultSpec = REQUIRED,
    type_: Optional[Union[ParamType, str]] = None,
    request: Optional[Mapping[str, Any]] = None,
) -> Any:
    """
    Return the value of *name* from *request*, converted to *type_*.

    - Present: the raw value converted to ``type_``.
    - Absent (or an empty string) with ``Default(v)``: ``v`` unchanged.
    - Absent without a default: ``MissingRequiredParameterFault``.

    Raises ``InvalidParameterTypeFault`` when conversion fails.
    """
    if type_ is not None and not isinstance(type_, ParamType):
        type_ = ParamType(type_)

    raw = (request or {}).get(name)
    if _is_absent(raw):
        if isinstance(default, Default):
            return default.value
        raise MissingRequiredParameterFault(name)

    return _coerce(name, raw, type_)


@dataclass(frozen=True)
class BindingResult:
    """Outcome of binding one parameter: a value or the fault that prevented it."""
    name: str
    value: Any = None
    error: Optional[Fault] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def bind_request_var(
    name: str,
    default: DefaultSpec,
    type_: Optional[Union[ParamType, str]],
    request: Mapping[str, Any],
) -> BindingResult:
    """Like ``get_request_var`` but returns the failure instead of raising it."""
    try:
        return BindingResult(name, get_request_var(name, default, type_, request))
    except (MissingRequiredParameterFault, InvalidParameterTypeFault) as fault:
        return BindingResult(name, error=fault)
