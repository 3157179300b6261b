"""
Method descriptors - signature introspection for plugin API methods.

The dispatcher never inspects API methods itself; it asks for an ordered
list of ``ParameterDescriptor`` and binds request values against it.
"""

from __future__ import annotations

import inspect
import types
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol, Union, get_args, get_origin, get_type_hints

from .coercion import REQUIRED, Default, DefaultSpec, ParamType, infer_type

__all__ = [
    "ParameterDescriptor",
    "MethodDescriptorRegistry",
    "describe_callable",
]


@dataclass(frozen=True)
class ParameterDescriptor:
    """
    Formal parameter of an API method.

    Attributes:
        name: Parameter name, also the request key it is read from
        default: ``Default(value)`` or ``REQUIRED``
        type: Coercion type; ``None`` passes the raw request string
    """
    name: str
    default: DefaultSpec = REQUIRED
    type: Optional[ParamType] = None

    @property
    def has_default(self) -> bool:
        return isinstance(self.default, Default)


class MethodDescriptorRegistry(Protocol):
    """What the dispatcher needs to know about target operations."""

    def exists(self, module: str, method: str) -> bool: ...

    def describe(self, module: str, method: str) -> List[ParameterDescriptor]: ...


def _plain_annotation(annotation: Any) -> Any:
    """Reduce ``Optional[int]`` / ``list[str]`` style hints to the builtin behind them."""
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        return _plain_annotation(args[0]) if len(args) == 1 else None
    if origin is not None:
        return origin
    return annotation


def describe_callable(func: Callable[..., Any]) -> List[ParameterDescriptor]:
    """
    Ordered descriptors for the positional parameters of *func*.

    ``self``/``cls`` of bound methods, ``*args``, ``**kwargs`` and
    keyword-only parameters are not bindable from a request and are left out.
    """
    signature = inspect.signature(func)
    try:
        hints = get_type_hints(func)
    except Exception:
        hints = {}

    descriptors: List[ParameterDescriptor] = []
    for name, param in signature.parameters.items():
        if param.kind not in (
            inspect.Parameter.POSITIONAL_ONLY,
            inspect.Parameter.POSITIONAL_OR_KEYWORD,
        ):
            continue
        if name in ("self", "cls"):
            continue

        default: DefaultSpec = (
            REQUIRED if param.default is inspect.Parameter.empty else Default(param.default)
        )
        annotation = _plain_annotation(hints.get(name, param.annotation))
        if annotation is inspect.Parameter.empty:
            annotation = None
        descriptors.append(ParameterDescriptor(
            name=name,
            default=default,
            type=infer_type(default, annotation),
        ))
    return descriptors
