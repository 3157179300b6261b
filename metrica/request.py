"""
API request - the flat parameter bag a dispatch works on.

A request has the form of a normal GET query string::

    method=Example.getBrowsers
    &idSite=1
    &period=week
    &format=xml
    &filter_limit=5
    &filter_offset=0

It is built either from an explicit string (``ApiRequest.from_string``) or
from parameters the caller already pulled out of an HTTP request
(``ApiRequest.from_mapping``). The dispatcher never reads ambient state.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict, Iterator, List, Optional, Union
from urllib.parse import parse_qsl

RequestValue = Union[str, List[str]]

__all__ = ["ApiRequest", "RequestValue"]

_STRIPPED_CHARS = ("\n", "\t")


class ApiRequest(Mapping[str, RequestValue]):
    """
    Immutable mapping of parameter name to raw value.

    Scalar keys map to strings; when a key repeats, the last value wins.
    PHP-style array keys (``ids[]=1&ids[]=2``) map to a list of strings
    under the bare name (``ids``).
    """

    __slots__ = ("_params",)

    def __init__(self, params: Optional[Mapping[str, Any]] = None):
        data: Dict[str, RequestValue] = {}
        for key, value in (params or {}).items():
            if isinstance(value, (list, tuple)):
                data[str(key)] = [str(v) for v in value]
            elif value is None:
                data[str(key)] = ""
            else:
                data[str(key)] = str(value)
        self._params = data

    @classmethod
    def from_string(cls, query: str) -> "ApiRequest":
        """
        Parse an explicit request string.

        Leading/trailing whitespace is trimmed and embedded newlines and
        tabs are removed before the string is parsed, so a request may be
        written over several lines.
        """
        query = query.strip()
        for char in _STRIPPED_CHARS:
            query = query.replace(char, "")

        data: Dict[str, RequestValue] = {}
        for key, value in parse_qsl(query, keep_blank_values=True):
            if key.endswith("[]"):
                bucket = data.setdefault(key[:-2], [])
                if isinstance(bucket, list):
                    bucket.append(value)
                else:
                    data[key[:-2]] = [value]
            else:
                data[key] = value
        return cls(data)

    @classmethod
    def from_mapping(cls, params: Mapping[str, Any]) -> "ApiRequest":
        """Wrap parameters already extracted from an HTTP request."""
        return cls(params)

    def __getitem__(self, key: str) -> RequestValue:
        return self._params[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._params)

    def __len__(self) -> int:
        return len(self._params)

    def __repr__(self) -> str:
        return f"ApiRequest({self._params!r})"

    def with_params(self, **params: Any) -> "ApiRequest":
        """Return a copy with some parameters replaced."""
        merged: Dict[str, Any] = dict(self._params)
        merged.update(params)
        return ApiRequest(merged)

    def to_dict(self) -> Dict[str, RequestValue]:
        """Plain dict copy, used for diagnostics."""
        return {
            key: list(value) if isinstance(value, list) else value
            for key, value in self._params.items()
        }
