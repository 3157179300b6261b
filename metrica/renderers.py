"""
Metrica renderers - turn a DataTable (or a plain value) into the response body.

Built-in renderers, selected by the ``format`` request parameter:

- **PHPRenderer** - ``php``, PHP ``serialize()`` format (default)
- **XMLRenderer** - ``xml``
- **JSONRenderer** - ``json``
- **HTMLRenderer** - ``html``, a jinja2-rendered table
- **CSVRenderer** - ``csv``

Usage::

    from metrica.renderers import render

    body = render(table, "xml")

An unknown format raises ``UnsupportedFormatFault``; there is no silent
fallback to another format.
"""

from __future__ import annotations

import csv
import io
import json
import math
import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
from xml.sax.saxutils import escape, quoteattr

from jinja2 import Environment, PackageLoader, select_autoescape

from .datatable import DataTable
from .faults import UnsupportedFormatFault

__all__ = [
    "DEFAULT_FORMAT",
    "BaseRenderer",
    "PHPRenderer",
    "XMLRenderer",
    "JSONRenderer",
    "HTMLRenderer",
    "CSVRenderer",
    "RendererSelector",
    "php_serialize",
    "php_unserialize",
    "render",
    "get_default_selector",
]

DEFAULT_FORMAT = "php"


def _rows(data: Any) -> Any:
    if isinstance(data, DataTable):
        return data.to_list()
    return data


# ═══════════════════════════════════════════════════════════════════════════
#  Base Renderer
# ═══════════════════════════════════════════════════════════════════════════

class BaseRenderer:
    """
    Abstract renderer.

    Subclass and set ``media_type`` and ``format_suffix``, then implement
    ``render()`` and ``render_error()``.
    """

    media_type: str = "application/octet-stream"
    format_suffix: str = ""
    charset: Optional[str] = "utf-8"

    def render(self, data: Any) -> str:
        """Render a DataTable or any JSON-like value."""
        raise NotImplementedError

    def render_error(self, message: str) -> str:
        """Render an error payload carrying *message*."""
        raise NotImplementedError

    @property
    def content_type(self) -> str:
        if self.charset:
            return f"{self.media_type}; charset={self.charset}"
        return self.media_type


# ═══════════════════════════════════════════════════════════════════════════
#  PHP serialize
# ═══════════════════════════════════════════════════════════════════════════

def _php_key(key: Any) -> str:
    if isinstance(key, bool):
        key = int(key)
    if isinstance(key, int):
        return f"i:{key};"
    return _php_value(str(key))


def _php_value(value: Any) -> str:
    if value is None:
        return "N;"
    if isinstance(value, bool):
        return f"b:{int(value)};"
    if isinstance(value, int):
        return f"i:{value};"
    if isinstance(value, float):
        if math.isnan(value):
            return "d:NAN;"
        if math.isinf(value):
            return "d:INF;" if value > 0 else "d:-INF;"
        return f"d:{value!r};"
    if isinstance(value, str):
        return f's:{len(value.encode("utf-8"))}:"{value}";'
    if isinstance(value, DataTable):
        value = value.to_list()
    if isinstance(value, dict):
        items: Iterable[Tuple[Any, Any]] = value.items()
        size = len(value)
    elif isinstance(value, (list, tuple)):
        items = enumerate(value)
        size = len(value)
    else:
        return _php_value(str(value))
    body = "".join(_php_key(k) + _php_value(v) for k, v in items)
    return f"a:{size}:{{{body}}}"


def php_serialize(value: Any) -> str:
    """Serialize *value* the way PHP's ``serialize()`` does."""
    return _php_value(value)


_PHP_SPECIAL_FLOATS = {"NAN": math.nan, "INF": math.inf, "-INF": -math.inf}


class _PHPReader:
    """Recursive-descent reader for PHP ``serialize()`` output."""

    def __init__(self, payload: str):
        self.data = payload.encode("utf-8")
        self.pos = 0

    def _read_until(self, terminator: bytes) -> str:
        end = self.data.index(terminator, self.pos)
        chunk = self.data[self.pos:end].decode("utf-8")
        self.pos = end + len(terminator)
        return chunk

    def _expect(self, token: bytes) -> None:
        if self.data[self.pos:self.pos + len(token)] != token:
            raise ValueError(f"Expected {token!r} at offset {self.pos}")
        self.pos += len(token)

    def read(self) -> Any:
        kind = self.data[self.pos:self.pos + 1]
        if kind == b"N":
            self._expect(b"N;")
            return None
        self.pos += 2
        if kind == b"b":
            return self._read_until(b";") == "1"
        if kind == b"i":
            return int(self._read_until(b";"))
        if kind == b"d":
            raw = self._read_until(b";")
            if raw in _PHP_SPECIAL_FLOATS:
                return _PHP_SPECIAL_FLOATS[raw]
            return float(raw)
        if kind == b"s":
            length = int(self._read_until(b":"))
            self._expect(b'"')
            value = self.data[self.pos:self.pos + length].decode("utf-8")
            self.pos += length
            self._expect(b'";')
            return value
        if kind == b"a":
            size = int(self._read_until(b":"))
            self._expect(b"{")
            result: Dict[Any, Any] = {}
            for _ in range(size):
                key = self.read()
                result[key] = self.read()
            self._expect(b"}")
            if list(result) == list(range(size)):
                return list(result.values())
            return result
        raise ValueError(f"Unsupported PHP serialized type {kind!r} at offset {self.pos - 2}")


def php_unserialize(payload: str) -> Any:
    """
    Reverse of ``php_serialize``.

    Arrays with keys ``0..n-1`` come back as lists, other arrays as dicts.
    PHP has a single empty array, so an empty dict serialized by
    ``php_serialize`` comes back as ``[]``.
    """
    return _PHPReader(payload).read()


class PHPRenderer(BaseRenderer):
    """Render data in PHP ``serialize()`` format. Default renderer."""

    media_type = "text/plain"
    format_suffix = "php"

    def render(self, data: Any) -> str:
        return php_serialize(_rows(data))

    def render_error(self, message: str) -> str:
        return php_serialize({"result": "error", "message": message})


# ═══════════════════════════════════════════════════════════════════════════
#  XML Renderer
# ═══════════════════════════════════════════════════════════════════════════

def _sanitize_xml_tag(tag: str) -> str:
    """Ensure a string is a valid XML tag name."""
    tag = re.sub(r"[^a-zA-Z0-9_.-]", "_", tag)
    if not tag or tag[0].isdigit() or tag[0] in ".-":
        tag = "_" + tag
    return tag


class XMLRenderer(BaseRenderer):
    """
    Render data as XML::

        <?xml version="1.0" encoding="utf-8" ?>
        <result>
            <row>
                <label>Firefox</label>
                <nb_visits>12</nb_visits>
            </row>
        </result>
    """

    media_type = "text/xml"
    format_suffix = "xml"

    header = '<?xml version="1.0" encoding="utf-8" ?>'

    def __init__(self, *, root_tag: str = "result", row_tag: str = "row", indent: str = "\t"):
        self.root_tag = root_tag
        self.row_tag = row_tag
        self.indent = indent

    def render(self, data: Any) -> str:
        data = _rows(data)
        lines = [self.header]
        if isinstance(data, (list, tuple)):
            if not data:
                lines.append(f"<{self.root_tag} />")
                return "\n".join(lines)
            lines.append(f"<{self.root_tag}>")
            for item in data:
                self._render_element(self.row_tag, item, lines, 1)
            lines.append(f"</{self.root_tag}>")
        elif isinstance(data, dict):
            lines.append(f"<{self.root_tag}>")
            self._render_children(data, lines, 1)
            lines.append(f"</{self.root_tag}>")
        else:
            lines.append(f"<{self.root_tag}>{self._text(data)}</{self.root_tag}>")
        return "\n".join(lines)

    def render_error(self, message: str) -> str:
        return "\n".join([
            self.header,
            f"<{self.root_tag}>",
            f"{self.indent}<error message={quoteattr(message)} />",
            f"</{self.root_tag}>",
        ])

    def _text(self, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "1" if value else "0"
        return escape(str(value))

    def _render_children(self, mapping: Dict[str, Any], lines: List[str], depth: int) -> None:
        for key, value in mapping.items():
            self._render_element(_sanitize_xml_tag(str(key)), value, lines, depth)

    def _render_element(self, tag: str, value: Any, lines: List[str], depth: int) -> None:
        prefix = self.indent * depth
        if isinstance(value, dict):
            lines.append(f"{prefix}<{tag}>")
            self._render_children(value, lines, depth + 1)
            lines.append(f"{prefix}</{tag}>")
        elif isinstance(value, (list, tuple)):
            lines.append(f"{prefix}<{tag}>")
            for item in value:
                self._render_element(self.row_tag, item, lines, depth + 1)
            lines.append(f"{prefix}</{tag}>")
        else:
            lines.append(f"{prefix}<{tag}>{self._text(value)}</{tag}>")


# ═══════════════════════════════════════════════════════════════════════════
#  JSON Renderer
# ═══════════════════════════════════════════════════════════════════════════

class JSONRenderer(BaseRenderer):
    """Render data as JSON."""

    media_type = "application/json"
    format_suffix = "json"

    def __init__(self, *, indent: Optional[int] = None, ensure_ascii: bool = False):
        self.indent = indent
        self.ensure_ascii = ensure_ascii

    def render(self, data: Any) -> str:
        def _default(o):
            if isinstance(o, (set, tuple)):
                return list(o)
            if hasattr(o, "isoformat"):
                return o.isoformat()
            return str(o)

        return json.dumps(
            _rows(data),
            default=_default,
            indent=self.indent,
            ensure_ascii=self.ensure_ascii,
        )

    def render_error(self, message: str) -> str:
        return json.dumps({"result": "error", "message": message}, ensure_ascii=self.ensure_ascii)


# ═══════════════════════════════════════════════════════════════════════════
#  HTML Renderer
# ═══════════════════════════════════════════════════════════════════════════

class HTMLRenderer(BaseRenderer):
    """Render data as an HTML table through the ``table.html`` jinja2 template."""

    media_type = "text/html"
    format_suffix = "html"

    def __init__(self, *, environment: Optional[Environment] = None):
        self.environment = environment or Environment(
            loader=PackageLoader("metrica", "templates"),
            autoescape=select_autoescape(["html"]),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, data: Any) -> str:
        data = _rows(data)
        if isinstance(data, dict):
            data = [data]
        if isinstance(data, (list, tuple)) and all(isinstance(row, dict) for row in data):
            columns: Dict[str, None] = {}
            for row in data:
                for key in row:
                    columns.setdefault(key, None)
            return self.environment.get_template("table.html").render(
                columns=list(columns), rows=data, value=None,
            )
        return self.environment.get_template("table.html").render(
            columns=[], rows=[], value=data,
        )

    def render_error(self, message: str) -> str:
        return self.environment.get_template("error.html").render(message=message)


# ═══════════════════════════════════════════════════════════════════════════
#  CSV Renderer
# ═══════════════════════════════════════════════════════════════════════════

class CSVRenderer(BaseRenderer):
    """
    Render data as CSV: one header line with every column seen, then one
    line per row. Cells a row lacks are left empty.
    """

    media_type = "text/csv"
    format_suffix = "csv"

    def __init__(self, *, delimiter: str = ","):
        self.delimiter = delimiter

    def _write(self, header: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, delimiter=self.delimiter, lineterminator="\n")
        writer.writerow(header)
        writer.writerows(rows)
        return buffer.getvalue()

    @staticmethod
    def _cell(value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (dict, list, tuple)):
            return json.dumps(value, default=str)
        return value

    def render(self, data: Any) -> str:
        data = _rows(data)
        if isinstance(data, dict):
            data = [data]
        if isinstance(data, (list, tuple)) and all(isinstance(row, dict) for row in data):
            if not data:
                return ""
            columns: Dict[str, None] = {}
            for row in data:
                for key in row:
                    columns.setdefault(key, None)
            header = list(columns)
            return self._write(
                header, ([self._cell(row.get(col)) for col in header] for row in data)
            )
        if isinstance(data, (list, tuple)):
            return self._write(["value"], ([self._cell(item)] for item in data))
        return self._write(["value"], [[self._cell(data)]])

    def render_error(self, message: str) -> str:
        return self._write(["result", "message"], [["error", message]])


# ═══════════════════════════════════════════════════════════════════════════
#  Renderer Selector
# ═══════════════════════════════════════════════════════════════════════════

class RendererSelector:
    """
    Map a ``format`` identifier to its renderer.

    Format names are case-insensitive.
    """

    def __init__(self, renderers: Optional[Sequence[BaseRenderer]] = None):
        self._renderers: Dict[str, BaseRenderer] = {}
        for renderer in renderers if renderers is not None else (
            PHPRenderer(), XMLRenderer(), JSONRenderer(), HTMLRenderer(), CSVRenderer(),
        ):
            self.register(renderer)

    def register(self, renderer: BaseRenderer) -> None:
        self._renderers[renderer.format_suffix.lower()] = renderer

    @property
    def formats(self) -> List[str]:
        return list(self._renderers)

    def supports(self, format: str) -> bool:
        return str(format).lower() in self._renderers

    def get(self, format: str) -> BaseRenderer:
        renderer = self._renderers.get(str(format).lower())
        if renderer is None:
            raise UnsupportedFormatFault(str(format), self.formats)
        return renderer

    def render(self, data: Any, format: str = DEFAULT_FORMAT) -> str:
        return self.get(format).render(data)


_default_selector: Optional[RendererSelector] = None


def get_default_selector() -> RendererSelector:
    global _default_selector
    if _default_selector is None:
        _default_selector = RendererSelector()
    return _default_selector


def render(table: Any, format: str = DEFAULT_FORMAT) -> str:
    """Render *table* in *format* with the built-in renderers."""
    return get_default_selector().render(table, format)
