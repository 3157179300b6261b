"""
ASGI adapter - serves the API dispatcher over HTTP.

Every HTTP request is one API call. Parameters come from the query string
and, for ``application/x-www-form-urlencoded`` POST bodies, from the body
(body values win)::

    GET /?method=Example.getBrowsers&idSite=1&format=json&filter_limit=3

The response is always ``200`` with the rendered table, the raw value
rendered in the requested format, or an error payload in that format.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

from .config import MetricaConfig
from .dispatcher import ApiDispatcher
from .plugins import register_builtin_plugins
from .registry import PluginRegistry
from .request import ApiRequest

__all__ = ["ApiApplication", "build_dispatcher", "create_app"]

_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class ApiApplication:
    """
    ASGI application.
    Converts ASGI HTTP events to ``ApiRequest`` and dispatcher output to a response.
    """

    __slots__ = ("dispatcher", "logger")

    def __init__(self, dispatcher: ApiDispatcher):
        self.dispatcher = dispatcher
        self.logger = logging.getLogger("metrica.asgi")

    async def __call__(self, scope: dict, receive: Callable, send: Callable):
        scope_type = scope["type"]
        if scope_type == "http":
            await self.handle_http(scope, receive, send)
        elif scope_type == "websocket":
            self.logger.warning("WebSocket connection attempt, closing")
            await send({"type": "websocket.close", "code": 1003})
        elif scope_type == "lifespan":
            await self.handle_lifespan(scope, receive, send)

    async def _read_body(self, receive: Callable) -> bytes:
        chunks: List[bytes] = []
        more_body = True
        while more_body:
            message = await receive()
            if message["type"] == "http.disconnect":
                break
            chunks.append(message.get("body", b""))
            more_body = message.get("more_body", False)
        return b"".join(chunks)

    @staticmethod
    def _header(scope: dict, name: bytes) -> str:
        for key, value in scope.get("headers", []):
            if key.lower() == name:
                return value.decode("latin-1")
        return ""

    async def build_request(self, scope: dict, receive: Callable) -> ApiRequest:
        query = scope.get("query_string", b"").decode("latin-1")
        if scope.get("method", "GET") == "POST":
            content_type = self._header(scope, b"content-type").split(";")[0].strip().lower()
            body = await self._read_body(receive)
            if content_type == _FORM_CONTENT_TYPE and body:
                query = "&".join(part for part in (query, body.decode("utf-8", errors="replace")) if part)
        return ApiRequest.from_string(query)

    async def handle_http(self, scope: dict, receive: Callable, send: Callable):
        request = await self.build_request(scope, receive)
        renderer = self.dispatcher.renderer_for(request)

        result = self.dispatcher.dispatch(request)
        if not isinstance(result, (str, bytes)):
            try:
                result = renderer.render(result)
            except Exception:
                self.logger.exception("Cannot render value returned by %s", request.get("method"))
                result = renderer.render_error("The value returned by the API method cannot be rendered.")

        body = result.encode("utf-8") if isinstance(result, str) else result
        headers: List[Tuple[bytes, bytes]] = [
            (b"content-type", renderer.content_type.encode("latin-1")),
            (b"content-length", str(len(body)).encode("latin-1")),
        ]
        await send({"type": "http.response.start", "status": 200, "headers": headers})
        await send({"type": "http.response.body", "body": body})

    async def handle_lifespan(self, scope: dict, receive: Callable, send: Callable):
        """Handle ASGI lifespan events."""
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                self.logger.debug("Metrica API ready")
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return


def build_dispatcher(
    config: Optional[MetricaConfig] = None,
    *,
    registry: Optional[PluginRegistry] = None,
    load_entry_points: bool = True,
) -> ApiDispatcher:
    """
    Assemble a dispatcher: built-in plugins, entry-point plugins, and the
    plugin selection from *config*.
    """
    config = config or MetricaConfig()
    registry = registry if registry is not None else PluginRegistry()
    register_builtin_plugins(registry)
    if load_entry_points:
        registry.load_entry_points()
    registry.set_enabled(config.enabled_plugins)
    return ApiDispatcher(registry, config=config)


def create_app(
    config: Optional[MetricaConfig] = None,
    *,
    registry: Optional[PluginRegistry] = None,
    load_entry_points: bool = True,
) -> ApiApplication:
    """Build the ASGI application."""
    return ApiApplication(
        build_dispatcher(config, registry=registry, load_entry_points=load_entry_points)
    )
