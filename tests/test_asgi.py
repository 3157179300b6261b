"""
Tests for the ASGI application.
"""

import json

import httpx
import pytest

from metrica.asgi import ApiApplication, build_dispatcher, create_app
from metrica.config import MetricaConfig
from metrica.registry import PluginRegistry


@pytest.fixture
def app(registry):
    return create_app(MetricaConfig(), registry=registry, load_entry_points=False)


def _client(app):
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


class TestHTTP:

    @pytest.mark.asyncio
    async def test_get_table_as_json(self, app):
        async with _client(app) as client:
            response = await client.get("/", params={
                "method": "Example.getBrowsers",
                "idSite": "1",
                "format": "json",
                "filter_offset": "0",
                "filter_limit": "2",
            })
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json; charset=utf-8"
        assert [row["label"] for row in response.json()] == ["Chrome", "Firefox"]

    @pytest.mark.asyncio
    async def test_default_format_is_php(self, app):
        async with _client(app) as client:
            response = await client.get("/?method=Example.getBrowsers&idSite=2")
        assert response.headers["content-type"] == "text/plain; charset=utf-8"
        assert response.text.startswith("a:2:{")

    @pytest.mark.asyncio
    async def test_post_form_body(self, app):
        async with _client(app) as client:
            response = await client.post(
                "/?format=xml",
                data={"method": "Example.getBrowsers", "idSite": "1", "format": "json"},
            )
        assert response.headers["content-type"].startswith("application/json")
        assert len(response.json()) == 5

    @pytest.mark.asyncio
    async def test_post_non_form_body_is_ignored(self, app):
        async with _client(app) as client:
            response = await client.post(
                "/?method=Example.getAnswerToLife&format=json",
                content=b'{"method": "Nope.nope"}',
                headers={"content-type": "application/json"},
            )
        assert response.json() == 42

    @pytest.mark.asyncio
    async def test_post_body_with_invalid_utf8(self, app):
        async with _client(app) as client:
            response = await client.post(
                "/?method=Reports.getSegments&format=json",
                content=b"segments=\xff\xfe",
                headers={"content-type": "application/x-www-form-urlencoded"},
            )
        assert response.status_code == 200
        assert response.json() == ["\ufffd\ufffd"]

    @pytest.mark.asyncio
    async def test_error_payload_in_requested_format(self, app):
        async with _client(app) as client:
            response = await client.get("/?method=Referers.getKeywords&format=xml")
        assert response.status_code == 200
        assert response.headers["content-type"] == "text/xml; charset=utf-8"
        assert "<error message=\"The plugin 'Referers' is not enabled.\" />" in response.text

    @pytest.mark.asyncio
    async def test_unsupported_format_falls_back_to_default(self, app):
        async with _client(app) as client:
            response = await client.get("/?method=Example.getBrowsers&idSite=1&format=yaml")
        assert response.headers["content-type"] == "text/plain; charset=utf-8"
        assert "Renderer format 'yaml' not valid." in response.text

    @pytest.mark.asyncio
    async def test_raw_values_are_rendered(self, app):
        async with _client(app) as client:
            answer = await client.get("/?method=Example.getAnswerToLife&format=json")
            sites = await client.get("/?method=Example.getSites&format=csv")
        assert answer.json() == 42
        assert sites.text == "idsite,name\n1,Site 1\n2,Site 2\n"

    @pytest.mark.asyncio
    async def test_content_length(self, app):
        async with _client(app) as client:
            response = await client.get("/?method=Example.getBrowsers&idSite=1&format=html")
        assert int(response.headers["content-length"]) == len(response.content)
        assert "<td>Chrome</td>" in response.text


class TestProtocol:

    @pytest.mark.asyncio
    async def test_lifespan(self, app):
        messages = iter([{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}])
        sent = []

        async def receive():
            return next(messages)

        async def send(message):
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)
        assert sent == [
            {"type": "lifespan.startup.complete"},
            {"type": "lifespan.shutdown.complete"},
        ]

    @pytest.mark.asyncio
    async def test_websocket_is_closed(self, app):
        sent = []

        async def receive():
            return {"type": "websocket.connect"}

        async def send(message):
            sent.append(message)

        await app({"type": "websocket"}, receive, send)
        assert sent == [{"type": "websocket.close", "code": 1003}]


class TestFactory:

    def test_enabled_plugins_from_config(self):
        registry = PluginRegistry()
        dispatcher = build_dispatcher(
            MetricaConfig(enabled_plugins=[]), registry=registry, load_entry_points=False,
        )
        assert registry.is_registered("Example")
        assert not registry.is_enabled("Example")
        assert dispatcher.config.enabled_plugins == []

    def test_create_app(self):
        app = create_app(load_entry_points=False)
        assert isinstance(app, ApiApplication)
        assert app.dispatcher.plugins.is_enabled("Example")

    def test_entry_points_are_loaded(self, monkeypatch):
        loaded = []
        monkeypatch.setattr(PluginRegistry, "load_entry_points", lambda self: loaded.append(self))
        create_app()
        assert len(loaded) == 1
