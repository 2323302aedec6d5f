"""
Tests for the rendering engine HTTP client.
"""

import asyncio
import json

import httpx
import pytest

from template_cache.errors import RenderError
from template_cache.protocols import TemplateRenderer
from template_cache.repositories import HttpTemplateRenderer


def make_renderer(handler) -> HttpTemplateRenderer:
    return HttpTemplateRenderer(
        base_url="http://engine.test",
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def template(tmp_path):
    path = tmp_path / "letter.docx"
    path.write_bytes(b"TEMPLATE-BYTES")
    return path


def test_satisfies_protocol():
    assert isinstance(HttpTemplateRenderer(base_url="http://engine.test"), TemplateRenderer)


def test_render_posts_template_and_payload(template):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = request.content
        return httpx.Response(200, content=b"%PDF-report", headers={"X-Report-Name": "letter.pdf"})

    renderer = make_renderer(handler)
    content, name = asyncio.run(
        renderer.render(template, {"name": "Jane"}, {"convertTo": "pdf", "reportName": "letter.pdf"}, {"up": "x"})
    )

    assert content == b"%PDF-report"
    assert name == "letter.pdf"
    assert seen["method"] == "POST"
    assert seen["path"] == "/render"
    assert b'name="template"' in seen["body"]
    assert b"TEMPLATE-BYTES" in seen["body"]
    assert json.dumps({"name": "Jane"}).encode() in seen["body"]


def test_render_falls_back_to_requested_name(template):
    renderer = make_renderer(lambda request: httpx.Response(200, content=b"out"))
    _, name = asyncio.run(renderer.render(template, {}, {"convertTo": "odt", "reportName": "x.odt"}))
    assert name == "x.odt"


def test_render_engine_error(template):
    renderer = make_renderer(lambda request: httpx.Response(500, text="formatter exploded"))

    with pytest.raises(RenderError) as exc_info:
        asyncio.run(renderer.render(template, {}, {"convertTo": "pdf", "reportName": "a.pdf"}))

    assert exc_info.value.http_status == 500
    assert "formatter exploded" in exc_info.value.message


def test_render_engine_unreachable(template):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    renderer = make_renderer(handler)
    with pytest.raises(RenderError):
        asyncio.run(renderer.render(template, {}, {"convertTo": "pdf", "reportName": "a.pdf"}))


def test_render_missing_template(tmp_path):
    renderer = make_renderer(lambda request: httpx.Response(200, content=b"out"))
    with pytest.raises(RenderError):
        asyncio.run(renderer.render(tmp_path / "gone.docx", {}, {"reportName": "a.docx"}))


def test_file_types_unwraps_dictionary():
    types = {"docx": ["pdf", "odt"]}
    renderer = make_renderer(lambda request: httpx.Response(200, json={"dictionary": types}))
    assert asyncio.run(renderer.file_types()) == types


def test_file_types_plain_object():
    types = {"xlsx": ["pdf"]}
    renderer = make_renderer(lambda request: httpx.Response(200, json=types))
    assert asyncio.run(renderer.file_types()) == types


def test_file_types_rejects_non_object():
    renderer = make_renderer(lambda request: httpx.Response(200, json=["docx"]))
    with pytest.raises(RenderError):
        asyncio.run(renderer.file_types())


def test_is_available():
    up = make_renderer(lambda request: httpx.Response(200, json={}))
    down = make_renderer(lambda request: httpx.Response(503))
    assert asyncio.run(up.is_available()) is True
    assert asyncio.run(down.is_available()) is False
