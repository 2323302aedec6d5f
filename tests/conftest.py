"""Shared fixtures for template cache tests."""

import json
from pathlib import Path

import pytest

from template_cache.errors import RenderError
from template_cache.repositories import FileCacheStore
from template_cache.services import CacheService


class FakeRenderer:
    """In-process stand-in for the rendering engine.

    The "report" is the template bytes followed by the JSON data.
    """

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[dict] = []

    async def render(self, template_path, data, options, formatters=None):
        self.calls.append(
            {"template_path": Path(template_path), "data": data, "options": options, "formatters": formatters}
        )
        if self.fail:
            raise RenderError("Could not render template. engine down")
        content = Path(template_path).read_bytes() + b"|" + json.dumps(data, sort_keys=True).encode()
        return content, options["reportName"]

    async def file_types(self):
        if self.fail:
            raise RenderError("Unable to get file types dictionary")
        return {"docx": ["docx", "pdf", "odt"], "txt": ["txt", "pdf"]}

    async def is_available(self):
        return not self.fail


@pytest.fixture
def store(tmp_path):
    """Create a store rooted in a temporary directory."""
    return FileCacheStore(tmp_path / "cache")


@pytest.fixture
def renderer():
    """Create a fake renderer."""
    return FakeRenderer()


@pytest.fixture
def service(store, renderer):
    """Create a cache service over the temporary store."""
    return CacheService(store=store, renderer=renderer)


def object_files(store: FileCacheStore) -> list[Path]:
    """All content files currently in the store."""
    return [p for p in (store.root_dir / "objects").rglob("*") if p.is_file()]


def temp_files(store: FileCacheStore) -> list[Path]:
    """All files currently in the store's temp directory."""
    return [p for p in (store.root_dir / "tmp").iterdir() if p.is_file()]
