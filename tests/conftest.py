"""Pytest configuration and fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from pydantic import BaseModel

from wrybridge.config import clear_settings
from wrybridge.models import Request
from wrybridge.registry import RegistryBuilder


if TYPE_CHECKING:
    from collections.abc import Generator


INDEX_HTML = b"<!doctype html><html><body>hello</body></html>"


class Echo(BaseModel):
    """Payload for the echo command."""

    value: str


def echo(x: Echo) -> Echo:
    """Return the input unchanged."""
    return Echo(value=x.value)


def fail(x: Echo) -> Echo:
    """Always report a domain error."""
    raise RuntimeError(f"cannot handle {x.value}")


def make_request(
    path: str, body: bytes = b"", method: str = "POST", origin: str = "wry://localhost"
) -> Request:
    """Build a request against the bridge origin."""
    return Request(method=method, uri=f"{origin}{path}", body=body)


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch, tmp_path) -> Generator[None, None, None]:
    """Isolate tests from config files and WRYBRIDGE_* variables."""
    import os

    for key in list(os.environ):
        if key.startswith("WRYBRIDGE_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("APPDATA", str(tmp_path / "appdata"))
    monkeypatch.chdir(tmp_path)
    clear_settings()
    yield
    clear_settings()


@pytest.fixture
def static_root(tmp_path) -> Path:
    """A static root with an index, a script, an unknown extension and a nested dir."""
    root = tmp_path / "dist"
    (root / "assets").mkdir(parents=True)
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "assets" / "app.js").write_text("console.log('app')", encoding="utf-8")
    (root / "assets" / "style.css").write_text("body {}", encoding="utf-8")
    (root / "about.xyz").write_text("unknown", encoding="utf-8")
    (tmp_path / "secret.html").write_text("outside the root", encoding="utf-8")
    return root


@pytest.fixture
def registry():
    """Registry with echo and fail commands."""
    builder = RegistryBuilder()
    builder.add(echo)
    builder.add(fail)
    return builder.build(strict=True)
