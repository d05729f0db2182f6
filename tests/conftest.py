"""Pytest configuration and fixtures."""

import httpx
import pytest

from runai_docs.db import DocsDB


@pytest.fixture
def db(tmp_path):
    """Create a fresh DocsDB for each test."""
    db = DocsDB(tmp_path / "test_docs.db")
    yield db
    db.close()


@pytest.fixture
def make_html():
    """Build a minimal docs page with chrome, a main region and links.

    Example::

        html = make_html("Node Pools", "<p>Pools of nodes</p>",
                         links=["/self-hosted/2.24/settings/general-settings"])
    """

    def _make(title: str, body: str = "", links: list[str] | None = None) -> str:
        anchors = "".join(f'<a href="{href}">{href}</a>' for href in links or [])
        return (
            f"<html><head><title>{title} | Run:ai</title></head><body>"
            f"<nav>{anchors}</nav>"
            f"<header><span>Run:ai Docs</span></header>"
            f"<main><h1>{title}</h1>{body}</main>"
            f"<footer>Copyright NVIDIA</footer>"
            f"</body></html>"
        )

    return _make


@pytest.fixture
def mock_client():
    """Factory for an ``httpx.AsyncClient`` backed by ``MockTransport``.

    *routes* maps a full URL to: an HTML string (200), an int status code,
    an exception instance to raise, or a callable taking the request and
    returning a response. Unknown URLs answer *default_status*. Every
    requested URL is appended to ``client.requested``.
    """

    def _make(routes: dict, default_status: int = 404) -> httpx.AsyncClient:
        requested: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            url = str(request.url)
            requested.append(url)
            route = routes.get(url)
            if isinstance(route, Exception):
                raise route
            if route is None:
                return httpx.Response(default_status)
            if isinstance(route, str):
                return httpx.Response(200, html=route)
            if isinstance(route, int):
                return httpx.Response(route)
            return route(request)

        client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler), follow_redirects=True
        )
        client.requested = requested
        return client

    return _make
