"""Tests for runai_docs.fetcher - candidate fallback, allow-list, failures."""

import httpx
import pytest

from runai_docs.fetcher import FetchError, PageFetcher, build_client, is_allowed_url
from runai_docs.models import PageEntry

BASE = "https://run-ai-docs.nvidia.com"
ALLOWED = frozenset({"run-ai-docs.nvidia.com", "docs.run.ai"})
CANONICAL = f"{BASE}/self-hosted/2.24/settings/general-settings"
FALLBACK = f"{BASE}/self-hosted/settings/general-settings"


@pytest.fixture
def entry():
    return PageEntry(
        docset="self-hosted",
        version="2.24",
        url=CANONICAL,
        category="platform",
        subcategory="settings",
    )


class TestIsAllowedUrl:
    def test_allowed(self):
        assert is_allowed_url(CANONICAL, ALLOWED)
        assert is_allowed_url("http://docs.run.ai/v2.19/home", ALLOWED)

    def test_rejected(self):
        assert not is_allowed_url("https://evil.example.com/x", ALLOWED)
        assert not is_allowed_url("ftp://docs.run.ai/x", ALLOWED)
        assert not is_allowed_url("not a url", ALLOWED)


# ---------------------------------------------------------------------------
# PageFetcher
# ---------------------------------------------------------------------------


class TestPageFetcher:
    @pytest.mark.asyncio
    async def test_canonical_success(self, entry, mock_client):
        client = mock_client({CANONICAL: "<main>ok</main>"})
        fetched = await PageFetcher(client, ALLOWED).fetch(entry)

        assert fetched.source_url == CANONICAL
        assert fetched.html == "<main>ok</main>"
        assert fetched.entry is entry
        assert client.requested == [CANONICAL]

    @pytest.mark.asyncio
    async def test_falls_back_to_versionless_candidate(self, entry, mock_client):
        client = mock_client({CANONICAL: 404, FALLBACK: "<main>fallback</main>"})
        fetched = await PageFetcher(client, ALLOWED).fetch(entry)

        assert fetched.source_url == FALLBACK
        assert fetched.entry.url == CANONICAL
        assert client.requested == [CANONICAL, FALLBACK]

    @pytest.mark.asyncio
    async def test_all_candidates_fail(self, entry, mock_client):
        client = mock_client({CANONICAL: 500, FALLBACK: 404})
        with pytest.raises(FetchError) as exc:
            await PageFetcher(client, ALLOWED).fetch(entry)

        assert exc.value.url == CANONICAL
        assert exc.value.attempts == [
            (CANONICAL, "HTTP 500"),
            (FALLBACK, "HTTP 404"),
        ]

    @pytest.mark.asyncio
    async def test_timeout_is_a_failed_attempt(self, entry, mock_client):
        client = mock_client(
            {CANONICAL: httpx.ReadTimeout("timed out"), FALLBACK: "<main>ok</main>"}
        )
        fetched = await PageFetcher(client, ALLOWED, timeout=1.0).fetch(entry)
        assert fetched.source_url == FALLBACK

    @pytest.mark.asyncio
    async def test_transport_errors_collected(self, entry, mock_client):
        client = mock_client(
            {
                CANONICAL: httpx.ConnectError("connection refused"),
                FALLBACK: httpx.ReadTimeout("timed out"),
            }
        )
        with pytest.raises(FetchError) as exc:
            await PageFetcher(client, ALLOWED).fetch(entry)

        reasons = [reason for _, reason in exc.value.attempts]
        assert reasons[0].startswith("ConnectError")
        assert reasons[1] == "timeout"
        assert "All fetch candidates failed" in str(exc.value)

    @pytest.mark.asyncio
    async def test_redirect_off_allow_list_rejected(self, entry, mock_client):
        client = mock_client(
            {
                CANONICAL: lambda req: httpx.Response(
                    302, headers={"Location": "https://evil.example.com/steal"}
                ),
                "https://evil.example.com/steal": "<main>evil</main>",
                FALLBACK: 404,
            }
        )
        with pytest.raises(FetchError) as exc:
            await PageFetcher(client, ALLOWED).fetch(entry)

        assert "redirected off-site" in exc.value.attempts[0][1]
        assert "https://evil.example.com/steal" not in client.requested

    @pytest.mark.asyncio
    async def test_redirect_within_allow_list_followed(self, entry, mock_client):
        moved = f"{BASE}/self-hosted/2.24/settings/general"
        client = mock_client(
            {
                CANONICAL: lambda req: httpx.Response(301, headers={"Location": moved}),
                moved: "<main>moved</main>",
            }
        )
        fetched = await PageFetcher(client, ALLOWED).fetch(entry)
        assert fetched.html == "<main>moved</main>"
        assert fetched.source_url == CANONICAL
        assert fetched.final_url == moved

    @pytest.mark.asyncio
    async def test_redirect_loop_is_a_failed_attempt(self, entry, mock_client):
        client = mock_client(
            {
                CANONICAL: lambda req: httpx.Response(302, headers={"Location": FALLBACK}),
                FALLBACK: lambda req: httpx.Response(302, headers={"Location": CANONICAL}),
            }
        )
        with pytest.raises(FetchError) as exc:
            await PageFetcher(client, ALLOWED).fetch(entry)

        assert all(reason.startswith("TooManyRedirects") for _, reason in exc.value.attempts)

    @pytest.mark.asyncio
    async def test_disallowed_host_never_requested(self, mock_client):
        legacy = PageEntry(
            docset="legacy",
            version="2.19",
            url="https://docs.run.ai/v2.19/home/overview",
            category="home",
            subcategory="overview",
        )
        client = mock_client({})
        with pytest.raises(FetchError) as exc:
            await PageFetcher(client, {"run-ai-docs.nvidia.com"}).fetch(legacy)

        assert client.requested == []
        assert all(reason == "host not allowed" for _, reason in exc.value.attempts)
        assert len(exc.value.attempts) == 2


class TestBuildClient:
    @pytest.mark.asyncio
    async def test_identifying_headers(self):
        client = build_client("RunAI-Docs-Indexer/1.0", 5.0)
        try:
            assert client.headers["User-Agent"] == "RunAI-Docs-Indexer/1.0"
            assert "text/html" in client.headers["Accept"]
        finally:
            await client.aclose()
