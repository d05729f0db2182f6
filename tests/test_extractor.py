"""Tests for runai_docs.extractor - content isolation and Markdown/plain text."""

import pytest

from runai_docs.extractor import (
    ExtractionError,
    extract,
    strip_markdown,
    title_from_url,
)

URL = "https://run-ai-docs.nvidia.com/self-hosted/2.24/platform-management/aiinitiatives/resources/node-pools"


# ---------------------------------------------------------------------------
# extract
# ---------------------------------------------------------------------------


class TestExtract:
    def test_main_content_without_chrome(self, make_html):
        html = make_html("Node Pools", "<p>Node pools group GPU nodes.</p>", links=["/x"])
        page = extract(html, URL)

        assert page.title == "Node Pools"
        assert "# Node Pools" in page.markdown
        assert "Node pools group GPU nodes." in page.markdown
        assert "Copyright NVIDIA" not in page.markdown
        assert "Run:ai Docs" not in page.markdown

    def test_selector_order(self):
        html = (
            "<body><article><p>article text</p></article>"
            '<div role="main"><p>landmark text</p></div></body>'
        )
        page = extract(html, URL)
        assert "landmark text" in page.markdown
        assert "article text" not in page.markdown

    def test_gitbook_root(self):
        html = '<body><div class="gitbook-root"><p>gitbook body</p></div><p>outside</p></body>'
        page = extract(html, URL)
        assert "gitbook body" in page.markdown
        assert "outside" not in page.markdown

    def test_body_fallback(self):
        page = extract("<html><body><p>just a body</p></body></html>", URL)
        assert "just a body" in page.markdown

    def test_chrome_inside_container_removed(self):
        html = (
            "<main><nav>Prev | Next</nav><div class='sidebar'>On this page</div>"
            "<script>var x = 1;</script><p>Real content</p></main>"
        )
        page = extract(html, URL)
        assert "Real content" in page.plain_text
        assert "Prev | Next" not in page.markdown
        assert "On this page" not in page.markdown
        assert "var x" not in page.markdown

    def test_title_falls_back_to_title_element(self):
        html = "<html><head><title>Departments</title></head><body><main><p>x</p></main></body></html>"
        assert extract(html, URL).title == "Departments"

    def test_title_falls_back_to_url(self):
        assert extract("<main><p>x</p></main>", URL).title == "Node Pools"

    def test_site_header_h1_not_used_as_title(self):
        html = "<body><header><h1>Run:ai</h1></header><main><h1>Projects</h1></main></body>"
        assert extract(html, URL).title == "Projects"

    def test_plain_text_has_no_markup(self):
        html = (
            '<main><h2>Setup</h2><p>See <a href="/docs">the <strong>docs</strong></a> '
            "and set <code>runai_login_url</code>.</p></main>"
        )
        page = extract(html, URL)
        assert "[the" in page.markdown
        assert "See the docs and set runai_login_url." in page.plain_text
        assert "##" not in page.plain_text

    def test_conversion_failure_raises_extraction_error(self, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("converter exploded")

        monkeypatch.setattr("runai_docs.extractor.markdownify", boom)
        with pytest.raises(ExtractionError) as exc:
            extract("<main><p>x</p></main>", URL)

        assert exc.value.url == URL
        assert isinstance(exc.value.__cause__, RuntimeError)


# ---------------------------------------------------------------------------
# strip_markdown
# ---------------------------------------------------------------------------


class TestStripMarkdown:
    def test_links_and_images_keep_visible_text(self):
        md = "Read [the guide](https://x/y) ![diagram](img.png) now"
        assert strip_markdown(md) == "Read the guide diagram now"

    def test_heading_and_emphasis_markers(self):
        md = "## Install\n\nUse **helm** and *kubectl* or ~~old~~ `runai`"
        assert strip_markdown(md) == "Install\n\nUse helm and kubectl or old runai"

    def test_underscore_emphasis_removed_identifiers_kept(self):
        assert strip_markdown("_note_: set MAX_PAGES and runai_login") == (
            "note: set MAX_PAGES and runai_login"
        )

    def test_fenced_code_preserved(self):
        md = "# Title\n\n```bash\n# not a heading\nrunai submit --gpu *1*\n```\n\n**done**"
        assert strip_markdown(md) == (
            "Title\n\n```bash\n# not a heading\nrunai submit --gpu *1*\n```\n\ndone"
        )

    def test_collapses_blank_runs(self):
        assert strip_markdown("a\n\n\n\n\nb") == "a\n\nb"


class TestTitleFromUrl:
    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://h/self-hosted/2.24/node-pools", "Node Pools"),
            ("https://h/a/b/cp_system_requirements/", "Cp System Requirements"),
            ("https://h/", "Page"),
        ],
    )
    def test_humanizes_last_segment(self, url, expected):
        assert title_from_url(url) == expected
