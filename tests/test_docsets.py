"""Tests for runai_docs.docsets - registry and version parsing."""

import pytest

from runai_docs.docsets import (
    get_docset,
    list_docsets,
    normalize_docset,
    normalize_version,
    parse_version_segment,
    version_sort_key,
)


class TestRegistry:
    def test_known_docsets(self):
        ids = [d.id for d in list_docsets()]
        assert ids == ["self-hosted", "api", "saas", "multi-tenant", "legacy"]

    def test_path_prefix_and_host(self):
        desc = get_docset("self-hosted")
        assert desc.host == "run-ai-docs.nvidia.com"
        assert desc.path_prefix == ("self-hosted",)
        assert not desc.owns_host

    def test_legacy_owns_host(self):
        legacy = get_docset("legacy")
        assert legacy.owns_host
        assert legacy.version_segment("2.19") == "v2.19"

    def test_saas_unversioned(self):
        assert get_docset("saas").versioned is False
        assert get_docset("missing") is None


class TestNormalization:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Self-Hosted", "self-hosted"),
            (" mt ", "multi-tenant"),
            ("docs.run.ai", "legacy"),
            ("", None),
            (None, None),
        ],
    )
    def test_normalize_docset(self, raw, expected):
        assert normalize_docset(raw) == expected

    @pytest.mark.parametrize(
        "raw,expected",
        [("v2.24", "2.24"), ("2.23", "2.23"), ("Latest", "latest"), ("", None)],
    )
    def test_normalize_version(self, raw, expected):
        assert normalize_version(raw) == expected

    @pytest.mark.parametrize(
        "segment,expected",
        [("2.24", "2.24"), ("v2.19", "2.19"), ("V2.18", "2.18"), ("settings", None), ("2", None)],
    )
    def test_parse_version_segment(self, segment, expected):
        assert parse_version_segment(segment) == expected

    def test_version_sort_is_numeric(self):
        versions = ["2.9", "2.24", "latest", "2.10"]
        assert sorted(versions, key=version_sort_key) == ["latest", "2.9", "2.10", "2.24"]
