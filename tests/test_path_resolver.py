"""Tests for locator normalization and parent computation."""

import pytest

from storage_client.services.utils.path_resolver import ROOT, is_root, join, normalize, parent_of


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("", ROOT),
        (None, ROOT),
        ("#", ROOT),
        ("#a/b", "a/b/"),
        ("a/b/", "a/b/"),
        ("a//b", "a/b/"),
        ("/a", "a/"),
        ("#/", ROOT),
    ],
)
def test_normalize(raw, expected):
    assert normalize(raw) == expected


def test_normalize_is_idempotent():
    for raw in ["#docs/2024//q1", "x", "a/b/c/", "#"]:
        once = normalize(raw)
        assert normalize(once) == once


def test_parent_of():
    assert parent_of("a/b/") == "a/"
    assert parent_of("a/") == ROOT
    assert parent_of("a/b/c/") == "a/b/"
    assert parent_of(ROOT) == ROOT


def test_join_appends_one_segment():
    assert join(ROOT, "docs") == "docs/"
    assert join("docs/", "/2024/") == "docs/2024/"
    assert is_root(parent_of(join(ROOT, "docs")))
