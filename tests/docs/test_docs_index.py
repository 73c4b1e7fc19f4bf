from __future__ import annotations

import types
from pathlib import Path

import pytest

from mcp_vmanomaly.docs import DocNotFoundError, DocsIndex


def write_corpus(root: Path) -> DocsIndex:
    (root / "prophet.md").write_text(
        "# Prophet model\n\nProphet handles seasonality and holidays.\n", encoding="utf-8"
    )
    (root / "zscore.md").write_text(
        "# Z-score\n\nThe zscore model flags points far from the mean. "
        "Unlike prophet it has no seasonality.\n",
        encoding="utf-8",
    )
    (root / "untitled.md").write_text("plain text without heading\n", encoding="utf-8")
    (root / "ignored.txt").write_text("# not markdown\n", encoding="utf-8")
    return DocsIndex.from_directory(root)


def test_loads_markdown_with_titles_and_uris(tmp_path):
    index = write_corpus(tmp_path)

    assert len(index) == 3
    assert "ignored" not in index
    assert index.get("prophet").title == "Prophet model"
    assert index.get("untitled").title == "Untitled"
    assert index.get("zscore").uri == "vmanomaly-docs://zscore"
    assert index.resolve_uri("vmanomaly-docs://prophet").id == "prophet"


def test_unknown_ids_and_uris_raise(tmp_path):
    index = write_corpus(tmp_path)

    with pytest.raises(DocNotFoundError):
        index.get("missing")
    with pytest.raises(DocNotFoundError):
        index.resolve_uri("https://example.com/prophet")


def test_search_is_lazy_and_ranks_title_matches_first(tmp_path):
    index = write_corpus(tmp_path)

    results = index.search("prophet")

    assert isinstance(results, types.GeneratorType)
    assert list(results) == ["prophet", "zscore"]
    assert list(results) == []


def test_search_tolerates_typos_and_respects_limit(tmp_path):
    index = write_corpus(tmp_path)

    assert next(index.search("seasonalty")) in {"prophet", "zscore"}
    assert list(index.search("prophet", limit=1)) == ["prophet"]
    assert list(index.search("kubernetes")) == []
    assert list(index.search("!!!")) == []


def test_bundled_corpus_is_searchable():
    index = DocsIndex.bundled()

    assert "models" in index
    assert "detection-tasks" in index
    assert "models" in list(index.search("prophet zscore online models"))
