"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Keyword and fuzzy search over the bundled markdown documentation.

Each ``*.md`` file in the corpus directory is one document; its id is the
file stem and its title the first markdown heading. Documents are exposed
as MCP resources under the ``vmanomaly-docs://`` scheme.
"""

from __future__ import annotations

import difflib
import logging
import re
from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger("mcp_vmanomaly.docs")

DOCS_URI_SCHEME = "vmanomaly-docs://"
BUNDLED_CORPUS = Path(__file__).parent / "corpus"

_TOKEN_RE = re.compile(r"[a-z0-9_]+")
_TITLE_WEIGHT = 3.0
_FUZZY_WEIGHT = 0.5
_FUZZY_CUTOFF = 0.8


class DocNotFoundError(KeyError):
    """Unknown document id or resource URI."""


def tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


@dataclass(frozen=True, slots=True)
class DocEntry:
    id: str
    title: str
    content: str
    terms: Counter = field(default_factory=Counter, repr=False, compare=False)
    title_terms: frozenset[str] = field(default_factory=frozenset, repr=False, compare=False)

    @property
    def uri(self) -> str:
        return f"{DOCS_URI_SCHEME}{self.id}"

    @property
    def mime_type(self) -> str:
        return "text/markdown"


def _title_of(doc_id: str, content: str) -> str:
    for line in content.splitlines():
        stripped = line.strip()
        if stripped.startswith("#"):
            return stripped.lstrip("#").strip()
    return doc_id.replace("-", " ").replace("_", " ").title()


class DocsIndex:
    """
    In-memory index over a fixed set of documents.

    ``search`` returns a generator: a lazy, finite, single-pass sequence of
    document ids ordered by relevance.
    """

    def __init__(self, entries: list[DocEntry]) -> None:
        self._entries = {e.id: e for e in entries}
        self._vocabulary = sorted({t for e in entries for t in e.terms})

    @classmethod
    def from_directory(cls, root: Path | str) -> "DocsIndex":
        root = Path(root)
        entries: list[DocEntry] = []
        for path in sorted(root.glob("*.md")):
            content = path.read_text(encoding="utf-8")
            doc_id = path.stem
            title = _title_of(doc_id, content)
            entries.append(
                DocEntry(
                    id=doc_id,
                    title=title,
                    content=content,
                    terms=Counter(tokenize(content)),
                    title_terms=frozenset(tokenize(title)),
                )
            )
        logger.debug("Loaded %d documentation entries from %s", len(entries), root)
        return cls(entries)

    @classmethod
    def bundled(cls) -> "DocsIndex":
        return cls.from_directory(BUNDLED_CORPUS)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._entries

    def entries(self) -> list[DocEntry]:
        return list(self._entries.values())

    def get(self, doc_id: str) -> DocEntry:
        try:
            return self._entries[doc_id]
        except KeyError as e:
            raise DocNotFoundError(doc_id) from e

    def resolve_uri(self, uri: str) -> DocEntry:
        if not uri.startswith(DOCS_URI_SCHEME):
            raise DocNotFoundError(uri)
        return self.get(uri[len(DOCS_URI_SCHEME) :])

    def _expand(self, token: str) -> list[tuple[str, float]]:
        # Exact term first, then close spellings at reduced weight.
        expanded = [(token, 1.0)]
        for match in difflib.get_close_matches(token, self._vocabulary, n=3, cutoff=_FUZZY_CUTOFF):
            if match != token:
                expanded.append((match, _FUZZY_WEIGHT))
        return expanded

    def _score(self, entry: DocEntry, weighted_terms: list[tuple[str, float]]) -> float:
        score = 0.0
        for term, weight in weighted_terms:
            hits = entry.terms.get(term, 0)
            if hits:
                score += weight * (1.0 + min(hits, 10) / 10.0)
            if term in entry.title_terms:
                score += weight * _TITLE_WEIGHT
        return score

    def search(self, query: str, limit: int = 30) -> Iterator[str]:
        """Yield up to ``limit`` matching document ids, best match first."""
        tokens = tokenize(query)
        if not tokens or limit <= 0:
            return
        weighted_terms = [pair for token in tokens for pair in self._expand(token)]
        scored = [
            (score, entry.id)
            for entry in self._entries.values()
            if (score := self._score(entry, weighted_terms)) > 0
        ]
        scored.sort(key=lambda item: (-item[0], item[1]))
        for _, doc_id in scored[:limit]:
            yield doc_id
