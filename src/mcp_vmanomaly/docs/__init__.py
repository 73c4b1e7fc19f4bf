"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Bundled vmanomaly documentation and its keyword/fuzzy search index.
"""

from .index import DOCS_URI_SCHEME, DocEntry, DocNotFoundError, DocsIndex

__all__ = ["DOCS_URI_SCHEME", "DocEntry", "DocNotFoundError", "DocsIndex"]
