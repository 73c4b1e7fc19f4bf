"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Documentation search tool backed by ``DocsIndex``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from ..docs import DocEntry, DocsIndex
from .core import Tool, ToolOutput, tool

DEFAULT_SEARCH_LIMIT = 30


class _SearchDocsArgs(BaseModel):
    query: str = Field(
        min_length=1,
        description=(
            "Keywords, phrases or a question, e.g. 'prophet model parameters' "
            "or 'online vs batch models'. Fuzzy matching tolerates typos."
        ),
    )
    limit: int | None = Field(
        default=None, ge=1, le=100, description="Maximum documents to return. Default: 30"
    )


def embedded_resource(entry: DocEntry) -> dict[str, Any]:
    return {
        "type": "resource",
        "resource": {
            "uri": entry.uri,
            "mimeType": entry.mime_type,
            "text": entry.content,
        },
    }


def build_docs_tools(docs: DocsIndex) -> list[Tool[Any, Any]]:
    @tool(
        args_model=_SearchDocsArgs,
        name="vmanomaly_search_docs",
        annotations={"title": "Search Documentation", "readOnlyHint": True},
    )
    async def search_docs(args: _SearchDocsArgs) -> ToolOutput | str:
        """
        Search vmanomaly documentation with keyword and fuzzy matching.
        Returns matching documents as embedded resources. Use it for model
        parameters, configuration syntax and feature explanations.
        """
        limit = args.limit if args.limit is not None else DEFAULT_SEARCH_LIMIT
        blocks = [embedded_resource(docs.get(doc_id)) for doc_id in docs.search(args.query, limit)]
        if not blocks:
            return f"No documentation found for query: {args.query}"
        return ToolOutput(content=blocks)

    return [search_docs]
