"""Collection tools for FastMCP.

Expose fuzzy search and basic document writes over the collections configured
in the server state.
"""
from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from fastmcp import FastMCP

from fuzzgram.storage.collection import Collection


def register_search_tools(mcp: FastMCP, get_state: Callable[[], Any]) -> None:
    """Register collection tools on the given FastMCP instance.

    The `get_state` callable should return an object with a `collections`
    mapping of collection name to `Collection`.
    """

    def _get_collection(name: str) -> Collection:
        state = get_state()
        collections = getattr(state, "collections", None) or {}
        if name not in collections:
            available = ", ".join(sorted(collections)) or "none"
            raise ValueError(f"Unknown collection '{name}'. Available collections: {available}")
        return collections[name]

    @mcp.tool
    async def list_collections() -> List[Dict[str, Any]]:
        """List configured collections and their fuzzy-indexed fields."""
        state = get_state()
        out: List[Dict[str, Any]] = []
        for name, collection in sorted((getattr(state, "collections", None) or {}).items()):
            fuzzy = collection.schema.fuzzy
            out.append(
                {
                    "name": name,
                    "fields": [spec.name for spec in fuzzy.specs] if fuzzy else [],
                }
            )
        return out

    @mcp.tool
    async def fuzzy_search(
        collection: str,
        query: str,
        *,
        min_size: Optional[int] = None,
        prefix_only: Optional[bool] = None,
        filter: Optional[Dict[str, Any]] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        """Approximate substring search over a collection's fuzzy-indexed fields.

        Parameters
        ----------
        collection: str
            Collection name as configured in FUZZGRAM_COLLECTIONS.
        query: str
            Free text; partial words match through shared n-grams.
        min_size: int | None
            Shortest n-gram taken from the query (default from settings).
        prefix_only: bool | None
            Only take n-grams from the start of each query word.
        filter: dict | None
            Extra predicate ANDed with the text search, e.g. {"status": "published"}.
        limit: int
            Maximum number of results, best first.
        """
        target = _get_collection(collection)
        request: Dict[str, Any] = {"query": query}
        if min_size is not None:
            request["minSize"] = min_size
        if prefix_only is not None:
            request["prefixOnly"] = prefix_only
        handle = target.fuzzy_search(request, filter).limit(max(1, int(limit)))
        docs = await handle.execute_async()
        return [d.to_dict() for d in docs]

    @mcp.tool
    async def insert_document(collection: str, attributes: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a document; its fuzzy tokens are computed before it is stored."""
        target = _get_collection(collection)
        doc = await asyncio.to_thread(target.insert, attributes)
        return doc.to_dict()

    @mcp.tool
    async def update_document(
        collection: str, document_id: int, changes: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Update a document by id with plain attributes, $set or $unset."""
        target = _get_collection(collection)
        doc = await asyncio.to_thread(target.update, document_id, changes)
        return doc.to_dict()

    @mcp.tool
    async def get_document(collection: str, document_id: int) -> Dict[str, Any]:
        """Fetch one document by id."""
        target = _get_collection(collection)
        doc = await asyncio.to_thread(target.get, document_id)
        return doc.to_dict()
