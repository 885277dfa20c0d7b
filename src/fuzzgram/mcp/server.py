"""fuzzgram MCP server entrypoint using FastMCP.

Exposes fuzzy search and document tools over the configured collections.
Run with:
  - poetry run fuzzgram-mcp
  - or: python -m fuzzgram.mcp.server (ensure PYTHONPATH includes ./src)
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

from fastmcp import FastMCP

from fuzzgram.config import Settings, load_settings
from fuzzgram.logs import configure_logging
from fuzzgram.mcp.tools import register_search_tools
from fuzzgram.plugin import fuzzy_searching
from fuzzgram.storage.collection import Collection, open_collection
from fuzzgram.storage.database import get_engine, init_db, make_session_factory
from fuzzgram.storage.schema import EntitySchema

logger = logging.getLogger(__name__)


class AppState:
    """Application state shared by MCP tools."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.collections: Dict[str, Collection] = {}

    def init_collections(self) -> None:
        """Open the database and one fuzzy-searchable collection per configured entry."""
        engine = get_engine(self.settings.database.url, echo=self.settings.database.echo)
        init_db(engine)
        factory = make_session_factory(engine)

        search = self.settings.search
        index_dir = Path(search.index_dir) if search.index_dir else None
        defaults = search.defaults()

        self.collections = {}
        for name, cfg in self.settings.collections.items():
            schema = EntitySchema(name)
            fuzzy_searching(
                schema,
                {
                    "fields": cfg.fields,
                    "language_override": cfg.language_override,
                    "defaults": defaults,
                },
            )
            collection = open_collection(schema, factory, index_dir=index_dir)
            if index_dir is None:
                collection.reindex()
            self.collections[name] = collection
        logger.info("Opened %d collections", len(self.collections))


# Global state and server instance
_state: Optional[AppState] = None
mcp = FastMCP("fuzzgram MCP Server")


# ----- Tools -----

@mcp.tool
def health() -> str:
    """Simple health check tool."""
    return "ok"


# ----- Entrypoint -----

def main() -> None:
    """Initialize state and run the MCP server."""
    global _state
    settings = load_settings()
    configure_logging(settings.app.log_level)
    _state = AppState(settings)
    _state.init_collections()
    register_search_tools(mcp, get_state=lambda: _state)
    # Choose transport based on configuration: stdio (default), http, or sse
    transport = settings.app.transport
    if transport in ("http", "sse"):
        mcp.run(transport=transport, host=settings.app.host, port=settings.app.port)
    else:
        mcp.run()


if __name__ == "__main__":  # pragma: no cover
    main()
