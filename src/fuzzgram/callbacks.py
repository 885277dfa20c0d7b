"""Callback-style entry point for fuzzy search.

``fuzzy_search_with_callback(collection, query, filter_or_callback, callback)``
accepts the loose argument order callers of callback-based document stores are
used to: the second argument is either the extra filter or the callback. With
a callback the search runs immediately and the callback receives
``(error, results)``; without one the chainable query handle is returned.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Mapping, Optional, Union

from fuzzgram.exceptions import SearchError, StorageError
from fuzzgram.storage.collection import Collection, Document, FuzzyQuery

logger = logging.getLogger(__name__)

SearchCallback = Callable[[Optional[Exception], Optional[List[Document]]], Any]


def fuzzy_search_with_callback(
    collection: Collection,
    query: Any,
    filter_or_callback: Union[Mapping[str, Any], SearchCallback, None] = None,
    callback: Optional[SearchCallback] = None,
) -> Optional[FuzzyQuery]:
    """Run a fuzzy search and report through ``callback(error, results)``.

    The second argument is either the extra filter or the callback. Argument
    problems raise ``InvalidArgumentError`` right away, whether or not a
    callback is given; store and index failures go to the callback. Without a
    callback the query handle is returned unexecuted.
    """
    extra_filter: Optional[Mapping[str, Any]] = None
    if callable(filter_or_callback):
        callback = filter_or_callback
    elif filter_or_callback:
        extra_filter = filter_or_callback

    handle = collection.fuzzy_search(query, extra_filter)
    if callback is None:
        return handle

    try:
        results = handle.all()
    except (StorageError, SearchError) as exc:
        logger.debug("Fuzzy search on %s failed: %s", collection.name, exc)
        callback(exc, None)
        return None
    callback(None, results)
    return None
