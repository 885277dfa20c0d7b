"""Whoosh-backed text index over precomputed fuzzy tokens.

Every text index key (``title_fuzzy``, ``tags_fuzzy.label_fuzzy``) becomes a
Whoosh field holding the document's tokens, split on whitespace only: the
tokens were produced by the fuzzy tokenizer and must not be analyzed again.
A query expression is matched as an OR of term queries across all fields,
each boosted by its configured weight and scored with BM25F.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from whoosh import index as whoosh_index
from whoosh import scoring
from whoosh.analysis import SpaceSeparatedTokenizer
from whoosh.fields import ID, TEXT, Schema
from whoosh.filedb.filestore import RamStorage
from whoosh.query import Or, Term

from fuzzgram.exceptions import SearchError
from fuzzgram.search.base_search import BaseTextIndex, SearchResult
from fuzzgram.search.filters import resolve_path
from fuzzgram.storage.schema import TextIndexDefinition

logger = logging.getLogger(__name__)

DOC_ID_FIELD = "doc_id"


def _field_name(key: str) -> str:
    return key.replace(".", "__")


def _make_schema(definition: TextIndexDefinition) -> Schema:
    schema = Schema(**{DOC_ID_FIELD: ID(stored=True, unique=True)})
    for key in definition.keys:
        schema.add(_field_name(key), TEXT(analyzer=SpaceSeparatedTokenizer(), phrase=False))
    return schema


def _collect_tokens(attributes: Mapping[str, Any], key: str) -> str:
    tokens: List[str] = []
    for value in resolve_path(attributes, key):
        if isinstance(value, list):
            tokens.extend(str(v) for v in value if v is not None)
        elif isinstance(value, str):
            tokens.append(value)
    return " ".join(dict.fromkeys(tokens))


class WhooshTextIndex(BaseTextIndex):
    """Text index for one collection, in RAM or under ``index_dir``."""

    def __init__(
        self,
        definition: TextIndexDefinition,
        *,
        name: str = "fuzzgram",
        index_dir: Optional[Path] = None,
    ) -> None:
        self._definition = definition
        self._lock = threading.Lock()
        schema = _make_schema(definition)
        if definition.language_override:
            # Tokens are language-neutral; the override is only carried along.
            logger.debug("Text index %s: language_override=%s", name, definition.language_override)
        try:
            if index_dir is None:
                self._ix = RamStorage().create_index(schema, indexname=name)
            else:
                index_dir = Path(index_dir)
                index_dir.mkdir(parents=True, exist_ok=True)
                if whoosh_index.exists_in(str(index_dir), indexname=name):
                    self._ix = whoosh_index.open_dir(str(index_dir), indexname=name)
                else:
                    self._ix = whoosh_index.create_in(str(index_dir), schema, indexname=name)
        except Exception as exc:
            raise SearchError(f"Failed to open text index {name!r}: {exc}") from exc

    @property
    def definition(self) -> TextIndexDefinition:
        return self._definition

    def index_documents(self, items: Iterable[Tuple[int, Mapping[str, Any]]]) -> None:
        rows: List[Dict[str, str]] = []
        for document_id, attributes in items:
            row = {DOC_ID_FIELD: str(document_id)}
            for key in self._definition.keys:
                row[_field_name(key)] = _collect_tokens(attributes, key)
            rows.append(row)
        if not rows:
            return
        with self._lock:
            writer = self._ix.writer(limitmb=32)
            try:
                for row in rows:
                    writer.update_document(**row)
            except Exception as exc:
                writer.cancel()
                raise SearchError(f"Failed to index documents: {exc}") from exc
            writer.commit()

    def delete_documents(self, ids: Iterable[int]) -> None:
        with self._lock:
            writer = self._ix.writer()
            try:
                for document_id in ids:
                    writer.delete_by_term(DOC_ID_FIELD, str(document_id))
            except Exception as exc:
                writer.cancel()
                raise SearchError(f"Failed to delete documents: {exc}") from exc
            writer.commit()

    def search(self, expression: str) -> List[SearchResult]:
        terms = [t for t in expression.split() if t]
        if not terms:
            return []
        query = Or(
            [
                Term(_field_name(key), term, boost=self._definition.weight_for(key))
                for key in self._definition.keys
                for term in dict.fromkeys(terms)
            ]
        )
        try:
            with self._ix.searcher(weighting=scoring.BM25F()) as searcher:
                hits = searcher.search(query, limit=None)
                results = [
                    SearchResult(document_id=int(hit[DOC_ID_FIELD]), score=float(hit.score or 0.0))
                    for hit in hits
                ]
        except Exception as exc:
            raise SearchError(f"Text search failed: {exc}") from exc
        logger.debug("Text search matched %d documents", len(results))
        return results
