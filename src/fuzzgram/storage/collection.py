"""Document collections backed by SQLAlchemy and a text index.

A ``Collection`` persists documents of one ``EntitySchema``. When the schema
has fuzzy search enabled, every write path (``insert``, ``update``,
``find_one_and_update``) first runs the fuzzy indexer on the payload being
written, then stores the result and refreshes the text index. Documents leave
the collection through ``Document.to_dict()``, which hides fuzzy attributes.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from fuzzgram.exceptions import InvalidArgumentError, SearchError, StorageError
from fuzzgram.search.base_search import BaseTextIndex
from fuzzgram.search.filters import find_text_search, matches
from fuzzgram.search.query import AND_OPERATOR, SCORE_ATTRIBUTE, SearchRequest
from fuzzgram.search.text_index import WhooshTextIndex
from fuzzgram.storage.database import session_scope
from fuzzgram.storage.models import StoredDocument
from fuzzgram.storage.schema import EntitySchema

logger = logging.getLogger(__name__)

SET_OPERATOR = "$set"
UNSET_OPERATOR = "$unset"


@dataclass(slots=True)
class Document:
    """A stored document as returned by a collection."""

    id: int
    attributes: Dict[str, Any]
    schema: EntitySchema = field(repr=False)
    confidence_score: Optional[float] = None

    def get(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        """External representation: fuzzy attributes removed, score included if any."""
        data: Dict[str, Any] = {"id": self.id, **self.attributes}
        if self.schema.fuzzy is not None:
            data = self.schema.fuzzy.strip(data)
        if self.confidence_score is not None:
            data[SCORE_ATTRIBUTE] = self.confidence_score
        return data


def _check_payload(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise InvalidArgumentError("Document attributes must be an object.")
    for key in payload:
        if not isinstance(key, str) or not key:
            raise InvalidArgumentError(f"Invalid attribute name {key!r}.")
    return payload


def _apply_changes(
    stored: Mapping[str, Any], changes: Mapping[str, Any], fuzzy_names: Mapping[str, str]
) -> Dict[str, Any]:
    unknown = [k for k in changes if k.startswith("$") and k not in (SET_OPERATOR, UNSET_OPERATOR)]
    if unknown:
        raise InvalidArgumentError(f"Unsupported update operators: {unknown}")

    result = dict(stored)
    result.update({k: v for k, v in changes.items() if not k.startswith("$")})
    sets = changes.get(SET_OPERATOR) or {}
    if not isinstance(sets, Mapping):
        raise InvalidArgumentError("$set must be an object.")
    result.update(sets)

    unset = changes.get(UNSET_OPERATOR) or {}
    if isinstance(unset, str):
        unset = [unset]
    for key in unset:
        result.pop(key, None)
        if key in fuzzy_names:
            result.pop(fuzzy_names[key], None)
    return result


class Collection:
    """CRUD and ranked search over the documents of one schema."""

    def __init__(
        self,
        schema: EntitySchema,
        session_factory: sessionmaker[Session],
        text_index: Optional[BaseTextIndex] = None,
    ) -> None:
        self.schema = schema
        self._session_factory = session_factory
        self._text_index = text_index

    @property
    def name(self) -> str:
        return self.schema.name

    @property
    def text_index(self) -> Optional[BaseTextIndex]:
        return self._text_index

    # ----- Write paths -----

    def _prepare(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        if self.schema.fuzzy is None:
            return dict(payload)
        return self.schema.fuzzy.index(payload)

    def _fuzzy_names(self) -> Dict[str, str]:
        if self.schema.fuzzy is None:
            return {}
        return {spec.name: spec.fuzzy_name for spec in self.schema.fuzzy.specs}

    def _refresh_index(self, documents: Sequence[Document]) -> None:
        if self._text_index is None or not documents:
            return
        try:
            self._text_index.index_documents((d.id, d.attributes) for d in documents)
        except SearchError as exc:
            ids = [d.id for d in documents]
            logger.warning(
                "Stored documents %s in %s are missing from the text index: %s", ids, self.name, exc
            )
            raise SearchError(
                f"Documents {ids} were stored in {self.name!r} but not indexed; "
                f"call reindex() to repair the text index: {exc}"
            ) from exc

    def _document(self, row: StoredDocument, score: Optional[float] = None) -> Document:
        return Document(
            id=row.id, attributes=dict(row.attributes or {}), schema=self.schema, confidence_score=score
        )

    def insert(self, attributes: Mapping[str, Any]) -> Document:
        """Create a document from ``attributes`` and return it."""
        payload = _check_payload(attributes)
        if any(key.startswith("$") for key in payload):
            raise InvalidArgumentError("Update operators are not allowed when inserting.")
        prepared = self._prepare(payload)
        try:
            with session_scope(self._session_factory) as session:
                row = StoredDocument(collection=self.name, attributes=prepared)
                session.add(row)
                session.flush()
                document = self._document(row)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to insert into {self.name!r}: {exc}") from exc
        self._refresh_index([document])
        logger.debug("Inserted document %s into %s", document.id, self.name)
        return document

    def _update_row(self, row: StoredDocument, changes: Mapping[str, Any]) -> None:
        prepared = self._prepare(_check_payload(changes))
        row.attributes = _apply_changes(row.attributes or {}, prepared, self._fuzzy_names())

    def update(self, document_id: int, changes: Mapping[str, Any]) -> Document:
        """Apply ``changes`` (plain attributes, ``$set`` or ``$unset``) to one document."""
        try:
            with session_scope(self._session_factory) as session:
                row = self._load(session, document_id)
                self._update_row(row, changes)
                session.flush()
                document = self._document(row)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to update document {document_id}: {exc}") from exc
        self._refresh_index([document])
        logger.debug("Updated document %s in %s", document_id, self.name)
        return document

    def find_one_and_update(
        self,
        predicate: Optional[Mapping[str, Any]],
        changes: Mapping[str, Any],
        *,
        return_new: bool = True,
    ) -> Optional[Document]:
        """Update the first document matching ``predicate``.

        Returns the updated document, or the previous version when
        ``return_new`` is False, or None when nothing matches.
        """
        matched = self.find(predicate, limit=1)
        if not matched:
            return None
        previous = matched[0]
        updated = self.update(previous.id, changes)
        return updated if return_new else previous

    def delete(self, document_id: int) -> None:
        try:
            with session_scope(self._session_factory) as session:
                session.delete(self._load(session, document_id))
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to delete document {document_id}: {exc}") from exc
        if self._text_index is not None:
            self._text_index.delete_documents([document_id])

    def reindex(self) -> int:
        """Rebuild the text index from stored documents; returns the count."""
        documents = self.find()
        self._refresh_index(documents)
        logger.info("Reindexed %d documents in %s", len(documents), self.name)
        return len(documents)

    # ----- Read paths -----

    def _load(self, session: Session, document_id: int) -> StoredDocument:
        row = session.get(StoredDocument, document_id)
        if row is None or row.collection != self.name:
            raise StorageError(f"Document {document_id} not found in {self.name!r}.")
        return row

    def get(self, document_id: int) -> Document:
        try:
            with session_scope(self._session_factory) as session:
                return self._document(self._load(session, document_id))
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to load document {document_id}: {exc}") from exc

    def find(
        self,
        predicate: Optional[Mapping[str, Any]] = None,
        *,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Document]:
        """Return documents matching ``predicate``.

        When the predicate holds a ``$text`` clause, only text index hits are
        considered and results come back by descending relevance score, each
        carrying ``confidence_score``. Otherwise results keep insertion order.
        """
        if skip < 0 or (limit is not None and limit < 0):
            raise InvalidArgumentError("skip and limit must not be negative.")

        expression = find_text_search(predicate)
        scores: Optional[Dict[int, float]] = None
        if expression is not None:
            if self._text_index is None:
                raise InvalidArgumentError(f"Collection {self.name!r} has no text index.")
            scores = {hit.document_id: hit.score for hit in self._text_index.search(expression)}
            if not scores:
                return []

        stmt = select(StoredDocument).where(StoredDocument.collection == self.name)
        if scores is not None:
            stmt = stmt.where(StoredDocument.id.in_(list(scores)))
        stmt = stmt.order_by(StoredDocument.id)

        try:
            with session_scope(self._session_factory) as session:
                rows = list(session.scalars(stmt))
                documents = [
                    self._document(row, None if scores is None else scores[row.id])
                    for row in rows
                    if matches(
                        row.attributes or {},
                        predicate,
                        text_matcher=lambda _attrs, doc_id=row.id: scores is not None
                        and doc_id in scores,
                    )
                ]
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to query {self.name!r}: {exc}") from exc

        if scores is not None:
            documents.sort(key=lambda d: (-(d.confidence_score or 0.0), d.id))
        end = None if limit is None else skip + limit
        return documents[skip:end]

    def fuzzy_search(
        self, query: Any, extra_filter: Optional[Mapping[str, Any]] = None
    ) -> FuzzyQuery:
        """Start a relevance-ranked fuzzy search.

        ``query`` is a string or ``{"query": ..., "minSize": ..., "prefixOnly": ...}``.
        Raises ``InvalidArgumentError`` for unusable arguments and when fuzzy
        search is not enabled on the schema.
        """
        if self.schema.fuzzy is None:
            raise InvalidArgumentError(f"Fuzzy search is not enabled on {self.name!r}.")
        request = self.schema.fuzzy.compose(query, extra_filter)
        logger.debug("Fuzzy search on %s with %d tokens", self.name, len(request.tokens))
        return FuzzyQuery(self, request)


class FuzzyQuery:
    """Lazy, chainable handle over a fuzzy ``SearchRequest``.

    Chaining returns a new handle; nothing runs until ``all()``, ``first()``,
    ``count()``, iteration or ``execute_async()``.
    """

    def __init__(
        self,
        collection: Collection,
        request: SearchRequest,
        *,
        filters: Sequence[Mapping[str, Any]] = (),
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> None:
        self._collection = collection
        self._request = request
        self._filters = tuple(filters)
        self._skip = skip
        self._limit = limit

    @property
    def request(self) -> SearchRequest:
        return self._request

    @property
    def predicate(self) -> Dict[str, Any]:
        if not self._filters:
            return self._request.predicate
        clauses: List[Dict[str, Any]] = [self._request.text_clause]
        if self._request.extra_filter:
            clauses.append(self._request.extra_filter)
        clauses.extend(dict(f) for f in self._filters)
        return {AND_OPERATOR: clauses}

    def _copy(self, **changes: Any) -> FuzzyQuery:
        params: Dict[str, Any] = {"filters": self._filters, "skip": self._skip, "limit": self._limit}
        params.update(changes)
        return FuzzyQuery(self._collection, self._request, **params)

    def where(self, predicate: Mapping[str, Any]) -> FuzzyQuery:
        if not isinstance(predicate, Mapping):
            raise InvalidArgumentError("where() needs a filter object.")
        return self._copy(filters=(*self._filters, predicate))

    def skip(self, count: int) -> FuzzyQuery:
        if count < 0:
            raise InvalidArgumentError("skip must not be negative.")
        return self._copy(skip=count)

    def limit(self, count: int) -> FuzzyQuery:
        if count < 0:
            raise InvalidArgumentError("limit must not be negative.")
        return self._copy(limit=count)

    def all(self) -> List[Document]:
        return self._collection.find(self.predicate, skip=self._skip, limit=self._limit)

    def first(self) -> Optional[Document]:
        results = self._collection.find(self.predicate, skip=self._skip, limit=1)
        return results[0] if results else None

    def count(self) -> int:
        return len(self.all())

    def __iter__(self) -> Iterator[Document]:
        return iter(self.all())

    async def execute_async(self) -> List[Document]:
        """Run ``all()`` in a worker thread."""
        return await asyncio.to_thread(self.all)


def open_collection(
    schema: EntitySchema,
    session_factory: sessionmaker[Session],
    *,
    index_dir: Optional[Path] = None,
) -> Collection:
    """Build a collection with a Whoosh text index when the schema declares one."""
    text_index = None
    if schema.text_index is not None:
        text_index = WhooshTextIndex(schema.text_index, name=schema.name, index_dir=index_dir)
    return Collection(schema, session_factory, text_index)
