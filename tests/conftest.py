from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest
from sqlalchemy.orm import Session, sessionmaker

from fuzzgram.plugin import fuzzy_searching
from fuzzgram.storage.collection import Collection, open_collection
from fuzzgram.storage.database import get_engine, init_db, make_session_factory
from fuzzgram.storage.schema import EntitySchema

BOOK_FIELDS = [
    {"name": "title", "weight": 5},
    "author",
    {"name": "tags", "keys": ["label"]},
]


@pytest.fixture
def session_factory(tmp_path: Path) -> Iterator[sessionmaker[Session]]:
    engine = get_engine(f"sqlite:///{tmp_path / 'fuzzgram.db'}")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def books_schema() -> EntitySchema:
    schema = EntitySchema("books")
    fuzzy_searching(schema, {"fields": BOOK_FIELDS})
    return schema


@pytest.fixture
def books(books_schema: EntitySchema, session_factory: sessionmaker[Session]) -> Collection:
    return open_collection(books_schema, session_factory)
