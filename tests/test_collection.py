import logging
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy.orm import Session, sessionmaker

from fuzzgram.exceptions import InvalidArgumentError, SearchError, StorageError
from fuzzgram.plugin import fuzzy_searching
from fuzzgram.storage.collection import Collection, FuzzyQuery, open_collection
from fuzzgram.storage.schema import EntitySchema
from fuzzgram.tokens import tokenize


def _titles(docs) -> list:
    return [d.get("title") for d in docs]


def test_insert_attaches_fuzzy_tokens(books: Collection) -> None:
    doc = books.insert({"title": "Hello", "tags": [{"label": "Foo_Bar"}]})
    assert set(doc.attributes["title_fuzzy"]) == tokenize("hello")
    assert doc.attributes["tags_fuzzy"] == [{"label_fuzzy": sorted(tokenize("foo bar"))}]
    assert "author_fuzzy" not in doc.attributes


def test_serialized_documents_hide_fuzzy_attributes(books: Collection) -> None:
    doc = books.insert({"title": "Hello", "author": "Ana", "tags": [{"label": "x"}]})
    data = books.get(doc.id).to_dict()
    assert data == {
        "id": doc.id,
        "title": "Hello",
        "author": "Ana",
        "tags": [{"label": "x"}],
    }
    assert not any(key.endswith("_fuzzy") for key in data)


def test_fuzzy_search_matches_misspelled_query(books: Collection) -> None:
    books.insert({"title": "Hello World"})
    books.insert({"title": "Goodbye Moon"})

    results = books.fuzzy_search("helo").all()

    assert _titles(results) == ["Hello World"]
    assert results[0].confidence_score > 0
    assert results[0].to_dict()["confidence_score"] == results[0].confidence_score
    assert "title_fuzzy" not in results[0].to_dict()


def test_results_are_sorted_by_descending_score(books: Collection) -> None:
    books.insert({"title": "Python"})
    books.insert({"title": "Python Programming in Python"})
    books.insert({"title": "Pythonic idioms"})
    books.insert({"title": "Java"})

    results = books.fuzzy_search("python").all()

    assert len(results) == 3
    scores = [d.confidence_score for d in results]
    assert scores == sorted(scores, reverse=True)


def test_weighted_fields_rank_higher(books: Collection) -> None:
    books.insert({"title": "Zed", "author": "Marble"})
    books.insert({"title": "Marble", "author": "Zed"})

    results = books.fuzzy_search("marble").all()

    assert _titles(results) == ["Marble", "Zed"]
    assert results[0].confidence_score > results[1].confidence_score


def test_nested_field_is_searchable(books: Collection) -> None:
    books.insert({"title": "Untitled", "tags": [{"label": "Foo_Bar"}]})
    books.insert({"title": "Other", "tags": [{"label": "qux"}]})

    assert _titles(books.fuzzy_search("bar").all()) == ["Untitled"]


def test_extra_filter_narrows_results(books: Collection) -> None:
    books.insert({"title": "Python Cookbook", "status": "draft"})
    books.insert({"title": "Python Tricks", "status": "published"})

    assert _titles(books.fuzzy_search("python", {"status": "published"}).all()) == [
        "Python Tricks"
    ]
    assert _titles(books.fuzzy_search("python").where({"status": "draft"}).all()) == [
        "Python Cookbook"
    ]


def test_where_after_extra_filter(books: Collection) -> None:
    books.insert({"title": "Hello", "status": "published", "year": 2020})
    books.insert({"title": "Hello again", "status": "draft", "year": 2021})
    books.insert({"title": "Hello there", "status": "published", "year": 2021})

    handle = books.fuzzy_search("hello", {"status": "published"}).where({"year": 2020})

    assert _titles(handle.all()) == ["Hello"]
    assert handle.first().confidence_score > 0
    assert _titles(handle.where({"title": "Hello"}).all()) == ["Hello"]
    assert handle.where({"year": 2021}).all() == []


def test_nested_scalar_value_does_not_break_writes(books: Collection) -> None:
    doc = books.insert({"title": "Lonely", "tags": 5})

    assert doc.attributes["tags_fuzzy"] == [{"label_fuzzy": []}]
    assert _titles(books.fuzzy_search("lonely").all()) == ["Lonely"]
    books.update(doc.id, {"tags": True})
    assert books.get(doc.id).to_dict()["tags"] is True


def test_query_object_parameters(books: Collection) -> None:
    books.insert({"title": "Hello"})
    books.insert({"title": "Othello"})

    results = books.fuzzy_search({"query": "hel", "prefixOnly": True}).all()

    # "Othello" also contains "hel" as a substring and the index holds substrings
    assert set(_titles(results)) == {"Hello", "Othello"}
    assert _titles(books.fuzzy_search({"query": "oth", "minSize": 3}).all()) == ["Othello"]


def test_query_handle_is_lazy_and_chainable(books: Collection) -> None:
    for title in ["Data One", "Data Two", "Data Three"]:
        books.insert({"title": title})

    handle = books.fuzzy_search("data")
    assert isinstance(handle, FuzzyQuery)
    assert handle.count() == 3
    assert len(handle.limit(2).all()) == 2
    assert len(handle.skip(2).all()) == 1
    assert handle.first() is not None
    assert len(list(handle)) == 3
    # chaining does not alter the original handle
    assert handle.count() == 3


def test_fuzzy_search_argument_errors(books: Collection) -> None:
    with pytest.raises(InvalidArgumentError):
        books.fuzzy_search("")
    with pytest.raises(InvalidArgumentError):
        books.fuzzy_search(None)
    with pytest.raises(InvalidArgumentError):
        books.fuzzy_search("abc").limit(-1)


def test_fuzzy_search_requires_activation(session_factory: sessionmaker[Session]) -> None:
    plain = open_collection(EntitySchema("plain"), session_factory)
    plain.insert({"title": "Hello"})
    with pytest.raises(InvalidArgumentError):
        plain.fuzzy_search("hello")
    assert plain.get(1).to_dict()["title"] == "Hello"


def test_update_reindexes_new_values(books: Collection) -> None:
    doc = books.insert({"title": "Hello"})

    updated = books.update(doc.id, {"title": "Goodbye"})

    assert set(updated.attributes["title_fuzzy"]) == tokenize("goodbye")
    assert books.fuzzy_search("hello").all() == []
    assert _titles(books.fuzzy_search("goodbye").all()) == ["Goodbye"]


def test_partial_update_keeps_untouched_tokens(books: Collection) -> None:
    doc = books.insert({"title": "Hello", "author": "Ana"})

    updated = books.update(doc.id, {"author": "Bob"})

    assert updated.attributes["title_fuzzy"] == doc.attributes["title_fuzzy"]
    assert set(updated.attributes["author_fuzzy"]) == tokenize("bob")
    assert _titles(books.fuzzy_search("hello").all()) == ["Hello"]


def test_update_with_set_operator(books: Collection) -> None:
    doc = books.insert({"title": "Hello"})

    updated = books.update(doc.id, {"$set": {"title": "World"}})

    assert updated.attributes["title"] == "World"
    assert set(updated.attributes["title_fuzzy"]) == tokenize("world")
    assert "$set" not in updated.attributes


def test_unset_drops_fuzzy_attribute(books: Collection) -> None:
    doc = books.insert({"title": "Hello", "author": "Ana"})

    updated = books.update(doc.id, {"$unset": {"title": ""}})

    assert "title" not in updated.attributes
    assert "title_fuzzy" not in updated.attributes
    assert books.fuzzy_search("hello").all() == []


def test_update_rejects_unknown_operators(books: Collection) -> None:
    doc = books.insert({"title": "Hello"})
    with pytest.raises(InvalidArgumentError):
        books.update(doc.id, {"$inc": {"n": 1}})


def test_find_one_and_update(books: Collection) -> None:
    books.insert({"title": "Hello", "status": "draft"})

    previous = books.find_one_and_update(
        {"status": "draft"}, {"title": "Planet"}, return_new=False
    )
    assert previous is not None and previous.get("title") == "Hello"
    assert _titles(books.fuzzy_search("planet").all()) == ["Planet"]

    updated = books.find_one_and_update({"title": "Planet"}, {"title": "Galaxy"})
    assert updated is not None and updated.get("title") == "Galaxy"
    assert books.find_one_and_update({"title": "Nowhere"}, {"title": "x"}) is None


def test_delete_removes_document_from_search(books: Collection) -> None:
    doc = books.insert({"title": "Hello"})
    books.delete(doc.id)
    assert books.fuzzy_search("hello").all() == []
    with pytest.raises(StorageError):
        books.get(doc.id)


def test_missing_document_raises_storage_error(books: Collection) -> None:
    with pytest.raises(StorageError):
        books.get(999)
    with pytest.raises(StorageError):
        books.update(999, {"title": "x"})


def test_insert_validation(books: Collection) -> None:
    with pytest.raises(InvalidArgumentError):
        books.insert(["title"])  # type: ignore[arg-type]
    with pytest.raises(InvalidArgumentError):
        books.insert({"$set": {"title": "x"}})


def test_find_without_text_clause(books: Collection) -> None:
    books.insert({"title": "A", "year": 2001})
    books.insert({"title": "B", "year": 2010})

    assert _titles(books.find({"year": {"$gt": 2005}})) == ["B"]
    assert [d.confidence_score for d in books.find()] == [None, None]


def test_collections_are_isolated(
    books: Collection, session_factory: sessionmaker[Session]
) -> None:
    schema = EntitySchema("articles")
    fuzzy_searching(schema, {"fields": ["title"]})
    articles = open_collection(schema, session_factory)
    books.insert({"title": "Hello"})
    articles.insert({"title": "Hello again"})

    assert _titles(articles.fuzzy_search("hello").all()) == ["Hello again"]
    assert len(books.find()) == 1


def test_reindex_rebuilds_ram_index(
    books_schema: EntitySchema, session_factory: sessionmaker[Session]
) -> None:
    first = open_collection(books_schema, session_factory)
    first.insert({"title": "Hello"})

    second = open_collection(books_schema, session_factory)
    assert second.fuzzy_search("hello").all() == []
    assert second.reindex() == 1
    assert _titles(second.fuzzy_search("hello").all()) == ["Hello"]


def test_index_failure_after_commit_points_to_reindex(
    books: Collection, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    def broken_index(documents: Any) -> None:
        raise SearchError("disk full")

    monkeypatch.setattr(books._text_index, "index_documents", broken_index)
    with caplog.at_level(logging.WARNING, logger="fuzzgram.storage.collection"):
        with pytest.raises(SearchError, match="reindex"):
            books.insert({"title": "Hello"})

    assert "missing from the text index" in caplog.text
    # the row is committed even though the index missed it
    assert _titles(books.find()) == ["Hello"]
    assert books.fuzzy_search("hello").all() == []

    monkeypatch.undo()
    assert books.reindex() == 1
    assert _titles(books.fuzzy_search("hello").all()) == ["Hello"]


def test_file_index_survives_reopen(
    books_schema: EntitySchema, session_factory: sessionmaker[Session], tmp_path: Path
) -> None:
    index_dir = tmp_path / "index"
    first = open_collection(books_schema, session_factory, index_dir=index_dir)
    first.insert({"title": "Hello"})

    second = open_collection(books_schema, session_factory, index_dir=index_dir)
    assert _titles(second.fuzzy_search("hello").all()) == ["Hello"]


@pytest.mark.asyncio
async def test_execute_async(books: Collection) -> None:
    books.insert({"title": "Hello"})
    results = await books.fuzzy_search("hello").execute_async()
    assert _titles(results) == ["Hello"]
