from typing import Any, List, Optional

import pytest

from fuzzgram.callbacks import fuzzy_search_with_callback
from fuzzgram.exceptions import InvalidArgumentError, StorageError
from fuzzgram.storage.collection import Collection, FuzzyQuery


class Recorder:
    def __init__(self) -> None:
        self.calls: List[Any] = []

    def __call__(self, error: Optional[Exception], results: Optional[list]) -> None:
        self.calls.append((error, results))


def test_callback_receives_results(books: Collection) -> None:
    books.insert({"title": "Hello"})
    recorder = Recorder()

    assert fuzzy_search_with_callback(books, "hello", recorder) is None

    [(error, results)] = recorder.calls
    assert error is None
    assert [d.get("title") for d in results] == ["Hello"]


def test_callback_after_filter(books: Collection) -> None:
    books.insert({"title": "Hello", "status": "draft"})
    books.insert({"title": "Hello there", "status": "published"})
    recorder = Recorder()

    fuzzy_search_with_callback(books, "hello", {"status": "published"}, recorder)

    [(error, results)] = recorder.calls
    assert error is None
    assert [d.get("title") for d in results] == ["Hello there"]


def test_argument_errors_propagate_with_callback(books: Collection) -> None:
    books.insert({"title": "Hello"})
    recorder = Recorder()

    with pytest.raises(InvalidArgumentError):
        fuzzy_search_with_callback(books, "", recorder)
    with pytest.raises(InvalidArgumentError):
        fuzzy_search_with_callback(books, "hello", {"$bogus": 1}, recorder)

    assert recorder.calls == []


def test_callback_receives_storage_errors(
    books: Collection, monkeypatch: pytest.MonkeyPatch
) -> None:
    books.insert({"title": "Hello"})
    recorder = Recorder()

    def broken_all(self: FuzzyQuery) -> list:
        raise StorageError("database is gone")

    monkeypatch.setattr(FuzzyQuery, "all", broken_all)
    fuzzy_search_with_callback(books, "hello", recorder)

    [(error, results)] = recorder.calls
    assert isinstance(error, StorageError)
    assert results is None


def test_without_callback_returns_query_handle(books: Collection) -> None:
    books.insert({"title": "Hello"})
    handle = fuzzy_search_with_callback(books, "hello", {"title": "Hello"})
    assert isinstance(handle, FuzzyQuery)
    assert handle.count() == 1
