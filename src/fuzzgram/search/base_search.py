"""Abstract text index interface used by collections.

Defines the minimal surface for text index backends (e.g., Whoosh), enabling
extensibility and testability via a common contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Tuple


@dataclass(slots=True)
class SearchResult:
    """Represents a single text index hit."""

    document_id: int
    score: float


class BaseTextIndex(ABC):
    """Abstract interface for text index implementations."""

    @abstractmethod
    def index_documents(self, items: Iterable[Tuple[int, Mapping[str, Any]]]) -> None:
        """Index or reindex ``(document_id, attributes)`` pairs."""

    @abstractmethod
    def delete_documents(self, ids: Iterable[int]) -> None:
        """Remove documents from the index by their IDs."""

    @abstractmethod
    def search(self, expression: str) -> List[SearchResult]:
        """Match a space-separated bag of terms and return hits by descending score."""
        raise NotImplementedError
