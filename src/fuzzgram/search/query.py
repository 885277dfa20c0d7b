"""Compose ranked fuzzy search requests.

A query string is tokenized with the same rules used at indexing time, with
punctuation kept, and the tokens become one bag-of-terms text search. The
request is handed to a store to execute; nothing here performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from fuzzgram.exceptions import InvalidArgumentError
from fuzzgram.tokens.tokenizer import DEFAULTS, FuzzyDefaults, tokenize

SCORE_ATTRIBUTE = "confidence_score"
TEXT_OPERATOR = "$text"
SEARCH_OPERATOR = "$search"
AND_OPERATOR = "$and"


@dataclass(frozen=True, slots=True)
class FuzzyQueryParams:
    """Parsed search input."""

    text: str
    min_size: int
    prefix_only: bool


@dataclass(frozen=True, slots=True)
class SearchRequest:
    """A relevance-ranked text search ready for a document store."""

    tokens: Tuple[str, ...]
    expression: str
    predicate: Dict[str, Any]
    score_attribute: str = SCORE_ATTRIBUTE
    descending: bool = True

    @property
    def text_clause(self) -> Dict[str, Any]:
        return {TEXT_OPERATOR: {SEARCH_OPERATOR: self.expression}}

    @property
    def extra_filter(self) -> Optional[Dict[str, Any]]:
        clauses = self.predicate.get(AND_OPERATOR)
        if clauses:
            return clauses[1]
        return None


def parse_query(query: Any, defaults: FuzzyDefaults = DEFAULTS) -> FuzzyQueryParams:
    """Accept a query string or ``{query, minSize?, prefixOnly?}`` mapping."""
    if isinstance(query, str):
        return FuzzyQueryParams(query, defaults.min_size, defaults.prefix_only)

    if isinstance(query, Mapping) and query:
        text = query.get("query")
        if not isinstance(text, str):
            raise InvalidArgumentError("Fuzzy Search: the query object needs a string 'query'.")
        min_size = query.get("minSize", query.get("min_size"))
        prefix_only = query.get("prefixOnly", query.get("prefix_only"))
        return FuzzyQueryParams(
            text,
            defaults.min_size if min_size is None else min_size,
            defaults.prefix_only if prefix_only is None else bool(prefix_only),
        )

    raise InvalidArgumentError(
        "Fuzzy Search: First argument is mandatory and must be a string or an object."
    )


def compose_search(
    query: Any,
    extra_filter: Optional[Mapping[str, Any]] = None,
    defaults: FuzzyDefaults = DEFAULTS,
) -> SearchRequest:
    """Tokenize ``query`` and build the text search, ANDed with ``extra_filter``.

    Raises ``InvalidArgumentError`` when the query is missing, empty, yields no
    tokens, or when ``extra_filter`` is not a mapping.
    """
    params = parse_query(query, defaults)
    if not params.text.strip():
        raise InvalidArgumentError("Fuzzy Search: the query string must not be empty.")
    if extra_filter is not None and not isinstance(extra_filter, Mapping):
        raise InvalidArgumentError("Fuzzy Search: the filter must be an object.")

    tokens = tuple(
        sorted(
            tokenize(
                params.text,
                escape_special_characters=False,
                min_size=params.min_size,
                prefix_only=params.prefix_only,
                defaults=defaults,
            )
        )
    )
    if not tokens:
        raise InvalidArgumentError("Fuzzy Search: the query string produced no tokens.")

    expression = " ".join(tokens)
    text_clause: Dict[str, Any] = {TEXT_OPERATOR: {SEARCH_OPERATOR: expression}}
    if extra_filter:
        predicate: Dict[str, Any] = {AND_OPERATOR: [text_clause, dict(extra_filter)]}
    else:
        predicate = text_clause
    return SearchRequest(tokens=tokens, expression=expression, predicate=predicate)
