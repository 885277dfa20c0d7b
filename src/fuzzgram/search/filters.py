"""Evaluate document filter predicates.

Predicates are mappings in the familiar document-store dialect::

    {"status": "published", "year": {"$gte": 2020}}
    {"$or": [{"tags.label": "python"}, {"author": {"$in": ["ana", "bo"]}}]}

Dotted paths walk into nested mappings and lists; a list value matches when
any of its elements does. A ``$text`` clause is resolved by the caller's text
matcher, since only the text index knows which documents it hits.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, List, Mapping, Optional

from fuzzgram.exceptions import InvalidArgumentError

TextMatcher = Callable[[Mapping[str, Any]], bool]


def resolve_path(document: Any, path: str) -> List[Any]:
    """Return every value reached by ``path``, flattening lists along the way."""
    current: List[Any] = [document]
    for part in path.split("."):
        found: List[Any] = []
        for value in current:
            if isinstance(value, Mapping):
                if part in value:
                    found.append(value[part])
            elif isinstance(value, list):
                for item in value:
                    if isinstance(item, Mapping) and part in item:
                        found.append(item[part])
        current = found
    return current


def _candidates(values: List[Any]) -> Iterator[Any]:
    for value in values:
        yield value
        if isinstance(value, list):
            yield from value


def _compare(op: str, left: Any, right: Any) -> bool:
    try:
        if op == "$gt":
            return left > right
        if op == "$gte":
            return left >= right
        if op == "$lt":
            return left < right
        return left <= right
    except TypeError:
        return False


def _match_operator(values: List[Any], op: str, operand: Any) -> bool:
    if op == "$eq":
        return any(v == operand for v in _candidates(values))
    if op == "$ne":
        return not any(v == operand for v in _candidates(values))
    if op in ("$gt", "$gte", "$lt", "$lte"):
        return any(
            _compare(op, v, operand) for v in _candidates(values) if not isinstance(v, list)
        )
    if op in ("$in", "$nin"):
        if not isinstance(operand, (list, tuple, set)):
            raise InvalidArgumentError(f"{op} needs a list operand.")
        hit = any(v in operand for v in _candidates(values) if not isinstance(v, list))
        return hit if op == "$in" else not hit
    if op == "$exists":
        return bool(values) == bool(operand)
    raise InvalidArgumentError(f"Unsupported filter operator {op!r}.")


def _match_field(document: Mapping[str, Any], path: str, condition: Any) -> bool:
    values = resolve_path(document, path)
    if isinstance(condition, Mapping) and condition and all(
        str(k).startswith("$") for k in condition
    ):
        return all(_match_operator(values, op, operand) for op, operand in condition.items())
    return any(v == condition for v in _candidates(values))


def _clauses(op: str, value: Any) -> List[Mapping[str, Any]]:
    if not isinstance(value, (list, tuple)) or not value:
        raise InvalidArgumentError(f"{op} needs a non-empty list of predicates.")
    return list(value)


def matches(
    document: Mapping[str, Any],
    predicate: Optional[Mapping[str, Any]],
    text_matcher: Optional[TextMatcher] = None,
) -> bool:
    """Return True when ``document`` satisfies ``predicate``.

    An empty or missing predicate matches everything. Unknown top-level
    operators raise ``InvalidArgumentError``.
    """
    if not predicate:
        return True
    if not isinstance(predicate, Mapping):
        raise InvalidArgumentError("A filter predicate must be an object.")

    for key, value in predicate.items():
        if key == "$and":
            if not all(matches(document, c, text_matcher) for c in _clauses(key, value)):
                return False
        elif key == "$or":
            if not any(matches(document, c, text_matcher) for c in _clauses(key, value)):
                return False
        elif key == "$nor":
            if any(matches(document, c, text_matcher) for c in _clauses(key, value)):
                return False
        elif key == "$text":
            if text_matcher is None:
                raise InvalidArgumentError("$text needs a text index.")
            if not text_matcher(document):
                return False
        elif key.startswith("$"):
            raise InvalidArgumentError(f"Unsupported filter operator {key!r}.")
        elif not _match_field(document, key, value):
            return False
    return True


def _find_text_clause(predicate: Optional[Mapping[str, Any]]) -> Any:
    if not predicate:
        return None
    if "$text" in predicate:
        return predicate["$text"]
    for sub in predicate.get("$and") or ():
        if isinstance(sub, Mapping):
            clause = _find_text_clause(sub)
            if clause is not None:
                return clause
    return None


def find_text_search(predicate: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Return the ``$text.$search`` expression of a predicate, if any.

    A clause is found at the top level or inside ``$and`` at any depth; it
    cannot sit under ``$or`` or ``$nor``.
    """
    clause = _find_text_clause(predicate)
    if clause is None:
        return None
    expression = clause.get("$search") if isinstance(clause, Mapping) else None
    if not isinstance(expression, str):
        raise InvalidArgumentError("$text needs a string $search expression.")
    return expression
