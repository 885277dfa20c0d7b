"""Compute fuzzy attributes for a proposed document write.

``index_attributes`` is called explicitly by every write path (insert,
update, find-and-update) on the values about to be written, never on the
stored ones. It returns a new mapping and leaves its input untouched.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Sequence

from fuzzgram.fields import FieldSpec, NestedField
from fuzzgram.tokens.tokenizer import DEFAULTS, FuzzyDefaults, tokenize

logger = logging.getLogger(__name__)

SET_OPERATOR = "$set"


def _tokens(
    value: Any, spec: FieldSpec, defaults: FuzzyDefaults, escape: bool
) -> List[str]:
    return sorted(
        tokenize(
            value,
            escape_special_characters=escape,
            min_size=spec.min_size,
            prefix_only=spec.prefix_only,
            defaults=defaults,
        )
    )


def _nested_tokens(
    items: Any, spec: NestedField, defaults: FuzzyDefaults
) -> List[Dict[str, List[str]]]:
    if items is None:
        return []
    if not isinstance(items, (list, tuple)):
        # a lone record or scalar counts as a single element
        items = [items]

    records: List[Dict[str, List[str]]] = []
    for item in items:
        record: Dict[str, List[str]] = {}
        for key in spec.keys:
            value = item.get(key) if isinstance(item, Mapping) else None
            record[f"{key}_fuzzy"] = _tokens(value, spec, defaults, spec.escape_special_characters)
        records.append(record)
    return records


def _fill(target: Dict[str, Any], specs: Sequence[FieldSpec], defaults: FuzzyDefaults) -> None:
    for spec in specs:
        if spec.name not in target:
            continue
        value = target[spec.name]
        if isinstance(spec, NestedField):
            target[spec.fuzzy_name] = _nested_tokens(value, spec, defaults)
        else:
            target[spec.fuzzy_name] = _tokens(
                value, spec, defaults, spec.escape_special_characters
            )


def index_attributes(
    attributes: Mapping[str, Any],
    specs: Sequence[FieldSpec],
    defaults: FuzzyDefaults = DEFAULTS,
) -> Dict[str, Any]:
    """Return ``attributes`` with a ``<name>_fuzzy`` entry for every spec it touches.

    Specs whose source attribute is absent are skipped, so partial update
    payloads leave untouched fuzzy attributes alone. A ``$set`` sub-mapping is
    indexed in place, the way update operators carry the new values.
    """
    result = dict(attributes)
    _fill(result, specs, defaults)

    update = result.get(SET_OPERATOR)
    if isinstance(update, Mapping):
        result[SET_OPERATOR] = dict(update)
        _fill(result[SET_OPERATOR], specs, defaults)

    logger.debug(
        "Indexed fuzzy attributes: %s",
        [spec.fuzzy_name for spec in specs if spec.fuzzy_name in result],
    )
    return result
