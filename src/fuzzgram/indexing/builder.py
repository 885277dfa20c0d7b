"""Translate field specifications into synthetic attributes and a text index."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from fuzzgram.exceptions import ConfigurationError
from fuzzgram.fields import FieldSpec, NestedField, WeightedField, fuzzy_name
from fuzzgram.storage.schema import (
    RECORD_ARRAY,
    STRING_ARRAY,
    AttributeDefinition,
    EntitySchema,
    TextIndexDefinition,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class IndexDefinition:
    """Everything the fuzzy specs add to a schema."""

    attributes: Tuple[AttributeDefinition, ...]
    text_index: TextIndexDefinition


def build_index_definition(
    specs: Sequence[FieldSpec], language_override: Optional[str] = None
) -> IndexDefinition:
    """Compute the synthetic attributes, text index keys and weights for ``specs``.

    Simple and weighted fields add a ``<name>_fuzzy`` string array indexed under
    that name. Nested fields add a ``<name>_fuzzy`` record array and one index
    key ``<name>_fuzzy.<key>_fuzzy`` per configured key.
    """
    if language_override is not None and not isinstance(language_override, str):
        raise ConfigurationError("language_override must be a string.")

    attributes: List[AttributeDefinition] = []
    keys: List[str] = []
    weights: Dict[str, float] = {}

    for spec in specs:
        synthetic = fuzzy_name(spec.name)
        if isinstance(spec, NestedField):
            sub_names = tuple(fuzzy_name(key) for key in spec.keys)
            attributes.append(
                AttributeDefinition(name=synthetic, kind=RECORD_ARRAY, sub_attributes=sub_names)
            )
            for sub in sub_names:
                index_key = f"{synthetic}.{sub}"
                keys.append(index_key)
                if spec.weight:
                    weights[index_key] = spec.weight
        else:
            attributes.append(AttributeDefinition(name=synthetic, kind=STRING_ARRAY))
            keys.append(synthetic)
            if isinstance(spec, WeightedField):
                weights[synthetic] = spec.weight

    return IndexDefinition(
        attributes=tuple(attributes),
        text_index=TextIndexDefinition(
            keys=tuple(keys), weights=weights, language_override=language_override
        ),
    )


def apply_index_definition(schema: EntitySchema, definition: IndexDefinition) -> None:
    """Declare the synthetic attributes and the text index on ``schema``."""
    for attribute in definition.attributes:
        schema.add(attribute)
    schema.index(definition.text_index)
    logger.info(
        "Declared fuzzy text index on %s: keys=%s weights=%s",
        schema.name,
        list(definition.text_index.keys),
        definition.text_index.weights,
    )
