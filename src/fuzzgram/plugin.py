"""Fuzzy search activation for an entity schema.

``fuzzy_searching(schema, {"fields": [...]})`` validates the field
configuration once, declares the synthetic ``<name>_fuzzy`` attributes and the
text index on the schema, and attaches a ``FuzzySearch`` that collections use
on their write, output and search paths.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from fuzzgram.exceptions import ConfigurationError
from fuzzgram.fields import FieldSpec, parse_field_specs
from fuzzgram.indexing.builder import (
    IndexDefinition,
    apply_index_definition,
    build_index_definition,
)
from fuzzgram.indexing.indexer import index_attributes
from fuzzgram.indexing.output import strip_fuzzy_attributes
from fuzzgram.search.query import SearchRequest, compose_search
from fuzzgram.storage.schema import EntitySchema
from fuzzgram.tokens.tokenizer import DEFAULTS, FuzzyDefaults

logger = logging.getLogger(__name__)


class FuzzySearch:
    """Fuzzy search configuration bound to one schema."""

    def __init__(
        self,
        specs: Sequence[FieldSpec],
        definition: IndexDefinition,
        defaults: FuzzyDefaults = DEFAULTS,
    ) -> None:
        self.specs: List[FieldSpec] = list(specs)
        self.definition = definition
        self.defaults = defaults

    def index(self, attributes: Mapping[str, Any]) -> Dict[str, Any]:
        """Attach fuzzy attributes to a proposed write payload."""
        return index_attributes(attributes, self.specs, self.defaults)

    def strip(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """Remove fuzzy attributes from an outgoing representation."""
        return strip_fuzzy_attributes(data, self.specs)

    def compose(
        self, query: Any, extra_filter: Optional[Mapping[str, Any]] = None
    ) -> SearchRequest:
        """Build the ranked search request for ``query``."""
        return compose_search(query, extra_filter, self.defaults)


def fuzzy_searching(schema: EntitySchema, options: Optional[Mapping[str, Any]]) -> FuzzySearch:
    """Enable fuzzy search on ``schema``.

    ``options`` must carry ``fields``; ``language_override`` is forwarded to the
    text index unchanged and ``defaults`` replaces the fallback token
    parameters. Raises ``ConfigurationError`` on any malformed option and when
    the schema already has a text index.
    """
    if not isinstance(options, Mapping) or options.get("fields") is None:
        raise ConfigurationError("You must set at least one field for fuzzy search.")
    if schema.fuzzy is not None:
        raise ConfigurationError(f"Fuzzy search is already enabled on {schema.name!r}.")

    defaults = options.get("defaults") or DEFAULTS
    if not isinstance(defaults, FuzzyDefaults):
        raise ConfigurationError("defaults must be a FuzzyDefaults instance.")

    specs = parse_field_specs(options["fields"])
    definition = build_index_definition(specs, options.get("language_override"))
    apply_index_definition(schema, definition)

    fuzzy = FuzzySearch(specs, definition, defaults)
    schema.fuzzy = fuzzy
    logger.info("Enabled fuzzy search on %s for fields %s", schema.name, [s.name for s in specs])
    return fuzzy
