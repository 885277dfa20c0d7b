"""Entity schema declarations for the document store.

An ``EntitySchema`` lists the attributes a collection declares and carries at
most one text index definition. Plugins such as fuzzy search extend a schema
at definition time; collections read it afterwards and never mutate it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterable, Optional, Tuple

from fuzzgram.exceptions import ConfigurationError

if TYPE_CHECKING:
    from fuzzgram.plugin import FuzzySearch

STRING_ARRAY = "string_array"
RECORD_ARRAY = "record_array"
MIXED = "mixed"


@dataclass(frozen=True, slots=True)
class AttributeDefinition:
    """A declared attribute.

    Attributes
    ----------
    name: str
        Attribute name in the stored document.
    kind: str
        One of ``string_array``, ``record_array`` or ``mixed``.
    sub_attributes: tuple[str, ...]
        For ``record_array`` attributes, the names found in every record.
    """

    name: str
    kind: str = MIXED
    sub_attributes: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class TextIndexDefinition:
    """The single full-text index of a collection."""

    keys: Tuple[str, ...]
    weights: Dict[str, float] = field(default_factory=dict)
    language_override: Optional[str] = None

    def weight_for(self, key: str) -> float:
        return float(self.weights.get(key, 1.0))


class EntitySchema:
    """Declarative description of one collection's documents."""

    def __init__(self, name: str, attributes: Iterable[AttributeDefinition] = ()) -> None:
        if not name:
            raise ConfigurationError("Schema name must be a non-empty string.")
        self.name = name
        self._attributes: Dict[str, AttributeDefinition] = {}
        self._text_index: Optional[TextIndexDefinition] = None
        self.fuzzy: Optional[FuzzySearch] = None
        for attr in attributes:
            self.add(attr)

    @property
    def attributes(self) -> Dict[str, AttributeDefinition]:
        return dict(self._attributes)

    @property
    def text_index(self) -> Optional[TextIndexDefinition]:
        return self._text_index

    def add(self, attribute: AttributeDefinition) -> None:
        """Declare an attribute; redeclaring an existing name is an error."""
        if attribute.name in self._attributes:
            raise ConfigurationError(
                f"Schema {self.name!r} already declares attribute {attribute.name!r}."
            )
        self._attributes[attribute.name] = attribute

    def index(self, definition: TextIndexDefinition) -> None:
        """Register the collection's text index. Only one is allowed."""
        if self._text_index is not None:
            raise ConfigurationError(f"Schema {self.name!r} already has a text index.")
        if not definition.keys:
            raise ConfigurationError("A text index needs at least one key.")
        self._text_index = definition
