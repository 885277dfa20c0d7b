"""Field specifications for fuzzy indexing.

A field specification says which source attribute gets a synthetic
``<name>_fuzzy`` attribute and how its tokens are produced. Declarative input
(plain strings or mappings) is validated once by ``parse_field_specs`` and
turned into one of three frozen variants, so the per-document write path never
inspects raw configuration again.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple, Union

from fuzzgram.exceptions import ConfigurationError

FUZZY_SUFFIX = "_fuzzy"


def fuzzy_name(name: str) -> str:
    """Return the synthetic attribute name for a source attribute."""
    return f"{name}{FUZZY_SUFFIX}"


@dataclass(frozen=True, slots=True)
class SimpleField:
    """A plain text attribute indexed with default weight."""

    name: str
    min_size: Optional[int] = None
    prefix_only: Optional[bool] = None
    escape_special_characters: bool = True

    @property
    def fuzzy_name(self) -> str:
        return fuzzy_name(self.name)


@dataclass(frozen=True, slots=True)
class WeightedField:
    """A plain text attribute with a relevance weight in the text index."""

    name: str
    weight: float
    min_size: Optional[int] = None
    prefix_only: Optional[bool] = None
    escape_special_characters: bool = True

    @property
    def fuzzy_name(self) -> str:
        return fuzzy_name(self.name)


@dataclass(frozen=True, slots=True)
class NestedField:
    """A list of sub-records, each tokenized once per configured key."""

    name: str
    keys: Tuple[str, ...]
    weight: Optional[float] = None
    min_size: Optional[int] = None
    prefix_only: Optional[bool] = None
    escape_special_characters: bool = True

    @property
    def fuzzy_name(self) -> str:
        return fuzzy_name(self.name)


FieldSpec = Union[SimpleField, WeightedField, NestedField]


def _option(item: Mapping[str, Any], camel: str, snake: str) -> Any:
    if camel in item:
        return item[camel]
    return item.get(snake)


def _parse_name(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"Field name must be a non-empty string, got {value!r}.")
    return value


def _parse_keys(name: str, value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise ConfigurationError(f"Field {name!r}: keys must be a list of strings or a string.")
    if not value:
        raise ConfigurationError(f"Field {name!r}: keys must not be empty.")
    for key in value:
        if not isinstance(key, str) or not key:
            raise ConfigurationError(f"Field {name!r}: every key must be a non-empty string.")
    return tuple(value)


def _parse_weight(name: str, value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(f"Field {name!r}: weight must be a number, got {value!r}.")
    return value


def _parse_min_size(name: str, value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(f"Field {name!r}: minSize must be a positive integer.")
    return value


def _parse_flag(name: str, option: str, value: Any) -> Optional[bool]:
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ConfigurationError(f"Field {name!r}: {option} must be a boolean.")
    return value


def parse_field_spec(item: Any) -> FieldSpec:
    """Validate one declarative field specification and build its variant.

    A bare string becomes a ``SimpleField`` without punctuation stripping. A
    mapping becomes a ``NestedField`` when it carries ``keys``, a
    ``WeightedField`` when it carries a non-zero ``weight``, and a
    ``SimpleField`` otherwise. Mapping options accept camelCase and snake_case.
    """
    if isinstance(item, (SimpleField, WeightedField, NestedField)):
        return item

    if isinstance(item, str):
        return SimpleField(name=_parse_name(item), escape_special_characters=False)

    if not isinstance(item, Mapping) or not item:
        raise ConfigurationError("Fields items must be String or Object.")

    name = _parse_name(item.get("name"))
    weight = _parse_weight(name, item.get("weight"))
    min_size = _parse_min_size(name, _option(item, "minSize", "min_size"))
    prefix_only = _parse_flag(name, "prefixOnly", _option(item, "prefixOnly", "prefix_only"))
    escape = _parse_flag(
        name,
        "escapeSpecialCharacters",
        _option(item, "escapeSpecialCharacters", "escape_special_characters"),
    )
    escape = True if escape is None else escape

    if item.get("keys") is not None:
        return NestedField(
            name=name,
            keys=_parse_keys(name, item["keys"]),
            weight=weight or None,
            min_size=min_size,
            prefix_only=prefix_only,
            escape_special_characters=escape,
        )
    if weight:
        return WeightedField(
            name=name,
            weight=weight,
            min_size=min_size,
            prefix_only=prefix_only,
            escape_special_characters=escape,
        )
    return SimpleField(
        name=name,
        min_size=min_size,
        prefix_only=prefix_only,
        escape_special_characters=escape,
    )


def parse_field_specs(fields: Any) -> List[FieldSpec]:
    """Validate the ``fields`` activation option and build every spec."""
    if fields is None:
        raise ConfigurationError("You must set at least one field for fuzzy search.")
    if not isinstance(fields, (list, tuple)):
        raise ConfigurationError("Fields must be an array.")
    fields = list(fields)
    if not fields:
        raise ConfigurationError("You must set at least one field for fuzzy search.")

    specs = [parse_field_spec(item) for item in fields]
    seen = set()
    for spec in specs:
        if spec.name in seen:
            raise ConfigurationError(f"Field {spec.name!r} is configured more than once.")
        seen.add(spec.name)
    return specs
