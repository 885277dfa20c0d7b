"""Strip synthetic fuzzy attributes from externally exposed documents."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Sequence

from fuzzgram.fields import FieldSpec


def strip_fuzzy_attributes(data: Mapping[str, Any], specs: Sequence[FieldSpec]) -> Dict[str, Any]:
    """Return a copy of ``data`` without any ``<name>_fuzzy`` attribute."""
    hidden = {spec.fuzzy_name for spec in specs}
    return {key: value for key, value in data.items() if key not in hidden}
