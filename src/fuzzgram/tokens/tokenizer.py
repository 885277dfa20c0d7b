"""Multi-word tokenization shared by indexing and querying."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Set

from fuzzgram.tokens.ngrams import DEFAULT_MIN_SIZE, DEFAULT_PREFIX_ONLY, generate_ngrams
from fuzzgram.tokens.normalizer import normalize_word


@dataclass(frozen=True, slots=True)
class FuzzyDefaults:
    """Fallback token parameters used when a field or query omits them."""

    min_size: int = DEFAULT_MIN_SIZE
    prefix_only: bool = DEFAULT_PREFIX_ONLY


DEFAULTS = FuzzyDefaults()


def tokenize(
    text: Any,
    *,
    escape_special_characters: bool = False,
    min_size: Optional[int] = None,
    prefix_only: Optional[bool] = None,
    defaults: FuzzyDefaults = DEFAULTS,
) -> Set[str]:
    """Tokenize free text into the union of its per-word n-grams.

    Words are split on whitespace and normalized one by one. Underscores become
    spaces during normalization, and the resulting pieces are tokenized
    independently, so ``"Foo_Bar"`` yields the tokens of ``"foo"`` and ``"bar"``.
    ``None`` and empty text yield an empty set; other non-string values are
    converted with ``str()``.
    """
    if text is None:
        return set()
    if not isinstance(text, str):
        text = str(text)
    if not text:
        return set()

    size = defaults.min_size if min_size is None else min_size
    prefix = defaults.prefix_only if prefix_only is None else prefix_only

    tokens: Set[str] = set()
    for word in text.split():
        for piece in normalize_word(word, escape_special_characters).split():
            tokens |= generate_ngrams(piece, size, prefix)
    return tokens
