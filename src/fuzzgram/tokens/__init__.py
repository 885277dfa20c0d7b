"""Tokenization primitives shared by the write path and the query path."""

from .ngrams import DEFAULT_MIN_SIZE, DEFAULT_PREFIX_ONLY, generate_ngrams
from .normalizer import SPECIAL_CHARACTERS, normalize_word
from .tokenizer import DEFAULTS, FuzzyDefaults, tokenize

__all__ = [
    "DEFAULT_MIN_SIZE",
    "DEFAULT_PREFIX_ONLY",
    "DEFAULTS",
    "FuzzyDefaults",
    "SPECIAL_CHARACTERS",
    "generate_ngrams",
    "normalize_word",
    "tokenize",
]
