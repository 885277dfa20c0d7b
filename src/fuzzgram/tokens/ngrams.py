"""Character n-gram generation for substring and prefix matching.

- Substring mode: every contiguous substring whose length is at least ``min_size``.
- Prefix mode: every prefix from ``min_size`` up to the whole word.
- Words no longer than ``min_size`` are kept whole so short words still match.
"""

from __future__ import annotations

from typing import Set

from fuzzgram.exceptions import InvalidArgumentError

DEFAULT_MIN_SIZE = 2
DEFAULT_PREFIX_ONLY = False


def _check_min_size(min_size: int) -> None:
    if isinstance(min_size, bool) or not isinstance(min_size, int):
        raise InvalidArgumentError(f"min_size must be an integer, got {min_size!r}.")
    if min_size <= 0:
        raise InvalidArgumentError("min_size must be greater than 0.")


def generate_ngrams(
    text: str, min_size: int = DEFAULT_MIN_SIZE, prefix_only: bool = DEFAULT_PREFIX_ONLY
) -> Set[str]:
    """Return the set of n-grams of ``text`` with length ``>= min_size``.

    ``text`` is expected to be normalized already (see ``normalize_word``).
    Raises ``InvalidArgumentError`` when ``min_size`` is not a positive integer.
    """
    _check_min_size(min_size)

    if not text:
        return set()

    length = len(text)
    if length <= min_size:
        return {text}

    if prefix_only:
        return {text[:size] for size in range(min_size, length + 1)}

    return {
        text[start : start + size]
        for size in range(min_size, length + 1)
        for start in range(0, length - size + 1)
    }
