"""Word normalization applied before n-gram generation.

Both the write path and the query path normalize through here, so the rules
must stay identical for the two token sets to meet in the text index.
"""

from __future__ import annotations

import re

# ! " # % & ' ( ) * + , - . / : ; < = > ? @ [ \ ] ^ ` { | } ~
SPECIAL_CHARACTERS = "!\"#%&'()*+,-./:;<=>?@[\\]^`{|}~"

_SPECIAL_RE = re.compile("[" + re.escape(SPECIAL_CHARACTERS) + "]")


def normalize_word(word: str, escape_special_characters: bool = False) -> str:
    """Lowercase a word, optionally drop punctuation, and turn underscores into spaces.

    The three steps run in that order. Applying the function twice with the
    same flag returns the same string as applying it once.
    """
    text = word.lower()
    if escape_special_characters:
        text = _SPECIAL_RE.sub("", text)
    return text.replace("_", " ")
