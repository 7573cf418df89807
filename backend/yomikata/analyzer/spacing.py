from __future__ import annotations

import unicodedata

SENTENCE_PUNCTUATION = frozenset(",.!?;:")


def _is_word_char(char: str) -> bool:
    return unicodedata.category(char)[0] in {"L", "N", "M"}


def needs_space(previous: str, current: str) -> bool:
    """Whether a space belongs between two adjacent surface fragments.

    Words are separated from words; punctuation and symbols attach to the
    word before them; ASCII sentence punctuation is followed by a space when
    a word comes next. Nothing is inserted after an opening bracket or after
    CJK punctuation such as 。 and 、.
    """
    if not previous or not current:
        return False

    last = previous[-1]
    first = current[0]
    if not _is_word_char(first):
        return False
    if _is_word_char(last):
        return True
    return last in SENTENCE_PUNCTUATION


def join_with_spacing_rule(parts: list[str] | tuple[str, ...]) -> str:
    if not parts:
        return ""

    pieces = [parts[0]]
    for previous, current in zip(parts, parts[1:]):
        if needs_space(previous, current):
            pieces.append(" ")
        pieces.append(current)
    return "".join(pieces)
