from __future__ import annotations

import json
import logging
import re
from typing import Any

from yomikata.analyzer.errors import DecodeError, PartialDecodeWarning, truncate_payload
from yomikata.analyzer.tokens import (
    Conjugation,
    ConjugationProperty,
    Gloss,
    KanjiReading,
    ReadingEntry,
    TextSegment,
    Token,
    TokenSequence,
)

logger = logging.getLogger(__name__)

ZERO_WIDTH_NON_JOINER = "\u200c"
ALTERNATIVE_KEY = "alternative"
MIN_ENTRY_LENGTH = 3
_UNICODE_ESCAPE_RE = re.compile(r"\\u([0-9a-fA-F]{4})(?:\\u([dD][c-fC-F][0-9a-fA-F]{2}))?")


def _decode_escape(match: re.Match[str]) -> str:
    high = int(match.group(1), 16)
    low = match.group(2)
    if low is not None:
        if 0xD800 <= high <= 0xDBFF:
            return chr(0x10000 + ((high - 0xD800) << 10) + (int(low, 16) - 0xDC00))
        if 0xD800 <= high <= 0xDFFF:
            return match.group(0)
        return chr(high) + match.group(0)[6:]
    # A lone surrogate cannot be encoded later; leave it as written.
    if 0xD800 <= high <= 0xDFFF:
        return match.group(0)
    return chr(high)


def unescape_unicode(text: str) -> str:
    """Drop zero-width non-joiners and decode literal `\\uXXXX` escapes left in a field.

    Anything that is not a well-formed escape (`C:\\users`, `\\uZZZZ`) is kept verbatim.
    """
    text = text.replace(ZERO_WIDTH_NON_JOINER, "")
    if "\\u" not in text:
        return text
    return _UNICODE_ESCAPE_RE.sub(_decode_escape, text)


def _describe(value: Any) -> str:
    return truncate_payload(repr(value), 200)


def _string(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise PartialDecodeWarning(f"field {key!r} should be a string, got {_describe(value)}")
    return value


def _integer(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise PartialDecodeWarning(f"field {key!r} should be an integer, got {_describe(value)}")


def _flag(value: Any) -> bool:
    # `readok` shows up as a list of per-reading flags for some conjugations.
    if isinstance(value, list):
        return bool(value) and all(bool(item) for item in value)
    return bool(value)


def _kana(data: dict[str, Any]) -> str:
    value = data.get("kana")
    if isinstance(value, list):
        value = next((item for item in value if isinstance(item, str)), None)
        if value is None:
            return ""
        return value
    return _string(data, "kana")


def _list(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise PartialDecodeWarning(f"field {key!r} should be a list, got {_describe(value)}")
    return value


def _object(value: Any, what: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise PartialDecodeWarning(f"{what} should be an object, got {_describe(value)}")
    return value


def _decode_glosses(items: list[Any]) -> tuple[Gloss, ...]:
    glosses: list[Gloss] = []
    for item in items:
        data = _object(item, "gloss")
        glosses.append(
            Gloss(pos=_string(data, "pos"), gloss=_string(data, "gloss"), info=_string(data, "info"))
        )
    return tuple(glosses)


def _decode_conjugations(items: list[Any]) -> tuple[Conjugation, ...]:
    conjugations: list[Conjugation] = []
    for item in items:
        data = _object(item, "conjugation")
        properties = tuple(
            ConjugationProperty(
                pos=_string(prop, "pos"),
                type=_string(prop, "type"),
                negative=_flag(prop.get("neg")),
            )
            for prop in (_object(raw, "conjugation property") for raw in _list(data, "prop"))
        )
        conjugations.append(
            Conjugation(
                properties=properties,
                reading=unescape_unicode(_string(data, "reading")),
                glosses=_decode_glosses(_list(data, "gloss")),
                reading_ok=_flag(data.get("readok")),
            )
        )
    return tuple(conjugations)


def _decode_components(items: list[Any], surface: str) -> tuple[Token, ...]:
    components = tuple(decode_token_data(item) for item in items)
    if components and "".join(component.surface for component in components) != surface:
        logger.warning(
            "analyzer_components_mismatch",
            extra={
                "surface": surface,
                "components": [component.surface for component in components],
            },
        )
        return ()
    return components


def decode_token_data(data: Any, *, romanized: str = "") -> Token:
    """Decode one token-data object (a direct entry, an alternative or a component)."""
    data = _object(data, "token data")
    surface = unescape_unicode(_string(data, "text"))
    if not surface:
        raise PartialDecodeWarning("token data has an empty surface")

    return Token(
        surface=surface,
        is_lexical=True,
        reading=unescape_unicode(_string(data, "reading")),
        kana=unescape_unicode(_kana(data)),
        romanized=romanized,
        score=_integer(data, "score"),
        seq=_integer(data, "seq"),
        glosses=_decode_glosses(_list(data, "gloss")),
        conjugations=_decode_conjugations(_list(data, "conj")),
        compound=tuple(item for item in _list(data, "compound") if isinstance(item, str)),
        components=_decode_components(_list(data, "components"), surface),
    )


def _decode_alternatives(alternatives: Any, romanized: str) -> Token | None:
    if not isinstance(alternatives, list):
        raise PartialDecodeWarning(f"alternative list expected, got {_describe(alternatives)}")

    survivors: list[Token] = []
    for index, alternative in enumerate(alternatives):
        try:
            survivors.append(decode_token_data(alternative, romanized=romanized))
        except PartialDecodeWarning as warning:
            logger.warning(
                "analyzer_alternative_skipped",
                extra={"index": index, "reason": str(warning)},
            )

    if not survivors:
        return None
    return Token.from_core(survivors[0].core(), alternatives=tuple(survivors))


def _decode_entry(entry: Any) -> Token | None:
    if not isinstance(entry, list):
        raise PartialDecodeWarning(f"entry should be a list, got {_describe(entry)}")
    if len(entry) < MIN_ENTRY_LENGTH:
        raise PartialDecodeWarning(f"entry too short: {_describe(entry)}")

    romanized, data = entry[0], entry[1]
    if not isinstance(romanized, str):
        raise PartialDecodeWarning(f"romanized form should be a string, got {_describe(romanized)}")
    data = _object(data, "entry data")

    if ALTERNATIVE_KEY in data:
        return _decode_alternatives(data[ALTERNATIVE_KEY], romanized)
    return decode_token_data(data, romanized=romanized)


def _decode_group(group: list[Any]) -> list[Token]:
    """Decode one lexical group: `[[entries, score...], ...]`."""
    if not group or not isinstance(group[0], list) or not group[0]:
        logger.warning("analyzer_group_malformed", extra={"group": _describe(group)})
        return []
    entries = group[0][0]
    if not isinstance(entries, list):
        logger.warning("analyzer_group_malformed", extra={"group": _describe(group)})
        return []

    tokens: list[Token] = []
    for entry in entries:
        if isinstance(entry, (int, float)) and not isinstance(entry, bool):
            continue
        try:
            token = _decode_entry(entry)
        except PartialDecodeWarning as warning:
            logger.warning("analyzer_entry_skipped", extra={"reason": str(warning)})
            continue
        if token is None:
            logger.warning("analyzer_entry_without_alternatives")
            continue
        tokens.append(token)
    return tokens


def decode_value(value: Any) -> TokenSequence:
    if not isinstance(value, list):
        raise DecodeError(
            "analyzer answer should be a JSON array",
            stage="decode",
            payload=_describe(value),
        )

    tokens: list[Token] = []
    for item in value:
        if isinstance(item, str):
            surface = unescape_unicode(item)
            if surface:
                tokens.append(Token(surface=surface, is_lexical=False))
        elif isinstance(item, list):
            group_tokens = _decode_group(item)
            if not group_tokens:
                logger.warning("analyzer_group_empty", extra={"group": _describe(item)})
            tokens.extend(group_tokens)
        else:
            logger.debug("analyzer_item_unexpected", extra={"item": _describe(item)})
    return TokenSequence(tuple(tokens))


def decode_response(payload: bytes | str) -> TokenSequence:
    try:
        value = json.loads(payload)
    except ValueError as exc:
        text = payload.decode("utf-8", errors="replace") if isinstance(payload, bytes) else payload
        raise DecodeError("analyzer answer is not valid JSON", stage="decode", payload=text) from exc
    return decode_value(value)


def _decode_reading_entry(item: Any) -> ReadingEntry:
    data = _object(item, "kanji match")
    if "kanji" in data:
        geminated = data.get("geminated")
        perc = data.get("perc")
        return KanjiReading(
            kanji=unescape_unicode(_string(data, "kanji")),
            reading=unescape_unicode(_string(data, "reading")),
            kind=_string(data, "type"),
            linked=_flag(data.get("link")),
            geminated=geminated if isinstance(geminated, str) else "",
            stats=_flag(data.get("stats")),
            sample=_integer(data, "sample"),
            total=_integer(data, "total"),
            perc="" if perc is None else str(perc),
            grade=_integer(data, "grade"),
        )
    if "text" in data:
        return TextSegment(unescape_unicode(_string(data, "text")))
    raise PartialDecodeWarning(f"kanji match has neither kanji nor text: {_describe(data)}")


def decode_kanji_matches(value: Any) -> tuple[ReadingEntry, ...]:
    """Decode one match list; string-encoded JSON is unwrapped first."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError as exc:
            raise PartialDecodeWarning(f"kanji match list is not JSON: {_describe(value)}") from exc
    if not isinstance(value, list):
        raise PartialDecodeWarning(f"kanji match list expected, got {_describe(value)}")
    return tuple(_decode_reading_entry(item) for item in value)


def decode_kanji_match_batch(value: Any, expected: int) -> list[tuple[ReadingEntry, ...]]:
    if isinstance(value, (bytes, str)):
        try:
            value = json.loads(value)
        except ValueError as exc:
            raise DecodeError(
                "kanji match answer is not valid JSON",
                stage="decode",
                payload=value.decode("utf-8", errors="replace") if isinstance(value, bytes) else value,
            ) from exc
    if not isinstance(value, list):
        raise DecodeError("kanji match answer should be a JSON array", stage="decode", payload=_describe(value))
    if len(value) != expected:
        raise DecodeError(
            f"kanji match answer has {len(value)} members, expected {expected}",
            stage="decode",
            payload=_describe(value),
        )

    batch: list[tuple[ReadingEntry, ...]] = []
    for index, member in enumerate(value):
        try:
            batch.append(decode_kanji_matches(member))
        except PartialDecodeWarning as warning:
            logger.warning("kanji_match_skipped", extra={"index": index, "reason": str(warning)})
            batch.append(())
    return batch
