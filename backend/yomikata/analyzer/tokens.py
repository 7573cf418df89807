from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
import re
from typing import Iterator, Union

from yomikata.analyzer.spacing import join_with_spacing_rule

# ASCII whitespace only; ideographic spaces (U+3000) are left alone.
_WHITESPACE_RUN_RE = re.compile(r"\s{2,}", flags=re.ASCII)


@dataclass(frozen=True)
class Gloss:
    pos: str = ""
    gloss: str = ""
    info: str = ""


@dataclass(frozen=True)
class ConjugationProperty:
    pos: str = ""
    type: str = ""
    negative: bool = False


@dataclass(frozen=True)
class Conjugation:
    properties: tuple[ConjugationProperty, ...] = ()
    reading: str = ""
    glosses: tuple[Gloss, ...] = ()
    reading_ok: bool = False


@dataclass(frozen=True)
class KanjiReading:
    """How one kanji (or an undecomposable kanji run) maps onto part of the kana."""

    kanji: str
    reading: str = ""
    kind: str = ""
    linked: bool = False
    geminated: str = ""
    stats: bool = False
    sample: int = 0
    total: int = 0
    perc: str = ""
    grade: int = 0

    @property
    def is_atomic_group(self) -> bool:
        return len(self.kanji) > 1


@dataclass(frozen=True)
class TextSegment:
    """A kana or symbol stretch between kanji inside a surface (okurigana and the like)."""

    text: str


ReadingEntry = Union[KanjiReading, TextSegment]


@dataclass(frozen=True)
class TokenCore:
    surface: str
    is_lexical: bool
    reading: str = ""
    kana: str = ""
    romanized: str = ""
    score: int = 0


@dataclass(frozen=True)
class Token:
    surface: str
    is_lexical: bool = False
    reading: str = ""
    kana: str = ""
    romanized: str = ""
    score: int = 0
    seq: int = 0
    glosses: tuple[Gloss, ...] = ()
    conjugations: tuple[Conjugation, ...] = ()
    alternatives: tuple[Token, ...] = ()
    compound: tuple[str, ...] = ()
    components: tuple[Token, ...] = ()
    kanji_readings: tuple[ReadingEntry, ...] = ()

    def core(self) -> TokenCore:
        return TokenCore(
            surface=self.surface,
            is_lexical=self.is_lexical,
            reading=self.reading,
            kana=self.kana,
            romanized=self.romanized,
            score=self.score,
        )

    @classmethod
    def from_core(cls, core: TokenCore, alternatives: tuple[Token, ...] = ()) -> Token:
        return cls(
            surface=core.surface,
            is_lexical=core.is_lexical,
            reading=core.reading,
            kana=core.kana,
            romanized=core.romanized,
            score=core.score,
            alternatives=alternatives,
        )

    def all_glosses(self) -> list[str]:
        """Direct glosses first, then the glosses carried by each conjugation."""
        collected = [item.gloss for item in self.glosses]
        for conjugation in self.conjugations:
            collected.extend(item.gloss for item in conjugation.glosses)
        return collected

    def as_morpheme(self) -> Token:
        return replace(self, is_lexical=True)

    def to_dict(self) -> dict[str, object]:
        payload = asdict(self)
        payload["kanji_readings"] = [_reading_entry_dict(entry) for entry in self.kanji_readings]
        payload["alternatives"] = [alternative.to_dict() for alternative in self.alternatives]
        payload["components"] = [component.to_dict() for component in self.components]
        return payload


def _reading_entry_dict(entry: ReadingEntry) -> dict[str, object]:
    if isinstance(entry, TextSegment):
        return {"text": entry.text}
    return asdict(entry)


def _collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RUN_RE.sub(", ", text)


@dataclass(frozen=True)
class TokenSequence:
    tokens: tuple[Token, ...] = field(default_factory=tuple)

    def __iter__(self) -> Iterator[Token]:
        return iter(self.tokens)

    def __len__(self) -> int:
        return len(self.tokens)

    def __getitem__(self, index: int) -> Token:
        return self.tokens[index]

    def __bool__(self) -> bool:
        return bool(self.tokens)

    def to_morphemes(self) -> TokenSequence:
        morphemes: list[Token] = []
        for token in self.tokens:
            if token.components:
                morphemes.extend(component.as_morpheme() for component in token.components)
            else:
                morphemes.append(token)
        return TokenSequence(tuple(morphemes))

    def tokenized_parts(self) -> list[str]:
        return [token.surface for token in self.tokens]

    def tokenized(self) -> str:
        return _collapse_whitespace(" ".join(self.tokenized_parts()))

    def kana_parts(self) -> list[str]:
        return [
            token.kana if token.is_lexical and token.kana else token.surface
            for token in self.tokens
        ]

    def kana(self) -> str:
        return _collapse_whitespace("".join(self.kana_parts()))

    def roman_parts(self) -> list[str]:
        return [
            token.romanized if token.is_lexical and token.romanized else token.surface
            for token in self.tokens
        ]

    def roman(self) -> str:
        return _collapse_whitespace(" ".join(self.roman_parts()))

    def gloss_parts(self) -> list[str]:
        parts: list[str] = []
        for token in self.to_morphemes():
            if not token.is_lexical:
                parts.append(token.surface)
                continue

            if token.alternatives:
                labelled = [
                    f"ALT{index}: {'; '.join(glosses)}"
                    for index, glosses in enumerate(
                        (alternative.all_glosses() for alternative in token.alternatives),
                        start=1,
                    )
                    if glosses
                ]
                parts.append(f"{token.surface} ({' | '.join(labelled)})" if labelled else token.surface)
                continue

            glosses = token.all_glosses()
            parts.append(f"{token.surface}({'; '.join(glosses)})" if glosses else token.surface)
        return parts

    def gloss(self) -> str:
        return " ".join(self.gloss_parts())

    def spaced(self) -> str:
        return join_with_spacing_rule(self.tokenized_parts())

    def to_dict(self) -> dict[str, object]:
        return {"tokens": [token.to_dict() for token in self.tokens]}
