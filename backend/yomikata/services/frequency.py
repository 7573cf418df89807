from __future__ import annotations

import csv
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable

# Unicode Han script: unified ideographs, extensions, compatibility ideographs,
# radicals, iteration marks and the ideographic numerals.
_HAN_RANGES = (
    (0x4E00, 0x9FFF),
    (0x3400, 0x4DBF),
    (0x20000, 0x2FA1F),
    (0xF900, 0xFAFF),
    (0x2E80, 0x2FDF),
    (0x3005, 0x3005),
    (0x3007, 0x3007),
    (0x3021, 0x3029),
    (0x3038, 0x303B),
)


def is_kanji(char: str) -> bool:
    if len(char) != 1:
        return False
    codepoint = ord(char)
    return any(start <= codepoint <= end for start, end in _HAN_RANGES)


def contains_kanji(text: str) -> bool:
    return any(is_kanji(char) for char in text)


@dataclass(frozen=True)
class KanjiFrequencyTable:
    """Kanji ordered from most to least frequent; rank is the 1-based position."""

    characters: tuple[str, ...] = ()
    _ranks: dict[str, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        for index, char in enumerate(self.characters, start=1):
            self._ranks.setdefault(char, index)

    @classmethod
    def from_sequence(cls, characters: Iterable[str]) -> KanjiFrequencyTable:
        ordered: list[str] = []
        seen: set[str] = set()
        for char in characters:
            if not is_kanji(char) or char in seen:
                continue
            seen.add(char)
            ordered.append(char)
        return cls(tuple(ordered))

    @classmethod
    def from_path(cls, path: Path) -> KanjiFrequencyTable:
        characters: list[str] = []
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#"):
                    continue
                characters.extend(line)
        return cls.from_sequence(characters)

    def rank(self, char: str) -> int | None:
        return self._ranks.get(char)

    @property
    def max_rank(self) -> int:
        return len(self.characters)

    def __len__(self) -> int:
        return len(self.characters)

    def __contains__(self, char: object) -> bool:
        return char in self._ranks


def read_frequency_csv(path: Path, *, kanji_column: int = 0, rank_column: int = 2) -> KanjiFrequencyTable:
    """Build a table from a CSV with a header row, one kanji and its rank per row."""
    ranked: list[tuple[int, int, str]] = []
    with path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.reader(handle)
        next(reader, None)
        for position, row in enumerate(reader):
            if len(row) <= max(kanji_column, rank_column):
                continue
            try:
                rank = int(row[rank_column].strip())
            except ValueError:
                continue
            ranked.append((rank, position, row[kanji_column].strip()))

    ranked.sort()
    return KanjiFrequencyTable.from_sequence(kanji for _, _, kanji in ranked)


def write_frequency_table(table: KanjiFrequencyTable, path: Path, *, per_line: int = 40) -> None:
    lines = ["# Kanji ordered by frequency, most frequent first."]
    for start in range(0, len(table.characters), per_line):
        lines.append("".join(table.characters[start : start + per_line]))
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
