from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from yomikata.analyzer.tokens import KanjiReading, TextSegment, Token
from yomikata.services.frequency import KanjiFrequencyTable, contains_kanji


class ProcessingStatus(str, Enum):
    PRESERVED = "preserved"
    TRANSLITERATED_IRREGULAR = "transliterated_irregular"
    TRANSLITERATED_INFREQUENT = "transliterated_infrequent"
    TRANSLITERATED_UNMAPPABLE = "transliterated_unmappable"
    PRESERVED_NON_KANJI = "preserved_non_kanji"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


_STATUS_LABELS = {
    ProcessingStatus.PRESERVED: "Preserved (regular reading & frequent)",
    ProcessingStatus.TRANSLITERATED_IRREGULAR: "Transliterated (irregular reading)",
    ProcessingStatus.TRANSLITERATED_INFREQUENT: "Transliterated (infrequent)",
    ProcessingStatus.TRANSLITERATED_UNMAPPABLE: "Transliterated (unmappable)",
    ProcessingStatus.PRESERVED_NON_KANJI: "Preserved (not kanji)",
}


@dataclass(frozen=True)
class ProcessingDecision:
    original: str
    result: str
    status: ProcessingStatus


@dataclass(frozen=True)
class TransliterationResult:
    text: str
    decisions: tuple[ProcessingDecision, ...]

    def to_dict(self) -> dict[str, object]:
        return {
            "text": self.text,
            "decisions": [
                {
                    "original": decision.original,
                    "result": decision.result,
                    "status": decision.status.value,
                    "label": decision.status.label,
                }
                for decision in self.decisions
            ],
        }


def is_regular_reading(reading: KanjiReading) -> bool:
    """Linked to its kana span and free of gemination (small っ) changes."""
    return reading.linked and not reading.geminated


def _within_threshold(table: KanjiFrequencyTable, char: str, threshold: int) -> bool:
    rank = table.rank(char)
    return rank is not None and rank <= threshold


def _decide_single(reading: KanjiReading, threshold: int, table: KanjiFrequencyTable) -> ProcessingDecision:
    frequent = _within_threshold(table, reading.kanji, threshold)
    regular = is_regular_reading(reading)
    if frequent and regular:
        return ProcessingDecision(reading.kanji, reading.kanji, ProcessingStatus.PRESERVED)

    if not frequent:
        status = ProcessingStatus.TRANSLITERATED_INFREQUENT
    elif not regular:
        status = ProcessingStatus.TRANSLITERATED_IRREGULAR
    else:
        status = ProcessingStatus.TRANSLITERATED_UNMAPPABLE
    return ProcessingDecision(reading.kanji, reading.reading, status)


def _decide_group(reading: KanjiReading, threshold: int, table: KanjiFrequencyTable) -> ProcessingDecision:
    # The analyzer could not split this reading per character; it stands or falls as one unit.
    if all(_within_threshold(table, char, threshold) for char in reading.kanji):
        return ProcessingDecision(reading.kanji, reading.kanji, ProcessingStatus.PRESERVED)
    return ProcessingDecision(reading.kanji, reading.reading, ProcessingStatus.TRANSLITERATED_INFREQUENT)


def _decide_token(token: Token, threshold: int, table: KanjiFrequencyTable) -> list[ProcessingDecision]:
    if not token.is_lexical or not contains_kanji(token.surface):
        return [ProcessingDecision(token.surface, token.surface, ProcessingStatus.PRESERVED_NON_KANJI)]
    if not token.kanji_readings:
        return [ProcessingDecision(token.surface, token.surface, ProcessingStatus.TRANSLITERATED_UNMAPPABLE)]

    decisions: list[ProcessingDecision] = []
    for entry in token.kanji_readings:
        if isinstance(entry, TextSegment):
            decisions.append(ProcessingDecision(entry.text, entry.text, ProcessingStatus.PRESERVED_NON_KANJI))
        elif entry.is_atomic_group:
            decisions.append(_decide_group(entry, threshold, table))
        else:
            decisions.append(_decide_single(entry, threshold, table))

    if not "".join(decision.result for decision in decisions):
        fallback = token.kana or token.surface
        return [ProcessingDecision(token.surface, fallback, ProcessingStatus.TRANSLITERATED_UNMAPPABLE)]
    return decisions


def transliterate(
    tokens: Iterable[Token],
    frequency_threshold: int,
    table: KanjiFrequencyTable,
) -> TransliterationResult:
    """Keep kanji that are frequent (rank <= threshold) and regularly read; spell the rest in kana."""
    if frequency_threshold < 0:
        raise ValueError(f"frequency_threshold must be non-negative, got {frequency_threshold}")

    decisions: list[ProcessingDecision] = []
    for token in tokens:
        decisions.extend(_decide_token(token, frequency_threshold, table))

    text = "".join(decision.result for decision in decisions)
    return TransliterationResult(text=text, decisions=tuple(decisions))
