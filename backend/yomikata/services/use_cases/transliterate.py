from __future__ import annotations

from yomikata.analyzer.adapter import Analyzer
from yomikata.api.schemas.v1.transliterate import ProcessingDecisionItem, TransliterateResponse
from yomikata.services.frequency import KanjiFrequencyTable
from yomikata.services.transliteration import transliterate


class TransliterateTextUseCase:
    def __init__(self, analyzer: Analyzer, frequency_table: KanjiFrequencyTable, default_threshold: int):
        self._analyzer = analyzer
        self._frequency_table = frequency_table
        self._default_threshold = default_threshold

    def execute(self, text: str, frequency_threshold: int | None = None) -> TransliterateResponse:
        threshold = self._default_threshold if frequency_threshold is None else frequency_threshold
        tokens = self._analyzer.analyze(text)
        result = transliterate(tokens, threshold, self._frequency_table)
        return TransliterateResponse(
            text=text,
            transliterated=result.text,
            frequency_threshold=threshold,
            decisions=[
                ProcessingDecisionItem(
                    original=decision.original,
                    result=decision.result,
                    status=decision.status.value,
                    label=decision.status.label,
                )
                for decision in result.decisions
            ],
        )
