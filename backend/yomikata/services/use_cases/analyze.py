from __future__ import annotations

from yomikata.analyzer.adapter import Analyzer
from yomikata.analyzer.tokens import ReadingEntry, TextSegment, Token, TokenSequence
from yomikata.api.schemas.v1.analyze import (
    AnalyzeResponse,
    ConjugationItem,
    ConjugationPropertyItem,
    GlossItem,
    ReadingEntryItem,
    TokenItem,
)


def _reading_entry_item(entry: ReadingEntry) -> ReadingEntryItem:
    if isinstance(entry, TextSegment):
        return ReadingEntryItem(kind="text", text=entry.text)
    return ReadingEntryItem(
        kind="kanji",
        text=entry.kanji,
        reading=entry.reading,
        reading_type=entry.kind,
        linked=entry.linked,
        geminated=entry.geminated,
        grade=entry.grade,
    )


def token_item(token: Token) -> TokenItem:
    return TokenItem(
        surface=token.surface,
        is_lexical=token.is_lexical,
        reading=token.reading,
        kana=token.kana,
        romanized=token.romanized,
        score=token.score,
        seq=token.seq,
        glosses=[GlossItem(pos=item.pos, gloss=item.gloss, info=item.info) for item in token.glosses],
        conjugations=[
            ConjugationItem(
                properties=[
                    ConjugationPropertyItem(pos=prop.pos, type=prop.type, negative=prop.negative)
                    for prop in conjugation.properties
                ],
                reading=conjugation.reading,
                glosses=[
                    GlossItem(pos=item.pos, gloss=item.gloss, info=item.info) for item in conjugation.glosses
                ],
                reading_ok=conjugation.reading_ok,
            )
            for conjugation in token.conjugations
        ],
        alternatives=[token_item(alternative) for alternative in token.alternatives],
        compound=list(token.compound),
        components=[token_item(component) for component in token.components],
        kanji_readings=[_reading_entry_item(entry) for entry in token.kanji_readings],
    )


def build_analyze_response(tokens: TokenSequence, *, include_morphemes: bool = False) -> AnalyzeResponse:
    return AnalyzeResponse(
        tokens=[token_item(token) for token in tokens],
        morphemes=[token_item(token) for token in tokens.to_morphemes()] if include_morphemes else None,
        tokenized=tokens.tokenized(),
        kana=tokens.kana(),
        roman=tokens.roman(),
        gloss=tokens.gloss(),
        spaced=tokens.spaced(),
    )


class AnalyzeTextUseCase:
    def __init__(self, analyzer: Analyzer):
        self._analyzer = analyzer

    def execute(self, text: str, *, include_morphemes: bool = False) -> AnalyzeResponse:
        tokens = self._analyzer.analyze(text)
        return build_analyze_response(tokens, include_morphemes=include_morphemes)
