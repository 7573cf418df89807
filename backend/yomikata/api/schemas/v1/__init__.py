from yomikata.api.schemas.v1.analyze import (
    AnalyzeRequest,
    AnalyzeResponse,
    ConjugationItem,
    ConjugationPropertyItem,
    GlossItem,
    ReadingEntryItem,
    TokenItem,
)
from yomikata.api.schemas.v1.transliterate import (
    ProcessingDecisionItem,
    TransliterateRequest,
    TransliterateResponse,
)

__all__ = [
    "AnalyzeRequest",
    "AnalyzeResponse",
    "ConjugationItem",
    "ConjugationPropertyItem",
    "GlossItem",
    "ReadingEntryItem",
    "TokenItem",
    "ProcessingDecisionItem",
    "TransliterateRequest",
    "TransliterateResponse",
]
