from yomikata.api.schemas.v1 import (
    AnalyzeRequest,
    AnalyzeResponse,
    TokenItem,
    TransliterateRequest,
    TransliterateResponse,
)

__all__ = [
    "AnalyzeRequest",
    "AnalyzeResponse",
    "TokenItem",
    "TransliterateRequest",
    "TransliterateResponse",
]
