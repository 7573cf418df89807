from yomikata.services.use_cases.analyze import AnalyzeTextUseCase
from yomikata.services.use_cases.transliterate import TransliterateTextUseCase

__all__ = ["AnalyzeTextUseCase", "TransliterateTextUseCase"]
