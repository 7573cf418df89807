from yomikata.analyzer.adapter import Analyzer
from yomikata.analyzer.errors import (
    AnalyzerError,
    AnalyzerTimeoutError,
    DecodeError,
    ExecutionError,
    NoJSONFoundError,
    ProtocolError,
    ProvisioningError,
)
from yomikata.analyzer.ichiran import IchiranAnalyzer, load_ichiran_analyzer
from yomikata.analyzer.tokens import KanjiReading, TextSegment, Token, TokenSequence

__all__ = [
    "Analyzer",
    "AnalyzerError",
    "AnalyzerTimeoutError",
    "DecodeError",
    "ExecutionError",
    "NoJSONFoundError",
    "ProtocolError",
    "ProvisioningError",
    "IchiranAnalyzer",
    "load_ichiran_analyzer",
    "KanjiReading",
    "TextSegment",
    "Token",
    "TokenSequence",
]
