"""Module-level convenience API over one lazily created analyzer.

Services should build and own an `IchiranAnalyzer` explicitly; these helpers
are for scripts and interactive use.
"""

from __future__ import annotations

import logging
import threading

from yomikata.analyzer.ichiran import IchiranAnalyzer, load_ichiran_analyzer
from yomikata.analyzer.tokens import Token, TokenSequence
from yomikata.core.config import Settings, load_settings
from yomikata.services.frequency import KanjiFrequencyTable
from yomikata.services.transliteration import TransliterationResult
from yomikata.services.transliteration import transliterate as transliterate_tokens

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_analyzer: IchiranAnalyzer | None = None
_frequency_table: KanjiFrequencyTable | None = None
_default_threshold: int | None = None


def get_default_analyzer(settings: Settings | None = None) -> IchiranAnalyzer:
    global _analyzer
    with _lock:
        if _analyzer is None:
            _analyzer = load_ichiran_analyzer(settings or load_settings())
            logger.info("default_analyzer_created", extra=_analyzer.metadata())
        return _analyzer


def _load_frequency_defaults(settings: Settings | None) -> tuple[KanjiFrequencyTable, int]:
    # Caller holds _lock. The table and its threshold come from one settings read.
    global _frequency_table, _default_threshold
    if _frequency_table is None or _default_threshold is None:
        settings = settings or load_settings()
        _frequency_table = KanjiFrequencyTable.from_path(settings.frequency_table_path)
        _default_threshold = settings.default_frequency_threshold
    return _frequency_table, _default_threshold


def get_default_frequency_table(settings: Settings | None = None) -> KanjiFrequencyTable:
    with _lock:
        table, _ = _load_frequency_defaults(settings)
        return table


def close_default_analyzer() -> None:
    global _analyzer
    with _lock:
        analyzer, _analyzer = _analyzer, None
    if analyzer is not None:
        analyzer.close()
        logger.info("default_analyzer_closed")


def analyze(text: str) -> TokenSequence:
    return get_default_analyzer().analyze(text)


def transliterate(
    tokens: TokenSequence | tuple[Token, ...],
    frequency_threshold: int | None = None,
) -> TransliterationResult:
    with _lock:
        table, default_threshold = _load_frequency_defaults(None)
    threshold = default_threshold if frequency_threshold is None else frequency_threshold
    return transliterate_tokens(tokens, threshold, table)
