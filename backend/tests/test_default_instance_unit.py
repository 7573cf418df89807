from __future__ import annotations

import pytest

from yomikata.analyzer import default
from yomikata.analyzer.tokens import KanjiReading, Token, TokenSequence
from yomikata.services.transliteration import ProcessingStatus


class RecordingAnalyzer:
    def __init__(self) -> None:
        self.analyzed: list[str] = []
        self.closed = False

    def analyze(self, text: str) -> TokenSequence:
        self.analyzed.append(text)
        return TokenSequence((Token(surface=text, is_lexical=False),))

    def metadata(self) -> dict[str, str]:
        return {"analyzer": "RecordingAnalyzer"}

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def default_module(monkeypatch, frequency_table_file):
    created: list[RecordingAnalyzer] = []

    def fake_loader(_settings):
        analyzer = RecordingAnalyzer()
        created.append(analyzer)
        return analyzer

    monkeypatch.setattr(default, "load_ichiran_analyzer", fake_loader)
    monkeypatch.setattr(default, "_analyzer", None)
    monkeypatch.setattr(default, "_frequency_table", None)
    monkeypatch.setattr(default, "_default_threshold", None)
    monkeypatch.setenv("YOMIKATA_FREQUENCY_TABLE_PATH", str(frequency_table_file))
    monkeypatch.setenv("YOMIKATA_DEFAULT_FREQUENCY_THRESHOLD", "2")
    return created


def test_default_analyzer_is_created_once(default_module) -> None:
    first = default.get_default_analyzer()
    second = default.get_default_analyzer()

    assert first is second
    assert len(default_module) == 1

    assert [token.surface for token in default.analyze("日本")] == ["日本"]
    assert first.analyzed == ["日本"]


def test_close_default_analyzer_forgets_the_instance(default_module) -> None:
    first = default.get_default_analyzer()

    default.close_default_analyzer()
    default.close_default_analyzer()
    second = default.get_default_analyzer()

    assert first.closed
    assert second is not first
    assert len(default_module) == 2


def test_transliterate_uses_configured_table_and_threshold(default_module) -> None:
    token = Token(
        surface="日本人",
        is_lexical=True,
        kana="にほんじん",
        kanji_readings=(
            KanjiReading("日", "に", linked=True),
            KanjiReading("本", "ほん", linked=True),
            KanjiReading("人", "じん", linked=True),
        ),
    )

    with_default = default.transliterate(TokenSequence((token,)))
    with_explicit = default.transliterate((token,), frequency_threshold=3)

    assert with_default.text == "日本じん"
    assert with_default.decisions[2].status is ProcessingStatus.TRANSLITERATED_INFREQUENT
    assert with_explicit.text == "日本人"
    assert default.get_default_frequency_table() is default.get_default_frequency_table()


def test_transliterate_reads_settings_once(default_module, monkeypatch) -> None:
    calls: list[int] = []
    load_settings = default.load_settings

    def counting_load_settings():
        calls.append(1)
        return load_settings()

    monkeypatch.setattr(default, "load_settings", counting_load_settings)
    token = Token(surface="日", is_lexical=True, kana="に", kanji_readings=(KanjiReading("日", "に"),))

    results = [default.transliterate((token,)) for _ in range(5)]

    assert len(calls) == 1
    assert len({result.text for result in results}) == 1
