from __future__ import annotations

from dataclasses import replace

import pytest

from yomikata.analyzer.tokens import KanjiReading, TextSegment, Token, TokenSequence
from yomikata.services.transliteration import (
    ProcessingDecision,
    ProcessingStatus,
    is_regular_reading,
    transliterate,
)

READINGS = {
    "私": (KanjiReading("私", "わたし", "ja_kun", linked=True),),
    "日本語": (
        KanjiReading("日", "に", "ja_on", linked=True),
        KanjiReading("本", "ほん", "ja_on", linked=True),
        KanjiReading("語", "ご", "ja_on", linked=True),
    ),
    "勉強して": (
        KanjiReading("勉", "べん", "ja_on", linked=True),
        KanjiReading("強", "きょう", "ja_on", linked=True),
        TextSegment("して"),
    ),
}


@pytest.fixture
def annotated_sentence(sentence_tokens) -> TokenSequence:
    return TokenSequence(
        tuple(
            replace(token, kanji_readings=READINGS.get(token.surface, ()))
            for token in sentence_tokens
        )
    )


def test_threshold_keeps_frequent_regular_kanji(annotated_sentence, small_table) -> None:
    result = transliterate(annotated_sentence, 5, small_table)

    assert result.text == "私は日本語をべんきょうしています。"
    statuses = {decision.original: decision.status for decision in result.decisions}
    assert statuses["私"] is ProcessingStatus.PRESERVED
    assert statuses["日"] is ProcessingStatus.PRESERVED
    assert statuses["勉"] is ProcessingStatus.TRANSLITERATED_INFREQUENT
    assert statuses["して"] is ProcessingStatus.PRESERVED_NON_KANJI
    assert statuses["は"] is ProcessingStatus.PRESERVED_NON_KANJI
    assert statuses["。"] is ProcessingStatus.PRESERVED_NON_KANJI


def test_threshold_zero_spells_every_kanji(annotated_sentence, small_table) -> None:
    result = transliterate(annotated_sentence, 0, small_table)

    assert result.text == "わたしはにほんごをべんきょうしています。"
    assert ProcessingStatus.PRESERVED not in {decision.status for decision in result.decisions}


def test_threshold_past_table_size_keeps_every_regular_kanji(annotated_sentence, small_table) -> None:
    result = transliterate(annotated_sentence, small_table.max_rank + 1, small_table)

    assert result.text == "私は日本語を勉強しています。"


def test_raising_the_threshold_never_preserves_less(annotated_sentence, small_table) -> None:
    preserved = [
        sum(
            decision.status is ProcessingStatus.PRESERVED
            for decision in transliterate(annotated_sentence, threshold, small_table).decisions
        )
        for threshold in range(0, small_table.max_rank + 2)
    ]

    assert preserved == sorted(preserved)
    assert preserved[0] == 0
    assert preserved[-1] == 6


def test_irregular_reading_is_spelled_out(small_table) -> None:
    token = Token(
        surface="日記",
        is_lexical=True,
        kana="にっき",
        kanji_readings=(
            KanjiReading("日", "にっ", "ja_on", linked=True, geminated="つ"),
            KanjiReading("記", "き", "ja_on", linked=True),
        ),
    )

    result = transliterate([token], 10, small_table)

    assert result.text == "にっき"
    assert [decision.status for decision in result.decisions] == [
        ProcessingStatus.TRANSLITERATED_IRREGULAR,
        ProcessingStatus.TRANSLITERATED_INFREQUENT,
    ]


def test_unlinked_reading_is_irregular() -> None:
    assert is_regular_reading(KanjiReading("日", "に", linked=True))
    assert not is_regular_reading(KanjiReading("日", "に", linked=False))
    assert not is_regular_reading(KanjiReading("日", "にっ", linked=True, geminated="つ"))


def test_multi_kanji_group_stands_or_falls_as_one_unit(small_table) -> None:
    frequent_group = Token(
        surface="日本",
        is_lexical=True,
        kana="やまと",
        kanji_readings=(KanjiReading("日本", "やまと", "ja_kun", linked=False),),
    )
    rare_group = Token(
        surface="今日",
        is_lexical=True,
        kana="きょう",
        kanji_readings=(KanjiReading("今日", "きょう", "ja_kun", linked=True),),
    )

    result = transliterate([frequent_group, rare_group], 5, small_table)

    assert result.text == "日本きょう"
    assert [decision.status for decision in result.decisions] == [
        ProcessingStatus.PRESERVED,
        ProcessingStatus.TRANSLITERATED_INFREQUENT,
    ]


def test_token_without_readings_is_kept_as_unmappable(small_table) -> None:
    token = Token(surface="食", is_lexical=True, kana="しょく")

    result = transliterate([token], 100, small_table)

    assert result.text == "食"
    assert result.decisions[0].status is ProcessingStatus.TRANSLITERATED_UNMAPPABLE


def test_empty_reconstruction_falls_back_to_kana(small_table) -> None:
    token = Token(
        surface="日",
        is_lexical=True,
        kana="ひ",
        kanji_readings=(KanjiReading("日", "", "ja_kun", linked=True),),
    )

    result = transliterate([token], 0, small_table)

    assert result.text == "ひ"
    assert result.decisions == (
        ProcessingDecision("日", "ひ", ProcessingStatus.TRANSLITERATED_UNMAPPABLE),
    )


def test_negative_threshold_is_rejected(small_table) -> None:
    with pytest.raises(ValueError):
        transliterate([], -1, small_table)


def test_result_to_dict_carries_labels(small_table) -> None:
    token = Token(surface="語", is_lexical=True, kana="ご", kanji_readings=(KanjiReading("語", "ご", linked=True),))

    payload = transliterate([token, Token(surface="。")], 10, small_table).to_dict()

    assert payload == {
        "text": "語。",
        "decisions": [
            {
                "original": "語",
                "result": "語",
                "status": "preserved",
                "label": "Preserved (regular reading & frequent)",
            },
            {
                "original": "。",
                "result": "。",
                "status": "preserved_non_kanji",
                "label": "Preserved (not kanji)",
            },
        ],
    }
