from __future__ import annotations

import json

import pytest

from yomikata.analyzer.errors import NoJSONFoundError, ProtocolError
from yomikata.analyzer.extract import extract_json_line


def test_extract_skips_lisp_noise_and_malformed_lines(fixtures_dir) -> None:
    output = (fixtures_dir / "noisy_exec_output.txt").read_bytes()

    line = extract_json_line(output)

    value = json.loads(line)
    assert value[-1] == "。"
    assert value[0][0][0][0][0] == "nihongo"


def test_extract_unwraps_quoted_json_string() -> None:
    inner = json.dumps([{"kanji": "日", "reading": "に"}], ensure_ascii=False)
    output = "; loading\n" + json.dumps(inner, ensure_ascii=False) + "\n"

    assert json.loads(extract_json_line(output)) == [{"kanji": "日", "reading": "に"}]


def test_extract_ignores_quoted_string_that_is_not_json() -> None:
    output = '"just a lisp string"\n{"ok": true}\n'

    assert extract_json_line(output) == b'{"ok": true}'


def test_extract_returns_first_qualifying_line() -> None:
    output = '[1, 2]\n["second"]\n'

    assert extract_json_line(output.encode("utf-8")) == b"[1, 2]"


def test_extract_raises_with_diagnostic_payload_when_nothing_parses() -> None:
    output = "debugger invoked on a SB-BSD-SOCKETS:HOST-NOT-FOUND-ERROR\n[not json\n"

    with pytest.raises(NoJSONFoundError) as exc_info:
        extract_json_line(output)

    error = exc_info.value
    assert isinstance(error, ProtocolError)
    assert error.stage == "extract"
    assert "HOST-NOT-FOUND-ERROR" in error.payload
    assert "network" in str(error)


def test_extract_rejects_empty_output() -> None:
    with pytest.raises(NoJSONFoundError):
        extract_json_line(b"")


def test_extract_keeps_unicode_line_separators_inside_json() -> None:
    values = ["a\u2028b", "c\u2029d", "e\x85f"]
    output = "; loading\r\n" + json.dumps(values, ensure_ascii=False) + "\r\n"

    assert "\u2028" in output
    assert json.loads(extract_json_line(output.encode("utf-8"))) == values
