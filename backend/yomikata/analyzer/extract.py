from __future__ import annotations

import json
import logging

from yomikata.analyzer.errors import NoJSONFoundError

logger = logging.getLogger(__name__)


def _parses(text: str) -> bool:
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


def _unquote_json_string(line: str) -> str | None:
    try:
        decoded = json.loads(line)
    except ValueError:
        return None
    return decoded if isinstance(decoded, str) else None


def extract_json_line(output: bytes | str) -> bytes:
    """Return the first line of analyzer output that is JSON.

    A line qualifies either as a quoted JSON string whose decoded content is
    itself JSON (the shape `ichiran-cli -e` prints) or as a raw array/object.
    Lisp warnings, banners and other diagnostics around it are ignored.
    """
    text = output.decode("utf-8", errors="replace") if isinstance(output, bytes) else output

    skipped = 0
    # Only "\n" ends a line; U+2028 and friends may sit raw inside JSON strings.
    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if not line:
            continue

        if len(line) > 2 and line.startswith('"') and line.endswith('"'):
            inner = _unquote_json_string(line)
            if inner is not None and _parses(inner):
                return inner.encode("utf-8")

        if line[0] in "[{" and _parses(line):
            if skipped:
                logger.debug("analyzer_output_noise_skipped", extra={"skipped_lines": skipped})
            return line.encode("utf-8")
        skipped += 1

    raise NoJSONFoundError(payload=text)
